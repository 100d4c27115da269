"""
Reference pricing: the Medicare fee schedule and charge evaluation.
"""

from medbill_auditor.pricing.fee_schedule import FeeSchedule, FeeScheduleEntry
from medbill_auditor.pricing.pricing_service import (
    PriceEvaluation,
    PriceRange,
    PriceStatus,
    PricingService,
    format_currency,
)

__all__ = [
    "FeeSchedule",
    "FeeScheduleEntry",
    "PriceEvaluation",
    "PriceRange",
    "PriceStatus",
    "PricingService",
    "format_currency",
]
