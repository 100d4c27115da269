"""
Fair market pricing for medical procedures.

Compares billed amounts against Medicare rates. Medicare is treated as
the floor; commercial insurance typically pays a multiple of it.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional

from medbill_auditor.core.config import settings
from medbill_auditor.models.enums import FacilityType
from medbill_auditor.pricing.fee_schedule import FeeSchedule

logger = logging.getLogger(__name__)


class PriceStatus(str, Enum):
    """Where a charge falls relative to the reference rate."""

    FAIR = "fair"  # At or near Medicare rate
    TYPICAL = "typical"  # Within normal commercial range
    ELEVATED = "elevated"  # Above typical, possible overcharge
    OUTLIER = "outlier"  # Significantly above normal
    UNKNOWN = "unknown"  # No data to compare

    @property
    def label(self) -> str:
        return {
            "fair": "Fair Price",
            "typical": "Typical Range",
            "elevated": "Above Average",
            "outlier": "Price Outlier",
            "unknown": "Unknown",
        }[self.value]


@dataclass(frozen=True)
class PriceRange:
    """Reference rate and derived thresholds for one code."""

    medicare_rate: Decimal
    typical_commercial_rate: Decimal
    high_outlier_threshold: Decimal
    description: str
    work_rvu: Optional[Decimal] = None
    total_rvu: Optional[Decimal] = None


@dataclass(frozen=True)
class PriceEvaluation:
    """Classification of a single charge."""

    status: PriceStatus
    charged_amount: Decimal
    medicare_rate: Optional[Decimal]
    typical_rate: Optional[Decimal]
    overcharge_estimate: Optional[Decimal]
    percent_above_medicare: Optional[Decimal]
    explanation: str


def format_currency(value: Decimal) -> str:
    """Format a Decimal as US dollars, e.g. $1,234.56."""
    return f"${value:,.2f}"


def _format_percent(value: Optional[Decimal]) -> str:
    if value is None:
        return "N/A"
    return str(int(value))


class PricingService:
    """
    Evaluates charges against the Medicare fee schedule.

    Args:
        fee_schedule: Loaded reference table. Codes it does not know are
            classified as unknown.
    """

    def __init__(self, fee_schedule: FeeSchedule):
        self.fee_schedule = fee_schedule
        self.fair_tolerance = Decimal(str(settings.FAIR_PRICE_TOLERANCE))
        self.commercial_multiplier = Decimal(str(settings.COMMERCIAL_MULTIPLIER))
        self.high_outlier_multiplier = Decimal(str(settings.HIGH_OUTLIER_MULTIPLIER))

    def fair_price_range(
        self,
        code: str,
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> Optional[PriceRange]:
        """
        Look up the fair price range for a procedure code.

        Hospital, emergency and ambulatory settings use the facility rate;
        everything else uses the non-facility rate. Each falls back to the
        other variant when its own rate is missing.

        Returns:
            PriceRange, or None when no positive rate exists for the code.
        """
        entry = self.fee_schedule.lookup(code)
        if entry is None:
            return None

        if facility_type.uses_facility_rate:
            base_rate = entry.facility_rate or entry.non_facility_rate or Decimal("0")
        else:
            base_rate = entry.non_facility_rate or entry.facility_rate or Decimal("0")

        if base_rate <= 0:
            return None

        return PriceRange(
            medicare_rate=base_rate,
            typical_commercial_rate=base_rate * self.commercial_multiplier,
            high_outlier_threshold=base_rate * self.high_outlier_multiplier,
            description=entry.description,
            work_rvu=entry.work_rvu,
            total_rvu=entry.total_rvu,
        )

    def evaluate(
        self,
        charged_amount: Decimal,
        code: str,
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> PriceEvaluation:
        """
        Classify a billed charge as fair, typical, elevated or outlier.

        Args:
            charged_amount: Amount billed for the line item.
            code: CPT or HCPCS code of the line item.
            facility_type: Care setting, selects the rate variant.

        Returns:
            PriceEvaluation: Status, reference rates and overcharge
                estimate. Status is UNKNOWN when the code has no rate.

        Example:
            >>> service.evaluate(Decimal("500"), "99213").status
            <PriceStatus.OUTLIER: 'outlier'>
        """
        price_range = self.fair_price_range(code, facility_type)
        if price_range is None:
            return PriceEvaluation(
                status=PriceStatus.UNKNOWN,
                charged_amount=charged_amount,
                medicare_rate=None,
                typical_rate=None,
                overcharge_estimate=None,
                percent_above_medicare=None,
                explanation=f"No pricing data available for code {code}.",
            )

        medicare_rate = price_range.medicare_rate
        percent_above = (charged_amount - medicare_rate) / medicare_rate * 100

        overcharge: Optional[Decimal] = None
        if charged_amount <= medicare_rate * self.fair_tolerance:
            status = PriceStatus.FAIR
            explanation = "This charge is at or near the Medicare rate. This is a fair price."
        elif charged_amount <= price_range.typical_commercial_rate:
            status = PriceStatus.TYPICAL
            explanation = (
                "This charge is within the typical range for commercial insurance "
                f"({_format_percent(percent_above)}% above Medicare)."
            )
        elif charged_amount <= price_range.high_outlier_threshold:
            status = PriceStatus.ELEVATED
            overcharge = charged_amount - price_range.typical_commercial_rate
            explanation = (
                "This charge is above the typical commercial rate. You may be "
                f"overcharged by approximately {format_currency(overcharge)}."
            )
        else:
            status = PriceStatus.OUTLIER
            overcharge = charged_amount - price_range.typical_commercial_rate
            explanation = (
                "This charge is significantly above normal rates "
                f"({_format_percent(percent_above)}% above Medicare). Strongly recommend disputing."
            )

        logger.debug(f"Priced {code}: charged={charged_amount} status={status.value}")

        return PriceEvaluation(
            status=status,
            charged_amount=charged_amount,
            medicare_rate=medicare_rate,
            typical_rate=price_range.typical_commercial_rate,
            overcharge_estimate=overcharge,
            percent_above_medicare=percent_above,
            explanation=explanation,
        )
