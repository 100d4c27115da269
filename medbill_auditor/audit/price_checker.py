"""
Price checker: flags charges far above Medicare reference rates.
"""

import logging
from decimal import Decimal
from typing import Optional, Sequence

from medbill_auditor.audit.models import AuditFlag
from medbill_auditor.models.bill import LineItem
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType
from medbill_auditor.pricing.pricing_service import PriceStatus, PricingService, format_currency

logger = logging.getLogger(__name__)


def _money(value: Optional[Decimal]) -> str:
    return format_currency(value) if value is not None else "N/A"


class PriceChecker:
    """Runs the pricing evaluation on every coded line item."""

    def __init__(self, pricing_service: PricingService):
        self.pricing_service = pricing_service

    def check(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> list[AuditFlag]:
        """
        Flag elevated charges as warnings and outliers as critical.

        Args:
            line_items: Line items of the bill being audited.
            facility_type: Care setting, selects facility vs office rates.

        Returns:
            list[AuditFlag]: One flag per elevated or outlier item, with
                impact equal to the amount above the typical commercial rate.
        """
        flags: list[AuditFlag] = []

        for item in line_items:
            code = item.cpt_code or item.hcpcs_code
            if not code:
                continue

            evaluation = self.pricing_service.evaluate(item.charged_amount, code, facility_type)

            if evaluation.status == PriceStatus.ELEVATED:
                flags.append(AuditFlag(
                    flag_type=FlagType.PRICE_OUTLIER,
                    severity=FlagSeverity.WARNING,
                    title="Above Average Price",
                    explanation=evaluation.explanation,
                    recommendation=(
                        "Request an itemized bill and ask the provider to justify this charge. "
                        f"Reference Medicare rate of {_money(evaluation.medicare_rate)} for CPT {code}."
                    ),
                    estimated_impact=evaluation.overcharge_estimate,
                    affected_line_item_id=item.id,
                ))
            elif evaluation.status == PriceStatus.OUTLIER:
                flags.append(AuditFlag(
                    flag_type=FlagType.PRICE_OUTLIER,
                    severity=FlagSeverity.CRITICAL,
                    title="Significant Overcharge Detected",
                    explanation=evaluation.explanation,
                    recommendation=(
                        f"Strongly recommend disputing this charge. The Medicare rate for CPT {code} "
                        f"is {_money(evaluation.medicare_rate)}, and typical commercial rates are "
                        f"around {_money(evaluation.typical_rate)}. You were charged "
                        f"{_money(evaluation.charged_amount)}."
                    ),
                    estimated_impact=evaluation.overcharge_estimate,
                    affected_line_item_id=item.id,
                ))

        logger.debug(f"Price check raised {len(flags)} flags")
        return flags
