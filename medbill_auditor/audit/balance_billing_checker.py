"""
Balance billing checker: charges well above the insurer's allowed amount.
"""

import logging
from decimal import Decimal
from typing import Sequence

from medbill_auditor.audit.models import AuditFlag
from medbill_auditor.models.bill import LineItem
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType

logger = logging.getLogger(__name__)

# Share of the charge above the allowed amount that triggers a flag
BALANCE_BILLING_RATIO = Decimal("0.3")


class BalanceBillingChecker:
    """Compares each charge to its allowed amount."""

    def check(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> list[AuditFlag]:
        """Flag items charged more than 30% above a positive allowed amount."""
        flags: list[AuditFlag] = []

        for item in line_items:
            allowed = item.allowed_amount
            if allowed is None or allowed <= 0 or item.charged_amount <= allowed:
                continue

            difference = item.charged_amount - allowed
            if difference / item.charged_amount <= BALANCE_BILLING_RATIO:
                continue

            code = item.cpt_code or item.hcpcs_code or "unknown"
            flags.append(AuditFlag(
                flag_type=FlagType.BALANCE_BILLING,
                severity=FlagSeverity.CRITICAL,
                title="Possible Balance Billing",
                explanation=(
                    f"For CPT {code}, you were charged ${item.charged_amount} but the allowed amount "
                    f"is ${allowed}. The difference of ${difference} may be improper balance billing, "
                    "especially if the provider is in-network."
                ),
                recommendation=(
                    "Under the No Surprises Act, in-network providers cannot balance bill you beyond "
                    "your copay, coinsurance, and deductible. Contact your insurance company to verify "
                    "the allowed amount, and dispute this charge if the provider is in-network."
                ),
                estimated_impact=difference,
                affected_line_item_id=item.id,
            ))

        logger.debug(f"Balance billing check raised {len(flags)} flags")
        return flags
