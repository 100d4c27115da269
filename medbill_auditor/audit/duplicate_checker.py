"""
Duplicate checker: the same code billed more than once on one date.
"""

import logging
from typing import Sequence

from medbill_auditor.audit.models import AuditFlag
from medbill_auditor.models.bill import LineItem
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType

logger = logging.getLogger(__name__)

NO_DATE = "no-date"


class DuplicateChecker:
    """Groups line items by (code, date of service) and flags repeats."""

    def check(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> list[AuditFlag]:
        """
        Flag every item beyond the first in each (code, date) group.

        Identical amounts across the group are a critical duplicate;
        differing amounts are a warning, since multiple units are
        sometimes billed as separate lines.
        """
        groups: dict[tuple[str, str], list[LineItem]] = {}
        for item in line_items:
            code = item.cpt_code or item.hcpcs_code
            if not code:
                continue
            date_key = item.date_of_service.isoformat() if item.date_of_service else NO_DATE
            groups.setdefault((code, date_key), []).append(item)

        flags: list[AuditFlag] = []
        for (code, _), items in groups.items():
            if len(items) < 2:
                continue

            first_amount = items[0].charged_amount
            all_same = all(item.charged_amount == first_amount for item in items)

            for item in items[1:]:
                if all_same:
                    flag = AuditFlag(
                        flag_type=FlagType.DUPLICATE_CHARGE,
                        severity=FlagSeverity.CRITICAL,
                        title="Duplicate Charge",
                        explanation=(
                            f"CPT {code} appears {len(items)} times on the same date with the "
                            f"same amount (${item.charged_amount}). This is likely a billing error."
                        ),
                        recommendation=(
                            "Contact the billing department and request removal of the duplicate "
                            "charge. Reference the specific date and CPT code."
                        ),
                        estimated_impact=item.charged_amount,
                        affected_line_item_id=item.id,
                    )
                else:
                    flag = AuditFlag(
                        flag_type=FlagType.DUPLICATE_CHARGE,
                        severity=FlagSeverity.WARNING,
                        title="Possible Duplicate Charge",
                        explanation=(
                            f"CPT {code} appears {len(items)} times on the same date with different "
                            "amounts. This may be intentional (e.g., multiple units) or a billing error."
                        ),
                        recommendation=(
                            "Request an itemized explanation for why this code was billed multiple "
                            "times on the same date."
                        ),
                        estimated_impact=item.charged_amount,
                        affected_line_item_id=item.id,
                    )
                flags.append(flag)

        logger.debug(f"Duplicate check raised {len(flags)} flags")
        return flags
