"""
Upcoding checker: highest-level visit codes that may overstate the
complexity of care.
"""

import logging
from decimal import Decimal
from typing import NamedTuple, Optional, Sequence

from medbill_auditor.audit.models import AuditFlag
from medbill_auditor.models.bill import LineItem
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType

logger = logging.getLogger(__name__)

# Share of a level 5 charge assumed to remain when no level 4 charge is on the bill
LEVEL_FOUR_SHARE = Decimal("0.7")


class VisitLevel(NamedTuple):
    code: str
    level: int
    description: str


EM_CODE_LEVELS = [
    VisitLevel("99211", 1, "Minimal office visit"),
    VisitLevel("99212", 2, "Straightforward office visit"),
    VisitLevel("99213", 3, "Low complexity office visit"),
    VisitLevel("99214", 4, "Moderate complexity office visit"),
    VisitLevel("99215", 5, "High complexity office visit"),
]

ER_CODE_LEVELS = [
    VisitLevel("99281", 1, "Straightforward ER visit"),
    VisitLevel("99282", 2, "Low complexity ER visit"),
    VisitLevel("99283", 3, "Moderate complexity ER visit"),
    VisitLevel("99284", 4, "Moderate-high ER visit"),
    VisitLevel("99285", 5, "High complexity ER visit"),
]


def _level_for(code: str, table: list[VisitLevel]) -> Optional[VisitLevel]:
    for visit_level in table:
        if visit_level.code == code:
            return visit_level
    return None


def _code_at_level(table: list[VisitLevel], level: int) -> str:
    return next(visit_level.code for visit_level in table if visit_level.level == level)


class UpcodingChecker:
    """Flags level 5 office and ER visit codes."""

    def check(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> list[AuditFlag]:
        """
        Flag level 5 visits as warnings, plus one info flag when the bill
        carries more than one level 4+ visit code.

        Impact of a level 5 flag is its charge minus the charge of the
        matching level 4 code on the same bill, or 30% of its own charge
        when there is no level 4 item. Non-positive impacts are dropped.
        """
        flags: list[AuditFlag] = []

        for item in line_items:
            code = item.cpt_code or item.hcpcs_code
            if not code:
                continue

            em_level = _level_for(code, EM_CODE_LEVELS)
            if em_level and em_level.level == 5:
                flags.append(AuditFlag(
                    flag_type=FlagType.UPCODING,
                    severity=FlagSeverity.WARNING,
                    title="High-Level E&M Code",
                    explanation=(
                        f"Code {code} ({em_level.description}) is the highest-level office visit code. "
                        "These are appropriate for very complex cases but are sometimes billed when "
                        "a lower-level code (99213 or 99214) would be more accurate."
                    ),
                    recommendation=(
                        "Review the visit notes to confirm the complexity warranted a level 5 visit. "
                        "If this was a routine visit, request the provider reconsider the coding level."
                    ),
                    estimated_impact=self._potential_savings(item, line_items, EM_CODE_LEVELS),
                    affected_line_item_id=item.id,
                ))

            er_level = _level_for(code, ER_CODE_LEVELS)
            if er_level and er_level.level == 5:
                flags.append(AuditFlag(
                    flag_type=FlagType.UPCODING,
                    severity=FlagSeverity.WARNING,
                    title="High-Level ER Code",
                    explanation=(
                        f"Code {code} ({er_level.description}) is the highest-level ER visit code. "
                        "Verify that the complexity of your visit warranted this level."
                    ),
                    recommendation=(
                        "Request the medical records and compare against the ER level guidelines. "
                        "If your visit was for a straightforward issue, the coding level may be too high."
                    ),
                    estimated_impact=self._potential_savings(item, line_items, ER_CODE_LEVELS),
                    affected_line_item_id=item.id,
                ))

        high_level_codes = [
            code for code in (item.cpt_code or item.hcpcs_code for item in line_items)
            if code and any(
                visit_level.code == code and visit_level.level >= 4
                for visit_level in EM_CODE_LEVELS + ER_CODE_LEVELS
            )
        ]
        if len(high_level_codes) > 1:
            flags.append(AuditFlag(
                flag_type=FlagType.UPCODING,
                severity=FlagSeverity.INFO,
                title="Multiple High-Level Visit Codes",
                explanation=(
                    f"This bill contains {len(high_level_codes)} high-level visit codes "
                    f"({', '.join(high_level_codes)}). While this can be legitimate, it's worth "
                    "verifying each code reflects the actual complexity of care."
                ),
                recommendation="Request documentation supporting each visit code level.",
            ))

        logger.debug(f"Upcoding check raised {len(flags)} flags")
        return flags

    @staticmethod
    def _potential_savings(
        item: LineItem,
        line_items: Sequence[LineItem],
        table: list[VisitLevel],
    ) -> Optional[Decimal]:
        level_four_code = _code_at_level(table, 4)
        level_four_item = next(
            (other for other in line_items if (other.cpt_code or other.hcpcs_code) == level_four_code),
            None,
        )
        if level_four_item is not None:
            baseline = level_four_item.charged_amount
        else:
            baseline = item.charged_amount * LEVEL_FOUR_SHARE

        savings = item.charged_amount - baseline
        return savings if savings > 0 else None
