"""
Unbundling checker: component codes billed next to the code that
already includes them.
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from medbill_auditor.audit.models import AuditFlag
from medbill_auditor.models.bill import LineItem
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnbundlingRule:
    """Codes that should not appear together, and the code to bill instead."""

    codes: frozenset[str]
    bundled_code: str
    description: str


UNBUNDLING_RULES = [
    UnbundlingRule(
        frozenset({"80048", "80053"}), "80053",
        "Basic Metabolic Panel (80048) is included in Comprehensive Metabolic Panel (80053). "
        "Both should not be billed together.",
    ),
    UnbundlingRule(
        frozenset({"85025", "85027"}), "85025",
        "CBC without differential (85027) is included in CBC with differential (85025). "
        "Both should not be billed together.",
    ),
    UnbundlingRule(
        frozenset({"99213", "99214"}), "99214",
        "Two E&M visit codes billed on the same date. Only the higher-level code should be billed.",
    ),
    UnbundlingRule(
        frozenset({"99214", "99215"}), "99215",
        "Two E&M visit codes billed on the same date. Only the higher-level code should be billed.",
    ),
    UnbundlingRule(
        frozenset({"36415", "36416"}), "36415",
        "Capillary blood draw (36416) and venipuncture (36415) billed together. "
        "Typically only one collection method should be billed.",
    ),
]


class UnbundlingChecker:
    """Applies the fixed unbundling rule table to a bill."""

    def __init__(self, rules: Sequence[UnbundlingRule] = UNBUNDLING_RULES):
        self.rules = list(rules)

    def check(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
    ) -> list[AuditFlag]:
        """
        Flag each rule whose codes all appear on the same day.

        A rule is skipped only when the matched items carry two or more
        distinct dates; undated items never split a match. Impact is the
        smallest matched charge, the component that presumably should not
        have been billed.
        """
        codes_on_bill = {item.cpt_code or item.hcpcs_code for item in line_items} - {None}

        flags: list[AuditFlag] = []
        for rule in self.rules:
            if not rule.codes <= codes_on_bill:
                continue

            affected = [item for item in line_items if (item.cpt_code or item.hcpcs_code) in rule.codes]
            dates = {item.date_of_service for item in affected if item.date_of_service is not None}
            if len(dates) > 1:
                continue

            codes = ", ".join(sorted(rule.codes))
            flags.append(AuditFlag(
                flag_type=FlagType.UNBUNDLING,
                severity=FlagSeverity.WARNING,
                title="Possible Unbundling",
                explanation=f"Codes {codes} were billed separately. {rule.description}",
                recommendation=(
                    f"Request that the provider rebill using the appropriate bundled code "
                    f"({rule.bundled_code}). The separate billing may result in a higher total charge."
                ),
                estimated_impact=min(item.charged_amount for item in affected),
                affected_line_item_id=affected[0].id,
            ))

        logger.debug(f"Unbundling check raised {len(flags)} flags")
        return flags
