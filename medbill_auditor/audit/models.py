"""
Value types produced by the audit engine.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from medbill_auditor.models.enums import FlagSeverity, FlagType


@dataclass(frozen=True)
class AuditFlag:
    """
    One billing problem found by a checker.

    ``affected_line_item_id`` is the id of a LineItem on the audited
    bill; bill-level flags leave it as None.
    """

    flag_type: FlagType
    severity: FlagSeverity
    title: str
    explanation: str
    recommendation: str
    estimated_impact: Optional[Decimal] = None
    affected_line_item_id: Optional[uuid.UUID] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass(frozen=True)
class AuditResult:
    """
    Outcome of auditing one bill.

    Flags keep checker order (price, duplicate, unbundling, upcoding,
    balance billing); group with ``flags_by_severity`` for display.
    """

    risk_score: int  # 0-100
    total_estimated_overcharge: Decimal
    summary: str
    recommends_dispute: bool
    flags: tuple[AuditFlag, ...] = ()
    audit_date: datetime = field(default_factory=datetime.now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def critical_count(self) -> int:
        return sum(1 for flag in self.flags if flag.severity == FlagSeverity.CRITICAL)

    def flags_by_severity(self) -> dict[FlagSeverity, list[AuditFlag]]:
        """Group flags by severity, most severe first."""
        grouped: dict[FlagSeverity, list[AuditFlag]] = {}
        for severity in sorted(FlagSeverity, key=lambda s: s.rank, reverse=True):
            matching = [flag for flag in self.flags if flag.severity == severity]
            if matching:
                grouped[severity] = matching
        return grouped
