"""
Domain entities and shared enumerations.
"""

from medbill_auditor.models.bill import DisputeLetter, LineItem, MedicalBill
from medbill_auditor.models.enums import (
    BillSource,
    BillStatus,
    FacilityType,
    FlagSeverity,
    FlagType,
    LetterStatus,
    RecipientType,
)

__all__ = [
    "BillSource",
    "BillStatus",
    "DisputeLetter",
    "FacilityType",
    "FlagSeverity",
    "FlagType",
    "LetterStatus",
    "LineItem",
    "MedicalBill",
    "RecipientType",
]
