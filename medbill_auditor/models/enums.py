"""
Enumerations shared by the parser, audit engine and persistence layer.
"""

import enum


class BillStatus(str, enum.Enum):
    """Lifecycle of a captured bill."""

    CAPTURED = "captured"
    PARSING = "parsing"
    PARSED = "parsed"
    AUDITING = "auditing"
    AUDITED = "audited"
    DISPUTED = "disputed"
    RESOLVED = "resolved"

    @property
    def label(self) -> str:
        return _BILL_STATUS_LABELS[self]


_BILL_STATUS_LABELS = {
    BillStatus.CAPTURED: "Captured",
    BillStatus.PARSING: "Processing",
    BillStatus.PARSED: "Ready to Audit",
    BillStatus.AUDITING: "Auditing",
    BillStatus.AUDITED: "Audit Complete",
    BillStatus.DISPUTED: "Disputed",
    BillStatus.RESOLVED: "Resolved",
}


class BillSource(str, enum.Enum):
    """How the bill entered the system."""

    CAMERA = "camera"
    PDF_IMPORT = "pdf_import"
    MANUAL = "manual"


class FacilityType(str, enum.Enum):
    """Care setting inferred from the bill header."""

    HOSPITAL = "hospital"
    PHYSICIAN_OFFICE = "physician_office"
    URGENT_CARE = "urgent_care"
    LABORATORY = "laboratory"
    IMAGING_CENTER = "imaging_center"
    AMBULATORY = "ambulatory"
    EMERGENCY = "emergency"
    UNKNOWN = "unknown"

    @property
    def uses_facility_rate(self) -> bool:
        """Whether Medicare's facility (hospital/ASC) rate applies."""
        return self in (FacilityType.HOSPITAL, FacilityType.EMERGENCY, FacilityType.AMBULATORY)


class FlagType(str, enum.Enum):
    """Kinds of billing problems an audit can flag."""

    DUPLICATE_CHARGE = "duplicate_charge"
    UNBUNDLING = "unbundling"
    UPCODING = "upcoding"
    BALANCE_BILLING = "balance_billing"
    PRICE_OUTLIER = "price_outlier"
    MISSING_MODIFIER = "missing_modifier"
    INCORRECT_QUANTITY = "incorrect_quantity"
    NOT_COVERED = "not_covered"
    OTHER = "other"


class FlagSeverity(str, enum.Enum):
    """Severity of an audit flag. Ordered critical > warning > info."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"critical": 3, "warning": 2, "info": 1}[self.value]


class RecipientType(str, enum.Enum):
    """Who a dispute letter is addressed to."""

    PROVIDER = "provider"
    INSURER = "insurer"
    BILLING_DEPARTMENT = "billing_department"


class LetterStatus(str, enum.Enum):
    """Delivery status of a dispute letter."""

    DRAFT = "draft"
    SENT = "sent"
    RESPONDED = "responded"
