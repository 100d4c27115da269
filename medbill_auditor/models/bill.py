"""
Domain entities for a captured medical bill.

A MedicalBill owns its line items, at most one audit result and at most
one dispute letter. Nothing points back at its owner; flags refer to the
line item they concern by id, resolved through ``MedicalBill.line_item``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from medbill_auditor.models.enums import (
    BillSource,
    BillStatus,
    FacilityType,
    LetterStatus,
    RecipientType,
)

if TYPE_CHECKING:
    from medbill_auditor.audit.models import AuditResult


@dataclass
class LineItem:
    """A single charge on a bill."""

    description: str = ""
    charged_amount: Decimal = Decimal("0")
    quantity: int = 1
    cpt_code: Optional[str] = None
    hcpcs_code: Optional[str] = None
    allowed_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None
    adjustment_amount: Optional[Decimal] = None
    date_of_service: Optional[date] = None
    revenue_code: Optional[str] = None
    modifier: Optional[str] = None
    place_of_service: Optional[str] = None

    # Pricing annotation, written at ingestion time
    fair_market_price: Optional[Decimal] = None
    medicare_rate: Optional[Decimal] = None

    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def primary_code(self) -> Optional[str]:
        return self.cpt_code or self.hcpcs_code

    @property
    def potential_overcharge(self) -> Optional[Decimal]:
        """Amount charged above the fair market price, if any."""
        if self.fair_market_price is None:
            return None
        difference = self.charged_amount - self.fair_market_price
        return difference if difference > 0 else None


@dataclass
class DisputeLetter:
    """A drafted dispute letter for a bill."""

    recipient_type: RecipientType = RecipientType.PROVIDER
    recipient_name: str = ""
    recipient_address: str = ""
    subject: str = ""
    body: str = ""
    status: LetterStatus = LetterStatus.DRAFT
    created_date: datetime = field(default_factory=datetime.now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)


@dataclass
class MedicalBill:
    """A captured bill and everything derived from it."""

    provider_name: str = ""
    facility_type: FacilityType = FacilityType.UNKNOWN
    total_charged: Decimal = Decimal("0")
    source_type: BillSource = BillSource.CAMERA
    status: BillStatus = BillStatus.CAPTURED
    service_date: Optional[date] = None
    total_adjusted: Optional[Decimal] = None
    total_paid: Optional[Decimal] = None
    patient_responsibility: Optional[Decimal] = None
    raw_ocr_text: Optional[str] = None
    captured_date: datetime = field(default_factory=datetime.now)

    line_items: list[LineItem] = field(default_factory=list)
    audit_result: Optional["AuditResult"] = None
    dispute_letter: Optional[DisputeLetter] = None

    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def line_item(self, line_item_id: Optional[uuid.UUID]) -> Optional[LineItem]:
        """Find one of this bill's line items by id."""
        if line_item_id is None:
            return None
        for item in self.line_items:
            if item.id == line_item_id:
                return item
        return None
