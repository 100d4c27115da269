"""
Database records for bills and their audit artifacts.

A bill owns its line items, audit result and dispute letter; an audit
result owns its flags. All are deleted with their owner. A flag stores
the id of the line item it concerns, with no relationship back to it.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medbill_auditor.db.base import Base, IDMixin, TimestampMixin
from medbill_auditor.models.enums import (
    BillSource,
    BillStatus,
    FacilityType,
    FlagSeverity,
    FlagType,
    LetterStatus,
    RecipientType,
)

MONEY = Numeric(12, 2)


class BillRecord(Base, IDMixin, TimestampMixin):
    """
    Stored medical bill.

    Attributes:
        id: Same UUID as the domain MedicalBill.
        provider_name: Provider shown on the bill header.
        facility_type: Care setting.
        status: Lifecycle status.
        source_type: How the bill was captured.
        raw_ocr_text: Recognized text the bill was parsed from.
    """

    __tablename__ = "medical_bills"

    captured_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    provider_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    facility_type: Mapped[FacilityType] = mapped_column(
        Enum(FacilityType),
        default=FacilityType.UNKNOWN,
        nullable=False,
    )
    service_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    total_charged: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    total_adjusted: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    total_paid: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    patient_responsibility: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    status: Mapped[BillStatus] = mapped_column(
        Enum(BillStatus),
        default=BillStatus.CAPTURED,
        nullable=False,
        index=True,
    )
    source_type: Mapped[BillSource] = mapped_column(
        Enum(BillSource),
        default=BillSource.CAMERA,
        nullable=False,
    )
    raw_ocr_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    line_items: Mapped[list["LineItemRecord"]] = relationship(
        cascade="all, delete-orphan",
        order_by="LineItemRecord.position",
    )
    audit_result: Mapped[Optional["AuditResultRecord"]] = relationship(
        cascade="all, delete-orphan",
    )
    dispute_letter: Mapped[Optional["DisputeLetterRecord"]] = relationship(
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        """String representation of BillRecord."""
        return f"<BillRecord(id={self.id}, provider={self.provider_name})>"


class LineItemRecord(Base, IDMixin):
    """Stored line item. ``position`` keeps the order of the bill."""

    __tablename__ = "line_items"

    bill_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("medical_bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    description: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cpt_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True, index=True)
    hcpcs_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    charged_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    allowed_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    adjustment_amount: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    date_of_service: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    revenue_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    modifier: Mapped[Optional[str]] = mapped_column(String(2), nullable=True)
    place_of_service: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    fair_market_price: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    medicare_rate: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)

    def __repr__(self) -> str:
        """String representation of LineItemRecord."""
        return f"<LineItemRecord(id={self.id}, code={self.cpt_code or self.hcpcs_code})>"


class AuditResultRecord(Base, IDMixin, TimestampMixin):
    """Stored audit result. A bill has at most one."""

    __tablename__ = "audit_results"

    bill_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("medical_bills.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    audit_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_estimated_overcharge: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    summary: Mapped[str] = mapped_column(Text, nullable=False, default="")
    recommends_dispute: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    flags: Mapped[list["AuditFlagRecord"]] = relationship(
        cascade="all, delete-orphan",
        order_by="AuditFlagRecord.position",
    )

    def __repr__(self) -> str:
        """String representation of AuditResultRecord."""
        return f"<AuditResultRecord(id={self.id}, risk_score={self.risk_score})>"


class AuditFlagRecord(Base, IDMixin):
    """Stored audit flag. ``position`` keeps checker order."""

    __tablename__ = "audit_flags"

    audit_result_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("audit_results.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    flag_type: Mapped[FlagType] = mapped_column(Enum(FlagType), nullable=False)
    severity: Mapped[FlagSeverity] = mapped_column(Enum(FlagSeverity), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    explanation: Mapped[str] = mapped_column(Text, nullable=False)
    recommendation: Mapped[str] = mapped_column(Text, nullable=False)
    estimated_impact: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    affected_line_item_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    def __repr__(self) -> str:
        """String representation of AuditFlagRecord."""
        return f"<AuditFlagRecord(id={self.id}, type={self.flag_type}, severity={self.severity})>"


class DisputeLetterRecord(Base, IDMixin, TimestampMixin):
    """Stored dispute letter draft."""

    __tablename__ = "dispute_letters"

    bill_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("medical_bills.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    recipient_type: Mapped[RecipientType] = mapped_column(
        Enum(RecipientType),
        default=RecipientType.PROVIDER,
        nullable=False,
    )
    recipient_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    recipient_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subject: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[LetterStatus] = mapped_column(
        Enum(LetterStatus),
        default=LetterStatus.DRAFT,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of DisputeLetterRecord."""
        return f"<DisputeLetterRecord(id={self.id}, status={self.status})>"
