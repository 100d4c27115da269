"""
Persistence of domain bills.

Maps MedicalBill, LineItem, AuditResult, AuditFlag and DisputeLetter to
their database records and back. Domain ids are kept as primary keys.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.orm import Session

from medbill_auditor.audit.models import AuditFlag, AuditResult
from medbill_auditor.db.tables import (
    AuditFlagRecord,
    AuditResultRecord,
    BillRecord,
    DisputeLetterRecord,
    LineItemRecord,
)
from medbill_auditor.models.bill import DisputeLetter, LineItem, MedicalBill

logger = logging.getLogger(__name__)


def save_bill(db: Session, bill: MedicalBill) -> BillRecord:
    """
    Insert or update a bill with its line items, audit result and letter.

    Existing line items of the bill are replaced by the current ones.

    Args:
        db: Database session.
        bill: Bill to store.

    Returns:
        BillRecord: The stored record.
    """
    record = db.get(BillRecord, bill.id)
    if record is None:
        record = BillRecord(id=bill.id)
        db.add(record)
    elif record.line_items:
        record.line_items = []
        db.flush()

    record.captured_date = bill.captured_date
    record.provider_name = bill.provider_name
    record.facility_type = bill.facility_type
    record.service_date = bill.service_date
    record.total_charged = bill.total_charged
    record.total_adjusted = bill.total_adjusted
    record.total_paid = bill.total_paid
    record.patient_responsibility = bill.patient_responsibility
    record.status = bill.status
    record.source_type = bill.source_type
    record.raw_ocr_text = bill.raw_ocr_text

    record.line_items = [
        _line_item_to_record(item, position)
        for position, item in enumerate(bill.line_items)
    ]

    if bill.audit_result is not None:
        _replace_audit_result(db, record, bill.audit_result)
    if bill.dispute_letter is not None:
        _replace_dispute_letter(db, record, bill.dispute_letter)

    db.commit()
    logger.info(f"Saved bill {bill.id} with {len(bill.line_items)} line items")
    return record


def save_audit_result(db: Session, bill_id: uuid.UUID, result: AuditResult) -> AuditResultRecord:
    """
    Store an audit result for a bill, replacing any previous result.

    Raises:
        LookupError: If the bill has not been saved.
    """
    record = db.get(BillRecord, bill_id)
    if record is None:
        raise LookupError(f"Bill {bill_id} not found")

    result_record = _replace_audit_result(db, record, result)
    db.commit()
    logger.info(f"Saved audit result for bill {bill_id}: score={result.risk_score}")
    return result_record


def load_bill(db: Session, bill_id: uuid.UUID) -> Optional[MedicalBill]:
    """Load a bill and everything it owns, or None if it does not exist."""
    record = db.get(BillRecord, bill_id)
    if record is None:
        return None

    bill = MedicalBill(
        id=record.id,
        captured_date=record.captured_date,
        provider_name=record.provider_name,
        facility_type=record.facility_type,
        service_date=record.service_date,
        total_charged=record.total_charged,
        total_adjusted=record.total_adjusted,
        total_paid=record.total_paid,
        patient_responsibility=record.patient_responsibility,
        status=record.status,
        source_type=record.source_type,
        raw_ocr_text=record.raw_ocr_text,
        line_items=[_line_item_from_record(item) for item in record.line_items],
    )

    if record.audit_result is not None:
        bill.audit_result = _audit_result_from_record(record.audit_result)
    if record.dispute_letter is not None:
        bill.dispute_letter = _dispute_letter_from_record(record.dispute_letter)

    return bill


def _replace_audit_result(db: Session, record: BillRecord, result: AuditResult) -> AuditResultRecord:
    # Flush the orphan delete first; bill_id is unique
    if record.audit_result is not None:
        if record.audit_result.id == result.id:
            return record.audit_result
        record.audit_result = None
        db.flush()

    result_record = AuditResultRecord(
        id=result.id,
        audit_date=result.audit_date,
        risk_score=result.risk_score,
        total_estimated_overcharge=result.total_estimated_overcharge,
        summary=result.summary,
        recommends_dispute=result.recommends_dispute,
        flags=[_flag_to_record(flag, position) for position, flag in enumerate(result.flags)],
    )
    record.audit_result = result_record
    return result_record


def _replace_dispute_letter(db: Session, record: BillRecord, letter: DisputeLetter) -> DisputeLetterRecord:
    if record.dispute_letter is not None:
        if record.dispute_letter.id == letter.id:
            letter_record = record.dispute_letter
            letter_record.status = letter.status
            letter_record.body = letter.body
            return letter_record
        record.dispute_letter = None
        db.flush()

    letter_record = DisputeLetterRecord(
        id=letter.id,
        created_date=letter.created_date,
        recipient_type=letter.recipient_type,
        recipient_name=letter.recipient_name,
        recipient_address=letter.recipient_address,
        subject=letter.subject,
        body=letter.body,
        status=letter.status,
    )
    record.dispute_letter = letter_record
    return letter_record


def _line_item_to_record(item: LineItem, position: int) -> LineItemRecord:
    return LineItemRecord(
        id=item.id,
        position=position,
        description=item.description,
        quantity=item.quantity,
        cpt_code=item.cpt_code,
        hcpcs_code=item.hcpcs_code,
        charged_amount=item.charged_amount,
        allowed_amount=item.allowed_amount,
        paid_amount=item.paid_amount,
        adjustment_amount=item.adjustment_amount,
        date_of_service=item.date_of_service,
        revenue_code=item.revenue_code,
        modifier=item.modifier,
        place_of_service=item.place_of_service,
        fair_market_price=item.fair_market_price,
        medicare_rate=item.medicare_rate,
    )


def _line_item_from_record(record: LineItemRecord) -> LineItem:
    return LineItem(
        id=record.id,
        description=record.description,
        quantity=record.quantity,
        cpt_code=record.cpt_code,
        hcpcs_code=record.hcpcs_code,
        charged_amount=record.charged_amount,
        allowed_amount=record.allowed_amount,
        paid_amount=record.paid_amount,
        adjustment_amount=record.adjustment_amount,
        date_of_service=record.date_of_service,
        revenue_code=record.revenue_code,
        modifier=record.modifier,
        place_of_service=record.place_of_service,
        fair_market_price=record.fair_market_price,
        medicare_rate=record.medicare_rate,
    )


def _flag_to_record(flag: AuditFlag, position: int) -> AuditFlagRecord:
    return AuditFlagRecord(
        id=flag.id,
        position=position,
        flag_type=flag.flag_type,
        severity=flag.severity,
        title=flag.title,
        explanation=flag.explanation,
        recommendation=flag.recommendation,
        estimated_impact=flag.estimated_impact,
        affected_line_item_id=flag.affected_line_item_id,
    )


def _audit_result_from_record(record: AuditResultRecord) -> AuditResult:
    return AuditResult(
        id=record.id,
        audit_date=record.audit_date,
        risk_score=record.risk_score,
        total_estimated_overcharge=record.total_estimated_overcharge,
        summary=record.summary,
        recommends_dispute=record.recommends_dispute,
        flags=tuple(
            AuditFlag(
                id=flag.id,
                flag_type=flag.flag_type,
                severity=flag.severity,
                title=flag.title,
                explanation=flag.explanation,
                recommendation=flag.recommendation,
                estimated_impact=flag.estimated_impact,
                affected_line_item_id=flag.affected_line_item_id,
            )
            for flag in record.flags
        ),
    )


def _dispute_letter_from_record(record: DisputeLetterRecord) -> DisputeLetter:
    return DisputeLetter(
        id=record.id,
        created_date=record.created_date,
        recipient_type=record.recipient_type,
        recipient_name=record.recipient_name,
        recipient_address=record.recipient_address,
        subject=record.subject,
        body=record.body,
        status=record.status,
    )
