"""
Unit tests for dispute letter generation.
"""

from datetime import date
from decimal import Decimal

import pytest

from medbill_auditor.audit.models import AuditFlag, AuditResult
from medbill_auditor.core.exceptions import InvalidToneError
from medbill_auditor.letters.dispute_letter import (
    COLLECTION_HOLD,
    REQUESTS,
    LetterTone,
    generate_dispute_letter,
    get_available_tones,
    parse_tone,
)
from medbill_auditor.models.bill import MedicalBill
from medbill_auditor.models.enums import FacilityType, FlagSeverity, FlagType, LetterStatus, RecipientType

LETTER_DAY = date(2024, 4, 2)


def _flag(title: str, severity: FlagSeverity, impact: str = None) -> AuditFlag:
    return AuditFlag(
        flag_type=FlagType.OTHER,
        severity=severity,
        title=title,
        explanation=f"Explanation of {title.lower()}.",
        recommendation="Recommendation",
        estimated_impact=Decimal(impact) if impact is not None else None,
    )


@pytest.fixture
def audited_bill(service_date: date) -> MedicalBill:
    result = AuditResult(
        risk_score=60,
        total_estimated_overcharge=Decimal("1250.00"),
        summary="Found 3 potential issue(s).",
        recommends_dispute=True,
        flags=(
            _flag("Possible Unbundling", FlagSeverity.WARNING),
            _flag("Multiple High-Level Visit Codes", FlagSeverity.INFO),
            _flag("Duplicate Charge", FlagSeverity.CRITICAL, "1250.00"),
        ),
    )
    return MedicalBill(
        provider_name="Springfield General Hospital",
        facility_type=FacilityType.HOSPITAL,
        total_charged=Decimal("4800.00"),
        service_date=service_date,
        audit_result=result,
    )


class TestGenerateDisputeLetter:
    """Test cases for generate_dispute_letter."""

    def test_letter_header(self, audited_bill: MedicalBill):
        letter = generate_dispute_letter(
            audited_bill,
            audited_bill.audit_result,
            recipient_address="100 Main Street\nSpringfield, IL 62701",
            patient_name="Jane Q Public",
            account_number="00012345",
            today=LETTER_DAY,
        )
        lines = letter.body.splitlines()

        assert lines[0] == "April 02, 2024"
        assert lines[2] == "Springfield General Hospital"
        assert "Re: Billing Dispute" in lines
        assert "Patient: Jane Q Public" in lines
        assert "Account: 00012345" in lines
        assert "Date of Service: February 14, 2024" in lines
        assert "$1,250.00 in potential overcharges:" in letter.body

    def test_letter_fields(self, audited_bill: MedicalBill):
        letter = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY)

        assert letter.subject == "Billing Dispute - Springfield General Hospital"
        assert letter.recipient_type == RecipientType.PROVIDER
        assert letter.recipient_name == "Springfield General Hospital"
        assert letter.status == LetterStatus.DRAFT
        assert audited_bill.dispute_letter is letter

    def test_critical_flags_listed_first(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY).body

        assert "1. Duplicate Charge (Estimated Impact: $1,250.00)" in body
        assert "2. Possible Unbundling (Estimated Impact: TBD)" in body
        assert "   Explanation of duplicate charge." in body

    def test_info_flags_left_out(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY).body

        assert "Multiple High-Level Visit Codes" not in body

    def test_requests_and_collection_hold(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY).body

        assert "I respectfully request:" in body
        for index, request in enumerate(REQUESTS, 1):
            assert f"{index}. {request}" in body
        assert COLLECTION_HOLD in body

    def test_additional_notes(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(
            audited_bill,
            audited_bill.audit_result,
            additional_notes="I was never told the visit was out of network.",
            today=LETTER_DAY,
        ).body

        assert "Additional notes: I was never told the visit was out of network." in body

    def test_no_notes_section_by_default(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY).body

        assert "Additional notes" not in body

    def test_missing_service_date(self, audited_bill: MedicalBill):
        audited_bill.service_date = None

        body = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY).body

        assert "Date of Service: See attached" in body

    def test_custom_recipient(self, audited_bill: MedicalBill):
        letter = generate_dispute_letter(
            audited_bill, audited_bill.audit_result, recipient_name="Patient Accounts", today=LETTER_DAY
        )

        assert letter.recipient_name == "Patient Accounts"
        assert letter.body.splitlines()[2] == "Patient Accounts"

    def test_signed_by_patient(self, audited_bill: MedicalBill):
        body = generate_dispute_letter(
            audited_bill, audited_bill.audit_result, patient_name="Jane Q Public", today=LETTER_DAY
        ).body

        assert body.endswith("Sincerely,\nJane Q Public")

    def test_regenerating_replaces_draft(self, audited_bill: MedicalBill):
        first = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY)
        second = generate_dispute_letter(audited_bill, audited_bill.audit_result, today=LETTER_DAY)

        assert audited_bill.dispute_letter is second
        assert second.id != first.id


class TestTones:
    """Test cases for letter tones."""

    @pytest.mark.parametrize(
        "tone,salutation,sign_off",
        [
            ("formal", "Dear Billing Department,", "Sincerely,"),
            ("friendly", "Hello Billing Team,", "Thank you,"),
            ("assertive", "To Whom It May Concern,", "Regards,"),
        ],
    )
    def test_tone_phrasing(self, audited_bill: MedicalBill, tone: str, salutation: str, sign_off: str):
        lines = generate_dispute_letter(
            audited_bill, audited_bill.audit_result, tone=tone, today=LETTER_DAY
        ).body.splitlines()

        assert salutation in lines
        assert sign_off in lines

    def test_tones_differ(self, audited_bill: MedicalBill):
        bodies = {
            generate_dispute_letter(audited_bill, audited_bill.audit_result, tone=tone, today=LETTER_DAY).body
            for tone in get_available_tones()
        }

        assert len(bodies) == 3

    def test_invalid_tone(self, audited_bill: MedicalBill):
        with pytest.raises(InvalidToneError):
            generate_dispute_letter(audited_bill, audited_bill.audit_result, tone="sarcastic")

    def test_invalid_tone_is_value_error(self):
        with pytest.raises(ValueError):
            parse_tone("sarcastic")

    def test_parse_tone(self):
        assert parse_tone("Friendly") == LetterTone.FRIENDLY
        assert parse_tone(LetterTone.ASSERTIVE) == LetterTone.ASSERTIVE

    def test_available_tones(self):
        assert get_available_tones() == ["formal", "friendly", "assertive"]
