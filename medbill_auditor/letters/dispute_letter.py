"""
Dispute letter generation.

Drafts a plain-text letter disputing the charges an audit flagged.
Critical flags are listed first, then warnings; info flags are left out.
"""

import logging
from datetime import date
from enum import Enum
from typing import Optional, Union

from medbill_auditor.audit.models import AuditResult
from medbill_auditor.core.exceptions import InvalidToneError
from medbill_auditor.models.bill import DisputeLetter, MedicalBill
from medbill_auditor.models.enums import FlagSeverity, LetterStatus, RecipientType
from medbill_auditor.pricing.pricing_service import format_currency

logger = logging.getLogger(__name__)

LETTER_DATE_FORMAT = "%B %d, %Y"


class LetterTone(str, Enum):
    """Available letter tone options."""

    FORMAL = "formal"
    FRIENDLY = "friendly"
    ASSERTIVE = "assertive"


# (salutation, opening, closing sentence, sign-off)
TONE_PHRASES = {
    LetterTone.FORMAL: (
        "Dear Billing Department,",
        "I am writing to formally dispute charges on the above-referenced account.",
        "Please contact me to discuss these concerns. I look forward to resolving this matter.",
        "Sincerely,",
    ),
    LetterTone.FRIENDLY: (
        "Hello Billing Team,",
        "I hope this letter finds you well. I'm reaching out about some charges on the above-referenced account.",
        "I appreciate your help looking into this and hope we can resolve it together.",
        "Thank you,",
    ),
    LetterTone.ASSERTIVE: (
        "To Whom It May Concern,",
        "I am writing to dispute charges on the above-referenced account, which I believe to be incorrect.",
        "I expect a written response within 30 days. If this matter is not resolved, I will escalate "
        "it to my insurer and the appropriate regulatory authorities.",
        "Regards,",
    ),
}

REQUESTS = [
    "A complete itemized statement with CPT/HCPCS codes for all charges",
    "An explanation of how each charge was determined",
    "Adjustment of the above charges to reflect fair market rates",
    "A written response within 30 days",
]

COLLECTION_HOLD = (
    "Under the Fair Debt Collection Practices Act, I request that no collection activity "
    "occur while this dispute is being investigated."
)


def parse_tone(tone: Union[str, LetterTone]) -> LetterTone:
    """
    Resolve a tone name to a LetterTone.

    Raises:
        InvalidToneError: If ``tone`` is not one of the available tones.
    """
    if isinstance(tone, LetterTone):
        return tone
    try:
        return LetterTone(tone.lower())
    except ValueError as e:
        raise InvalidToneError(
            f"Invalid tone: {tone}. Must be one of: {', '.join(get_available_tones())}"
        ) from e


def get_available_tones() -> list[str]:
    """Get list of available tone options."""
    return [t.value for t in LetterTone]


def generate_dispute_letter(
    bill: MedicalBill,
    audit_result: AuditResult,
    recipient_name: Optional[str] = None,
    recipient_address: str = "",
    patient_name: str = "",
    account_number: str = "",
    additional_notes: str = "",
    tone: Union[str, LetterTone] = LetterTone.FORMAL,
    today: Optional[date] = None,
) -> DisputeLetter:
    """
    Draft a dispute letter for an audited bill.

    The letter is attached to the bill, replacing any earlier draft.

    Args:
        bill: The audited bill.
        audit_result: Result of auditing ``bill``.
        recipient_name: Addressee. Defaults to the bill's provider.
        recipient_address: Billing address of the addressee.
        patient_name: Patient name for the reference block and signature.
        account_number: Provider account number.
        additional_notes: Free text appended after the requests.
        tone: "formal", "friendly" or "assertive".
        today: Letter date. Defaults to the current date.

    Returns:
        DisputeLetter: Draft letter addressed to the provider.

    Raises:
        InvalidToneError: If ``tone`` is not recognized.

    Example:
        >>> letter = generate_dispute_letter(bill, bill.audit_result, patient_name="Jane Doe")
        >>> print(letter.body)
    """
    letter_tone = parse_tone(tone)
    salutation, opening, closing, sign_off = TONE_PHRASES[letter_tone]

    recipient = recipient_name if recipient_name is not None else bill.provider_name
    letter_date = (today or date.today()).strftime(LETTER_DATE_FORMAT)
    service_date = (
        bill.service_date.strftime(LETTER_DATE_FORMAT) if bill.service_date else "See attached"
    )

    disputed = [
        flag for flag in audit_result.flags if flag.severity == FlagSeverity.CRITICAL
    ] + [
        flag for flag in audit_result.flags if flag.severity == FlagSeverity.WARNING
    ]

    lines = [
        letter_date,
        "",
        recipient,
        recipient_address,
        "",
        "Re: Billing Dispute",
        f"Patient: {patient_name}",
        f"Account: {account_number}",
        f"Date of Service: {service_date}",
        "",
        salutation,
        "",
        f"{opening} After careful review of my itemized bill, I have identified the following "
        f"concerns totaling an estimated {format_currency(audit_result.total_estimated_overcharge)} "
        "in potential overcharges:",
        "",
    ]

    for index, flag in enumerate(disputed, 1):
        impact = (
            format_currency(flag.estimated_impact) if flag.estimated_impact is not None else "TBD"
        )
        lines.append(f"{index}. {flag.title} (Estimated Impact: {impact})")
        lines.append(f"   {flag.explanation}")
        lines.append("")

    lines.append("I respectfully request:")
    for index, request in enumerate(REQUESTS, 1):
        lines.append(f"{index}. {request}")
    lines.append("")
    lines.append(COLLECTION_HOLD)
    lines.append("")

    if additional_notes:
        lines.append(f"Additional notes: {additional_notes}")
        lines.append("")

    lines.extend([closing, "", sign_off, patient_name])

    letter = DisputeLetter(
        recipient_type=RecipientType.PROVIDER,
        recipient_name=recipient,
        recipient_address=recipient_address,
        subject=f"Billing Dispute - {bill.provider_name}",
        body="\n".join(lines),
        status=LetterStatus.DRAFT,
    )
    bill.dispute_letter = letter

    logger.info(
        f"Drafted dispute letter: tone={letter_tone.value}, disputed_flags={len(disputed)}"
    )
    return letter
