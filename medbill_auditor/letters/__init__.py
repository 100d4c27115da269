"""
Dispute letter drafting for audited bills.
"""

from medbill_auditor.letters.dispute_letter import (
    LetterTone,
    generate_dispute_letter,
    get_available_tones,
    parse_tone,
)

__all__ = [
    "LetterTone",
    "generate_dispute_letter",
    "get_available_tones",
    "parse_tone",
]
