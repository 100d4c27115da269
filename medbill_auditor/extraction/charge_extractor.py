"""
Dollar amount extraction from OCR text lines.

Handles the formats seen on itemized statements: $1,234.56, $ 45.00,
bare table amounts at the end of a line (1234.56), and the common OCR
misread of "$" as "S" (S 1,234.56).

Amounts are kept as Decimal so they round-trip exactly.
"""

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

logger = logging.getLogger(__name__)

# "S 45.00" / "S1,234.56" -> "$45.00" / "$1,234.56"
OCR_DOLLAR_MISREAD = re.compile(r"S\s?([0-9]{1,3}(?:,?[0-9]{3})*\.[0-9]{2})")

# Pattern 1: explicit currency symbol with cents
DOLLAR_PATTERN = re.compile(r"\$\s?([0-9]{1,3}(?:,?[0-9]{3})*\.[0-9]{2})")

# Pattern 2: bare amount with cents at the end of the line (table-formatted bills)
BARE_AMOUNT_PATTERN = re.compile(r"\b([0-9]{1,3}(?:,?[0-9]{3})*\.[0-9]{2})\s*$")

# Plausible range for a bare (symbol-less) charge
BARE_AMOUNT_MIN = Decimal("10")
BARE_AMOUNT_MAX = Decimal("100000")

# Anything at or above this is treated as a misread identifier
AMOUNT_CEILING = Decimal("1000000")

# Lines that talk about phones are never charge lines
PHONE_CONTEXT = re.compile(r"\b(?:call|phone|fax)\b")

# Identifier context: rejected only when the match has no currency symbol
IDENTIFIER_CONTEXT = re.compile(r"\baccount\b|\bref\s*#|\bclaim\s*#")


@dataclass(frozen=True)
class ExtractedAmount:
    """A monetary value found in a line, with the text it was matched from."""

    value: Decimal
    raw_text: str


@dataclass
class ClassifiedCharges:
    """Amounts on a single ledger row mapped to their likely columns."""

    billed: Optional[Decimal] = None
    allowed: Optional[Decimal] = None
    adjustment: Optional[Decimal] = None
    insurance_paid: Optional[Decimal] = None
    patient_owes: Optional[Decimal] = None


def normalize_dollar_misreads(text: str) -> str:
    """Rewrite an "S" immediately before a cents amount as "$"."""
    return OCR_DOLLAR_MISREAD.sub(r"$\1", text)


class ChargeExtractor:
    """Extracts dollar amounts from single lines of recognized text."""

    def extract_amounts(self, text: str) -> list[ExtractedAmount]:
        """
        Extract all dollar amounts from a line, in order of appearance.

        Bare amounts are only considered when no "$" amount is present,
        and only within the plausible charge range.

        Args:
            text: A single line of OCR text.

        Returns:
            list[ExtractedAmount]: Amounts with their raw matched text.

        Example:
            >>> ChargeExtractor().extract_amounts("Total: $1,234.56")
            [ExtractedAmount(value=Decimal('1234.56'), raw_text='$1,234.56')]
        """
        normalized = normalize_dollar_misreads(text)

        amounts = self._find_amounts(normalized, DOLLAR_PATTERN)

        if not amounts:
            bare_amounts = self._find_amounts(normalized, BARE_AMOUNT_PATTERN)
            amounts = [
                amount for amount in bare_amounts
                if BARE_AMOUNT_MIN <= amount.value < BARE_AMOUNT_MAX
            ]

        return amounts

    def contains_amount(self, text: str) -> bool:
        """Quick check: does this line contain any dollar amount?"""
        return bool(self.extract_amounts(text))

    def classify_amounts(
        self,
        amounts: list[ExtractedAmount],
        context: str,
    ) -> ClassifiedCharges:
        """
        Map the amounts on one row to billed/allowed/adjustment/paid/owed.

        Args:
            amounts: Amounts extracted from the row, in order.
            context: The row text, used for keyword hints.

        Returns:
            ClassifiedCharges: Best-guess column assignment.
        """
        result = ClassifiedCharges()
        lower = context.lower()
        values = [amount.value for amount in amounts]

        if len(values) == 1:
            if "copay" in lower or "co-pay" in lower:
                result.patient_owes = values[0]
            elif "paid" in lower or "payment" in lower:
                result.insurance_paid = values[0]
            else:
                result.billed = values[0]
        elif len(values) == 2:
            result.billed = values[0]
            if "allowed" in lower or "approved" in lower:
                result.allowed = values[1]
            else:
                result.patient_owes = values[1]
        elif len(values) == 3:
            result.billed, result.allowed, result.patient_owes = values
        elif len(values) == 4:
            result.billed, result.allowed, result.adjustment, result.insurance_paid = values
        elif len(values) >= 5:
            (
                result.billed,
                result.allowed,
                result.adjustment,
                result.insurance_paid,
                result.patient_owes,
            ) = values[:5]

        return result

    def _find_amounts(self, text: str, pattern: re.Pattern) -> list[ExtractedAmount]:
        """Run one amount pattern over the text and validate each match."""
        results: list[ExtractedAmount] = []

        for match in pattern.finditer(text):
            raw_text = match.group(0)
            number = match.group(1).replace(",", "")

            try:
                value = Decimal(number)
            except InvalidOperation:
                logger.debug(f"Failed to parse amount: {raw_text}")
                continue

            if value <= 0 or value >= AMOUNT_CEILING:
                continue

            if self._is_likely_false_positive(raw_text, text):
                continue

            results.append(ExtractedAmount(value=value, raw_text=raw_text))

        return results

    @staticmethod
    def _is_likely_false_positive(raw: str, context: str) -> bool:
        """Reject phone, account and reference numbers by line context."""
        lower = context.lower()

        if PHONE_CONTEXT.search(lower):
            return True

        if IDENTIFIER_CONTEXT.search(lower) and "$" not in raw:
            return True

        return False
