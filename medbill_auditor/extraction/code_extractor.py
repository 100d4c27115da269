"""
Procedure code extraction from OCR text lines.

Finds CPT (5-digit numeric) and HCPCS Level II (letter + 4 digits)
codes, with optional two-character modifiers. Hospital itemizations
often print CPT codes with a leading zero (036415 -> 36415).
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CodeType(str, Enum):
    """Types of procedure codes."""

    CPT = "cpt"
    HCPCS = "hcpcs"


@dataclass(frozen=True)
class ExtractedCode:
    """A procedure code found in a line."""

    code: str
    type: CodeType
    modifier: Optional[str] = None


# Hospital format: 6 digits with a leading zero, optional -XX modifier
LEADING_ZERO_PATTERN = re.compile(r"\b0([0-9]{5})(?:-([A-Za-z0-9]{2}))?\b")

# Standard CPT: 5 digits, optional -XX modifier
CPT_PATTERN = re.compile(r"\b([0-9]{5})(?:-([A-Za-z0-9]{2}))?\b")

# HCPCS Level II: uppercase letter + 4 digits, optional -XX modifier
HCPCS_PATTERN = re.compile(r"\b([A-Z][0-9]{4})(?:-([A-Za-z0-9]{2}))?\b")

# Numeric CPT sections (inclusive)
CPT_RANGES = [
    (100, 1999),  # Anesthesia
    (10004, 69990),  # Surgery
    (70010, 79999),  # Radiology
    (80047, 89398),  # Pathology & Lab
    (90281, 99607),  # Medicine
    (99201, 99499),  # E&M
]

# Five-digit numbers that show up on bills but are not procedures
CPT_FALSE_POSITIVES = {
    "10001", "10002", "10003", "10010", "10011",  # NYC ZIPs
    "90210", "90211",  # Beverly Hills ZIPs
    "12345", "11111", "00000", "99999",  # Generic numbers
    "42066",  # Mayfield, KY ZIP
}

HCPCS_PREFIXES = set("ABCDEGHJKLMPQRSTV")


def is_valid_cpt(code: str) -> bool:
    """Validate that a 5-digit code falls within a known CPT range."""
    if len(code) != 5 or not code.isdigit():
        return False
    if code in CPT_FALSE_POSITIVES:
        return False
    number = int(code)
    return any(low <= number <= high for low, high in CPT_RANGES)


def is_valid_hcpcs(code: str) -> bool:
    """Validate a HCPCS Level II code by length and prefix letter."""
    return len(code) == 5 and code[0] in HCPCS_PREFIXES and code[1:].isdigit()


class CodeExtractor:
    """Extracts CPT and HCPCS codes from single lines of recognized text."""

    def extract(self, text: str) -> list[ExtractedCode]:
        """
        Extract all procedure codes from a line.

        Leading-zero hospital codes are searched first; plain 5-digit
        codes only when none were found, so the same digits are not
        matched twice. HCPCS codes are always searched.

        Args:
            text: A single line of OCR text.

        Returns:
            list[ExtractedCode]: Unique codes in first-seen order.

        Example:
            >>> CodeExtractor().extract("036415-59 Blood draw")
            [ExtractedCode(code='36415', type=<CodeType.CPT: 'cpt'>, modifier='59')]
        """
        codes = self._find_codes(text, LEADING_ZERO_PATTERN, CodeType.CPT, is_valid_cpt)

        if not codes:
            codes = self._find_codes(text, CPT_PATTERN, CodeType.CPT, is_valid_cpt)

        codes += self._find_codes(text, HCPCS_PATTERN, CodeType.HCPCS, is_valid_hcpcs)

        unique: list[ExtractedCode] = []
        for code in codes:
            if code not in unique:
                unique.append(code)
        return unique

    def contains_code(self, text: str) -> bool:
        """Check if a line contains any procedure code."""
        return bool(self.extract(text))

    @staticmethod
    def _find_codes(text: str, pattern: re.Pattern, code_type: CodeType, validator) -> list[ExtractedCode]:
        """Run one code pattern and keep the matches that validate."""
        results: list[ExtractedCode] = []
        for match in pattern.finditer(text):
            code = match.group(1)
            if not validator(code):
                continue
            results.append(ExtractedCode(code=code, type=code_type, modifier=match.group(2)))
        return results
