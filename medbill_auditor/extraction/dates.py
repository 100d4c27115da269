"""
Date extraction helpers for OCR text lines.

Accepts M/D/YYYY, M/D/YY, M-D-YYYY and YYYY-MM-DD forms.
"""

import re
from datetime import date, datetime
from typing import Optional

# Search patterns, tried in order. The first one that yields a real date wins.
DATE_SEARCH_PATTERNS = [
    re.compile(r"[0-9]{1,2}/[0-9]{1,2}/[0-9]{2,4}"),
    re.compile(r"[0-9]{1,2}-[0-9]{1,2}-[0-9]{2,4}"),
    re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}"),
]

# Full-match shape -> strptime format
DATE_FORMATS = [
    (re.compile(r"[0-9]{1,2}/[0-9]{1,2}/[0-9]{4}"), "%m/%d/%Y"),
    (re.compile(r"[0-9]{1,2}/[0-9]{1,2}/[0-9]{2}"), "%m/%d/%y"),
    (re.compile(r"[0-9]{1,2}-[0-9]{1,2}-[0-9]{4}"), "%m-%d-%Y"),
    (re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}"), "%Y-%m-%d"),
]

# Any supported date inside a line, used when stripping descriptions.
# ISO comes first so "2024-01-15" is not read as "24-01-15".
DATE_STRIP_PATTERN = re.compile(
    r"[0-9]{4}-[0-9]{2}-[0-9]{2}"
    r"|[0-9]{1,2}/[0-9]{1,2}/[0-9]{2,4}\.?"
    r"|[0-9]{1,2}-[0-9]{1,2}-[0-9]{2,4}"
)
SHORT_SLASH_DATE_PATTERN = re.compile(r"[0-9]{1,2}/[0-9]{1,2}/[0-9]{2}")


def parse_date_string(value: str) -> Optional[date]:
    """
    Parse a single date token in one of the supported forms.

    Args:
        value: Candidate date text, e.g. "01/15/2024".

    Returns:
        The parsed date, or None if the token is not a valid date.
    """
    for shape, fmt in DATE_FORMATS:
        if shape.fullmatch(value):
            try:
                return datetime.strptime(value, fmt).date()
            except ValueError:
                return None
    return None


def extract_date(line: str) -> Optional[date]:
    """
    Find the first parseable date in a line of text.

    Args:
        line: A single OCR line.

    Returns:
        The first date found, or None.

    Example:
        >>> extract_date("DOS 03/14/2024 Office visit")
        datetime.date(2024, 3, 14)
    """
    for pattern in DATE_SEARCH_PATTERNS:
        match = pattern.search(line)
        if match:
            parsed = parse_date_string(match.group(0))
            if parsed is not None:
                return parsed
    return None


def contains_slash_date(line: str) -> bool:
    """Whether the line contains an M/D/YY style date."""
    return SHORT_SLASH_DATE_PATTERN.search(line) is not None
