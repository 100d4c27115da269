"""
Unit tests for date extraction helpers.
"""

from datetime import date

import pytest

from medbill_auditor.extraction.dates import contains_slash_date, extract_date, parse_date_string


class TestParseDateString:
    """Test cases for parse_date_string."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("01/15/2024", date(2024, 1, 15)),
            ("1/5/2024", date(2024, 1, 5)),
            ("01/15/24", date(2024, 1, 15)),
            ("3-14-2024", date(2024, 3, 14)),
            ("2024-02-14", date(2024, 2, 14)),
        ],
    )
    def test_supported_forms(self, value: str, expected: date):
        assert parse_date_string(value) == expected

    def test_impossible_date(self):
        assert parse_date_string("02/30/2024") is None

    def test_unsupported_shape(self):
        assert parse_date_string("Feb 14 2024") is None


class TestExtractDate:
    """Test cases for extract_date."""

    def test_date_inside_line(self):
        assert extract_date("DOS 03/14/2024 Office visit") == date(2024, 3, 14)

    def test_iso_date(self):
        """Test that an ISO date is found even though its tail looks like M-D-YY."""
        assert extract_date("Printed 2024-02-14") == date(2024, 2, 14)

    def test_invalid_slash_date(self):
        assert extract_date("Ref 13/45/2024") is None

    def test_no_date(self):
        assert extract_date("Office visit $150.00") is None


class TestContainsSlashDate:
    """Test cases for contains_slash_date."""

    def test_short_date(self):
        assert contains_slash_date("on 1/2/24")

    def test_no_slash_date(self):
        assert not contains_slash_date("2024-02-14")
