"""
Bill parsing pipeline for recognized medical bill text.

Raw OCR text -> normalized lines -> sections -> line items + bill info.

The four stages run strictly in sequence; section boundaries depend on
running state, so each stage consumes the full output of the previous one.
The parser never raises: garbage in gives an empty, zero-valued bill out.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from rapidfuzz import fuzz

from medbill_auditor.core.metrics import track_parse
from medbill_auditor.extraction.charge_extractor import (
    ChargeExtractor,
    ExtractedAmount,
    normalize_dollar_misreads,
)
from medbill_auditor.extraction.code_extractor import CodeExtractor, CodeType, ExtractedCode
from medbill_auditor.extraction.dates import (
    DATE_STRIP_PATTERN,
    contains_slash_date,
    extract_date,
)
from medbill_auditor.models.enums import FacilityType

logger = logging.getLogger(__name__)

UNKNOWN_SERVICE = "Unknown Service"


@dataclass(frozen=True)
class ParsedLineItem:
    """A single charge assembled from one or more OCR lines."""

    description: str
    charged_amount: Decimal
    cpt_code: Optional[str] = None
    hcpcs_code: Optional[str] = None
    date_of_service: Optional[date] = None
    modifier: Optional[str] = None
    allowed_amount: Optional[Decimal] = None
    adjustment_amount: Optional[Decimal] = None
    paid_amount: Optional[Decimal] = None

    @property
    def procedure_code(self) -> Optional[str]:
        return self.cpt_code or self.hcpcs_code


@dataclass(frozen=True)
class ParsedBill:
    """Structured result of parsing one bill."""

    provider_name: Optional[str] = None
    facility_type: FacilityType = FacilityType.UNKNOWN
    patient_name: Optional[str] = None
    service_date: Optional[date] = None
    total_charged: Decimal = Decimal("0")
    line_items: tuple[ParsedLineItem, ...] = ()


class SectionType(str, Enum):
    """Logical regions of a bill."""

    HEADER = "header"
    CHARGES = "charges"
    INSURANCE = "insurance"
    PATIENT_RESPONSIBILITY = "patient_responsibility"
    TOTALS = "totals"


@dataclass
class BillSections:
    """Lines of a bill grouped by section."""

    header: list[str] = field(default_factory=list)
    charges: list[str] = field(default_factory=list)
    insurance: list[str] = field(default_factory=list)
    patient_responsibility: list[str] = field(default_factory=list)
    totals: list[str] = field(default_factory=list)

    def lines_for(self, section: SectionType) -> list[str]:
        return getattr(self, section.value)


@dataclass
class BillInfo:
    """Bill-level metadata collected from the header and totals."""

    provider_name: Optional[str] = None
    facility_type: FacilityType = FacilityType.UNKNOWN
    patient_name: Optional[str] = None
    service_date: Optional[date] = None
    total_charged: Decimal = Decimal("0")


# =============================================================================
# SECTION KEYWORDS
# =============================================================================

# Phrases that on their own start an itemized charge table
CHARGE_TABLE_TITLES = [
    "itemization of hospital services",
    "itemization of services",
    "inpatient services",
    "outpatient services",
    "hospital charges",
    "facility charges",
    "professional charges",
]

# Column words; two or more on one line make a charge table header.
# Longer phrases first so "date of service" is not also counted as "service".
CHARGE_HEADER_WORDS = [
    "date of service", "description", "service", "procedure",
    "cpt", "hcpcs", "hcps", "charges", "amount",
    "dos", "rev code", "svc dt",
]

COLUMN_HEADER_WORDS = [
    "svc dt", "rev code", "description", "amount", "qty", "ndc", "cpt /", "hcpcs", "code",
]

CATEGORY_KEYWORDS = [
    "GENERAL", "ROOM", "LABORATORY", "PHARMACY", "THERAPY",
    "THERAPEUTIC", "DIAGNOSTIC", "EXTENSION", "SERVICES",
    "EMERGENCY", "RADIOLOGY", "RESPIRATORY", "HEMATOLOGY",
    "CHEMISTRY", "SURGERY", "ANESTHESIA", "SUPPLY", "DRUG",
]

CATEGORY_CHARS = set("-/ (),")

# "0300 - LABORATORY"
REV_CODE_HEADER = re.compile(r"^0[0-9]{3}\s*-\s*[A-Z]")

INSURANCE_PATTERN = re.compile(r"\b(?:insurance|plan|coverage)\b")
PATIENT_RESPONSIBILITY_KEYWORDS = ("patient resp", "amount due", "balance due")
FOOTER_KEYWORDS = ("payments and adjustments", "please mail")

EXPLICIT_TOTAL_KEYWORDS = ("total charge", "grand total", "total amount")

# =============================================================================
# DESCRIPTION CLEANUP
# =============================================================================

HOSPITAL_CODE_PATTERN = re.compile(r"\b0[0-9]{5}\b")
REVENUE_CODE_PATTERN = re.compile(r"\b0[0-9]{3,4}\b")
NDC_PATTERN = re.compile(r"\b[0-9]{10,11}\b|\b[0-9]{4,5}-[0-9]{3,4}-[0-9]{1,2}\b")
QUANTITY_PATTERN = re.compile(r"\b[0-9]{1,2}\b")
NOISE_PREFIX_PATTERN = re.compile(r"^\s*T?HC\s+")
WHITESPACE_RUN = re.compile(r"\s{2,}")
DESCRIPTION_TRIM = " \t\n.-•:,|"

# =============================================================================
# HEADER HEURISTICS
# =============================================================================

HEADER_LABELS = (
    "creation date", "print date", "statement date", "billing date",
    "patient name", "patient number", "patient type", "medical record",
    "hospital number", "dates of service", "account", "itemization",
    "this is an", "statement", "invoice",
)

# Dates on these lines describe the statement, not the service
NON_SERVICE_DATE_LABELS = ("creation date", "print date", "statement date", "billing date", "due date")

ADDRESS_PATTERN = re.compile(
    r"\b(?:street|ave|avenue|blvd|boulevard|suite|ste|road|rd|drive|lane|hwy|highway)\b"
    r"|\bp\.?\s?o\.?\s+box\b"
    r"|^[0-9]{1,6}\s+[a-z]"
)
MONTH_PATTERN = re.compile(
    r"\b(?:january|february|march|april|may|june|july|august"
    r"|september|october|november|december)\b"
)
ZIP_PLUS_FOUR = re.compile(r"[0-9]{5}-[0-9]{4}")
FIVE_DIGITS = re.compile(r"\b[0-9]{5}\b")
CITY_STATE_ZIP = re.compile(r"\b[a-z]+,\s*[a-z]{2}\s+[0-9]{5}")
LAST_FIRST_NAME = re.compile(r"^[A-Z][a-zA-Z'\-]+,\s*[A-Z][a-zA-Z'\-]+(?:\s+[A-Z]\.?)?$")
PERSON_LABELS = ("patient", "guarantor", "member", "subscriber")

INLINE_PATIENT = re.compile(r"^\s*patient(?:\s+name)?\s*:\s*(.+)$", re.IGNORECASE)

SERVICE_DATE_KEYWORDS = re.compile(r"admit|service|\bdos\b")

# Facility keywords, checked per line in this order; later lines overwrite
FACILITY_KEYWORDS = [
    (re.compile(r"hospital|\bmed ctr\b|medical center|health"), FacilityType.HOSPITAL),
    (re.compile(r"urgent care"), FacilityType.URGENT_CARE),
    (re.compile(r"laboratory|\blab\b|\blabs\b"), FacilityType.LABORATORY),
    (re.compile(r"imaging|radiology"), FacilityType.IMAGING_CENTER),
    (re.compile(r"emergency|\ber\b"), FacilityType.EMERGENCY),
    (re.compile(r"ambulatory|surgery center|surgical center"), FacilityType.AMBULATORY),
    (re.compile(r"physician|clinic|family practice|associates"), FacilityType.PHYSICIAN_OFFICE),
]

PROVIDER_MIN_LENGTH = 3
PROVIDER_MAX_LENGTH = 80
PATIENT_NAME_MAX_LENGTH = 60
PATIENT_HEADER_SIMILARITY = 90


class BillParser:
    """
    Turns recognized bill text into a ParsedBill.

    Stateless: every call to ``parse`` works only on its argument, so the
    same text always yields the same result.
    """

    def __init__(self):
        self.code_extractor = CodeExtractor()
        self.charge_extractor = ChargeExtractor()

    def parse(self, raw_text: str) -> ParsedBill:
        """
        Parse raw OCR text into structured bill data.

        Args:
            raw_text: Newline-joined recognized lines, top to bottom.

        Returns:
            ParsedBill: Best-effort structured bill. Never raises for
                string input; empty input gives an empty bill.

        Example:
            >>> bill = BillParser().parse(ocr_text)
            >>> print(bill.provider_name, bill.total_charged, len(bill.line_items))
        """
        start_time = time.perf_counter()

        lines = self.preprocess_lines(raw_text or "")
        sections = self.identify_sections(lines)
        line_items = self.extract_line_items(sections)
        info = self.extract_bill_info(sections)

        bill = ParsedBill(
            provider_name=info.provider_name,
            facility_type=info.facility_type,
            patient_name=info.patient_name,
            service_date=info.service_date,
            total_charged=info.total_charged,
            line_items=tuple(line_items),
        )

        duration = time.perf_counter() - start_time
        track_parse(bill.facility_type.value, len(bill.line_items), duration)
        logger.info(
            f"Parsed bill: provider={bill.provider_name!r}, "
            f"facility={bill.facility_type.value}, items={len(bill.line_items)}, "
            f"total=${bill.total_charged}"
        )

        return bill

    # -------------------------------------------------------------------------
    # Step 1: Normalize
    # -------------------------------------------------------------------------

    def preprocess_lines(self, raw_text: str) -> list[str]:
        """Split into trimmed, non-empty, OCR-corrected lines."""
        lines = []
        for line in raw_text.splitlines():
            stripped = line.strip()
            if stripped:
                lines.append(self.normalize_text(stripped))
        return lines

    @staticmethod
    def normalize_text(text: str) -> str:
        """Fix common OCR misreads around dollar amounts."""
        result = normalize_dollar_misreads(text)
        result = result.replace("S$", "$")
        result = result.replace("$l", "$1").replace("$I", "$1").replace("$O", "$0")
        # "$ 45.00" -> "$45.00"
        result = re.sub(r"\$\s+([0-9])", r"$\1", result)
        return result

    # -------------------------------------------------------------------------
    # Step 2: Segment
    # -------------------------------------------------------------------------

    def identify_sections(self, lines: list[str]) -> BillSections:
        """
        Assign every normalized line to a bill section.

        Totals lines are filed directly; table headers, category dividers
        and footers are consumed. Everything else goes to the section
        that is currently open.
        """
        sections = BillSections()
        current = SectionType.HEADER
        pending_total_label: Optional[str] = None

        for line in lines:
            lower = line.lower()
            has_amount = self.charge_extractor.contains_amount(line)

            # Label on the previous line, amount on this one
            if pending_total_label is not None:
                label = pending_total_label
                pending_total_label = None
                if has_amount:
                    sections.totals.append(f"{label} {line}")
                    continue

            if self.is_subtotal_or_total(lower):
                if has_amount:
                    sections.totals.append(line)
                else:
                    pending_total_label = line
                continue

            if not has_amount and self.is_charge_header(lower):
                current = SectionType.CHARGES
                continue

            if self.is_rev_code_header(line) or self.is_category_header(line) or self.is_column_header(lower):
                if current == SectionType.CHARGES:
                    continue
            elif INSURANCE_PATTERN.search(lower):
                # Don't leave an open charge table on a stray "plan" mention
                if current != SectionType.CHARGES:
                    current = SectionType.INSURANCE
            elif any(keyword in lower for keyword in PATIENT_RESPONSIBILITY_KEYWORDS):
                current = SectionType.PATIENT_RESPONSIBILITY
            elif any(keyword in lower for keyword in FOOTER_KEYWORDS):
                if current == SectionType.CHARGES:
                    current = SectionType.HEADER
                continue

            sections.lines_for(current).append(line)

        return sections

    @staticmethod
    def is_subtotal_or_total(lower: str) -> bool:
        """Whether a lowercased line is a subtotal/total label."""
        if "subtotal" in lower or "amount due" in lower:
            return True
        if any(keyword in lower for keyword in EXPLICIT_TOTAL_KEYWORDS):
            return True
        # "total" alone, but not "comprehensive metabolic panel, total"
        return "total" in lower and "metabolic" not in lower

    @staticmethod
    def is_charge_header(lower: str) -> bool:
        """Whether a lowercased line opens the itemized charge table."""
        if any(title in lower for title in CHARGE_TABLE_TITLES):
            return True

        remaining = lower
        matches = 0
        for word in CHARGE_HEADER_WORDS:
            pattern = re.compile(rf"\b{re.escape(word)}\b")
            if pattern.search(remaining):
                matches += 1
                remaining = pattern.sub(" ", remaining)
        return matches >= 2

    @staticmethod
    def is_rev_code_header(line: str) -> bool:
        """Revenue code dividers like "0300 - LABORATORY"."""
        return REV_CODE_HEADER.search(line) is not None

    def is_category_header(self, line: str) -> bool:
        """All-caps category dividers like "EMERGENCY ROOM-GENERAL"."""
        trimmed = line.strip()
        if not 5 < len(trimmed) < 120:
            return False
        if self.charge_extractor.contains_amount(trimmed):
            return False
        if contains_slash_date(trimmed):
            return False

        caps = sum(1 for char in trimmed if char.isupper() or char in CATEGORY_CHARS)
        is_all_caps = caps >= len(trimmed) * 80 // 100

        return is_all_caps and any(keyword in trimmed for keyword in CATEGORY_KEYWORDS)

    @staticmethod
    def is_column_header(lower: str) -> bool:
        """Column header rows like "Svc Dt  Code  Description  Qty  Amount"."""
        return sum(1 for word in COLUMN_HEADER_WORDS if word in lower) >= 3

    # -------------------------------------------------------------------------
    # Step 3: Multi-line item assembly
    # -------------------------------------------------------------------------

    def extract_line_items(self, sections: BillSections) -> list[ParsedLineItem]:
        """
        Assemble line items from the charges section.

        Codes, dates and description fragments accumulate across lines;
        a line carrying a dollar amount closes the current item.
        """
        items: list[ParsedLineItem] = []

        current_codes: list[ExtractedCode] = []
        current_date: Optional[date] = None
        current_descriptions: list[str] = []

        for line in sections.charges:
            if self._is_noise_line(line):
                continue

            codes = self.code_extractor.extract(line)
            amounts = self.charge_extractor.extract_amounts(line)
            line_date = extract_date(line)

            current_codes.extend(codes)
            if line_date is not None:
                current_date = line_date

            if amounts:
                description_here = self.extract_description(line, codes, amounts)
                if description_here:
                    current_descriptions.append(description_here)

                items.append(self._build_line_item(
                    codes=current_codes,
                    service_date=current_date,
                    descriptions=current_descriptions,
                    amount=amounts[0],
                ))

                current_codes = []
                current_date = None
                current_descriptions = []
            elif not self._is_just_a_date(line) and not self._is_just_a_number(line):
                cleaned = self.extract_description(line, codes, [])
                if cleaned:
                    current_descriptions.append(cleaned)

        return items

    @staticmethod
    def _build_line_item(
        codes: list[ExtractedCode],
        service_date: Optional[date],
        descriptions: list[str],
        amount: ExtractedAmount,
    ) -> ParsedLineItem:
        """Close the accumulator into one ParsedLineItem."""
        # One code per item: the first code found decides CPT vs HCPCS
        primary = codes[0] if codes else None
        description = " ".join(part for part in descriptions if part).strip()

        return ParsedLineItem(
            cpt_code=primary.code if primary and primary.type == CodeType.CPT else None,
            hcpcs_code=primary.code if primary and primary.type == CodeType.HCPCS else None,
            description=description or UNKNOWN_SERVICE,
            charged_amount=amount.value,
            date_of_service=service_date,
            modifier=primary.modifier if primary else None,
        )

    def _is_noise_line(self, line: str) -> bool:
        """Page markers, disclaimers and stray punctuation inside the table."""
        lower = line.lower()

        if self.is_subtotal_or_total(lower):
            return True
        if self.is_category_header(line):
            return True
        if "page " in lower and any(char.isdigit() for char in line):
            return True
        if any(phrase in lower for phrase in ("prohibit", "insurance payment", "please mail", "please call")):
            return True
        return line in ("--", "•", ":") or len(line) <= 1

    @staticmethod
    def extract_description(
        line: str,
        codes: list[ExtractedCode],
        amounts: list[ExtractedAmount],
    ) -> str:
        """
        Strip codes, amounts, dates, quantities and noise from a line.

        Returns an empty string when nothing descriptive is left.
        """
        desc = line

        for code in codes:
            desc = desc.replace("0" + code.code, "")
            desc = desc.replace(code.code, "")

        for amount in amounts:
            desc = desc.replace(amount.raw_text, "")

        desc = DATE_STRIP_PATTERN.sub("", desc)
        desc = HOSPITAL_CODE_PATTERN.sub("", desc)
        desc = REVENUE_CODE_PATTERN.sub("", desc)
        desc = NDC_PATTERN.sub("", desc)
        desc = QUANTITY_PATTERN.sub("", desc)
        desc = desc.replace("$", "")
        desc = NOISE_PREFIX_PATTERN.sub("", desc)
        desc = WHITESPACE_RUN.sub(" ", desc)

        return desc.strip(DESCRIPTION_TRIM)

    @staticmethod
    def _is_just_a_date(line: str) -> bool:
        stripped = DATE_STRIP_PATTERN.sub("", line).strip()
        return len(stripped) <= 2

    @staticmethod
    def _is_just_a_number(line: str) -> bool:
        trimmed = line.strip()
        return len(trimmed) <= 3 and trimmed.isdigit()

    # -------------------------------------------------------------------------
    # Step 4: Bill metadata
    # -------------------------------------------------------------------------

    def extract_bill_info(self, sections: BillSections) -> BillInfo:
        """
        Collect provider, facility type, dates, patient and total.

        Provider name is first-match-wins; facility type is
        last-match-wins across all header lines.
        """
        info = BillInfo()
        header = sections.header

        info.patient_name = self._find_patient_name(header)

        service_date_from_keyword = False
        for line in header:
            lower = line.lower()

            if info.provider_name is None and self._looks_like_provider(line, info.patient_name):
                info.provider_name = line

            for pattern, facility_type in FACILITY_KEYWORDS:
                if pattern.search(lower):
                    info.facility_type = facility_type
                    break

            if any(label in lower for label in NON_SERVICE_DATE_LABELS):
                continue

            line_date = extract_date(line)
            if line_date is None:
                continue
            if SERVICE_DATE_KEYWORDS.search(lower):
                if not service_date_from_keyword:
                    info.service_date = line_date
                    service_date_from_keyword = True
            elif info.service_date is None:
                info.service_date = line_date

        info.total_charged = self._find_total(sections.totals)

        return info

    def _looks_like_provider(self, line: str, patient_name: Optional[str]) -> bool:
        """Whether a header line can be the provider name."""
        lower = line.lower()

        if any(label in lower for label in HEADER_LABELS):
            return False
        if not PROVIDER_MIN_LENGTH < len(line) < PROVIDER_MAX_LENGTH:
            return False
        if self.charge_extractor.contains_amount(line):
            return False

        digits = sum(1 for char in line if char.isdigit())
        letters = sum(1 for char in line if char.isalpha())

        if ADDRESS_PATTERN.search(lower):
            return False
        if digits >= 7 and "-" in line:  # phone
            return False
        if contains_slash_date(line) or extract_date(line) is not None:
            return False
        if digits > letters:
            return False
        if ZIP_PLUS_FOUR.search(line) or (FIVE_DIGITS.search(line) and "," in line):
            return False
        if CITY_STATE_ZIP.search(lower):
            return False
        if MONTH_PATTERN.search(lower):
            return False
        if any(label in lower for label in PERSON_LABELS):
            return False
        if patient_name and line.strip() == patient_name:
            return False
        if LAST_FIRST_NAME.match(line.strip()):
            return False

        return True

    @staticmethod
    def _find_patient_name(header: list[str]) -> Optional[str]:
        """Patient name from "Patient: X" or a value under a "Patient Name" label."""
        patient_name = None

        for index, line in enumerate(header):
            inline = INLINE_PATIENT.match(line)
            if inline:
                name = inline.group(1).strip()
                if name and len(name) < PATIENT_NAME_MAX_LENGTH:
                    patient_name = name
                continue

            label = line.lower().strip(" :")
            if fuzz.ratio(label, "patient name") >= PATIENT_HEADER_SIMILARITY and index + 1 < len(header):
                candidate = header[index + 1].strip()
                letter_count = sum(1 for char in candidate if char.isalpha() or char in " .")
                if (
                    letter_count > len(candidate) / 2
                    and 2 < len(candidate) < PATIENT_NAME_MAX_LENGTH
                ):
                    patient_name = candidate

        return patient_name

    def _find_total(self, totals: list[str]) -> Decimal:
        """
        Total charged from the totals section.

        An explicit grand total wins; otherwise subtotals are summed;
        otherwise the last amount of the last totals line is used.
        """
        running_total = Decimal("0")

        for line in totals:
            lower = line.lower()
            amounts = self.charge_extractor.extract_amounts(line)
            if not amounts:
                continue
            if any(keyword in lower for keyword in EXPLICIT_TOTAL_KEYWORDS):
                return amounts[-1].value
            if "subtotal" in lower:
                running_total += amounts[-1].value

        if running_total > 0:
            return running_total

        for line in reversed(totals):
            amounts = self.charge_extractor.extract_amounts(line)
            if amounts:
                return amounts[-1].value

        return Decimal("0")
