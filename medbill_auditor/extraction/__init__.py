"""
Text extraction: OCR collaborators and the bill parsing pipeline.
"""

from medbill_auditor.extraction.bill_parser import BillParser, ParsedBill, ParsedLineItem
from medbill_auditor.extraction.charge_extractor import ChargeExtractor, ClassifiedCharges, ExtractedAmount
from medbill_auditor.extraction.code_extractor import CodeExtractor, CodeType, ExtractedCode

__all__ = [
    "BillParser",
    "ChargeExtractor",
    "ClassifiedCharges",
    "CodeExtractor",
    "CodeType",
    "ExtractedAmount",
    "ExtractedCode",
    "ParsedBill",
    "ParsedLineItem",
]
