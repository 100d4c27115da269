"""
Medical bill auditor.

Parses OCR text from itemized medical bills, compares charges against
Medicare reference pricing and flags common billing problems.
"""

__version__ = "1.0.0"
