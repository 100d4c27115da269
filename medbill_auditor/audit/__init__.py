"""
Audit module for medical bill analysis.

Provides the audit engine and the checkers it runs: pricing against
Medicare rates, duplicate charges, unbundling, upcoding and balance
billing.
"""

from medbill_auditor.audit.audit_engine import (
    AuditEngine,
    audit_bill,
    calculate_risk_score,
    generate_summary,
    get_audit_summary,
)
from medbill_auditor.audit.balance_billing_checker import BalanceBillingChecker
from medbill_auditor.audit.duplicate_checker import DuplicateChecker
from medbill_auditor.audit.models import AuditFlag, AuditResult
from medbill_auditor.audit.price_checker import PriceChecker
from medbill_auditor.audit.unbundling_checker import UNBUNDLING_RULES, UnbundlingChecker, UnbundlingRule
from medbill_auditor.audit.upcoding_checker import UpcodingChecker

__all__ = [
    # Engine
    "AuditEngine",
    "audit_bill",
    "calculate_risk_score",
    "generate_summary",
    "get_audit_summary",
    # Results
    "AuditFlag",
    "AuditResult",
    # Checkers
    "BalanceBillingChecker",
    "DuplicateChecker",
    "PriceChecker",
    "UnbundlingChecker",
    "UnbundlingRule",
    "UNBUNDLING_RULES",
    "UpcodingChecker",
]
