"""
Audit engine for detecting billing issues in medical bills.

Runs five independent checkers over a bill's line items in parallel,
then merges their flags in a fixed order and scores the result:

- Price: charges far above Medicare reference rates
- Duplicate: the same code billed twice on one date
- Unbundling: component codes billed beside their bundled code
- Upcoding: highest-level visit codes
- Balance billing: charges well above the insurer's allowed amount
"""

import asyncio
import logging
import time
from decimal import Decimal
from typing import Optional, Sequence

from medbill_auditor.audit.balance_billing_checker import BalanceBillingChecker
from medbill_auditor.audit.duplicate_checker import DuplicateChecker
from medbill_auditor.audit.models import AuditFlag, AuditResult
from medbill_auditor.audit.price_checker import PriceChecker
from medbill_auditor.audit.unbundling_checker import UnbundlingChecker
from medbill_auditor.audit.upcoding_checker import UpcodingChecker
from medbill_auditor.core.config import settings
from medbill_auditor.core.metrics import track_audit_result
from medbill_auditor.models.bill import LineItem, MedicalBill
from medbill_auditor.models.enums import BillStatus, FacilityType, FlagSeverity
from medbill_auditor.pricing.pricing_service import PricingService, format_currency

logger = logging.getLogger(__name__)

NO_ISSUES_SUMMARY = "No issues found. This bill appears to be within normal pricing ranges."

# Risk score thresholds for the closing recommendation
STRONG_DISPUTE_SCORE = 50
REVIEW_SCORE = 25

MAX_RISK_SCORE = 100


class AuditEngine:
    """
    Audits line items against pricing data and billing-fraud heuristics.

    Args:
        pricing_service: Evaluator used by the price checker.

    Example:
        >>> engine = AuditEngine(PricingService(fee_schedule))
        >>> result = await engine.audit(bill.line_items, bill.facility_type, bill.total_charged)
        >>> print(f"Score: {result.risk_score}, Flags: {len(result.flags)}")
    """

    def __init__(self, pricing_service: PricingService):
        # Merge order of the flags; execution order is unconstrained
        self.checkers = [
            PriceChecker(pricing_service),
            DuplicateChecker(),
            UnbundlingChecker(),
            UpcodingChecker(),
            BalanceBillingChecker(),
        ]

    async def audit(
        self,
        line_items: Sequence[LineItem],
        facility_type: FacilityType = FacilityType.UNKNOWN,
        total_charged: Decimal = Decimal("0"),
    ) -> AuditResult:
        """
        Audit a bill's line items.

        All checkers run concurrently on worker threads over the same
        snapshot of line items. If the awaiting task is cancelled, no
        result is produced and partial flags are discarded.

        Args:
            line_items: The bill's line items.
            facility_type: Care setting of the bill.
            total_charged: Bill total, used to weight the overcharge ratio.

        Returns:
            AuditResult: Flags in checker order, risk score and summary.
        """
        start_time = time.perf_counter()
        snapshot = tuple(line_items)

        logger.info(f"Starting audit: items={len(snapshot)}, facility={facility_type.value}")

        results = await asyncio.gather(*(
            asyncio.to_thread(checker.check, snapshot, facility_type)
            for checker in self.checkers
        ))

        flags: list[AuditFlag] = []
        for checker_flags in results:
            flags.extend(checker_flags)

        total_overcharge = sum(
            (flag.estimated_impact for flag in flags if flag.estimated_impact is not None),
            Decimal("0"),
        )
        risk_score = calculate_risk_score(flags, total_charged, total_overcharge)
        critical_count = sum(1 for flag in flags if flag.severity == FlagSeverity.CRITICAL)
        threshold = Decimal(str(settings.DISPUTE_OVERCHARGE_THRESHOLD))

        result = AuditResult(
            risk_score=risk_score,
            total_estimated_overcharge=total_overcharge,
            summary=generate_summary(flags, total_overcharge, risk_score),
            recommends_dispute=critical_count > 0 or total_overcharge > threshold,
            flags=tuple(flags),
        )

        duration = time.perf_counter() - start_time
        track_audit_result(risk_score, flags, duration, float(total_overcharge))
        logger.info(
            f"Audit complete: score={risk_score}, flags={len(flags)}, "
            f"critical={critical_count}, overcharge=${total_overcharge:.2f}"
        )

        return result

    def audit_bill(self, bill: MedicalBill) -> AuditResult:
        """
        Synchronously audit a bill and attach the result to it.

        Replaces any previous audit result and marks the bill audited.
        Must not be called from inside a running event loop; use
        ``audit`` there instead.
        """
        result = asyncio.run(self.audit(bill.line_items, bill.facility_type, bill.total_charged))
        bill.audit_result = result
        bill.status = BillStatus.AUDITED
        return result


def calculate_risk_score(
    flags: Sequence[AuditFlag],
    total_charged: Decimal,
    total_overcharge: Decimal,
) -> int:
    """
    Calculate the bill risk score (0-100).

    Each flag adds its severity weight; the share of the bill that is
    estimated overcharge adds up to ``OVERCHARGE_RATIO_WEIGHT`` more.

    Args:
        flags: All flags raised for the bill.
        total_charged: Bill total.
        total_overcharge: Sum of flag impacts.

    Returns:
        int: Score from 0 (no concerns) to 100 (dispute strongly advised).
    """
    weights = settings.SEVERITY_WEIGHTS
    score = sum(weights.get(flag.severity.value, 0) for flag in flags)

    if total_charged > 0:
        ratio = total_overcharge / total_charged
        score += int(ratio * settings.OVERCHARGE_RATIO_WEIGHT)

    return max(0, min(score, MAX_RISK_SCORE))


def generate_summary(
    flags: Sequence[AuditFlag],
    total_overcharge: Decimal,
    risk_score: int,
) -> str:
    """
    Generate a human-readable summary of audit results.

    Args:
        flags: All flags raised for the bill.
        total_overcharge: Sum of flag impacts.
        risk_score: Score from ``calculate_risk_score``.

    Returns:
        str: One paragraph of plain sentences.
    """
    if not flags:
        return NO_ISSUES_SUMMARY

    critical_count = sum(1 for flag in flags if flag.severity == FlagSeverity.CRITICAL)

    parts = [f"Found {len(flags)} potential issue(s)."]
    if critical_count > 0:
        parts.append(f"{critical_count} critical issue(s) require immediate attention.")
    if total_overcharge > 0:
        parts.append(f"Estimated potential overcharge: {format_currency(total_overcharge)}.")

    if risk_score >= STRONG_DISPUTE_SCORE:
        parts.append("We strongly recommend disputing this bill.")
    elif risk_score >= REVIEW_SCORE:
        parts.append("Consider reviewing flagged items with your provider.")

    return " ".join(parts)


def audit_bill(
    bill: MedicalBill,
    pricing_service: PricingService,
) -> AuditResult:
    """Audit a bill with a one-off engine. See ``AuditEngine.audit_bill``."""
    return AuditEngine(pricing_service).audit_bill(bill)


def get_audit_summary(result: AuditResult, bill: Optional[MedicalBill] = None) -> str:
    """
    Generate a multi-line plain-text report of an audit result.

    Args:
        result: Audit result to describe.
        bill: The audited bill, used to name affected line items.

    Returns:
        str: Formatted report.
    """
    lines = [
        f"Risk Score: {result.risk_score}/100",
        f"Total Flags: {len(result.flags)}",
        f"Estimated Overcharge: {format_currency(result.total_estimated_overcharge)}",
        f"Dispute Recommended: {'yes' if result.recommends_dispute else 'no'}",
    ]

    for severity, flags in result.flags_by_severity().items():
        lines.append("")
        lines.append(f"{severity.value.upper()} ({len(flags)}):")
        for flag in flags:
            item = bill.line_item(flag.affected_line_item_id) if bill else None
            target = f" [{item.description}]" if item else ""
            lines.append(f"  {flag.title}{target}: {flag.explanation}")

    return "\n".join(lines)
