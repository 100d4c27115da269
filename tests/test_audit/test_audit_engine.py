"""
Unit tests for the audit engine.
"""

import asyncio
import time
from decimal import Decimal

import pytest

from medbill_auditor.audit.audit_engine import (
    NO_ISSUES_SUMMARY,
    AuditEngine,
    audit_bill,
    calculate_risk_score,
    generate_summary,
    get_audit_summary,
)
from medbill_auditor.audit.models import AuditFlag, AuditResult
from medbill_auditor.models.bill import MedicalBill
from medbill_auditor.models.enums import BillStatus, FacilityType, FlagSeverity, FlagType
from medbill_auditor.pricing.pricing_service import PricingService

CHECKER_ORDER = [
    FlagType.PRICE_OUTLIER,
    FlagType.DUPLICATE_CHARGE,
    FlagType.UNBUNDLING,
    FlagType.UPCODING,
    FlagType.BALANCE_BILLING,
]


def _flag(severity: FlagSeverity, impact: str = None, flag_type: FlagType = FlagType.OTHER) -> AuditFlag:
    return AuditFlag(
        flag_type=flag_type,
        severity=severity,
        title=f"{severity.value} flag",
        explanation="Explanation",
        recommendation="Recommendation",
        estimated_impact=Decimal(impact) if impact is not None else None,
    )


class DelayedChecker:
    """Checker stub that sleeps before returning fixed flags."""

    def __init__(self, delay: float, flags: list[AuditFlag]):
        self.delay = delay
        self.flags = flags

    def check(self, line_items, facility_type=FacilityType.UNKNOWN):
        time.sleep(self.delay)
        return list(self.flags)


@pytest.fixture
def engine(pricing_service: PricingService) -> AuditEngine:
    return AuditEngine(pricing_service)


@pytest.fixture
def problem_bill(make_item) -> MedicalBill:
    """A bill that trips every checker."""
    items = [
        make_item("99213", "500.00", description="Office visit"),
        make_item("85025", "20.00", description="CBC"),
        make_item("85025", "20.00", description="CBC"),
        make_item("85027", "15.00", description="CBC no diff"),
        make_item("99215", "300.00", description="Office visit, high complexity"),
        make_item("96374", "200.00", description="IV push", allowed_amount=Decimal("80.00")),
    ]
    return MedicalBill(
        provider_name="Springfield General Hospital",
        facility_type=FacilityType.PHYSICIAN_OFFICE,
        total_charged=sum((item.charged_amount for item in items), Decimal("0")),
        status=BillStatus.PARSED,
        line_items=items,
    )


class TestAudit:
    """Test cases for AuditEngine.audit."""

    @pytest.mark.asyncio
    async def test_clean_bill(self, engine: AuditEngine, clean_bill: MedicalBill):
        result = await engine.audit(clean_bill.line_items, clean_bill.facility_type, clean_bill.total_charged)

        assert result.flags == ()
        assert result.risk_score == 0
        assert result.total_estimated_overcharge == Decimal("0")
        assert result.summary == NO_ISSUES_SUMMARY
        assert not result.recommends_dispute

    @pytest.mark.asyncio
    async def test_empty_bill(self, engine: AuditEngine):
        result = await engine.audit([])

        assert result.risk_score == 0
        assert result.summary == NO_ISSUES_SUMMARY

    @pytest.mark.asyncio
    async def test_single_critical_flag_recommends_dispute(
        self, engine: AuditEngine, clean_bill: MedicalBill, make_item
    ):
        """Test that one duplicate is enough to recommend a dispute."""
        clean_bill.line_items.append(make_item("85025", "20.00", description="CBC"))

        result = await engine.audit(clean_bill.line_items, clean_bill.facility_type, Decimal("190.00"))

        assert len(result.flags) == 1
        assert result.flags[0].severity == FlagSeverity.CRITICAL
        assert result.total_estimated_overcharge == Decimal("20.00")
        assert result.recommends_dispute
        # 25 for the critical flag + int(20 / 190 * 30)
        assert result.risk_score == 28
        assert result.summary == (
            "Found 1 potential issue(s). 1 critical issue(s) require immediate attention. "
            "Estimated potential overcharge: $20.00. Consider reviewing flagged items with your provider."
        )

    @pytest.mark.asyncio
    async def test_overcharge_above_threshold_recommends_dispute(self, engine: AuditEngine, make_item):
        """Test that a warning with a large impact recommends a dispute."""
        result = await engine.audit([make_item("99213", "320.00")], FacilityType.PHYSICIAN_OFFICE, Decimal("320.00"))

        assert result.critical_count == 0
        assert result.total_estimated_overcharge == Decimal("70.00")
        assert result.recommends_dispute

    @pytest.mark.asyncio
    async def test_flags_follow_checker_order(self, engine: AuditEngine, problem_bill: MedicalBill):
        result = await engine.audit(problem_bill.line_items, problem_bill.facility_type, problem_bill.total_charged)
        flag_types = [flag.flag_type for flag in result.flags]

        assert set(flag_types) == set(CHECKER_ORDER)
        assert flag_types == sorted(flag_types, key=CHECKER_ORDER.index)

    @pytest.mark.asyncio
    async def test_total_is_sum_of_impacts(self, engine: AuditEngine, problem_bill: MedicalBill):
        result = await engine.audit(problem_bill.line_items, problem_bill.facility_type, problem_bill.total_charged)

        expected = sum(
            (flag.estimated_impact for flag in result.flags if flag.estimated_impact is not None),
            Decimal("0"),
        )
        assert result.total_estimated_overcharge == expected
        assert 0 <= result.risk_score <= 100

    @pytest.mark.asyncio
    async def test_order_independent_of_completion(self, engine: AuditEngine, make_item):
        """Test that a slow first checker still contributes the first flags."""
        slow = _flag(FlagSeverity.WARNING, "10.00")
        fast = _flag(FlagSeverity.INFO)
        engine.checkers = [DelayedChecker(0.2, [slow]), DelayedChecker(0.0, [fast])]

        result = await engine.audit([make_item("99213")])

        assert result.flags == (slow, fast)

    @pytest.mark.asyncio
    async def test_cancel_discards_partial_flags(self, engine: AuditEngine, make_item):
        """Test that cancelling an audit in flight raises and yields no result."""
        engine.checkers = [DelayedChecker(0.3, [_flag(FlagSeverity.CRITICAL, "5.00")]) for _ in range(5)]

        task = asyncio.create_task(engine.audit([make_item("99213")]))
        await asyncio.sleep(0.05)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()


class TestAuditBill:
    """Test cases for the synchronous wrappers."""

    def test_attaches_result(self, engine: AuditEngine, problem_bill: MedicalBill):
        result = engine.audit_bill(problem_bill)

        assert problem_bill.audit_result is result
        assert problem_bill.status == BillStatus.AUDITED

    def test_module_level_audit_bill(self, pricing_service: PricingService, clean_bill: MedicalBill):
        result = audit_bill(clean_bill, pricing_service)

        assert clean_bill.audit_result is result
        assert result.risk_score == 0

    def test_reaudit_replaces_result(self, engine: AuditEngine, clean_bill: MedicalBill):
        first = engine.audit_bill(clean_bill)
        second = engine.audit_bill(clean_bill)

        assert clean_bill.audit_result is second
        assert second.id != first.id


class TestRiskScore:
    """Test cases for calculate_risk_score."""

    def test_severity_weights(self):
        flags = [_flag(FlagSeverity.CRITICAL), _flag(FlagSeverity.WARNING), _flag(FlagSeverity.INFO)]

        assert calculate_risk_score(flags, Decimal("0"), Decimal("0")) == 38

    def test_overcharge_ratio(self):
        assert calculate_risk_score([], Decimal("100.00"), Decimal("50.00")) == 15

    def test_clamped_to_100(self):
        flags = [_flag(FlagSeverity.CRITICAL) for _ in range(5)]

        assert calculate_risk_score(flags, Decimal("100.00"), Decimal("100.00")) == 100

    def test_zero_total_ignores_ratio(self):
        assert calculate_risk_score([], Decimal("0"), Decimal("500.00")) == 0


class TestSummaries:
    """Test cases for summary text."""

    def test_no_flags(self):
        assert generate_summary([], Decimal("0"), 0) == NO_ISSUES_SUMMARY

    def test_strong_recommendation(self):
        flags = [_flag(FlagSeverity.CRITICAL, "300.00"), _flag(FlagSeverity.CRITICAL, "100.00")]

        summary = generate_summary(flags, Decimal("400.00"), 60)

        assert summary.startswith("Found 2 potential issue(s). 2 critical issue(s)")
        assert "$400.00" in summary
        assert summary.endswith("We strongly recommend disputing this bill.")

    def test_low_score_has_no_recommendation(self):
        summary = generate_summary([_flag(FlagSeverity.INFO)], Decimal("0"), 3)

        assert summary == "Found 1 potential issue(s)."

    def test_report_names_line_items(self, engine: AuditEngine, problem_bill: MedicalBill):
        result = engine.audit_bill(problem_bill)

        report = get_audit_summary(result, problem_bill)

        assert report.startswith(f"Risk Score: {result.risk_score}/100")
        assert "CRITICAL (" in report
        assert "[Office visit]" in report


class TestAuditResult:
    """Test cases for AuditResult helpers."""

    def test_flags_by_severity(self):
        info, critical, warning = (
            _flag(FlagSeverity.INFO), _flag(FlagSeverity.CRITICAL), _flag(FlagSeverity.WARNING)
        )
        result = AuditResult(
            risk_score=38,
            total_estimated_overcharge=Decimal("0"),
            summary="",
            recommends_dispute=True,
            flags=(info, critical, warning),
        )

        grouped = result.flags_by_severity()

        assert list(grouped) == [FlagSeverity.CRITICAL, FlagSeverity.WARNING, FlagSeverity.INFO]
        assert result.critical_count == 1

    def test_empty_groups_omitted(self):
        result = AuditResult(
            risk_score=3,
            total_estimated_overcharge=Decimal("0"),
            summary="",
            recommends_dispute=False,
            flags=(_flag(FlagSeverity.INFO),),
        )

        assert list(result.flags_by_severity()) == [FlagSeverity.INFO]
