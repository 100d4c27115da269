"""
Shared fixtures: a small in-memory fee schedule and synthetic bills.
"""

from datetime import date
from decimal import Decimal

import pytest

from medbill_auditor.models.bill import LineItem, MedicalBill
from medbill_auditor.models.enums import BillStatus, FacilityType
from medbill_auditor.pricing.fee_schedule import FeeSchedule, FeeScheduleEntry
from medbill_auditor.pricing.pricing_service import PricingService


@pytest.fixture
def fee_schedule() -> FeeSchedule:
    """Fee schedule with round reference rates."""
    return FeeSchedule.from_entries([
        FeeScheduleEntry(
            cpt_code="99213",
            description="Office visit, established patient, low complexity",
            facility_rate=Decimal("80.00"),
            non_facility_rate=Decimal("100.00"),
            work_rvu=Decimal("1.30"),
            total_rvu=Decimal("2.72"),
        ),
        FeeScheduleEntry(
            cpt_code="99214",
            description="Office visit, established patient, moderate complexity",
            facility_rate=Decimal("100.00"),
            non_facility_rate=Decimal("130.00"),
        ),
        FeeScheduleEntry(
            cpt_code="85025",
            description="Complete blood count with differential",
            facility_rate=Decimal("10.00"),
            non_facility_rate=Decimal("10.00"),
        ),
        FeeScheduleEntry(
            cpt_code="96374",
            description="IV push, single drug",
            facility_rate=None,
            non_facility_rate=Decimal("60.00"),
        ),
        FeeScheduleEntry(
            cpt_code="00000",
            description="Zero rate placeholder",
            facility_rate=Decimal("0"),
            non_facility_rate=Decimal("0"),
        ),
    ])


@pytest.fixture
def pricing_service(fee_schedule: FeeSchedule) -> PricingService:
    """Pricing service over the small fee schedule."""
    return PricingService(fee_schedule)


@pytest.fixture
def service_date() -> date:
    return date(2024, 2, 14)


@pytest.fixture
def make_item(service_date: date):
    """Factory for line items on the default service date."""

    def _make(code: str = None, amount: str = "100.00", **kwargs) -> LineItem:
        kwargs.setdefault("date_of_service", service_date)
        kwargs.setdefault("description", f"Service {code or 'uncoded'}")
        if code and code[0].isalpha():
            kwargs.setdefault("hcpcs_code", code)
        else:
            kwargs.setdefault("cpt_code", code)
        return LineItem(charged_amount=Decimal(amount), **kwargs)

    return _make


@pytest.fixture
def clean_bill(make_item) -> MedicalBill:
    """A bill priced within normal ranges."""
    return MedicalBill(
        provider_name="Springfield Family Practice",
        facility_type=FacilityType.PHYSICIAN_OFFICE,
        total_charged=Decimal("170.00"),
        status=BillStatus.PARSED,
        line_items=[
            make_item("99213", "150.00", description="Office visit"),
            make_item("85025", "20.00", description="CBC"),
        ],
    )
