"""
Unit tests for the capture-to-bill ingestion pipeline.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from PIL import Image

from medbill_auditor.core.exceptions import InvalidImageError, RecognitionFailedError
from medbill_auditor.ingestion import UNKNOWN_PROVIDER, BillIngestionPipeline
from medbill_auditor.models.enums import BillSource, BillStatus, FacilityType
from medbill_auditor.pricing.pricing_service import PricingService

CLINIC_BILL_TEXT = """Lakeside Family Clinic
Date of Service: 02/14/2024
Description Amount
99213 Office visit $500.00
85025 CBC $45.00
A9999 Unknown supply $12.00
Total Charges: $557.00"""


@pytest.fixture
def pipeline(pricing_service: PricingService) -> BillIngestionPipeline:
    return BillIngestionPipeline(pricing_service)


@pytest.fixture
def photo() -> Image.Image:
    return Image.new("RGB", (300, 400), "white")


class TestIngestText:
    """Test cases for ingest_text and build_bill."""

    def test_builds_parsed_bill(self, pipeline: BillIngestionPipeline):
        bill = pipeline.ingest_text(CLINIC_BILL_TEXT)

        assert bill.provider_name == "Lakeside Family Clinic"
        assert bill.facility_type == FacilityType.PHYSICIAN_OFFICE
        assert bill.status == BillStatus.PARSED
        assert bill.source_type == BillSource.MANUAL
        assert bill.total_charged == Decimal("557.00")
        assert bill.raw_ocr_text == CLINIC_BILL_TEXT
        assert len(bill.line_items) == 3

    def test_line_items_are_priced(self, pipeline: BillIngestionPipeline):
        """Test that coded items get Medicare and fair market prices."""
        bill = pipeline.ingest_text(CLINIC_BILL_TEXT)
        visit, cbc, _ = bill.line_items

        assert visit.medicare_rate == Decimal("100.00")
        assert visit.fair_market_price == Decimal("250.00")
        assert visit.potential_overcharge == Decimal("250.00")
        assert cbc.medicare_rate == Decimal("10.00")
        assert cbc.fair_market_price == Decimal("25.00")

    def test_unknown_code_left_unpriced(self, pipeline: BillIngestionPipeline):
        supply = pipeline.ingest_text(CLINIC_BILL_TEXT).line_items[2]

        assert supply.hcpcs_code == "A9999"
        assert supply.medicare_rate is None
        assert supply.fair_market_price is None

    def test_unknown_provider(self, pipeline: BillIngestionPipeline):
        bill = pipeline.ingest_text("")

        assert bill.provider_name == UNKNOWN_PROVIDER
        assert bill.line_items == []
        assert bill.total_charged == Decimal("0")


class TestIngestImage:
    """Test cases for image and PDF ingestion."""

    def test_ingest_image(self, pipeline: BillIngestionPipeline, photo: Image.Image):
        with patch("medbill_auditor.ingestion.recognize_text", return_value=CLINIC_BILL_TEXT):
            bill = pipeline.ingest_image(photo)

        assert bill.source_type == BillSource.CAMERA
        assert len(bill.line_items) == 3

    def test_recognition_failure_propagates(self, pipeline: BillIngestionPipeline, photo: Image.Image):
        """Test that OCR errors reach the caller and are counted."""
        with patch(
            "medbill_auditor.ingestion.recognize_text",
            side_effect=RecognitionFailedError("tesseract is not installed"),
        ), patch("medbill_auditor.ingestion.track_recognition_failure") as mock_track:
            with pytest.raises(RecognitionFailedError):
                pipeline.ingest_image(photo)

        mock_track.assert_called_once_with("RecognitionFailedError")

    def test_invalid_image(self, pipeline: BillIngestionPipeline):
        with pytest.raises(InvalidImageError):
            pipeline.ingest_image("bill.jpg")

    @pytest.mark.asyncio
    async def test_ingest_image_async(self, pipeline: BillIngestionPipeline, photo: Image.Image):
        with patch(
            "medbill_auditor.ingestion.recognize_text_async",
            new=AsyncMock(return_value=CLINIC_BILL_TEXT),
        ):
            bill = await pipeline.ingest_image_async(photo)

        assert bill.provider_name == "Lakeside Family Clinic"

    def test_ingest_pdf_joins_pages(self, pipeline: BillIngestionPipeline, photo: Image.Image):
        first_page, second_page = CLINIC_BILL_TEXT.rsplit("\n", 1)

        with patch("medbill_auditor.ingestion.render_pdf_pages", return_value=[photo, photo]), patch(
            "medbill_auditor.ingestion.recognize_text", side_effect=[first_page, second_page]
        ):
            bill = pipeline.ingest_pdf(b"%PDF")

        assert bill.source_type == BillSource.PDF_IMPORT
        assert bill.total_charged == Decimal("557.00")
        assert bill.raw_ocr_text == CLINIC_BILL_TEXT

    def test_empty_pdf(self, pipeline: BillIngestionPipeline):
        with patch("medbill_auditor.ingestion.render_pdf_pages", return_value=[]):
            with pytest.raises(InvalidImageError):
                pipeline.ingest_pdf(b"%PDF")
