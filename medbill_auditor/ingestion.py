"""
Capture-to-bill ingestion pipeline.

image -> preprocess -> recognize text -> parse -> MedicalBill

Each coded line item is annotated with its Medicare rate and fair market
(typical commercial) price here, so audits only read the annotation.
Recognition errors propagate unchanged; the caller asks for a recapture.
"""

import logging
import time
from pathlib import Path
from typing import Optional, Union

from PIL import Image

from medbill_auditor.core.exceptions import InvalidImageError, RecognitionError
from medbill_auditor.core.metrics import track_ocr_duration, track_recognition_failure
from medbill_auditor.extraction.bill_parser import BillParser, ParsedBill
from medbill_auditor.extraction.ocr_utils import (
    preprocess_image_for_ocr,
    recognize_text,
    recognize_text_async,
    render_pdf_pages,
)
from medbill_auditor.models.bill import LineItem, MedicalBill
from medbill_auditor.models.enums import BillSource, BillStatus
from medbill_auditor.pricing.pricing_service import PricingService

logger = logging.getLogger(__name__)

UNKNOWN_PROVIDER = "Unknown Provider"


class BillIngestionPipeline:
    """
    Turns captured images, PDFs or raw text into MedicalBill objects.

    Args:
        pricing_service: Evaluator used to annotate line items.
        parser: Bill parser. A new BillParser by default.

    Example:
        >>> pipeline = BillIngestionPipeline(PricingService(fee_schedule))
        >>> bill = pipeline.ingest_image(Image.open("bill.jpg"))
        >>> print(bill.provider_name, len(bill.line_items))
    """

    def __init__(self, pricing_service: PricingService, parser: Optional[BillParser] = None):
        self.pricing_service = pricing_service
        self.parser = parser or BillParser()

    def ingest_image(self, image: Image.Image, source_type: BillSource = BillSource.CAMERA) -> MedicalBill:
        """
        Recognize and parse a photographed bill.

        Raises:
            RecognitionError: If the image is invalid or OCR fails.
        """
        text = self._recognize(image)
        return self.ingest_text(text, source_type=source_type)

    async def ingest_image_async(
        self,
        image: Image.Image,
        source_type: BillSource = BillSource.CAMERA,
    ) -> MedicalBill:
        """Like ``ingest_image`` but recognition runs off the event loop."""
        try:
            cleaned = preprocess_image_for_ocr(image)
            text = await recognize_text_async(cleaned)
        except RecognitionError as e:
            track_recognition_failure(type(e).__name__)
            raise
        return self.ingest_text(text, source_type=source_type)

    def ingest_pdf(self, source: Union[str, Path, bytes]) -> MedicalBill:
        """
        Recognize every page of an imported PDF and parse them as one bill.

        Raises:
            RecognitionError: If the PDF cannot be opened or a page fails OCR.
        """
        pages = render_pdf_pages(source)
        if not pages:
            raise InvalidImageError("PDF has no pages.")

        texts = [self._recognize(page) for page in pages]
        logger.info(f"Recognized {len(pages)} PDF pages")
        return self.ingest_text("\n".join(texts), source_type=BillSource.PDF_IMPORT)

    def ingest_text(self, text: str, source_type: BillSource = BillSource.MANUAL) -> MedicalBill:
        """Parse already-recognized text into a bill."""
        parsed = self.parser.parse(text)
        bill = self.build_bill(parsed, source_type)
        bill.raw_ocr_text = text
        return bill

    def build_bill(self, parsed: ParsedBill, source_type: BillSource) -> MedicalBill:
        """
        Convert a ParsedBill into a MedicalBill with priced line items.

        Args:
            parsed: Parser output.
            source_type: How the bill was captured.

        Returns:
            MedicalBill: Bill in ``parsed`` status.
        """
        bill = MedicalBill(
            provider_name=parsed.provider_name or UNKNOWN_PROVIDER,
            facility_type=parsed.facility_type,
            total_charged=parsed.total_charged,
            source_type=source_type,
            status=BillStatus.PARSED,
            service_date=parsed.service_date,
        )

        for parsed_item in parsed.line_items:
            item = LineItem(
                description=parsed_item.description,
                charged_amount=parsed_item.charged_amount,
                quantity=1,
                cpt_code=parsed_item.cpt_code,
                hcpcs_code=parsed_item.hcpcs_code,
                allowed_amount=parsed_item.allowed_amount,
                paid_amount=parsed_item.paid_amount,
                adjustment_amount=parsed_item.adjustment_amount,
                date_of_service=parsed_item.date_of_service,
                modifier=parsed_item.modifier,
            )

            code = item.primary_code
            if code:
                evaluation = self.pricing_service.evaluate(
                    item.charged_amount, code, parsed.facility_type
                )
                item.medicare_rate = evaluation.medicare_rate
                item.fair_market_price = evaluation.typical_rate

            bill.line_items.append(item)

        logger.info(
            f"Ingested bill: provider={bill.provider_name!r}, "
            f"items={len(bill.line_items)}, source={source_type.value}"
        )
        return bill

    @staticmethod
    def _recognize(image: Image.Image) -> str:
        start_time = time.perf_counter()
        try:
            cleaned = preprocess_image_for_ocr(image)
            text = recognize_text(cleaned)
        except RecognitionError as e:
            track_recognition_failure(type(e).__name__)
            raise
        track_ocr_duration(time.perf_counter() - start_time)
        return text
