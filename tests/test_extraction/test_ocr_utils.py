"""
Unit tests for OCR utilities.
"""

from unittest.mock import patch

import fitz
import pytest
import pytesseract
from PIL import Image

from medbill_auditor.core.exceptions import InvalidImageError, RecognitionFailedError
from medbill_auditor.extraction.ocr_utils import (
    extract_words,
    preprocess_image_for_ocr,
    recognize_text,
    recognize_text_async,
    render_pdf_pages,
)


def _ocr_data(words: list[tuple]) -> dict:
    """Build an image_to_data style dict from (text, conf, left, top, line) tuples."""
    return {
        "text": [w[0] for w in words],
        "conf": [w[1] for w in words],
        "left": [w[2] for w in words],
        "top": [w[3] for w in words],
        "width": [40 for _ in words],
        "height": [12 for _ in words],
        "block_num": [1 for _ in words],
        "par_num": [1 for _ in words],
        "line_num": [w[4] for w in words],
    }


@pytest.fixture
def blank_image() -> Image.Image:
    return Image.new("RGB", (200, 100), "white")


@pytest.fixture
def scrambled_ocr_data() -> dict:
    """Two lines of words, out of reading order, plus a non-text element."""
    return _ocr_data([
        ("Total", 92, 10, 100, 2),
        ("", -1, 0, 0, 0),
        ("visit", 90, 80, 52, 1),
        ("Office", 95, 10, 50, 1),
        ("$150.00", 88, 200, 50, 1),
        ("noise", -1, 300, 50, 1),
    ])


class TestPreprocessImage:
    """Test cases for preprocess_image_for_ocr."""

    def test_converts_to_grayscale(self, blank_image: Image.Image):
        result = preprocess_image_for_ocr(blank_image)

        assert result.mode == "L"
        assert result.size == (200, 100)

    def test_downscales_large_images(self):
        image = Image.new("RGB", (4000, 1000), "white")

        result = preprocess_image_for_ocr(image, max_dimension=1000)

        assert max(result.size) <= 1000

    def test_rejects_non_image(self):
        with pytest.raises(InvalidImageError):
            preprocess_image_for_ocr(b"not an image")


class TestExtractWords:
    """Test cases for extract_words."""

    def test_skips_empty_and_negative_confidence(self, blank_image: Image.Image, scrambled_ocr_data: dict):
        with patch("pytesseract.image_to_data", return_value=scrambled_ocr_data):
            words = extract_words(blank_image)

        assert [w["text"] for w in words] == ["Total", "visit", "Office", "$150.00"]
        assert words[0]["bbox"] == [10, 100, 50, 112]
        assert words[0]["line_key"] == (1, 1, 2)

    def test_tesseract_missing(self, blank_image: Image.Image):
        with patch("pytesseract.image_to_data", side_effect=pytesseract.TesseractNotFoundError()):
            with pytest.raises(RecognitionFailedError):
                extract_words(blank_image)

    def test_rejects_non_image(self):
        with pytest.raises(InvalidImageError):
            extract_words("bill.jpg")


class TestRecognizeText:
    """Test cases for recognize_text."""

    def test_lines_in_reading_order(self, blank_image: Image.Image, scrambled_ocr_data: dict):
        with patch("pytesseract.image_to_data", return_value=scrambled_ocr_data):
            text = recognize_text(blank_image)

        assert text == "Office visit $150.00\nTotal"

    def test_no_words(self, blank_image: Image.Image):
        with patch("pytesseract.image_to_data", return_value=_ocr_data([])):
            assert recognize_text(blank_image) == ""

    @pytest.mark.asyncio
    async def test_async_matches_sync(self, blank_image: Image.Image, scrambled_ocr_data: dict):
        with patch("pytesseract.image_to_data", return_value=scrambled_ocr_data):
            text = await recognize_text_async(blank_image)

        assert text == "Office visit $150.00\nTotal"


class TestRenderPdfPages:
    """Test cases for render_pdf_pages."""

    def test_renders_each_page(self):
        document = fitz.open()
        document.new_page()
        document.new_page()
        pdf_bytes = document.tobytes()
        document.close()

        pages = render_pdf_pages(pdf_bytes, dpi=36)

        assert len(pages) == 2
        assert all(page.mode == "RGB" for page in pages)

    def test_invalid_pdf(self):
        with pytest.raises(InvalidImageError):
            render_pdf_pages(b"this is not a pdf")

    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidImageError):
            render_pdf_pages(tmp_path / "missing.pdf")
