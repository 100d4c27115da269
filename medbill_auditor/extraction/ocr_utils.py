"""
OCR utilities for extracting text from bill images.

Provides image cleanup before recognition and line-ordered text
extraction using Tesseract OCR via pytesseract. PDF imports are
rendered page by page with PyMuPDF.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, TypedDict, Union

import fitz  # PyMuPDF
import pytesseract
from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from medbill_auditor.core.config import settings
from medbill_auditor.core.exceptions import InvalidImageError, RecognitionFailedError

logger = logging.getLogger(__name__)

# Rendering resolution for PDF pages
PDF_RENDER_DPI = 200


class WordInfo(TypedDict):
    """Type definition for a recognized word."""

    text: str
    bbox: list[int]  # [x1, y1, x2, y2]
    conf: float
    line_key: tuple[int, int, int]  # (block, paragraph, line)


def preprocess_image_for_ocr(image: Image.Image, max_dimension: Optional[int] = None) -> Image.Image:
    """
    Clean a captured image to improve OCR accuracy.

    Pipeline: fix EXIF orientation -> cap size -> grayscale ->
    contrast boost -> sharpen.

    Args:
        image: PIL Image object to preprocess.
        max_dimension: Longest side in pixels. Defaults to settings.

    Returns:
        Image.Image: Preprocessed grayscale image.

    Raises:
        InvalidImageError: If ``image`` is not a PIL image.
    """
    if not isinstance(image, Image.Image):
        raise InvalidImageError(f"Expected PIL.Image.Image, got {type(image).__name__}")

    limit = max_dimension or settings.OCR_MAX_DIMENSION

    image = ImageOps.exif_transpose(image)

    if max(image.size) > limit:
        image = image.copy()
        image.thumbnail((limit, limit))

    if image.mode != "L":
        image = image.convert("L")

    image = ImageEnhance.Contrast(image).enhance(1.4)
    image = ImageEnhance.Brightness(image).enhance(1.05)

    # Slight sharpening helps with blurry phone photos
    image = image.filter(ImageFilter.UnsharpMask(radius=1.5, percent=50))

    return image


def extract_words(image: Image.Image) -> list[WordInfo]:
    """
    Run Tesseract and return word-level results with positions.

    Args:
        image: PIL Image to recognize.

    Returns:
        list[WordInfo]: Non-empty words with confidence >= 0.

    Raises:
        InvalidImageError: If ``image`` is not a PIL image.
        RecognitionFailedError: If Tesseract fails or is not installed.
    """
    if not isinstance(image, Image.Image):
        raise InvalidImageError(f"Expected PIL.Image.Image, got {type(image).__name__}")

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    try:
        ocr_data = pytesseract.image_to_data(
            image,
            lang=settings.OCR_LANGUAGE,
            output_type=pytesseract.Output.DICT,
            config=settings.OCR_CONFIG,
        )
    except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, OSError) as e:
        logger.error(f"OCR failed: {e}")
        raise RecognitionFailedError(str(e)) from e

    words: list[WordInfo] = []
    for i in range(len(ocr_data["text"])):
        text = str(ocr_data["text"][i]).strip()
        if not text:
            continue

        # pytesseract returns -1 for non-text elements
        conf = float(ocr_data["conf"][i])
        if conf < 0:
            continue

        x = int(ocr_data["left"][i])
        y = int(ocr_data["top"][i])
        w = int(ocr_data["width"][i])
        h = int(ocr_data["height"][i])

        words.append(
            WordInfo(
                text=text,
                bbox=[x, y, x + w, y + h],
                conf=conf,
                line_key=(
                    int(ocr_data["block_num"][i]),
                    int(ocr_data["par_num"][i]),
                    int(ocr_data["line_num"][i]),
                ),
            )
        )

    return words


def recognize_text(image: Image.Image) -> str:
    """
    Recognize text in an image as newline-joined lines, top to bottom.

    Words are grouped into Tesseract lines, each line is ordered left to
    right, and lines are sorted by their vertical position.

    Args:
        image: Cleaned PIL image.

    Returns:
        str: Recognized text, one OCR line per text line.

    Raises:
        InvalidImageError: If ``image`` is not a PIL image.
        RecognitionFailedError: If Tesseract fails.
    """
    words = extract_words(image)

    lines: dict[tuple[int, int, int], list[WordInfo]] = {}
    for word in words:
        lines.setdefault(word["line_key"], []).append(word)

    ordered = sorted(
        lines.values(),
        key=lambda line_words: min(word["bbox"][1] for word in line_words),
    )

    text_lines = []
    for line_words in ordered:
        line_words.sort(key=lambda word: word["bbox"][0])
        text_lines.append(" ".join(word["text"] for word in line_words))

    logger.info(f"Recognized {len(text_lines)} lines from image")
    return "\n".join(text_lines)


async def recognize_text_async(image: Image.Image) -> str:
    """
    Recognize text without blocking the event loop.

    Cancelling the awaiting task abandons the result.
    """
    return await asyncio.to_thread(recognize_text, image)


def render_pdf_pages(source: Union[str, Path, bytes], dpi: int = PDF_RENDER_DPI) -> list[Image.Image]:
    """
    Render every page of a PDF to a PIL image.

    Args:
        source: Path to a PDF file or the raw PDF bytes.
        dpi: Render resolution.

    Returns:
        list[Image.Image]: One RGB image per page, in page order.

    Raises:
        InvalidImageError: If the document cannot be opened.
    """
    try:
        if isinstance(source, bytes):
            document = fitz.open(stream=source, filetype="pdf")
        else:
            document = fitz.open(str(source))
    except (fitz.FileDataError, FileNotFoundError, RuntimeError) as e:
        raise InvalidImageError(f"Could not open PDF: {e}") from e

    images = []
    with document:
        for page in document:
            pixmap = page.get_pixmap(dpi=dpi)
            images.append(Image.frombytes("RGB", (pixmap.width, pixmap.height), pixmap.samples))

    return images
