"""
Custom exception classes for the application.

Parsing, pricing and auditing never raise for well-formed input; these
cover the collaborators that can genuinely fail.
"""


class MedBillAuditorError(Exception):
    """Base class for all application errors."""


class RecognitionError(MedBillAuditorError):
    """Raised when text recognition cannot produce text for a capture."""

    def __init__(self, detail: str = "Text recognition failed."):
        super().__init__(detail)
        self.detail = detail


class InvalidImageError(RecognitionError):
    """Raised when the captured image cannot be processed."""

    def __init__(self, detail: str = "Could not process the image."):
        super().__init__(detail)


class RecognitionFailedError(RecognitionError):
    """Raised when the underlying OCR engine fails."""

    def __init__(self, detail: str = "Text recognition failed."):
        super().__init__(detail)


class FeeScheduleError(MedBillAuditorError):
    """Raised when the reference fee schedule exists but cannot be decoded."""


class InvalidToneError(MedBillAuditorError, ValueError):
    """Raised when a dispute letter tone is not recognised."""
