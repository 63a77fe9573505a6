"""
Exception hierarchy for the receipt recognition pipeline.
"""

from typing import Optional


class ReceiptRecognitionError(Exception):
    """Base class for all pipeline errors."""

    # Message that may be shown to the caller; never contains internal detail
    public_message = "Receipt could not be processed"


class ConfigError(ReceiptRecognitionError):
    """Invalid configuration file or value."""


class InvalidImageError(ReceiptRecognitionError):
    """The submitted image was rejected before any recognition work."""

    public_message = "Invalid image"


class EmptyPayload(InvalidImageError):
    public_message = "File is empty"


class UnsupportedFormat(InvalidImageError):
    public_message = "Unsupported image format"


class PayloadTooLarge(InvalidImageError):
    public_message = "File too large"


class CorruptImage(InvalidImageError):
    public_message = "Invalid or corrupted image"


class RecognitionEngineError(ReceiptRecognitionError):
    """The external text-recognition engine failed."""


class RecognitionTimeout(RecognitionEngineError):
    public_message = "timeout"


class ReceiptProcessingError(ReceiptRecognitionError):
    """
    Raised by ReceiptProcessor.process when no result could be produced.

    Carries the caller-facing failure response; the originating exception is
    available as __cause__.
    """

    def __init__(self, failure, message: Optional[str] = None):
        super().__init__(message or failure.error)
        self.failure = failure

    @property
    def public_message(self) -> str:
        return self.failure.error
