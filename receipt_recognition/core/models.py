"""
Data models for receipt recognition.
"""

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from PIL import Image

UNKNOWN_MERCHANT = "Unknown Merchant"

WARNING_LOW_RESOLUTION = "low-resolution"
WARNING_MISSING_AMOUNT = "missing-amount"

# Warnings that mean the input itself was degraded
DEGRADED_INPUT_WARNINGS = {WARNING_LOW_RESOLUTION}


@dataclass(frozen=True)
class RawImage:
    """An uploaded image payload, as received."""
    data: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class ValidatedImage:
    """A decoded image that passed validation, plus advisory warnings."""
    image: Image.Image
    source: RawImage
    warnings: List[str] = field(default_factory=list)


@dataclass
class PreprocessedImage:
    """Single-channel, upscaled image ready for the recognition engine."""
    image: Image.Image
    inverted: bool = False


@dataclass(frozen=True)
class RecognizedText:
    """Lines of text returned by the recognition engine, in engine order."""
    lines: Tuple[str, ...] = ()

    @classmethod
    def from_string(cls, text: str) -> "RecognizedText":
        return cls(tuple(ln.rstrip() for ln in (text or "").splitlines()))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)


@dataclass
class ParsedFields:
    """Structured fields extracted from recognized text."""
    merchant: str = UNKNOWN_MERCHANT
    amount: Optional[Decimal] = None
    date: Optional[dt.date] = None
    items: List[str] = field(default_factory=list)


def _amount_str(amount: Optional[Decimal]) -> Optional[str]:
    return f"{amount:.2f}" if amount is not None else None


@dataclass
class ReceiptResult:
    """Successful outcome of the pipeline."""
    fields: ParsedFields
    confidence: float
    warnings: List[str] = field(default_factory=list)
    requires_manual_review: bool = False
    filename: str = ""

    @property
    def merchant(self) -> str:
        return self.fields.merchant

    @property
    def amount(self) -> Optional[Decimal]:
        return self.fields.amount

    def to_dict(self):
        """Convert to the response dictionary."""
        return {
            "merchant": self.fields.merchant,
            "date": self.fields.date.isoformat() if self.fields.date else None,
            "amount": _amount_str(self.fields.amount),
            "items": list(self.fields.items),
            "confidence": self.confidence,
            "warnings": list(self.warnings),
            "requiresManualReview": self.requires_manual_review,
        }


@dataclass
class ReceiptFailure:
    """Failed outcome of the pipeline. Always requires manual review."""
    error: str
    warnings: List[str] = field(default_factory=list)
    filename: str = ""

    @property
    def requires_manual_review(self) -> bool:
        return True

    def to_dict(self):
        """Convert to the response dictionary."""
        return {
            "warnings": list(self.warnings),
            "requiresManualReview": True,
            "error": self.error,
        }


@dataclass
class ProcessingLogEntry:
    """Audit record written once per processed request."""
    filename: str
    processing_time_ms: int
    successful: bool
    detected_text: Optional[str] = None
    confidence: Optional[float] = None
    error_message: Optional[str] = None
    engine_version: Optional[str] = None
    created_at: dt.datetime = field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
