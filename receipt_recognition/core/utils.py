"""
Utility functions and constants for receipt recognition.
"""

import mimetypes
import re
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

# Content type constants
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp")

MAX_PAYLOAD_BYTES = 10 * 1024 * 1024  # 10 MiB
MIN_PIXEL_AREA = 500 * 500

# Pattern constants for parsing
TOTAL_KEYWORDS = ("total", "amount", "balance", "due", "paid", "subtotal", "grand total")

AMOUNT_PATTERN = re.compile(
    r"[$£€¥]?\s*(?<![0-9])([0-9]{1,3}(?:,?[0-9]{3})*\.[0-9]{2})(?![0-9])"
)

DIGIT_RUN_PATTERN = re.compile(r"\d{2,}")

CENTS = Decimal("0.01")


def normalize_content_type(content_type: Optional[str]) -> str:
    """Lower-case a content type and drop any parameters (e.g. charset)."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def guess_content_type(path: Path) -> str:
    """Guess an image content type from a file name."""
    ext = path.suffix.lower()
    if ext == ".webp":
        # not registered by mimetypes on every platform
        return "image/webp"
    guessed, _ = mimetypes.guess_type(path.name)
    return guessed or "application/octet-stream"


def normalize_amount(s: str) -> Optional[Decimal]:
    """Normalize amount string to a two-decimal Decimal."""
    if not s:
        return None
    s = re.sub(r"[^0-9.]", "", s)
    try:
        return Decimal(s).quantize(CENTS)
    except InvalidOperation:
        return None


def money_fmt(v: Optional[Decimal]) -> str:
    """Format amount as currency."""
    return f"${v:,.2f}" if v is not None else ""
