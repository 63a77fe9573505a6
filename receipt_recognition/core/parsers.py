"""
Parsers for extracting merchant and total amount from recognized receipt text.
"""

from decimal import Decimal
from typing import Iterable, Optional, Union

from .models import RecognizedText, UNKNOWN_MERCHANT
from .utils import AMOUNT_PATTERN, DIGIT_RUN_PATTERN, TOTAL_KEYWORDS, normalize_amount

TextInput = Union[RecognizedText, str, Iterable[str]]


def _lines(text: TextInput):
    if isinstance(text, RecognizedText):
        return list(text.lines)
    if isinstance(text, str):
        return text.splitlines()
    return list(text)


def _looks_like_merchant(line: str) -> bool:
    return (
        3 < len(line) < 50
        and not DIGIT_RUN_PATTERN.search(line)  # dates, item codes, phone numbers
        and line[0].isupper()
    )


def parse_merchant(text: TextInput) -> str:
    """
    Pick the merchant name from receipt text.

    The first line of 4-49 characters that starts with an upper-case letter
    and has no run of two or more digits wins. Otherwise the first non-empty
    line, otherwise "Unknown Merchant".
    """
    lines = [ln.strip() for ln in _lines(text)]

    for ln in lines:
        if _looks_like_merchant(ln):
            return ln

    for ln in lines:
        if ln:
            return ln

    return UNKNOWN_MERCHANT


def has_total_keyword(line: str) -> bool:
    lowered = line.lower()
    return any(kw in lowered for kw in TOTAL_KEYWORDS)


def parse_amount(text: TextInput) -> Optional[Decimal]:
    """
    Extract the total amount from receipt text.

    Every currency-like match (optional symbol, optionally comma-grouped
    digits, exactly two decimals) is a candidate. Matches on a line with a
    total keyword beat matches without one; within the same priority the
    largest value wins, and ties keep the earliest match.

    Returns:
        Decimal with two places, or None when nothing looks like money
    """
    best = None
    best_keyworded = False

    for ln in _lines(text):
        keyworded = has_total_keyword(ln)
        if best is not None and best_keyworded and not keyworded:
            continue
        for m in AMOUNT_PATTERN.finditer(ln):
            val = normalize_amount(m.group(1))
            if val is None:
                continue
            if best is None or (keyworded and not best_keyworded) or \
                    (keyworded == best_keyworded and val > best):
                best = val
                best_keyworded = keyworded

    return best
