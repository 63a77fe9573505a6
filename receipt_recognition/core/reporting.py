"""
CSV reporting of recognition outcomes.
"""

import csv
from pathlib import Path
from typing import Dict, List, Union

from .models import ReceiptFailure, ReceiptResult

FIELDNAMES = ["filename", "merchant", "amount", "confidence", "requires_manual_review", "warnings", "error"]


def outcome_row(outcome: Union[ReceiptResult, ReceiptFailure]) -> Dict:
    """Flatten one outcome into a CSV row."""
    if isinstance(outcome, ReceiptFailure):
        return {
            "filename": outcome.filename,
            "merchant": "",
            "amount": "",
            "confidence": "",
            "requires_manual_review": True,
            "warnings": ";".join(outcome.warnings),
            "error": outcome.error,
        }
    return {
        "filename": outcome.filename,
        "merchant": outcome.merchant,
        "amount": f"{outcome.amount:.2f}" if outcome.amount is not None else "",
        "confidence": f"{outcome.confidence:.2f}",
        "requires_manual_review": outcome.requires_manual_review,
        "warnings": ";".join(outcome.warnings),
        "error": "",
    }


def write_csv(outcomes: List[Union[ReceiptResult, ReceiptFailure]], out_csv: Path):
    """Write recognition outcomes to CSV file."""
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=FIELDNAMES)
        w.writeheader()
        for outcome in outcomes:
            w.writerow(outcome_row(outcome))
