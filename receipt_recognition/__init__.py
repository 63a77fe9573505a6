"""
Receipt Recognition

Validates, preprocesses and OCRs receipt photos, then extracts merchant and
total amount with a rule-based confidence and manual-review model.
"""

__version__ = "1.0.0"
__author__ = "Receipt Recognition Contributors"

from receipt_recognition.core.models import RawImage, ReceiptFailure, ReceiptResult
from receipt_recognition.core.processor import ReceiptProcessor

__all__ = ["RawImage", "ReceiptFailure", "ReceiptResult", "ReceiptProcessor"]
