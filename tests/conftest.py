"""Pytest configuration and fixtures for the test suite."""

import io
from typing import List, Optional, Sequence

import pytest
from PIL import Image, ImageDraw

from receipt_recognition.core.database import MemoryLogStore
from receipt_recognition.core.models import PreprocessedImage, RawImage, RecognizedText
from receipt_recognition.core.ocr import RecognitionEngine


def make_receipt_image(size=(600, 800), background=255, ink=0, mode="L") -> Image.Image:
    """Draw a fake receipt: a few text-like bars away from the corners."""
    img = Image.new("L", size, background)
    draw = ImageDraw.Draw(img)
    width, height = size
    for row in range(5):
        top = height // 4 + row * max(4, height // 12)
        draw.rectangle([width // 4, top, width * 3 // 4, top + max(1, height // 40)], fill=ink)
    if mode != "L":
        img = img.convert(mode)
    return img


def encode(img: Image.Image, fmt: str = "PNG") -> bytes:
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_raw(img: Optional[Image.Image] = None, fmt: str = "PNG",
             content_type: str = "image/png", filename: str = "receipt.png") -> RawImage:
    img = img if img is not None else make_receipt_image()
    return RawImage(data=encode(img, fmt), content_type=content_type, filename=filename)


class FakeEngine(RecognitionEngine):
    """Recognition engine returning canned lines and recording every call."""

    name = "fake"

    def __init__(self, lines: Sequence[str] = (), error: Optional[Exception] = None):
        self.lines = tuple(lines)
        self.error = error
        self.calls: List[PreprocessedImage] = []

    def recognize(self, image: PreprocessedImage) -> RecognizedText:
        self.calls.append(image)
        if self.error is not None:
            raise self.error
        return RecognizedText(self.lines)

    def version(self):
        return "fake-1.0"


@pytest.fixture
def receipt_image() -> Image.Image:
    return make_receipt_image()


@pytest.fixture
def raw_png() -> RawImage:
    return make_raw()


@pytest.fixture
def log_store() -> MemoryLogStore:
    return MemoryLogStore()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine([
        "2024-01-05",
        "SUPERMART INC",
        "MILK 2 3.50",
        "BREAD 2.25",
        "TOTAL $5.75",
    ])
