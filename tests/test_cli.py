"""Tests for the receipt-ocr command line."""

import csv
import json
from types import SimpleNamespace

import pytesseract as real_pytesseract
import pytest

from receipt_recognition.cli.main import main
from receipt_recognition.core import ocr
from receipt_recognition.core.database import SQLiteLogStore

from conftest import make_receipt_image


@pytest.fixture
def fake_tesseract(monkeypatch):
    fake = SimpleNamespace(
        image_to_string=lambda image, **kwargs: "SUPERMART INC\nTOTAL 12.40\n",
        get_tesseract_version=lambda: "5.3.0",
        TesseractError=real_pytesseract.TesseractError,
        TesseractNotFoundError=real_pytesseract.TesseractNotFoundError,
        pytesseract=SimpleNamespace(tesseract_cmd="tesseract"),
    )
    monkeypatch.setattr(ocr, "pytesseract", fake)
    return fake


def test_single_receipt(tmp_path, capsys, fake_tesseract):
    image = tmp_path / "receipt.png"
    make_receipt_image().save(image)
    log_db = tmp_path / "logs.db"

    code = main([str(image), "--config", str(tmp_path / "none.json"), "--log-db", str(log_db)])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out == [{
        "merchant": "SUPERMART INC",
        "date": None,
        "amount": "12.40",
        "items": [],
        "confidence": 0.8,
        "warnings": [],
        "requiresManualReview": False,
        "filename": "receipt.png",
    }]
    assert len(SQLiteLogStore(log_db)) == 1


def test_failures_set_exit_code_and_csv(tmp_path, capsys, fake_tesseract):
    good = tmp_path / "good.png"
    make_receipt_image().save(good)
    bad = tmp_path / "notes.txt"
    bad.write_text("not an image")
    report = tmp_path / "report.csv"

    code = main([str(good), str(bad), "--no-log", "--workers", "2",
                 "--config", str(tmp_path / "none.json"), "--csv", str(report)])

    assert code == 1
    out = json.loads(capsys.readouterr().out)
    assert out[1]["error"] == "Unsupported image format"
    assert out[1]["requiresManualReview"] is True

    with report.open(newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert [r["filename"] for r in rows] == ["good.png", "notes.txt"]
    assert rows[0]["amount"] == "12.40"
    assert rows[1]["error"] == "Unsupported image format"


def test_unreadable_file_is_reported_as_read_error(tmp_path, capsys, fake_tesseract):
    good = tmp_path / "good.png"
    make_receipt_image().save(good)
    log_db = tmp_path / "logs.db"

    code = main([str(tmp_path / "gone.png"), str(good), "--workers", "2",
                 "--log-db", str(log_db), "--config", str(tmp_path / "none.json")])

    assert code == 1
    captured = capsys.readouterr()
    out = json.loads(captured.out)
    assert [o["filename"] for o in out] == ["gone.png", "good.png"]
    assert out[0]["error"] == "Could not read file"
    assert out[0]["requiresManualReview"] is True
    assert out[1]["amount"] == "12.40"
    assert "File is empty" not in captured.err
    assert "1 recognized, 1 failed" in captured.err
    # only the receipt that was actually processed is logged
    assert len(SQLiteLogStore(log_db)) == 1


def test_bad_config_exit_code(tmp_path, capsys):
    config = tmp_path / "receipt_ocr.json"
    config.write_text('{"unknown": 1}')
    assert main([str(tmp_path / "x.png"), "--config", str(config), "--no-log"]) == 2
    assert "unknown" in capsys.readouterr().err


def test_debug_dir(tmp_path, fake_tesseract):
    image = tmp_path / "receipt.png"
    make_receipt_image(size=(80, 60)).save(image)
    debug = tmp_path / "debug"

    main([str(image), "--no-log", "--config", str(tmp_path / "none.json"), "--debug-dir", str(debug)])

    assert len(list(debug.glob("*.png"))) == 6
