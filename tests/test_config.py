"""Tests for configuration loading."""

import json

import pytest

from receipt_recognition.core.config import PipelineConfig, load_config
from receipt_recognition.core.errors import ConfigError


def test_defaults_when_file_missing(tmp_path):
    config = load_config(tmp_path / "missing.json", environ={})
    assert config == PipelineConfig()
    assert config.max_payload_bytes == 10 * 1024 * 1024
    assert config.min_pixel_area == 250000
    assert config.baseline_confidence == 0.8
    assert config.manual_review_threshold == 0.5


def test_file_values(tmp_path):
    path = tmp_path / "receipt_ocr.json"
    path.write_text(json.dumps({
        "languages": "eng",
        "gamma": 0.9,
        "upscale_factor": 3,
        "allowed_content_types": ["IMAGE/PNG"],
    }))
    config = load_config(path, environ={})
    assert config.languages == "eng"
    assert config.gamma == 0.9
    assert config.upscale_factor == 3.0
    assert config.allowed_content_types == ("image/png",)


def test_environment_overrides_file(tmp_path):
    path = tmp_path / "receipt_ocr.json"
    path.write_text(json.dumps({"languages": "eng"}))
    config = load_config(path, environ={
        "RECEIPT_OCR_LANGUAGES": "eng+deu",
        "TESSERACT_CMD": "/usr/local/bin/tesseract",
        "RECEIPT_OCR_TIMEOUT": "12.5",
    })
    assert config.languages == "eng+deu"
    assert config.tesseract_cmd == "/usr/local/bin/tesseract"
    assert config.engine_timeout == 12.5


def test_unknown_key(tmp_path):
    path = tmp_path / "receipt_ocr.json"
    path.write_text(json.dumps({"blur_sigma": 2}))
    with pytest.raises(ConfigError, match="blur_sigma"):
        load_config(path, environ={})


def test_invalid_json(tmp_path):
    path = tmp_path / "receipt_ocr.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(path, environ={})


def test_invalid_value_type(tmp_path):
    with pytest.raises(ConfigError):
        load_config(None, environ={"RECEIPT_OCR_TIMEOUT": "soon"})


@pytest.mark.parametrize("changes", [
    {"baseline_confidence": 1.5},
    {"manual_review_threshold": -0.1},
    {"upscale_factor": 0},
    {"dark_background_threshold": 300},
    {"allowed_content_types": ()},
])
def test_validate_rejects_out_of_range(changes):
    with pytest.raises(ConfigError):
        PipelineConfig(**changes).validate()
