"""
Pipeline configuration: tunable constants, loaded from JSON and environment.
"""

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Optional, Tuple

from .errors import ConfigError
from .utils import ALLOWED_CONTENT_TYPES, MAX_PAYLOAD_BYTES, MIN_PIXEL_AREA

# Environment variable -> config key
ENV_OVERRIDES = {
    "RECEIPT_OCR_LANGUAGES": "languages",
    "TESSERACT_CMD": "tesseract_cmd",
    "RECEIPT_OCR_TIMEOUT": "engine_timeout",
}


@dataclass(frozen=True)
class PipelineConfig:
    """All tunable constants of the recognition pipeline."""

    # Validation
    allowed_content_types: Tuple[str, ...] = ALLOWED_CONTENT_TYPES
    max_payload_bytes: int = MAX_PAYLOAD_BYTES
    min_pixel_area: int = MIN_PIXEL_AREA

    # Preprocessing
    corner_inset: int = 10
    dark_background_threshold: int = 128
    blur_radius: float = 1.0
    contrast_gain: float = 1.5
    gamma: float = 0.8
    upscale_factor: float = 2.0

    # Recognition engine
    languages: str = "eng+chi_tra"
    engine_mode: int = 1  # LSTM only
    page_segmentation_mode: int = 6  # single uniform block of text
    tesseract_cmd: Optional[str] = None
    engine_timeout: float = 30.0

    # Confidence model
    baseline_confidence: float = 0.8
    manual_review_threshold: float = 0.5

    def validate(self) -> "PipelineConfig":
        """Check value ranges; returns self so it can be chained."""
        if not self.allowed_content_types:
            raise ConfigError("allowed_content_types must not be empty")
        if self.max_payload_bytes <= 0:
            raise ConfigError("max_payload_bytes must be positive")
        if self.min_pixel_area < 0:
            raise ConfigError("min_pixel_area must not be negative")
        if self.corner_inset < 0:
            raise ConfigError("corner_inset must not be negative")
        if not 0 <= self.dark_background_threshold <= 255:
            raise ConfigError("dark_background_threshold must be within 0..255")
        if self.blur_radius < 0:
            raise ConfigError("blur_radius must not be negative")
        for name in ("contrast_gain", "gamma", "upscale_factor", "engine_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        for name in ("baseline_confidence", "manual_review_threshold"):
            if not 0.0 <= getattr(self, name) <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1]")
        return self

    def to_dict(self) -> Dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(name: str, value):
    """Coerce a raw JSON/env value to the type of the default for `name`."""
    default = getattr(PipelineConfig, name, None)
    try:
        if name == "allowed_content_types":
            if isinstance(value, str):
                value = [v for v in value.split(",") if v.strip()]
            return tuple(str(v).strip().lower() for v in value)
        if name == "tesseract_cmd":
            return str(value) if value else None
        if isinstance(default, bool):
            return bool(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


def load_config(path: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> PipelineConfig:
    """
    Load pipeline configuration.

    Values come from the defaults, then the JSON file at `path` (if it
    exists), then environment variable overrides.

    Args:
        path: Optional JSON config file, e.g. {"languages": "eng", "gamma": 0.9}
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated PipelineConfig
    """
    environ = os.environ if environ is None else environ
    known = {f.name for f in fields(PipelineConfig)}
    overrides = {}

    if path is not None and path.exists():
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Could not parse config file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a JSON object")
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")
        for key, value in data.items():
            overrides[key] = _coerce(key, value)

    for env_name, key in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            overrides[key] = _coerce(key, value)

    return replace(PipelineConfig(), **overrides).validate()
