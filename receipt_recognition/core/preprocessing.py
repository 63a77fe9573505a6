"""
Deterministic image preprocessing to improve OCR legibility.

Each stage is a small function over a Pillow image; preprocess_image() applies
them in a fixed order. Every stage assumes the previous stage's output, so the
order must not change.
"""

import itertools
import sys
import threading
import time
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from PIL import Image, ImageFilter, ImageOps

from .config import PipelineConfig
from .models import PreprocessedImage, ValidatedImage

# Called as hook(stage_name, image, filename) after every stage
DiagnosticHook = Callable[[str, Image.Image, str], None]

# 16-bit (and 32-bit integer) single-channel modes, e.g. from flatbed scanners
WIDE_GRAY_MODES = ("I;16", "I;16B", "I;16L", "I;16N", "I")

STAGES = ("grayscale", "polarity", "denoise", "contrast", "sharpen", "upscale")


def to_grayscale(img: Image.Image) -> Image.Image:
    """Collapse color channels to a single 8-bit intensity channel."""
    if img.mode == "L":
        return img.copy()
    if img.mode in WIDE_GRAY_MODES:
        # rescale 0..65535 to 0..255; a plain convert would clip everything to white
        return img.convert("I").point(lambda v: v * (1 / 256)).convert("L")
    if img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info):
        # flatten transparency onto white paper
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        background.alpha_composite(rgba)
        return background.convert("L")
    if img.mode != "RGB":
        img = img.convert("RGB")
    return img.convert("L")


def corner_points(width: int, height: int, inset: int) -> List[Tuple[int, int]]:
    """Sample points `inset` pixels in from each corner, clamped into the image."""
    left = min(inset, width - 1)
    top = min(inset, height - 1)
    right = min(max(width - inset, 0), width - 1)
    bottom = min(max(height - inset, 0), height - 1)
    return [(left, top), (right, top), (left, bottom), (right, bottom)]


def corner_brightness(img: Image.Image, inset: int = 10) -> int:
    """Integer average intensity of the four corner sample points."""
    points = corner_points(img.width, img.height, inset)
    return sum(img.getpixel(p) for p in points) // len(points)


def is_dark_background(img: Image.Image, inset: int = 10, threshold: int = 128) -> bool:
    """True when the corners suggest light text on a dark background."""
    return corner_brightness(img, inset) < threshold


def correct_polarity(img: Image.Image, inset: int = 10, threshold: int = 128) -> Tuple[Image.Image, bool]:
    """Invert dark-background images so text is dark on light."""
    if is_dark_background(img, inset, threshold):
        return ImageOps.invert(img), True
    return img, False


def denoise(img: Image.Image, radius: float = 1.0) -> Image.Image:
    if radius <= 0:
        return img
    return img.filter(ImageFilter.GaussianBlur(radius))


def _contrast_table(gain: float) -> List[int]:
    return [min(255, int(round(v * gain))) for v in range(256)]


def _gamma_table(gamma: float) -> List[int]:
    return [int(round(255 * (v / 255.0) ** gamma)) for v in range(256)]


def adjust_contrast(img: Image.Image, gain: float = 1.5, gamma: float = 0.8) -> Image.Image:
    """Multiply intensities by a fixed gain (clipped), then gamma-correct."""
    return img.point(_contrast_table(gain)).point(_gamma_table(gamma))


def sharpen(img: Image.Image) -> Image.Image:
    return img.filter(ImageFilter.SHARPEN)


def upscale(img: Image.Image, factor: float = 2.0) -> Image.Image:
    """Resize by a fixed factor with Lanczos resampling."""
    size = (max(1, int(img.width * factor)), max(1, int(img.height * factor)))
    return img.resize(size, Image.Resampling.LANCZOS)


def _notify(hook: Optional[DiagnosticHook], stage: str, img: Image.Image, filename: str):
    if hook is None:
        return
    try:
        hook(stage, img, filename)
    except Exception as e:
        print(f"[WARN] Diagnostic hook failed at stage '{stage}': {e}", file=sys.stderr)


def preprocess_image(validated: ValidatedImage,
                     config: Optional[PipelineConfig] = None,
                     diagnostic_hook: Optional[DiagnosticHook] = None) -> PreprocessedImage:
    """
    Run the full preprocessing pipeline.

    Stages, in order: grayscale, background polarity correction, light
    Gaussian blur, contrast gain + gamma, sharpen, upscale. The same input
    always produces the same output. This function does not raise on odd
    input; poor images simply recognize poorly.

    Args:
        validated: Image that passed validation
        config: Pipeline constants (defaults if omitted)
        diagnostic_hook: Optional callable receiving (stage_name, image,
            filename) after each stage, for debugging

    Returns:
        PreprocessedImage in "L" mode
    """
    config = config or PipelineConfig()
    filename = validated.source.filename

    img = to_grayscale(validated.image)
    _notify(diagnostic_hook, "grayscale", img, filename)

    img, inverted = correct_polarity(img, config.corner_inset, config.dark_background_threshold)
    _notify(diagnostic_hook, "polarity", img, filename)

    img = denoise(img, config.blur_radius)
    _notify(diagnostic_hook, "denoise", img, filename)

    img = adjust_contrast(img, config.contrast_gain, config.gamma)
    _notify(diagnostic_hook, "contrast", img, filename)

    img = sharpen(img)
    _notify(diagnostic_hook, "sharpen", img, filename)

    img = upscale(img, config.upscale_factor)
    _notify(diagnostic_hook, "upscale", img, filename)

    return PreprocessedImage(image=img, inverted=inverted)


class DirectoryDiagnosticHook:
    """
    Diagnostic hook that saves every stage as a PNG in a chosen directory.

    Files are named after the receipt, plus a run number that is unique per
    hook, so parallel requests never overwrite each other:
    <stem>_<timestamp>_<run>_<stage index>_<stage>.png
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self._runs = itertools.count(1)
        self._lock = threading.Lock()
        # a request runs all its stages on one thread
        self._current = threading.local()

    def _run_tag(self, stage: str) -> str:
        if stage == STAGES[0] or getattr(self._current, "tag", None) is None:
            with self._lock:
                run = next(self._runs)
            self._current.tag = f"{int(time.time() * 1000)}_{run:04d}"
        return self._current.tag

    def __call__(self, stage: str, img: Image.Image, filename: str = ""):
        self.directory.mkdir(parents=True, exist_ok=True)
        stem = Path(filename).stem or "receipt"
        index = STAGES.index(stage) + 1 if stage in STAGES else 0
        out = self.directory / f"{stem}_{self._run_tag(stage)}_{index:02d}_{stage}.png"
        img.save(out, format="PNG")
