"""
Recognition engine adapters: turn a preprocessed image into lines of text.
"""

import sys
from typing import Optional

from .config import PipelineConfig
from .errors import RecognitionEngineError, RecognitionTimeout
from .models import PreprocessedImage, RecognizedText


def _lazy_import_ocr_deps():
    """Lazy import heavy OCR dependencies."""
    global pytesseract
    import importlib
    pytesseract = importlib.import_module("pytesseract")


# Initialize on first use
pytesseract = None


class RecognitionEngine:
    """
    Interface around an external text-recognition engine.

    Implementations hold configuration only and must be safe to share
    between threads.
    """

    name = "engine"

    def recognize(self, image: PreprocessedImage) -> RecognizedText:
        """Return recognized lines, or raise RecognitionEngineError."""
        raise NotImplementedError

    def version(self) -> Optional[str]:
        return None


class TesseractEngine(RecognitionEngine):
    """
    Tesseract OCR via pytesseract.

    pytesseract keeps the binary path in a single module-level setting
    (pytesseract.pytesseract.tesseract_cmd), so tesseract_cmd is process-wide:
    engines built with different binaries in one process share the last one
    set. Engines built without tesseract_cmd leave the setting alone.
    """

    name = "tesseract"

    def __init__(self, languages: str = "eng+chi_tra", engine_mode: int = 1,
                 page_segmentation_mode: int = 6, timeout: float = 30.0,
                 tesseract_cmd: Optional[str] = None):
        """
        Args:
            languages: Tesseract language set, e.g. "eng" or "eng+chi_tra"
            engine_mode: --oem value (1 = LSTM only)
            page_segmentation_mode: --psm value (6 = single uniform block)
            timeout: Seconds before the tesseract process is killed
            tesseract_cmd: Path to the tesseract binary, if not on PATH
        """
        self.languages = languages
        self.engine_mode = engine_mode
        self.page_segmentation_mode = page_segmentation_mode
        self.timeout = timeout
        self.tesseract_cmd = tesseract_cmd
        self._version = None

        if tesseract_cmd:
            if pytesseract is None:
                _lazy_import_ocr_deps()
            if pytesseract.pytesseract.tesseract_cmd != tesseract_cmd:
                print(f"[INFO] Using tesseract binary {tesseract_cmd}", file=sys.stderr)
                pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "TesseractEngine":
        return cls(
            languages=config.languages,
            engine_mode=config.engine_mode,
            page_segmentation_mode=config.page_segmentation_mode,
            timeout=config.engine_timeout,
            tesseract_cmd=config.tesseract_cmd,
        )

    @property
    def tesseract_config(self) -> str:
        return f"--oem {self.engine_mode} --psm {self.page_segmentation_mode}"

    def recognize(self, image: PreprocessedImage) -> RecognizedText:
        """OCR a preprocessed image to text lines."""
        if pytesseract is None:
            _lazy_import_ocr_deps()

        try:
            text = pytesseract.image_to_string(
                image.image,
                lang=self.languages,
                config=self.tesseract_config,
                timeout=self.timeout,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionEngineError("Tesseract binary not found") from e
        except pytesseract.TesseractError as e:
            raise RecognitionEngineError(f"Tesseract failed: {e}") from e
        except RuntimeError as e:
            # pytesseract kills the process and raises RuntimeError on timeout
            if "timeout" in str(e).lower():
                raise RecognitionTimeout(f"Tesseract timed out after {self.timeout}s") from e
            raise RecognitionEngineError(f"Tesseract failed: {e}") from e
        except (OSError, ValueError, TypeError) as e:
            raise RecognitionEngineError(f"Could not pass image to Tesseract: {e}") from e

        return RecognizedText.from_string(text)

    def version(self) -> Optional[str]:
        """Tesseract version string, or None if it cannot be determined."""
        if self._version is None:
            if pytesseract is None:
                _lazy_import_ocr_deps()
            try:
                self._version = str(pytesseract.get_tesseract_version())
            except (pytesseract.TesseractNotFoundError, OSError, RuntimeError):
                return None
        return self._version
