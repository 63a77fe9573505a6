"""
Main receipt recognition orchestration.
"""

import sys
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .config import PipelineConfig
from .database import MemoryLogStore
from .errors import (InvalidImageError, ReceiptProcessingError, ReceiptRecognitionError,
                     RecognitionEngineError)
from .models import (DEGRADED_INPUT_WARNINGS, WARNING_MISSING_AMOUNT, ParsedFields,
                     ProcessingLogEntry, RawImage, ReceiptFailure, ReceiptResult)
from .ocr import RecognitionEngine, TesseractEngine
from .parsers import parse_amount, parse_merchant
from .preprocessing import DiagnosticHook, preprocess_image
from .utils import guess_content_type, money_fmt
from .validation import validate_image

Outcome = Union[ReceiptResult, ReceiptFailure]


class ReceiptProcessor:
    """Runs one receipt image through validation, preprocessing, OCR and parsing."""

    def __init__(self, engine: Optional[RecognitionEngine] = None,
                 log_store=None,
                 config: Optional[PipelineConfig] = None,
                 diagnostic_hook: Optional[DiagnosticHook] = None,
                 verbose: bool = False):
        """
        Initialize receipt processor.

        Args:
            engine: Recognition engine adapter (Tesseract from config if omitted)
            log_store: Sink with an append(ProcessingLogEntry) method
                (in-memory if omitted)
            config: Pipeline constants
            diagnostic_hook: Optional hook receiving every preprocessing stage
            verbose: Whether to show verbose debugging output
        """
        self.config = config or PipelineConfig()
        self.engine = engine or TesseractEngine.from_config(self.config)
        self.log_store = log_store if log_store is not None else MemoryLogStore()
        self.diagnostic_hook = diagnostic_hook
        self.verbose = verbose

    def _debug(self, message: str):
        if self.verbose:
            print(f"  [DEBUG] {message}", file=sys.stderr)

    def assess(self, fields: ParsedFields, warnings: List[str]) -> ReceiptResult:
        """Apply the confidence and manual-review rules to parsed fields."""
        warnings = list(warnings)
        confidence = min(1.0, max(0.0, self.config.baseline_confidence))

        if fields.amount is None:
            warnings.append(WARNING_MISSING_AMOUNT)

        requires_review = (
            fields.amount is None
            or confidence < self.config.manual_review_threshold
            or any(w in DEGRADED_INPUT_WARNINGS for w in warnings)
        )

        return ReceiptResult(
            fields=fields,
            confidence=confidence,
            warnings=warnings,
            requires_manual_review=requires_review,
        )

    def process(self, raw: RawImage) -> ReceiptResult:
        """
        Process a single receipt image.

        Exactly one ProcessingLogEntry is appended to the log store, whether
        the request succeeds or fails.

        Returns:
            ReceiptResult (possibly low confidence, with warnings)

        Raises:
            ReceiptProcessingError: when no result could be produced at all;
                its `failure` attribute holds the caller-safe response
        """
        start = time.perf_counter()
        entry = ProcessingLogEntry(filename=raw.filename, processing_time_ms=0, successful=False)
        warnings: List[str] = []

        def elapsed_ms() -> int:
            return int(round((time.perf_counter() - start) * 1000))

        try:
            validated = validate_image(raw, self.config)
            warnings.extend(validated.warnings)
            self._debug(f"Validated {raw.filename}: {validated.image.width}x{validated.image.height} "
                        f"{validated.image.mode}")

            prepared = preprocess_image(validated, self.config, self.diagnostic_hook)
            if prepared.inverted:
                self._debug("Dark background detected, image inverted")

            entry.engine_version = self.engine.version()
            recognized = self.engine.recognize(prepared)
            entry.detected_text = recognized.text
            self._debug(f"Recognized {len(recognized.lines)} line(s)")

            fields = ParsedFields(
                merchant=parse_merchant(recognized),
                amount=parse_amount(recognized),
            )
            result = self.assess(fields, warnings)
            result.filename = raw.filename
            self._debug(f"Merchant: '{fields.merchant}'")
            self._debug(f"Amount: {money_fmt(fields.amount) or '(none)'}")

        except ReceiptRecognitionError as e:
            self._log_failure(entry, e, elapsed_ms())
            failure = ReceiptFailure(error=e.public_message, warnings=warnings, filename=raw.filename)
            raise ReceiptProcessingError(failure, str(e)) from e
        except Exception as e:
            self._log_failure(entry, e, elapsed_ms())
            failure = ReceiptFailure(error=ReceiptRecognitionError.public_message,
                                     warnings=warnings, filename=raw.filename)
            raise ReceiptProcessingError(failure, f"Unexpected error: {e}") from e

        entry.successful = True
        entry.confidence = result.confidence
        entry.processing_time_ms = elapsed_ms()
        self.log_store.append(entry)
        return result

    def _log_failure(self, entry: ProcessingLogEntry, error: Exception, elapsed: int):
        entry.successful = False
        entry.error_message = str(error) or error.__class__.__name__
        entry.processing_time_ms = elapsed
        self.log_store.append(entry)

        if isinstance(error, InvalidImageError):
            print(f"[WARN] Rejected {entry.filename}: {error}", file=sys.stderr)
        elif isinstance(error, RecognitionEngineError):
            print(f"[ERROR] Recognition failed for {entry.filename}: {error}", file=sys.stderr)
        else:
            print(f"[ERROR] Failed {entry.filename}: {error!r}", file=sys.stderr)

    def process_outcome(self, raw: RawImage) -> Outcome:
        """Like process(), but returns the failure response instead of raising."""
        try:
            return self.process(raw)
        except ReceiptProcessingError as e:
            return e.failure

    def process_file(self, path: Path, content_type: Optional[str] = None) -> ReceiptResult:
        """Process an image file from disk, guessing its content type from the extension."""
        path = Path(path)
        raw = RawImage(
            data=path.read_bytes(),
            content_type=content_type or guess_content_type(path),
            filename=path.name,
        )
        return self.process(raw)

    def process_many(self, images: Iterable[RawImage], max_workers: int = 1) -> List[Outcome]:
        """
        Process independent images, optionally in parallel.

        Returns:
            One outcome per input, in input order
        """
        images = list(images)
        if max_workers <= 1 or len(images) <= 1:
            return [self.process_outcome(raw) for raw in images]

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(self.process_outcome, images))
