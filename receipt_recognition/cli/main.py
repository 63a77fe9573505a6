#!/usr/bin/env python3
"""
Main CLI entrypoint for receipt recognition.
"""

import argparse
import json
import os
import sys
from pathlib import Path

from receipt_recognition.core.config import load_config
from receipt_recognition.core.database import MemoryLogStore, SQLiteLogStore
from receipt_recognition.core.errors import ConfigError
from receipt_recognition.core.models import RawImage, ReceiptFailure
from receipt_recognition.core.preprocessing import DirectoryDiagnosticHook
from receipt_recognition.core.processor import ReceiptProcessor
from receipt_recognition.core.reporting import write_csv
from receipt_recognition.core.utils import guess_content_type


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recognize merchant and total from receipt photos or scans",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Recognize a single receipt, printing JSON to stdout
  receipt-ocr receipt.jpg

  # Several receipts in parallel, with a CSV report
  receipt-ocr scans/*.png --workers 4 --csv report.csv

  # Save every preprocessing stage for inspection
  receipt-ocr receipt.jpg --debug-dir ./debug -v
        """
    )
    parser.add_argument("images", nargs="+",
                        help="Receipt image files (JPEG, PNG or WEBP)")
    parser.add_argument("--config", default="./receipt_ocr.json",
                        help="JSON file with pipeline settings (default: ./receipt_ocr.json)")
    parser.add_argument("--log-db", default="./ocr_processing_logs.db",
                        help="SQLite database for processing logs (default: ./ocr_processing_logs.db)")
    parser.add_argument("--no-log", action="store_true",
                        help="Do not write processing logs to disk")
    parser.add_argument("--csv",
                        help="Also write a CSV report of all outcomes to this path")
    parser.add_argument("--debug-dir",
                        help="Save an image of every preprocessing stage into this directory")
    parser.add_argument("--workers", type=int, default=1,
                        help="Number of receipts to process in parallel (default: 1)")
    parser.add_argument("--languages",
                        help="Tesseract language set, e.g. eng or eng+chi_tra "
                             "(default: config, or RECEIPT_OCR_LANGUAGES env var)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed processing information for debugging")
    return parser


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    environ = dict(os.environ)
    if args.languages:
        environ["RECEIPT_OCR_LANGUAGES"] = args.languages

    try:
        config = load_config(Path(args.config), environ)
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 2

    if args.verbose:
        print(f"[INFO] OCR languages: {config.languages} "
              f"(oem {config.engine_mode}, psm {config.page_segmentation_mode})", file=sys.stderr)

    log_store = MemoryLogStore() if args.no_log else SQLiteLogStore(Path(args.log_db))
    hook = DirectoryDiagnosticHook(Path(args.debug_dir)) if args.debug_dir else None

    processor = ReceiptProcessor(
        log_store=log_store,
        config=config,
        diagnostic_hook=hook,
        verbose=args.verbose,
    )

    # unreadable files never reach the processor; they keep their slot in the output
    outcomes = [None] * len(args.images)
    raws, slots = [], []
    for i, name in enumerate(args.images):
        path = Path(name)
        print(f"[INFO] Processing {path.name}", file=sys.stderr)
        try:
            data = path.read_bytes()
        except OSError as e:
            print(f"[ERROR] Could not read {path}: {e}", file=sys.stderr)
            outcomes[i] = ReceiptFailure(error="Could not read file", filename=path.name)
            continue
        raws.append(RawImage(data=data, content_type=guess_content_type(path), filename=path.name))
        slots.append(i)

    for i, outcome in zip(slots, processor.process_many(raws, max_workers=args.workers)):
        outcomes[i] = outcome

    print(json.dumps([dict(o.to_dict(), filename=o.filename) for o in outcomes], indent=2,
                     ensure_ascii=False))

    if args.csv:
        write_csv(outcomes, Path(args.csv))
        print(f"[OK] Wrote {args.csv}", file=sys.stderr)

    failed = sum(1 for o in outcomes if isinstance(o, ReceiptFailure))
    review = sum(1 for o in outcomes if o.requires_manual_review)
    print(f"[OK] {len(outcomes) - failed} recognized, {failed} failed, "
          f"{review} need manual review", file=sys.stderr)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
