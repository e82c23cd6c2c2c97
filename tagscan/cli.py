"""Command-line interface for tag extraction and batch CSV export.

Provides subcommands to extract a single capture, process a folder of
captures into a CSV, and serve the REST API.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

import uvicorn

from tagscan.api.app import app
from tagscan.errors import BlurDetectedError, TagScanError
from tagscan.ocr.tag_processor import ENGINES, TagProcessor
from tagscan.preprocessing.geometry import DEFAULT_ROI, ROIRect
from tagscan.utils.config import load_config
from tagscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.webp", "*.bmp")
_CSV_COLUMNS = [
    "filename",
    "status",
    "part_no",
    "part_name",
    "qty",
    "confidence",
    "needs_review",
    "blur_score",
    "processing_time_s",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported capture images in a directory.

    Args:
        input_dir: Directory to scan.

    Returns:
        Sorted list of image paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _parse_roi(values: list[float] | None) -> ROIRect:
    if not values:
        return DEFAULT_ROI
    return ROIRect(*values)


def process_folder(
    input_dir: Path,
    output_csv: Path,
    roi: ROIRect = DEFAULT_ROI,
    engine: str = "local",
    verbose: bool = False,
) -> dict[str, int]:
    """Extract every capture in a folder and export the results to CSV.

    Blurry and failed captures are recorded with their status rather
    than aborting the batch.

    Args:
        input_dir: Directory containing capture images.
        output_csv: Path for the output CSV file.
        roi: Region of interest applied to every capture.
        engine: Extraction engine name.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, blurry, and failed counts.
    """
    processor = TagProcessor(load_config())

    files = _find_images(input_dir)
    if not files:
        logger.warning("No captures found in %s", input_dir)
        return {"total": 0, "successful": 0, "blurry": 0, "failed": 0}

    logger.info("Found %d captures to process", len(files))

    rows: list[dict[str, object]] = []
    counts = {"successful": 0, "blurry": 0, "failed": 0}

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            outcome = processor.process(file_path, roi=roi, engine=engine)
        except BlurDetectedError as exc:
            rows.append(
                {
                    "filename": file_path.name,
                    "status": "blurry",
                    "blur_score": round(exc.verdict.score, 2),
                    "error": str(exc),
                }
            )
            counts["blurry"] += 1
            continue
        except TagScanError as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            rows.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
            counts["failed"] += 1
            continue

        result = outcome.result
        rows.append(
            {
                "filename": file_path.name,
                "status": "success",
                "part_no": result.part_no,
                "part_name": result.part_name,
                "qty": result.qty,
                "confidence": result.confidence,
                "needs_review": outcome.needs_review,
                "blur_score": round(outcome.blur.score, 2),
                "processing_time_s": round(time.time() - start_time, 2),
                "error": None,
            }
        )
        counts["successful"] += 1

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), **counts}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction rows to a CSV file.

    Args:
        rows: One dictionary per capture.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Blurry:     {summary['blurry']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    roi: ROIRect = DEFAULT_ROI,
    engine: str = "local",
    debug_preview: Path | None = None,
) -> dict[str, object]:
    """Extract one capture and return its fields as a dictionary.

    Args:
        file_path: Path to the capture image.
        roi: Region of interest.
        engine: Extraction engine name.
        debug_preview: Where to write the JPEG preview of the ROI.

    Returns:
        Dictionary with filename, fields, confidence, and raw text.
    """
    processor = TagProcessor(load_config())
    outcome = processor.process(file_path, roi=roi, engine=engine)

    if debug_preview and outcome.debug_preview:
        debug_preview.parent.mkdir(parents=True, exist_ok=True)
        debug_preview.write_bytes(outcome.debug_preview)

    result = outcome.result
    return {
        "filename": file_path.name,
        "engine": outcome.engine,
        "part_no": result.part_no,
        "part_name": result.part_name,
        "qty": result.qty,
        "confidence": result.confidence,
        "needs_review": outcome.needs_review,
        "blur_score": round(outcome.blur.score, 2),
        "raw_text": result.raw_text,
    }


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--roi",
        nargs=4,
        type=float,
        metavar=("X", "Y", "W", "H"),
        help="ROI as fractions of the frame (default: 0.2 0.3 0.6 0.4)",
    )
    parser.add_argument(
        "--engine",
        choices=list(ENGINES),
        default="local",
        help="Extraction engine (default: local)",
    )


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Dispatch Tag Scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Extract a single capture")
    single_parser.add_argument("file", type=Path, help="Capture image to process")
    _add_common_arguments(single_parser)
    single_parser.add_argument(
        "--debug-preview", type=Path, help="Write the processed ROI as JPEG"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of captures")
    batch_parser.add_argument("input_dir", type=Path, help="Directory with captures")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    _add_common_arguments(batch_parser)
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the REST API server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    setup_logging(load_config().log_level)

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(
                args.file, _parse_roi(args.roi), args.engine, args.debug_preview
            )
        except TagScanError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(2)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            _parse_roi(args.roi),
            args.engine,
            args.verbose,
        )
    elif args.command == "serve":
        uvicorn.run(app, host=args.host, port=args.port)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
