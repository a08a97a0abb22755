"""Command-line interface for identity document extraction.

Provides an ``extract`` subcommand printing one document's result as
JSON and a ``batch`` subcommand exporting a folder of images to CSV.
"""

import argparse
import csv
import json
import sys
from pathlib import Path

from src.extraction.document_types import DocumentType
from src.ocr.document_processor import DocumentProcessor, DocumentResult
from src.utils.config import load_config
from src.utils.exceptions import DocumentOCRError
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = (
    "*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp", "*.webp"
)
_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "ocr_confidence",
    "processing_time_ms",
    "validation_passed",
    "validation_confidence",
    "missing_fields",
    "low_quality_fields",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory, sorted by name.

    Files written by the normalizer (``*_processed.*``) are skipped.
    """
    files: set[Path] = set()
    for ext in _SUPPORTED_EXTENSIONS:
        files.update(input_dir.glob(ext))
        files.update(input_dir.glob(ext.upper()))
    return sorted(f for f in files if not f.stem.endswith("_processed"))


def _result_row(file_path: Path, result: DocumentResult) -> dict[str, object]:
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success",
        "document_type": result.document_type.value,
        "ocr_confidence": result.confidence,
        "processing_time_ms": result.processing_time_ms,
        "validation_passed": result.validation.is_valid,
        "validation_confidence": result.validation.confidence,
        "missing_fields": ";".join(result.validation.missing_fields),
        "low_quality_fields": ";".join(result.validation.low_quality_fields),
        "error": None,
    }
    row.update(result.fields)
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: str = "unknown",
    verbose: bool = False,
    processor: DocumentProcessor | None = None,
) -> dict[str, int]:
    """Process all images in a folder and export results to CSV.

    Documents that cannot be read are recorded as failed rows; the
    remaining documents are still processed.

    Args:
        input_dir: Directory containing document images.
        output_csv: Path for the output CSV file.
        document_type: Declared type applied to every document.
        verbose: Whether to print per-file progress.
        processor: Pipeline to use; one is built from config if omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))
    owns_processor = processor is None
    if processor is None:
        processor = DocumentProcessor(load_config())

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0
    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")
            try:
                result = processor.process_document(file_path, document_type)
            except DocumentOCRError as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                results.append(
                    {"filename": file_path.name, "status": "failed", "error": str(exc)}
                )
                failed += 1
                continue
            results.append(_result_row(file_path, result))
            successful += 1
    finally:
        if owns_processor:
            processor.close()

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write result rows to CSV: meta columns first, then field columns."""
    if not results:
        return

    field_columns: list[str] = []
    for r in results:
        for key in r:
            if key not in _META_COLUMNS and key not in field_columns:
                field_columns.append(key)
    present = {key for r in results for key in r}
    columns = [c for c in _META_COLUMNS if c in present] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    document_type: str = "unknown",
    processor: DocumentProcessor | None = None,
) -> dict[str, object]:
    """Process a single document and return its serialized result.

    Raises:
        DocumentOCRError: If the document could not be read.
    """
    if processor is not None:
        return processor.process_document(file_path, document_type).to_dict()

    with DocumentProcessor(load_config()) as owned:
        return owned.process_document(file_path, document_type).to_dict()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    types = [t.value for t in DocumentType]
    parser = argparse.ArgumentParser(
        description="Identity document OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of images")
    batch_parser.add_argument("input_dir", type=Path, help="Directory with images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t",
        "--type",
        choices=types,
        default="unknown",
        dest="doc_type",
        help="Document type (default: unknown)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single image")
    single_parser.add_argument("file", type=Path, help="Document image to process")
    single_parser.add_argument(
        "-t",
        "--type",
        choices=types,
        default="unknown",
        dest="doc_type",
        help="Document type (default: unknown)",
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.logging.level, config.logging.format)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        with DocumentProcessor(config) as processor:
            process_folder(
                args.input_dir, args.output, args.doc_type, args.verbose, processor
            )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            with DocumentProcessor(config) as processor:
                result = extract_single(args.file, args.doc_type, processor)
        except DocumentOCRError as exc:
            print(f"Error: could not read document: {exc}", file=sys.stderr)
            sys.exit(2)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
