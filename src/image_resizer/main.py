"""Main module for the image resizer CLI."""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .core import (
    BatchReport,
    BatchRequest,
    ConfigurationError,
    Fit,
    OutputFormat,
    RuntimeSettings,
    StoreError,
    get_logger,
    setup_logger,
)
from .core.factories import LoggerFactory, open_s3_pipeline
from .core.observability import MetricsCollector

EXIT_OK = 0
EXIT_INPUT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ``image-resizer`` command."""
    parser = argparse.ArgumentParser(
        prog="image-resizer",
        description="Image Resizer - batch resize, re-encode and store images",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert two images to WebP at most 800px wide
  image-resizer run --image https://example.com/a.jpg \\
                    --image key-value://uploads/b.png --width 800

  # Run an input document, overriding the output format
  image-resizer run --input batch.json --format avif --quality 60

  # Show version
  image-resizer version
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Process a batch of images")
    run_parser.add_argument(
        "--input",
        help="JSON input document with an 'images' list and options ('-' for stdin)",
    )
    run_parser.add_argument(
        "--image",
        dest="images",
        action="append",
        help="Image source (http(s)://... or key-value://store/key); repeatable",
    )
    run_parser.add_argument("--width", type=int, help="Target width in pixels")
    run_parser.add_argument("--height", type=int, help="Target height in pixels")
    run_parser.add_argument("--fit", choices=[f.value for f in Fit], help="Resize fit")
    run_parser.add_argument("--position", help="Crop/letterbox anchor, e.g. 'center', 'right top'")
    run_parser.add_argument(
        "--format",
        dest="format",
        choices=[f.value for f in OutputFormat],
        help="Output format (default: webp)",
    )
    run_parser.add_argument("--quality", type=int, help="Quality 1-100 for lossy formats")
    run_parser.add_argument("--background", help="Letterbox/flatten color, e.g. '#ffffff'")
    run_parser.add_argument(
        "--keep-metadata",
        action="store_true",
        help="Keep EXIF/ICC metadata and do not auto-orient",
    )
    run_parser.add_argument(
        "--concurrency", type=int, help="Images processed in parallel (clamped to 1-20)"
    )
    run_parser.add_argument("--output-store", help="Output store (S3 bucket)")
    run_parser.add_argument(
        "--no-dataset", action="store_true", help="Do not append per-item records to the dataset"
    )
    run_parser.add_argument("--report", help="Also write the JSON report to this file")
    run_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers.add_parser("version", help="Show version information")
    return parser


def load_input_document(path: Optional[str]) -> Dict[str, Any]:
    """Read the JSON input document, or return an empty one."""
    if not path:
        return {}
    if path == "-":
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def merge_arguments(document: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Overlay command-line options on the input document."""
    merged = dict(document)
    overrides = {
        "images": args.images,
        "width": args.width,
        "height": args.height,
        "fit": args.fit,
        "position": args.position,
        "format": args.format,
        "quality": args.quality,
        "background": args.background,
        "concurrency": args.concurrency,
        "outputStoreId": args.output_store,
    }
    merged.update({key: value for key, value in overrides.items() if value is not None})
    if args.keep_metadata:
        merged["stripMetadata"] = False
    if args.no_dataset:
        merged["createDataset"] = False
    return merged


async def run_batch(request: BatchRequest, settings: RuntimeSettings) -> BatchReport:
    """
    Run one batch against S3 and persist its report under OUTPUT.

    A report that cannot be persisted is still returned to the caller.
    """
    metrics = MetricsCollector()
    logger = LoggerFactory.create_logger("image-resizer.batch")
    async with open_s3_pipeline(
        settings,
        output_store_id=request.output_store_id,
        create_dataset=request.create_dataset,
        logger=logger,
        metrics_collector=metrics,
    ) as pipeline:
        report = await pipeline.process_batch(request)
        try:
            url = await pipeline.persist_report(report)
        except StoreError as e:
            logger.error(f"Could not persist the report: {e}")
        else:
            logger.info("Report persisted", url=url)

    for phase in metrics.phases():
        summary = metrics.summarize(phase)
        logger.info(
            f"Phase '{phase}' timings",
            count=summary.count,
            failed=summary.failures,
            mean_ms=round(summary.mean * 1000, 1),
            max_ms=round(summary.longest * 1000, 1),
        )
    return report


def run_command(args: argparse.Namespace) -> int:
    """Execute the ``run`` subcommand and return the exit code."""
    logger = get_logger()
    if args.debug:
        setup_logger(level="DEBUG")

    try:
        document = load_input_document(args.input)
        request = BatchRequest.parse_input(merge_arguments(document, args))
        settings = RuntimeSettings.from_env()
    except (OSError, json.JSONDecodeError, ConfigurationError) as e:
        logger.error(f"Invalid input: {e}")
        return EXIT_INPUT_ERROR

    try:
        report = asyncio.run(run_batch(request, settings))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_INPUT_ERROR

    output = json.dumps(report.to_output(), indent=2)
    if args.report:
        with open(args.report, "w", encoding="utf-8") as f:
            f.write(output)
    print(output)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> None:
    """
    Entry point for the command-line interface (CLI) of the Image Resizer.

    "run" processes a batch and prints its JSON report; the exit code is 0
    whenever the batch ran, even if some items failed, and 2 when the input
    or configuration is unusable.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "run":
        sys.exit(run_command(args))

    elif args.command == "version":
        print("Image Resizer CLI")
        print(f"Version {__version__}")
        print("Batch image resizing from URLs and key-value stores")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
