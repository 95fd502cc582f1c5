"""
Command-line interface for scanread.

Usage:
    scanread --input <image_or_folder> --output <output_dir> [options]

Examples:
    # Recognize a single scan with Tesseract
    scanread --input page.png --output ./output

    # Faster single-pass run on a folder of scans
    scanread --input ./scans --output ./output --single-pass

    # Debug mode with line box visualization
    scanread --input page.png --output ./output --debug
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__

logger = logging.getLogger("scanread")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="scanread",
        description="Normalize scanned pages and recognize their text with multi-pass consensus",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Recognize a scan and write page.json:
    scanread --input page.png --output ./output

  Medical prescriptions with spell checking:
    scanread --input rx.jpg --output ./output --medical --spell-check

  Debug mode with line box visualization:
    scanread --input page.png --output ./output --debug
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input image file or folder of images"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for <name>.json results"
    )

    # Recognition options
    parser.add_argument(
        "--engine",
        choices=["tesseract", "easyocr"],
        default="tesseract",
        help="Recognition engine (default: tesseract)"
    )

    parser.add_argument(
        "--max-passes",
        type=int,
        default=None,
        help="Maximum recognition passes per line (default: 5)"
    )

    parser.add_argument(
        "--single-pass",
        action="store_true",
        help="Run one enhanced pass instead of multi-pass consensus"
    )

    parser.add_argument(
        "--no-aggressive",
        action="store_true",
        help="Skip the most aggressive enhancement variants"
    )

    parser.add_argument(
        "--medical",
        action="store_true",
        help="Accept medical terms, abbreviations and drug names as known words"
    )

    parser.add_argument(
        "--spell-check",
        action="store_true",
        help="Replace unknown words with close dictionary words"
    )

    parser.add_argument(
        "--language",
        default=None,
        help="Engine language tag (default: eng)"
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-call engine timeout in seconds (default: 30)"
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Worker threads per line (default: 4)"
    )

    parser.add_argument(
        "--no-segmentation",
        action="store_true",
        help="Recognize each page as one region instead of line by line"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (writes images with detected line boxes)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def build_config(args):
    """Build a PipelineConfig from environment defaults and CLI options."""
    from .config import get_config

    config = get_config()
    recognition = config.recognition

    if args.max_passes is not None:
        recognition.max_passes = max(1, args.max_passes)
    if args.single_pass:
        recognition.enable_multi_pass = False
    if args.no_aggressive:
        recognition.aggressive_enhancement = False
    if args.medical:
        recognition.medical_mode = True
    if args.spell_check:
        recognition.spell_check = True
    if args.language:
        recognition.language = args.language
    if args.timeout is not None:
        recognition.engine_timeout = args.timeout if args.timeout > 0 else None
    if args.workers is not None:
        recognition.max_workers = max(1, args.workers)
    if args.no_segmentation:
        config.segmentation.segment_lines = False
    if args.debug:
        config.debug_mode = True

    return config


def run_pipeline(args) -> int:
    """Recognize every input image and write the results."""
    from .engines import create_engine
    from .errors import ScanReadError
    from .io import load_image, load_images_from_folder, detect_input_type
    from .io import save_json, save_image, ensure_dir
    from .pipeline import ScanRecognizer

    start_time = time.time()

    output_dir = ensure_dir(args.output)
    input_path = Path(args.input)
    input_type = detect_input_type(input_path)
    logger.info(f"Input type detected: {input_type}")

    if input_type == "image":
        pages = [(input_path, load_image(input_path))]
    elif input_type == "image_folder":
        pages = load_images_from_folder(input_path)
    else:
        logger.error(f"Unsupported input: {input_path}")
        return 1

    if not pages:
        logger.error("No images to process")
        return 1

    config = build_config(args)
    engine = create_engine(args.engine, language=config.recognition.language)

    failures = 0
    summaries: List[str] = []

    with ScanRecognizer(engine, config) as recognizer:
        for path, buffer in pages:
            logger.info(f"Processing {path.name}")
            try:
                result = recognizer.recognize(buffer)
            except ScanReadError as e:
                logger.error(f"{path.name}: {e}")
                failures += 1
                continue

            json_path = save_json(result.to_dict(), output_dir / f"{path.stem}.json")
            logger.info(f"Saved JSON: {json_path}")

            if result.debug_image is not None:
                debug_path = save_image(result.debug_image, output_dir / "debug" / f"{path.stem}_lines.png")
                logger.debug(f"Saved debug image: {debug_path}")

            summaries.append(
                f"  {path.name}: {len(result.lines)} line(s), "
                f"confidence {result.confidence:.2%}, {len(result.corrections)} correction(s)"
            )

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("RECOGNITION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        print(f"Pages processed: {len(summaries)} (failed: {failures})")
        print(f"Processing time: {elapsed:.2f}s")
        print()
        for line in summaries:
            print(line)
        print("=" * 60)

    return 0 if failures == 0 else 1


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
