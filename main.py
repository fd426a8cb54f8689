#!/usr/bin/env python3
"""
Grayscale batch converter.
Converts image files (or every image inside the given directories) to
grayscale RGBA, alpha preserved, and writes them to an output directory.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterator, List

from coreutils.logging import setup_logging
from models.grayscale_kernel import RoundingPolicy
from models.image import Image
from pipeline.grayscale_converter import OUTPUT_DIR, convert_gallery, log_conversion_results
from repositories.image_repository import UnsupportedPixelFormatError
from services.grayscale_service import GrayscaleService
from services.image_service import ImageService
from services.kernel_dispatch_service import DispatchMode, KernelDispatchService

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="grayscale-convert",
        description="Convert RGBA images to grayscale (0.299 R + 0.587 G + 0.114 B, alpha preserved)",
    )
    parser.add_argument("inputs", nargs="+", help="image files or directories")
    parser.add_argument("-o", "--output-dir", default=OUTPUT_DIR,
                        help=f"where converted images are written (default: {OUTPUT_DIR})")
    parser.add_argument("--rounding", choices=[p.value for p in RoundingPolicy], default=None,
                        help="narrowing policy (default: GRAYSCALE_ROUNDING or truncate)")
    parser.add_argument("--mode", choices=[m.value for m in DispatchMode], default=None,
                        help="dispatch mode (default: GRAYSCALE_DISPATCH_MODE or vectorized)")
    parser.add_argument("--workers", type=int, default=None, help="number of sweep threads")
    parser.add_argument("--tile-rows", type=int, default=None, help="rows per work band")
    parser.add_argument("--recursive", action="store_true", help="descend into sub-directories")
    parser.add_argument("--progress", action="store_true", help="show a progress bar per image")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def expand_inputs(inputs: List[str], image_service: ImageService, recursive: bool = False) -> List[Path]:
    """Turn the CLI inputs into a flat list of image files."""
    paths = []
    for raw in inputs:
        path = Path(raw)
        if path.is_dir():
            paths.extend(image_service.list_gallery(path, recursive=recursive))
        else:
            paths.append(path)
    return paths


def _load_all(paths: List[Path], image_service: ImageService, failures: List[Path]) -> Iterator[Image]:
    for path in paths:
        try:
            yield image_service.load(path)
        except (FileNotFoundError, TimeoutError, UnsupportedPixelFormatError) as err:
            logger.error(f"Failed to load {path}: {err}")
            failures.append(path)


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers is not None and args.workers < 1:
        parser.error("--workers must be >= 1")
    if args.tile_rows is not None and args.tile_rows < 1:
        parser.error("--tile-rows must be >= 1")

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        image_service = ImageService()
        dispatcher = KernelDispatchService(workers=args.workers, tile_rows=args.tile_rows,
                                           mode=args.mode, show_progress=args.progress)
        grayscale_service = GrayscaleService(rounding=args.rounding, dispatcher=dispatcher)
    except ValueError as err:
        # bad GRAYSCALE_* / IMAGE_* environment values
        parser.error(str(err))

    paths = expand_inputs(args.inputs, image_service, recursive=args.recursive)
    if not paths:
        logger.warning("No images found in the given inputs")
        return 1

    failures: List[Path] = []
    converted = convert_gallery(_load_all(paths, image_service, failures),
                                grayscale_service=grayscale_service,
                                image_service=image_service,
                                output_dir=args.output_dir,
                                failures=failures)
    log_conversion_results(converted)

    if failures:
        logger.error(f"{len(failures)} of {len(paths)} input(s) failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
