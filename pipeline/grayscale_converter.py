"""
Grayscale Converter Pipeline
Converts a gallery of images to grayscale and saves the results.
"""

from pathlib import Path
from typing import Iterable, List
import logging

from coreutils.env import env_get
from models.image import Image
from services.image_service import ImageService
from services.grayscale_service import GrayscaleService

logger = logging.getLogger(__name__)

# Output location
OUTPUT_DIR = env_get("GRAYSCALE_OUTPUT_DIR", "data/grayscale_gallery")
OUTPUT_EXT = env_get("OUTPUT_IMG_EXT", ".png")


def _unique_output_path(output_dir: Path, stem: str, ext: str, taken: set) -> Path:
    """`<stem>_gray<ext>`, or `<stem>_gray_<n><ext>` when an earlier image of the run holds that name."""
    path = output_dir / f"{stem}_gray{ext}"
    n = 2
    while path in taken:
        path = output_dir / f"{stem}_gray_{n}{ext}"
        n += 1
    return path


def convert_gallery(
    gallery: Iterable[Image],
    *,
    grayscale_service: GrayscaleService = None,
    image_service: ImageService = None,
    output_dir: str | Path = OUTPUT_DIR,
    ext: str = OUTPUT_EXT,
    save: bool = True,
    failures: List[Path | str] | None = None,
) -> List[Image]:
    """
    Convert every Image in *gallery* to grayscale.

    For each image:
    1. Runs the grayscale kernel over all pixels (source left untouched)
    2. Names the result `<stem>_gray<ext>` inside *output_dir*; a name
       already used in this run gets a `_2`, `_3`, ... suffix
    3. Saves it unless *save* is False

    An image whose conversion or save fails is logged, added to *failures*
    (when given) and skipped; the rest of the gallery is still converted.

    Args:
        gallery: Images to convert (any iterable, consumed once)
        grayscale_service: Service running the conversion
        image_service: Service for image I/O
        output_dir: Directory for the converted images
        ext: File extension for the converted images
        failures: Receives the source path (or generated stem) of each failed image

    Returns:
        List[Image]: The converted images with their output paths
    """
    grayscale_service = grayscale_service or GrayscaleService()
    image_service = image_service or ImageService()
    output_dir = Path(output_dir)
    ext = ext if ext.startswith(".") else f".{ext}"

    converted = []
    taken = set()
    for i, img in enumerate(gallery, 1):
        stem = img.path.stem if img.path else f"image_{i:04d}"
        out_path = _unique_output_path(output_dir, stem, ext, taken)
        if out_path.name != f"{stem}_gray{ext}":
            logger.warning(f"{stem}_gray{ext} is already used in this run, writing {img.path} to {out_path.name}")

        try:
            gray = grayscale_service.to_grayscale(img)
            gray.path = out_path
            if save:
                image_service.save(gray)
        except (OSError, ValueError) as err:
            logger.error(f"Failed to convert {img.path or stem}: {err}")
            if failures is not None:
                failures.append(img.path or stem)
            continue

        taken.add(out_path)
        print(f"   ⚫ Converted image {i}: {gray.path.name} ({gray.width}x{gray.height})")
        converted.append(gray)

    return converted


def log_conversion_results(converted: List[Image]) -> None:
    """
    Print a summary of the converted images.

    Args:
        converted: Images returned by convert_gallery
    """
    if not converted:
        print("No images were converted.")
        return

    print(f"{'='*60}")
    print(f"GRAYSCALE CONVERSION - {len(converted)} IMAGE(S)")
    print(f"{'='*60}")

    for i, img in enumerate(converted, 1):
        filename = Path(img.path).name if img.path else "Unknown"
        print(f"{i}. {img.width:5d}x{img.height:<5d} | File: {filename}")

    print(f"{'='*60}\n")
