from pathlib import Path
from typing import Iterable, List, Union
import numpy as np
from models.image import Image
from repositories.image_repository import ImageRepository


class ImageService:
    """I/O and buffer helpers.  No pixel math here."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: str | Path) -> Image:
        """Load a single image from disk into an RGBA Image object."""
        return self.image_repository.load(path)

    def list_gallery(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> List[Path]:
        """
        Image files inside *folder*, sorted, filtered by extension.
        Nothing is decoded here; load them one at a time.
        """
        return self.image_repository.list_dir(folder,
                                              recursive=recursive,
                                              exts=exts)

    def validate(self, pixels: np.ndarray) -> None:
        """
        Boundary check before any kernel runs: dense (H, W, 4) uint8.
        Raises UnsupportedPixelFormatError otherwise.
        """
        self.image_repository.validate_rgba(pixels)

    def allocate_output(self, pixels: np.ndarray) -> np.ndarray:
        """
        Allocate a destination buffer with the same dimensions as `pixels`.
        """
        return self.image_repository.allocate_like(pixels)

    def save(self, image: Image) -> None:
        """
        Business-level method to save the image to its path.
        """
        self.image_repository.save(image)
