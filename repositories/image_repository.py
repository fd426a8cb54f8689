from pathlib import Path
from typing import Union, Iterable, List
import logging
import signal
import threading
import numpy as np
import cv2
from PIL import Image as PILImage
from coreutils.env import env_get, env_int
from models.image import Image

logger = logging.getLogger(__name__)

DEFAULT_EXTS = ".png,.jpg,.jpeg,.bmp,.webp,.tif,.tiff"
NO_ALPHA_EXTS = {".jpg", ".jpeg", ".bmp"}


class UnsupportedPixelFormatError(ValueError):
    """Raised when a buffer is not a dense (H, W, 4) uint8 RGBA array."""


class ImageRepository:
    """
    Handles file I/O and buffer allocation for Image entities.
    Everything leaving this class is RGBA, 8 bits per channel.
    """
    def __init__(self):
        raw_exts = env_get("VALID_IMAGE_EXTENSIONS", DEFAULT_EXTS)
        self.VALID_EXTS = {ext.strip().lower() for ext in raw_exts.split(",") if ext.strip()}
        self.load_timeout = env_int("IMAGE_LOAD_TIMEOUT", 5)

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def validate_rgba(pixels: np.ndarray) -> None:
        if not isinstance(pixels, np.ndarray):
            raise UnsupportedPixelFormatError(f"Expected a numpy array, got {type(pixels).__name__}")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise UnsupportedPixelFormatError(f"Expected shape (H, W, 4), got {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise UnsupportedPixelFormatError(f"Expected dtype uint8, got {pixels.dtype}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise UnsupportedPixelFormatError(f"Image has no pixels: {pixels.shape[1]}x{pixels.shape[0]}")

    @staticmethod
    def allocate_like(pixels: np.ndarray) -> np.ndarray:
        return np.zeros_like(pixels, dtype=np.uint8)

    @staticmethod
    def to_rgba(arr: np.ndarray) -> np.ndarray:
        """
        Normalise an OpenCV decode result (GRAY, BGR or BGRA) to RGBA.
        Missing alpha becomes fully opaque.
        """
        if arr.dtype != np.uint8:
            raise UnsupportedPixelFormatError(f"Only 8-bit images are supported, got {arr.dtype}")
        if arr.ndim == 2:
            return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
        if arr.ndim == 3 and arr.shape[2] == 3:
            return cv2.cvtColor(arr, cv2.COLOR_BGR2RGBA)
        if arr.ndim == 3 and arr.shape[2] == 4:
            return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
        raise UnsupportedPixelFormatError(f"Unsupported channel layout: {arr.shape}")

    def load(self, path: Union[str, Path], timeout: int | None = None) -> Image:
        path = Path(path)
        timeout = self.load_timeout if timeout is None else timeout

        # SIGALRM only exists on the main thread
        use_alarm = hasattr(signal, "SIGALRM") and threading.current_thread() is threading.main_thread()

        # ─── timeout wrapper (5 s default) ────────────────────────────────
        def _handler(signum, frame):
            raise TimeoutError(f"cv2.imread timed-out after {timeout}s: {path}")

        if use_alarm:
            previous = signal.signal(signal.SIGALRM, _handler)
            signal.alarm(timeout)
        try:
            arr = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
        finally:
            if use_alarm:
                signal.alarm(0)  # always disarm
                signal.signal(signal.SIGALRM, previous)
        # ──────────────────────────────────────────────────────────────────

        if arr is None:
            raise FileNotFoundError(f"Image not found or unreadable: {path}")

        return Image(pixels=self.to_rgba(arr), path=path)

    @staticmethod
    def save(image: Image) -> None:
        if image.path is None:
            raise ValueError("Cannot save an Image without a path")
        path = Path(image.path)
        path.parent.mkdir(parents=True, exist_ok=True)

        pil_img = PILImage.fromarray(np.ascontiguousarray(image.pixels))
        if path.suffix.lower() in NO_ALPHA_EXTS:
            # alpha cannot be stored in these formats
            pil_img = pil_img.convert("RGB")
        pil_img.save(path)

    def list_dir(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> List[Path]:
        """
        Sorted image files in *folder* whose extension is allowed.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        paths = []
        for p in sorted(folder.glob(pattern)):
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            if not p.is_file():
                logger.debug(f"Skipping because not file: {p}")
                continue
            paths.append(p)
        return paths
