from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Tuple
import logging
import os

import numpy as np
from tqdm import tqdm

from coreutils.env import env_get, env_int
from models.pixel import Coordinate, Pixel
from services.image_service import ImageService

logger = logging.getLogger(__name__)

PixelKernel = Callable[[Pixel, int, int], Pixel]


class DispatchMode(str, Enum):
    PIXEL = "pixel"              # one kernel call per coordinate
    VECTORIZED = "vectorized"    # one apply_block call per band

    @classmethod
    def parse(cls, value: str | DispatchMode) -> DispatchMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown dispatch mode {value!r} (expected one of: {choices})") from None


@dataclass
class SweepResult:
    """
    Output of a full-image sweep.
    `visits` counts how many times each (y, x) was processed.
    """
    pixels: np.ndarray
    visits: np.ndarray
    bands: int
    mode: DispatchMode

    @property
    def fully_covered(self) -> bool:
        return bool(np.all(self.visits == 1))


def partition_rows(height: int, tile_rows: int) -> List[Tuple[int, int]]:
    """
    Split [0, height) into contiguous half-open row bands of at most
    `tile_rows` rows.
    """
    if tile_rows < 1:
        raise ValueError(f"tile_rows must be >= 1, got {tile_rows}")
    return [(start, min(start + tile_rows, height)) for start in range(0, height, tile_rows)]


def band_coordinates(start: int, stop: int, width: int) -> Iterator[Coordinate]:
    """Row-major coordinates of rows [start, stop) in a grid `width` pixels wide."""
    for y in range(start, stop):
        for x in range(width):
            yield Coordinate(x, y)


class KernelDispatchService:
    """
    Runs a per-pixel kernel over every coordinate of an RGBA buffer.

    *   Rows are split into bands; bands run on a thread pool.
    *   Each band writes only its own slice of the destination, so no
        locking is needed.
    *   The source is handed to workers as a read-only view.
    """

    def __init__(self,
                 workers: int | None = None,
                 tile_rows: int | None = None,
                 mode: str | DispatchMode | None = None,
                 show_progress: bool = False):
        self.workers = workers or env_int("GRAYSCALE_WORKERS", os.cpu_count() or 1)
        self.tile_rows = tile_rows or env_int("GRAYSCALE_TILE_ROWS", 64)
        self.mode = DispatchMode.parse(mode or env_get("GRAYSCALE_DISPATCH_MODE", DispatchMode.VECTORIZED.value))
        self.show_progress = show_progress
        self.image_service = ImageService()

    # ─── Band workers ──────────────────────────────────────────────
    @staticmethod
    def _run_band_pixels(kernel: PixelKernel, source: np.ndarray, dest: np.ndarray,
                         visits: np.ndarray, start: int, stop: int) -> None:
        for x, y in band_coordinates(start, stop, source.shape[1]):
            dest[y, x] = kernel(Pixel.from_array(source[y, x]), x, y).as_tuple()
            visits[y, x] += 1

    @staticmethod
    def _run_band_vectorized(kernel, source: np.ndarray, dest: np.ndarray,
                             visits: np.ndarray, start: int, stop: int) -> None:
        dest[start:stop] = kernel.apply_block(source[start:stop])
        visits[start:stop] += 1

    # ─── Public API ────────────────────────────────────────────────
    def sweep(self, kernel: PixelKernel, source: np.ndarray, *,
              mode: str | DispatchMode | None = None,
              workers: int | None = None) -> SweepResult:
        """
        Apply `kernel` to every pixel of `source` and return a new buffer.

        Args:
            kernel: callable (pixel, x, y) -> pixel; vectorized mode also
                needs an `apply_block` method
            source: (H, W, 4) uint8 RGBA buffer, never modified
            mode: override the configured DispatchMode
            workers: override the configured thread count

        Returns:
            SweepResult with the destination buffer and visit counts.
        """
        self.image_service.validate(source)
        mode = DispatchMode.parse(mode) if mode is not None else self.mode
        workers = workers or self.workers

        if mode is DispatchMode.VECTORIZED and not hasattr(kernel, "apply_block"):
            logger.debug(f"{type(kernel).__name__} has no apply_block, falling back to pixel mode")
            mode = DispatchMode.PIXEL
        run_band = self._run_band_pixels if mode is DispatchMode.PIXEL else self._run_band_vectorized

        read_only = source.view()
        read_only.flags.writeable = False

        height, width = source.shape[:2]
        dest = self.image_service.allocate_output(source)
        visits = np.zeros((height, width), dtype=np.uint16)
        bands = partition_rows(height, self.tile_rows)

        logger.debug(f"Sweeping {width}x{height} in {len(bands)} band(s), mode={mode.value}, workers={workers}")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(run_band, kernel, read_only, dest, visits, start, stop)
                       for start, stop in bands]
            for future in tqdm(as_completed(futures), total=len(futures), desc="sweep",
                               ncols=70, disable=not self.show_progress):
                future.result()  # re-raise worker errors

        return SweepResult(pixels=dest, visits=visits, bands=len(bands), mode=mode)
