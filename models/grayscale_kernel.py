"""
Per-pixel grayscale kernel.

L = 0.299 R + 0.587 G + 0.114 B, alpha copied through.

The weights are kept as exact per-mille integers (299 + 587 + 114 == 1000),
so the weighted sum is exact and the only approximation is the final
narrowing to 8 bits, which is chosen by RoundingPolicy.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import numpy as np

from models.pixel import Pixel

WEIGHT_SCALE = 1000
RED_WEIGHT = 299      # 0.299
GREEN_WEIGHT = 587    # 0.587
BLUE_WEIGHT = 114     # 0.114


class RoundingPolicy(str, Enum):
    TRUNCATE = "truncate"   # floor of the exact sum (all terms are non-negative)
    NEAREST = "nearest"     # round half up

    @classmethod
    def parse(cls, value: str | RoundingPolicy) -> RoundingPolicy:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            choices = ", ".join(p.value for p in cls)
            raise ValueError(f"Unknown rounding policy {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class GrayscaleKernel:
    """
    Stateless callable: (pixel_in, x, y) -> pixel_out.

    Safe to call from any number of threads in any order; an instance holds
    nothing but its (immutable) rounding policy.
    """
    rounding: RoundingPolicy = RoundingPolicy.TRUNCATE

    @property
    def _offset(self) -> int:
        return WEIGHT_SCALE // 2 if self.rounding is RoundingPolicy.NEAREST else 0

    # ── Scalar path ──────────────────────────────────────────────────
    def luminance(self, red: int, green: int, blue: int) -> int:
        weighted = red * RED_WEIGHT + green * GREEN_WEIGHT + blue * BLUE_WEIGHT
        return (weighted + self._offset) // WEIGHT_SCALE

    def __call__(self, pixel_in: Pixel, x: int, y: int) -> Pixel:
        # x, y are part of the kernel signature; this transform ignores them.
        gray = self.luminance(pixel_in.red, pixel_in.green, pixel_in.blue)
        return Pixel(gray, gray, gray, pixel_in.alpha)

    # ── Block path (same math, numpy) ────────────────────────────────
    def apply_block(self, block: np.ndarray) -> np.ndarray:
        """
        Apply the kernel to every pixel of a (rows, cols, 4) uint8 block.

        Returns a new uint8 block of the same shape; `block` is only read.
        Results are bit-identical to calling the kernel pixel by pixel.
        """
        wide = block.astype(np.uint32)
        weighted = (wide[..., 0] * RED_WEIGHT
                    + wide[..., 1] * GREEN_WEIGHT
                    + wide[..., 2] * BLUE_WEIGHT)
        gray = ((weighted + self._offset) // WEIGHT_SCALE).astype(np.uint8)

        out = np.empty_like(block, dtype=np.uint8)
        out[..., 0] = gray
        out[..., 1] = gray
        out[..., 2] = gray
        out[..., 3] = block[..., 3]
        return out
