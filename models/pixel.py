from __future__ import annotations
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple

CHANNEL_MIN = 0
CHANNEL_MAX = 255


class Coordinate(NamedTuple):
    """Position of a pixel inside a width x height grid."""
    x: int
    y: int


@dataclass(frozen=True)
class Pixel:
    """
    Simple value object: one RGBA pixel, 8 bits per channel.
    Channel order is fixed as (red, green, blue, alpha).
    """
    red: int
    green: int
    blue: int
    alpha: int

    def __post_init__(self):
        for name in ("red", "green", "blue", "alpha"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")
            if not CHANNEL_MIN <= value <= CHANNEL_MAX:
                raise ValueError(f"{name}={value} is outside [{CHANNEL_MIN}, {CHANNEL_MAX}]")

    @classmethod
    def from_array(cls, values: Sequence) -> Pixel:
        """
        Build a Pixel from any 4-element sequence (tuple, list, numpy row).
        numpy scalars are converted to plain ints so later arithmetic cannot wrap.
        """
        if len(values) != 4:
            raise ValueError(f"Expected 4 channels (RGBA), got {len(values)}")
        return cls(*(int(v) for v in values))

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return self.red, self.green, self.blue, self.alpha
