import numpy as np
import pytest

CONFIG_VARS = (
    "GRAYSCALE_ROUNDING",
    "GRAYSCALE_DISPATCH_MODE",
    "GRAYSCALE_WORKERS",
    "GRAYSCALE_TILE_ROWS",
    "VALID_IMAGE_EXTENSIONS",
    "IMAGE_LOAD_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test against the built-in defaults."""
    for var in CONFIG_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def rgba_pixels(rng):
    """Random 23x17 (H x W) RGBA buffer with varied alpha."""
    return rng.integers(0, 256, size=(23, 17, 4), dtype=np.uint8)
