from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
import pytest


def rgba_image(rows: Sequence[Sequence[Tuple[int, int, int, int]]]) -> np.ndarray:
    """(H,W,4) uint8 image from nested (r, g, b, a) tuples."""
    return np.array(rows, dtype=np.uint8)


def solid_image(
    height: int, width: int, rgba: Tuple[int, int, int, int]
) -> np.ndarray:
    out = np.empty((height, width, 4), dtype=np.uint8)
    out[...] = rgba
    return out


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def noisy_image(rng: np.random.Generator) -> np.ndarray:
    """48x40 image with random colours and a spread of alpha values."""
    img = rng.integers(0, 256, size=(48, 40, 4), dtype=np.uint8)
    # make most pixels opaque so the palette is dominated by colour, not alpha
    opaque = rng.random((48, 40)) < 0.7
    img[..., 3][opaque] = 255
    return img
