# wu_palette/assign.py
from __future__ import annotations

"""
Pixel to palette-index assignment.

Exports:
  build_tags(boxes) -> int16 [33,33,33,33], box index per bucket, -1 if uncovered
  assign_indices(rgba, result, transparent_index) -> uint8 [H,W]

Pixels are classified by the same alpha fade and bucketing used to build the
histogram, so each visible pixel lands in the box whose mean it contributed to.
"""

from typing import Sequence

import numpy as np

from .core_types import Box, IndexImage, QuantizationError, TagTable, assert_rgba_u8
from .histogram import SHAPE_4D
from .pixels import bucket_coordinates, flat_bucket_index
from .quantize import QuantizeResult


def build_tags(boxes: Sequence[Box]) -> TagTable:
    """Label every bucket cell with the index of the box covering it."""
    tags = np.full(SHAPE_4D, -1, dtype=np.int16)
    for i, box in enumerate(boxes):
        tags[box.slices()] = i
    return tags


def assign_indices(
    rgba: np.ndarray, result: QuantizeResult, transparent_index: int
) -> IndexImage:
    """
    Map every pixel of an (H,W,4) image to a palette index.

    Pixels at or below the result's alpha threshold get transparent_index.
    Raises QuantizationError if a visible pixel falls outside every box, which
    only happens when the image differs from the one that was quantized.
    """
    image = assert_rgba_u8(rgba)
    out_shape = image.shape[:-1]
    if not 0 <= int(transparent_index) <= 255:
        raise ValueError(f"transparent_index must be in 0..255, got {transparent_index}")

    visible, buckets = bucket_coordinates(
        image.reshape(-1, 4), result.alpha_threshold, result.alpha_fader
    )
    indices = np.full(visible.shape[0], int(transparent_index), dtype=np.uint8)
    if buckets.shape[0]:
        tags = build_tags(result.boxes).reshape(-1)
        found = tags[flat_bucket_index(buckets)]
        if np.any(found < 0):
            missing = int(np.count_nonzero(found < 0))
            raise QuantizationError(
                f"{missing} visible pixels fall outside every palette box"
            )
        indices[visible] = found.astype(np.uint8)
    return indices.reshape(out_shape)


__all__ = ["build_tags", "assign_indices"]
