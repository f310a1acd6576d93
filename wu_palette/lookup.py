# wu_palette/lookup.py
from __future__ import annotations

"""
Palette entries from boxes.

build_lookups(h, boxes) -> List[Optional[Pixel]]
  Mean colour of each box, channel sums over weight truncated to 8 bits.
  Empty boxes give None; callers must not point pixels at them.
"""

from typing import List, Optional, Sequence

from .core_types import Box, Pixel
from .histogram import Histogram
from .moments import volume


def build_lookups(histogram: Histogram, boxes: Sequence[Box]) -> List[Optional[Pixel]]:
    """Return one palette entry per box, None for boxes holding no pixels."""
    return [volume(histogram, box).mean() for box in boxes]


__all__ = ["build_lookups"]
