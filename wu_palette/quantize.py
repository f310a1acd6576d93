# wu_palette/quantize.py
from __future__ import annotations

"""
Quantizer entry point.

quantize(pixels, alpha_threshold=10, alpha_fader=70, max_colors=256,
         histogram=None, *, workers=1, debug=False) -> QuantizeResult

Pipeline:
  build_histogram -> integrate -> split_boxes -> build_lookups

The result's palette and boxes are parallel lists. Boxes without pixels are
left out of both, so every returned box holds at least one pixel and the
palette may be shorter than max_colors (an all-transparent image gives an
empty palette). No transparent slot is reserved here; see image_io.quantize_image.
"""

import time
from dataclasses import dataclass, field
from typing import Any, List, Optional

from .constants import (
    DEFAULT_ALPHA_FADER,
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_MAX_COLORS,
    MAX_COLORS,
    MIN_COLORS,
)
from .core_types import Box, Pixel
from .histogram import Histogram, build_histogram, check_alpha_params
from .lookup import build_lookups
from .moments import integrate, volume
from .split import split_boxes
from .utils import debug_log, format_seconds_compact, key_value_pairs_to_string


@dataclass(frozen=True)
class QuantizeResult:
    """Palette entries and the bucket-space boxes they were averaged from."""

    palette: List[Pixel]
    boxes: List[Box]
    weights: List[int] = field(default_factory=list)
    alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD
    alpha_fader: int = DEFAULT_ALPHA_FADER

    @property
    def pixel_count(self) -> int:
        """Pixels counted into the histogram (alpha above the threshold)."""
        return sum(self.weights)

    def __len__(self) -> int:
        return len(self.palette)


def check_max_colors(max_colors: int) -> None:
    if not MIN_COLORS <= int(max_colors) <= MAX_COLORS:
        raise ValueError(
            f"max_colors must be in {MIN_COLORS}..{MAX_COLORS}, got {max_colors}"
        )


def run_quantize(
    pixels: Any,
    alpha_threshold: int,
    alpha_fader: int,
    box_count: int,
    histogram: Optional[Histogram] = None,
    *,
    workers: int = 1,
    debug: bool = False,
) -> QuantizeResult:
    """Unchecked pipeline behind quantize(); box_count may be any value >= 1."""
    t0 = time.perf_counter()
    histogram = build_histogram(
        pixels, alpha_threshold, alpha_fader, histogram, workers=workers
    )
    t1 = time.perf_counter()
    integrate(histogram)
    t2 = time.perf_counter()
    boxes = split_boxes(histogram, box_count)
    t3 = time.perf_counter()
    lookups = build_lookups(histogram, boxes)

    palette: List[Pixel] = []
    kept: List[Box] = []
    weights: List[int] = []
    for box, entry in zip(boxes, lookups):
        if entry is None:
            continue
        palette.append(entry)
        kept.append(box)
        weights.append(volume(histogram, box).weight)
    t4 = time.perf_counter()

    if debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Counted", sum(weights)),
                    ("Boxes", len(boxes)),
                    ("Empty", len(boxes) - len(kept)),
                    ("Histogram", format_seconds_compact(t1 - t0)),
                    ("Moments", format_seconds_compact(t2 - t1)),
                    ("Split", format_seconds_compact(t3 - t2)),
                    ("Lookups", format_seconds_compact(t4 - t3)),
                ]
            )
        )

    return QuantizeResult(
        palette=palette,
        boxes=kept,
        weights=weights,
        alpha_threshold=int(alpha_threshold),
        alpha_fader=int(alpha_fader),
    )


def quantize(
    pixels: Any,
    alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
    alpha_fader: int = DEFAULT_ALPHA_FADER,
    max_colors: int = DEFAULT_MAX_COLORS,
    histogram: Optional[Histogram] = None,
    *,
    workers: int = 1,
    debug: bool = False,
) -> QuantizeResult:
    """
    Reduce pixels to at most max_colors palette entries with Wu's algorithm.

    Args:
      pixels          : uint8 [H,W,4] / [N,4] RGBA array, Pillow image, or rows
                        of Pixel / (r, g, b, a) tuples
      alpha_threshold : pixels with alpha <= threshold are left out (0..255)
      alpha_fader     : semi-transparent alpha bias, alpha + alpha % fader (1..255)
      max_colors      : palette size cap (2..256)
      histogram       : reusable buffer; cleared before use when given
      workers         : threads for the histogram build
      debug           : print per-stage timings

    Returns:
      QuantizeResult with parallel palette / boxes lists.

    Raises:
      InvalidPixelFormat for malformed pixel sources, ValueError for parameters
      out of range.
    """
    check_alpha_params(alpha_threshold, alpha_fader)
    check_max_colors(max_colors)
    return run_quantize(
        pixels,
        alpha_threshold,
        alpha_fader,
        int(max_colors),
        histogram,
        workers=workers,
        debug=debug,
    )


__all__ = ["QuantizeResult", "quantize", "run_quantize", "check_max_colors"]
