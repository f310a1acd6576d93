# wu_palette/histogram.py
from __future__ import annotations

"""
4D colour-moment histogram.

The buffer is 33 cells per axis in (alpha, red, green, blue) order. Cell 0 of
each axis stays zero so the prefix-sum pass in moments.py needs no boundary
checks; cells 1..32 hold the (value >> 3) + 1 buckets.

Exports:
  Histogram                 : owned buffer with clear / accumulate / merge
  build_histogram(source, alpha_threshold, alpha_fader, histogram=None, workers=1)
  histogram_workers(n_pixels, workers) -> threads used for the build
  check_alpha_params(alpha_threshold, alpha_fader)
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from typing import Any, Optional, Tuple

import numpy as np

from .constants import SIDE_SIZE, TABLE_SIZE
from .core_types import ColorMoment, HistogramStateError, U8RGBA
from .pixels import bucket_coordinates, flat_bucket_index, to_rgba_array
from .utils import split_rows_into_parts

# rows of `counts`
WEIGHT, ALPHA_SUM, RED_SUM, GREEN_SUM, BLUE_SUM = range(5)

SHAPE_4D: Tuple[int, int, int, int] = (SIDE_SIZE, SIDE_SIZE, SIDE_SIZE, SIDE_SIZE)

# each extra build thread holds a few 33^4 row temporaries; only worth it past this
PIXELS_PER_WORKER = 1 << 20


def check_alpha_params(alpha_threshold: int, alpha_fader: int) -> None:
    """Raise ValueError unless threshold is in 0..255 and fader in 1..255."""
    if not 0 <= int(alpha_threshold) <= 255:
        raise ValueError(f"alpha_threshold must be in 0..255, got {alpha_threshold}")
    if not 1 <= int(alpha_fader) <= 255:
        raise ValueError(f"alpha_fader must be in 1..255, got {alpha_fader}")


class Histogram:
    """
    Moment histogram over the 33^4 bucket grid.

    counts  : int64 [5, 33^4] (weight, alpha, red, green, blue sums)
    moments : float64 [33^4]  sum of a^2 + r^2 + g^2 + b^2

    Lifecycle: clear -> accumulate/merge (any number) -> integrate (read-only).
    Reuse across calls goes through clear().
    """

    def __init__(self) -> None:
        self.counts = np.zeros((5, TABLE_SIZE), dtype=np.int64)
        self.moments = np.zeros(TABLE_SIZE, dtype=np.float64)
        self.integrated = False

    @staticmethod
    def index(a: int, r: int, g: int, b: int) -> int:
        return ((a * SIDE_SIZE + r) * SIDE_SIZE + g) * SIDE_SIZE + b

    def clear(self) -> None:
        self.counts.fill(0)
        self.moments.fill(0.0)
        self.integrated = False

    def counts_4d(self) -> np.ndarray:
        """View of counts shaped [5, 33, 33, 33, 33]."""
        return self.counts.reshape((5,) + SHAPE_4D)

    def moments_4d(self) -> np.ndarray:
        """View of moments shaped [33, 33, 33, 33]."""
        return self.moments.reshape(SHAPE_4D)

    def _ensure_open(self, action: str) -> None:
        if self.integrated:
            raise HistogramStateError(
                f"cannot {action} an integrated histogram; call clear() first"
            )

    def accumulate(
        self,
        rgba: U8RGBA,
        alpha_threshold: int,
        alpha_fader: int,
        lock: Optional[threading.Lock] = None,
    ) -> int:
        """
        Add every pixel of an [N,4] RGBA array with alpha > alpha_threshold.

        Channel sums take the pixel as read; the faded alpha only picks the
        bucket. With a lock, each table row is added under it so several spans
        can feed one histogram. Returns the number of pixels counted.
        """
        self._ensure_open("accumulate into")
        flat = rgba.reshape(-1, 4)
        visible, buckets = bucket_coordinates(flat, alpha_threshold, alpha_fader)
        n = int(buckets.shape[0])
        if n == 0:
            return 0

        idx = flat_bucket_index(buckets)
        shown = flat[visible].astype(np.int64)
        r, g, b, a = shown[:, 0], shown[:, 1], shown[:, 2], shown[:, 3]
        guard = lock if lock is not None else nullcontext()

        weight = np.bincount(idx, minlength=TABLE_SIZE)
        with guard:
            self.counts[WEIGHT] += weight
        del weight
        # float64 bincount is exact for any sum below 2**53
        for row, values in (
            (ALPHA_SUM, a),
            (RED_SUM, r),
            (GREEN_SUM, g),
            (BLUE_SUM, b),
        ):
            sums = np.bincount(
                idx, weights=values.astype(np.float64), minlength=TABLE_SIZE
            ).astype(np.int64)
            with guard:
                self.counts[row] += sums
        squares = (a * a + r * r + g * g + b * b).astype(np.float64)
        moments = np.bincount(idx, weights=squares, minlength=TABLE_SIZE)
        with guard:
            self.moments += moments
        return n

    def merge(self, other: "Histogram") -> "Histogram":
        """Add another raw histogram cell-by-cell; both must be unintegrated."""
        self._ensure_open("merge into")
        if other.integrated:
            raise HistogramStateError("cannot merge an integrated histogram")
        self.counts += other.counts
        self.moments += other.moments
        return self

    def __iadd__(self, other: "Histogram") -> "Histogram":
        return self.merge(other)

    def cell(self, a: int, r: int, g: int, b: int) -> ColorMoment:
        """Moment stored at one cell (raw or cumulative, depending on state)."""
        i = self.index(a, r, g, b)
        c = self.counts[:, i]
        return ColorMoment(
            int(c[WEIGHT]),
            int(c[ALPHA_SUM]),
            int(c[RED_SUM]),
            int(c[GREEN_SUM]),
            int(c[BLUE_SUM]),
            float(self.moments[i]),
        )

    def total(self) -> ColorMoment:
        """Moment of every counted pixel."""
        if self.integrated:
            last = SIDE_SIZE - 1
            return self.cell(last, last, last, last)
        sums = self.counts.sum(axis=1)
        return ColorMoment(
            int(sums[WEIGHT]),
            int(sums[ALPHA_SUM]),
            int(sums[RED_SUM]),
            int(sums[GREEN_SUM]),
            int(sums[BLUE_SUM]),
            float(self.moments.sum()),
        )


def histogram_workers(n_pixels: int, workers: int) -> int:
    """Threads worth using for n_pixels: at most one per PIXELS_PER_WORKER."""
    return max(1, min(int(workers), int(n_pixels) // PIXELS_PER_WORKER))


def build_histogram(
    source: Any,
    alpha_threshold: int,
    alpha_fader: int,
    histogram: Optional[Histogram] = None,
    *,
    workers: int = 1,
) -> Histogram:
    """
    Scan a pixel source into a histogram.

    If `histogram` is given it is cleared first, otherwise a new one is made.
    With workers > 1 and enough pixels, contiguous spans are accumulated on
    threads straight into the one histogram, one table row at a time under a
    lock, so memory stays at one histogram plus a row temporary per thread.
    """
    check_alpha_params(alpha_threshold, alpha_fader)
    rgba = to_rgba_array(source)

    if histogram is None:
        histogram = Histogram()
    else:
        histogram.clear()

    n_workers = histogram_workers(rgba.shape[0], workers)
    if n_workers <= 1:
        histogram.accumulate(rgba, alpha_threshold, alpha_fader)
        return histogram

    lock = threading.Lock()

    def _span(span: Tuple[int, int]) -> int:
        return histogram.accumulate(
            rgba[span[0] : span[1]], alpha_threshold, alpha_fader, lock
        )

    with ThreadPoolExecutor(max_workers=n_workers) as ex:
        list(ex.map(_span, split_rows_into_parts(rgba.shape[0], n_workers)))
    return histogram


__all__ = [
    "Histogram",
    "build_histogram",
    "histogram_workers",
    "PIXELS_PER_WORKER",
    "check_alpha_params",
    "SHAPE_4D",
]
