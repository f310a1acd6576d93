# wu_palette/moments.py
from __future__ import annotations

"""
Cumulative moments and box queries.

After integrate(), cell [a, r, g, b] holds the moment of every bucket in
[1, a] x [1, r] x [1, g] x [1, b]. Any box moment is then an inclusion-exclusion
over its corners:

  volume(h, box)                : 16 corners, sign (-1)^(number of min corners)
  top(h, box, axis, position)   : 8 corners with `axis` pinned at position
  bottom(h, box, axis)          : minus top() at the box's own min on `axis`

so that bottom + top(p) is the moment of the box clipped to (min, p] on `axis`.
face_moments() is the vectorised form used when scanning cut positions.
"""

from typing import Sequence, Tuple

import numpy as np

from .constants import SIDE_SIZE
from .core_types import Axis, Box, ColorMoment, HistogramStateError
from .histogram import Histogram

STRIDES: Tuple[int, int, int, int] = (SIDE_SIZE**3, SIDE_SIZE**2, SIDE_SIZE, 1)


def integrate(histogram: Histogram) -> Histogram:
    """
    Turn raw bucket moments into cumulative moments, in place.

    Running sums go blue (line), green (area), red (per green/blue table), then
    alpha, each pass adding the already summed previous cell on that axis.
    Index-0 planes stay zero.
    """
    if histogram.integrated:
        raise HistogramStateError("histogram is already integrated")
    counts = histogram.counts_4d()
    moments = histogram.moments_4d()
    for axis in (Axis.BLUE, Axis.GREEN, Axis.RED, Axis.ALPHA):
        np.cumsum(counts, axis=int(axis) + 1, out=counts)
        np.cumsum(moments, axis=int(axis), out=moments)
    histogram.integrated = True
    return histogram


def _require_integrated(histogram: Histogram) -> None:
    if not histogram.integrated:
        raise HistogramStateError("box queries need an integrated histogram")


def _gather(
    histogram: Histogram, idx: np.ndarray, signs: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Signed sum over the first axis of idx: returns (counts [5,...], moments [...])."""
    counts = np.tensordot(histogram.counts[:, idx], signs, axes=([1], [0]))
    moments = np.tensordot(histogram.moments[idx], signs.astype(np.float64), axes=([0], [0]))
    return counts, moments


def _to_moment(counts: np.ndarray, moment: float) -> ColorMoment:
    return ColorMoment(
        int(counts[0]),
        int(counts[1]),
        int(counts[2]),
        int(counts[3]),
        int(counts[4]),
        float(moment),
    )


def volume(histogram: Histogram, box: Box) -> ColorMoment:
    """Moment of every pixel inside box."""
    _require_integrated(histogram)
    signs = []
    idx = []
    for sign, (a, r, g, b) in box.corners():
        signs.append(sign)
        idx.append(a * STRIDES[0] + r * STRIDES[1] + g * STRIDES[2] + b)
    counts, moment = _gather(
        histogram, np.array(idx, dtype=np.int64), np.array(signs, dtype=np.int64)
    )
    return _to_moment(counts, float(moment))


def face_moments(
    histogram: Histogram, box: Box, axis: Axis, positions: Sequence[int]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorised top(): the 8-corner signed sum over the three other axes, with
    `axis` pinned at each of `positions`.

    Returns (counts int64 [5, P], moments float64 [P]).
    """
    _require_integrated(histogram)
    pos = np.asarray(positions, dtype=np.int64)
    lows, highs = box.lows(), box.highs()
    others = [ax for ax in Axis if ax != axis]

    idx = np.empty((8, pos.shape[0]), dtype=np.int64)
    signs = np.empty(8, dtype=np.int64)
    for mask in range(8):
        base = 0
        n_low = 0
        for bit, ax in enumerate(others):
            if mask & (1 << bit):
                base += lows[ax] * STRIDES[ax]
                n_low += 1
            else:
                base += highs[ax] * STRIDES[ax]
        idx[mask] = base + pos * STRIDES[axis]
        signs[mask] = -1 if n_low % 2 else 1
    return _gather(histogram, idx, signs)


def top(histogram: Histogram, box: Box, axis: Axis, position: int) -> ColorMoment:
    """Cumulative face of box on `axis` at `position`."""
    counts, moments = face_moments(histogram, box, axis, [position])
    return _to_moment(counts[:, 0], float(moments[0]))


def bottom(histogram: Histogram, box: Box, axis: Axis) -> ColorMoment:
    """Negated face at the box's min on `axis`; bottom + top(p) is the (min, p] slab."""
    lo, _hi = box.bounds(axis)
    return -top(histogram, box, axis, lo)


__all__ = [
    "integrate",
    "volume",
    "face_moments",
    "top",
    "bottom",
]
