# wu_palette/split.py
from __future__ import annotations

"""
Greedy variance-driven box splitting.

Exports:
  CutCandidate                         : best position on one axis and its score
  maximize(h, box, axis, whole)        -> CutCandidate
  cut(h, box)                          -> (lower, upper) or None
  box_variance(h, box)                 -> float
  split_boxes(h, max_colors)           -> List[Box]

Notes:
  - A cut's score is the sum over both halves of |channel sums|^2 / weight.
    Maximising it minimises the summed squared error of the two halves.
  - Axis ties go alpha, red, green, blue in that order. Only the alpha branch
    checks for a missing position: any other axis wins with a strictly positive
    score, which implies it found a position.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, cast

import numpy as np

from .core_types import Axis, Box, ColorMoment
from .histogram import Histogram
from .moments import face_moments, volume


@dataclass(frozen=True)
class CutCandidate:
    """Best cut on one axis. position is None when no cut splits the weight."""

    position: Optional[int]
    value: float


def _weighted_distance(counts: np.ndarray) -> np.ndarray:
    """|(a, r, g, b) sums|^2 / weight per column of an int64 [5, P] block; 0 where empty."""
    weight = counts[0].astype(np.float64)
    sums = counts[1:].astype(np.float64)
    amplitude = np.sum(sums * sums, axis=0)
    safe = np.where(weight > 0, weight, 1.0)
    return np.where(weight > 0, amplitude / safe, 0.0)


def _moment_column(whole: ColorMoment) -> np.ndarray:
    return np.array(
        [whole.weight, whole.alpha, whole.red, whole.green, whole.blue], dtype=np.int64
    )[:, None]


def maximize(
    histogram: Histogram, box: Box, axis: Axis, whole: ColorMoment
) -> CutCandidate:
    """
    Scan every cut plane strictly inside box on `axis`.

    Positions leaving either half empty are skipped. The first position with the
    highest score above 0.0 wins.
    """
    lo, hi = box.bounds(axis)
    positions = np.arange(lo + 1, hi, dtype=np.int64)
    if positions.size == 0:
        return CutCandidate(None, 0.0)

    base, _ = face_moments(histogram, box, axis, [lo])
    faces, _ = face_moments(histogram, box, axis, positions)
    lower = faces - base  # bottom + top(position)
    upper = _moment_column(whole) - lower

    valid = (lower[0] != 0) & (upper[0] != 0)
    if not np.any(valid):
        return CutCandidate(None, 0.0)
    scores = np.where(valid, _weighted_distance(lower) + _weighted_distance(upper), -np.inf)
    best = int(np.argmax(scores))
    if not scores[best] > 0.0:
        return CutCandidate(None, 0.0)
    return CutCandidate(int(positions[best]), float(scores[best]))


def cut(histogram: Histogram, box: Box) -> Optional[Tuple[Box, Box]]:
    """
    Split box at the best plane over all four axes.

    Returns (lower, upper), the lower half keeping (min, position] and the upper
    (position, max] on the chosen axis, or None when the box cannot be split.
    """
    whole = volume(histogram, box)
    best = {axis: maximize(histogram, box, axis, whole) for axis in Axis}
    va, vr, vg, vb = (best[ax].value for ax in Axis)

    if va >= vr and va >= vg and va >= vb:
        direction = Axis.ALPHA
        if best[Axis.ALPHA].position is None:
            return None
    elif vr >= va and vr >= vg and vr >= vb:
        direction = Axis.RED
    elif vg >= va and vg >= vr and vg >= vb:
        direction = Axis.GREEN
    else:
        direction = Axis.BLUE

    # a non-alpha winner scored above 0.0, so it found a position
    position = cast(int, best[direction].position)
    return box.split_at(direction, position)


def box_variance(histogram: Histogram, box: Box) -> float:
    """Variance score used to rank boxes; boxes spanning one bucket score 0."""
    if box.size <= 1:
        return 0.0
    return volume(histogram, box).variance()


def split_boxes(histogram: Histogram, max_colors: int) -> List[Box]:
    """
    Partition bucket space into at most max_colors boxes.

    Starts from the full space and repeatedly cuts the box with the highest
    variance. A box that cannot be cut is frozen at 0 and its iteration yields
    nothing. Stops once max_colors boxes exist or no box has positive variance.
    """
    boxes: List[Box] = [Box()]
    variances: List[float] = [0.0]
    next_box = 0
    i = 1

    while i < max_colors:
        halves = cut(histogram, boxes[next_box])
        if halves is not None:
            lower, upper = halves
            boxes[next_box] = lower
            boxes.append(upper)
            variances[next_box] = box_variance(histogram, lower)
            variances.append(box_variance(histogram, upper))
        else:
            variances[next_box] = 0.0
            i -= 1

        next_box = 0
        temp = variances[0]
        for j in range(1, len(variances)):
            if variances[j] > temp:
                temp = variances[j]
                next_box = j

        if temp <= 0.0:
            break
        i += 1

    return boxes


__all__ = [
    "CutCandidate",
    "maximize",
    "cut",
    "box_variance",
    "split_boxes",
]
