from __future__ import annotations

import numpy as np
import pytest

from wu_palette.core_types import Axis, Box, ColorMoment, HistogramStateError
from wu_palette.histogram import Histogram, build_histogram
from wu_palette.moments import bottom, face_moments, integrate, top, volume


def _raw_box_sum(raw_counts: np.ndarray, raw_moments: np.ndarray, box: Box) -> ColorMoment:
    sl = box.slices()
    c = raw_counts[(slice(None),) + sl].reshape(5, -1).sum(axis=1)
    return ColorMoment(
        int(c[0]), int(c[1]), int(c[2]), int(c[3]), int(c[4]), float(raw_moments[sl].sum())
    )


def _random_box(rng: np.random.Generator) -> Box:
    bounds = []
    for _ in range(4):
        lo, hi = sorted(rng.choice(33, size=2, replace=False).tolist())
        bounds.extend((lo, hi))
    return Box(*bounds)


@pytest.fixture
def integrated(noisy_image):
    h = build_histogram(noisy_image, 10, 70)
    raw = (h.counts_4d().copy(), h.moments_4d().copy())
    integrate(h)
    return h, raw


def test_integrated_cell_is_prefix_sum(integrated):
    h, (raw_c, raw_m) = integrated
    for a, r, g, b in [(32, 32, 32, 32), (32, 16, 8, 4), (20, 1, 32, 9), (1, 1, 1, 1)]:
        expected = _raw_box_sum(raw_c, raw_m, Box(0, a, 0, r, 0, g, 0, b))
        assert h.cell(a, r, g, b) == expected


def test_zero_planes_stay_zero(integrated):
    h, _ = integrated
    c = h.counts_4d()
    assert not c[:, 0].any()
    assert not c[:, :, :, :, 0].any()
    assert not h.moments_4d()[:, 0].any()


def test_volume_matches_brute_force(integrated, rng):
    h, (raw_c, raw_m) = integrated
    for _ in range(25):
        box = _random_box(rng)
        got = volume(h, box)
        expected = _raw_box_sum(raw_c, raw_m, box)
        assert got.weight == expected.weight
        assert (got.alpha, got.red, got.green, got.blue) == (
            expected.alpha,
            expected.red,
            expected.green,
            expected.blue,
        )
        assert got.moment == pytest.approx(expected.moment)


def test_full_volume_counts_every_visible_pixel(integrated, noisy_image):
    h, _ = integrated
    visible = int(np.count_nonzero(noisy_image[..., 3] > 10))
    assert volume(h, Box()).weight == visible
    assert h.total() == volume(h, Box())


@pytest.mark.parametrize("axis", list(Axis))
def test_bottom_plus_top_is_the_lower_slab(integrated, axis):
    h, (raw_c, raw_m) = integrated
    box = Box(2, 30, 3, 29, 1, 31, 4, 27)
    lo, hi = box.bounds(axis)
    for position in (lo + 1, (lo + hi) // 2, hi - 1):
        lower, _upper = box.split_at(axis, position)
        slab = bottom(h, box, axis) + top(h, box, axis, position)
        assert slab.weight == _raw_box_sum(raw_c, raw_m, lower).weight
        assert slab.red == _raw_box_sum(raw_c, raw_m, lower).red


def test_box_minus_sub_box_is_the_complement(integrated):
    h, _ = integrated
    box = Box(0, 32, 0, 32, 5, 25, 0, 32)
    lower, upper = box.split_at(Axis.RED, 13)
    assert volume(h, box) - volume(h, lower) == volume(h, upper)


def test_face_moments_vectorises_top(integrated):
    h, _ = integrated
    box = Box(0, 32, 4, 28, 0, 32, 2, 30)
    positions = [5, 9, 27]
    counts, moments = face_moments(h, box, Axis.RED, positions)
    for j, p in enumerate(positions):
        single = top(h, box, Axis.RED, p)
        assert counts[:, j].tolist() == [
            single.weight,
            single.alpha,
            single.red,
            single.green,
            single.blue,
        ]
        assert moments[j] == single.moment


def test_queries_need_integration():
    with pytest.raises(HistogramStateError):
        volume(Histogram(), Box())
