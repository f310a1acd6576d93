from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from wu_palette.core_types import HistogramStateError, InvalidPixelFormat, Pixel
from wu_palette.histogram import (
    PIXELS_PER_WORKER,
    Histogram,
    build_histogram,
    check_alpha_params,
    histogram_workers,
)
from wu_palette.moments import integrate
from wu_palette.pixels import adjusted_alpha, bucket_coordinates, to_rgba_array

from conftest import rgba_image, solid_image


def test_pixel_lands_in_shifted_bucket_with_raw_sums():
    h = build_histogram(rgba_image([[(10, 20, 30, 200)]]), 10, 70)
    # alpha 200 -> 200 + 200 % 70 = 260 -> 255 -> bucket 32
    m = h.cell(32, 2, 3, 4)
    assert m.weight == 1
    assert (m.alpha, m.red, m.green, m.blue) == (200, 10, 20, 30)
    assert m.moment == 200**2 + 10**2 + 20**2 + 30**2
    assert h.total() == m


def test_pixels_at_or_below_threshold_are_skipped():
    img = rgba_image([[(1, 2, 3, 10), (1, 2, 3, 11), (1, 2, 3, 0)]])
    h = build_histogram(img, 10, 70)
    assert h.total().weight == 1


def test_alpha_fader_rule():
    alpha = np.array([0, 10, 11, 100, 244, 245, 250, 254, 255])
    out = adjusted_alpha(alpha, 10, 70)
    # at/below threshold and opaque pass through untouched
    assert out.tolist() == [0, 10, 22, 130, 255, 255, 255, 255, 255]


def test_near_opaque_alpha_lands_in_top_bucket():
    alphas = np.arange(245, 255, dtype=np.uint8)
    img = np.zeros((1, alphas.size, 4), dtype=np.uint8)
    img[0, :, 3] = alphas
    visible, buckets = bucket_coordinates(img, 10, 70)
    assert visible.all()
    assert (buckets[:, 0] == 32).all()
    assert (buckets[:, 1:] == 1).all()


def test_rows_of_pixels_and_tuples_match_array_source():
    arr = rgba_image([[(1, 2, 3, 255), (200, 100, 0, 128)], [(9, 9, 9, 40), (0, 0, 0, 0)]])
    rows_px = [
        [Pixel(255, 1, 2, 3), Pixel(128, 200, 100, 0)],
        [Pixel(40, 9, 9, 9), Pixel(0, 0, 0, 0)],
    ]
    rows_tuples = [[tuple(px) for px in row] for row in arr.tolist()]
    a = build_histogram(arr, 10, 70)
    b = build_histogram(rows_px, 10, 70)
    c = build_histogram(rows_tuples, 10, 70)
    d = build_histogram(Image.fromarray(arr), 10, 70)
    for other in (b, c, d):
        assert np.array_equal(a.counts, other.counts)
        assert np.array_equal(a.moments, other.moments)


@pytest.mark.parametrize(
    "source",
    [
        np.zeros((2, 2, 3), dtype=np.uint8),
        np.zeros((2, 2, 4), dtype=np.float32),
        np.zeros((2, 2, 4), dtype=np.uint16),
        [[(1, 2, 3, 4)], [(1, 2, 3, 4), (5, 6, 7, 8)]],
        [[(1, 2, 3)]],
        [[(1, 2, 3, 256)]],
        [[7]],
        [5],
        5,
        [[("a", 2, 3, 4)]],
        [[(1.7, 2, 3, 4)]],
        [[(True, 2, 3, 4)]],
        Image.new("F", (2, 2)),
        Image.new("I;16", (2, 2)),
        Image.new("I", (2, 2)),
    ],
)
def test_invalid_sources_fail_before_accumulating(source):
    h = Histogram()
    with pytest.raises(InvalidPixelFormat):
        build_histogram(source, 10, 70, h)
    assert h.total().weight == 0


def test_empty_source_is_valid():
    assert to_rgba_array([]).shape == (0, 4)
    assert build_histogram([], 10, 70).total().weight == 0


@pytest.mark.parametrize("threshold,fader", [(-1, 70), (256, 70), (10, 0), (10, 256)])
def test_parameter_ranges(threshold, fader):
    with pytest.raises(ValueError):
        check_alpha_params(threshold, fader)


def test_reused_histogram_is_cleared():
    h = build_histogram(solid_image(4, 4, (255, 0, 0, 255)), 10, 70)
    integrate(h)
    build_histogram(solid_image(2, 2, (0, 255, 0, 255)), 10, 70, h)
    assert not h.integrated
    total = h.total()
    assert total.weight == 4
    assert total.red == 0 and total.green == 4 * 255


def test_merge_equals_single_pass(noisy_image):
    whole = build_histogram(noisy_image, 10, 70)
    top = build_histogram(noisy_image[:20], 10, 70)
    top += build_histogram(noisy_image[20:], 10, 70)
    assert np.array_equal(whole.counts, top.counts)
    assert np.array_equal(whole.moments, top.moments)


def test_threaded_build_matches_serial(rng):
    # two full worker spans
    img = rng.integers(0, 256, size=(1024, 2 * PIXELS_PER_WORKER // 1024, 4), dtype=np.uint8)
    serial = build_histogram(img, 10, 70)
    threaded = build_histogram(img, 10, 70, workers=2)
    assert np.array_equal(serial.counts, threaded.counts)
    assert np.array_equal(serial.moments, threaded.moments)


def test_worker_count_follows_pixel_count():
    assert histogram_workers(300 * 240, 12) == 1
    assert histogram_workers(5_000_000, 12) == 4
    assert histogram_workers(5_000_000, 2) == 2
    assert histogram_workers(0, 0) == 1


def test_threaded_build_allocates_a_single_histogram(rng, monkeypatch):
    made = []
    original_init = Histogram.__init__

    def counting_init(self):
        made.append(self)
        original_init(self)

    monkeypatch.setattr(Histogram, "__init__", counting_init)
    img = rng.integers(0, 256, size=(1024, 3 * PIXELS_PER_WORKER // 1024, 4), dtype=np.uint8)
    h = build_histogram(img, 10, 70, workers=12)
    assert made == [h]
    assert h.total().weight == int(np.count_nonzero(img[..., 3] > 10))


def test_integrated_histogram_is_read_only():
    h = build_histogram(solid_image(2, 2, (1, 1, 1, 255)), 10, 70)
    integrate(h)
    with pytest.raises(HistogramStateError):
        h.accumulate(solid_image(1, 1, (1, 1, 1, 255)), 10, 70)
    with pytest.raises(HistogramStateError):
        h.merge(Histogram())
    with pytest.raises(HistogramStateError):
        integrate(h)


def test_linear_index_matches_4d_view():
    h = build_histogram(rgba_image([[(255, 128, 7, 255)]]), 10, 70)
    i = Histogram.index(32, 32, 17, 1)
    assert h.counts[0, i] == 1
    assert h.counts_4d()[0, 32, 32, 17, 1] == 1


def test_eight_bit_pillow_modes_and_numpy_samples_are_accepted():
    grey = Image.new("L", (3, 2), 200)
    assert build_histogram(grey, 10, 70).total().weight == 6
    rows = [[tuple(np.uint8(v) for v in (1, 2, 3, 255))]]
    assert build_histogram(rows, 10, 70).total().weight == 1
