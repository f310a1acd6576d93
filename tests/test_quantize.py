from __future__ import annotations

import numpy as np
import pytest

from wu_palette import Histogram, InvalidPixelFormat, Pixel, quantize
from wu_palette.histogram import build_histogram
from wu_palette.moments import integrate, volume

from conftest import rgba_image, solid_image


def test_four_distinct_colours_come_back_exactly():
    img = rgba_image(
        [
            [(255, 0, 0, 255), (0, 255, 0, 255)],
            [(0, 0, 255, 255), (255, 255, 255, 255)],
        ]
    )
    result = quantize(img, max_colors=4)
    assert len(result.palette) == 4
    assert set(result.palette) == {
        Pixel(255, 255, 0, 0),
        Pixel(255, 0, 255, 0),
        Pixel(255, 0, 0, 255),
        Pixel(255, 255, 255, 255),
    }
    assert result.weights == [1, 1, 1, 1]


def test_single_colour_image_gives_one_entry():
    result = quantize(solid_image(100, 100, (12, 200, 99, 255)), max_colors=256)
    assert result.palette == [Pixel(255, 12, 200, 99)]
    assert result.weights == [10_000]


def test_fully_excluded_image_gives_empty_palette():
    result = quantize(solid_image(8, 8, (50, 60, 70, 5)), alpha_threshold=10)
    assert result.palette == []
    assert result.boxes == []
    assert result.pixel_count == 0


def test_near_opaque_pixels_share_the_top_alpha_bucket():
    img = np.zeros((1, 10, 4), dtype=np.uint8)
    img[0, :, 3] = np.arange(245, 255)
    result = quantize(img, alpha_fader=70, max_colors=16)
    # same colour bucket and same faded alpha bucket: nothing to split
    assert len(result.palette) == 1
    assert result.boxes[0].alpha_max == 32
    # the entry keeps the pixels' real mean alpha
    assert result.palette[0].alpha == int(np.arange(245, 255).sum()) // 10


def test_weight_is_conserved(noisy_image):
    result = quantize(noisy_image, alpha_threshold=10, max_colors=64)
    assert result.pixel_count == int(np.count_nonzero(noisy_image[..., 3] > 10))


def test_palette_bound(noisy_image):
    for n in (2, 3, 16, 256):
        result = quantize(noisy_image, max_colors=n)
        assert 1 <= len(result.palette) <= n
        assert len(result.boxes) == len(result.palette) == len(result.weights)


def test_every_box_is_non_empty_and_mean_matches(noisy_image):
    result = quantize(noisy_image, max_colors=32)
    h = integrate(build_histogram(noisy_image, 10, 70))
    for box, entry, weight in zip(result.boxes, result.palette, result.weights):
        m = volume(h, box)
        assert m.weight == weight > 0
        assert m.mean() == entry


def test_repeat_runs_are_identical(noisy_image):
    first = quantize(noisy_image, max_colors=48)
    second = quantize(noisy_image, max_colors=48)
    assert first.palette == second.palette
    assert first.boxes == second.boxes


def test_reused_histogram_gives_the_same_result(noisy_image):
    shared = Histogram()
    quantize(solid_image(3, 3, (1, 2, 3, 255)), histogram=shared)
    reused = quantize(noisy_image, max_colors=48, histogram=shared)
    fresh = quantize(noisy_image, max_colors=48)
    assert reused.palette == fresh.palette
    assert reused.boxes == fresh.boxes


def test_scan_order_does_not_matter(noisy_image, rng):
    flat = noisy_image.reshape(-1, 4)
    shuffled = flat[rng.permutation(flat.shape[0])]
    column_major = np.ascontiguousarray(noisy_image.transpose(1, 0, 2))
    base = quantize(noisy_image, max_colors=24)
    for other in (shuffled, column_major):
        result = quantize(other, max_colors=24)
        assert result.palette == base.palette
        assert result.boxes == base.boxes


def test_pixel_rows_source():
    rows = [
        [Pixel(255, 0, 0, 0), Pixel(255, 255, 255, 255)],
        [Pixel(0, 1, 2, 3), Pixel(255, 255, 255, 255)],
    ]
    result = quantize(rows, max_colors=4)
    assert sorted(result.weights) == [1, 2]
    assert set(result.palette) == {Pixel(255, 0, 0, 0), Pixel(255, 255, 255, 255)}


def test_threaded_histogram_gives_the_same_palette(rng):
    img = rng.integers(0, 256, size=(1024, 2048, 4), dtype=np.uint8)
    serial = quantize(img, max_colors=16)
    threaded = quantize(img, max_colors=16, workers=2)
    assert serial.palette == threaded.palette


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_colors": 1},
        {"max_colors": 257},
        {"alpha_threshold": 300},
        {"alpha_fader": 0},
    ],
)
def test_parameters_are_validated(kwargs):
    with pytest.raises(ValueError):
        quantize(solid_image(2, 2, (0, 0, 0, 255)), **kwargs)


def test_malformed_pixels_raise():
    with pytest.raises(InvalidPixelFormat):
        quantize(np.zeros((4, 4, 3), dtype=np.uint8))


def test_debug_prints_stage_timings(capsys, noisy_image):
    quantize(noisy_image, max_colors=8, debug=True)
    out = capsys.readouterr().out
    assert out.startswith("[debug] Counted: ")
    assert "Split: " in out
