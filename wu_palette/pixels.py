# wu_palette/pixels.py
from __future__ import annotations

"""
Pixel sources and the shared alpha/bucketing rule.

Exports:
  to_rgba_array(source) -> uint8 [N,4] (r, g, b, a)
  pixel_rows(rgba) -> iterator of List[Pixel], one per image row
  adjusted_alpha(alpha, alpha_threshold, alpha_fader) -> int32 array
  bucket_coordinates(rgba, alpha_threshold, alpha_fader) -> (visible, buckets)
  flat_bucket_index(buckets) -> int64 linear index into a 33^4 table

Notes:
  Histogram build and pixel assignment both go through bucket_coordinates so the
  two can never disagree on which bucket a pixel lands in.
"""

from typing import Any, Iterator, List, Sequence, Tuple

import numpy as np
from PIL import Image

from .constants import INDEX_SHIFT, OPAQUE, SIDE_SIZE
from .core_types import InvalidPixelFormat, Pixel, U8RGBA, assert_rgba_u8

# Pillow modes whose bands are 8-bit; "I", "F" and the "I;16" family are not
EIGHT_BIT_MODES = frozenset(
    {"1", "L", "LA", "La", "P", "PA", "RGB", "RGBA", "RGBa", "RGBX"}
    | {"CMYK", "YCbCr", "LAB", "HSV"}
)


def _is_sample(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


def _row_to_rgba(row: Sequence[Any], y: int) -> List[Tuple[int, int, int, int]]:
    out: List[Tuple[int, int, int, int]] = []
    try:
        samples = list(enumerate(row))
    except TypeError as exc:
        raise InvalidPixelFormat(f"row {y} is not a sequence of pixels: {row!r}") from exc
    for x, px in samples:
        if isinstance(px, Pixel):
            out.append(px.rgba)
            continue
        try:
            raw = tuple(px)
        except TypeError as exc:
            raise InvalidPixelFormat(
                f"pixel ({x}, {y}) is not a 4-channel sample: {px!r}"
            ) from exc
        if len(raw) != 4:
            raise InvalidPixelFormat(
                f"pixel ({x}, {y}) has {len(raw)} channels, expected 4"
            )
        if not all(_is_sample(v) for v in raw):
            raise InvalidPixelFormat(f"pixel ({x}, {y}) has non-integer samples: {raw!r}")
        values = tuple(int(v) for v in raw)
        if min(values) < 0 or max(values) > 255:
            raise InvalidPixelFormat(f"pixel ({x}, {y}) out of 0..255: {values}")
        out.append(values)  # type: ignore[arg-type]
    return out


def to_rgba_array(source: Any) -> U8RGBA:
    """
    Normalise a pixel source to a uint8 [N,4] array in (r, g, b, a) order.

    Accepts a uint8 (H,W,4) / (N,4) array, a Pillow image in an 8-bit mode
    (converted to RGBA), or an iterable of equal-length rows of Pixel or
    (r, g, b, a) integer tuples.
    Raises InvalidPixelFormat before any accumulation happens.
    """
    if isinstance(source, Image.Image):
        if source.mode not in EIGHT_BIT_MODES:
            raise InvalidPixelFormat(
                f"Pillow mode {source.mode!r} does not hold 8-bit samples"
            )
        return np.asarray(source.convert("RGBA"), dtype=np.uint8).reshape(-1, 4)
    if isinstance(source, np.ndarray):
        return assert_rgba_u8(source).reshape(-1, 4)

    rows: List[List[Tuple[int, int, int, int]]] = []
    width = None
    try:
        source_rows = iter(source)
    except TypeError as exc:
        raise InvalidPixelFormat(
            f"expected an image, array or rows of pixels, got {type(source).__name__}"
        ) from exc
    for y, row in enumerate(source_rows):
        converted = _row_to_rgba(row, y)
        if width is None:
            width = len(converted)
        elif len(converted) != width:
            raise InvalidPixelFormat(
                f"row {y} has {len(converted)} pixels, expected {width}"
            )
        rows.append(converted)
    if not rows or not width:
        return np.zeros((0, 4), dtype=np.uint8)
    return np.array(rows, dtype=np.uint8).reshape(-1, 4)


def pixel_rows(rgba: U8RGBA) -> Iterator[List[Pixel]]:
    """Yield one list of Pixel per row of an (H,W,4) array."""
    image = assert_rgba_u8(rgba)
    if image.ndim == 2:
        image = image[None, ...]
    for row in image:
        yield [Pixel(int(a), int(r), int(g), int(b)) for r, g, b, a in row.tolist()]


def adjusted_alpha(
    alpha: np.ndarray, alpha_threshold: int, alpha_fader: int
) -> np.ndarray:
    """
    Alpha used for bucketing: semi-transparent values above the threshold are
    pushed up by (alpha % fader), clamped to 255. Opaque values pass through.
    """
    a = np.asarray(alpha, dtype=np.int32)
    semi = (a > alpha_threshold) & (a < OPAQUE)
    bumped = np.minimum(a + a % int(alpha_fader), OPAQUE)
    return np.where(semi, bumped, a).astype(np.int32, copy=False)


def bucket_coordinates(
    rgba: U8RGBA, alpha_threshold: int, alpha_fader: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Return (visible, buckets) for an [N,4] RGBA array.

    visible : bool [N], alpha > alpha_threshold
    buckets : int64 [M,4] (a, r, g, b) bucket indices 1..32 of visible pixels
    """
    flat = assert_rgba_u8(rgba).reshape(-1, 4)
    alpha = flat[:, 3].astype(np.int32)
    visible = alpha > int(alpha_threshold)
    shown = flat[visible]
    buckets = np.empty((shown.shape[0], 4), dtype=np.int64)
    buckets[:, 0] = adjusted_alpha(alpha[visible], alpha_threshold, alpha_fader)
    buckets[:, 1:] = shown[:, :3]
    buckets >>= INDEX_SHIFT
    buckets += 1
    return visible, buckets


def flat_bucket_index(buckets: np.ndarray) -> np.ndarray:
    """Linear index ((a*33 + r)*33 + g)*33 + b for [M,4] bucket rows."""
    b = np.asarray(buckets, dtype=np.int64)
    return ((b[:, 0] * SIDE_SIZE + b[:, 1]) * SIDE_SIZE + b[:, 2]) * SIDE_SIZE + b[:, 3]


__all__ = [
    "to_rgba_array",
    "pixel_rows",
    "adjusted_alpha",
    "bucket_coordinates",
    "flat_bucket_index",
]
