# wu_palette/image_io.py
from __future__ import annotations

import time
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .assign import assign_indices
from .constants import (
    DEFAULT_ALPHA_FADER,
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_MAX_COLORS,
    TRANSPARENT_RGBA,
)
from .core_types import IndexImage, InvalidPixelFormat, Pixel, U8RGBA, assert_rgba_u8
from .histogram import Histogram, check_alpha_params
from .quantize import check_max_colors, run_quantize
from .utils import debug_log, format_seconds_compact

"""
Image I/O helpers: RGBA loading, whole-image quantization, and paletted PNG output.
"""


def load_image_rgba(path: Path) -> U8RGBA:
    """Load any Pillow-readable image as a uint8 (H,W,4) RGBA array."""
    with Image.open(path) as im0:
        im = ImageOps.exif_transpose(im0).convert("RGBA")
    return np.array(im, dtype=np.uint8)


def quantize_image(
    rgba: U8RGBA,
    max_colors: int = DEFAULT_MAX_COLORS,
    alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
    alpha_fader: int = DEFAULT_ALPHA_FADER,
    histogram: Optional[Histogram] = None,
    *,
    workers: int = 1,
    debug: bool = False,
) -> Tuple[IndexImage, List[Pixel]]:
    """
    Quantize an (H,W,4) image end-to-end.

    When any pixel is at or below alpha_threshold, one slot is held back and a
    fully transparent entry is appended as the last palette index; those pixels
    point at it. The palette never exceeds max_colors entries.

    Returns:
      indices : uint8 [H,W]
      palette : List[Pixel], index i of the palette is value i in indices
    """
    image = assert_rgba_u8(rgba)
    if image.ndim != 3:
        raise InvalidPixelFormat(f"expected an (H,W,4) image, got shape {image.shape}")
    check_alpha_params(alpha_threshold, alpha_fader)
    check_max_colors(max_colors)

    has_excluded = bool(np.any(image[..., 3] <= alpha_threshold))
    box_count = int(max_colors) - 1 if has_excluded else int(max_colors)

    result = run_quantize(
        image,
        alpha_threshold,
        alpha_fader,
        box_count,
        histogram,
        workers=workers,
        debug=debug,
    )
    palette = list(result.palette)
    # no pixel reads the transparent index unless something was excluded
    transparent_index = 0
    if has_excluded:
        transparent_index = len(palette)
        r, g, b, a = TRANSPARENT_RGBA
        palette.append(Pixel(a, r, g, b))

    t0 = time.perf_counter()
    indices = assign_indices(image, result, transparent_index)
    if debug:
        debug_log(
            f"assigned {image.shape[1]}x{image.shape[0]} in "
            f"{format_seconds_compact(time.perf_counter() - t0)}"
        )
    return indices, palette


def to_paletted_image(indices: IndexImage, palette: List[Pixel]) -> Image.Image:
    """Build a mode "P" image; entries with alpha < 255 go to the transparency table."""
    idx = np.ascontiguousarray(indices, dtype=np.uint8)
    if idx.ndim != 2:
        raise InvalidPixelFormat(f"expected (H,W) indices, got shape {idx.shape}")
    height, width = idx.shape
    im = Image.frombytes("P", (width, height), idx.tobytes())
    rgb: List[int] = []
    for p in palette:
        rgb.extend((p.red, p.green, p.blue))
    im.putpalette(rgb)
    alphas = bytes(p.alpha for p in palette)
    if any(a < 255 for a in alphas):
        im.info["transparency"] = alphas
    return im


def save_indexed_png(path: Path, indices: IndexImage, palette: List[Pixel]) -> Path:
    """Save indices + palette as a paletted PNG. Forces the .png suffix."""
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    im = to_paletted_image(indices, palette)
    transparency = im.info.get("transparency")
    if transparency is not None:
        im.save(path, transparency=transparency)
    else:
        im.save(path)
    return path


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "load_image_rgba",
    "quantize_image",
    "to_paletted_image",
    "save_indexed_png",
    "is_image_file",
]
