# wu_palette/__init__.py
"""
wu_palette package.

Purpose:
  Reduce RGBA images to a small palette plus per-pixel indices using Wu's
  moment-based colour quantization over (alpha, red, green, blue). See
  wu_quantize.py for the CLI.

Public API:
  quantize        : pixels -> QuantizeResult(palette, boxes)
  quantize_image  : (H,W,4) image -> (indices, palette) with a transparent slot
  Histogram       : reusable 33^4 moment buffer (clear() between calls)
  core_types      : Pixel, ColorMoment, Box, Axis and the error classes.
  histogram / moments / split / lookup : the individual pipeline stages.
  image_io        : Pillow loading and paletted PNG output.

Quick start:
  from wu_palette import quantize_image, save_indexed_png, load_image_rgba
  indices, palette = quantize_image(load_image_rgba(path), max_colors=64)
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import constants
from . import core_types
from . import histogram
from . import moments
from . import split
from . import lookup
from . import assign
from . import image_io
from . import utils

from .core_types import (  # noqa: E402,F401
    Axis,
    Box,
    ColorMoment,
    HistogramStateError,
    InvalidPixelFormat,
    Pixel,
    QuantizationError,
)
from .histogram import Histogram, build_histogram  # noqa: E402,F401
from .quantize import QuantizeResult, quantize  # noqa: E402,F401
from .image_io import (  # noqa: E402,F401
    load_image_rgba,
    quantize_image,
    save_indexed_png,
    to_paletted_image,
)

__all__ = [
    "__version__",
    "constants",
    "core_types",
    "histogram",
    "moments",
    "split",
    "lookup",
    "assign",
    "image_io",
    "utils",
    "Axis",
    "Box",
    "ColorMoment",
    "Pixel",
    "QuantizationError",
    "InvalidPixelFormat",
    "HistogramStateError",
    "Histogram",
    "build_histogram",
    "QuantizeResult",
    "quantize",
    "load_image_rgba",
    "quantize_image",
    "save_indexed_png",
    "to_paletted_image",
]
