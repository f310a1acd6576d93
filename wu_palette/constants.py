# wu_palette/constants.py
"""
Global tunables used across the project.

- Histogram geometry (SIDE_SIZE, MAX_SIDE_INDEX, INDEX_SHIFT, TABLE_SIZE)
- Quantizer defaults (DEFAULT_*)
- Output conventions (TRANSPARENT_RGBA, OUTPUT_SUFFIX, IMAGE_EXTS)
"""
from __future__ import annotations

from typing import Tuple

# ==================
# Histogram geometry
# ==================
INDEX_BITS: int = 5
INDEX_SHIFT: int = 8 - INDEX_BITS  # 0..255 -> 0..31
SIDE_SIZE: int = (1 << INDEX_BITS) + 1  # bucket 0 is the zero sentinel
MAX_SIDE_INDEX: int = SIDE_SIZE - 1
TABLE_SIZE: int = SIDE_SIZE**4

# ==================
# Quantizer defaults
# ==================
DEFAULT_ALPHA_THRESHOLD: int = 10
DEFAULT_ALPHA_FADER: int = 70
DEFAULT_MAX_COLORS: int = 256
MIN_COLORS: int = 2
MAX_COLORS: int = 256
OPAQUE: int = 255

# ======
# Output
# ======
TRANSPARENT_RGBA: Tuple[int, int, int, int] = (0, 0, 0, 0)  # (r, g, b, a)
OUTPUT_SUFFIX: str = "_wu"
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp"}

__all__ = [
    "INDEX_BITS",
    "INDEX_SHIFT",
    "SIDE_SIZE",
    "MAX_SIDE_INDEX",
    "TABLE_SIZE",
    "DEFAULT_ALPHA_THRESHOLD",
    "DEFAULT_ALPHA_FADER",
    "DEFAULT_MAX_COLORS",
    "MIN_COLORS",
    "MAX_COLORS",
    "OPAQUE",
    "TRANSPARENT_RGBA",
    "OUTPUT_SUFFIX",
    "IMAGE_EXTS",
]
