# wu_palette/core_types.py
from __future__ import annotations

"""
Core type aliases, small value objects, errors, and lightweight validators.
"""

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import MAX_SIDE_INDEX

# Basic aliases

RGBATuple = Tuple[int, int, int, int]  # (r, g, b, a), Pillow order
U8RGBA = NDArray[np.uint8]  # (H, W, 4) or (N, 4)
IndexImage = NDArray[np.uint8]  # (H, W) palette indices
TagTable = NDArray[np.int16]  # (33, 33, 33, 33) box index per bucket


# Errors


class QuantizationError(Exception):
    """Base class for quantizer failures."""


class InvalidPixelFormat(QuantizationError, TypeError):
    """Pixel source does not supply 4-channel 8-bit samples."""


class HistogramStateError(QuantizationError, RuntimeError):
    """Histogram used out of order (e.g. built into after integration)."""


# Value objects


class Axis(IntEnum):
    """Histogram axes, in storage order."""

    ALPHA = 0
    RED = 1
    GREEN = 2
    BLUE = 3


def _check_channel(name: str, value: int) -> int:
    v = int(value)
    if v < 0 or v > 255:
        raise InvalidPixelFormat(f"{name} must be in 0..255, got {value!r}")
    return v


@dataclass(frozen=True)
class Pixel:
    """One ARGB sample. `argb` is the packed 32-bit view of the same value."""

    alpha: int
    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for name in ("alpha", "red", "green", "blue"):
            object.__setattr__(self, name, _check_channel(name, getattr(self, name)))

    @classmethod
    def from_argb(cls, argb: int) -> "Pixel":
        value = int(argb) & 0xFFFFFFFF
        return cls(
            (value >> 24) & 0xFF, (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF
        )

    @classmethod
    def from_rgba(cls, rgba: Sequence[int]) -> "Pixel":
        if len(rgba) != 4:
            raise InvalidPixelFormat(f"expected 4 channels, got {len(rgba)}")
        r, g, b, a = rgba
        return cls(a, r, g, b)

    @property
    def argb(self) -> int:
        return (self.alpha << 24) | (self.red << 16) | (self.green << 8) | self.blue

    @property
    def rgba(self) -> RGBATuple:
        return (self.red, self.green, self.blue, self.alpha)

    def __str__(self) -> str:
        return (
            f"Alpha:{self.alpha} Red:{self.red} Green:{self.green} Blue:{self.blue}"
        )


@dataclass(frozen=True)
class ColorMoment:
    """
    Statistical moments of a pixel set.

    weight : pixel count
    alpha, red, green, blue : channel sums
    moment : sum of a^2 + r^2 + g^2 + b^2 over the set

    All fields are linear in the pixel set, so moments add and subtract.
    """

    weight: int = 0
    alpha: int = 0
    red: int = 0
    green: int = 0
    blue: int = 0
    moment: float = 0.0

    @classmethod
    def of_pixel(cls, pixel: Pixel) -> "ColorMoment":
        a, r, g, b = pixel.alpha, pixel.red, pixel.green, pixel.blue
        return cls(1, a, r, g, b, float(a * a + r * r + g * g + b * b))

    @classmethod
    def of_pixels(cls, pixels: Sequence[Pixel]) -> "ColorMoment":
        total = cls()
        for p in pixels:
            total = total + cls.of_pixel(p)
        return total

    def __add__(self, other: "ColorMoment") -> "ColorMoment":
        return ColorMoment(
            self.weight + other.weight,
            self.alpha + other.alpha,
            self.red + other.red,
            self.green + other.green,
            self.blue + other.blue,
            self.moment + other.moment,
        )

    def __sub__(self, other: "ColorMoment") -> "ColorMoment":
        return ColorMoment(
            self.weight - other.weight,
            self.alpha - other.alpha,
            self.red - other.red,
            self.green - other.green,
            self.blue - other.blue,
            self.moment - other.moment,
        )

    def __neg__(self) -> "ColorMoment":
        return ColorMoment() - self

    def amplitude(self) -> float:
        """Squared length of the channel-sum vector."""
        a, r, g, b = (float(x) for x in (self.alpha, self.red, self.green, self.blue))
        return a * a + r * r + g * g + b * b

    def weighted_distance(self) -> float:
        """Squared channel sums over weight; 0.0 for an empty set."""
        if self.weight <= 0:
            return 0.0
        return self.amplitude() / self.weight

    def variance(self) -> float:
        """Total squared deviation from the mean colour; 0.0 for an empty set."""
        if self.weight <= 0:
            return 0.0
        return self.moment - self.amplitude() / self.weight

    def mean(self) -> Optional[Pixel]:
        """Mean colour truncated to 8 bits, or None for an empty set."""
        if self.weight <= 0:
            return None
        w = self.weight
        return Pixel(self.alpha // w, self.red // w, self.green // w, self.blue // w)


@dataclass(frozen=True)
class Box:
    """
    Axis-aligned region of bucket space.

    Each axis covers buckets (min, max]: min is the exclusive prefix-sum corner.
    """

    alpha_min: int = 0
    alpha_max: int = MAX_SIDE_INDEX
    red_min: int = 0
    red_max: int = MAX_SIDE_INDEX
    green_min: int = 0
    green_max: int = MAX_SIDE_INDEX
    blue_min: int = 0
    blue_max: int = MAX_SIDE_INDEX

    @property
    def size(self) -> int:
        return (
            (self.alpha_max - self.alpha_min)
            * (self.red_max - self.red_min)
            * (self.green_max - self.green_min)
            * (self.blue_max - self.blue_min)
        )

    def lows(self) -> Tuple[int, int, int, int]:
        return (self.alpha_min, self.red_min, self.green_min, self.blue_min)

    def highs(self) -> Tuple[int, int, int, int]:
        return (self.alpha_max, self.red_max, self.green_max, self.blue_max)

    def bounds(self, axis: Axis) -> Tuple[int, int]:
        return self.lows()[axis], self.highs()[axis]

    def with_bounds(self, axis: Axis, lo: int, hi: int) -> "Box":
        name = axis.name.lower()
        return replace(self, **{f"{name}_min": lo, f"{name}_max": hi})

    def split_at(self, axis: Axis, position: int) -> Tuple["Box", "Box"]:
        """Return (lower, upper) halves sharing the cut plane at position."""
        lo, hi = self.bounds(axis)
        return self.with_bounds(axis, lo, position), self.with_bounds(axis, position, hi)

    def slices(self) -> Tuple[slice, slice, slice, slice]:
        """Bucket slices covered by the box, for indexing a 4D table."""
        return tuple(slice(lo + 1, hi + 1) for lo, hi in zip(self.lows(), self.highs()))  # type: ignore[return-value]

    def corners(self) -> Iterator[Tuple[int, Tuple[int, int, int, int]]]:
        """Yield (sign, (a, r, g, b)) for the 16 inclusion-exclusion corners."""
        lows, highs = self.lows(), self.highs()
        for mask in range(16):
            idx = []
            n_low = 0
            for axis in range(4):
                if mask & (1 << axis):
                    idx.append(lows[axis])
                    n_low += 1
                else:
                    idx.append(highs[axis])
            yield (-1 if n_low % 2 else 1), (idx[0], idx[1], idx[2], idx[3])


# Small helpers


def assert_rgba_u8(image: np.ndarray) -> U8RGBA:
    """Validate a uint8 (H,W,4) or (N,4) array and return it typed as U8RGBA."""
    if not isinstance(image, np.ndarray):
        raise InvalidPixelFormat(f"expected numpy array, got {type(image).__name__}")
    if image.dtype != np.uint8:
        raise InvalidPixelFormat(f"expected uint8 samples, got {image.dtype}")
    if image.ndim not in (2, 3) or image.shape[-1] != 4:
        raise InvalidPixelFormat(
            f"expected (H,W,4) or (N,4) RGBA array, got shape {image.shape}"
        )
    return image  # type: ignore[return-value]


__all__ = [
    # aliases / types
    "RGBATuple",
    "U8RGBA",
    "IndexImage",
    "TagTable",
    # errors
    "QuantizationError",
    "InvalidPixelFormat",
    "HistogramStateError",
    # value objects
    "Axis",
    "Pixel",
    "ColorMoment",
    "Box",
    # helpers
    "assert_rgba_u8",
]
