# wu_palette/utils.py
from __future__ import annotations

"""
Shared utilities for wu_palette.

Includes time and number formatting, row partitioning for threaded histogram
builds, palette usage reporting, and tidy logging.
"""

import sys
from typing import Any, Iterable, List, Sequence, Tuple

import numpy as np

from .core_types import IndexImage, Pixel


#  Time / size formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def split_rows_into_parts(height: int, parts: int) -> List[Tuple[int, int]]:
    """Partition range [0, height) into ~parts contiguous [start, end) row spans."""
    parts = max(1, int(parts))
    step = max(1, (height + parts - 1) // parts)
    return [(start, min(start + step, height)) for start in range(0, height, step)]


# Palette helpers


def pixel_to_hex(pixel: Pixel) -> str:
    """Pixel to '#aarrggbb' (lowercase)."""
    return f"#{pixel.argb:08x}"


def palette_usage_report(
    indices: IndexImage, palette: Sequence[Pixel]
) -> List[Tuple[int, str, int]]:
    """
    Count pixels per palette entry.

    Returns a list of (index, '#aarrggbb', count) for used entries, sorted by
    count descending.
    """
    counts = np.bincount(
        np.asarray(indices, dtype=np.int64).ravel(), minlength=len(palette)
    )
    report: List[Tuple[int, str, int]] = []
    for i, count in sorted(enumerate(counts.tolist()), key=lambda x: -x[1]):
        if count <= 0 or i >= len(palette):
            continue
        report.append((i, pixel_to_hex(palette[i]), int(count)))
    return report


#  CLI / progress logging


def enable_line_buffered_stdout() -> None:
    """Line-buffer stdout where the stream supports reconfigure()."""
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


def key_value_pairs_to_string(pairs: Iterable[Tuple[str, Any]]) -> str:
    """'Name: value' blocks joined by two spaces; ints get 1,234 grouping."""
    return "  ".join(
        f"{name}: {value:,}" if isinstance(value, int) else f"{name}: {value}"
        for name, value in pairs
    )


def print_config_line(section: str, pairs: Iterable[Tuple[str, Any]]) -> None:
    """One '[section] Name: value  ...' line, e.g. the CLI's run settings."""
    log(f"[{section}] {key_value_pairs_to_string(pairs)}")


def print_banner(title: str) -> None:
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    print(message, flush=True)


def debug_log(message: str) -> None:
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Errors go to stderr so captured per-file stdout stays clean."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    # formatting
    "format_seconds_compact",
    "key_value_pairs_to_string",
    # partitioning
    "split_rows_into_parts",
    # palette helpers
    "pixel_to_hex",
    "palette_usage_report",
    # logging / progress
    "enable_line_buffered_stdout",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
