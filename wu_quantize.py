#!/usr/bin/env python3
"""
wu_quantize.py
Reduce RGBA images to an indexed palette with Wu's colour quantizer.

Usage:
  python wu_quantize.py SRC [--outdir DIR] --colors N --alpha-threshold T --alpha-fader F --jobs J --workers W --debug

Input:
  Any Pillow-readable image, or a folder of them. Alpha is kept: pixels at or
  below the alpha threshold map to a fully transparent palette slot.

Output:
  Paletted PNG. Writes <stem>_wu.png next to the input, or into --outdir.

Notes:
  Quantization lives in wu_palette.quantize / wu_palette.image_io.
  Shared logging and formatting helpers come from wu_palette.utils.
  CPU bound. ThreadPoolExecutor is used for folders and histogram builds.
"""

from __future__ import annotations

import argparse
import io
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import redirect_stdout
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np

from wu_palette.constants import (
    DEFAULT_ALPHA_FADER,
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_MAX_COLORS,
    IMAGE_EXTS,
    OUTPUT_SUFFIX,
)
from wu_palette.core_types import QuantizationError
from wu_palette.histogram import Histogram
from wu_palette.image_io import (
    is_image_file,
    load_image_rgba,
    quantize_image,
    save_indexed_png,
)
from wu_palette.utils import (
    # formatting
    format_seconds_compact,
    # reporting
    palette_usage_report,
    # pretty logging
    print_banner,
    log,
    debug_log,
    warn,
    error,
    print_config_line,
    key_value_pairs_to_string,
    enable_line_buffered_stdout,
)

# CLI args & small helpers


def _default_workers() -> int:
    """Leave a few cores free for the system; returns a sensible worker count."""
    n = os.cpu_count() or 4
    reserve = 1 if n <= 6 else 2 if n <= 12 else 3 if n <= 18 else 4
    return max(1, n - reserve)


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        src: Path to image or folder
        outdir: optional Path for outputs
        colors: palette size cap (2..256)
        alpha_threshold: alpha at or below which pixels are transparent
        alpha_fader: semi-transparent alpha bias
        jobs: parallel file workers
        workers: threads for the histogram build
        debug: bool for per-stage timings and palette usage
    """
    parser = argparse.ArgumentParser(
        prog="wu_quantize",
        description="Quantize image(s) to an indexed palette with Wu's algorithm.",
    )
    parser.add_argument("src", type=Path, help="Input image or folder")
    parser.add_argument(
        "--outdir", type=Path, default=None, help="Output directory (optional)"
    )
    parser.add_argument(
        "--colors",
        type=int,
        default=DEFAULT_MAX_COLORS,
        help="Maximum palette size, transparent slot included (2..256).",
    )
    parser.add_argument(
        "--alpha-threshold",
        type=int,
        default=DEFAULT_ALPHA_THRESHOLD,
        help="Pixels with alpha <= T become fully transparent (0..255).",
    )
    parser.add_argument(
        "--alpha-fader",
        type=int,
        default=DEFAULT_ALPHA_FADER,
        help="Semi-transparent alpha bias, alpha + alpha %% F (1..255).",
    )
    parser.add_argument(
        "--jobs", type=int, default=2, help="Files processed in parallel"
    )
    parser.add_argument(
        "--workers", type=int, default=_default_workers(), help="Internal workers"
    )
    parser.add_argument(
        "--debug", action="store_true", help="Per-stage timings and palette usage"
    )
    return parser.parse_args(argv)


def _output_path(src_path: Path, outdir: Optional[Path]) -> Path:
    name = f"{src_path.stem}{OUTPUT_SUFFIX}.png"
    return (outdir / name) if outdir else src_path.with_name(name)


# Per-file processing


def _process_single_image(
    src_path: Path,
    out_path: Path,
    args: argparse.Namespace,
    histogram: Optional[Histogram] = None,
) -> bool:
    """
    Process a single image path end-to-end:
      load -> quantize -> assign -> save -> report.
    Returns False when the file could not be processed.
    """
    t_start = time.perf_counter()
    print_banner(src_path.name)

    try:
        rgba = load_image_rgba(src_path)
    except OSError as e:
        error(f"{src_path.name}: cannot read image ({e})")
        return False
    height, width = rgba.shape[0], rgba.shape[1]
    t_loaded = time.perf_counter()

    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Loaded", f"{width}x{height}"),
                    ("Alpha=255", int(np.count_nonzero(rgba[..., 3] == 255))),
                    ("Alpha<=T", int(np.count_nonzero(rgba[..., 3] <= args.alpha_threshold))),
                ]
            )
        )

    try:
        indices, palette = quantize_image(
            rgba,
            max_colors=args.colors,
            alpha_threshold=args.alpha_threshold,
            alpha_fader=args.alpha_fader,
            histogram=histogram,
            workers=args.workers,
            debug=args.debug,
        )
    except (QuantizationError, ValueError) as e:
        error(f"{src_path.name}: {e}")
        return False
    t_quantized = time.perf_counter()

    try:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path = save_indexed_png(out_path, indices, palette)
    except OSError as e:
        error(f"{src_path.name}: cannot write {out_path} ({e})")
        return False
    t_saved = time.perf_counter()

    visible = int(np.count_nonzero(rgba[..., 3] > args.alpha_threshold))
    log(f"Wrote {out_path.name} | size={width}x{height} | palette_size={len(palette)}")
    log(f"Visible pixels: {visible:,}")

    if args.debug:
        log("Palette usage:")
        for i, hex_code, count in palette_usage_report(indices, palette):
            log(f"  [{i:3d}] {hex_code}: {count:,}")
        debug_log(
            f"Total {format_seconds_compact(t_saved - t_start)}  "
            f"(load={format_seconds_compact(t_loaded - t_start)}, "
            f"quantize={format_seconds_compact(t_quantized - t_loaded)}, "
            f"save={format_seconds_compact(t_saved - t_quantized)})"
        )
    else:
        log(f"Total time {format_seconds_compact(t_saved - t_start)}")
    return True


def _process_one_captured(path: Path, args: argparse.Namespace) -> Tuple[bool, str]:
    """
    Process a single file with stdout capture.

    Useful for concurrent execution where output should be printed in order.
    """
    buf = io.StringIO()
    with redirect_stdout(buf):
        ok = _process_single_image(path, _output_path(path, args.outdir), args)
    return ok, buf.getvalue()


def _collect_images(folder: Path) -> List[Path]:
    candidates = [
        p
        for p in folder.iterdir()
        if p.is_file()
        and p.suffix.lower() in IMAGE_EXTS
        and not p.stem.endswith(OUTPUT_SUFFIX)
    ]
    files: List[Path] = []
    for p in sorted(candidates, key=lambda p: p.name.lower()):
        if is_image_file(p):
            files.append(p)
        else:
            warn(f"skipping unreadable image: {p.name}")
    return files


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Handles single file or folder. In folder mode supports --jobs parallelism
    while preserving readable output ordering.
    """
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    print_config_line(
        "run",
        [
            ("CPU cores", os.cpu_count() or 1),
            ("Workers", args.workers),
            ("Jobs", args.jobs),
            ("Colors", args.colors),
        ],
    )
    if args.debug:
        debug_log(
            key_value_pairs_to_string(
                [
                    ("Alpha threshold", args.alpha_threshold),
                    ("Alpha fader", args.alpha_fader),
                ]
            )
        )

    src = args.src
    if not src.exists():
        error(f"not found: {src}")
        return 2

    if not src.is_dir():
        ok = _process_single_image(src, _output_path(src, args.outdir), args)
        return 0 if ok else 1

    files = _collect_images(src)
    if not files:
        warn(f"no images in {src}")
        return 0
    if args.debug:
        debug_log(key_value_pairs_to_string([("Images", len(files)), ("Jobs", args.jobs)]))

    if args.jobs <= 1:
        # one buffer reused across files
        histogram = Histogram()
        results = [
            _process_single_image(p, _output_path(p, args.outdir), args, histogram)
            for p in files
        ]
        return 0 if all(results) else 1

    # redirect_stdout is process-wide; overlapping exits can leave a buffer installed
    real_stdout = sys.stdout
    try:
        with ThreadPoolExecutor(max_workers=args.jobs) as ex:
            futures = [ex.submit(_process_one_captured, p, args) for p in files]
            outcomes = [f.result() for f in futures]
    finally:
        sys.stdout = real_stdout
    print("".join(text for _ok, text in outcomes), end="", flush=True)
    return 0 if all(ok for ok, _text in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
