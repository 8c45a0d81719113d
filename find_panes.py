#!/usr/bin/env python3
"""
find_panes.py
Find the stack of stained glass panes whose beacon beam colour is closest to a target.

Usage:
  python find_panes.py [TARGET] --depth D --workers N --metric [cie76|ciede2000] --swatch OUT.png --debug

Target:
  Hex needs a prefix ('#00ffff', '#0ff', '0x00ffff'); plain digits are a packed
  decimal number ('65535'). Defaults to cyan.

Output:
  Distance, blended colour and the ordered pane names (bottom pane first).
  With --swatch, also writes a PNG with target and blended colour side by side.

Notes:
  Search is exhaustive: 16 ** depth combinations for the built-in palette.
  CPU bound. One ProcessPoolExecutor task per starting pane.
"""

from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path
from typing import List, Optional

from beacon_map.colour_convert import DISTANCE_METRICS
from beacon_map.constants import DEFAULT_MAX_DEPTH, DEFAULT_METRIC, DEFAULT_TARGET
from beacon_map.core_types import BeaconMapError, Color8, InvalidInputError
from beacon_map.palette_data import build_palette
from beacon_map.search import count_leaves, find_closest_panes
from beacon_map.utils import (
    debug_log,
    enable_line_buffered_stdout,
    error,
    format_result_lines,
    format_total_duration_compact,
    log,
    print_banner,
    print_config_line,
    save_swatch_png,
    warn,
)

# CLI args & small helpers


def _default_workers() -> int:
    """Leave a few cores free for the system; returns a sensible worker count."""
    n = os.cpu_count() or 4
    reserve = 1 if n <= 6 else 2 if n <= 12 else 3 if n <= 18 else 4
    return max(1, n - reserve)


def parse_target(text: str) -> Color8:
    """
    Parse a target colour.

    '#rrggbb', '#rgb' and '0xrrggbb' are hex; a bare string of digits is a
    packed decimal number. Bare hex is rejected: '808080' would read as decimal.
    """
    s = text.strip()
    if s.startswith(("#", "0x", "0X")):
        return Color8.from_hex(s)
    if s.isdigit():
        return Color8.from_number(int(s))
    raise InvalidInputError(
        f"target must be '#rrggbb', '#rgb', '0xrrggbb' or decimal digits: {text!r}"
    )


def parse_cli_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        target: target colour text
        depth: stack length
        workers: process count
        metric: distance metric name
        swatch: optional Path for a PNG swatch
        debug: bool for per-subtree details
    """
    parser = argparse.ArgumentParser(
        prog="find_panes",
        description="Find the pane stack whose beacon colour best matches a target.",
    )
    parser.add_argument(
        "target",
        nargs="?",
        default=f"0x{DEFAULT_TARGET:06x}",
        help="Target colour: '#rrggbb', '#rgb', '0xrrggbb' or packed decimal digits.",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Number of panes in the stack.",
    )
    parser.add_argument(
        "--workers", type=int, default=_default_workers(), help="Search processes"
    )
    parser.add_argument(
        "--metric",
        choices=sorted(DISTANCE_METRICS),
        default=DEFAULT_METRIC,
        help="Lab distance metric.",
    )
    parser.add_argument(
        "--swatch", type=Path, default=None, help="Write a target/result PNG here"
    )
    parser.add_argument("--debug", action="store_true", help="Per-subtree details")
    return parser.parse_args(argv)


# Entry point


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    try:
        target = parse_target(args.target)
        palette = build_palette()
        if args.depth < 1:
            raise InvalidInputError(f"--depth must be >= 1, got {args.depth}")

        leaves = count_leaves(len(palette), args.depth)
        print_config_line(
            "search",
            [
                ("Target", target.to_hex()),
                ("Depth", args.depth),
                ("Panes", len(palette)),
                ("Combinations", leaves),
                ("Workers", args.workers),
                ("Metric", args.metric),
            ],
            debug=False,
        )
        if args.depth > 6:
            warn(f"depth {args.depth} means {leaves:,} combinations; this may be slow")

        t_start = time.perf_counter()
        result = find_closest_panes(
            target,
            palette,
            args.depth,
            workers=args.workers,
            metric=args.metric,
            debug=args.debug,
        )
        elapsed = time.perf_counter() - t_start
    except BeaconMapError as exc:
        error(str(exc))
        return 2

    print_banner("Result")
    for line in format_result_lines(result, target):
        log(line)
    log(f"Total time {format_total_duration_compact(elapsed)}")

    if args.swatch is not None:
        save_swatch_png(args.swatch, target, result)
        if args.debug:
            debug_log(f"wrote swatch {args.swatch}")
        else:
            log(f"Wrote {args.swatch.name}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
