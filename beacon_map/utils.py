from __future__ import annotations

"""
Shared utilities for beacon_map.

Includes time and number formatting, result reporting, swatch output via
Pillow, and tidy print-based logging.
"""

import sys
from pathlib import Path
from typing import Any, Iterable, List, Tuple

import numpy as np
from PIL import Image

from .core_types import Color8, SearchResult


#  Time / number formatting


def format_seconds_compact(seconds: float) -> str:
    """Human-friendly seconds: '<ms>ms', '<s>s', or 'Mm Ss'."""
    if seconds < 1.0:
        return f"{seconds * 1000.0:.1f}ms"
    if seconds < 60.0:
        return f"{seconds:.3f}s"
    minutes = int(seconds // 60)
    return f"{minutes}m {seconds - 60 * minutes:.1f}s"


def format_total_duration_compact(seconds: float) -> str:
    """Compact total duration: 'Mm Ss', 'Ss.s', or 'ms'."""
    if seconds >= 60.0:
        minutes = int(seconds // 60)
        rem = int(round(seconds - 60 * minutes))
        return f"{minutes}m {rem}s"
    if seconds >= 1.0:
        return f"{seconds:.1f}s"
    return f"{seconds * 1000.0:.1f}ms"


def format_bool_on_off(value: Any) -> str:
    """Pretty boolean: 'on'/'off' for bools; str(value) otherwise."""
    if isinstance(value, bool):
        return "on" if value else "off"
    return str(value)


def format_number_compact(value: Any) -> str:
    """Pretty number: 1,234 style for ints; compact for floats; passthrough otherwise."""
    if isinstance(value, int):
        return f"{value:,}"
    if isinstance(value, float):
        return f"{value:.3f}".rstrip("0").rstrip(".")
    return str(value)


def key_value_pairs_to_string(
    pairs: Iterable[Tuple[str, Any]], sep: str = "  ", eq: str = ": "
) -> str:
    """Format (name, value) pairs as 'Name: value' blocks separated by sep."""
    out: List[str] = []
    for name, value in pairs:
        display = (
            format_bool_on_off(value)
            if isinstance(value, bool)
            else format_number_compact(value)
        )
        out.append(f"{name}{eq}{display}")
    return sep.join(out)


# Result reporting


def format_result_lines(result: SearchResult, target: Color8) -> List[str]:
    """Human-readable summary of a search result."""
    blended = result.colour
    return [
        f"Target: {target.to_hex()}  {target.to_tuple()}",
        f"Distance: {result.distance:.6f}",
        "Calculated Color: "
        f"({blended.red:.3f}, {blended.green:.3f}, {blended.blue:.3f})  "
        f"~{blended.to_color8().to_hex()}",
        f"Final Panes: {', '.join(result.combination)}",
        f"Combinations checked: {result.leaves:,}",
    ]


def save_swatch_png(
    path: Path, target: Color8, result: SearchResult, size: int = 64
) -> None:
    """Save a 2-cell PNG: target on the left, blended colour on the right."""
    size = max(1, int(size))
    swatch = np.zeros((size, 2 * size, 3), dtype=np.uint8)
    swatch[:, :size] = target.to_tuple()
    swatch[:, size:] = result.colour.to_color8().to_tuple()
    Image.fromarray(swatch).save(path)


#  CLI / logging


def enable_line_buffered_stdout() -> None:
    """Enable line-buffered stdout when supported."""
    reconfig = getattr(sys.stdout, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(line_buffering=True, write_through=True)
        except (OSError, ValueError):
            pass


def print_config_line(
    section: str, pairs: Iterable[Tuple[str, Any]], debug: bool
) -> None:
    """
    Emit a single human-readable config line, e.g.:
      [search] Depth: 5  Workers: 8  Metric: cie76
    Routes to debug_log() when debug=True, else to log().
    """
    line = f"[{section}] {key_value_pairs_to_string(pairs)}"
    (debug_log if debug else log)(line)


def print_banner(title: str) -> None:
    """Section banner."""
    print(f"\n=== {title} ===", flush=True)


def log(message: str) -> None:
    """Plain log line."""
    print(message, flush=True)


def debug_log(message: str) -> None:
    """Debug log line."""
    print(f"[debug] {message}", flush=True)


def warn(message: str) -> None:
    """Warning log line."""
    print(f"[warn] {message}", flush=True)


def error(message: str) -> None:
    """Error log line to stderr."""
    print(f"[error] {message}", file=sys.stderr, flush=True)


__all__ = [
    "format_seconds_compact",
    "format_total_duration_compact",
    "format_bool_on_off",
    "format_number_compact",
    "key_value_pairs_to_string",
    "format_result_lines",
    "save_swatch_png",
    "enable_line_buffered_stdout",
    "print_config_line",
    "print_banner",
    "log",
    "debug_log",
    "warn",
    "error",
]
