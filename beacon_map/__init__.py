"""
beacon_map package.

Purpose:
  Find the stack of stained glass panes whose blended beam colour is
  perceptually closest to a target colour. See find_panes.py for the CLI.

Public API:
  find_closest_panes : exhaustive, optionally multi-process search.
  colour_convert     : sRGB -> Lab and Lab distance metrics.
  blend              : position-weighted pane blending.
  core_types         : value objects (Color8, ColorF, SearchResult) and errors.
  palette_data       : the built-in pane palette and builders.
  utils              : formatting, swatch output and logging helpers.

Quick start:
  from beacon_map import Color8, build_palette, find_closest_panes
  result = find_closest_panes(Color8.from_number(0x00FFFF), build_palette(), 3)
"""

__version__ = "0.2.0"

# Re-export namespaces for convenience.
from . import blend
from . import colour_convert
from . import core_types
from . import palette_data
from . import search
from . import utils

from .core_types import (  # noqa: E402,F401
    BeaconMapError,
    Color8,
    ColorF,
    InvalidInputError,
    MissingKeyError,
    SearchResult,
    WorkerFailureError,
)
from .palette_data import PANES, build_palette  # noqa: E402,F401
from .search import find_closest_panes, reduce_results  # noqa: E402,F401

__all__ = [
    "__version__",
    "blend",
    "colour_convert",
    "core_types",
    "palette_data",
    "search",
    "utils",
    "BeaconMapError",
    "Color8",
    "ColorF",
    "InvalidInputError",
    "MissingKeyError",
    "SearchResult",
    "WorkerFailureError",
    "PANES",
    "build_palette",
    "find_closest_panes",
    "reduce_results",
]
