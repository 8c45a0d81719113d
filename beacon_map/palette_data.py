from __future__ import annotations

"""
Palette definitions and builders.

Exports:
  PANES: list[tuple[str, RGBTuple]]  # [(name, (r, g, b)), ...]
  build_palette(name_rgb_pairs=PANES) -> Palette
  palette_from_hex(hex_name_pairs) -> Palette
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Tuple, Union

from .core_types import Color8, InvalidInputError, Palette, RGBTuple


# Stained glass pane colours as seen through a beacon beam.
PANES: List[Tuple[str, RGBTuple]] = [
    ("white", (249, 255, 254)),
    ("light_gray", (157, 157, 151)),
    ("gray", (71, 79, 82)),
    ("black", (29, 29, 33)),
    ("brown", (131, 84, 50)),
    ("red", (176, 46, 38)),
    ("orange", (249, 128, 29)),
    ("yellow", (254, 216, 61)),
    ("lime", (128, 199, 31)),
    ("green", (94, 124, 22)),
    ("cyan", (22, 156, 156)),
    ("light_blue", (58, 179, 218)),
    ("blue", (60, 68, 170)),
    ("purple", (137, 50, 184)),
    ("magenta", (199, 78, 189)),
    ("pink", (243, 139, 170)),
]


def build_palette(
    name_rgb_pairs: Iterable[Tuple[str, Union[RGBTuple, Color8]]] = PANES,
) -> Palette:
    """
    Convert (name, rgb) pairs into a read-only name -> Color8 mapping.
    Insertion order is kept and is the search enumeration order.
    """
    entries: Dict[str, Color8] = {}
    for name, rgb in name_rgb_pairs:
        if name in entries:
            raise InvalidInputError(f"duplicate pane name: {name!r}")
        entries[name] = rgb if isinstance(rgb, Color8) else Color8.from_bytes(rgb)
    return MappingProxyType(entries)


def palette_from_hex(hex_name_pairs: Iterable[Tuple[str, str]]) -> Palette:
    """Build a palette from (hex, name) pairs, e.g. ('#f9fffe', 'white')."""
    return build_palette((name, Color8.from_hex(hx)) for hx, name in hex_name_pairs)


__all__ = ["PANES", "build_palette", "palette_from_hex"]
