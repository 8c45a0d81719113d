from __future__ import annotations

"""
Pane blending.

A beam passing through a stack of panes is averaged with each new pane in
turn, so position 0 and position 1 carry weight 1 and every later position
doubles: [1, 1, 2, 4, ...] over a total of 2**(n-1).

Exports:
  pane_weights(n)
  blend_panes(combination, palette)
  palette_matrix(palette)
"""

from typing import List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .core_types import ColorF, MissingKeyError, Palette


def pane_weights(n: int) -> NDArray[np.float64]:
    """Blend weight for each of n positions."""
    if n <= 0:
        return np.zeros((0,), dtype=np.float64)
    weights = np.ones((n,), dtype=np.float64)
    weights[1:] = 2.0 ** np.arange(n - 1, dtype=np.float64)
    return weights


def blend_scale(n: int) -> float:
    """Normaliser applied after summing n weighted panes."""
    return 1.0 / (2.0 ** (n - 1)) if n > 0 else 0.0


def _lookup_rows(combination: Sequence[str], palette: Palette) -> NDArray[np.float64]:
    rows: List[Tuple[int, int, int]] = []
    for name in combination:
        try:
            rows.append(palette[name].to_tuple())
        except KeyError:
            raise MissingKeyError(name) from None
    return np.array(rows, dtype=np.float64).reshape(-1, 3)


def blend_panes(combination: Sequence[str], palette: Palette) -> ColorF:
    """
    Blend an ordered pane sequence into one real-valued colour.
    Returns (0, 0, 0) for an empty sequence.
    """
    n = len(combination)
    if n == 0:
        return ColorF(0.0, 0.0, 0.0)
    rows = _lookup_rows(combination, palette)
    weights = pane_weights(n)
    total = np.zeros((3,), dtype=np.float64)
    # Summed in position order so partial sums match the search's running sums.
    for i in range(n):
        total = total + weights[i] * rows[i]
    return ColorF.from_array(total * blend_scale(n))


def palette_matrix(palette: Palette) -> Tuple[List[str], NDArray[np.float64]]:
    """Names in palette order and their colours as a float64 [P,3] matrix."""
    names = list(palette.keys())
    return names, _lookup_rows(names, palette)


__all__ = ["pane_weights", "blend_scale", "blend_panes", "palette_matrix"]
