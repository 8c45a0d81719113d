"""
Global tunables and colour-science constants used across the project.

- Search defaults (DEFAULT_*)
- sRGB decode and D65 conversion constants
- Distance tie tolerance
"""
from __future__ import annotations

from typing import Tuple

# ===============
# Search defaults
# ===============
DEFAULT_MAX_DEPTH: int = 5
DEFAULT_TARGET: int = 0x00FFFF
DEFAULT_METRIC: str = "cie76"

# ====================
# sRGB -> Lab (D65)
# ====================
MAX_CHANNEL: float = 255.0
SRGB_LINEAR_THRESHOLD: float = 0.04045

SRGB_TO_XYZ: Tuple[Tuple[float, float, float], ...] = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

D65_WHITE: Tuple[float, float, float] = (0.95047, 1.00000, 1.08883)

# CIE 1976 linear-segment cutoff and slope.
LAB_EPSILON: float = 0.008856
LAB_KAPPA: float = 903.3

# ==========
# Comparison
# ==========
# Distances closer than this count as a tie (first found keeps it).
TIE_TOLERANCE: float = 1e-9

__all__ = [
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_TARGET",
    "DEFAULT_METRIC",
    "MAX_CHANNEL",
    "SRGB_LINEAR_THRESHOLD",
    "SRGB_TO_XYZ",
    "D65_WHITE",
    "LAB_EPSILON",
    "LAB_KAPPA",
    "TIE_TOLERANCE",
]
