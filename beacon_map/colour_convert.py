from __future__ import annotations

"""
Colour conversions and metrics (D65).

Exports:
  rgb_to_linear(srgb)
  rgb_to_lab(rgb)
  delta_e76(lab1, lab2)
  delta_e2000(lab1, lab2)
  resolve_metric(name_or_callable)
  DISTANCE_METRICS

All functions broadcast over a trailing axis of 3 and work in float64.
"""

from typing import Dict, Union

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .constants import (
    D65_WHITE,
    LAB_EPSILON,
    LAB_KAPPA,
    MAX_CHANNEL,
    SRGB_LINEAR_THRESHOLD,
    SRGB_TO_XYZ,
)
from .core_types import DistanceMetric, InvalidInputError, Lab


# sRGB to linear


def rgb_to_linear(srgb: ArrayLike) -> NDArray[np.float64]:
    """
    Convert sRGB (non-linear 0..1) to linear RGB. Vectorised.
    Values outside 0..1 are not clamped.
    """
    srgb_f = np.asarray(srgb, dtype=np.float64)
    # Both branches are evaluated; negative bases make NaN in the unused one.
    with np.errstate(invalid="ignore"):
        linear = np.where(
            srgb_f <= SRGB_LINEAR_THRESHOLD,
            srgb_f / 12.92,
            ((srgb_f + 0.055) / 1.055) ** 2.4,
        )
    return linear


# sRGB to Lab (D65)


def _lab_f(t: NDArray[np.float64]) -> NDArray[np.float64]:
    return np.where(t > LAB_EPSILON, np.cbrt(t), (LAB_KAPPA * t + 16.0) / 116.0)


def rgb_to_lab(rgb: ArrayLike) -> Lab:
    """
    sRGB on the 0..255 scale to CIE Lab (D65).
    Accepts any shape (..., 3), integer or float. Returns float64.
    """
    rgb_f = np.asarray(rgb, dtype=np.float64) / MAX_CHANNEL
    if rgb_f.shape[-1:] != (3,):
        raise InvalidInputError(f"expected trailing axis of 3, got {rgb_f.shape}")

    r_lin = rgb_to_linear(rgb_f[..., 0])
    g_lin = rgb_to_linear(rgb_f[..., 1])
    b_lin = rgb_to_linear(rgb_f[..., 2])

    # Linear RGB -> XYZ (D65)
    (m00, m01, m02), (m10, m11, m12), (m20, m21, m22) = SRGB_TO_XYZ
    X = m00 * r_lin + m01 * g_lin + m02 * b_lin
    Y = m10 * r_lin + m11 * g_lin + m12 * b_lin
    Z = m20 * r_lin + m21 * g_lin + m22 * b_lin

    # Reference white (D65)
    Xn, Yn, Zn = D65_WHITE
    fx, fy, fz = _lab_f(X / Xn), _lab_f(Y / Yn), _lab_f(Z / Zn)

    out = np.empty(rgb_f.shape, dtype=np.float64)
    out[..., 0] = 116.0 * fy - 16.0
    out[..., 1] = 500.0 * (fx - fy)
    out[..., 2] = 200.0 * (fy - fz)
    return out


# Metrics


def _as_scalar_or_array(
    value: NDArray[np.float64],
) -> Union[float, NDArray[np.float64]]:
    return float(value) if value.ndim == 0 else value


def delta_e76(lab1: ArrayLike, lab2: ArrayLike) -> Union[float, NDArray[np.float64]]:
    """CIE76: Euclidean distance in Lab. Returns a float for single triples."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return _as_scalar_or_array(np.sqrt(np.sum(diff * diff, axis=-1)))


def delta_e2000(
    lab1: ArrayLike, lab2: ArrayLike
) -> Union[float, NDArray[np.float64]]:
    """
    CIEDE2000 distance (kL = kC = kH = 1).
    Broadcasting version of the usual scalar reference formula.
    """
    l1 = np.asarray(lab1, dtype=np.float64)
    l2 = np.asarray(lab2, dtype=np.float64)
    L1, a1, b1 = l1[..., 0], l1[..., 1], l1[..., 2]
    L2, a2, b2 = l2[..., 0], l2[..., 1], l2[..., 2]

    C1 = np.hypot(a1, b1)
    C2 = np.hypot(a2, b2)
    C_bar = 0.5 * (C1 + C2)
    G = 0.5 * (1.0 - np.sqrt((C_bar**7) / (C_bar**7 + 25.0**7)))

    a1p = (1.0 + G) * a1
    a2p = (1.0 + G) * a2
    C1p = np.hypot(a1p, b1)
    C2p = np.hypot(a2p, b2)

    h1p = np.degrees(np.arctan2(b1, a1p)) % 360.0
    h2p = np.degrees(np.arctan2(b2, a2p)) % 360.0

    dLp = L2 - L1
    dCp = C2p - C1p

    chroma_zero = (C1p * C2p) == 0.0
    dhp = h2p - h1p
    dhp = np.where(dhp > 180.0, dhp - 360.0, np.where(dhp < -180.0, dhp + 360.0, dhp))
    dhp = np.where(chroma_zero, 0.0, dhp)

    dHp = 2.0 * np.sqrt(C1p * C2p) * np.sin(np.radians(dhp / 2.0))

    L_bar = 0.5 * (L1 + L2)
    C_bar_p = 0.5 * (C1p + C2p)

    h_sum = h1p + h2p
    h_bar_p = np.where(
        np.abs(h1p - h2p) <= 180.0,
        0.5 * h_sum,
        np.where(h_sum < 360.0, 0.5 * (h_sum + 360.0), 0.5 * (h_sum - 360.0)),
    )
    h_bar_p = np.where(chroma_zero, h_sum, h_bar_p)

    T = (
        1.0
        - 0.17 * np.cos(np.radians(h_bar_p - 30.0))
        + 0.24 * np.cos(np.radians(2.0 * h_bar_p))
        + 0.32 * np.cos(np.radians(3.0 * h_bar_p + 6.0))
        - 0.20 * np.cos(np.radians(4.0 * h_bar_p - 63.0))
    )

    d_theta = 30.0 * np.exp(-(((h_bar_p - 275.0) / 25.0) ** 2.0))
    R_c = 2.0 * np.sqrt((C_bar_p**7) / (C_bar_p**7 + 25.0**7))

    S_l = 1.0 + (0.015 * ((L_bar - 50.0) ** 2.0)) / np.sqrt(
        20.0 + ((L_bar - 50.0) ** 2.0)
    )
    S_c = 1.0 + 0.045 * C_bar_p
    S_h = 1.0 + 0.015 * C_bar_p * T
    R_t = -np.sin(np.radians(2.0 * d_theta)) * R_c

    dE = np.sqrt(
        (dLp / S_l) ** 2
        + (dCp / S_c) ** 2
        + (dHp / S_h) ** 2
        + R_t * (dCp / S_c) * (dHp / S_h)
    )
    return _as_scalar_or_array(dE)


DISTANCE_METRICS: Dict[str, DistanceMetric] = {
    "cie76": delta_e76,
    "ciede2000": delta_e2000,
}


def resolve_metric(metric: Union[str, DistanceMetric]) -> DistanceMetric:
    """Look up a metric by name, or pass a callable through unchanged."""
    if callable(metric):
        return metric
    try:
        return DISTANCE_METRICS[str(metric).lower()]
    except KeyError:
        known = ", ".join(sorted(DISTANCE_METRICS))
        raise InvalidInputError(
            f"unknown metric {metric!r} (expected one of: {known})"
        ) from None


__all__ = [
    "rgb_to_linear",
    "rgb_to_lab",
    "delta_e76",
    "delta_e2000",
    "DISTANCE_METRICS",
    "resolve_metric",
]
