# src/chart_lut/colorspace.py
#
# sRGB <-> linear <-> CIE XYZ (D65) <-> CIE Lab.
#
# Every function accepts a single color of shape (3,) or a batch (..., 3)
# and returns the same shape. Out-of-gamut results are clipped to [0, 1],
# never rejected: LUT nodes far outside the chart gamut still need an
# output value.

import numpy as np

from .data import LUMA_WEIGHTS

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# sRGB (D65) primaries, published 7-digit values.
RGB_TO_XYZ = np.array(
    [
        [0.4124564, 0.3575761, 0.1804375],
        [0.2126729, 0.7151522, 0.0721750],
        [0.0193339, 0.1191920, 0.9503041],
    ]
)

XYZ_TO_RGB = np.array(
    [
        [3.2404542, -1.5371385, -0.4985314],
        [-0.9692660, 1.8760108, 0.0415560],
        [0.0556434, -0.2040259, 1.0572252],
    ]
)

WHITE_D65 = np.array([0.95047, 1.00000, 1.08883])

_DELTA = 6.0 / 29.0

# ---------------------------------------------------------------------------
# Transfer functions
# ---------------------------------------------------------------------------


def srgb_to_linear(rgb) -> np.ndarray:
    """Decode sRGB [0,1] to linear light. Input is clamped first."""
    v = np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0)
    return np.where(v <= 0.04045, v / 12.92, ((v + 0.055) / 1.055) ** 2.4)


def linear_to_srgb(linear) -> np.ndarray:
    """Encode linear light to sRGB. Input is clamped first."""
    v = np.clip(np.asarray(linear, dtype=np.float64), 0.0, 1.0)
    return np.where(v <= 0.0031308, v * 12.92, 1.055 * np.power(v, 1.0 / 2.4) - 0.055)


# ---------------------------------------------------------------------------
# XYZ
# ---------------------------------------------------------------------------


def to_xyz(rgb) -> np.ndarray:
    """sRGB -> CIE XYZ (D65)."""
    return srgb_to_linear(rgb) @ RGB_TO_XYZ.T


def from_xyz(xyz) -> np.ndarray:
    """CIE XYZ (D65) -> sRGB, clipped to [0, 1]."""
    linear = np.asarray(xyz, dtype=np.float64) @ XYZ_TO_RGB.T
    return linear_to_srgb(linear)


# ---------------------------------------------------------------------------
# Lab
# ---------------------------------------------------------------------------


def _lab_f(t: np.ndarray) -> np.ndarray:
    # cbrt rather than ** (1/3): the branch only applies to t > delta^3 > 0,
    # but np.where evaluates both sides.
    return np.where(t > _DELTA**3, np.cbrt(t), t / (3 * _DELTA**2) + 4.0 / 29.0)


def _lab_f_inv(t: np.ndarray) -> np.ndarray:
    return np.where(t > _DELTA, t**3, 3 * _DELTA**2 * (t - 4.0 / 29.0))


def xyz_to_lab(xyz) -> np.ndarray:
    f = _lab_f(np.asarray(xyz, dtype=np.float64) / WHITE_D65)
    L = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return np.stack([L, a, b], axis=-1)


def lab_to_xyz(lab) -> np.ndarray:
    lab = np.asarray(lab, dtype=np.float64)
    fy = (lab[..., 0] + 16.0) / 116.0
    fx = fy + lab[..., 1] / 500.0
    fz = fy - lab[..., 2] / 200.0
    return _lab_f_inv(np.stack([fx, fy, fz], axis=-1)) * WHITE_D65


def to_lab(rgb) -> np.ndarray:
    """sRGB -> CIE Lab (D65)."""
    return xyz_to_lab(to_xyz(rgb))


def from_lab(lab) -> np.ndarray:
    """CIE Lab (D65) -> sRGB, clipped to [0, 1]."""
    return from_xyz(lab_to_xyz(lab))


# ---------------------------------------------------------------------------
# Derived metrics
# ---------------------------------------------------------------------------


def luminance(rgb) -> np.ndarray:
    """BT.709 luma of gamma-encoded RGB, the way the chart patches are scored."""
    return np.asarray(rgb, dtype=np.float64) @ LUMA_WEIGHTS


def delta_e(lab1, lab2) -> np.ndarray:
    """CIE76 colour difference (Euclidean distance in Lab)."""
    diff = np.asarray(lab1, dtype=np.float64) - np.asarray(lab2, dtype=np.float64)
    return np.sqrt(np.sum(diff * diff, axis=-1))
