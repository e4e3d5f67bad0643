# src/chart_lut/statistics.py
#
# Robust statistics shared by patch scoring and range analysis.
# Every function refuses an empty input with EmptyInputError; the only
# empty-input fallbacks in the engine live in patches.py and are documented
# there.

import math

import numpy as np

from .errors import EmptyInputError


def _as_values(values, name: str = "values") -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0:
        raise EmptyInputError(f"Cannot compute {name} of an empty sequence.")
    return arr


def mean(values) -> float:
    return float(np.mean(_as_values(values, "mean")))


def median(values) -> float:
    return float(np.median(_as_values(values, "median")))


def mad(values, median_value: float | None = None) -> float:
    """Median absolute deviation around ``median_value`` (computed if omitted)."""
    arr = _as_values(values, "MAD")
    if median_value is None:
        median_value = float(np.median(arr))
    return float(np.median(np.abs(arr - median_value)))


def _std(arr: np.ndarray) -> float:
    # A constant sequence has exactly zero spread; np.std can leave 1e-17
    # behind from the mean's rounding.
    if np.ptp(arr) == 0:
        return 0.0
    return float(np.std(arr))


def stddev(values) -> float:
    """Population standard deviation (divides by N, not N - 1)."""
    return _std(_as_values(values, "standard deviation"))


def cv(values) -> float:
    """Coefficient of variation. A zero mean yields 0 by convention."""
    arr = _as_values(values, "coefficient of variation")
    m = float(np.mean(arr))
    if m == 0:
        return 0.0
    return _std(arr) / m


def percentile(sorted_values, p: float) -> float:
    """
    Nearest-rank percentile on an already sorted sequence:
    sorted_values[floor(n * p)], clamped to the last element.
    """
    arr = _as_values(sorted_values, "percentile")
    index = min(int(math.floor(arr.size * p)), arr.size - 1)
    return float(arr[max(index, 0)])


def skewness(values) -> float:
    """
    Third standardized moment. Fewer than three samples or zero spread
    carry no shape information and return 0.
    """
    arr = _as_values(values, "skewness")
    if arr.size < 3:
        return 0.0
    m = float(np.mean(arr))
    std = _std(arr)
    if std == 0:
        return 0.0
    return float(np.mean(((arr - m) / std) ** 3))


def robust_mean(values, threshold: float = 2.0, min_samples: int = 3) -> float:
    """
    Mean after MAD-based outlier rejection.

    A value survives when |v - median| / (MAD + 0.001) < threshold, or when
    MAD is 0 (no spread to judge against). If fewer than ``min_samples``
    values survive, the filter is abandoned and every value is averaged.
    """
    arr = _as_values(values, "robust mean")
    med = float(np.median(arr))
    spread = float(np.median(np.abs(arr - med)))
    if spread == 0:
        kept = arr
    else:
        kept = arr[np.abs(arr - med) / (spread + 0.001) < threshold]
    if kept.size < min_samples:
        kept = arr
    return float(np.mean(kept))
