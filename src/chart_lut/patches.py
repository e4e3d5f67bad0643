# src/chart_lut/patches.py

import logging
from dataclasses import dataclass

import numpy as np

from . import statistics
from .data import DEFAULT_CONFIG, NEUTRAL_GREY, EngineConfig
from .errors import InsufficientSamplesError, InvalidColorError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Color validation
# ---------------------------------------------------------------------------


def validate_color(color) -> np.ndarray:
    """Returns the color as a float array, or raises InvalidColorError."""
    try:
        arr = np.asarray(color, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidColorError(f"Not a numeric color: {color!r}") from e
    if arr.shape != (3,):
        raise InvalidColorError(f"Expected 3 channels, got shape {arr.shape}: {color!r}")
    if not np.all(np.isfinite(arr)):
        raise InvalidColorError(f"Non-finite color: {color!r}")
    if np.any(arr < 0.0) or np.any(arr > 1.0):
        raise InvalidColorError(f"Color outside [0, 1]: {color!r}")
    return arr


def sanitize_colors(colors, label: str = "patch") -> np.ndarray:
    """
    Validates every color, substituting neutral grey for the bad ones.

    A single corrupt patch should not throw away a whole chart, so each
    failure is logged and replaced rather than raised.
    """
    out = []
    for i, color in enumerate(colors):
        try:
            out.append(validate_color(color))
        except InvalidColorError as e:
            logger.warning("%s %d: %s; using neutral grey", label, i, e)
            out.append(np.array(NEUTRAL_GREY))
    return np.array(out, dtype=np.float64).reshape(-1, 3)


# ---------------------------------------------------------------------------
# PatchSet
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class PatchSet:
    """
    Colors extracted from one chart image, in extraction order.

    ``quality_scores`` holds one CV per patch (0 = perfectly uniform).
    ``skipped`` counts the marker cells passed over during extraction.
    Index i of a reference set corresponds to index i of its camera set.
    """

    colors: np.ndarray
    quality_scores: np.ndarray
    skipped: int = 0

    def __init__(self, colors, quality_scores=None, skipped: int = 0):
        colors = sanitize_colors(colors)
        if len(colors) == 0:
            raise InsufficientSamplesError("A patch set needs at least one color.")
        if quality_scores is None:
            scores = np.zeros(len(colors))
        else:
            scores = np.asarray(quality_scores, dtype=np.float64).ravel()
        if len(scores) != len(colors):
            raise InsufficientSamplesError(
                f"{len(colors)} colors but {len(scores)} quality scores."
            )
        colors.flags.writeable = False
        scores.flags.writeable = False
        object.__setattr__(self, "colors", colors)
        object.__setattr__(self, "quality_scores", scores)
        object.__setattr__(self, "skipped", int(skipped))

    def __len__(self) -> int:
        return len(self.colors)

    def summary(self, config: EngineConfig = DEFAULT_CONFIG) -> dict:
        return quality_summary(self.quality_scores, config)


# ---------------------------------------------------------------------------
# Per-patch summarisation
# ---------------------------------------------------------------------------


def _sample_array(samples) -> np.ndarray:
    """(N, 3) float array of one patch's sub-samples."""
    try:
        arr = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidColorError(f"Malformed patch samples: {samples!r}") from e
    if arr.size and (arr.ndim != 2 or arr.shape[1] != 3):
        raise InvalidColorError(
            f"Patch samples must be RGB triples, got shape {arr.shape}: {samples!r}"
        )
    return arr.reshape(-1, 3)


def robust_color_average(samples, config: EngineConfig = DEFAULT_CONFIG) -> np.ndarray:
    """
    Per-channel MAD-filtered mean of a patch's sub-samples, clamped to [0, 1].
    No samples at all falls back to neutral grey.
    """
    arr = _sample_array(samples)
    if len(arr) == 0:
        logger.warning("No samples provided for color averaging; using neutral grey")
        return np.array(NEUTRAL_GREY)
    if len(arr) == 1:
        return arr[0].copy()

    q = config.quality
    return np.clip(
        [
            statistics.robust_mean(arr[:, ch], q.outlier_threshold, q.min_samples)
            for ch in range(3)
        ],
        0.0,
        1.0,
    )


def patch_cv(samples) -> float:
    """
    Mean of the per-channel coefficients of variation.
    No samples scores 1.0 (worst); a single sample is trivially uniform.
    """
    arr = _sample_array(samples)
    if len(arr) == 0:
        return 1.0
    if len(arr) == 1:
        return 0.0
    return max(0.0, sum(statistics.cv(arr[:, ch]) for ch in range(3)) / 3)


def summarize_patches(
    sample_groups, skipped: int = 0, config: EngineConfig = DEFAULT_CONFIG
) -> PatchSet:
    """Builds a PatchSet from sub-samples grouped per patch."""
    colors = []
    scores = []
    for samples in sample_groups:
        colors.append(robust_color_average(samples, config))
        scores.append(patch_cv(samples))
    logger.debug("Summarised %d patches (%d markers skipped)", len(colors), skipped)
    return PatchSet(colors, scores, skipped)


# ---------------------------------------------------------------------------
# Quality levels
# ---------------------------------------------------------------------------


def quality_level(cv: float, config: EngineConfig = DEFAULT_CONFIG) -> str:
    if cv < config.quality.excellent:
        return "excellent"
    if cv < config.quality.good:
        return "good"
    return "poor"


def quality_summary(scores, config: EngineConfig = DEFAULT_CONFIG) -> dict:
    """
    Counts patches per quality level. ``good`` excludes excellent patches,
    ``good_percent`` includes them (share of patches usable for fitting).
    """
    scores = np.asarray(scores, dtype=np.float64).ravel()
    total = len(scores)
    if total == 0:
        return {
            "excellent": 0,
            "good": 0,
            "poor": 0,
            "total": 0,
            "excellent_percent": 0,
            "good_percent": 0,
            "avg_cv": 0.0,
        }

    excellent = int(np.sum(scores < config.quality.excellent))
    good = int(np.sum(scores < config.quality.good))
    return {
        "excellent": excellent,
        "good": good - excellent,
        "poor": total - good,
        "total": total,
        "excellent_percent": round(excellent / total * 100),
        "good_percent": round(good / total * 100),
        "avg_cv": float(np.mean(scores)),
    }
