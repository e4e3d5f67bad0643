# src/chart_lut/presets.py
#
# Three things live here:
#
#   1. Rating thresholds: turn a 0-1 score (range quality or range
#      compatibility) into Excellent / Good / Fair / Poor.
#
#   2. Compatibility recommendations: plain-English advice, plus a
#      suggested interpolation strategy, for a compatibility score.
#
#   3. Quality colors: the swatch shown next to each patch quality level.
#
# All of these are presentation helpers; the engine's numbers never depend
# on them.


# ---------------------------------------------------------------------------
# Score → rating
# ---------------------------------------------------------------------------
#
# Each entry is (min_score_exclusive, rating). Checked in order, first match
# wins.

_RATING_THRESHOLDS: list[tuple[float, str]] = [
    (0.8, "Excellent"),
    (0.6, "Good"),
    (0.4, "Fair"),
]
_FALLBACK_RATING = "Poor"


def rating_for_score(score: float) -> str:
    for threshold, rating in _RATING_THRESHOLDS:
        if score > threshold:
            return rating
    return _FALLBACK_RATING


# ---------------------------------------------------------------------------
# Compatibility score → advice
# ---------------------------------------------------------------------------
#
# Each entry is (min_score_exclusive, suggested_strategy, recommendation).
# Well-matched captures need no luminance correction; anything below that
# benefits from the range-aware strategy.

_COMPATIBILITY_ADVICE: list[tuple[float, str, str]] = [
    (
        0.8,
        "standard",
        "Images are well-matched. Standard LUT generation recommended.",
    ),
    (
        0.6,
        "rangeAware",
        "Images are reasonably compatible. Range-aware LUT recommended.",
    ),
    (
        0.4,
        "rangeAware",
        "Significant differences detected. Consider adjusting camera settings "
        "or use range-aware mode.",
    ),
]
_FALLBACK_ADVICE = (
    "rangeAware",
    "Poor compatibility. Check camera settings, lighting, or consider manual "
    "adjustments.",
)


def _advice(score: float) -> tuple[str, str]:
    for threshold, strategy, text in _COMPATIBILITY_ADVICE:
        if score > threshold:
            return strategy, text
    return _FALLBACK_ADVICE


def compatibility_recommendation(score: float) -> str:
    return _advice(score)[1]


def suggest_strategy(score: float) -> str:
    """Strategy name to pre-select in the CLI for a compatibility score."""
    return _advice(score)[0]


# ---------------------------------------------------------------------------
# Patch quality colors
# ---------------------------------------------------------------------------

QUALITY_COLORS = {
    "excellent": "#22c55e",  # green-500
    "good": "#f59e0b",  # amber-500
    "poor": "#ef4444",  # red-500
}

RATING_COLORS = {
    "Excellent": "#22c55e",
    "Good": "#84cc16",  # lime-500
    "Fair": "#f59e0b",
    "Poor": "#ef4444",
}
