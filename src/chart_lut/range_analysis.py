# src/chart_lut/range_analysis.py

import logging
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from . import statistics
from .colorspace import luminance
from .data import DEFAULT_CONFIG, NEUTRAL_GREY, EngineConfig
from .errors import EmptyInputError, InsufficientSamplesError, InvalidColorError
from .patches import PatchSet, sanitize_colors, validate_color
from .presets import compatibility_recommendation, rating_for_score

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Histogram:
    bins: int
    bin_size: float
    counts: np.ndarray
    normalized: np.ndarray

    @property
    def labels(self) -> list[str]:
        return [f"{i * self.bin_size:.3f}" for i in range(self.bins)]


@dataclass(frozen=True)
class RangeQuality:
    score: float
    rating: str
    has_good_range: bool
    has_full_range: bool
    is_well_centered: bool
    has_clipping: bool
    dark_clipping: float  # percent of patches
    bright_clipping: float
    uniformity: float
    issues: tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class RangeStats:
    min: float
    max: float
    mean: float
    median: float
    std: float
    robust_min: float
    robust_max: float
    range: float
    contrast: float
    robust_contrast: float
    dynamic_range: float
    luminances: np.ndarray
    histogram: Histogram
    quality: RangeQuality

    @property
    def quality_score(self) -> float:
        return self.quality.score


@dataclass(frozen=True)
class Compatibility:
    score: float
    rating: str
    span_similar: bool
    mean_similar: bool
    distribution_similar: bool
    span_ratio: float
    mean_diff: float
    skewness_diff: float
    issues: tuple[str, ...] = ()
    recommendation: str = ""


@dataclass(frozen=True)
class MappingMode:
    scale: float
    offset: float
    description: str


@dataclass(frozen=True, eq=False)
class RangeMapping:
    """
    Affine luminance map from reference space into camera space:
    camera_lum ~= reference_lum * scale + offset.
    """

    scale: float
    offset: float
    compatibility_score: float
    ref_luminances: np.ndarray
    cam_luminances: np.ndarray
    compatibility: Compatibility | None = None
    modes: dict = field(default_factory=dict)
    recommended_mode: str = "linear"
    ref_stats: RangeStats | None = None
    cam_stats: RangeStats | None = None

    def mode(self, name: str = "linear") -> MappingMode:
        """Named mode, falling back to the primary linear fit."""
        if name in self.modes:
            return self.modes[name]
        return MappingMode(self.scale, self.offset, "Linear scaling with offset")


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class RangeAnalyzer:
    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    # -- per-set statistics -------------------------------------------------

    def analyze(self, patch_colors) -> RangeStats:
        """Luminance distribution statistics of one patch set."""
        if isinstance(patch_colors, PatchSet):
            colors = patch_colors.colors
        else:
            colors = sanitize_colors(patch_colors)
        if len(colors) == 0:
            raise EmptyInputError("No color patches provided for range analysis.")
        logger.debug("Analyzing luminance range for %d patches", len(colors))
        return self.analyze_luminances(luminance(colors))

    def analyze_luminances(self, luminances) -> RangeStats:
        lum = np.array(luminances, dtype=np.float64).ravel()
        if lum.size == 0:
            raise EmptyInputError("No luminance values provided for range analysis.")
        r = self.config.range

        ordered = np.sort(lum)
        lo = float(ordered[0])
        hi = float(ordered[-1])

        # 5th / 95th percentile instead of raw min / max: one blown-out or
        # crushed patch must not define the whole range.
        robust_min = statistics.percentile(ordered, r.percentile_low)
        robust_max = statistics.percentile(ordered, r.percentile_high)
        span = robust_max - robust_min

        lum.flags.writeable = False
        stats = RangeStats(
            min=lo,
            max=hi,
            mean=statistics.mean(lum),
            median=statistics.median(lum),
            std=statistics.stddev(lum),
            robust_min=robust_min,
            robust_max=robust_max,
            range=span,
            contrast=hi - lo,
            robust_contrast=span,
            dynamic_range=hi / max(lo, 0.001) if hi > 0 else 1.0,
            luminances=lum,
            histogram=self.histogram(lum, r.histogram_bins),
            quality=self.assess_quality(lum, span),
        )
        logger.info(
            "Range analysis: %.3f - %.3f (range: %.3f)", robust_min, robust_max, span
        )
        return stats

    @staticmethod
    def histogram(luminances, bins: int = 50) -> Histogram:
        lum = np.asarray(luminances, dtype=np.float64).ravel()
        bin_size = 1.0 / bins
        index = np.clip(np.floor(lum / bin_size).astype(int), 0, bins - 1)
        counts = np.bincount(index, minlength=bins)
        normalized = counts / max(len(lum), 1)
        return Histogram(bins, bin_size, counts, normalized)

    def assess_quality(self, luminances, span: float) -> RangeQuality:
        """
        Starts from 1.0 and deducts for a narrow range, an off-centre mean,
        clipping, and a lumpy distribution. Floored at 0.
        """
        r = self.config.range
        lum = np.asarray(luminances, dtype=np.float64).ravel()
        n = len(lum)

        has_good_range = span > r.good_range
        has_full_range = span > r.full_range

        m = statistics.mean(lum)
        is_well_centered = r.centre_low < m < r.centre_high

        dark = float(np.sum(lum < r.clip_low)) / n
        bright = float(np.sum(lum > r.clip_high)) / n
        has_clipping = dark > r.clip_fraction or bright > r.clip_fraction

        hist = self.histogram(lum, r.quality_bins)
        uniformity = 1 - statistics.stddev(hist.normalized) / r.uniformity_reference

        score = 1.0
        issues = []
        if not has_good_range:
            score -= 0.3
            issues.append("Limited dynamic range")
        if not is_well_centered:
            score -= 0.2
            issues.append("Poor luminance distribution")
        if has_clipping:
            score -= 0.3
            issues.append("Luminance clipping detected")
        if uniformity < r.uniformity_min:
            score -= 0.2
            issues.append("Poor luminance uniformity")
        score = max(0.0, score)

        return RangeQuality(
            score=score,
            rating=rating_for_score(score),
            has_good_range=has_good_range,
            has_full_range=has_full_range,
            is_well_centered=is_well_centered,
            has_clipping=has_clipping,
            dark_clipping=dark * 100,
            bright_clipping=bright * 100,
            uniformity=uniformity,
            issues=tuple(issues),
        )

    # -- pairwise ----------------------------------------------------------

    def _span_ratio(self, ref_stats: RangeStats, cam_stats: RangeStats) -> float:
        floor = self.config.interpolation.span_floor
        if ref_stats.range == cam_stats.range and ref_stats.range < floor:
            # Two equally flat distributions: nothing to stretch.
            return 1.0
        return cam_stats.range / max(ref_stats.range, floor)

    def map_ranges(self, ref_stats: RangeStats, cam_stats: RangeStats) -> RangeMapping:
        """Affine fit through the robust endpoints of both distributions."""
        scale = self._span_ratio(ref_stats, cam_stats)
        offset = cam_stats.robust_min - ref_stats.robust_min * scale

        ref_mid = (ref_stats.robust_min + ref_stats.robust_max) / 2
        cam_mid = (cam_stats.robust_min + cam_stats.robust_max) / 2
        modes = {
            "linear": MappingMode(scale, offset, "Linear scaling with offset"),
            "stretch": MappingMode(scale, offset, "Stretch reference to fill camera range"),
            "midpoint": MappingMode(scale, cam_mid - ref_mid * scale, "Align midpoints with scaling"),
            "histogram": MappingMode(scale, offset, "Histogram-based mapping"),
        }

        if abs(scale - 1.0) > 0.3:
            recommended = "stretch"
        elif abs(offset) > 0.2:
            recommended = "midpoint"
        else:
            recommended = "linear"

        compat = self.compatibility(ref_stats, cam_stats)
        logger.info(
            "Range mapping: scale=%.3f, offset=%.3f, mode=%s", scale, offset, recommended
        )
        return RangeMapping(
            scale=scale,
            offset=offset,
            compatibility_score=compat.score,
            ref_luminances=ref_stats.luminances,
            cam_luminances=cam_stats.luminances,
            compatibility=compat,
            modes=modes,
            recommended_mode=recommended,
            ref_stats=ref_stats,
            cam_stats=cam_stats,
        )

    def compatibility(self, ref_stats: RangeStats, cam_stats: RangeStats) -> Compatibility:
        span_ratio = self._span_ratio(ref_stats, cam_stats)
        span_similar = 0.5 < span_ratio < 2.0

        mean_diff = abs(ref_stats.mean - cam_stats.mean)
        mean_similar = mean_diff < 0.3

        skew_diff = abs(
            statistics.skewness(ref_stats.luminances)
            - statistics.skewness(cam_stats.luminances)
        )
        distribution_similar = skew_diff < 1.0

        score = 1.0
        issues = []
        if not span_similar:
            score -= 0.4
            issues.append(
                "Camera range much larger" if span_ratio > 2.0 else "Camera range much smaller"
            )
        if not mean_similar:
            score -= 0.3
            issues.append(
                "Camera exposure too bright"
                if cam_stats.mean > ref_stats.mean
                else "Camera exposure too dark"
            )
        if not distribution_similar:
            score -= 0.3
            issues.append("Different luminance distributions")
        score = max(0.0, score)

        return Compatibility(
            score=score,
            rating=rating_for_score(score),
            span_similar=span_similar,
            mean_similar=mean_similar,
            distribution_similar=distribution_similar,
            span_ratio=span_ratio,
            mean_diff=mean_diff,
            skewness_diff=skew_diff,
            issues=tuple(issues),
            recommendation=compatibility_recommendation(score),
        )


# ---------------------------------------------------------------------------
# Applying a mapping
# ---------------------------------------------------------------------------


def apply_range_mapping(color, mapping: RangeMapping, mode: str = "linear") -> np.ndarray:
    """
    Rescales a color so its luminance follows the mapping.
    Invalid colors come back as neutral grey.
    """
    try:
        rgb = validate_color(color)
    except InvalidColorError as e:
        logger.warning("Invalid input color for range mapping: %s", e)
        return np.array(NEUTRAL_GREY)

    m = mapping.mode(mode)
    lum = float(luminance(rgb))
    mapped = min(max(lum * m.scale + m.offset, 0.0), 1.0)
    ratio = mapped / lum if lum > 0.001 else 1.0
    return np.clip(rgb * ratio, 0.0, 1.0)


def tone_curve(mapping: RangeMapping, points: int = 256, mode: str = "linear") -> np.ndarray:
    """(points, 2) array of [input, output] luminance pairs."""
    m = mapping.mode(mode)
    x = np.linspace(0.0, 1.0, points)
    return np.column_stack([x, np.clip(x * m.scale + m.offset, 0.0, 1.0)])


# ---------------------------------------------------------------------------
# Color temperature & reporting
# ---------------------------------------------------------------------------


def color_temperature(ref_colors, cam_colors) -> dict:
    """
    Rough white-balance comparison from the average chart color.
    A positive shift means the camera rendered warmer (more red vs green).
    """
    ref = sanitize_colors(ref_colors, "reference")
    cam = sanitize_colors(cam_colors, "camera")
    if len(ref) != len(cam):
        raise InsufficientSamplesError("Patch arrays must have the same length.")
    if len(ref) == 0:
        ref_avg = cam_avg = np.array(NEUTRAL_GREY)
    else:
        ref_avg = ref.mean(axis=0)
        cam_avg = cam.mean(axis=0)

    wb_ratio = cam_avg / np.maximum(ref_avg, 0.001)
    rg_ref = ref_avg[0] / max(ref_avg[1], 0.001)
    rg_cam = cam_avg[0] / max(cam_avg[1], 0.001)
    shift = float(rg_cam - rg_ref)

    return {
        "ref_average": ref_avg.tolist(),
        "cam_average": cam_avg.tolist(),
        "white_balance_ratio": wb_ratio.tolist(),
        "color_temperature_shift": shift,
        "is_warmer": shift > 0.05,
        "is_cooler": shift < -0.05,
        "recommendation": (
            "Significant color temperature difference detected"
            if abs(shift) > 0.1
            else "Color temperature reasonably matched"
        ),
    }


def _side_report(stats: RangeStats) -> dict:
    q = stats.quality
    return {
        "range": f"{stats.robust_min:.3f} - {stats.robust_max:.3f}",
        "span": round(stats.range, 3),
        "mean": round(stats.mean, 3),
        "quality": {
            "score": q.score,
            "rating": q.rating,
            "issues": list(q.issues),
        },
    }


def analysis_report(
    ref_stats: RangeStats, cam_stats: RangeStats, mapping: RangeMapping | None = None
) -> dict:
    """JSON-serialisable summary of both ranges and, if given, their mapping."""
    report = {
        "timestamp": datetime.now().isoformat(timespec="seconds"),
        "reference": _side_report(ref_stats),
        "camera": _side_report(cam_stats),
        "compatibility": None,
        "recommendations": [],
    }
    if mapping is None:
        return report

    compat = mapping.compatibility
    if compat is not None:
        report["compatibility"] = {
            "score": compat.score,
            "rating": compat.rating,
            "issues": list(compat.issues),
            "recommendation": compat.recommendation,
        }
    report["mapping"] = {
        "mode": mapping.recommended_mode,
        "scale": round(mapping.scale, 3),
        "offset": round(mapping.offset, 3),
    }

    if mapping.compatibility_score < 0.6:
        report["recommendations"].append("Use range-aware LUT generation")
    if mapping.scale > 1.5 or mapping.scale < 0.67:
        report["recommendations"].append("Consider adjusting camera exposure")
    if abs(mapping.offset) > 0.3:
        report["recommendations"].append("Check lighting consistency between captures")
    return report
