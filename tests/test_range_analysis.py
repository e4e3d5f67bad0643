"""Tests for luminance range statistics, mapping and compatibility."""

import json

import numpy as np
import pytest

from chart_lut.data import NEUTRAL_GREY
from chart_lut.errors import EmptyInputError, InsufficientSamplesError
from chart_lut.range_analysis import (
    RangeAnalyzer,
    analysis_report,
    apply_range_mapping,
    color_temperature,
    tone_curve,
)


def greys(levels) -> list[list[float]]:
    return [[v, v, v] for v in levels]


@pytest.fixture
def analyzer() -> RangeAnalyzer:
    return RangeAnalyzer()


@pytest.fixture
def ramp() -> list[list[float]]:
    return greys(np.linspace(0.05, 0.95, 20))


# ---------------------------------------------------------------------------
# Per-set statistics
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_robust_bounds(self, analyzer) -> None:
        levels = np.linspace(0.0, 1.0, 21)
        stats = analyzer.analyze(greys(levels))
        # nearest rank: index floor(21 * 0.05) = 1 and floor(21 * 0.95) = 19
        assert stats.robust_min == pytest.approx(0.05)
        assert stats.robust_max == pytest.approx(0.95)
        assert stats.range == pytest.approx(0.9)
        assert stats.min == pytest.approx(0.0)
        assert stats.max == pytest.approx(1.0)
        assert stats.contrast == pytest.approx(1.0)

    def test_histogram(self, analyzer) -> None:
        hist = analyzer.histogram([0.0, 0.51, 1.0], bins=50)
        assert hist.counts[0] == 1
        assert hist.counts[25] == 1
        assert hist.counts[49] == 1
        assert hist.normalized.sum() == pytest.approx(1.0)
        assert hist.labels[1] == "0.020"

    def test_good_ramp_scores_well(self, analyzer, ramp) -> None:
        quality = analyzer.analyze(ramp).quality
        assert quality.has_good_range
        assert quality.is_well_centered
        assert not quality.has_clipping
        assert quality.score >= 0.8

    def test_flat_chart_is_penalised(self, analyzer) -> None:
        stats = analyzer.analyze(greys([0.5] * 10))
        quality = stats.quality
        assert not quality.has_good_range
        assert "Limited dynamic range" in quality.issues
        assert "Poor luminance uniformity" in quality.issues
        assert quality.score == pytest.approx(0.5)
        assert quality.rating == "Fair"
        assert stats.quality_score == quality.score

    def test_clipping(self, analyzer) -> None:
        quality = analyzer.analyze(greys([0.0] * 5 + [0.5] * 10 + [1.0] * 5)).quality
        assert quality.has_clipping
        assert quality.dark_clipping == pytest.approx(25.0)
        assert quality.bright_clipping == pytest.approx(25.0)

    def test_empty(self, analyzer) -> None:
        with pytest.raises(EmptyInputError):
            analyzer.analyze([])
        with pytest.raises(EmptyInputError):
            analyzer.analyze_luminances([])

    def test_caller_array_untouched(self, analyzer) -> None:
        lum = np.array([0.1, 0.5, 0.9])
        analyzer.analyze_luminances(lum)
        lum[0] = 0.2


# ---------------------------------------------------------------------------
# Mapping & compatibility
# ---------------------------------------------------------------------------


class TestMapping:
    def test_self_mapping_is_identity(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        mapping = analyzer.map_ranges(stats, stats)
        assert mapping.scale == pytest.approx(1.0)
        assert mapping.offset == pytest.approx(0.0)
        assert mapping.recommended_mode == "linear"
        assert mapping.compatibility_score == 1.0

    def test_identical_stats_are_fully_compatible(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        compat = analyzer.compatibility(stats, stats)
        assert compat.score == 1.0
        assert compat.issues == ()
        assert compat.rating == "Excellent"

    def test_scaled_camera(self, analyzer) -> None:
        ref = analyzer.analyze(greys(np.linspace(0.0, 1.0, 21)))
        cam = analyzer.analyze(greys(np.linspace(0.0, 0.5, 21)))
        mapping = analyzer.map_ranges(ref, cam)
        assert mapping.scale == pytest.approx(0.5)
        assert mapping.offset == pytest.approx(0.025 - 0.05 * 0.5)
        assert mapping.recommended_mode == "stretch"
        assert set(mapping.modes) == {"linear", "stretch", "midpoint", "histogram"}

    def test_midpoint_mode(self, analyzer) -> None:
        ref = analyzer.analyze(greys(np.linspace(0.0, 0.4, 21)))
        cam = analyzer.analyze(greys(np.linspace(0.5, 0.9, 21)))
        mapping = analyzer.map_ranges(ref, cam)
        assert mapping.recommended_mode == "midpoint"
        mid = mapping.mode("midpoint")
        ref_mid = (ref.robust_min + ref.robust_max) / 2
        cam_mid = (cam.robust_min + cam.robust_max) / 2
        assert ref_mid * mid.scale + mid.offset == pytest.approx(cam_mid)

    def test_unknown_mode_falls_back_to_linear(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        mapping = analyzer.map_ranges(stats, stats)
        assert mapping.mode("nope").scale == mapping.scale

    def test_flat_distributions(self, analyzer) -> None:
        ref = analyzer.analyze(greys([0.3] * 5))
        cam = analyzer.analyze(greys([0.6] * 5))
        mapping = analyzer.map_ranges(ref, cam)
        assert mapping.scale == 1.0
        assert mapping.offset == pytest.approx(0.3)
        assert mapping.compatibility.span_ratio == 1.0

    def test_unequal_flat_distributions_use_span_floor(self, analyzer) -> None:
        ref = analyzer.analyze_luminances([0.3] * 5)
        cam = analyzer.analyze_luminances([0.6, 0.6005])
        assert ref.range == 0.0
        assert cam.range == pytest.approx(0.0005)
        mapping = analyzer.map_ranges(ref, cam)
        assert mapping.scale == pytest.approx(0.5)
        assert mapping.compatibility.span_ratio == pytest.approx(0.5)

    def test_bright_camera(self, analyzer) -> None:
        ref = analyzer.analyze(greys(np.linspace(0.1, 0.5, 21)))
        cam = analyzer.analyze(greys(np.linspace(0.5, 0.9, 21)))
        compat = analyzer.compatibility(ref, cam)
        assert not compat.mean_similar
        assert "Camera exposure too bright" in compat.issues
        assert compat.score == pytest.approx(0.7)

    def test_narrow_camera(self, analyzer) -> None:
        ref = analyzer.analyze(greys(np.linspace(0.0, 1.0, 21)))
        cam = analyzer.analyze(greys(np.linspace(0.4, 0.6, 21)))
        compat = analyzer.compatibility(ref, cam)
        assert "Camera range much smaller" in compat.issues
        assert compat.score == pytest.approx(0.6)


# ---------------------------------------------------------------------------
# Extras
# ---------------------------------------------------------------------------


class TestExtras:
    def test_apply_identity(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        mapping = analyzer.map_ranges(stats, stats)
        np.testing.assert_allclose(
            apply_range_mapping([0.2, 0.4, 0.6], mapping), [0.2, 0.4, 0.6], atol=1e-9
        )

    def test_apply_invalid_color(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        mapping = analyzer.map_ranges(stats, stats)
        np.testing.assert_array_equal(apply_range_mapping([2.0, 0, 0], mapping), NEUTRAL_GREY)

    def test_tone_curve(self, analyzer) -> None:
        ref = analyzer.analyze(greys(np.linspace(0.0, 1.0, 21)))
        cam = analyzer.analyze(greys(np.linspace(0.0, 0.5, 21)))
        curve = tone_curve(analyzer.map_ranges(ref, cam), points=11)
        assert curve.shape == (11, 2)
        assert curve[0, 0] == 0.0 and curve[-1, 0] == 1.0
        assert curve[-1, 1] == pytest.approx(0.5)
        assert np.all(np.diff(curve[:, 1]) >= 0)

    def test_color_temperature(self) -> None:
        ref = greys([0.3, 0.5, 0.7])
        cam = [[v + 0.1, v, v - 0.1] for v in (0.3, 0.5, 0.7)]
        result = color_temperature(ref, cam)
        assert result["is_warmer"]
        assert not result["is_cooler"]
        assert result["color_temperature_shift"] > 0.1

    def test_color_temperature_mismatch(self) -> None:
        with pytest.raises(InsufficientSamplesError):
            color_temperature(greys([0.3]), greys([0.3, 0.4]))

    def test_report_is_json(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        report = analysis_report(stats, stats, analyzer.map_ranges(stats, stats))
        assert report["compatibility"]["score"] == 1.0
        assert report["recommendations"] == []
        assert json.loads(json.dumps(report))["mapping"]["scale"] == 1.0

    def test_report_without_mapping(self, analyzer, ramp) -> None:
        stats = analyzer.analyze(ramp)
        report = analysis_report(stats, stats)
        assert report["compatibility"] is None
        assert "mapping" not in report
