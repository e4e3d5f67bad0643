"""Tests for the robust statistics helpers."""

import math

import pytest

from chart_lut import statistics
from chart_lut.errors import CalibrationError, EmptyInputError


class TestBasics:
    def test_mean_median(self) -> None:
        assert statistics.mean([1, 2, 3, 10]) == pytest.approx(4.0)
        assert statistics.median([1, 2, 3, 10]) == pytest.approx(2.5)

    def test_mad(self) -> None:
        # deviations from median 3: 2, 1, 0, 1, 97
        assert statistics.mad([1, 2, 3, 4, 100]) == pytest.approx(1.0)
        assert statistics.mad([1, 2, 3], median_value=0) == pytest.approx(2.0)

    def test_population_stddev(self) -> None:
        assert statistics.stddev([1, 2, 3, 4]) == pytest.approx(math.sqrt(1.25))

    def test_constant_sequence_has_zero_cv(self) -> None:
        for x in (0.3, 0.7, 1e-4, 12.5):
            assert statistics.cv([x] * 9) == 0.0

    def test_zero_mean_cv(self) -> None:
        assert statistics.cv([-1.0, 1.0]) == 0.0

    @pytest.mark.parametrize(
        "p, expected",
        [(0.0, 1), (0.05, 1), (0.5, 6), (0.95, 10), (1.0, 10)],
    )
    def test_nearest_rank_percentile(self, p, expected) -> None:
        assert statistics.percentile(list(range(1, 11)), p) == expected

    def test_skewness(self) -> None:
        assert statistics.skewness([1, 2, 3]) == pytest.approx(0.0, abs=1e-12)
        assert statistics.skewness([0.1, 0.4, 0.7, 1.0]) == pytest.approx(0.0, abs=1e-12)
        assert statistics.skewness([1, 1, 1, 10]) > 0
        assert statistics.skewness([1, 2]) == 0.0
        assert statistics.skewness([4, 4, 4, 4]) == 0.0

    @pytest.mark.parametrize(
        "fn",
        [
            statistics.mean,
            statistics.median,
            statistics.mad,
            statistics.stddev,
            statistics.cv,
            statistics.skewness,
            statistics.robust_mean,
        ],
    )
    def test_empty_input_is_rejected(self, fn) -> None:
        with pytest.raises(EmptyInputError):
            fn([])

    def test_empty_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            statistics.percentile([], 0.5)
        assert issubclass(EmptyInputError, CalibrationError)


# ---------------------------------------------------------------------------
# MAD-filtered mean
# ---------------------------------------------------------------------------


class TestRobustMean:
    def test_rejects_outliers(self) -> None:
        values = [1.0, 1.1, 0.9, 1.0, 1.05, 5.0]
        # median 1.025, MAD 0.05: only values within ~0.1 of the median survive
        assert statistics.robust_mean(values) == pytest.approx(1.0375)

    def test_zero_mad_keeps_everything(self) -> None:
        assert statistics.robust_mean([1, 1, 1, 1, 100]) == pytest.approx(20.8)

    def test_falls_back_when_too_few_survive(self) -> None:
        # only 0 and 0.5 survive the filter; two is below min_samples
        assert statistics.robust_mean([0.0, 0.5, 10.0]) == pytest.approx(3.5)

    def test_min_samples_is_configurable(self) -> None:
        assert statistics.robust_mean([0.0, 0.5, 10.0], min_samples=2) == pytest.approx(0.25)
