"""Statistics kernel."""

import math

import pytest

from aegis.layers import statistics as st


class TestMoments:

    def test_mean_empty_is_zero(self) -> None:
        assert st.mean([]) == 0.0

    def test_population_standard_deviation(self) -> None:
        assert st.standard_deviation([2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]) == pytest.approx(2.0)

    def test_standard_deviation_single_sample(self) -> None:
        assert st.standard_deviation([0.5]) == 0.0

    def test_downside_deviation_only_counts_losses(self) -> None:
        assert st.downside_deviation([0.5, -0.5, 0.25, -0.25]) == pytest.approx(math.sqrt(0.3125 / 2))

    def test_downside_deviation_no_losses(self) -> None:
        assert st.downside_deviation([0.01, 0.02]) == 0.0


class TestPercentile:

    def test_linear_interpolation(self) -> None:
        assert st.percentile([1.0, 2.0, 3.0, 4.0, 5.0], 50) == 3.0
        assert st.percentile([1.0, 2.0, 3.0, 4.0], 50) == pytest.approx(2.5)

    def test_low_percentiles_ordered(self) -> None:
        data = [-0.05, -0.03, -0.01, 0.0, 0.01, 0.02, 0.04]
        assert abs(st.percentile(data, 1)) >= abs(st.percentile(data, 5))

    def test_empty(self) -> None:
        assert st.percentile([], 5) == 0.0


class TestCovariance:

    def test_sample_covariance(self) -> None:
        assert st.covariance([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_mismatched_lengths(self) -> None:
        assert st.covariance([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_perfect_correlation_bounded(self) -> None:
        a = [0.01, -0.02, 0.03, -0.015, 0.005]
        assert st.correlation(a, [2 * x for x in a]) == pytest.approx(1.0)
        assert st.correlation(a, [-x for x in a]) == pytest.approx(-1.0)
        assert -1.0 <= st.correlation(a, [x * 3 + 0.01 for x in a]) <= 1.0

    def test_zero_dispersion_correlation(self) -> None:
        assert st.correlation([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0


class TestShape:

    def test_symmetric_series_has_no_skew(self) -> None:
        assert st.skewness([-2.0, -1.0, 0.0, 1.0, 2.0]) == pytest.approx(0.0, abs=1e-12)

    def test_right_tail_is_positive_skew(self) -> None:
        assert st.skewness([0.0, 0.0, 0.0, 0.0, 10.0]) > 0

    def test_short_series_return_zero(self) -> None:
        assert st.skewness([1.0, 2.0]) == 0.0
        assert st.kurtosis([1.0, 2.0, 3.0]) == 0.0

    def test_constant_series(self) -> None:
        assert st.skewness([0.0] * 10) == 0.0
        assert st.kurtosis([0.0] * 10) == 0.0

    def test_fat_tail_has_positive_excess_kurtosis(self) -> None:
        data = [0.0] * 20 + [5.0, -5.0]
        assert st.kurtosis(data) > 0
