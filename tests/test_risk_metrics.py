"""Risk metrics calculator."""

import numpy as np
import pytest

from aegis.core.types import Position, PortfolioSnapshot, ReturnsSource
from aegis.layers.risk_metrics import (
    RiskMetricsCalculator,
    drawdown_profile,
    synthetic_returns,
)


@pytest.fixture
def calculator(config, rng) -> RiskMetricsCalculator:
    return RiskMetricsCalculator(config, rng=rng)


class TestValueAtRisk:

    def test_tail_ordering(self, calculator, portfolio) -> None:
        m = calculator.calculate(portfolio)
        assert m.var_99 >= m.var_95
        assert m.cvar_95 >= m.var_95

    def test_cvar_is_worst_return_for_short_series(self, calculator, portfolio) -> None:
        # ceil(5% of 20) = 1 sample
        m = calculator.calculate(portfolio)
        assert m.cvar_95 == pytest.approx(2.0)

    def test_percent_units(self, calculator, portfolio) -> None:
        m = calculator.calculate(portfolio)
        assert 0 < m.var_95 < 100
        assert m.sample_size == 20
        assert m.returns_source == ReturnsSource.HISTORICAL


class TestExposure:

    def test_gross_net_leverage(self, calculator, portfolio) -> None:
        m = calculator.calculate(portfolio)
        assert m.gross_exposure == pytest.approx(52_000.0)
        assert m.net_exposure == pytest.approx(48_000.0)
        assert m.leverage == pytest.approx(0.52)
        assert m.cash_weight == pytest.approx(52.0)

    def test_concentration(self, calculator, portfolio) -> None:
        m = calculator.calculate(portfolio)
        assert m.herfindahl_index == pytest.approx(0.25)
        assert m.largest_position == pytest.approx(50.0)
        assert m.top5_concentration == pytest.approx(52.0)

    def test_herfindahl_bounds(self, calculator, returns_20) -> None:
        positions = tuple(Position(a, 1.0, 100.0) for a in ("BTC", "ETH", "SOL", "XRP"))
        snap = PortfolioSnapshot(400.0, 0.0, positions, tuple(returns_20))
        m = calculator.calculate(snap)
        assert m.herfindahl_index == pytest.approx(0.25)
        assert 1 / 4 <= m.herfindahl_index <= 1

    def test_single_position_herfindahl(self, calculator, returns_20) -> None:
        snap = PortfolioSnapshot(
            1000.0, 0.0, (Position("BTC", 0.02, 50_000.0),), tuple(returns_20)
        )
        m = calculator.calculate(snap)
        assert m.herfindahl_index == pytest.approx(1.0)
        assert m.largest_position == pytest.approx(100.0)

    def test_all_zero_positions(self, calculator, returns_20) -> None:
        snap = PortfolioSnapshot(
            10_000.0, 10_000.0,
            (Position("BTC", 0.0, 50_000.0), Position("ETH", 0.0, 3_000.0)),
            tuple(returns_20),
        )
        m = calculator.calculate(snap)
        assert m.gross_exposure == 0
        assert m.leverage == 0
        assert m.largest_position == 0
        assert m.cash_weight == pytest.approx(100.0)

    def test_zero_total_value(self, calculator, returns_20) -> None:
        m = calculator.calculate(PortfolioSnapshot(0.0, 0.0, (), tuple(returns_20)))
        assert m.leverage == 0
        assert m.cash_weight == 0


class TestDrawdown:

    def test_profile(self) -> None:
        dd = drawdown_profile([0.0, 0.5, -0.2, 0.0])
        assert dd.current == pytest.approx(0.2)
        assert dd.maximum == pytest.approx(0.2)
        assert dd.duration == 2
        assert dd.average == pytest.approx(0.2)

    def test_recovered_to_peak(self) -> None:
        dd = drawdown_profile([0.25, -0.2, 0.5])
        assert dd.current == 0
        assert dd.duration == 0
        assert dd.maximum == pytest.approx(0.2)

    def test_monotonic_gains(self) -> None:
        dd = drawdown_profile([0.01, 0.02, 0.03])
        assert dd.maximum == 0
        assert dd.average == 0

    def test_calmar_zero_without_drawdown(self, calculator) -> None:
        m = calculator.calculate(PortfolioSnapshot(1000.0, 1000.0, (), (0.01, 0.02, 0.03)))
        assert m.max_drawdown == 0
        assert m.calmar_ratio == 0


class TestRatios:

    def test_tail_ratio_without_losses(self, calculator) -> None:
        m = calculator.calculate(PortfolioSnapshot(1000.0, 1000.0, (), (0.01, 0.02, 0.03)))
        assert m.tail_ratio == 1.0
        assert m.sortino_ratio == 0

    def test_sharpe_sign(self, calculator) -> None:
        losing = PortfolioSnapshot(1000.0, 1000.0, (), (-0.01, -0.02, 0.005, -0.03))
        assert calculator.calculate(losing).sharpe_ratio < 0


class TestBenchmark:

    def test_beta_of_levered_benchmark(self, calculator) -> None:
        bench = (0.01, -0.02, 0.03, -0.01, 0.005)
        snap = PortfolioSnapshot(1000.0, 0.0, (), tuple(2 * b for b in bench), bench)
        m = calculator.calculate(snap)
        assert m.beta == pytest.approx(2.0)
        assert m.information_ratio is not None

    def test_no_benchmark(self, calculator, portfolio) -> None:
        m = calculator.calculate(portfolio)
        assert m.beta is None
        assert m.information_ratio is None

    def test_mismatched_benchmark(self, calculator) -> None:
        snap = PortfolioSnapshot(1000.0, 0.0, (), (0.01, 0.02, -0.01), (0.01, 0.02))
        assert calculator.calculate(snap).beta is None


class TestSyntheticFallback:

    def test_empty_returns_use_synthetic(self, calculator) -> None:
        m = calculator.calculate(PortfolioSnapshot(1000.0, 1000.0))
        assert m.is_synthetic
        assert m.sample_size == 30
        assert m.beta is None

    def test_single_return_uses_synthetic(self, calculator) -> None:
        m = calculator.calculate(PortfolioSnapshot(1000.0, 1000.0, (), (0.01,)))
        assert m.returns_source == ReturnsSource.SYNTHETIC

    def test_seeded_generator_is_reproducible(self) -> None:
        a = synthetic_returns(30, np.random.default_rng(7))
        b = synthetic_returns(30, np.random.default_rng(7))
        assert a == b
        assert len(a) == 30

    def test_synthetic_bounds(self) -> None:
        returns = synthetic_returns(500, np.random.default_rng(1))
        # base in [-0.024, 0.026], jump in [-0.075, 0.075]
        assert all(-0.1 <= r <= 0.11 for r in returns)


class TestCorrelationMatrix:

    def test_symmetric_with_unit_diagonal(self, calculator) -> None:
        series = {
            "BTC": [0.01, -0.02, 0.03, -0.01],
            "ETH": [0.02, -0.04, 0.06, -0.02],
            "XRP": [-0.01, 0.02, -0.01, 0.0],
        }
        cm = calculator.correlation_matrix(series)
        assert cm.assets == ["BTC", "ETH", "XRP"]
        for i in range(3):
            assert cm.matrix[i][i] == 1.0
            for j in range(3):
                assert cm.matrix[i][j] == cm.matrix[j][i]
                assert -1.0 <= cm.matrix[i][j] <= 1.0
        assert cm.get("BTC", "ETH") > 0.9
        assert cm.period == "30d"
