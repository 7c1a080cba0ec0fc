"""
Risk Metrics Calculator

Turns a PortfolioSnapshot into a single RiskMetrics value object:
- Value at Risk / Expected Shortfall (historical)
- Sharpe, Sortino, Calmar
- Drawdown profile
- Exposure and concentration
- Tail statistics
- Beta / information ratio against an optional benchmark

All rounding happens at the output boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence
import numpy as np
from loguru import logger

from aegis.core.config import AegisConfig
from aegis.core.types import (
    CorrelationMatrix,
    PortfolioSnapshot,
    ReturnsSource,
    RiskMetrics,
)
from aegis.layers import statistics as st


@dataclass
class DrawdownProfile:
    """Drawdown statistics as fractions."""
    current: float = 0.0
    maximum: float = 0.0
    duration: int = 0
    average: float = 0.0


def synthetic_returns(days: int, rng: Optional[np.random.Generator] = None) -> list[float]:
    """
    Crypto-like daily returns for portfolios with no history.

    Slight positive drift with a 5% chance of a fat-tail jump per day.
    """
    rng = rng or np.random.default_rng()
    returns = []
    for _ in range(days):
        base = (rng.random() - 0.48) * 0.05
        tail = (rng.random() - 0.5) * 0.15 if rng.random() < 0.05 else 0.0
        returns.append(float(base + tail))
    return returns


def drawdown_profile(returns: Sequence[float]) -> DrawdownProfile:
    """Drawdowns of the compounded (1 + r) curve."""
    if len(returns) == 0:
        return DrawdownProfile()

    curve = np.cumprod(1.0 + np.asarray(returns, dtype=float))

    peak = curve[0]
    drawdowns: list[float] = []
    start = -1
    for i, value in enumerate(curve):
        if value > peak:
            peak = value
            start = -1
        dd = (peak - value) / peak if peak > 0 else 0.0
        drawdowns.append(dd)
        if dd > 0 and start == -1:
            start = i

    positive = [d for d in drawdowns if d > 0]
    return DrawdownProfile(
        current=drawdowns[-1],
        maximum=max(drawdowns),
        duration=len(curve) - start if start >= 0 else 0,
        average=st.mean(positive),
    )


class RiskMetricsCalculator:
    """
    Portfolio risk analytics.

    Stateless apart from the random generator used for the synthetic
    fallback series.
    """

    def __init__(self, config: AegisConfig, rng: Optional[np.random.Generator] = None):
        self.config = config
        self.risk_free_rate = config.risk.risk_free_rate
        self.trading_days = config.risk.trading_days_per_year
        self._rng = rng or np.random.default_rng(config.risk.synthetic_seed)

    def synthetic_returns(self, days: Optional[int] = None) -> list[float]:
        return synthetic_returns(days or self.config.risk.synthetic_days, self._rng)

    def calculate(self, snapshot: PortfolioSnapshot) -> RiskMetrics:
        """Calculate risk metrics for a portfolio snapshot."""
        returns = list(snapshot.returns)
        source = ReturnsSource.HISTORICAL
        if len(returns) < 2:
            returns = self.synthetic_returns()
            source = ReturnsSource.SYNTHETIC
            logger.warning(
                f"Only {len(snapshot.returns)} returns supplied, "
                f"using {len(returns)} synthetic returns"
            )

        n = len(returns)
        sqrt_days = math.sqrt(self.trading_days)

        # Annualization
        annual_return = st.mean(returns) * self.trading_days
        annual_vol = st.standard_deviation(returns) * sqrt_days
        downside_vol = st.downside_deviation(returns) * sqrt_days

        # VaR (loss magnitudes)
        tail_pct = self.config.risk.tail_pct
        var_95 = abs(st.percentile(returns, tail_pct))
        var_99 = abs(st.percentile(returns, self.config.risk.extreme_tail_pct))

        # CVaR - mean of the worst ceil(5% * n) returns
        tail_count = max(1, math.ceil(n * tail_pct / 100))
        cvar_95 = abs(st.mean(sorted(returns)[:tail_count]))

        # Ratios
        excess = annual_return - self.risk_free_rate
        sharpe = excess / annual_vol if annual_vol > 0 else 0.0
        sortino = excess / downside_vol if downside_vol > 0 else 0.0

        dd = drawdown_profile(returns)
        calmar = annual_return / dd.maximum if dd.maximum > 0 else 0.0

        # Exposure
        total = snapshot.total_value
        values = [p.value for p in snapshot.positions]
        gross = sum(abs(v) for v in values)
        long_value = sum(v for v in values if v > 0)
        short_value = sum(abs(v) for v in values if v < 0)
        net = long_value - short_value
        leverage = gross / total if total > 0 else 0.0
        cash_weight = snapshot.cash_balance / total * 100 if total > 0 else 0.0

        # Concentration
        weights = sorted((abs(w) for w in snapshot.weights), reverse=True)
        herfindahl = sum(w * w for w in weights)
        largest = weights[0] * 100 if weights else 0.0
        top_n = sum(weights[: self.config.risk.top_n_concentration]) * 100

        # Tail statistics
        positive = [r for r in returns if r > 0]
        negative = [r for r in returns if r < 0]
        left_tail = abs(st.mean(negative))
        tail_ratio = st.mean(positive) / left_tail if left_tail > 0 else 1.0

        beta, information_ratio = self._benchmark_stats(returns, snapshot.benchmark_returns, source)

        logger.debug(
            f"Risk metrics: n={n} source={source.value} var95={var_95:.4f} "
            f"sharpe={sharpe:.2f} max_dd={dd.maximum:.4f}"
        )

        return RiskMetrics(
            var_95=round(var_95 * 100, 2),
            var_99=round(var_99 * 100, 2),
            cvar_95=round(cvar_95 * 100, 2),
            sharpe_ratio=round(sharpe, 2),
            sortino_ratio=round(sortino, 2),
            calmar_ratio=round(calmar, 2),
            current_drawdown=round(dd.current * 100, 2),
            max_drawdown=round(dd.maximum * 100, 2),
            drawdown_duration=dd.duration,
            average_drawdown=round(dd.average * 100, 2),
            gross_exposure=round(gross, 2),
            net_exposure=round(net, 2),
            leverage=round(leverage, 2),
            cash_weight=round(cash_weight, 2),
            herfindahl_index=round(herfindahl, 3),
            largest_position=round(largest, 2),
            top5_concentration=round(top_n, 2),
            annualized_return=round(annual_return * 100, 2),
            portfolio_volatility=round(annual_vol * 100, 2),
            downside_volatility=round(downside_vol * 100, 2),
            skewness=round(st.skewness(returns), 2),
            kurtosis=round(st.kurtosis(returns), 2),
            tail_ratio=round(tail_ratio, 2),
            beta=round(beta, 2) if beta is not None else None,
            information_ratio=round(information_ratio, 2) if information_ratio is not None else None,
            returns_source=source,
            sample_size=n,
        )

    def _benchmark_stats(
        self,
        returns: Sequence[float],
        benchmark: Optional[Sequence[float]],
        source: ReturnsSource,
    ) -> tuple[Optional[float], Optional[float]]:
        """Beta and information ratio, or (None, None) without usable benchmark data."""
        if benchmark is None or source == ReturnsSource.SYNTHETIC:
            return None, None
        if len(benchmark) != len(returns) or len(benchmark) < 2:
            logger.warning(
                f"Benchmark length {len(benchmark)} does not match {len(returns)} returns, "
                "skipping beta"
            )
            return None, None

        bench_var = st.variance(benchmark)
        beta = st.covariance(returns, benchmark) / bench_var if bench_var > 0 else None

        active = [r - b for r, b in zip(returns, benchmark)]
        tracking_error = st.standard_deviation(active) * math.sqrt(self.trading_days)
        information_ratio = (
            st.mean(active) * self.trading_days / tracking_error if tracking_error > 0 else None
        )
        return beta, information_ratio

    def correlation_matrix(
        self,
        asset_returns: Mapping[str, Sequence[float]],
        period: str = "30d",
    ) -> CorrelationMatrix:
        """Symmetric correlation matrix with a unit diagonal."""
        assets = list(asset_returns.keys())
        n = len(assets)
        matrix = [[0.0] * n for _ in range(n)]

        for i in range(n):
            matrix[i][i] = 1.0
            for j in range(i + 1, n):
                corr = round(st.correlation(asset_returns[assets[i]], asset_returns[assets[j]]), 2)
                matrix[i][j] = corr
                matrix[j][i] = corr

        return CorrelationMatrix(assets=assets, matrix=matrix, period=period)
