"""Shared fixtures for the AEGIS test suite."""

from typing import Optional

import numpy as np
import pytest

from aegis.core.config import AegisConfig
from aegis.core.types import (
    DominantSide,
    HeatmapSource,
    LiquidationHeatmap,
    LiquidationZone,
    Position,
    PortfolioSnapshot,
)
from aegis.layers.liquidation import LiquidationLevelEstimator, no_noise
from aegis.layers.trade_gate import TradeGate


class ManualClock:
    """Clock the tests advance by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> AegisConfig:
    return AegisConfig()


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(42)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def estimator(config: AegisConfig, clock: ManualClock) -> LiquidationLevelEstimator:
    return LiquidationLevelEstimator(config, noise=no_noise, clock=clock)


@pytest.fixture
def gate(config: AegisConfig) -> TradeGate:
    return TradeGate(config)


@pytest.fixture
def xrp_heatmap(estimator: LiquidationLevelEstimator) -> LiquidationHeatmap:
    """XRP @ $2 with fallback open interest and no noise."""
    return estimator.get_heatmap("XRP", 2.0)


@pytest.fixture
def returns_20() -> list[float]:
    return [0.01, -0.02, 0.015, -0.005, 0.02,
            0.01, -0.01, 0.005, -0.015, 0.02,
            0.01, -0.02, 0.015, -0.005, 0.02,
            0.01, -0.01, 0.005, -0.015, 0.03]


@pytest.fixture
def portfolio(returns_20: list[float]) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        total_value=100_000.0,
        cash_balance=52_000.0,
        positions=(
            Position("BTC", 1.0, 50_000.0, average_cost=45_000.0),
            Position("XRP", -1_000.0, 2.0, average_cost=2.2),
        ),
        returns=tuple(returns_20),
    )


def make_heatmap(
    price: float = 100.0,
    long_zone: Optional[float] = 80.0,
    short_zone: Optional[float] = 120.0,
    score: int = 10,
    ratio: float = 1.0,
) -> LiquidationHeatmap:
    """Hand-built heatmap with exactly the zones a test needs."""
    if ratio > 1.2:
        dominant = DominantSide.LONG
    elif ratio < 0.8:
        dominant = DominantSide.SHORT
    else:
        dominant = DominantSide.BALANCED
    return LiquidationHeatmap(
        symbol="TEST",
        current_price=price,
        levels=[],
        total_long_exposure=1_000_000.0,
        total_short_exposure=1_000_000.0 / ratio if ratio > 0 else 0.0,
        long_short_ratio=ratio,
        major_long_zone=LiquidationZone(long_zone, 500_000.0) if long_zone is not None else None,
        major_short_zone=LiquidationZone(short_zone, 500_000.0) if short_zone is not None else None,
        liquidation_risk_score=score,
        dominant_side=dominant,
        magnet_price=long_zone if long_zone is not None else price,
        base_open_interest=10_000_000.0,
        long_ratio=0.5,
        source=HeatmapSource.ESTIMATED,
    )


@pytest.fixture
def heatmap_factory():
    return make_heatmap
