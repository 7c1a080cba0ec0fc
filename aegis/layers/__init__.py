"""AEGIS Analytics Layers."""

from aegis.layers.risk_metrics import RiskMetricsCalculator, synthetic_returns
from aegis.layers.position_sizing import PositionSizingAdvisor, kelly_fraction
from aegis.layers.scenarios import ScenarioEngine, stress_test_scenarios, get_scenario
from aegis.layers.liquidation import (
    LiquidationLevelEstimator,
    MarketDataProvider,
    TTLCache,
    UniformNoise,
    no_noise,
)
from aegis.layers.trade_gate import TradeGate

__all__ = [
    # Risk metrics
    "RiskMetricsCalculator",
    "synthetic_returns",
    # Sizing
    "PositionSizingAdvisor",
    "kelly_fraction",
    # Scenarios
    "ScenarioEngine",
    "stress_test_scenarios",
    "get_scenario",
    # Liquidation
    "LiquidationLevelEstimator",
    "MarketDataProvider",
    "TTLCache",
    "UniformNoise",
    "no_noise",
    # Trade gate
    "TradeGate",
]
