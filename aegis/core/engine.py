"""AEGIS Core Engine - Wires the analytics layers together."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence
import numpy as np
from loguru import logger

from aegis.core.config import AegisConfig
from aegis.core.types import (
    CorrelationMatrix,
    DynamicLevels,
    LiquidationAnalysis,
    LiquidationHeatmap,
    LiquidationRiskAssessment,
    PortfolioRiskReport,
    PortfolioSnapshot,
    PositionLiquidationAnalysis,
    PositionSizeRecommendation,
    RiskMetrics,
    ScenarioAnalysis,
    ScenarioDefinition,
    Side,
    TradeGateDecision,
    TradeIntent,
)
from aegis.layers.liquidation import (
    LiquidationLevelEstimator,
    MarketDataProvider,
    NoiseSource,
)
from aegis.layers.position_sizing import PositionSizingAdvisor
from aegis.layers.risk_metrics import RiskMetricsCalculator
from aegis.layers.scenarios import ScenarioEngine
from aegis.layers.trade_gate import TradeGate


class AegisEngine:
    """
    AEGIS Core Engine

    Facade over the analytics layers:
    1. Risk metrics (VaR, ratios, drawdowns, exposure)
    2. Position sizing
    3. Stress scenarios
    4. Liquidation heatmap estimation
    5. Liquidation-aware trade gate

    Everything except the heatmap cache is stateless.
    """

    def __init__(
        self,
        config: Optional[AegisConfig] = None,
        noise: Optional[NoiseSource] = None,
        rng: Optional[np.random.Generator] = None,
        data_provider: Optional[MarketDataProvider] = None,
    ):
        self.config = config or AegisConfig.load()

        self._risk = RiskMetricsCalculator(self.config, rng=rng)
        self._sizing = PositionSizingAdvisor(self.config)
        self._scenarios = ScenarioEngine()
        self._liquidation = LiquidationLevelEstimator(
            self.config, noise=noise, data_provider=data_provider
        )
        self._gate = TradeGate(self.config)

        logger.info("AEGIS Engine initialized")

    @property
    def risk(self) -> RiskMetricsCalculator:
        return self._risk

    @property
    def sizing(self) -> PositionSizingAdvisor:
        return self._sizing

    @property
    def scenarios(self) -> ScenarioEngine:
        return self._scenarios

    @property
    def liquidation(self) -> LiquidationLevelEstimator:
        return self._liquidation

    @property
    def gate(self) -> TradeGate:
        return self._gate

    # =========================================================================
    # PORTFOLIO RISK
    # =========================================================================

    def risk_metrics(self, snapshot: PortfolioSnapshot) -> RiskMetrics:
        return self._risk.calculate(snapshot)

    def correlation_matrix(
        self,
        asset_returns: Mapping[str, Sequence[float]],
        period: str = "30d",
    ) -> CorrelationMatrix:
        return self._risk.correlation_matrix(asset_returns, period)

    def position_size(
        self,
        asset: str,
        portfolio_value: float,
        win_rate: float,
        avg_win: float,
        avg_loss: float,
        asset_volatility: float,
        target_risk: Optional[float] = None,
    ) -> PositionSizeRecommendation:
        return self._sizing.recommend(
            asset, portfolio_value, win_rate, avg_win, avg_loss, asset_volatility, target_risk
        )

    def stress_tests(
        self,
        snapshot: PortfolioSnapshot,
        scenarios: Optional[Sequence[ScenarioDefinition]] = None,
    ) -> list[ScenarioAnalysis]:
        return self._scenarios.run_all(snapshot, scenarios)

    # =========================================================================
    # LIQUIDATION
    # =========================================================================

    def heatmap(
        self,
        symbol: str,
        current_price: float,
        open_interest: Optional[float] = None,
        long_ratio: Optional[float] = None,
    ) -> LiquidationHeatmap:
        return self._liquidation.get_heatmap(symbol, current_price, open_interest, long_ratio)

    def full_liquidation_analysis(
        self,
        symbol: str,
        current_price: float,
        position_side: Optional[Side] = None,
        funding_rate: Optional[float] = None,
    ) -> LiquidationAnalysis:
        """Heatmap, assessment and insights in one call."""
        heatmap = self.heatmap(symbol, current_price)
        return LiquidationAnalysis(
            heatmap=heatmap,
            assessment=self._gate.assess(heatmap, position_side),
            trading_insights=self._liquidation.insights(heatmap, funding_rate),
        )

    def assess(
        self,
        symbol: str,
        current_price: float,
        position_side: Optional[Side] = None,
    ) -> LiquidationRiskAssessment:
        return self._gate.assess(self.heatmap(symbol, current_price), position_side)

    def check_trade(self, symbol: str, trade: TradeIntent) -> TradeGateDecision:
        """Gate a trade against the heatmap at the trade price."""
        return self._gate.check_trade_entry(self.heatmap(symbol, trade.price), trade)

    def analyze_position(
        self,
        symbol: str,
        current_price: float,
        entry_price: float,
        quantity: float,
        side: Side = Side.LONG,
    ) -> PositionLiquidationAnalysis:
        heatmap = self.heatmap(symbol, current_price)
        return self._gate.analyze_position(heatmap, symbol, entry_price, quantity, side)

    def dynamic_levels(self, symbol: str, current_price: float, side: Side) -> DynamicLevels:
        return self._gate.dynamic_levels(self.heatmap(symbol, current_price), side)

    # =========================================================================
    # PIPELINE
    # =========================================================================

    def evaluate_portfolio(self, snapshot: PortfolioSnapshot) -> PortfolioRiskReport:
        """
        Full risk pass over a snapshot.

        Flow:
        1. Risk metrics
        2. Canonical stress tests
        3. Liquidation check for every open position (flat or unpriced
           positions are skipped)
        """
        metrics = self.risk_metrics(snapshot)
        stress = self.stress_tests(snapshot)

        analyses: list[PositionLiquidationAnalysis] = []
        for pos in snapshot.positions:
            if pos.side == Side.FLAT or pos.current_price <= 0:
                continue
            entry = pos.average_cost if pos.average_cost > 0 else pos.current_price
            analyses.append(
                self.analyze_position(pos.asset, pos.current_price, entry, abs(pos.quantity), pos.side)
            )

        report = PortfolioRiskReport(metrics=metrics, stress_tests=stress, position_analyses=analyses)
        if report.exit_signals:
            logger.warning(
                f"{len(report.exit_signals)} position(s) near liquidation zones: "
                f"{', '.join(a.asset for a in report.exit_signals)}"
            )
        return report
