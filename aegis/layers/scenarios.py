"""
Scenario / Stress Engine

Applies named percentage price shocks to a portfolio snapshot and reports
per-position and aggregate impact.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Optional, Sequence
from loguru import logger

from aegis.core.config import normalize_symbol
from aegis.core.types import (
    PortfolioSnapshot,
    PositionImpact,
    ScenarioAnalysis,
    ScenarioDefinition,
)


# Canonical stress scenarios: (name, description, % price change per asset)
STRESS_TEST_TABLE: tuple[tuple[str, str, dict[str, float]], ...] = (
    (
        "Flash Crash",
        "Sudden 30% market-wide drop",
        {"BTC": -30, "ETH": -35, "XRP": -40, "SOL": -45, "DOGE": -50,
         "ADA": -40, "LINK": -35, "DOT": -40, "AVAX": -45, "MATIC": -40},
    ),
    (
        "BTC Dominance Surge",
        "Bitcoin rallies, alts drop",
        {"BTC": 20, "ETH": -5, "XRP": -15, "SOL": -20, "DOGE": -25,
         "ADA": -15, "LINK": -10, "DOT": -15, "AVAX": -18, "MATIC": -12},
    ),
    (
        "Alt Season",
        "Altcoins outperform Bitcoin",
        {"BTC": 5, "ETH": 30, "XRP": 50, "SOL": 60, "DOGE": 80,
         "ADA": 45, "LINK": 35, "DOT": 40, "AVAX": 55, "MATIC": 50},
    ),
    (
        "Regulatory Shock",
        "Major regulatory crackdown news",
        {"BTC": -15, "ETH": -20, "XRP": -35, "SOL": -25, "DOGE": -30,
         "ADA": -22, "LINK": -18, "DOT": -20, "AVAX": -25, "MATIC": -22},
    ),
    (
        "XRP SEC Victory",
        "XRP wins major legal case",
        {"BTC": 5, "ETH": 5, "XRP": 100, "SOL": 10, "DOGE": 8,
         "ADA": 8, "LINK": 6, "DOT": 7, "AVAX": 8, "MATIC": 7},
    ),
    (
        "Stablecoin Crisis",
        "Major stablecoin depeg event",
        {"BTC": -25, "ETH": -30, "XRP": -35, "SOL": -40, "DOGE": -35,
         "ADA": -32, "LINK": -28, "DOT": -30, "AVAX": -35, "MATIC": -32},
    ),
)


def stress_test_scenarios() -> list[ScenarioDefinition]:
    """Fresh copies of the canonical stress scenarios."""
    return [
        ScenarioDefinition(
            name=name,
            description=description,
            price_changes=MappingProxyType({k: float(v) for k, v in changes.items()}),
        )
        for name, description, changes in STRESS_TEST_TABLE
    ]


def get_scenario(name: str) -> ScenarioDefinition:
    for scenario in stress_test_scenarios():
        if scenario.name.lower() == name.strip().lower():
            return scenario
    known = ", ".join(s[0] for s in STRESS_TEST_TABLE)
    raise KeyError(f"Unknown scenario {name!r}. Known: {known}")


class ScenarioEngine:
    """Runs price-shock scenarios against portfolio snapshots."""

    def run(self, snapshot: PortfolioSnapshot, scenario: ScenarioDefinition) -> ScenarioAnalysis:
        shocks = {normalize_symbol(k): v for k, v in scenario.price_changes.items()}

        impacts: list[PositionImpact] = []
        for pos in snapshot.positions:
            shock = shocks.get(normalize_symbol(pos.asset), 0.0)
            current_value = pos.value
            projected_value = pos.quantity * pos.current_price * (1 + shock / 100)
            change = projected_value - current_value
            base = abs(current_value)
            impacts.append(PositionImpact(
                asset=pos.asset,
                current_value=round(current_value, 2),
                projected_value=round(projected_value, 2),
                change=round(change, 2),
                change_percent=round(change / base * 100, 2) if base > 0 else 0.0,
            ))

        dollar_impact = sum(
            pos.quantity * pos.current_price * shocks.get(normalize_symbol(pos.asset), 0.0) / 100
            for pos in snapshot.positions
        )
        total = snapshot.total_value
        impact_pct = dollar_impact / total * 100 if total > 0 else 0.0
        projected_drawdown = abs(impact_pct) if impact_pct < 0 else 0.0

        logger.debug(f"Scenario {scenario.name!r}: impact {impact_pct:.2f}% (${dollar_impact:,.2f})")

        return ScenarioAnalysis(
            name=scenario.name,
            description=scenario.description,
            price_changes=dict(scenario.price_changes),
            portfolio_impact=round(impact_pct, 2),
            dollar_impact=round(dollar_impact, 2),
            position_impacts=impacts,
            projected_drawdown=round(projected_drawdown, 2),
        )

    def run_all(
        self,
        snapshot: PortfolioSnapshot,
        scenarios: Optional[Sequence[ScenarioDefinition]] = None,
    ) -> list[ScenarioAnalysis]:
        """Run every scenario (canonical set by default)."""
        scenarios = stress_test_scenarios() if scenarios is None else scenarios
        return [self.run(snapshot, s) for s in scenarios]
