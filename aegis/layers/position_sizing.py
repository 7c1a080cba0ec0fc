"""
Position Sizing Advisor

Blends four independent sizing estimators:
- Kelly criterion (half-Kelly feeds the blend)
- Fixed fractional (risk budget / assumed stop distance)
- Volatility targeting
- Simplified risk parity (inverse volatility)

The blend is clamped to a hard single-position ceiling.
"""

from __future__ import annotations

import math
from typing import Optional
from loguru import logger

from aegis.core.config import AegisConfig
from aegis.core.types import PositionSizeRecommendation


def kelly_fraction(win_rate: float, avg_win: float, avg_loss: float) -> float:
    """
    Full Kelly fraction f* = (p*b - q) / b, clamped to [0, 1].

    b = avg_win / avg_loss (1 when avg_loss is 0).
    """
    p = win_rate
    q = 1 - win_rate
    b = avg_win / avg_loss if avg_loss > 0 else 1.0
    if b <= 0:
        return 0.0
    kelly = (p * b - q) / b
    return max(0.0, min(1.0, kelly))


def _check_input(name: str, value: float, lower: float = 0.0, upper: Optional[float] = None) -> None:
    if not math.isfinite(value) or value < lower or (upper is not None and value > upper):
        bound = f"[{lower}, {upper}]" if upper is not None else f">= {lower}"
        raise ValueError(f"{name} must be finite and {bound}, got {value}")


class PositionSizingAdvisor:
    """Multi-method position sizing with plain-language reasoning."""

    def __init__(self, config: AegisConfig):
        self.config = config
        self.max_size = config.sizing.max_position
        self.min_size = config.sizing.min_position

    def recommend(
        self,
        asset: str,
        portfolio_value: float,
        win_rate: float,
        avg_win: float,
        avg_loss: float,
        asset_volatility: float,
        target_risk: Optional[float] = None,
    ) -> PositionSizeRecommendation:
        """
        Recommend a position size as a fraction of portfolio value.

        Args:
            win_rate: Probability of a winning trade (0-1)
            avg_win: Average winning trade as a fraction (0.05 = 5%)
            avg_loss: Average losing trade magnitude as a fraction
            asset_volatility: Daily asset volatility as a fraction
            target_risk: Portfolio risk per trade (default 2%)
        """
        sizing = self.config.sizing
        target_risk = sizing.target_risk if target_risk is None else target_risk

        _check_input("portfolio_value", portfolio_value)
        _check_input("win_rate", win_rate, 0.0, 1.0)
        _check_input("avg_win", avg_win)
        _check_input("avg_loss", avg_loss)
        _check_input("asset_volatility", asset_volatility)
        _check_input("target_risk", target_risk)

        reasoning: list[str] = []

        # Kelly - halving is the conservatism policy
        full_kelly = kelly_fraction(win_rate, avg_win, avg_loss)
        half_kelly = full_kelly / 2
        reasoning.append(
            f"Kelly Criterion suggests {full_kelly * 100:.1f}%, "
            f"using half-Kelly: {half_kelly * 100:.1f}%"
        )

        # Fixed fractional
        fixed_fractional = target_risk / sizing.stop_loss_distance
        reasoning.append(
            f"Fixed fractional ({target_risk * 100:g}% risk, "
            f"{sizing.stop_loss_distance * 100:g}% stop): {fixed_fractional * 100:.1f}%"
        )

        # Volatility targeting
        if asset_volatility > 0:
            vol_adjusted = sizing.target_daily_volatility / asset_volatility
        else:
            vol_adjusted = sizing.volatility_fallback
        reasoning.append(
            f"Volatility-adjusted ({asset_volatility * 100:.1f}% vol): {vol_adjusted * 100:.1f}%"
        )

        # Risk parity (inverse volatility)
        risk_parity = 1 / (asset_volatility * 10 + 1)
        reasoning.append(f"Risk parity allocation: {risk_parity * 100:.1f}%")

        blended = (half_kelly + fixed_fractional + vol_adjusted + risk_parity) / 4
        recommended = min(self.max_size, max(self.min_size, blended))
        reasoning.append(
            f"Recommended: {recommended * 100:.1f}% "
            f"(blend {blended * 100:.1f}%, clamped to "
            f"{self.min_size * 100:g}-{self.max_size * 100:g}%)"
        )

        logger.debug(f"{asset} sizing: blend={blended:.4f} recommended={recommended:.4f}")

        return PositionSizeRecommendation(
            asset=asset,
            kelly_size=round(half_kelly * 100, 2),
            full_kelly=round(full_kelly * 100, 2),
            fixed_fractional=round(fixed_fractional * 100, 2),
            volatility_adjusted=round(vol_adjusted * 100, 2),
            risk_parity=round(risk_parity * 100, 2),
            max_size=round(self.max_size * 100, 2),
            recommended_size=round(recommended * 100, 2),
            recommended_notional=round(portfolio_value * recommended, 2),
            reasoning=reasoning,
        )
