"""
Liquidation-Aware Trade Gate

Final gate between a liquidation heatmap and order entry.

- Risk assessment (market-wide risk level + nearest zones)
- Position exit check
- Trade admission (block / shrink / allow)
- Dynamic stop-loss / take-profit

Extreme liquidation risk is a hard block. Every other band is advisory.
"""

from __future__ import annotations

from typing import Optional
from loguru import logger

from aegis.core.config import AegisConfig
from aegis.core.types import (
    DynamicLevels,
    LiquidationHeatmap,
    LiquidationRiskAssessment,
    LiquidationZone,
    PositionLiquidationAnalysis,
    ProximityLevel,
    RiskLevel,
    Side,
    TradeGateDecision,
    TradeIntent,
    ZoneDistance,
)


NO_ZONE_DISTANCE = 100.0


class TradeGate:
    """
    Stateless decisions over a heatmap.

    Distance bands are defined once in classify_distance() and shared by
    assess() and analyze_position().
    """

    def __init__(self, config: AegisConfig):
        self.config = config
        self.gate = config.gate

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    def classify_score(self, score: float) -> RiskLevel:
        """Market-wide risk level from the heatmap risk score."""
        if score < self.gate.low_risk_score:
            return RiskLevel.LOW
        if score < self.gate.medium_risk_score:
            return RiskLevel.MEDIUM
        if score < self.gate.high_risk_score:
            return RiskLevel.HIGH
        return RiskLevel.EXTREME

    def classify_distance(self, distance: float) -> ProximityLevel:
        """Proximity band from % distance to the relevant liquidation zone."""
        if distance > self.gate.safe_distance_pct:
            return ProximityLevel.SAFE
        if distance > self.gate.caution_distance_pct:
            return ProximityLevel.CAUTION
        if distance > self.gate.warning_distance_pct:
            return ProximityLevel.WARNING
        return ProximityLevel.DANGER

    # =========================================================================
    # ASSESSMENT
    # =========================================================================

    def _zone_distances(
        self, heatmap: LiquidationHeatmap
    ) -> tuple[Optional[ZoneDistance], Optional[ZoneDistance]]:
        price = heatmap.current_price
        long_zone = None
        short_zone = None
        if heatmap.major_long_zone:
            z = heatmap.major_long_zone
            long_zone = ZoneDistance(price=z.price, distance=(price - z.price) / price * 100, value=z.value)
        if heatmap.major_short_zone:
            z = heatmap.major_short_zone
            short_zone = ZoneDistance(price=z.price, distance=(z.price - price) / price * 100, value=z.value)
        return long_zone, short_zone

    def assess(
        self,
        heatmap: LiquidationHeatmap,
        position_side: Optional[Side] = None,
    ) -> LiquidationRiskAssessment:
        """Liquidation risk assessment, optionally for a long or short position."""
        buffer = self.gate.zone_buffer
        warnings: list[str] = []
        recommendations: list[str] = []

        long_zone, short_zone = self._zone_distances(heatmap)
        risk_level = self.classify_score(heatmap.liquidation_risk_score)

        relevant: Optional[ZoneDistance] = None
        stop_loss: Optional[float] = None
        take_profit: Optional[float] = None
        direction = ""

        if position_side == Side.LONG and long_zone:
            relevant = long_zone
            direction = "below"
            stop_loss = long_zone.price * (1 + buffer)
            if short_zone:
                take_profit = short_zone.price * (1 - buffer)
        elif position_side == Side.SHORT and short_zone:
            relevant = short_zone
            direction = "above"
            stop_loss = short_zone.price * (1 - buffer)
            if long_zone:
                take_profit = long_zone.price * (1 + buffer)

        distance = relevant.distance if relevant else None
        proximity = self.classify_distance(distance) if distance is not None else None

        if proximity == ProximityLevel.DANGER:
            warnings.append(
                f"DANGER: {position_side.value.capitalize()} liquidation zone only "
                f"{distance:.1f}% {direction}!"
            )
            recommendations.append("Consider reducing position size or setting tight stop-loss")
        elif proximity == ProximityLevel.WARNING:
            warnings.append(
                f"WARNING: Approaching {position_side.value} liquidation zone ({distance:.1f}% away)"
            )

        if risk_level == RiskLevel.EXTREME:
            warnings.append("EXTREME liquidation density near current price - high volatility expected")
            recommendations.append("Reduce position sizes or wait for clearer conditions")
        elif risk_level == RiskLevel.HIGH:
            warnings.append("High liquidation concentration nearby - expect volatility")

        ratio = heatmap.long_short_ratio
        if ratio > self.gate.long_heavy_ratio:
            warnings.append(f"Market heavily long ({ratio:.2f}:1) - long squeeze risk")
            if position_side == Side.LONG:
                recommendations.append("Consider tighter stops or partial profit-taking")
        elif 0 < ratio < self.gate.short_heavy_ratio:
            warnings.append(f"Market heavily short (1:{1 / ratio:.2f}) - short squeeze risk")
            if position_side == Side.SHORT:
                recommendations.append("Consider tighter stops or partial profit-taking")

        return LiquidationRiskAssessment(
            current_price=heatmap.current_price,
            nearest_long_zone=long_zone,
            nearest_short_zone=short_zone,
            liquidation_risk_score=heatmap.liquidation_risk_score,
            risk_level=risk_level,
            suggested_stop_loss=stop_loss,
            suggested_take_profit=take_profit,
            position_side=position_side,
            distance_to_liquidation=distance,
            proximity=proximity,
            warnings=warnings,
            recommendations=recommendations,
        )

    # =========================================================================
    # POSITIONS
    # =========================================================================

    def analyze_position(
        self,
        heatmap: LiquidationHeatmap,
        asset: str,
        entry_price: float,
        quantity: float,
        side: Side = Side.LONG,
    ) -> PositionLiquidationAnalysis:
        """Check an open position against the nearest liquidation zone."""
        if side not in (Side.LONG, Side.SHORT):
            raise ValueError(f"Position side must be LONG or SHORT, got {side}")

        assessment = self.assess(heatmap, side)
        relevant = assessment.nearest_long_zone if side == Side.LONG else assessment.nearest_short_zone
        distance = relevant.distance if relevant else NO_ZONE_DISTANCE
        band = self.classify_distance(distance)

        should_exit = band == ProximityLevel.DANGER
        exit_reason = (
            f"Position within {distance:.1f}% of major liquidation zone" if should_exit else None
        )
        if should_exit:
            logger.warning(f"{asset} {side.value}: {exit_reason}")

        stop_pct = self.gate.default_stop_loss_pct
        target_pct = self.gate.default_take_profit_pct
        if side == Side.LONG:
            stop_loss = entry_price * (1 - stop_pct)
            take_profit = entry_price * (1 + target_pct)
        else:
            stop_loss = entry_price * (1 + stop_pct)
            take_profit = entry_price * (1 - target_pct)

        if assessment.suggested_stop_loss is not None:
            stop_loss = assessment.suggested_stop_loss
        if assessment.suggested_take_profit is not None:
            take_profit = assessment.suggested_take_profit

        return PositionLiquidationAnalysis(
            asset=asset,
            position_side=side,
            entry_price=entry_price,
            current_price=heatmap.current_price,
            quantity=quantity,
            nearest_danger_zone=LiquidationZone(relevant.price, relevant.value) if relevant else None,
            distance_to_danger=distance,
            risk_level=band,
            should_exit=should_exit,
            exit_reason=exit_reason,
            suggested_stop_loss=stop_loss,
            suggested_take_profit=take_profit,
        )

    # =========================================================================
    # TRADE ADMISSION
    # =========================================================================

    def check_trade_entry(self, heatmap: LiquidationHeatmap, trade: TradeIntent) -> TradeGateDecision:
        """Admit, shrink or block a requested trade."""
        assessment = self.assess(heatmap, trade.side)
        warnings = list(assessment.warnings)

        if assessment.risk_level == RiskLevel.EXTREME:
            reason = "Liquidation risk too high - market conditions unfavorable"
            logger.warning(f"{heatmap.symbol} {trade.side.value} trade blocked: {reason}")
            return TradeGateDecision(
                allowed=False,
                risk_adjusted_size=0.0,
                warnings=warnings,
                reason=reason,
                risk_level=assessment.risk_level,
            )

        size = trade.size
        if assessment.risk_level == RiskLevel.HIGH:
            size = trade.size * self.gate.high_risk_size_multiplier
            warnings.append(
                f"Trade size reduced {(1 - self.gate.high_risk_size_multiplier) * 100:.0f}% "
                "due to high liquidation risk"
            )
        elif assessment.risk_level == RiskLevel.MEDIUM:
            size = trade.size * self.gate.medium_risk_size_multiplier
            warnings.append(
                f"Trade size reduced {(1 - self.gate.medium_risk_size_multiplier) * 100:.0f}% "
                "due to elevated liquidation risk"
            )

        zone = assessment.nearest_long_zone if trade.side == Side.LONG else assessment.nearest_short_zone
        if zone and zone.distance < self.gate.opposing_zone_distance_pct:
            action = "Buying" if trade.side == Side.LONG else "Shorting"
            warnings.append(f"{action} near major {trade.side.value} liquidation zone - high risk")
            size = min(size, trade.size * self.gate.opposing_zone_size_cap)

        if size < trade.size:
            logger.info(f"{heatmap.symbol} {trade.side.value} trade size {trade.size:,.2f} -> {size:,.2f}")

        return TradeGateDecision(
            allowed=True,
            risk_adjusted_size=size,
            warnings=warnings,
            risk_level=assessment.risk_level,
        )

    # =========================================================================
    # STOPS / TARGETS
    # =========================================================================

    def dynamic_levels(self, heatmap: LiquidationHeatmap, side: Side) -> DynamicLevels:
        """Stop-loss / take-profit from liquidation zones, with fixed fallbacks."""
        if side not in (Side.LONG, Side.SHORT):
            raise ValueError(f"Position side must be LONG or SHORT, got {side}")

        assessment = self.assess(heatmap, side)
        price = heatmap.current_price
        stop_pct = self.gate.default_stop_loss_pct
        target_pct = self.gate.default_take_profit_pct
        long_zone = assessment.nearest_long_zone
        short_zone = assessment.nearest_short_zone

        if side == Side.LONG:
            stop_zone, stop_label = long_zone, "above major long"
            target_zone, target_label = short_zone, "below major short"
            default_stop = price * (1 - stop_pct)
            default_target = price * (1 + target_pct)
        else:
            stop_zone, stop_label = short_zone, "below major short"
            target_zone, target_label = long_zone, "above major long"
            default_stop = price * (1 + stop_pct)
            default_target = price * (1 - target_pct)

        stop_from_zone = assessment.suggested_stop_loss is not None and stop_zone is not None
        target_from_zone = assessment.suggested_take_profit is not None and target_zone is not None

        if stop_from_zone:
            stop_loss = assessment.suggested_stop_loss
            stop_reason = f"Set {stop_label} liquidation zone (${stop_zone.price:.4f})"
        else:
            stop_loss = default_stop
            stop_reason = f"Default {stop_pct * 100:g}% stop-loss (no liquidation data)"

        if target_from_zone:
            take_profit = assessment.suggested_take_profit
            target_reason = f"Set {target_label} liquidation zone (${target_zone.price:.4f})"
        else:
            take_profit = default_target
            target_reason = f"Default {target_pct * 100:g}% take-profit (no liquidation data)"

        return DynamicLevels(
            stop_loss=stop_loss,
            take_profit=take_profit,
            stop_loss_reason=stop_reason,
            take_profit_reason=target_reason,
            liquidation_aware=stop_from_zone or target_from_zone,
        )
