"""Core AEGIS components."""

from aegis.core.config import AegisConfig, normalize_symbol
from aegis.core.engine import AegisEngine
from aegis.core.types import (
    Side,
    RiskLevel,
    ProximityLevel,
    DominantSide,
    HeatmapSource,
    ReturnsSource,
    Position,
    PortfolioSnapshot,
    TradeIntent,
    RiskMetrics,
    LiquidationHeatmap,
    PortfolioRiskReport,
)

__all__ = [
    "AegisConfig",
    "normalize_symbol",
    "AegisEngine",
    "Side",
    "RiskLevel",
    "ProximityLevel",
    "DominantSide",
    "HeatmapSource",
    "ReturnsSource",
    "Position",
    "PortfolioSnapshot",
    "TradeIntent",
    "RiskMetrics",
    "LiquidationHeatmap",
    "PortfolioRiskReport",
]
