"""Core type definitions for AEGIS risk engine."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class Side(Enum):
    """Position / trade side."""
    LONG = "long"
    SHORT = "short"
    FLAT = "flat"

    @classmethod
    def from_trade(cls, value: str) -> "Side":
        """Map buy/sell/long/short to a side."""
        v = value.strip().lower()
        if v in ("buy", "long"):
            return cls.LONG
        if v in ("sell", "short"):
            return cls.SHORT
        raise ValueError(f"Unknown trade side: {value!r}")


class RiskLevel(Enum):
    """Market-wide liquidation risk from the heatmap risk score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EXTREME = "extreme"


class ProximityLevel(Enum):
    """Distance band to the nearest relevant liquidation zone."""
    SAFE = "safe"        # > 10%
    CAUTION = "caution"  # 5-10%
    WARNING = "warning"  # 3-5%
    DANGER = "danger"    # < 3%


class DominantSide(Enum):
    """Which side holds more liquidation exposure."""
    LONG = "long"
    SHORT = "short"
    BALANCED = "balanced"


class HeatmapSource(Enum):
    """Provenance of heatmap inputs."""
    LIVE = "live"            # Real open interest + long/short ratio
    ESTIMATED = "estimated"  # Fallback constants


class ReturnsSource(Enum):
    """Provenance of the return series behind risk metrics."""
    HISTORICAL = "historical"
    SYNTHETIC = "synthetic"


def to_primitive(value: Any) -> Any:
    """Convert value objects into JSON-serializable primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_primitive(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_primitive(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_primitive(v) for v in value]
    return value


class Serializable:
    """Mixin giving dataclasses a JSON-friendly to_dict()."""

    def to_dict(self) -> dict[str, Any]:
        return to_primitive(self)


def _require_finite(name: str, value: float) -> None:
    if not isinstance(value, numbers.Real) or isinstance(value, bool) or not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {value!r}")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# PORTFOLIO INPUTS
# =============================================================================

@dataclass(frozen=True)
class Position(Serializable):
    """Open position snapshot. Positive quantity = long, negative = short."""
    asset: str
    quantity: float
    current_price: float
    average_cost: float = 0.0

    def __post_init__(self):
        if not isinstance(self.asset, str) or not self.asset.strip():
            raise ValueError(f"Position asset must be a non-empty string, got {self.asset!r}")
        _require_finite(f"{self.asset} quantity", self.quantity)
        _require_finite(f"{self.asset} current_price", self.current_price)
        _require_finite(f"{self.asset} average_cost", self.average_cost)
        if self.current_price < 0:
            raise ValueError(f"{self.asset} current_price must be >= 0, got {self.current_price}")
        if self.average_cost < 0:
            raise ValueError(f"{self.asset} average_cost must be >= 0, got {self.average_cost}")

    @property
    def value(self) -> float:
        return self.quantity * self.current_price

    @property
    def side(self) -> Side:
        if self.quantity > 0:
            return Side.LONG
        if self.quantity < 0:
            return Side.SHORT
        return Side.FLAT

    @property
    def unrealized_pnl(self) -> float:
        if self.average_cost <= 0:
            return 0.0
        return self.quantity * (self.current_price - self.average_cost)

    @property
    def unrealized_pnl_pct(self) -> float:
        cost_basis = abs(self.quantity) * self.average_cost
        if cost_basis <= 0:
            return 0.0
        return self.unrealized_pnl / cost_basis * 100

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Position":
        try:
            return cls(
                asset=data["asset"],
                quantity=data["quantity"],
                current_price=data["current_price"],
                average_cost=data.get("average_cost", 0.0),
            )
        except KeyError as e:
            raise ValueError(f"Position record missing field {e.args[0]!r}: {dict(data)}") from e


@dataclass(frozen=True)
class PortfolioSnapshot(Serializable):
    """Immutable portfolio state supplied for one calculation."""
    total_value: float
    cash_balance: float
    positions: tuple[Position, ...] = ()
    returns: tuple[float, ...] = ()  # Daily fractional returns, chronological
    benchmark_returns: Optional[tuple[float, ...]] = None

    def __post_init__(self):
        _require_finite("total_value", self.total_value)
        _require_finite("cash_balance", self.cash_balance)
        if self.total_value < 0:
            raise ValueError(f"total_value must be >= 0, got {self.total_value}")

        # Accept lists from callers, store tuples
        object.__setattr__(self, "positions", tuple(self.positions))
        object.__setattr__(self, "returns", tuple(float(r) for r in self.returns))
        if self.benchmark_returns is not None:
            object.__setattr__(
                self, "benchmark_returns", tuple(float(r) for r in self.benchmark_returns)
            )

        for pos in self.positions:
            if not isinstance(pos, Position):
                raise ValueError(f"positions must contain Position objects, got {type(pos).__name__}")
        for i, r in enumerate(self.returns):
            if not math.isfinite(r):
                raise ValueError(f"returns[{i}] is not finite: {r}")
        for i, r in enumerate(self.benchmark_returns or ()):
            if not math.isfinite(r):
                raise ValueError(f"benchmark_returns[{i}] is not finite: {r}")

    def weight(self, position: Position) -> float:
        """Position weight as a fraction of total value."""
        if self.total_value <= 0:
            return 0.0
        return position.value / self.total_value

    @property
    def weights(self) -> list[float]:
        return [self.weight(p) for p in self.positions]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PortfolioSnapshot":
        """Build a snapshot from plain JSON data."""
        if "total_value" not in data:
            raise ValueError("Portfolio record missing field 'total_value'")
        benchmark = data.get("benchmark_returns")
        return cls(
            total_value=data["total_value"],
            cash_balance=data.get("cash_balance", 0.0),
            positions=tuple(Position.from_dict(p) for p in data.get("positions", [])),
            returns=tuple(data.get("returns", [])),
            benchmark_returns=tuple(benchmark) if benchmark is not None else None,
        )


@dataclass(frozen=True)
class TradeIntent(Serializable):
    """Requested trade from an order-entry surface."""
    side: Side
    size: float  # USD notional
    price: float

    def __post_init__(self):
        if self.side not in (Side.LONG, Side.SHORT):
            raise ValueError(f"Trade side must be LONG or SHORT, got {self.side}")
        _require_finite("trade size", self.size)
        _require_finite("trade price", self.price)
        if self.size <= 0:
            raise ValueError(f"Trade size must be positive, got {self.size}")
        if self.price <= 0:
            raise ValueError(f"Trade price must be positive, got {self.price}")


# =============================================================================
# RISK METRICS
# =============================================================================

@dataclass
class RiskMetrics(Serializable):
    """Portfolio risk metrics. Percent fields are in percent units."""
    # Value at Risk
    var_95: float
    var_99: float
    cvar_95: float

    # Performance ratios
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float  # Annualized return / max drawdown, both fractions (not return / drawdown %)

    # Drawdown
    current_drawdown: float
    max_drawdown: float
    drawdown_duration: int  # Samples in current drawdown
    average_drawdown: float

    # Exposure
    gross_exposure: float
    net_exposure: float
    leverage: float
    cash_weight: float

    # Concentration
    herfindahl_index: float
    largest_position: float
    top5_concentration: float

    # Volatility
    annualized_return: float
    portfolio_volatility: float
    downside_volatility: float

    # Tail risk
    skewness: float
    kurtosis: float
    tail_ratio: float

    # Benchmark-relative, None without benchmark data
    beta: Optional[float] = None
    information_ratio: Optional[float] = None

    returns_source: ReturnsSource = ReturnsSource.HISTORICAL
    sample_size: int = 0

    @property
    def is_synthetic(self) -> bool:
        return self.returns_source == ReturnsSource.SYNTHETIC


@dataclass
class CorrelationMatrix(Serializable):
    """Pairwise return correlations."""
    assets: list[str]
    matrix: list[list[float]]
    period: str = "30d"
    timestamp: datetime = field(default_factory=utcnow)

    def get(self, a: str, b: str) -> float:
        return self.matrix[self.assets.index(a)][self.assets.index(b)]


@dataclass
class PositionSizeRecommendation(Serializable):
    """Blended position size. Size fields are percent of portfolio."""
    asset: str
    kelly_size: float  # Half-Kelly, feeds the blend
    full_kelly: float
    fixed_fractional: float
    volatility_adjusted: float
    risk_parity: float
    max_size: float
    recommended_size: float
    recommended_notional: float
    reasoning: list[str] = field(default_factory=list)


# =============================================================================
# SCENARIOS
# =============================================================================

@dataclass(frozen=True)
class ScenarioDefinition(Serializable):
    """Named price-shock scenario (percent change per asset)."""
    name: str
    description: str
    price_changes: Mapping[str, float]


@dataclass
class PositionImpact(Serializable):
    asset: str
    current_value: float
    projected_value: float
    change: float
    change_percent: float


@dataclass
class ScenarioAnalysis(Serializable):
    """Portfolio impact of a scenario."""
    name: str
    description: str
    price_changes: dict[str, float]
    portfolio_impact: float  # % of total value
    dollar_impact: float
    position_impacts: list[PositionImpact] = field(default_factory=list)
    projected_drawdown: float = 0.0


# =============================================================================
# LIQUIDATIONS
# =============================================================================

@dataclass
class LiquidationLevel(Serializable):
    """Estimated liquidations at one price level."""
    price: float
    long_liquidations: float   # USD of longs liquidated here
    short_liquidations: float  # USD of shorts liquidated here
    total_liquidations: float
    intensity: float           # 0-100
    price_from_current: float  # % distance from current price


@dataclass
class LiquidationZone(Serializable):
    price: float
    value: float


@dataclass
class LiquidationHeatmap(Serializable):
    """Discretized liquidation map for one (symbol, price)."""
    symbol: str
    current_price: float
    levels: list[LiquidationLevel]

    # Aggregates
    total_long_exposure: float
    total_short_exposure: float
    long_short_ratio: float

    # Key levels
    major_long_zone: Optional[LiquidationZone]
    major_short_zone: Optional[LiquidationZone]

    # Risk indicators
    liquidation_risk_score: int  # 0-100
    dominant_side: DominantSide
    magnet_price: float

    # Inputs and provenance
    base_open_interest: float
    long_ratio: float
    source: HeatmapSource = HeatmapSource.ESTIMATED
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_live(self) -> bool:
        return self.source == HeatmapSource.LIVE


@dataclass
class ZoneDistance(Serializable):
    """Liquidation zone with distance (%) from current price."""
    price: float
    distance: float
    value: float


@dataclass
class LiquidationRiskAssessment(Serializable):
    """Heatmap-derived risk view, optionally for one position side."""
    current_price: float
    nearest_long_zone: Optional[ZoneDistance]
    nearest_short_zone: Optional[ZoneDistance]

    liquidation_risk_score: int
    risk_level: RiskLevel

    suggested_stop_loss: Optional[float] = None
    suggested_take_profit: Optional[float] = None

    position_side: Optional[Side] = None
    distance_to_liquidation: Optional[float] = None
    proximity: Optional[ProximityLevel] = None

    warnings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class PositionLiquidationAnalysis(Serializable):
    """Existing position checked against liquidation zones."""
    asset: str
    position_side: Side
    entry_price: float
    current_price: float
    quantity: float

    nearest_danger_zone: Optional[LiquidationZone]
    distance_to_danger: float  # %

    risk_level: ProximityLevel
    should_exit: bool
    suggested_stop_loss: float
    suggested_take_profit: float
    exit_reason: Optional[str] = None


@dataclass
class TradeGateDecision(Serializable):
    """Admission decision for a requested trade."""
    allowed: bool
    risk_adjusted_size: float
    warnings: list[str] = field(default_factory=list)
    reason: Optional[str] = None
    risk_level: Optional[RiskLevel] = None


@dataclass
class DynamicLevels(Serializable):
    """Stop-loss / take-profit with provenance."""
    stop_loss: float
    take_profit: float
    stop_loss_reason: str
    take_profit_reason: str
    liquidation_aware: bool = False


@dataclass
class LiquidationAnalysis(Serializable):
    """Heatmap + assessment + insights for one symbol."""
    heatmap: LiquidationHeatmap
    assessment: LiquidationRiskAssessment
    trading_insights: list[str] = field(default_factory=list)


@dataclass
class PortfolioRiskReport(Serializable):
    """Full pipeline output for one portfolio snapshot."""
    metrics: RiskMetrics
    stress_tests: list[ScenarioAnalysis]
    position_analyses: list[PositionLiquidationAnalysis] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def exit_signals(self) -> list[PositionLiquidationAnalysis]:
        return [a for a in self.position_analyses if a.should_exit]

    @property
    def worst_scenario(self) -> Optional[ScenarioAnalysis]:
        if not self.stress_tests:
            return None
        return min(self.stress_tests, key=lambda s: s.portfolio_impact)
