"""AEGIS Configuration System."""

from __future__ import annotations

from typing import Optional, Literal
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


# Fallback open interest (USD) when no futures data is available
DEFAULT_OPEN_INTEREST_USD: dict[str, float] = {
    "BTC": 15_000_000_000.0,
    "ETH": 8_000_000_000.0,
}
DEFAULT_OPEN_INTEREST_OTHER_USD: float = 500_000_000.0


def normalize_symbol(symbol: str) -> str:
    """Normalize cmt_btcusdt / BTCUSDT / btc -> BTC."""
    s = symbol.strip().lower().replace("cmt_", "")
    for quote in ("usdt", "usd"):
        if s.endswith(quote) and len(s) > len(quote):
            s = s[: -len(quote)]
            break
    return s.strip("-/").upper()


class RiskMetricsConfig(BaseSettings):
    """Portfolio risk metrics configuration."""
    model_config = SettingsConfigDict(env_prefix="RISK_")

    risk_free_rate: float = 0.05  # 5% annual
    trading_days_per_year: int = 252

    # Tail used for VaR95 / CVaR95
    tail_pct: float = 5.0
    extreme_tail_pct: float = 1.0

    # Synthetic fallback when fewer than 2 returns are supplied
    synthetic_days: int = 30
    synthetic_seed: Optional[int] = None

    # Concentration
    top_n_concentration: int = 5


class SizingConfig(BaseSettings):
    """Position sizing configuration."""
    model_config = SettingsConfigDict(env_prefix="SIZING_")

    target_risk: float = 0.02  # 2% portfolio risk per trade
    stop_loss_distance: float = 0.05  # Assumed 5% stop
    target_daily_volatility: float = 0.02
    volatility_fallback: float = 0.10  # Used when asset vol is 0

    min_position: float = 0.01
    max_position: float = 0.25  # Hard single-position ceiling

    @model_validator(mode="after")
    def validate_bounds(self) -> "SizingConfig":
        if not 0 < self.min_position <= self.max_position <= 1:
            raise ValueError(
                f"Position bounds must satisfy 0 < min <= max <= 1, "
                f"got min={self.min_position}, max={self.max_position}"
            )
        if self.stop_loss_distance <= 0:
            raise ValueError("stop_loss_distance must be positive")
        return self


class LiquidationConfig(BaseSettings):
    """Liquidation heatmap configuration."""
    model_config = SettingsConfigDict(env_prefix="LIQ_")

    cache_ttl_seconds: float = 60.0

    # Grid: -30%..+30% in 30 steps each direction = 61 levels
    price_range_pct: float = 30.0
    levels_per_side: int = 30

    default_long_ratio: float = 0.52

    # Round-number clustering
    cluster_boost: float = 1.8
    cluster_levels: tuple[int, ...] = (5, 10, 20)

    # Multiplicative jitter (+/- 15%)
    noise_amplitude: float = 0.15

    # Intensity calibration: maxPossible = OI * 0.15 / levels_per_side
    intensity_calibration: float = 0.15

    # Window used for the liquidation risk score
    nearby_range_pct: float = 5.0

    @field_validator("default_long_ratio")
    @classmethod
    def validate_long_ratio(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"default_long_ratio must be in [0, 1], got {v}")
        return v

    @field_validator("noise_amplitude")
    @classmethod
    def validate_noise(cls, v: float) -> float:
        if not 0.0 <= v < 1.0:
            raise ValueError(f"noise_amplitude must be in [0, 1), got {v}")
        return v

    def base_open_interest(self, symbol: str) -> float:
        """Fallback open interest for a symbol tier."""
        return DEFAULT_OPEN_INTEREST_USD.get(
            normalize_symbol(symbol), DEFAULT_OPEN_INTEREST_OTHER_USD
        )


class TradeGateConfig(BaseSettings):
    """Liquidation-aware trade gate configuration."""
    model_config = SettingsConfigDict(env_prefix="GATE_")

    # Distance to liquidation zone (% of current price)
    safe_distance_pct: float = 10.0
    caution_distance_pct: float = 5.0
    warning_distance_pct: float = 3.0

    # Liquidation risk score bands
    low_risk_score: float = 30.0
    medium_risk_score: float = 50.0
    high_risk_score: float = 70.0

    # Size adjustments
    high_risk_size_multiplier: float = 0.5
    medium_risk_size_multiplier: float = 0.75
    opposing_zone_distance_pct: float = 5.0
    opposing_zone_size_cap: float = 0.5

    # Stop / target derivation
    zone_buffer: float = 0.02  # 2% buffer around liquidation zones
    default_stop_loss_pct: float = 0.05
    default_take_profit_pct: float = 0.10

    # Long/short imbalance warnings
    long_heavy_ratio: float = 1.5
    short_heavy_ratio: float = 0.67

    @model_validator(mode="after")
    def validate_bands(self) -> "TradeGateConfig":
        if not self.safe_distance_pct > self.caution_distance_pct > self.warning_distance_pct > 0:
            raise ValueError("Distance bands must satisfy safe > caution > warning > 0")
        if not self.low_risk_score < self.medium_risk_score < self.high_risk_score:
            raise ValueError("Risk score bands must satisfy low < medium < high")
        return self


class SystemConfig(BaseSettings):
    """System configuration."""
    model_config = SettingsConfigDict(env_prefix="")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: Optional[str] = None


class AegisConfig(BaseSettings):
    """Master AEGIS configuration."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    risk: RiskMetricsConfig = Field(default_factory=RiskMetricsConfig)
    sizing: SizingConfig = Field(default_factory=SizingConfig)
    liquidation: LiquidationConfig = Field(default_factory=LiquidationConfig)
    gate: TradeGateConfig = Field(default_factory=TradeGateConfig)
    system: SystemConfig = Field(default_factory=SystemConfig)

    @classmethod
    def load(cls, env_file: Optional[str] = None) -> "AegisConfig":
        """
        Load configuration from environment.

        An explicit env file is pushed into os.environ first so the nested
        sections, which read their own prefixes, see it too.
        """
        if env_file:
            load_dotenv(env_file, override=True)
            return cls(_env_file=env_file)
        return cls()
