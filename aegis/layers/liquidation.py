"""
Liquidation Level Estimator

Estimates where leveraged positions would be force-closed around the
current price and summarizes the result as a LiquidationHeatmap.

Model:
- 61 levels from -30% to +30% of the current price
- Leverage clustering by distance (50x+ hugs the price, low leverage is
  rare but spread wide)
- Longs liquidate below price, shorts above
- Round-number clustering boost at 5%, 10% and 20%

Inputs come from explicit arguments, an optional MarketDataProvider, or
fallback constants. The heatmap carries its provenance in `source`.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol
import numpy as np
from loguru import logger

from aegis.core.config import AegisConfig, normalize_symbol
from aegis.core.types import (
    DominantSide,
    HeatmapSource,
    LiquidationHeatmap,
    LiquidationLevel,
    LiquidationZone,
)


# (max |% from price|, leverage cluster factor)
LEVERAGE_BANDS: tuple[tuple[float, float], ...] = (
    (2.0, 0.15),   # 50x+
    (4.0, 0.25),   # 25-50x
    (10.0, 0.35),  # 10-25x
    (20.0, 0.20),  # 5-10x
)
WIDE_LEVERAGE_FACTOR = 0.05  # 1-5x


NoiseSource = Callable[[], float]


def no_noise() -> float:
    """Identity noise for reproducible heatmaps."""
    return 1.0


class UniformNoise:
    """Multiplicative jitter drawn uniformly from [1 - a, 1 + a]."""

    def __init__(self, amplitude: float = 0.15, rng: Optional[np.random.Generator] = None):
        self.amplitude = amplitude
        self._rng = rng or np.random.default_rng()

    def __call__(self) -> float:
        return float(self._rng.uniform(1 - self.amplitude, 1 + self.amplitude))


def leverage_factor(distance_pct: float) -> float:
    """Leverage cluster factor for an absolute % distance from price."""
    for max_distance, factor in LEVERAGE_BANDS:
        if distance_pct <= max_distance:
            return factor
    return WIDE_LEVERAGE_FACTOR


class MarketDataProvider(Protocol):
    """Futures market data source. Returns None when data is unavailable."""

    def get_open_interest(self, symbol: str) -> Optional[float]: ...

    def get_long_ratio(self, symbol: str) -> Optional[float]: ...


class TTLCache:
    """Per-key cache whose entries expire after `ttl` seconds."""

    def __init__(self, ttl: float):
        self.ttl = ttl
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, now: float) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if now - stored_at >= self.ttl:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, now: float) -> None:
        with self._lock:
            self._entries[key] = (now, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class LiquidationLevelEstimator:
    """
    Builds liquidation heatmaps.

    Each instance owns its cache; noise, clock and data provider are
    injectable so tests can pin every source of variation.
    """

    def __init__(
        self,
        config: AegisConfig,
        noise: Optional[NoiseSource] = None,
        cache: Optional[TTLCache] = None,
        clock: Optional[Callable[[], float]] = None,
        data_provider: Optional[MarketDataProvider] = None,
    ):
        self.config = config
        self.liq = config.liquidation
        self.noise = noise or UniformNoise(self.liq.noise_amplitude)
        self.cache = cache or TTLCache(self.liq.cache_ttl_seconds)
        self.clock = clock or time.time
        self.data_provider = data_provider
        # Serializes cache misses so one heatmap per symbol is built per TTL
        self._build_lock = threading.Lock()

        logger.info("Liquidation level estimator initialized")

    # =========================================================================
    # LEVELS
    # =========================================================================

    def build_levels(
        self,
        current_price: float,
        base_open_interest: float,
        long_ratio: float,
    ) -> list[LiquidationLevel]:
        """Discretized liquidation levels around current_price."""
        self._validate_inputs(current_price, base_open_interest, long_ratio)

        per_side = self.liq.levels_per_side
        step = current_price * (self.liq.price_range_pct / 100) / per_side
        max_possible = base_open_interest * self.liq.intensity_calibration / per_side

        levels: list[LiquidationLevel] = []
        for i in range(-per_side, per_side + 1):
            price = current_price + i * step
            pct = round(i * step / current_price * 100, 2)
            distance = abs(pct)

            factor = leverage_factor(distance)
            boost = self.liq.cluster_boost if round(distance) in self.liq.cluster_levels else 1.0

            long_liq = 0.0
            short_liq = 0.0
            if i < 0:
                long_liq = base_open_interest * long_ratio * factor * self.noise() / per_side * boost
            elif i > 0:
                short_liq = base_open_interest * (1 - long_ratio) * factor * self.noise() / per_side * boost

            total = long_liq + short_liq
            intensity = min(100.0, total / max_possible * 100) if max_possible > 0 else 0.0

            levels.append(LiquidationLevel(
                price=price,
                long_liquidations=long_liq,
                short_liquidations=short_liq,
                total_liquidations=total,
                intensity=intensity,
                price_from_current=pct,
            ))

        return levels

    def _validate_inputs(self, current_price: float, base_open_interest: float, long_ratio: float) -> None:
        if not math.isfinite(current_price) or current_price <= 0:
            raise ValueError(f"current_price must be positive and finite, got {current_price}")
        if not math.isfinite(base_open_interest) or base_open_interest < 0:
            raise ValueError(f"open interest must be >= 0 and finite, got {base_open_interest}")
        if not math.isfinite(long_ratio) or not 0.0 <= long_ratio <= 1.0:
            raise ValueError(f"long_ratio must be in [0, 1], got {long_ratio}")

    # =========================================================================
    # HEATMAP
    # =========================================================================

    def get_heatmap(
        self,
        symbol: str,
        current_price: float,
        open_interest: Optional[float] = None,
        long_ratio: Optional[float] = None,
        now: Optional[float] = None,
    ) -> LiquidationHeatmap:
        """
        Heatmap for a symbol, served from cache within the TTL.

        A cache hit keeps the cached levels but always reports the
        caller-supplied current price.
        """
        if not math.isfinite(current_price) or current_price <= 0:
            raise ValueError(f"current_price must be positive and finite, got {current_price}")

        key = normalize_symbol(symbol)
        now = self.clock() if now is None else now

        cached = self.cache.get(key, now)
        if cached is not None:
            logger.debug(f"Heatmap cache hit for {key}")
            return replace(cached, current_price=current_price)

        with self._build_lock:
            # Another caller may have filled the cache while we waited
            cached = self.cache.get(key, now)
            if cached is not None:
                return replace(cached, current_price=current_price)
            heatmap = self._build_heatmap(key, current_price, open_interest, long_ratio, now)
            self.cache.put(key, heatmap, now)
        return heatmap

    def _build_heatmap(
        self,
        key: str,
        current_price: float,
        open_interest: Optional[float],
        long_ratio: Optional[float],
        now: float,
    ) -> LiquidationHeatmap:
        if open_interest is None:
            open_interest = self._fetch("get_open_interest", key)
        if long_ratio is None:
            long_ratio = self._fetch("get_long_ratio", key)

        source = HeatmapSource.LIVE
        missing = [name for name, v in (("open interest", open_interest), ("long ratio", long_ratio)) if v is None]
        if missing:
            source = HeatmapSource.ESTIMATED
            logger.warning(f"{key}: no {' or '.join(missing)} data, using fallback estimates")
        if open_interest is None:
            open_interest = self.liq.base_open_interest(key)
        if long_ratio is None:
            long_ratio = self.liq.default_long_ratio

        levels = self.build_levels(current_price, open_interest, long_ratio)
        return self.summarize(key, current_price, levels, open_interest, long_ratio, source, now)

    def _fetch(self, method: str, symbol: str) -> Optional[float]:
        """Optional provider call. Failures are treated as missing data."""
        if self.data_provider is None:
            return None
        try:
            value = getattr(self.data_provider, method)(symbol)
        except Exception as e:
            logger.warning(f"{symbol}: data provider {method} failed: {e}")
            return None
        if value is None:
            return None
        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning(f"{symbol}: data provider {method} returned non-numeric {value!r}")
            return None
        if not math.isfinite(value) or value < 0 or (method == "get_long_ratio" and value > 1):
            logger.warning(f"{symbol}: data provider {method} returned out-of-range {value}")
            return None
        return value

    def summarize(
        self,
        symbol: str,
        current_price: float,
        levels: list[LiquidationLevel],
        base_open_interest: float,
        long_ratio: float,
        source: HeatmapSource = HeatmapSource.ESTIMATED,
        now: Optional[float] = None,
    ) -> LiquidationHeatmap:
        """Aggregate descriptors over a list of levels."""
        total_long = sum(l.long_liquidations for l in levels)
        total_short = sum(l.short_liquidations for l in levels)
        ratio = round(total_long / total_short, 2) if total_short > 0 else 1.0

        if ratio > 1.2:
            dominant = DominantSide.LONG
        elif ratio < 0.8:
            dominant = DominantSide.SHORT
        else:
            dominant = DominantSide.BALANCED

        # max() keeps the first level on ties
        major_long = max((l for l in levels if l.long_liquidations > 0),
                         key=lambda l: l.long_liquidations, default=None)
        major_short = max((l for l in levels if l.short_liquidations > 0),
                          key=lambda l: l.short_liquidations, default=None)
        magnet = max(levels, key=lambda l: l.total_liquidations, default=None)

        total = sum(l.total_liquidations for l in levels)
        nearby = sum(
            l.total_liquidations for l in levels
            if abs(l.price_from_current) <= self.liq.nearby_range_pct
        )
        # Half-up rounding: a raw 12.5 scores 13
        risk_score = math.floor(min(100.0, nearby / total * 200) + 0.5) if total > 0 else 0

        ts = datetime.fromtimestamp(now, tz=timezone.utc) if now is not None else datetime.now(timezone.utc)

        return LiquidationHeatmap(
            symbol=symbol,
            current_price=current_price,
            levels=levels,
            total_long_exposure=total_long,
            total_short_exposure=total_short,
            long_short_ratio=ratio,
            major_long_zone=LiquidationZone(major_long.price, major_long.long_liquidations) if major_long else None,
            major_short_zone=LiquidationZone(major_short.price, major_short.short_liquidations) if major_short else None,
            liquidation_risk_score=int(risk_score),
            dominant_side=dominant,
            magnet_price=magnet.price if magnet else current_price,
            base_open_interest=base_open_interest,
            long_ratio=long_ratio,
            source=source,
            timestamp=ts,
        )

    def clear_cache(self) -> None:
        self.cache.clear()

    # =========================================================================
    # INSIGHTS
    # =========================================================================

    def insights(self, heatmap: LiquidationHeatmap, funding_rate: Optional[float] = None) -> list[str]:
        """
        Human-readable trading insights.

        Args:
            funding_rate: Optional 8h funding rate as a fraction (0.0001 = 0.01%)
        """
        insights: list[str] = []
        price = heatmap.current_price

        if heatmap.source == HeatmapSource.ESTIMATED:
            insights.append("Estimated from fallback open interest - no live futures data")

        if heatmap.liquidation_risk_score > 70:
            insights.append("High liquidation density near current price - expect volatility")

        if heatmap.dominant_side == DominantSide.LONG:
            insights.append(
                f"Market is long-heavy ({heatmap.long_short_ratio}:1 ratio) - potential for long squeeze"
            )
        elif heatmap.dominant_side == DominantSide.SHORT and heatmap.long_short_ratio > 0:
            insights.append(
                f"Market is short-heavy (1:{1 / heatmap.long_short_ratio:.2f} ratio) - "
                "potential for short squeeze"
            )

        if heatmap.major_long_zone:
            dist = (price - heatmap.major_long_zone.price) / price * 100
            if dist < 5:
                insights.append(
                    f"Major long liquidation zone at ${heatmap.major_long_zone.price:,.4f} ({dist:.1f}% below)"
                )

        if heatmap.major_short_zone:
            dist = (heatmap.major_short_zone.price - price) / price * 100
            if dist < 5:
                insights.append(
                    f"Major short liquidation zone at ${heatmap.major_short_zone.price:,.4f} ({dist:.1f}% above)"
                )

        if funding_rate is not None and abs(funding_rate * 100) > 0.05:
            direction = "longs paying shorts" if funding_rate > 0 else "shorts paying longs"
            insights.append(f"Elevated funding rate: {direction} ({funding_rate * 100:.3f}%)")

        magnet_dist = (heatmap.magnet_price - price) / price * 100
        if abs(magnet_dist) < 10:
            insights.append(
                f"Price magnet at ${heatmap.magnet_price:,.4f} ({magnet_dist:+.1f}%) - high liquidation density"
            )

        return insights
