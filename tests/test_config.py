"""Configuration and core types."""

import math

import pytest

from aegis.core.config import (
    AegisConfig,
    LiquidationConfig,
    SizingConfig,
    TradeGateConfig,
    normalize_symbol,
)
from aegis.core.types import Position, PortfolioSnapshot, Side, TradeIntent


class TestConfig:

    def test_defaults(self, config) -> None:
        assert config.risk.risk_free_rate == 0.05
        assert config.sizing.max_position == 0.25
        assert config.liquidation.cache_ttl_seconds == 60
        assert config.liquidation.cluster_levels == (5, 10, 20)
        assert config.gate.safe_distance_pct == 10

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("GATE_SAFE_DISTANCE_PCT", "12")
        monkeypatch.setenv("LIQ_DEFAULT_LONG_RATIO", "0.55")
        config = AegisConfig.load()
        assert config.gate.safe_distance_pct == 12
        assert config.liquidation.default_long_ratio == 0.55

    def test_env_file(self, tmp_path, monkeypatch) -> None:
        # Registered so teardown removes what load_dotenv writes
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        monkeypatch.setenv("RISK_SYNTHETIC_DAYS", "30")
        env = tmp_path / "aegis.env"
        env.write_text("LOG_LEVEL=DEBUG\nRISK_SYNTHETIC_DAYS=60\n")
        config = AegisConfig.load(str(env))
        assert config.system.log_level == "DEBUG"
        assert config.risk.synthetic_days == 60

    def test_inconsistent_distance_bands(self) -> None:
        with pytest.raises(ValueError):
            TradeGateConfig(safe_distance_pct=4.0)

    def test_inconsistent_score_bands(self) -> None:
        with pytest.raises(ValueError):
            TradeGateConfig(low_risk_score=60.0)

    def test_position_bounds(self) -> None:
        with pytest.raises(ValueError):
            SizingConfig(min_position=0.5, max_position=0.25)

    def test_long_ratio_bounds(self) -> None:
        with pytest.raises(ValueError):
            LiquidationConfig(default_long_ratio=1.2)

    def test_open_interest_tiers(self, config) -> None:
        assert config.liquidation.base_open_interest("cmt_btcusdt") == 15e9
        assert config.liquidation.base_open_interest("eth") == 8e9
        assert config.liquidation.base_open_interest("DOGE") == 5e8


class TestNormalizeSymbol:

    @pytest.mark.parametrize(
        "raw, expected",
        [("cmt_btcusdt", "BTC"), ("BTCUSDT", "BTC"), ("xrp", "XRP"),
         ("eth-usd", "ETH"), ("SOL/USDT", "SOL"), (" doge ", "DOGE")],
    )
    def test_variants(self, raw, expected) -> None:
        assert normalize_symbol(raw) == expected


class TestTypes:

    def test_position_side_and_pnl(self) -> None:
        pos = Position("XRP", -100.0, 2.0, average_cost=2.5)
        assert pos.side == Side.SHORT
        assert pos.value == -200.0
        assert pos.unrealized_pnl == pytest.approx(50.0)
        assert pos.unrealized_pnl_pct == pytest.approx(20.0)
        assert Position("XRP", 0.0, 2.0).side == Side.FLAT

    @pytest.mark.parametrize(
        "kwargs",
        [{"asset": ""}, {"quantity": math.nan}, {"current_price": -1.0}, {"average_cost": math.inf}],
    )
    def test_invalid_position(self, kwargs) -> None:
        params = dict(asset="BTC", quantity=1.0, current_price=100.0)
        params.update(kwargs)
        with pytest.raises(ValueError):
            Position(**params)

    def test_snapshot_from_dict(self) -> None:
        snap = PortfolioSnapshot.from_dict({
            "total_value": 1000,
            "cash_balance": 500,
            "positions": [{"asset": "BTC", "quantity": 0.01, "current_price": 50000}],
            "returns": [0.01, -0.02],
        })
        assert snap.positions[0].asset == "BTC"
        assert snap.returns == (0.01, -0.02)
        assert snap.weights == [pytest.approx(0.5)]

    def test_snapshot_missing_fields(self) -> None:
        with pytest.raises(ValueError):
            PortfolioSnapshot.from_dict({"cash_balance": 0})
        with pytest.raises(ValueError):
            PortfolioSnapshot.from_dict({"total_value": 10, "positions": [{"asset": "BTC"}]})

    def test_snapshot_rejects_non_finite_returns(self) -> None:
        with pytest.raises(ValueError):
            PortfolioSnapshot(1000.0, 0.0, (), (0.01, math.nan))

    def test_trade_intent(self) -> None:
        assert Side.from_trade("Buy") == Side.LONG
        assert Side.from_trade("sell") == Side.SHORT
        with pytest.raises(ValueError):
            Side.from_trade("hold")
        with pytest.raises(ValueError):
            TradeIntent(Side.FLAT, 100.0, 1.0)
        with pytest.raises(ValueError):
            TradeIntent(Side.LONG, 0.0, 1.0)

    def test_to_dict_uses_enum_values(self) -> None:
        data = TradeIntent(Side.SHORT, 100.0, 2.0).to_dict()
        assert data == {"side": "short", "size": 100.0, "price": 2.0}
