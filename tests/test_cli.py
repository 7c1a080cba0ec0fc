"""Command line interface."""

import json

import pytest
from typer.testing import CliRunner

from aegis import cli

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda *args, **kwargs: None)


@pytest.fixture
def portfolio_file(tmp_path):
    path = tmp_path / "portfolio.json"
    path.write_text(json.dumps({
        "total_value": 10000,
        "cash_balance": 8000,
        "positions": [{"asset": "XRP", "quantity": 1000, "current_price": 2.0}],
        "returns": [0.01, -0.02, 0.015, -0.005, 0.02, -0.01],
    }))
    return path


def test_version() -> None:
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert "AEGIS" in result.output


def test_heatmap() -> None:
    result = runner.invoke(cli.app, ["heatmap", "XRP", "2.0", "--oi", "1000000000", "--long-ratio", "0.5"])
    assert result.exit_code == 0
    assert "Summary" in result.output


def test_heatmap_rejects_bad_price() -> None:
    result = runner.invoke(cli.app, ["heatmap", "XRP", "0"])
    assert result.exit_code == 1


def test_assess() -> None:
    result = runner.invoke(cli.app, ["assess", "XRP", "2.0", "--side", "long"])
    assert result.exit_code == 0
    assert "Risk level" in result.output


def test_gate() -> None:
    result = runner.invoke(cli.app, ["gate", "XRP", "buy", "1000", "2.0"])
    assert result.exit_code == 0
    assert "ALLOWED" in result.output


def test_gate_bad_side() -> None:
    result = runner.invoke(cli.app, ["gate", "XRP", "hold", "1000", "2.0"])
    assert result.exit_code != 0


def test_size() -> None:
    result = runner.invoke(cli.app, ["size", "BTC", "--portfolio", "20000"])
    assert result.exit_code == 0
    assert "Notional" in result.output


def test_metrics_json(portfolio_file) -> None:
    result = runner.invoke(cli.app, ["metrics", "--file", str(portfolio_file), "--json"])
    assert result.exit_code == 0
    assert '"var_95"' in result.output


def test_stress(portfolio_file) -> None:
    result = runner.invoke(cli.app, ["stress", "--file", str(portfolio_file)])
    assert result.exit_code == 0
    assert "Stress Tests" in result.output


def test_invalid_portfolio_file(tmp_path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    result = runner.invoke(cli.app, ["metrics", "--file", str(path)])
    assert result.exit_code == 1


def test_assess_rejects_bad_price() -> None:
    result = runner.invoke(cli.app, ["assess", "XRP", "0"])
    assert result.exit_code == 1


def test_gate_heatmap_failure(monkeypatch) -> None:
    def broken_heatmap(self, *args, **kwargs):
        raise ValueError("current_price must be positive")

    monkeypatch.setattr(cli.AegisEngine, "heatmap", broken_heatmap)
    result = runner.invoke(cli.app, ["gate", "XRP", "buy", "1000", "2.0"])
    assert result.exit_code == 1
    assert "current_price" in result.output


@pytest.mark.parametrize(
    "payload",
    [
        {"total_value": 10000, "returns": None},
        {"total_value": 10000, "positions": [1]},
    ],
)
def test_malformed_portfolio_records(tmp_path, payload) -> None:
    path = tmp_path / "malformed.json"
    path.write_text(json.dumps(payload))
    result = runner.invoke(cli.app, ["metrics", "--file", str(path)])
    assert result.exit_code == 1
    assert "Invalid portfolio file" in result.output
