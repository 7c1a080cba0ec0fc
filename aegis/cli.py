"""
AEGIS Command Line Interface

Commands:
- heatmap: Estimate liquidation levels around a price
- assess: Liquidation risk assessment for a symbol
- gate: Check a trade against liquidation zones
- size: Position size recommendation
- metrics: Portfolio risk metrics from a JSON file
- stress: Stress-test a portfolio JSON file
- version: Show version
"""

import json
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from loguru import logger

from aegis.core.config import AegisConfig
from aegis.core.engine import AegisEngine
from aegis.core.types import PortfolioSnapshot, RiskLevel, Side, TradeIntent

app = typer.Typer(
    name="aegis",
    help="AEGIS - Portfolio Risk & Leveraged-Liquidation Analytics",
    add_completion=False,
)
console = Console()

RISK_STYLES = {
    RiskLevel.LOW: "green",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.HIGH: "red",
    RiskLevel.EXTREME: "bold red",
}


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_dir:
        logger.add(
            str(Path(log_dir) / "aegis_{time}.log"),
            rotation="1 day",
            retention="30 days",
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        )


def _load_engine(config_file: Optional[Path]) -> AegisEngine:
    config = AegisConfig.load(str(config_file) if config_file else None)
    setup_logging(config.system.log_level, config.system.log_dir)
    return AegisEngine(config)


def _parse_side(value: str) -> Side:
    try:
        return Side.from_trade(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def _load_portfolio(path: Path) -> PortfolioSnapshot:
    try:
        data = json.loads(path.read_text())
        return PortfolioSnapshot.from_dict(data)
    except (OSError, json.JSONDecodeError, TypeError, ValueError) as e:
        console.print(f"[red]Invalid portfolio file {path}: {e}[/red]")
        raise typer.Exit(1)


ConfigOption = typer.Option(None, "--config", "-c", help="Env file with AEGIS settings")


@app.command()
def heatmap(
    symbol: str = typer.Argument(..., help="Symbol, e.g. BTC or cmt_btcusdt"),
    price: float = typer.Argument(..., help="Current price"),
    open_interest: Optional[float] = typer.Option(None, "--oi", help="Open interest in USD"),
    long_ratio: Optional[float] = typer.Option(None, "--long-ratio", help="Long share of OI (0-1)"),
    window: int = typer.Option(10, help="Levels shown on each side of the price"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Estimate liquidation levels around the current price."""
    engine = _load_engine(config_file)
    try:
        hm = engine.heatmap(symbol, price, open_interest, long_ratio)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{hm.symbol} Liquidation Heatmap @ ${hm.current_price:,.4f}")
    table.add_column("Price", style="cyan", justify="right")
    table.add_column("From Current", justify="right")
    table.add_column("Longs Liq.", style="red", justify="right")
    table.add_column("Shorts Liq.", style="green", justify="right")
    table.add_column("Intensity", justify="right")

    for level in hm.levels:
        if abs(level.price_from_current) > window:
            continue
        table.add_row(
            f"${level.price:,.4f}",
            f"{level.price_from_current:+.1f}%",
            f"${level.long_liquidations:,.0f}",
            f"${level.short_liquidations:,.0f}",
            f"{level.intensity:.0f}",
        )
    console.print(table)

    summary = [
        f"Source: {hm.source.value}",
        f"Long/Short ratio: {hm.long_short_ratio} ({hm.dominant_side.value})",
        f"Risk score: {hm.liquidation_risk_score}/100",
        f"Magnet price: ${hm.magnet_price:,.4f}",
    ]
    if hm.major_long_zone:
        summary.append(f"Major long zone: ${hm.major_long_zone.price:,.4f}")
    if hm.major_short_zone:
        summary.append(f"Major short zone: ${hm.major_short_zone.price:,.4f}")
    console.print(Panel("\n".join(summary), title="Summary", style="cyan"))

    for insight in engine.liquidation.insights(hm):
        console.print(f"• {insight}")


@app.command()
def assess(
    symbol: str = typer.Argument(..., help="Symbol"),
    price: float = typer.Argument(..., help="Current price"),
    side: Optional[str] = typer.Option(None, help="Position side: long/short/buy/sell"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Liquidation risk assessment."""
    engine = _load_engine(config_file)
    position_side = _parse_side(side) if side else None
    try:
        a = engine.assess(symbol, price, position_side)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    style = RISK_STYLES[a.risk_level]
    console.print(f"Risk level: [{style}]{a.risk_level.value.upper()}[/{style}] "
                  f"(score {a.liquidation_risk_score}/100)")
    if a.nearest_long_zone:
        console.print(f"Long zone:  ${a.nearest_long_zone.price:,.4f} ({a.nearest_long_zone.distance:.1f}% below)")
    if a.nearest_short_zone:
        console.print(f"Short zone: ${a.nearest_short_zone.price:,.4f} ({a.nearest_short_zone.distance:.1f}% above)")
    if a.proximity:
        console.print(f"Proximity: {a.proximity.value}")
    if a.suggested_stop_loss is not None:
        console.print(f"Suggested stop-loss: ${a.suggested_stop_loss:,.4f}")
    if a.suggested_take_profit is not None:
        console.print(f"Suggested take-profit: ${a.suggested_take_profit:,.4f}")

    for w in a.warnings:
        console.print(f"[yellow]⚠ {w}[/yellow]")
    for r in a.recommendations:
        console.print(f"[cyan]→ {r}[/cyan]")


@app.command()
def gate(
    symbol: str = typer.Argument(..., help="Symbol"),
    side: str = typer.Argument(..., help="Trade side: long/short/buy/sell"),
    size: float = typer.Argument(..., help="Requested notional in USD"),
    price: float = typer.Argument(..., help="Trade price"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Check a trade against liquidation zones."""
    engine = _load_engine(config_file)
    try:
        trade = TradeIntent(side=_parse_side(side), size=size, price=price)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    try:
        decision = engine.check_trade(symbol, trade)
        levels = engine.dynamic_levels(symbol, price, trade.side)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if decision.allowed:
        console.print(f"[green]✓ ALLOWED[/green] size ${decision.risk_adjusted_size:,.2f} "
                      f"(requested ${trade.size:,.2f})")
    else:
        console.print(f"[red bold]✗ BLOCKED[/red bold] {decision.reason}")
    for w in decision.warnings:
        console.print(f"[yellow]⚠ {w}[/yellow]")

    console.print(f"Stop-loss:   ${levels.stop_loss:,.4f} - {levels.stop_loss_reason}")
    console.print(f"Take-profit: ${levels.take_profit:,.4f} - {levels.take_profit_reason}")

    if not decision.allowed:
        raise typer.Exit(2)


@app.command()
def size(
    asset: str = typer.Argument(..., help="Asset"),
    portfolio_value: float = typer.Option(10000.0, "--portfolio", help="Portfolio value in USD"),
    win_rate: float = typer.Option(0.55, help="Win rate (0-1)"),
    avg_win: float = typer.Option(0.05, help="Average win as a fraction"),
    avg_loss: float = typer.Option(0.03, help="Average loss as a fraction"),
    volatility: float = typer.Option(0.04, help="Daily asset volatility as a fraction"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Position size recommendation."""
    engine = _load_engine(config_file)
    try:
        rec = engine.position_size(asset, portfolio_value, win_rate, avg_win, avg_loss, volatility)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    table = Table(title=f"{asset} Position Sizing")
    table.add_column("Method", style="cyan")
    table.add_column("Size", style="green", justify="right")
    table.add_row("Half-Kelly", f"{rec.kelly_size:.2f}%")
    table.add_row("Fixed Fractional", f"{rec.fixed_fractional:.2f}%")
    table.add_row("Volatility Adjusted", f"{rec.volatility_adjusted:.2f}%")
    table.add_row("Risk Parity", f"{rec.risk_parity:.2f}%")
    table.add_row("[bold]Recommended[/bold]", f"[bold]{rec.recommended_size:.2f}%[/bold]")
    console.print(table)
    console.print(f"Notional: ${rec.recommended_notional:,.2f}")
    for line in rec.reasoning:
        console.print(f"[dim]{line}[/dim]")


@app.command()
def metrics(
    file: Path = typer.Option(..., "--file", "-f", help="Portfolio JSON file"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Portfolio risk metrics."""
    engine = _load_engine(config_file)
    snapshot = _load_portfolio(file)
    m = engine.risk_metrics(snapshot)

    if as_json:
        console.print_json(json.dumps(m.to_dict()))
        return

    table = Table(title="Risk Metrics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("VaR 95%", f"{m.var_95:.2f}%")
    table.add_row("VaR 99%", f"{m.var_99:.2f}%")
    table.add_row("CVaR 95%", f"{m.cvar_95:.2f}%")
    table.add_row("Sharpe", f"{m.sharpe_ratio:.2f}")
    table.add_row("Sortino", f"{m.sortino_ratio:.2f}")
    table.add_row("Calmar", f"{m.calmar_ratio:.2f}")
    table.add_row("Max Drawdown", f"{m.max_drawdown:.2f}%")
    table.add_row("Current Drawdown", f"{m.current_drawdown:.2f}%")
    table.add_row("Leverage", f"{m.leverage:.2f}x")
    table.add_row("Herfindahl", f"{m.herfindahl_index:.3f}")
    table.add_row("Largest Position", f"{m.largest_position:.2f}%")
    table.add_row("Volatility (ann.)", f"{m.portfolio_volatility:.2f}%")
    if m.beta is not None:
        table.add_row("Beta", f"{m.beta:.2f}")
    if m.information_ratio is not None:
        table.add_row("Information Ratio", f"{m.information_ratio:.2f}")
    console.print(table)

    if m.is_synthetic:
        console.print(f"[yellow]⚠ Metrics use {m.sample_size} synthetic returns[/yellow]")


@app.command()
def stress(
    file: Path = typer.Option(..., "--file", "-f", help="Portfolio JSON file"),
    config_file: Optional[Path] = ConfigOption,
) -> None:
    """Stress-test a portfolio against the canonical scenarios."""
    engine = _load_engine(config_file)
    snapshot = _load_portfolio(file)
    results = engine.stress_tests(snapshot)

    table = Table(title="Stress Tests")
    table.add_column("Scenario", style="cyan")
    table.add_column("Description")
    table.add_column("Impact", justify="right")
    table.add_column("Dollar Impact", justify="right")

    for r in results:
        color = "red" if r.portfolio_impact < 0 else "green"
        table.add_row(
            r.name,
            r.description,
            f"[{color}]{r.portfolio_impact:+.2f}%[/{color}]",
            f"[{color}]${r.dollar_impact:,.2f}[/{color}]",
        )
    console.print(table)


@app.command()
def version() -> None:
    """Show AEGIS version."""
    from aegis import __version__, __codename__
    console.print(f"AEGIS {__codename__} v{__version__}")


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
