"""CLI entry point for the trading journal."""

from __future__ import annotations

import json
from pathlib import Path

import click

from .core.config import load_settings


def _load_records(path: str) -> list:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    # Accept either a bare list or a query response ({"results": [...]}).
    if isinstance(data, dict):
        data = data.get("results") or []
    if not isinstance(data, list):
        raise click.BadParameter(f"{path} does not contain a list of records")
    return data


@click.group()
@click.option("--config", default=None, help="Config file path (TOML)")
@click.pass_context
def main(ctx: click.Context, config: str | None) -> None:
    """Trading journal analytics."""
    from .observability.logger import setup_logging

    settings = load_settings(config)
    setup_logging(
        level=settings.observability.log_level,
        format=settings.observability.log_format,
    )
    ctx.obj = settings


@main.command()
@click.argument("records", type=click.Path(exists=True, dir_okay=False))
@click.option("--trades/--no-trades", "include_trades", default=False,
              help="Include the normalized trades in the output")
def analyze(records: str, include_trades: bool) -> None:
    """Normalize, grade and analyze a JSON file of raw records."""
    from .journal.analytics import analyze as run_analysis
    from .journal.grader import AutoGrader
    from .journal.normalizer import normalize_records

    trades = [t for t in normalize_records(_load_records(records)) if t.date]
    stats = run_analysis(AutoGrader().grade_trades(trades))
    click.echo(json.dumps(stats.to_dict(include_trades=include_trades), indent=2))


@main.command()
@click.argument("records", type=click.Path(exists=True, dir_okay=False))
def grade(records: str) -> None:
    """Show the grade and the keywords behind it for every record."""
    from .journal.grader import AutoGrader
    from .journal.normalizer import normalize_records

    grader = AutoGrader()
    for trade in normalize_records(_load_records(records)):
        why = grader.explain(trade)
        fired = ", ".join(why.strong + why.quality + why.weak) or "-"
        click.echo(f"{trade.id or '?':<36} {why.grade:<3} {why.rule} [{fired}]")


@main.command()
@click.option("--win-rate", type=float, required=True, help="Win rate in percent")
@click.option("--avg-win", type=float, required=True, help="Average win in R")
@click.option("--avg-loss", type=float, required=True, help="Average loss in R")
@click.option("--trades", "trade_count", type=int, default=100, help="Future trades per run")
@click.option("--runs", type=int, default=None, help="Number of runs")
@click.option("--seed", type=int, default=None, help="Random seed")
@click.pass_obj
def simulate(
    settings,
    win_rate: float,
    avg_win: float,
    avg_loss: float,
    trade_count: int,
    runs: int | None,
    seed: int | None,
) -> None:
    """Run a Monte Carlo projection."""
    from .core.errors import SimulationParameterError
    from .journal.monte_carlo import MonteCarloSimulator

    config = settings.simulation
    if seed is not None:
        config = config.model_copy(update={"seed": seed})
    simulator = MonteCarloSimulator.from_config(config)
    try:
        result = simulator.simulate(win_rate, avg_win, avg_loss, trade_count, runs)
    except SimulationParameterError as exc:
        raise click.BadParameter(str(exc)) from exc

    out = result.to_dict()
    out.pop("sample_paths")
    click.echo(json.dumps(out, indent=2))


if __name__ == "__main__":
    main()
