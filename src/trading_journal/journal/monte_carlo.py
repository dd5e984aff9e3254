"""Monte Carlo equity simulator — forward-looking risk analysis.

Projects future equity in R from four scalars taken from the journal:
win rate, average win, average loss and the number of future trades.
Each run is a sequence of Bernoulli trials: a win adds ``avg_win``, a
loss subtracts ``avg_loss``.  The distribution of final equities gives
percentile outcomes, and the share of runs that touch the ruin floor
gives the probability of ruin.

Answers "given my historical edge, what's the range of possible
outcomes over the next N trades?"

Ruined runs are *not* cut short: every path has ``trade_count + 1``
points, starting at 0.  The ruin flag is set the first time equity is
at or below the floor and stays set.

Usage::

    sim = MonteCarloSimulator(ruin_floor_r=-20.0)
    result = sim.simulate(55, avg_win=1.8, avg_loss=1.0, trade_count=100)
    print(result.ruin_pct)                   # 0.4
    print(result.percentile_values["p50"])   # 54.0
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from trading_journal.core.errors import SimulationParameterError

if TYPE_CHECKING:
    from trading_journal.core.config import SimulationConfig

    from .analytics import JournalStats

logger = logging.getLogger(__name__)

DEFAULT_PERCENTILES: tuple[float, ...] = (0.10, 0.25, 0.50, 0.75, 0.90)
DEFAULT_RUN_COUNT = 500
DEFAULT_RUIN_FLOOR_R = -20.0


def percentile_label(p: float) -> str:
    """``0.1`` → ``"p10"``."""
    return f"p{round(p * 100):d}"


def dynamic_ruin_floor(win_rate_pct: float) -> float:
    """Win-rate dependent floor: lower win rates tolerate deeper holes."""
    return -(100.0 / (win_rate_pct or 1.0)) * 2.0


@dataclass
class MonteCarloResult:
    """Outcome distribution of one simulation request."""

    percentile_values: dict[str, float] = field(default_factory=dict)
    ev: float = 0.0
    ruin_pct: float = 0.0
    sample_paths: dict[str, list[float]] = field(default_factory=dict)
    trade_count: int = 0
    run_count: int = 0
    ruin_floor: float = DEFAULT_RUIN_FLOOR_R
    mean_final: float = 0.0
    display_paths: list[list[float]] = field(default_factory=list)
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "percentile_values": dict(self.percentile_values),
            "ev": self.ev,
            "ruin_pct": self.ruin_pct,
            "sample_paths": {k: list(v) for k, v in self.sample_paths.items()},
            "trade_count": self.trade_count,
            "run_count": self.run_count,
            "ruin_floor": self.ruin_floor,
            "mean_final": self.mean_final,
            "params": dict(self.params),
        }


class MonteCarloSimulator:
    """Bernoulli-walk equity simulator with probability of ruin.

    Parameters
    ----------
    ruin_floor_r : float
        Equity (in R) at or below which a run counts as ruined.
        Default -20R.  Ignored when ``dynamic_ruin`` is set.
    dynamic_ruin : bool
        Derive the floor from the win rate via :func:`dynamic_ruin_floor`.
    percentiles : tuple[float, ...]
        Fractions in [0, 1] to report.  Default P10/P25/P50/P75/P90.
    run_count : int
        Default number of runs when ``simulate`` is not given one.
    max_display_paths : int
        How many raw paths (the first runs) to keep for fan charts.
    seed : int | None
        Random seed for reproducibility.  None = non-deterministic.
    """

    def __init__(
        self,
        *,
        ruin_floor_r: float = DEFAULT_RUIN_FLOOR_R,
        dynamic_ruin: bool = False,
        percentiles: tuple[float, ...] = DEFAULT_PERCENTILES,
        run_count: int = DEFAULT_RUN_COUNT,
        max_display_paths: int = 60,
        seed: int | None = None,
    ) -> None:
        if ruin_floor_r >= 0:
            raise SimulationParameterError(
                f"ruin_floor_r must be negative, got {ruin_floor_r}"
            )
        for p in percentiles:
            if not 0.0 <= p <= 1.0:
                raise SimulationParameterError(f"percentile {p} outside [0, 1]")
        self._ruin_floor_r = ruin_floor_r
        self._dynamic_ruin = dynamic_ruin
        self._percentiles = tuple(sorted(percentiles))
        self._run_count = run_count
        self._max_display_paths = max(0, max_display_paths)
        self._rng = random.Random(seed)

    @classmethod
    def from_config(cls, config: SimulationConfig) -> MonteCarloSimulator:
        return cls(
            ruin_floor_r=config.ruin_floor_r,
            dynamic_ruin=config.dynamic_ruin,
            percentiles=tuple(config.percentiles),
            run_count=config.run_count,
            max_display_paths=config.max_display_paths,
            seed=config.seed,
        )

    @property
    def percentiles(self) -> tuple[float, ...]:
        return self._percentiles

    def ruin_floor(self, win_rate_pct: float) -> float:
        """The floor used for a given win rate."""
        if self._dynamic_ruin:
            return dynamic_ruin_floor(win_rate_pct)
        return self._ruin_floor_r

    # ------------------------------------------------------------------ #
    # Simulation                                                           #
    # ------------------------------------------------------------------ #

    def simulate(
        self,
        win_rate_pct: float,
        avg_win: float,
        avg_loss: float,
        trade_count: int,
        run_count: int | None = None,
    ) -> MonteCarloResult:
        """Run the simulation and summarize the final-equity distribution.

        Raises
        ------
        SimulationParameterError
            If any parameter is out of range.  Nothing is simulated.
        """
        runs = self._run_count if run_count is None else run_count
        self._validate(win_rate_pct, avg_win, avg_loss, trade_count, runs)

        wr = win_rate_pct / 100.0
        floor = self.ruin_floor(win_rate_pct)

        paths: list[list[float]] = []
        ruin_count = 0
        for _ in range(runs):
            equity = 0.0
            path = [0.0]
            ruined = False
            for _ in range(trade_count):
                if self._rng.random() < wr:
                    equity += avg_win
                else:
                    equity -= avg_loss
                equity = round(equity, 4)
                if equity <= floor:
                    ruined = True
                path.append(equity)
            if ruined:
                ruin_count += 1
            paths.append(path)

        finals = sorted(p[-1] for p in paths)
        percentile_values = {
            percentile_label(p): finals[min(math.floor(runs * p), runs - 1)]
            for p in self._percentiles
        }
        sample_paths = {
            label: list(self._closest_path(paths, value))
            for label, value in percentile_values.items()
        }

        result = MonteCarloResult(
            percentile_values=percentile_values,
            ev=round(wr * avg_win - (1 - wr) * avg_loss, 4),
            ruin_pct=round(ruin_count / runs * 100, 1),
            sample_paths=sample_paths,
            trade_count=trade_count,
            run_count=runs,
            ruin_floor=floor,
            mean_final=round(sum(finals) / runs, 4),
            display_paths=[list(p) for p in paths[: self._max_display_paths]],
            params={
                "win_rate_pct": win_rate_pct,
                "avg_win": avg_win,
                "avg_loss": avg_loss,
                "trade_count": trade_count,
                "run_count": runs,
            },
        )
        logger.info(
            "Simulated %d runs x %d trades: ev=%.4f ruin=%.1f%% median=%s",
            runs, trade_count, result.ev, result.ruin_pct,
            percentile_values.get("p50"),
        )
        return result

    def simulate_from_stats(
        self,
        stats: JournalStats,
        trade_count: int,
        run_count: int | None = None,
    ) -> MonteCarloResult:
        """Simulate using the win rate and averages of a journal."""
        return self.simulate(
            stats.win_rate, stats.avg_win, stats.avg_loss, trade_count, run_count,
        )

    # ------------------------------------------------------------------ #
    # Private helpers                                                      #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _validate(
        win_rate_pct: float,
        avg_win: float,
        avg_loss: float,
        trade_count: int,
        run_count: int,
    ) -> None:
        checks = (
            (0.0 <= win_rate_pct <= 100.0, f"win_rate_pct must be in [0, 100], got {win_rate_pct}"),
            (avg_win >= 0, f"avg_win must be >= 0, got {avg_win}"),
            (avg_loss >= 0, f"avg_loss must be >= 0, got {avg_loss}"),
            (isinstance(trade_count, int) and trade_count >= 0,
             f"trade_count must be a non-negative integer, got {trade_count!r}"),
            (isinstance(run_count, int) and run_count >= 1,
             f"run_count must be a positive integer, got {run_count!r}"),
        )
        for ok, message in checks:
            if not ok:
                raise SimulationParameterError(message)
        for name, value in (("win_rate_pct", win_rate_pct), ("avg_win", avg_win), ("avg_loss", avg_loss)):
            if not math.isfinite(value):
                raise SimulationParameterError(f"{name} must be finite, got {value}")

    @staticmethod
    def _closest_path(paths: list[list[float]], target: float) -> list[float]:
        """The first path whose final equity is nearest ``target``."""
        return min(paths, key=lambda p: abs(p[-1] - target))
