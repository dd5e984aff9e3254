"""Aggregate and time-bucketed trade statistics.

Turns a set of normalized trades into :class:`JournalStats`: win rate,
average win / loss in R, expectancy, the cumulative-R equity curve with
peak and drawdown, and breakdowns by month, session, grade and entry
timeframe.  Answers questions like "what is my expectancy?" or "am I
better in the London session?".

The computation is pure and order-independent: trades are re-sorted by
date before the equity curve is built, and trades without a date are
dropped up front.  Statistics are always recomputed wholesale.

Rounding (half away from zero):

    win_rate, drawdown, bucket win rates   integer percent
    avg_win, avg_loss, cumulative R        2 decimals
    ev                                     3 decimals

Usage::

    stats = analyze(trades)
    print(stats.win_rate, stats.ev, stats.drawdown)
    print(stats.sessions["London KZ"].wins)
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from trading_journal.core.enums import EquityRange, Grade, TradeOutcome

from .record import Trade

logger = logging.getLogger(__name__)

UNKNOWN_BUCKET = "Unknown"

# Heuristic grades are always present in the grade breakdown, even at zero.
SEEDED_GRADES = (Grade.A_PLUS.value, Grade.B.value, Grade.C.value)


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a trader would expect: 0.5 goes away from zero."""
    exp = Decimal(1).scaleb(-places)
    rounded = float(Decimal(repr(value)).quantize(exp, rounding=ROUND_HALF_UP))
    return rounded + 0.0  # no -0.0


def _pct(part: int | float, whole: int | float) -> int:
    if not whole:
        return 0
    return int(round_half_up(part / whole * 100))


# ------------------------------------------------------------------ #
# Result types                                                         #
# ------------------------------------------------------------------ #

@dataclass
class BucketStats:
    """Win count over total count for one category value."""

    wins: int = 0
    total: int = 0

    def record(self, trade: Trade) -> None:
        self.total += 1
        if trade.is_win:
            self.wins += 1

    @property
    def win_rate(self) -> int:
        return _pct(self.wins, self.total)

    def to_dict(self) -> dict[str, Any]:
        return {"wins": self.wins, "total": self.total, "win_rate": self.win_rate}


@dataclass
class MonthStats(BucketStats):
    """Per-calendar-month bucket with R total."""

    label: str = ""
    losses: int = 0
    breakevens: int = 0
    r: float = 0.0

    def record(self, trade: Trade) -> None:
        super().record(trade)
        if trade.outcome == TradeOutcome.LOSE:
            self.losses += 1
        elif trade.outcome == TradeOutcome.BREAKEVEN:
            self.breakevens += 1
        self.r += trade.r_value

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "label": self.label,
            "losses": self.losses,
            "breakevens": self.breakevens,
            "r": round_half_up(self.r, 2),
        }


@dataclass(frozen=True)
class EquityPoint:
    """Cumulative R after one trade."""

    date: dt.date
    cumulative_r: float
    trade_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "cumulative_r": self.cumulative_r,
            "trade_id": self.trade_id,
        }


@dataclass
class JournalStats:
    """Everything derived from one analysis pass."""

    valid: list[Trade] = field(default_factory=list)
    wins: list[Trade] = field(default_factory=list)
    losses: list[Trade] = field(default_factory=list)
    breakevens: list[Trade] = field(default_factory=list)
    win_rate: int = 0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    ev: float = 0.0
    equity: list[EquityPoint] = field(default_factory=list)
    total_r: float = 0.0
    cur_r: float = 0.0
    peak_r: float = 0.0
    drawdown: int = 0
    monthly: dict[str, MonthStats] = field(default_factory=dict)
    sessions: dict[str, BucketStats] = field(default_factory=dict)
    grades: dict[str, BucketStats] = field(default_factory=dict)
    timeframes: dict[str, BucketStats] = field(default_factory=dict)
    by_day: dict[str, list[Trade]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.valid)

    def to_dict(self, *, include_trades: bool = False) -> dict[str, Any]:
        """Export to plain types for JSON output."""
        out: dict[str, Any] = {
            "total": self.total,
            "wins": len(self.wins),
            "losses": len(self.losses),
            "breakevens": len(self.breakevens),
            "win_rate": self.win_rate,
            "avg_win": self.avg_win,
            "avg_loss": self.avg_loss,
            "ev": self.ev,
            "total_r": self.total_r,
            "cur_r": self.cur_r,
            "peak_r": self.peak_r,
            "drawdown": self.drawdown,
            "equity": [p.to_dict() for p in self.equity],
            "monthly": {k: v.to_dict() for k, v in self.monthly.items()},
            "sessions": {k: v.to_dict() for k, v in self.sessions.items()},
            "grades": {k: v.to_dict() for k, v in self.grades.items()},
            "timeframes": {k: v.to_dict() for k, v in self.timeframes.items()},
        }
        if include_trades:
            out["trades"] = [t.to_dict() for t in self.valid]
        return out


# ------------------------------------------------------------------ #
# Analysis                                                             #
# ------------------------------------------------------------------ #

def _sort_key(trade: Trade) -> tuple:
    # Ties on date are broken by id and R so any input permutation
    # produces the same curve.
    return (trade.date, trade.id, trade.r_value)


def _equity_curve(ordered: list[Trade]) -> list[EquityPoint]:
    running = 0.0
    points: list[EquityPoint] = []
    for trade in ordered:
        running += trade.r_value
        points.append(
            EquityPoint(
                date=trade.date,
                cumulative_r=round_half_up(running, 2),
                trade_id=trade.id,
            )
        )
    return points


def analyze(trades: Iterable[Trade]) -> JournalStats:
    """Compute :class:`JournalStats` for ``trades``.

    Trades without a date are ignored.  Empty input gives zeroed stats.
    """
    valid = sorted((t for t in trades if t.date is not None), key=_sort_key)
    stats = JournalStats(
        valid=valid,
        grades={g: BucketStats() for g in SEEDED_GRADES},
    )
    if not valid:
        return stats

    stats.wins = [t for t in valid if t.outcome == TradeOutcome.WIN]
    stats.losses = [t for t in valid if t.outcome == TradeOutcome.LOSE]
    stats.breakevens = [t for t in valid if t.outcome == TradeOutcome.BREAKEVEN]

    stats.win_rate = _pct(len(stats.wins), len(valid))
    if stats.wins:
        stats.avg_win = round_half_up(
            sum(t.r_value for t in stats.wins) / len(stats.wins), 2
        )
    if stats.losses:
        stats.avg_loss = round_half_up(
            sum(abs(t.r_value) for t in stats.losses) / len(stats.losses), 2
        )
    wr = stats.win_rate / 100
    stats.ev = round_half_up(wr * stats.avg_win - (1 - wr) * stats.avg_loss, 3)

    stats.equity = _equity_curve(valid)
    stats.total_r = round_half_up(sum(t.r_value for t in valid), 2)
    stats.cur_r = stats.equity[-1].cumulative_r
    stats.peak_r = max(p.cumulative_r for p in stats.equity)
    if stats.peak_r > 0:
        stats.drawdown = _pct(stats.peak_r - stats.cur_r, stats.peak_r)

    for trade in valid:
        month_key = trade.date.strftime("%Y-%m")
        if month_key not in stats.monthly:
            stats.monthly[month_key] = MonthStats(label=trade.date.strftime("%b %y"))
        stats.monthly[month_key].record(trade)

        stats.sessions.setdefault(trade.session or UNKNOWN_BUCKET, BucketStats()).record(trade)
        stats.timeframes.setdefault(trade.timeframe or UNKNOWN_BUCKET, BucketStats()).record(trade)
        stats.grades.setdefault(trade.grade or UNKNOWN_BUCKET, BucketStats()).record(trade)
        stats.by_day.setdefault(trade.date.isoformat(), []).append(trade)

    logger.debug(
        "Analyzed %d trades: win_rate=%d%% ev=%.3f cur_r=%.2f",
        len(valid), stats.win_rate, stats.ev, stats.cur_r,
    )
    return stats


# ------------------------------------------------------------------ #
# Windowed equity                                                      #
# ------------------------------------------------------------------ #

def _months_before(day: dt.date, months: int) -> dt.date:
    year, month = divmod(day.year * 12 + (day.month - 1) - months, 12)
    month += 1
    # Clamp to the last day of the target month.
    for candidate in range(day.day, 27, -1):
        try:
            return dt.date(year, month, candidate)
        except ValueError:
            continue
    return dt.date(year, month, min(day.day, 28))


def equity_window(
    stats: JournalStats,
    range_: EquityRange | str = EquityRange.ALL,
    today: dt.date | None = None,
) -> list[EquityPoint]:
    """Equity curve restarted at zero for the last 1 or 3 months.

    ``"all"`` returns ``stats.equity`` unchanged.
    """
    range_ = EquityRange(range_)
    if range_ == EquityRange.ALL:
        return list(stats.equity)
    today = today or dt.date.today()
    months = 1 if range_ == EquityRange.ONE_MONTH else 3
    cutoff = _months_before(today, months)
    return _equity_curve([t for t in stats.valid if t.date >= cutoff])
