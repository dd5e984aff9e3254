"""Shared fixtures for the trading-journal test suite."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest
import structlog

from trading_journal.core.clock import ManualClock
from trading_journal.core.enums import TradeOutcome
from trading_journal.journal.monte_carlo import MonteCarloSimulator
from trading_journal.journal.record import Trade
from trading_journal.store import StateStore


# ---------------------------------------------------------------------------
# Clock / store
# ---------------------------------------------------------------------------

@pytest.fixture
def manual_clock() -> ManualClock:
    """Deterministic clock starting at 2024-01-01 00:00 UTC."""
    return ManualClock(datetime(2024, 1, 1, tzinfo=timezone.utc))


@pytest.fixture
def restore_root_logger():
    """Drop handlers installed by setup_logging and restore the root level."""
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def store(manual_clock) -> StateStore:
    """Fresh store driven by the manual clock."""
    s = StateStore.create(clock=manual_clock)
    yield s
    s.dispose()


# ---------------------------------------------------------------------------
# Trades
# ---------------------------------------------------------------------------

@pytest.fixture
def make_trade():
    """Factory for canonical trades.

    ``make_trade(1.5)`` gives a dated win; a negative R gives a loss and
    zero gives a breakeven unless ``outcome`` says otherwise.
    """
    counter = {"n": 0}

    def _make(
        r: float | None = 1.0,
        *,
        day: date | None = date(2024, 3, 1),
        outcome: TradeOutcome | None = None,
        **fields,
    ) -> Trade:
        counter["n"] += 1
        if outcome is None:
            if r is None or r == 0:
                outcome = TradeOutcome.BREAKEVEN
            else:
                outcome = TradeOutcome.WIN if r > 0 else TradeOutcome.LOSE
        fields.setdefault("id", f"t{counter['n']:03d}")
        return Trade(date=day, outcome=outcome, r_multiple=r, **fields)

    return _make


@pytest.fixture
def ten_trade_journal(make_trade) -> list[Trade]:
    """Four 1R losses then six 1.5R wins, one per day from 2024-03-01."""
    start = date(2024, 3, 1)
    rs = [-1.0] * 4 + [1.5] * 6
    return [make_trade(r, day=start + timedelta(days=i)) for i, r in enumerate(rs)]


# ---------------------------------------------------------------------------
# Raw records
# ---------------------------------------------------------------------------

@pytest.fixture
def raw_record():
    """Factory for raw database records in the worker's property format."""

    def _make(
        record_id: str = "rec-1",
        *,
        day: str | None = "2024-03-01",
        pair: str | None = "EURUSD",
        result: str | None = "Win",
        r: float | None = 1.5,
        session: str | None = "London KZ",
        timeframe: str | None = "M5",
        tags: list[str] | None = None,
        comment: str | None = None,
        grade: str | None = None,
        extra: dict | None = None,
    ) -> dict:
        props: dict = {}
        if day is not None:
            props["Date"] = {"type": "date", "date": {"start": day}}
        if pair is not None:
            props["Pair"] = {"type": "select", "select": {"name": pair}}
        if result is not None:
            props["Result"] = {"type": "select", "select": {"name": result}}
        if r is not None:
            props["R Multiple"] = {"type": "number", "number": r}
        if session is not None:
            props["Session"] = {"type": "select", "select": {"name": session}}
        if timeframe is not None:
            props["Entry TF"] = {"type": "select", "select": {"name": timeframe}}
        if tags is not None:
            props["Confluences"] = {
                "type": "multi_select",
                "multi_select": [{"name": t} for t in tags],
            }
        if comment is not None:
            props["Comment"] = {
                "type": "rich_text",
                "rich_text": [{"plain_text": comment}],
            }
        if grade is not None:
            props["Grade"] = {"type": "select", "select": {"name": grade}}
        props.update(extra or {})
        return {"id": record_id, "properties": props}

    return _make


# ---------------------------------------------------------------------------
# Simulator
# ---------------------------------------------------------------------------

@pytest.fixture
def simulator() -> MonteCarloSimulator:
    """Seeded simulator with the default floor and percentiles."""
    return MonteCarloSimulator(seed=42)
