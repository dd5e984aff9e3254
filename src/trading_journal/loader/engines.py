"""Loader engines: the single writer of the state store.

Each engine fetches through the gateway, runs the pure journal
functions, and writes finished results into the store.  Nothing is
written until a result is complete, so a failed or timed-out fetch
leaves the previous slice and its timestamp untouched.

Usage::

    store = StateStore.create()
    async with WorkerGateway(url, db, token=token) as gateway:
        trades = TradeEngine(store, gateway)
        stats = await trades.load(on_progress=print)
    sim = SimulationEngine(store, MonteCarloSimulator())
    sim.run_from_journal(trade_count=100)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date

from trading_journal.core.clock import IClock, WallClock
from trading_journal.core.config import Settings
from trading_journal.core.errors import FetchError, StoreError
from trading_journal.journal.analytics import JournalStats, analyze
from trading_journal.journal.grader import AutoGrader
from trading_journal.journal.monte_carlo import MonteCarloResult, MonteCarloSimulator
from trading_journal.journal.normalizer import normalize_records
from trading_journal.store import StateStore, keys

from .context import journal_summary
from .gateway import JournalGateway
from .macro import build_macro_context, parse_observations, periods_per_year
from .pagination import paginate
from .prices import PriceQuote, parse_quotes

logger = logging.getLogger(__name__)


class TradeEngine:
    """Loads the trade log and publishes ``trades`` + ``journalStats``.

    Parameters
    ----------
    store:
        Destination store.
    gateway:
        Source of raw trade pages.
    grader:
        Grader applied after normalization.
    ttl_ms:
        Cached slices younger than this are served without fetching.
    timeout:
        Per-page timeout in seconds.
    max_pages:
        Upper bound on followed cursors.
    """

    def __init__(
        self,
        store: StateStore,
        gateway: JournalGateway,
        *,
        grader: AutoGrader | None = None,
        ttl_ms: int = 300_000,
        timeout: float | None = 14.0,
        max_pages: int = 30,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._grader = grader or AutoGrader()
        self._ttl_ms = ttl_ms
        self._timeout = timeout
        self._max_pages = max_pages

    @classmethod
    def from_settings(
        cls, store: StateStore, gateway: JournalGateway, settings: Settings,
    ) -> TradeEngine:
        return cls(
            store,
            gateway,
            ttl_ms=settings.cache.trades_ttl_ms,
            timeout=settings.gateway.timeout_seconds,
            max_pages=settings.gateway.max_pages,
        )

    async def load(
        self,
        *,
        force: bool = False,
        on_progress: Callable[[int], None] | None = None,
    ) -> JournalStats:
        """Fetch, normalize, grade and analyze the trade log.

        Returns the cached stats when the ``trades`` slice is fresh.

        Raises
        ------
        FetchError
            If any page fails.  The store is left unchanged and a
            ``tradesError`` notification is emitted.
        """
        if not force and not self._store.is_stale(keys.TRADES, self._ttl_ms):
            logger.info("Trade cache hit")
            cached = self._store.get(keys.JOURNAL_STATS)
            if isinstance(cached, JournalStats):
                return cached

        try:
            records = await paginate(
                self._gateway.query_trades,
                on_progress=on_progress,
                max_pages=self._max_pages,
                timeout=self._timeout,
            )
        except FetchError as exc:
            logger.warning("Trade load failed: %s", exc)
            self._store.emit(keys.TRADES_ERROR, str(exc))
            raise

        trades = [t for t in normalize_records(records) if t.date is not None]
        trades = self._grader.grade_trades(trades)
        stats = analyze(trades)

        self._store.set(keys.TRADES, stats.valid)
        self._store.set(keys.JOURNAL_STATS, stats)
        self._store.merge(keys.AI_CONTEXT, {"journal": journal_summary(stats)})
        logger.info(
            "Loaded %d trades (%d raw records), win_rate=%d%%",
            stats.total, len(records), stats.win_rate,
        )
        return stats


class MacroEngine:
    """Fetches macro series concurrently and publishes ``macro``.

    Failed series are logged and left out; one failure never aborts
    the batch.  If every series fails the previous slice is kept and a
    ``macroError`` notification is emitted.
    """

    def __init__(
        self,
        store: StateStore,
        gateway: JournalGateway,
        series: list[str],
        *,
        api_key: str = "",
        ttl_ms: int = 3_600_000,
        timeout: float | None = 14.0,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._series = list(series)
        self._api_key = api_key
        self._ttl_ms = ttl_ms
        self._timeout = timeout

    @classmethod
    def from_settings(
        cls, store: StateStore, gateway: JournalGateway, settings: Settings,
    ) -> MacroEngine:
        return cls(
            store,
            gateway,
            settings.macro.series,
            api_key=settings.macro.api_key,
            ttl_ms=settings.cache.macro_ttl_ms,
            timeout=settings.gateway.timeout_seconds,
        )

    async def fetch(self, *, force: bool = False, today: date | None = None) -> dict:
        """Refresh the ``macro`` slice unless it is still fresh."""
        if not force and not self._store.is_stale(keys.MACRO, self._ttl_ms):
            logger.info("Macro cache hit")
            return self._store.get(keys.MACRO)

        if not self._api_key:
            sentinel = {"_error": "No FRED key", "_no_key": True}
            self._store.set(keys.MACRO, sentinel)
            return sentinel

        results = await asyncio.gather(
            *(self._fetch_one(s) for s in self._series),
            return_exceptions=True,
        )

        macro: dict = {}
        failed: list[str] = []
        for series_id, result in zip(self._series, results):
            if isinstance(result, BaseException):
                failed.append(series_id)
                logger.warning("Macro series %s failed: %s", series_id, result)
                continue
            macro[series_id] = result

        if not macro and failed:
            self._store.emit(keys.MACRO_ERROR, f"All {len(failed)} series failed")
            return self._store.get(keys.MACRO)

        macro["_context"] = build_macro_context(macro, as_of=today)
        if failed:
            macro["_failed"] = failed
        self._store.set(keys.MACRO, macro)
        logger.info(
            "Macro loaded: %d series ok, %d failed", len(self._series) - len(failed), len(failed),
        )
        return macro

    async def _fetch_one(self, series_id: str) -> list:
        try:
            data = await asyncio.wait_for(
                self._gateway.fetch_series(series_id), self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise FetchError(f"{series_id} timed out") from exc
        return parse_observations(
            data.get("observations") or [],
            periods_per_year=periods_per_year(series_id),
        )


class PriceEngine:
    """Fetches spot quotes and publishes ``prices``.

    On failure the previous slice is kept and a ``priceError``
    notification carries the message; nothing is raised.
    """

    def __init__(
        self,
        store: StateStore,
        gateway: JournalGateway,
        symbols: list[str],
        *,
        source: str = "exchangerate",
        ttl_ms: int = 300_000,
        timeout: float | None = 14.0,
        clock: IClock | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._symbols = list(symbols)
        self._source = source
        self._ttl_ms = ttl_ms
        self._timeout = timeout
        self._clock = clock or WallClock()

    @classmethod
    def from_settings(
        cls, store: StateStore, gateway: JournalGateway, settings: Settings,
    ) -> PriceEngine:
        return cls(
            store,
            gateway,
            settings.prices.symbols,
            source=settings.prices.source,
            ttl_ms=settings.cache.prices_ttl_ms,
            timeout=settings.gateway.timeout_seconds,
        )

    async def fetch(self, *, force: bool = False) -> dict[str, PriceQuote]:
        """Refresh the ``prices`` slice unless it is still fresh."""
        previous = self._store.get(keys.PRICES)
        if not force and not self._store.is_stale(keys.PRICES, self._ttl_ms):
            logger.info("Price cache hit")
            return previous

        try:
            raw = await asyncio.wait_for(
                self._gateway.fetch_prices(self._source), self._timeout,
            )
        except asyncio.TimeoutError:
            message = f"prices ({self._source}) timed out"
        except FetchError as exc:
            message = str(exc)
        else:
            quotes = parse_quotes(
                raw, previous, self._symbols, now_ms=self._clock.now_ms(),
            )
            self._store.set(keys.PRICES, quotes)
            logger.info(
                "Prices loaded from %s: %d of %d symbols",
                raw.get("source"), len(quotes), len(self._symbols),
            )
            return quotes

        logger.warning("Price fetch failed: %s", message)
        self._store.emit(keys.PRICE_ERROR, message)
        return previous


class SimulationEngine:
    """Runs Monte Carlo projections on demand and publishes ``monteCarlo``."""

    def __init__(self, store: StateStore, simulator: MonteCarloSimulator) -> None:
        self._store = store
        self._simulator = simulator

    def run(
        self,
        win_rate_pct: float,
        avg_win: float,
        avg_loss: float,
        trade_count: int,
        run_count: int | None = None,
    ) -> MonteCarloResult:
        result = self._simulator.simulate(
            win_rate_pct, avg_win, avg_loss, trade_count, run_count,
        )
        self._store.set(keys.MONTE_CARLO, result)
        return result

    def run_from_journal(
        self, trade_count: int, run_count: int | None = None,
    ) -> MonteCarloResult:
        """Simulate with the scalars of the currently loaded journal."""
        stats = self._store.get(keys.JOURNAL_STATS)
        if not isinstance(stats, JournalStats):
            raise StoreError("journalStats not loaded; run TradeEngine.load first")
        return self.run(
            stats.win_rate, stats.avg_win, stats.avg_loss, trade_count, run_count,
        )
