"""Spot price quotes for the instruments the journal trades.

The worker answers ``?action=prices`` with one flat mapping::

    {"source": "exchangerate", "EURUSD": 1.0845, "GBPUSD": "1.2710", ...}

Quotes may be numbers or numeric strings.  Missing, zero or
non-numeric quotes are dropped rather than published.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from trading_journal.journal.analytics import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceQuote:
    """One symbol's latest price and its move since the previous fetch."""

    symbol: str
    price: float
    prev: float | None = None
    change: float = 0.0
    change_pct: float = 0.0
    source: str | None = None
    ts_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "price": self.price,
            "prev": self.prev,
            "change": self.change,
            "change_pct": self.change_pct,
            "source": self.source,
            "ts_ms": self.ts_ms,
        }


def _quote_value(raw: Any) -> float | None:
    if not raw or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) and value else None


def parse_quotes(
    raw: Mapping[str, Any],
    previous: Mapping[str, Any] | None,
    symbols: Iterable[str],
    *,
    now_ms: int,
) -> dict[str, PriceQuote]:
    """Build the ``prices`` slice from a worker response.

    ``previous`` is the slice currently in the store; its prices become
    the ``prev`` of the new quotes.  A symbol without a previous price
    gets zero change.
    """
    previous = previous or {}
    source = raw.get("source")
    quotes: dict[str, PriceQuote] = {}
    for symbol in symbols:
        price = _quote_value(raw.get(symbol))
        if price is None:
            logger.debug("No usable %s quote in %r", symbol, raw.get(symbol))
            continue
        prior = previous.get(symbol)
        prev = prior.price if isinstance(prior, PriceQuote) else None
        change = change_pct = 0.0
        if prev is not None:
            change = round_half_up(price - prev, 6)
            if prev:
                change_pct = round_half_up((price - prev) / prev * 100, 4)
        quotes[symbol] = PriceQuote(
            symbol=symbol,
            price=price,
            prev=prev,
            change=change,
            change_pct=change_pct,
            source=source if isinstance(source, str) else None,
            ts_ms=now_ms,
        )
    return quotes
