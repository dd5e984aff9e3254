"""Structured context for the AI assistant.

The assistant never sees raw trades or raw series, only these summaries.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from trading_journal.journal.analytics import JournalStats
from trading_journal.store import StateStore, keys

from .macro import UNKNOWN
from .prices import PriceQuote

_MACRO_FIELDS = (
    "fed_rate",
    "cpi_yoy",
    "core_cpi_yoy",
    "nfp_mom",
    "unemployment",
    "gdp_qoq",
    "as_of",
)

# Display precision per symbol.
_PRICE_PLACES = {"EURUSD": 5, "GBPUSD": 5, "XAUUSD": 2, "DXY": 3}


def journal_summary(stats: JournalStats | None) -> dict[str, Any]:
    """Headline journal numbers; zeros when nothing is loaded."""
    if not isinstance(stats, JournalStats):
        stats = JournalStats()
    return {
        "total_trades": stats.total,
        "win_rate": stats.win_rate,
        "avg_win": stats.avg_win,
        "avg_loss": stats.avg_loss,
        "ev": stats.ev,
        "total_r": stats.cur_r,
        "peak_r": stats.peak_r,
        "drawdown": stats.drawdown,
    }


def price_summary(prices: Any) -> dict[str, str]:
    """Formatted price per display symbol, ``unknown`` when missing."""
    if not isinstance(prices, Mapping):
        prices = {}
    out = {}
    for symbol, places in _PRICE_PLACES.items():
        quote = prices.get(symbol)
        out[symbol] = f"{quote.price:.{places}f}" if isinstance(quote, PriceQuote) else UNKNOWN
    return out


def build_ai_context(store: StateStore) -> dict[str, Any]:
    """Assemble macro, price and journal context and write it to ``aiContext``."""
    macro = store.get(keys.MACRO).get("_context") or {}
    ctx = {
        "macro": {name: macro.get(name) or UNKNOWN for name in _MACRO_FIELDS},
        "prices": price_summary(store.get(keys.PRICES)),
        "journal": journal_summary(store.get(keys.JOURNAL_STATS)),
    }
    store.set(keys.AI_CONTEXT, ctx)
    return ctx


def render_context(ctx: dict[str, Any]) -> str:
    """One-paragraph text form of the context, prepended to questions."""
    m = ctx["macro"]
    p = ctx.get("prices") or price_summary(None)
    j = ctx["journal"]
    return (
        "Live data context:\n"
        f"Macro: Fed {m['fed_rate']} · CPI {m['cpi_yoy']} · Core {m['core_cpi_yoy']}"
        f" · NFP {m['nfp_mom']} · Unemployment {m['unemployment']}"
        f" · GDP {m['gdp_qoq']} (as of {m['as_of']})\n"
        f"Prices: EUR/USD {p['EURUSD']} · GBP/USD {p['GBPUSD']}"
        f" · XAU/USD {p['XAUUSD']} · DXY {p['DXY']}\n"
        f"Journal: {j['total_trades']} trades · {j['win_rate']}% WR"
        f" · +{j['avg_win']}R avg win · -{j['avg_loss']}R avg loss"
        f" · EV {j['ev']}R · Total {j['total_r']}R"
    )
