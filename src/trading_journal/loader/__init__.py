"""Loader layer: gateway access and the engines that write the store."""

from .context import build_ai_context, journal_summary, price_summary, render_context
from .engines import MacroEngine, PriceEngine, SimulationEngine, TradeEngine
from .gateway import JournalGateway, WorkerGateway
from .macro import MacroObservation, build_macro_context, parse_observations
from .pagination import paginate
from .prices import PriceQuote, parse_quotes

__all__ = [
    "build_ai_context",
    "journal_summary",
    "price_summary",
    "render_context",
    "MacroEngine",
    "PriceEngine",
    "SimulationEngine",
    "TradeEngine",
    "JournalGateway",
    "WorkerGateway",
    "MacroObservation",
    "build_macro_context",
    "parse_observations",
    "paginate",
    "PriceQuote",
    "parse_quotes",
]
