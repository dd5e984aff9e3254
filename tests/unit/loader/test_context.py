"""Test the AI assistant context built from the store."""

from trading_journal.journal.analytics import analyze
from trading_journal.loader.context import (
    build_ai_context,
    journal_summary,
    price_summary,
    render_context,
)
from trading_journal.loader.prices import parse_quotes
from trading_journal.store import keys


class TestJournalSummary:
    def test_zeros_without_stats(self):
        summary = journal_summary(None)
        assert summary["total_trades"] == 0
        assert summary["ev"] == 0.0

    def test_from_stats(self, ten_trade_journal):
        summary = journal_summary(analyze(ten_trade_journal))
        assert summary == {
            "total_trades": 10,
            "win_rate": 60,
            "avg_win": 1.5,
            "avg_loss": 1.0,
            "ev": 0.5,
            "total_r": 5.0,
            "peak_r": 5.0,
            "drawdown": 0,
        }


class TestBuildAiContext:
    def test_unknown_macro_when_not_loaded(self, store):
        ctx = build_ai_context(store)
        assert ctx["macro"]["fed_rate"] == "unknown"
        assert store.get(keys.AI_CONTEXT) is ctx

    def test_combines_macro_and_journal(self, store, ten_trade_journal):
        store.set(keys.MACRO, {"_context": {"fed_rate": "5.33%", "as_of": "2024-03-01"}})
        store.set(keys.JOURNAL_STATS, analyze(ten_trade_journal))

        ctx = build_ai_context(store)

        assert ctx["macro"]["fed_rate"] == "5.33%"
        assert ctx["macro"]["cpi_yoy"] == "unknown"
        assert ctx["journal"]["total_trades"] == 10

    def test_no_key_sentinel_is_unknown(self, store):
        store.set(keys.MACRO, {"_error": "No FRED key", "_no_key": True})
        assert build_ai_context(store)["macro"]["as_of"] == "unknown"

    def test_render(self, store, ten_trade_journal):
        store.set(keys.JOURNAL_STATS, analyze(ten_trade_journal))
        text = render_context(build_ai_context(store))
        assert text.startswith("Live data context:")
        assert "10 trades" in text
        assert "60% WR" in text
        assert "Prices: EUR/USD unknown · GBP/USD unknown · XAU/USD unknown · DXY unknown" in text

    def test_render_with_prices(self, store):
        store.set(keys.PRICES, parse_quotes(
            {"EURUSD": 1.0845, "GBPUSD": 1.271, "XAUUSD": 2031.5, "DXY": 104.2},
            {}, ["EURUSD", "GBPUSD", "DXY", "XAUUSD"], now_ms=0,
        ))
        lines = render_context(build_ai_context(store)).splitlines()
        assert lines[2] == "Prices: EUR/USD 1.08450 · GBP/USD 1.27100 · XAU/USD 2031.50 · DXY 104.200"
        assert lines[1].startswith("Macro:")
        assert lines[3].startswith("Journal:")

    def test_render_without_prices_block(self, ten_trade_journal):
        ctx = {
            "macro": {name: "unknown" for name in (
                "fed_rate", "cpi_yoy", "core_cpi_yoy", "nfp_mom", "unemployment", "gdp_qoq", "as_of",
            )},
            "journal": journal_summary(analyze(ten_trade_journal)),
        }
        assert "DXY unknown" in render_context(ctx)


class TestPriceSummary:
    def test_precision_per_symbol(self):
        prices = parse_quotes(
            {"EURUSD": 1.08, "GBPUSD": "1.2", "XAUUSD": 2031.5, "DXY": 104},
            {}, ["EURUSD", "GBPUSD", "DXY", "XAUUSD"], now_ms=0,
        )
        assert price_summary(prices) == {
            "EURUSD": "1.08000",
            "GBPUSD": "1.20000",
            "XAUUSD": "2031.50",
            "DXY": "104.000",
        }

    def test_unknown_when_missing(self):
        prices = parse_quotes({"EURUSD": 1.08}, {}, ["EURUSD"], now_ms=0)
        summary = price_summary(prices)
        assert summary["EURUSD"] == "1.08000"
        assert summary["GBPUSD"] == summary["XAUUSD"] == summary["DXY"] == "unknown"

    def test_not_loaded(self):
        assert set(price_summary({}).values()) == {"unknown"}
        assert set(price_summary(None).values()) == {"unknown"}

    def test_context_has_prices_block(self, store):
        ctx = build_ai_context(store)
        assert ctx["prices"] == {"EURUSD": "unknown", "GBPUSD": "unknown", "XAUUSD": "unknown", "DXY": "unknown"}
