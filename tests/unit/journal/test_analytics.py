"""Test journal statistics and the windowed equity curve."""

import json
import math
from datetime import date, timedelta

import pytest

from trading_journal.core.enums import EquityRange, TradeOutcome
from trading_journal.journal.analytics import (
    UNKNOWN_BUCKET,
    analyze,
    equity_window,
    round_half_up,
)


class TestRounding:
    def test_half_goes_away_from_zero(self):
        assert round_half_up(0.5) == 1.0
        assert round_half_up(2.5) == 3.0
        assert round_half_up(-0.5) == -1.0

    def test_decimal_places(self):
        assert round_half_up(2.675, 2) == 2.68
        assert round_half_up(0.4999999999999999, 3) == 0.5

    def test_negative_zero_is_normalized(self):
        assert math.copysign(1.0, round_half_up(-0.0, 3)) == 1.0
        assert math.copysign(1.0, round_half_up(-0.0001, 2)) == 1.0


class TestTenTradeScenario:
    def test_headline_numbers(self, ten_trade_journal):
        stats = analyze(ten_trade_journal)
        assert stats.total == 10
        assert len(stats.wins) == 6
        assert len(stats.losses) == 4
        assert stats.win_rate == 60
        assert stats.avg_win == 1.5
        assert stats.avg_loss == 1.0
        assert stats.ev == 0.5
        assert stats.cur_r == 5.0
        assert stats.total_r == 5.0
        assert stats.peak_r == 5.0
        assert stats.drawdown == 0

    def test_equity_curve(self, ten_trade_journal):
        stats = analyze(ten_trade_journal)
        assert [p.cumulative_r for p in stats.equity] == [
            -1.0, -2.0, -3.0, -4.0, -2.5, -1.0, 0.5, 2.0, 3.5, 5.0,
        ]
        assert stats.equity[0].date == date(2024, 3, 1)

    def test_drawdown_when_wins_come_first(self, make_trade):
        start = date(2024, 3, 1)
        rs = [1.5] * 6 + [-1.0] * 4
        trades = [make_trade(r, day=start + timedelta(days=i)) for i, r in enumerate(rs)]
        stats = analyze(trades)
        assert stats.peak_r == 9.0
        assert stats.cur_r == 5.0
        assert stats.drawdown == 44

    def test_monthly_bucket(self, ten_trade_journal):
        month = analyze(ten_trade_journal).monthly["2024-03"]
        assert month.label == "Mar 24"
        assert month.wins == 6
        assert month.losses == 4
        assert month.total == 10
        assert month.r == pytest.approx(5.0)
        assert month.win_rate == 60


class TestEdgeCases:
    def test_empty_input(self):
        stats = analyze([])
        assert stats.total == 0
        assert stats.win_rate == 0
        assert stats.avg_win == 0.0
        assert stats.avg_loss == 0.0
        assert stats.ev == 0.0
        assert stats.equity == []
        assert stats.drawdown == 0
        assert set(stats.grades) == {"A+", "B", "C"}

    def test_dateless_trades_excluded(self, make_trade):
        trades = [make_trade(2.0), make_trade(5.0, day=None)]
        stats = analyze(trades)
        assert stats.total == 1
        assert stats.cur_r == 2.0

    def test_only_losses_has_no_drawdown(self, make_trade):
        stats = analyze([make_trade(-1.0), make_trade(-2.0)])
        assert stats.peak_r == -1.0
        assert stats.drawdown == 0
        assert stats.win_rate == 0
        assert stats.avg_loss == 1.5
        assert stats.ev == -1.5

    def test_missing_r_counts_as_zero(self, make_trade):
        trades = [make_trade(None, outcome=TradeOutcome.WIN), make_trade(2.0)]
        stats = analyze(trades)
        assert stats.win_rate == 100
        assert stats.avg_win == 1.0
        assert stats.cur_r == 2.0

    def test_breakeven_and_unknown_count_in_total_only(self, make_trade):
        trades = [
            make_trade(1.0),
            make_trade(0.0),
            make_trade(None, outcome=TradeOutcome.UNKNOWN),
            make_trade(-1.0),
        ]
        stats = analyze(trades)
        assert stats.total == 4
        assert len(stats.breakevens) == 1
        assert stats.win_rate == 25

    def test_ev_is_positive_zero_without_wins_or_losses(self, make_trade):
        trades = [make_trade(0.0), make_trade(None, outcome=TradeOutcome.UNKNOWN)]
        stats = analyze(trades)
        assert stats.ev == 0.0
        assert math.copysign(1.0, stats.ev) == 1.0
        assert "-0.0" not in json.dumps(stats.to_dict())

    def test_order_independent(self, ten_trade_journal):
        forward = analyze(ten_trade_journal).to_dict(include_trades=True)
        backward = analyze(list(reversed(ten_trade_journal))).to_dict(include_trades=True)
        assert forward == backward

    def test_idempotent(self, ten_trade_journal):
        assert analyze(ten_trade_journal).to_dict() == analyze(ten_trade_journal).to_dict()

    def test_input_not_mutated(self, ten_trade_journal):
        ids = [t.id for t in ten_trade_journal]
        analyze(list(reversed(ten_trade_journal)))
        assert [t.id for t in ten_trade_journal] == ids


class TestBuckets:
    def test_unknown_buckets(self, make_trade):
        stats = analyze([make_trade(1.0)])
        assert stats.sessions[UNKNOWN_BUCKET].total == 1
        assert stats.timeframes[UNKNOWN_BUCKET].total == 1
        assert stats.grades[UNKNOWN_BUCKET].total == 1

    def test_seeded_grades_present_at_zero(self, make_trade):
        stats = analyze([make_trade(1.0, grade="A")])
        assert stats.grades["A+"].total == 0
        assert stats.grades["B"].total == 0
        assert stats.grades["C"].total == 0
        assert stats.grades["A"].wins == 1

    def test_session_win_rates(self, make_trade):
        trades = [
            make_trade(1.0, session="London KZ"),
            make_trade(-1.0, session="London KZ"),
            make_trade(2.0, session="NY KZ"),
        ]
        stats = analyze(trades)
        assert stats.sessions["London KZ"].to_dict() == {"wins": 1, "total": 2, "win_rate": 50}
        assert stats.sessions["NY KZ"].win_rate == 100

    def test_monthly_keys_and_labels(self, make_trade):
        trades = [
            make_trade(1.0, day=date(2023, 12, 30)),
            make_trade(-1.0, day=date(2024, 1, 2)),
        ]
        stats = analyze(trades)
        assert list(stats.monthly) == ["2023-12", "2024-01"]
        assert stats.monthly["2023-12"].label == "Dec 23"
        assert stats.monthly["2024-01"].losses == 1

    def test_by_day(self, make_trade):
        trades = [make_trade(1.0), make_trade(-1.0), make_trade(1.0, day=date(2024, 3, 2))]
        stats = analyze(trades)
        assert len(stats.by_day["2024-03-01"]) == 2
        assert len(stats.by_day["2024-03-02"]) == 1


class TestEquityWindow:
    @pytest.fixture
    def stats(self, make_trade):
        trades = [
            make_trade(1.0, day=date(2024, 1, 10)),
            make_trade(2.0, day=date(2024, 2, 20)),
            make_trade(-1.0, day=date(2024, 3, 10)),
        ]
        return analyze(trades)

    def test_all_is_full_curve(self, stats):
        assert equity_window(stats, EquityRange.ALL) == stats.equity

    def test_one_month_restarts_at_zero(self, stats):
        points = equity_window(stats, "1m", today=date(2024, 3, 15))
        assert [p.cumulative_r for p in points] == [2.0, 1.0]

    def test_three_months(self, stats):
        points = equity_window(stats, EquityRange.THREE_MONTHS, today=date(2024, 3, 15))
        assert len(points) == 3

    def test_month_end_clamp(self, make_trade):
        stats = analyze([
            make_trade(1.0, day=date(2024, 2, 28)),
            make_trade(1.0, day=date(2024, 2, 29)),
        ])
        points = equity_window(stats, "1m", today=date(2024, 3, 31))
        assert [p.date for p in points] == [date(2024, 2, 29)]
