"""Canonical trade record — the core data model.

A :class:`Trade` is what every raw journal entry is normalized into,
whatever the shape of the source database.  Fields the source does not
provide stay ``None`` (or empty for list fields); nothing here raises
on missing data.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace

from trading_journal.core.enums import TradeOutcome


def classify_outcome(label: str | None) -> TradeOutcome:
    """Map a free-form result label onto :class:`TradeOutcome`.

    This is the only place outcome semantics are defined.  Checks run in
    order on the lowercased label: ``"win"`` → WIN, ``"los"`` → LOSE,
    ``"break"`` or ``"be"`` → BREAKEVEN, anything else → UNKNOWN.
    """
    if not label:
        return TradeOutcome.UNKNOWN
    text = label.lower()
    if "win" in text:
        return TradeOutcome.WIN
    if "los" in text:
        return TradeOutcome.LOSE
    if "break" in text or "be" in text:
        return TradeOutcome.BREAKEVEN
    return TradeOutcome.UNKNOWN


@dataclass
class Trade:
    """One journaled trade.

    Parameters
    ----------
    id : str
        Source record identifier.
    date : datetime.date | None
        Trade date.  Trades without one never enter statistics.
    outcome : TradeOutcome
        Classified result; ``outcome_raw`` keeps the source label.
    r_multiple : float | None
        Signed result in units of initial risk.  ``None`` adds nothing
        to sums but the trade still counts.
    grade : str | None
        ``A+``/``A``/``B``/``C``/``D``/``F``; ``None`` until graded.
    """

    id: str = ""
    date: dt.date | None = None
    pair: str | None = None
    direction: str | None = None
    outcome: TradeOutcome = TradeOutcome.UNKNOWN
    outcome_raw: str | None = None
    r_multiple: float | None = None
    grade: str | None = None
    session: str | None = None
    htf_context: str | None = None
    timeframe: str | None = None
    comment: str | None = None
    confluences: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    @property
    def is_win(self) -> bool:
        return self.outcome == TradeOutcome.WIN

    @property
    def r_value(self) -> float:
        """R contribution to sums (missing counts as 0)."""
        return self.r_multiple or 0.0

    def with_grade(self, grade: str) -> Trade:
        """Copy of this trade carrying ``grade``."""
        return replace(
            self,
            grade=grade,
            confluences=list(self.confluences),
            images=list(self.images),
        )

    def to_dict(self) -> dict:
        """Export to a flat dictionary for logging / storage."""
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "pair": self.pair,
            "direction": self.direction,
            "outcome": self.outcome.value,
            "outcome_raw": self.outcome_raw,
            "r_multiple": self.r_multiple,
            "grade": self.grade,
            "session": self.session,
            "htf_context": self.htf_context,
            "timeframe": self.timeframe,
            "comment": self.comment,
            "confluences": list(self.confluences),
            "images": list(self.images),
        }
