"""Rule-based trade quality grading.

Infers an ``A+`` / ``B`` / ``C`` grade from a trade's confluence tags and
free-text comment.  A grade the trader recorded explicitly always wins
and is returned untouched, including grades the heuristic never
produces (``A``, ``D``, ``F``).

Three keyword sets drive the heuristic:

    STRONG   structural / price-action setup terms   tags + comment
    QUALITY  execution-discipline terms              comment only
    WEAK     emotional / undisciplined terms         comment only

Each distinct keyword counts once no matter how often it appears.
Keywords of four characters or fewer (abbreviations such as ``bos`` or
``fvg``) must match as whole words; longer ones match as word prefixes
so ``sweep`` also catches ``sweeps``.

Usage::

    grader = AutoGrader()
    grader.grade(trade)            # "A+"
    grader.explain(trade).strong   # ["displacement", "order block", "sweep"]
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from trading_journal.core.enums import Grade

from .record import Trade

logger = logging.getLogger(__name__)

EXPLICIT_GRADES = frozenset(g.value for g in Grade)

STRONG_KEYWORDS: tuple[str, ...] = (
    "order block",
    "breaker",
    "sweep",
    "liquidity grab",
    "liquidity raid",
    "displacement",
    "break of structure",
    "bos",
    "choch",
    "change of character",
    "market structure shift",
    "mss",
    "fair value gap",
    "fvg",
    "imbalance",
    "htf bias",
    "higher time frame",
    "higher timeframe",
    "cisd",
    "smt",
    "institutional",
    "ote",
    "kill zone",
    "killzone",
)

QUALITY_KEYWORDS: tuple[str, ...] = (
    "patient",
    "patience",
    "confirmed",
    "textbook",
    "as expected",
    "followed plan",
    "followed the plan",
    "according to plan",
    "waited",
    "disciplined",
    "clean entry",
    "perfect entry",
)

WEAK_KEYWORDS: tuple[str, ...] = (
    "fomo",
    "revenge",
    "impulsive",
    "chased",
    "chasing",
    "overtrad",
    "bored",
    "greed",
    "gambl",
    "tilt",
    "rushed",
    "forced",
    "hesitat",
    "early entry",
    "no confirmation",
    "didn't wait",
    "didnt wait",
)


def _compile(keywords: Iterable[str]) -> tuple[tuple[str, re.Pattern[str]], ...]:
    compiled = []
    for kw in keywords:
        tail = r"\b" if len(kw) <= 4 else ""
        compiled.append((kw, re.compile(r"\b" + re.escape(kw) + tail)))
    return tuple(compiled)


_STRONG = _compile(STRONG_KEYWORDS)
_QUALITY = _compile(QUALITY_KEYWORDS)
_WEAK = _compile(WEAK_KEYWORDS)


def _matches(patterns: tuple[tuple[str, re.Pattern[str]], ...], text: str) -> list[str]:
    return sorted(kw for kw, pattern in patterns if pattern.search(text))


@dataclass
class GradeExplanation:
    """Why a trade received its grade.  Display only."""

    grade: str
    explicit: bool
    rule: str
    tag_count: int = 0
    strong: list[str] = field(default_factory=list)
    quality: list[str] = field(default_factory=list)
    weak: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "grade": self.grade,
            "explicit": self.explicit,
            "rule": self.rule,
            "tag_count": self.tag_count,
            "strong": list(self.strong),
            "quality": list(self.quality),
            "weak": list(self.weak),
        }


class AutoGrader:
    """Keyword heuristic grader.

    Stateless; one instance can grade any number of trades.
    """

    def grade(self, trade: Trade) -> str:
        """Return the explicit grade if valid, otherwise infer one."""
        return self.explain(trade).grade

    def explain(self, trade: Trade) -> GradeExplanation:
        """Grade ``trade`` and report which rule and keywords fired."""
        if trade.grade in EXPLICIT_GRADES:
            return GradeExplanation(
                grade=trade.grade, explicit=True, rule="explicit grade",
            )

        tags = [t for t in trade.confluences if t]
        comment = (trade.comment or "").lower()
        combined = " ".join([*(t.lower() for t in tags), comment])

        strong = _matches(_STRONG, combined)
        quality = _matches(_QUALITY, comment)
        weak = _matches(_WEAK, comment)
        grade, rule = self._decide(len(tags), len(strong), len(quality), len(weak))

        return GradeExplanation(
            grade=grade,
            explicit=False,
            rule=rule,
            tag_count=len(tags),
            strong=strong,
            quality=quality,
            weak=weak,
        )

    @staticmethod
    def _decide(tags: int, strong: int, quality: int, weak: int) -> tuple[str, str]:
        # First matching rule wins.
        if weak >= 2:
            return Grade.C.value, "two or more undisciplined keywords"
        if strong >= 3 or (strong >= 2 and quality >= 1):
            return Grade.A_PLUS.value, "strong setup confluence"
        if strong >= 2 or (tags >= 3 and quality >= 1):
            return Grade.A_PLUS.value, "confluence with disciplined execution"
        if strong >= 1 and tags >= 2:
            return Grade.B.value, "structural setup with supporting tags"
        if tags >= 2 and weak == 0:
            return Grade.B.value, "multiple confluences, no red flags"
        if tags >= 1 or quality >= 1:
            return Grade.C.value, "minimal confluence"
        return Grade.C.value, "no confluence recorded"

    def grade_trades(self, trades: Iterable[Trade]) -> list[Trade]:
        """Return graded copies of ``trades``; inputs are not modified."""
        graded = [t.with_grade(self.grade(t)) for t in trades]
        logger.debug("Graded %d trades", len(graded))
        return graded


_DEFAULT = AutoGrader()


def grade(trade: Trade) -> str:
    """Module-level shortcut for :meth:`AutoGrader.grade`."""
    return _DEFAULT.grade(trade)


def explain(trade: Trade) -> GradeExplanation:
    """Module-level shortcut for :meth:`AutoGrader.explain`."""
    return _DEFAULT.explain(trade)
