"""Trade journal analytics.

Key components
--------------
Trade                 Canonical record every raw journal entry maps onto
normalize_record      Declarative field resolver for loosely-typed records
AutoGrader            Keyword heuristic that grades trade quality
analyze               Aggregate and bucketed statistics (JournalStats)
MonteCarloSimulator   Equity projection with probability of ruin
"""

from .record import Trade, classify_outcome
from .normalizer import FIELD_MAP, FieldRule, Lookup, normalize_record, normalize_records
from .grader import AutoGrader, GradeExplanation
from .analytics import BucketStats, EquityPoint, JournalStats, MonthStats, analyze, equity_window
from .monte_carlo import MonteCarloResult, MonteCarloSimulator

__all__ = [
    "Trade",
    "classify_outcome",
    "FIELD_MAP",
    "FieldRule",
    "Lookup",
    "normalize_record",
    "normalize_records",
    "AutoGrader",
    "GradeExplanation",
    "BucketStats",
    "EquityPoint",
    "JournalStats",
    "MonthStats",
    "analyze",
    "equity_window",
    "MonteCarloResult",
    "MonteCarloSimulator",
]
