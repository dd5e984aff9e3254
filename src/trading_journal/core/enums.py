"""Enumerations used across the trading journal."""

from enum import Enum


class TradeOutcome(str, Enum):
    """Closed classification of a trade's result label."""

    WIN = "Win"
    LOSE = "Lose"
    BREAKEVEN = "Breakeven"
    UNKNOWN = "Unknown"


class Grade(str, Enum):
    """Trade quality grade, best to worst."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class FieldKind(str, Enum):
    """Declared value-kind of a raw record field."""

    DATE = "date"
    NUMBER = "number"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    RICH_TEXT = "rich_text"
    FILES = "files"
    TITLE = "title"


class StoreOperation(str, Enum):
    SET = "set"
    MERGE = "merge"
    EMIT = "emit"


class EquityRange(str, Enum):
    ALL = "all"
    THREE_MONTHS = "3m"
    ONE_MONTH = "1m"
