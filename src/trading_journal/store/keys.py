"""Fixed store keys shared by the engines and their consumers."""

TRADES = "trades"
JOURNAL_STATS = "journalStats"
MONTE_CARLO = "monteCarlo"
MACRO = "macro"
PRICES = "prices"
AI_CONTEXT = "aiContext"

# Subscribing to the wildcard receives every change on every key.
WILDCARD = "*"

# Notification-only channels (no slice is written).
TRADES_ERROR = "tradesError"
MACRO_ERROR = "macroError"
PRICE_ERROR = "priceError"

# Keys whose empty default is a list rather than a mapping.
_LIST_KEYS = frozenset({TRADES})


def empty_default(key: str) -> list | dict:
    """Return a fresh empty value for ``key``."""
    return [] if key in _LIST_KEYS else {}
