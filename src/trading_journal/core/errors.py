"""Custom exception hierarchy for the trading journal."""


class JournalError(Exception):
    """Base exception for all trading journal errors."""


# --- Configuration ---
class ConfigError(JournalError):
    """Invalid or missing configuration."""


# --- Store ---
class StoreError(JournalError):
    """State store misuse."""


class StoreDisposedError(StoreError):
    """Write attempted on a store after ``dispose()``."""


# --- Simulation ---
class SimulationParameterError(JournalError, ValueError):
    """Monte Carlo parameters outside their valid range."""


# --- Data fetching ---
class FetchError(JournalError):
    """Upstream fetch through the gateway failed or timed out."""


class PaginationError(FetchError):
    """Cursor chain could not be followed."""
