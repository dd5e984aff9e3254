"""Trading journal core: store, normalizer, grader, analytics, simulator."""

__version__ = "0.1.0"
