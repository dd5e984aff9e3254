"""Reactive in-process state store."""

from . import keys
from .state_store import StateStore, StoreDeadLetter, StoreEvent

__all__ = ["StateStore", "StoreDeadLetter", "StoreEvent", "keys"]
