"""In-process reactive state store.

Holds one slice per key together with the time it was last written.
Readers call :meth:`StateStore.get`; the single writer (the loader
engines) calls :meth:`StateStore.set` / :meth:`StateStore.merge`, which
stamp the slice and synchronously notify subscribers in registration
order: first the handlers registered for the key, then the wildcard
handlers.  Every handler receives ``(key, value)``.

A failing handler is logged, counted and dead-lettered; the remaining
handlers still run.

Usage::

    store = StateStore.create()
    store.subscribe(keys.TRADES, lambda key, trades: print(len(trades)))
    store.set(keys.TRADES, trades)
    if store.is_stale(keys.TRADES, 300_000):
        ...
    store.dispose()
"""

from __future__ import annotations

import copy
import logging
import time
import uuid
from collections import defaultdict, deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from trading_journal.core.clock import IClock, WallClock
from trading_journal.core.enums import StoreOperation
from trading_journal.core.errors import StoreDisposedError

from .keys import WILDCARD, empty_default

logger = logging.getLogger(__name__)

Handler = Callable[[str, Any], None]


class StoreEvent(BaseModel):
    """Record of one change notification."""

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    key: str
    operation: StoreOperation
    timestamp_ms: int


@dataclass
class StoreDeadLetter:
    """Record of a handler failure."""

    key: str
    handler: str
    error: str
    timestamp: float = field(default_factory=time.monotonic)


class StateStore:
    """Keyed slice holder with freshness tracking and change notification.

    Parameters
    ----------
    initial : Mapping[str, Any] | None
        Initial slices.  They count as never written: no timestamp is
        recorded, so they are stale until the first ``set``/``merge``.
    clock : IClock | None
        Time source for write stamps.  Defaults to :class:`WallClock`.
    on_handler_error : Callable | None
        Called as ``(key, handler_name, exc)`` whenever a handler raises.
    max_history : int
        Number of :class:`StoreEvent` records kept for inspection.
    """

    def __init__(
        self,
        initial: Mapping[str, Any] | None = None,
        *,
        clock: IClock | None = None,
        on_handler_error: Callable[[str, str, Exception], None] | None = None,
        max_history: int = 1000,
    ) -> None:
        self._data: dict[str, Any] = dict(initial or {})
        self._last_updated: dict[str, int] = {}
        self._clock: IClock = clock or WallClock()
        self._handlers: dict[str, list[Handler]] = defaultdict(list)
        self._on_handler_error = on_handler_error
        self._history: deque[StoreEvent] = deque(maxlen=max_history)
        self._disposed = False

        # Observability
        self._error_counts: dict[str, int] = defaultdict(int)
        self._dead_letters: list[StoreDeadLetter] = []

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    @classmethod
    def create(
        cls,
        initial: Mapping[str, Any] | None = None,
        *,
        clock: IClock | None = None,
        on_handler_error: Callable[[str, str, Exception], None] | None = None,
    ) -> StateStore:
        """Build a fresh store."""
        store = cls(initial, clock=clock, on_handler_error=on_handler_error)
        logger.debug("State store created with keys=%s", sorted(store._data))
        return store

    def dispose(self) -> None:
        """Drop all subscriptions and refuse further writes.

        Reads keep working so late consumers can still inspect the
        final state.
        """
        self._handlers.clear()
        self._disposed = True
        logger.debug("State store disposed")

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------ #
    # Read                                                                 #
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Any:
        """Current slice for ``key``, or an empty default."""
        if key in self._data:
            return self._data[key]
        return empty_default(key)

    def keys(self) -> list[str]:
        return list(self._data)

    def last_updated(self, key: str) -> int | None:
        """Epoch-ms of the last write to ``key``, or None."""
        return self._last_updated.get(key)

    def is_stale(self, key: str, max_age_ms: int) -> bool:
        """True if ``key`` was never written or is older than ``max_age_ms``.

        A non-positive ``max_age_ms`` always reports stale.
        """
        ts = self._last_updated.get(key)
        if ts is None or max_age_ms <= 0:
            return True
        return self._clock.now_ms() - ts > max_age_ms

    # ------------------------------------------------------------------ #
    # Write                                                                #
    # ------------------------------------------------------------------ #

    def set(self, key: str, value: Any) -> None:
        """Replace the slice wholesale, stamp it and notify."""
        self._check_writable(key)
        self._data[key] = value
        self._stamp(key)
        self._notify(key, value, StoreOperation.SET)

    def merge(self, key: str, partial: Mapping[str, Any]) -> None:
        """Shallow-merge ``partial`` into a mapping slice, stamp and notify."""
        self._check_writable(key)
        current = self._data.get(key)
        if current is None:
            current = {}
        if not isinstance(current, Mapping):
            raise TypeError(
                f"Cannot merge into slice {key!r} of type "
                f"{type(current).__name__}"
            )
        merged = {**current, **partial}
        self._data[key] = merged
        self._stamp(key)
        self._notify(key, merged, StoreOperation.MERGE)

    def emit(self, channel: str, payload: Any) -> None:
        """Notify subscribers of ``channel`` without writing a slice."""
        self._check_writable(channel)
        self._notify(channel, payload, StoreOperation.EMIT)

    # ------------------------------------------------------------------ #
    # Subscriptions                                                        #
    # ------------------------------------------------------------------ #

    def subscribe(self, key: str, handler: Handler) -> None:
        """Register ``handler`` for ``key`` (or :data:`WILDCARD`)."""
        self._handlers[key].append(handler)

    def unsubscribe(self, key: str, handler: Handler) -> None:
        """Remove every registration of ``handler`` for ``key``."""
        handlers = self._handlers.get(key)
        if not handlers:
            return
        self._handlers[key] = [h for h in handlers if h != handler]

    def subscriber_count(self, key: str) -> int:
        return len(self._handlers.get(key, []))

    # ------------------------------------------------------------------ #
    # Observability                                                        #
    # ------------------------------------------------------------------ #

    def get_error_counts(self) -> dict[str, int]:
        """Return per-key handler error counts."""
        return dict(self._error_counts)

    @property
    def dead_letters(self) -> list[StoreDeadLetter]:
        """Snapshot of recorded handler failures."""
        return list(self._dead_letters)

    def get_history(self, key: str | None = None) -> list[StoreEvent]:
        """Change events, optionally filtered by key."""
        if key is None:
            return list(self._history)
        return [e for e in self._history if e.key == key]

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of every slice, for debugging and export."""
        return copy.deepcopy(self._data)

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _check_writable(self, key: str) -> None:
        if self._disposed:
            raise StoreDisposedError(f"Store disposed; cannot write {key!r}")

    def _stamp(self, key: str) -> None:
        self._last_updated[key] = self._clock.now_ms()

    def _notify(self, key: str, value: Any, operation: StoreOperation) -> None:
        self._history.append(
            StoreEvent(
                key=key,
                operation=operation,
                timestamp_ms=self._clock.now_ms(),
            )
        )
        # Copy the lists so handlers may (un)subscribe while being notified.
        targets = list(self._handlers.get(key, []))
        if key != WILDCARD:
            targets += self._handlers.get(WILDCARD, [])

        for handler in targets:
            try:
                handler(key, value)
            except Exception as exc:
                name = getattr(handler, "__qualname__", repr(handler))
                self._error_counts[key] += 1
                self._dead_letters.append(
                    StoreDeadLetter(key=key, handler=name, error=str(exc))
                )
                logger.exception(
                    "Store handler error on key=%s handler=%s", key, name,
                )
                if self._on_handler_error is not None:
                    try:
                        self._on_handler_error(key, name, exc)
                    except Exception:
                        logger.warning(
                            "on_handler_error callback failed",
                            exc_info=True,
                        )
