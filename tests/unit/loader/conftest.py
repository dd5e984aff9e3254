"""Fixtures for the loader tests: an in-memory gateway."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import pytest

from trading_journal.core.errors import FetchError


class FakeGateway:
    """In-memory :class:`JournalGateway`.

    ``pages`` are served in order, each linked to the next by a cursor.
    ``series`` maps a series id to its observations, or to an exception
    to raise.  ``prices`` is the quote mapping returned by
    ``fetch_prices``, or an exception to raise.
    """

    def __init__(
        self,
        pages: list[list[Any]] | None = None,
        series: Mapping[str, Any] | None = None,
        fail_on_page: int | None = None,
        prices: Mapping[str, Any] | Exception | None = None,
    ) -> None:
        self.pages = pages or [[]]
        self.series = dict(series or {})
        self.fail_on_page = fail_on_page
        self.query_calls: list[str | None] = []
        self.series_calls: list[str] = []
        self.prices = prices if prices is not None else {}
        self.price_calls: list[str] = []

    async def query_trades(self, cursor: str | None = None) -> Mapping[str, Any]:
        self.query_calls.append(cursor)
        index = int(cursor) if cursor else 0
        if self.fail_on_page is not None and index == self.fail_on_page:
            raise FetchError(f"page {index} failed")
        nxt = str(index + 1) if index + 1 < len(self.pages) else None
        return {"results": self.pages[index], "next_cursor": nxt}

    async def fetch_series(self, series_id: str) -> Mapping[str, Any]:
        self.series_calls.append(series_id)
        data = self.series.get(series_id)
        if isinstance(data, Exception):
            raise data
        if data is None:
            raise FetchError(f"unknown series {series_id}")
        return {"observations": data}

    async def fetch_prices(self, source: str) -> Mapping[str, Any]:
        self.price_calls.append(source)
        if isinstance(self.prices, Exception):
            raise self.prices
        return {"source": source, **self.prices}


@pytest.fixture
def fake_gateway_cls():
    return FakeGateway


def monthly_observations(values: list[float], start_year: int = 2023) -> list[dict]:
    """Monthly FRED-style observations starting in January ``start_year``."""
    out = []
    for i, v in enumerate(values):
        year, month = divmod(i, 12)
        out.append({"date": f"{start_year + year}-{month + 1:02d}-01", "value": str(v)})
    return out


@pytest.fixture
def observations():
    return monthly_observations
