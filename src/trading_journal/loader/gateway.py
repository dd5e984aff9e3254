"""Gateway boundary between the engines and the outside world.

The engines only depend on :class:`JournalGateway`.  :class:`WorkerGateway`
is the HTTP implementation that talks to the proxy worker fronting the
trade database, the macro-data source and the price feed.

Worker protocol (GET, JSON responses)::

    ?action=query&db=<id>[&cursor=<c>]   -> {"results": [...], "next_cursor": "..."}
    ?action=fred&series=<id>             -> {"observations": [...]}
    ?action=prices&source=<s>            -> {"source": "...", "EURUSD": 1.08, ...}

Any response with a non-2xx status or an ``error`` field is a failure.
The database token only ever travels in the ``X-Notion-Token`` header,
never in the URL.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import httpx

from trading_journal.core.errors import FetchError

logger = logging.getLogger(__name__)


class JournalGateway(Protocol):
    """What the engines need from the network."""

    async def query_trades(self, cursor: str | None = None) -> Mapping[str, Any]:
        """One page of raw trade records plus the next cursor."""
        ...

    async def fetch_series(self, series_id: str) -> Mapping[str, Any]:
        """Observations of one macro series."""
        ...

    async def fetch_prices(self, source: str) -> Mapping[str, Any]:
        """Latest quote per symbol, tagged with the feed that served it."""
        ...


class WorkerGateway:
    """httpx-based :class:`JournalGateway` against the proxy worker.

    Parameters
    ----------
    worker_url:
        Base URL of the worker.
    trades_db:
        Identifier of the trade database.
    token:
        Database token, sent as ``X-Notion-Token``.
    fred_key:
        Macro-data API key, sent inside ``X-Api-Keys``.
    td_key:
        Live price-feed API key, sent inside ``X-Api-Keys``.
    timeout:
        HTTP request timeout in seconds.
    """

    def __init__(
        self,
        worker_url: str,
        trades_db: str,
        *,
        token: str = "",
        fred_key: str = "",
        td_key: str = "",
        timeout: float = 14.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = worker_url
        self._trades_db = trades_db
        self._token = token
        self._fred_key = fred_key
        self._td_key = td_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    # -- Lifecycle -----------------------------------------------------------

    async def open(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                transport=self._transport,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> WorkerGateway:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -- Actions -------------------------------------------------------------

    async def query_trades(self, cursor: str | None = None) -> Mapping[str, Any]:
        if not self._token:
            raise FetchError("No database token configured")
        params = {"action": "query", "db": self._trades_db}
        if cursor:
            params["cursor"] = cursor
        return await self._get(params, {"X-Notion-Token": self._token})

    async def fetch_series(self, series_id: str) -> Mapping[str, Any]:
        return await self._get({"action": "fred", "series": series_id}, {})

    async def fetch_prices(self, source: str) -> Mapping[str, Any]:
        return await self._get({"action": "prices", "source": source}, {})

    # -- Internals -----------------------------------------------------------

    def _headers(self, extra: Mapping[str, str]) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **extra}
        api_keys = {k: v for k, v in (("td", self._td_key), ("fred", self._fred_key)) if v}
        if api_keys:
            headers["X-Api-Keys"] = json.dumps(api_keys)
        return headers

    async def _get(
        self, params: dict[str, str], extra_headers: Mapping[str, str],
    ) -> Mapping[str, Any]:
        await self.open()
        assert self._client is not None

        action = params.get("action", "")
        try:
            resp = await self._client.get(
                self._url, params=params, headers=self._headers(extra_headers),
            )
        except httpx.HTTPError as exc:
            raise FetchError(f"{action}: {exc}") from exc

        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchError(
                f"{action}: non-JSON response (HTTP {resp.status_code})"
            ) from exc

        if not isinstance(data, Mapping):
            raise FetchError(f"{action}: unexpected payload type {type(data).__name__}")
        if resp.status_code >= 300 or data.get("error"):
            raise FetchError(f"{action}: {data.get('error') or f'HTTP {resp.status_code}'}")
        logger.debug("Worker %s ok (HTTP %d)", action, resp.status_code)
        return data
