"""Ready-made fetch delegates for the dynamic typeahead."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests
from requests import exceptions as requests_exceptions

from searchable_select.errors import FetchError
from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("Source")

DEFAULT_USER_AGENT = "searchable-select/fetch"


class HttpJsonSource:
    """Async ``fetch(query)`` that GETs ``url`` with the query as a parameter.

    The blocking request runs in the loop's default executor so the event loop
    stays free while the server answers. ``records_key`` picks the record list
    out of an object response (``{"results": [...]}``); a bare JSON array is used
    as is. ``cache_bust`` appends a timestamp parameter so intermediaries never
    serve a stale list.
    """

    def __init__(
        self,
        url: str,
        *,
        param: str = "q",
        records_key: Optional[str] = None,
        timeout: float = 2.0,
        headers: Optional[Mapping[str, str]] = None,
        cache_bust: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.param = param
        self.records_key = records_key
        self.timeout = max(0.1, float(timeout))
        self.cache_bust = cache_bust
        self._headers: Dict[str, str] = {"Accept": "application/json", "User-Agent": DEFAULT_USER_AGENT}
        if headers:
            self._headers.update(headers)
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
            self._owns_session = True
        return self._session

    def close(self) -> None:
        session = self._session
        if session is not None and self._owns_session:
            session.close()
            self._session = None

    async def __call__(self, query: str) -> List[Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.fetch_sync, query)

    def fetch_sync(self, query: str) -> List[Any]:
        params: Dict[str, Any] = {self.param: query}
        if self.cache_bust:
            params["v"] = int(time.time() * 1000)
        session = self._get_session()
        try:
            response = session.get(self.url, params=params, headers=self._headers, timeout=self.timeout)
            response.raise_for_status()
        except requests_exceptions.RequestException as exc:
            raise FetchError(f"Request to {self.url} failed: {exc}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Unable to parse response from {self.url}: {exc}") from exc
        finally:
            response.close()
        records = self._extract(payload)
        _LOGGER.debug("Fetched %d records for %r from %s", len(records), query, self.url)
        return records

    def _extract(self, payload: Any) -> List[Any]:
        if self.records_key is not None:
            if not isinstance(payload, Mapping):
                raise FetchError(f"Expected an object with {self.records_key!r} from {self.url}")
            payload = payload.get(self.records_key)
        if isinstance(payload, (str, bytes, Mapping)) or not isinstance(payload, Sequence):
            raise FetchError(f"Expected a list of records from {self.url}, got {type(payload).__name__}")
        return list(payload)


__all__ = ["DEFAULT_USER_AGENT", "HttpJsonSource"]
