"""Typed client interfaces for the external collaborators of a research run.

The pipeline reaches the corpus only through two interfaces:

:class:`SearchProvider`
    One search request in, an ordered list of :class:`SearchResult` out.
:class:`ConversationFetcher`
    A conversation url in, the opaque conversation payload out.

The ``Http*`` implementations talk JSON to a search/fetch service using
``httpx``.  Failures surface as :class:`SearchError` / :class:`FetchError`
so callers can drop a single item without inspecting transport details.
"""

from __future__ import annotations

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from deep_research.domain.enums import SearchMode
from deep_research.domain.exceptions import FetchError, SearchError
from deep_research.domain.values import SearchRequest, SearchResult
from deep_research.infrastructure.llm.invoker import LLMInvoker

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Interfaces                                                                  #
# =========================================================================== #

class SearchProvider(ABC):
    """Searches the conversation corpus."""

    @abstractmethod
    def search(self, request: SearchRequest) -> list[SearchResult]:
        """Run one search.

        Keyword results carry ``score == 0``; semantic results carry a
        relevance score and usually a summary.

        Raises
        ------
        SearchError
            If the search could not be executed.
        """


class ConversationFetcher(ABC):
    """Loads full conversation payloads."""

    @abstractmethod
    def fetch(self, url: str, cache_path: str | None = None) -> dict[str, Any]:
        """Return the payload for *url*.

        Raises
        ------
        FetchError
            If the conversation could not be loaded.
        """


@dataclass(frozen=True)
class ResearchClients:
    """The collaborators every research node is constructed with."""

    search: SearchProvider
    fetcher: ConversationFetcher
    llm: LLMInvoker


# =========================================================================== #
#  Result parsing                                                              #
# =========================================================================== #

def parse_search_rows(rows: list[dict[str, Any]], mode: SearchMode) -> list[SearchResult]:
    """Normalize raw search rows into :class:`SearchResult` values.

    Rows may be flat (``{"url", "score", "summary"}``) or nested vector-store
    style (``{"score", "payload": {"url", "summary"}}``).  Rows without a url
    or with a non-numeric score are skipped.  Keyword rows always get score
    ``0``.
    """
    results: list[SearchResult] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        payload = row.get("payload") if isinstance(row.get("payload"), dict) else {}
        url = row.get("url") or payload.get("url")
        if not url:
            logger.debug("parse_search_rows: skipping row without url: %r", row)
            continue
        summary = row.get("summary") or payload.get("summary") or ""
        if mode is SearchMode.KEYWORD:
            score = 0.0
        else:
            try:
                score = float(row.get("score") or 0.0)
            except (TypeError, ValueError):
                logger.warning(
                    "parse_search_rows: skipping %s with bad score %r", url, row.get("score")
                )
                continue
        results.append(
            SearchResult(url=str(url), score=score, summary=str(summary), search_mode=mode)
        )
    return results


# =========================================================================== #
#  HTTP implementations                                                        #
# =========================================================================== #

class HttpSearchProvider(SearchProvider):
    """Search provider backed by a JSON HTTP endpoint.

    The request body is::

        {"query", "mode", "limit", "collection",
         "filters": {"created_after", "created_before"}, "order_by"}

    and the response is either a JSON array of rows or ``{"results": [...]}``.

    Parameters
    ----------
    base_url:
        The base URL of the search service.
    search_path:
        Path appended to base_url.  Defaults to ``"/search"``.
    api_key:
        Optional API key, sent as ``Authorization: Bearer``.
    timeout:
        Request timeout in seconds.
    client:
        Optional pre-configured ``httpx.Client`` (e.g. with a mock transport).
    """

    def __init__(
        self,
        base_url: str,
        search_path: str = "/search",
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._search_path = search_path
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout), headers=headers)

    @property
    def endpoint_url(self) -> str:
        return f"{self._base_url}{self._search_path}"

    def _build_payload(self, request: SearchRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "query": request.query,
            "mode": request.mode.value,
            "limit": request.limit,
        }
        if request.collection:
            payload["collection"] = request.collection
        filters = {
            key: value
            for key, value in (
                ("created_after", request.created_after),
                ("created_before", request.created_before),
            )
            if value
        }
        if filters:
            payload["filters"] = filters
        if request.order_by is not None:
            payload["order_by"] = str(request.order_by)
        return payload

    def search(self, request: SearchRequest) -> list[SearchResult]:
        try:
            response = self._client.post(self.endpoint_url, json=self._build_payload(request))
        except httpx.HTTPError as exc:
            raise SearchError(
                f"Search request to {self.endpoint_url} failed: {exc}",
                query=request.query,
                mode=request.mode.value,
            ) from exc

        if response.status_code >= 400:
            raise SearchError(
                f"Search failed (HTTP {response.status_code}): {response.text}",
                query=request.query,
                mode=request.mode.value,
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise SearchError(
                f"Invalid JSON from {self.endpoint_url}: {exc}",
                query=request.query,
                mode=request.mode.value,
            ) from exc

        rows = data.get("results", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            raise SearchError(
                "Search response is not a list of results",
                query=request.query,
                mode=request.mode.value,
            )
        return parse_search_rows(rows, request.mode)[: request.limit]

    def close(self) -> None:
        self._client.close()


class HttpConversationFetcher(ConversationFetcher):
    """Conversation fetcher backed by a JSON HTTP endpoint.

    Issues ``GET {base_url}{fetch_path}?url=<conversation url>``.  When a
    cache hint is given, payloads are stored as JSON files in that directory
    and served from there on later calls.

    Parameters
    ----------
    base_url:
        The base URL of the fetch service.
    fetch_path:
        Path appended to base_url.  Defaults to ``"/conversations"``.
    api_key:
        Optional API key, sent as ``Authorization: Bearer``.
    timeout:
        Request timeout in seconds.
    client:
        Optional pre-configured ``httpx.Client``.
    """

    def __init__(
        self,
        base_url: str,
        fetch_path: str = "/conversations",
        api_key: str | None = None,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._fetch_path = fetch_path
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout), headers=headers)

    @property
    def endpoint_url(self) -> str:
        return f"{self._base_url}{self._fetch_path}"

    @staticmethod
    def cache_file(cache_path: str, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]
        return Path(cache_path) / f"{digest}.json"

    def fetch(self, url: str, cache_path: str | None = None) -> dict[str, Any]:
        cached = self.cache_file(cache_path, url) if cache_path else None
        if cached is not None and cached.exists():
            try:
                return json.loads(cached.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                logger.warning("Ignoring unreadable cache entry %s: %s", cached, exc)

        try:
            response = self._client.get(self.endpoint_url, params={"url": url})
        except httpx.HTTPError as exc:
            raise FetchError(f"Fetching {url} failed: {exc}", url=url) from exc

        if response.status_code >= 400:
            raise FetchError(
                f"Fetch failed (HTTP {response.status_code}): {response.text}",
                url=url,
                details={"status_code": response.status_code},
            )

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise FetchError(f"Invalid JSON for {url}: {exc}", url=url) from exc
        if not isinstance(payload, dict):
            raise FetchError(f"Conversation payload for {url} is not an object", url=url)

        if cached is not None:
            try:
                cached.parent.mkdir(parents=True, exist_ok=True)
                cached.write_text(json.dumps(payload), encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not write cache entry %s: %s", cached, exc)
        return payload

    def close(self) -> None:
        self._client.close()
