"""
Query client for Elasticsearch-compatible search backends.

Defines the capability the reconciliation core depends on (count, open a
scroll, advance it, release it) and a requests-based implementation that
speaks the Elasticsearch REST API. Transport and server failures are mapped
onto the SearchError hierarchy.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol
from urllib.parse import quote

import requests

from utils.tracing import trace_http_request

from .errors import BackendUnavailable, CursorExpired, QueryError, SearchError
from .query import Query

logger = logging.getLogger(__name__)

# Status codes that indicate a transient condition rather than a bad request
TRANSIENT_STATUS_CODES = frozenset({429, 502, 503, 504})
SCROLL_CONTEXT_MISSING = "search_context_missing_exception"


@dataclass
class SearchPage:
    """One page of a scroll: the hits and the handle to fetch the next page."""

    scroll_id: str | None
    hits: list[dict[str, Any]] = field(default_factory=list)
    aggregations: dict[str, Any] | None = None
    total: int | None = None

    @property
    def is_empty(self) -> bool:
        return not self.hits


class QueryClient(Protocol):
    """Operations the reconciliation core needs from a search backend."""

    def count(self, indices: str, query_filter: dict[str, Any] | None) -> int:
        ...

    def open_scan(self, query: Query, keep_alive_ms: int) -> SearchPage:
        ...

    def advance_scan(self, scroll_id: str, keep_alive_ms: int) -> SearchPage:
        ...

    def close_scan(self, scroll_id: str) -> None:
        ...


def _keep_alive(keep_alive_ms: int) -> str:
    return f"{int(keep_alive_ms)}ms"


class ElasticsearchQueryClient:
    """
    Elasticsearch REST client built on a requests Session

    The session carries authentication and TLS settings; see
    utils.search.connector for how it is configured.
    """

    def __init__(
        self,
        base_url: str,
        session: requests.Session | None = None,
        timeout: float | tuple[float | None, float | None] | None = None,
    ):
        """
        Initialize query client

        Args:
            base_url: Cluster URL, e.g. "http://localhost:9200"
            session: Configured requests session (default: a new plain session)
            timeout: requests timeout, a number or (connect, read) tuple
        """
        if not base_url:
            raise ValueError("Elasticsearch base URL must not be empty")

        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        scroll: bool = False,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"

        with trace_http_request(method, url):
            try:
                response = self.session.request(
                    method,
                    url,
                    json=body,
                    params=params,
                    timeout=self.timeout,
                    headers={"Content-Type": "application/json"},
                )
            except (requests.ConnectionError, requests.Timeout) as e:
                raise BackendUnavailable(
                    f"{method} {path} failed: {type(e).__name__}: {e}"
                ) from e
            except requests.RequestException as e:
                raise QueryError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            raise self._error_for(method, path, response, scroll)

        try:
            return response.json()
        except ValueError as e:
            raise QueryError(
                f"{method} {path} returned a response that is not valid JSON",
                status=response.status_code,
            ) from e

    @staticmethod
    def _error_for(
        method: str, path: str, response: requests.Response, scroll: bool
    ) -> SearchError:
        status = response.status_code
        reason = None
        error_type = None

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict):
                error_type = error.get("type")
                reason = error.get("reason") or error_type
                for cause in error.get("root_cause") or []:
                    if isinstance(cause, dict) and cause.get("type") == SCROLL_CONTEXT_MISSING:
                        error_type = SCROLL_CONTEXT_MISSING
            elif isinstance(error, str):
                reason = error

        message = f"{method} {path} returned HTTP {status}"
        if reason:
            message += f": {reason}"

        if error_type == SCROLL_CONTEXT_MISSING or (scroll and status == 404):
            return CursorExpired(message, status=status, reason=reason)
        if status in TRANSIENT_STATUS_CODES:
            return BackendUnavailable(message, status=status, reason=reason)
        return QueryError(message, status=status, reason=reason)

    @staticmethod
    def _page(payload: dict[str, Any]) -> SearchPage:
        hits_section = payload.get("hits") or {}
        total = hits_section.get("total")
        if isinstance(total, dict):
            total = total.get("value")

        return SearchPage(
            scroll_id=payload.get("_scroll_id"),
            hits=list(hits_section.get("hits") or []),
            aggregations=payload.get("aggregations"),
            total=total,
        )

    def count(self, indices: str, query_filter: dict[str, Any] | None) -> int:
        """
        Count documents matching a filter

        Args:
            indices: Index name or pattern
            query_filter: Query DSL filter (None counts everything)

        Returns:
            Number of matching documents
        """
        body = {"query": query_filter} if query_filter is not None else None
        payload = self._request("POST", f"/{quote(indices, safe='*,')}/_count", body)

        try:
            return int(payload["count"])
        except (KeyError, TypeError, ValueError) as e:
            raise QueryError(f"Count response for '{indices}' has no count") from e

    def open_scan(self, query: Query, keep_alive_ms: int) -> SearchPage:
        """Issue the search with a scroll keep-alive and return the first page."""
        payload = self._request(
            "POST",
            f"/{quote(query.indices, safe='*,')}/_search",
            body=query.to_body(),
            params={"scroll": _keep_alive(keep_alive_ms)},
        )
        return self._page(payload)

    def advance_scan(self, scroll_id: str, keep_alive_ms: int) -> SearchPage:
        """Fetch the next page of a scroll and refresh its keep-alive."""
        payload = self._request(
            "POST",
            "/_search/scroll",
            body={"scroll": _keep_alive(keep_alive_ms), "scroll_id": scroll_id},
            scroll=True,
        )
        return self._page(payload)

    def close_scan(self, scroll_id: str) -> None:
        """Release the scroll context on the server."""
        self._request(
            "DELETE",
            "/_search/scroll",
            body={"scroll_id": [scroll_id]},
            scroll=True,
        )

    def cluster_health(self) -> dict[str, Any]:
        """Return the /_cluster/health document."""
        return self._request("GET", "/_cluster/health")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
