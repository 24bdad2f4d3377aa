"""
Scroll cursors for paging through unbounded search results.

A ScrollCursor owns one server-side scroll context: it opens it with the
query, advances it page by page and releases it exactly once.
scroll_with() drives a full scan and guarantees the release on every exit
path, so callers only supply per-page processing.

Usage:
    from utils.search.scroll import scroll_with

    def process(hits):
        for hit in hits:
            handle(hit["_source"])

    scroll_with(client, query, process)
"""

import logging
from typing import Any, Callable

from utils.tracing import add_span_attributes, trace_operation

from .client import QueryClient, SearchPage
from .errors import CursorReleasedError
from .query import Query, get_field

logger = logging.getLogger(__name__)

SCROLL_KEEP_ALIVE_MS = 60000

HitsProcessor = Callable[[list[dict[str, Any]]], None]
AggregationsProcessor = Callable[[dict[str, Any] | None], None]


class ScrollCursor:
    """
    Cursor over one scroll context

    The cursor is single use: open() once, next() until an empty page, then
    close(). A closed cursor is never advanced again.
    """

    def __init__(self, client: QueryClient, keep_alive_ms: int = SCROLL_KEEP_ALIVE_MS):
        """
        Initialize scroll cursor

        Args:
            client: Query client used for all scroll calls
            keep_alive_ms: Keep-alive sent with every fetch, in milliseconds
        """
        if keep_alive_ms <= 0:
            raise ValueError(f"keep_alive_ms must be positive, got {keep_alive_ms}")

        self.client = client
        self.keep_alive_ms = keep_alive_ms
        self.scroll_id: str | None = None
        self._opened = False
        self._released = False

    @property
    def is_live(self) -> bool:
        """True between a successful open() and close()."""
        return self._opened and not self._released

    def open(self, query: Query) -> SearchPage:
        """
        Issue the query and return the first page

        Raises:
            CursorReleasedError: If the cursor was already opened
            BackendUnavailable, QueryError: If the initial request fails
        """
        if self._opened or self._released:
            raise CursorReleasedError("Scroll cursor can only be opened once")

        page = self.client.open_scan(query, self.keep_alive_ms)
        self.scroll_id = page.scroll_id
        self._opened = True

        logger.debug(
            f"Opened scroll on {query.indices} "
            f"(size={query.size}, total={page.total}, first_page={len(page.hits)})"
        )
        return page

    def next(self) -> list[dict[str, Any]]:
        """
        Fetch the next page

        Returns:
            List of hits, empty when the scroll is exhausted

        Raises:
            CursorReleasedError: If the cursor is not live
            CursorExpired: If the scroll keep-alive lapsed
            BackendUnavailable: On transport failure
        """
        if not self.is_live:
            raise CursorReleasedError("Cannot advance a scroll cursor that is not live")
        if self.scroll_id is None:
            # Backend returned no handle, so there is nothing more to fetch
            return []

        page = self.client.advance_scan(self.scroll_id, self.keep_alive_ms)
        if page.scroll_id:
            self.scroll_id = page.scroll_id
        return page.hits

    def close(self) -> None:
        """
        Release the scroll context

        Best effort and idempotent: release failures are logged, never raised.
        """
        if self._released:
            return
        self._released = True

        if self.scroll_id is None:
            return

        scroll_id, self.scroll_id = self.scroll_id, None
        try:
            self.client.close_scan(scroll_id)
        except Exception as e:
            logger.warning(
                f"Error occurred when clearing the scroll with id [{scroll_id}]: "
                f"{type(e).__name__}: {e}"
            )

    def __enter__(self) -> "ScrollCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def scroll_with(
    client: QueryClient,
    query: Query,
    page_processor: HitsProcessor | None,
    aggregations_processor: AggregationsProcessor | None = None,
    first_page_processor: HitsProcessor | None = None,
    keep_alive_ms: int = SCROLL_KEEP_ALIVE_MS,
) -> int:
    """
    Scan every page of a query

    Opens a scroll, hands the first response to the optional first-page and
    aggregation processors, then calls page_processor once per non-empty page
    until the backend returns an empty page. The scroll is released on every
    exit path; a processor failure is re-raised after the release.

    Args:
        client: Query client
        query: Query to scan
        page_processor: Called with the hits of every non-empty page
        aggregations_processor: Called once with the aggregations of the first response
        first_page_processor: Called once with the hits of the first response
        keep_alive_ms: Scroll keep-alive in milliseconds

    Returns:
        Number of hits handed to page_processor
    """
    processed = 0
    pages = 0

    with trace_operation("search.scroll", indices=query.indices, page_size=query.size):
        with ScrollCursor(client, keep_alive_ms) as cursor:
            first_page = cursor.open(query)

            if first_page_processor is not None:
                first_page_processor(first_page.hits)

            if aggregations_processor is not None:
                aggregations_processor(first_page.aggregations)

            hits = first_page.hits
            while hits:
                pages += 1
                processed += len(hits)
                if page_processor is not None:
                    page_processor(hits)
                hits = cursor.next()

        add_span_attributes(pages=pages, hits=processed)

    return processed


def scroll_field_values(
    client: QueryClient,
    query: Query,
    field_name: str,
    keep_alive_ms: int = SCROLL_KEEP_ALIVE_MS,
) -> set[Any]:
    """
    Collect the distinct values of one _source field over a whole scan

    Hits where the field is missing are ignored.
    """
    values: set[Any] = set()

    def collect(hits: list[dict[str, Any]]) -> None:
        for hit in hits:
            value = get_field(hit.get("_source"), field_name)
            if value is not None:
                values.add(value)

    scroll_with(client, query, collect, keep_alive_ms=keep_alive_ms)
    return values
