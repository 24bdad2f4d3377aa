"""
Search backend access for reconciliation scans.

Provides:
- query: immutable Query model and query DSL filter builders
- client: QueryClient capability and the Elasticsearch REST implementation
- scroll: ScrollCursor and the scroll_with driver
- connector: connection settings, TLS/auth setup and health checks
- errors: SearchError hierarchy
"""

from .client import ElasticsearchQueryClient, QueryClient, SearchPage
from .connector import ElasticsearchConnector, ElasticsearchSettings, SslSettings
from .errors import (
    BackendUnavailable,
    CursorExpired,
    CursorReleasedError,
    QueryError,
    SearchError,
)
from .query import (
    Query,
    exists_query,
    get_field,
    join_with_and,
    must_not,
    range_query,
    sort_ascending,
    term_query,
    terms_query,
)
from .scroll import SCROLL_KEEP_ALIVE_MS, ScrollCursor, scroll_field_values, scroll_with

__all__ = [
    "ElasticsearchQueryClient",
    "QueryClient",
    "SearchPage",
    "ElasticsearchConnector",
    "ElasticsearchSettings",
    "SslSettings",
    "SearchError",
    "BackendUnavailable",
    "QueryError",
    "CursorExpired",
    "CursorReleasedError",
    "Query",
    "term_query",
    "terms_query",
    "range_query",
    "exists_query",
    "must_not",
    "join_with_and",
    "get_field",
    "sort_ascending",
    "SCROLL_KEEP_ALIVE_MS",
    "ScrollCursor",
    "scroll_with",
    "scroll_field_values",
]
