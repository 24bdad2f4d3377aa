"""
Query model and filter builders for the search backend.

Filters are plain Elasticsearch query DSL dictionaries. A Query bundles a
filter with the target index pattern, sort, field projection and page size
and is immutable once built.
"""

from dataclasses import dataclass, field, replace
from typing import Any

_MISSING = object()


def term_query(field_name: str, value: Any) -> dict[str, Any]:
    """Exact match on a single value."""
    return {"term": {field_name: value}}


def terms_query(field_name: str, values) -> dict[str, Any]:
    """Match any of the given values. Values are sorted for stable requests."""
    return {"terms": {field_name: sorted(values)}}


def range_query(
    field_name: str,
    gt: Any = None,
    gte: Any = None,
    lt: Any = None,
    lte: Any = None,
) -> dict[str, Any]:
    """
    Range match on a field

    Args:
        field_name: Field to compare
        gt, gte, lt, lte: Bounds; only the ones given are included

    Raises:
        ValueError: If no bound is given
    """
    bounds = {
        name: value
        for name, value in (("gt", gt), ("gte", gte), ("lt", lt), ("lte", lte))
        if value is not None
    }
    if not bounds:
        raise ValueError(f"range_query on '{field_name}' needs at least one bound")
    return {"range": {field_name: bounds}}


def exists_query(field_name: str) -> dict[str, Any]:
    """Match documents where the field has a value."""
    return {"exists": {"field": field_name}}


def must_not(*queries: dict[str, Any] | None) -> dict[str, Any]:
    """Negate one or more queries."""
    return {"bool": {"must_not": [q for q in queries if q is not None]}}


def join_with_and(*queries: dict[str, Any] | None) -> dict[str, Any] | None:
    """
    Join queries with an AND clause

    None entries are dropped. With no queries left None is returned, a single
    query is returned as is, otherwise a bool query with all of them in
    'must' is built.
    """
    not_null = [q for q in queries if q is not None]
    if not not_null:
        return None
    if len(not_null) == 1:
        return not_null[0]
    return {"bool": {"must": not_null}}


def get_field(source: dict[str, Any] | None, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted field path inside a document source

    Both nested objects ({"value": {"key": 1}}) and flattened keys
    ({"value.key": 1}) are supported.
    """
    if not isinstance(source, dict):
        return default
    if path in source:
        return source[path]

    current: Any = source
    for part in path.split("."):
        if not isinstance(current, dict):
            return default
        current = current.get(part, _MISSING)
        if current is _MISSING:
            return default
    return current


@dataclass(frozen=True)
class Query:
    """
    Immutable description of a search

    Attributes:
        indices: Target index name or pattern (e.g. "operate*")
        filter: Query DSL filter, None matches all documents
        sort: Sort clauses, e.g. [{"sequence": {"order": "asc"}}]
        source: Fields to project from _source, None returns the whole source
        size: Page size
    """

    indices: str
    filter: dict[str, Any] | None = None
    sort: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    source: tuple[str, ...] | None = None
    size: int = 1000

    def __post_init__(self):
        if not self.indices:
            raise ValueError("Query needs a target index pattern")
        if self.size < 1:
            raise ValueError(f"Query page size must be positive, got {self.size}")
        # Normalise sequence fields to tuples
        object.__setattr__(self, "sort", tuple(self.sort))
        if self.source is not None:
            object.__setattr__(self, "source", tuple(self.source))

    def with_size(self, size: int) -> "Query":
        """Return a copy with a different page size."""
        return replace(self, size=size)

    def to_body(self) -> dict[str, Any]:
        """Render the search request body."""
        body: dict[str, Any] = {
            "query": self.filter if self.filter is not None else {"match_all": {}},
            "size": self.size,
        }
        if self.sort:
            body["sort"] = list(self.sort)
        if self.source is not None:
            body["_source"] = list(self.source)
        return body


def sort_ascending(field_name: str) -> dict[str, Any]:
    return {field_name: {"order": "asc"}}
