"""
Unit tests for the query model and filter builders
"""

import pytest

from utils.search import (
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


class TestFilterBuilders:
    """Test query DSL builders"""

    def test_term_query(self):
        assert term_query("partitionId", 1) == {"term": {"partitionId": 1}}

    def test_terms_query_sorts_values(self):
        assert terms_query("key", {30, 10, 20}) == {"terms": {"key": [10, 20, 30]}}

    def test_range_query_keeps_given_bounds(self):
        assert range_query("position", gt=5) == {"range": {"position": {"gt": 5}}}
        assert range_query("position", gte=1, lt=9) == {
            "range": {"position": {"gte": 1, "lt": 9}}
        }

    def test_range_query_keeps_zero_bound(self):
        assert range_query("position", gt=0) == {"range": {"position": {"gt": 0}}}

    def test_range_query_requires_bound(self):
        with pytest.raises(ValueError, match="at least one bound"):
            range_query("position")

    def test_exists_query(self):
        assert exists_query("value.parentProcessInstanceKey") == {
            "exists": {"field": "value.parentProcessInstanceKey"}
        }

    def test_must_not_drops_none(self):
        assert must_not(term_query("a", 1), None) == {
            "bool": {"must_not": [{"term": {"a": 1}}]}
        }


class TestJoinWithAnd:
    """Test AND-joining of optional filters"""

    def test_no_queries(self):
        assert join_with_and() is None
        assert join_with_and(None, None) is None

    def test_single_query_returned_as_is(self):
        query = term_query("a", 1)
        assert join_with_and(None, query) is query

    def test_multiple_queries(self):
        assert join_with_and(term_query("a", 1), None, term_query("b", 2)) == {
            "bool": {"must": [{"term": {"a": 1}}, {"term": {"b": 2}}]}
        }


class TestGetField:
    """Test dotted field resolution"""

    def test_nested_path(self):
        source = {"value": {"parentElementInstanceKey": 42}}
        assert get_field(source, "value.parentElementInstanceKey") == 42

    def test_flattened_key(self):
        source = {"value.parentElementInstanceKey": 42}
        assert get_field(source, "value.parentElementInstanceKey") == 42

    def test_missing_returns_default(self):
        assert get_field({"value": {}}, "value.key") is None
        assert get_field({"value": 3}, "value.key", "n/a") == "n/a"
        assert get_field(None, "key", 0) == 0

    def test_explicit_null_is_returned(self):
        assert get_field({"value": {"key": None}}, "value.key", "default") is None


class TestQuery:
    """Test the immutable Query model"""

    def test_to_body_defaults_to_match_all(self):
        body = Query(indices="operate*").to_body()

        assert body == {"query": {"match_all": {}}, "size": 1000}

    def test_to_body_with_sort_and_source(self):
        query = Query(
            indices="zeebe-record_process-instance_*",
            filter=term_query("partitionId", 1),
            sort=[sort_ascending("sequence")],
            source=["key", "value.parentElementInstanceKey"],
            size=3000,
        )

        assert query.to_body() == {
            "query": {"term": {"partitionId": 1}},
            "size": 3000,
            "sort": [{"sequence": {"order": "asc"}}],
            "_source": ["key", "value.parentElementInstanceKey"],
        }

    def test_lists_normalised_to_tuples(self):
        query = Query(indices="operate*", sort=[sort_ascending("key")], source=["key"])

        assert isinstance(query.sort, tuple)
        assert query.source == ("key",)
        assert query == Query(indices="operate*", sort=(sort_ascending("key"),), source=("key",))

    def test_with_size_returns_copy(self):
        query = Query(indices="operate*", size=10)
        resized = query.with_size(50)

        assert resized.size == 50
        assert query.size == 10

    @pytest.mark.parametrize("size", [0, -1])
    def test_rejects_non_positive_size(self, size):
        with pytest.raises(ValueError, match="page size"):
            Query(indices="operate*", size=size)

    def test_requires_indices(self):
        with pytest.raises(ValueError, match="index pattern"):
            Query(indices="")
