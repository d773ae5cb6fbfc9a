"""
Unit tests for shared validators and operation input models.
"""

import pytest
from pydantic import ValidationError

from mcp_memory_graph.models.inputs import AddMemoryParams, LinkParams, NeighborParams, SearchParams
from mcp_memory_graph.models.validators import normalize_tags


class TestNormalizeTags:
    def test_none_becomes_empty(self):
        assert normalize_tags(None) == []

    def test_comma_separated_string(self):
        assert normalize_tags("a, b,c") == ["a", "b", "c"]

    def test_list_is_stripped_and_deduplicated(self):
        assert normalize_tags(["a", None, " b ", "a", ""]) == ["a", "b"]

    def test_first_seen_order_kept(self):
        assert normalize_tags(["z", "a", "z", "m"]) == ["z", "a", "m"]

    def test_unsupported_type_becomes_empty(self):
        assert normalize_tags(42) == []


class TestAddMemoryParams:
    def test_defaults(self):
        params = AddMemoryParams(namespace="ns", content="hello")
        assert params.tags == []
        assert params.metadata == {}
        assert params.source_type == "agent"
        assert params.dedupe is True

    def test_none_metadata_becomes_empty(self):
        assert AddMemoryParams(namespace="ns", content="x", metadata=None).metadata == {}

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    def test_blank_content_rejected(self, content):
        with pytest.raises(ValidationError):
            AddMemoryParams(namespace="ns", content=content)

    def test_blank_namespace_rejected(self):
        with pytest.raises(ValidationError):
            AddMemoryParams(namespace=" ", content="x")

    def test_content_whitespace_preserved(self):
        assert AddMemoryParams(namespace="ns", content="  padded  ").content == "  padded  "

    def test_custom_source_type_allowed(self):
        assert AddMemoryParams(namespace="ns", content="x", source_type="crawler").source_type == "crawler"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            AddMemoryParams(namespace="ns", content="x", importance=0.5)


class TestSearchParams:
    def test_camel_case_aliases(self):
        params = SearchParams.model_validate(
            {
                "namespace": "ns",
                "query": "q",
                "topK": 3,
                "tagFilter": ["a"],
                "includeNeighbors": True,
                "neighborsHop": 2,
            }
        )
        assert params.top_k == 3
        assert params.tag_filter == ["a"]
        assert params.include_neighbors is True
        assert params.neighbors_hop == 2

    @pytest.mark.parametrize("top_k", [0, 101, -1])
    def test_top_k_out_of_range(self, top_k):
        with pytest.raises(ValidationError):
            SearchParams(namespace="ns", query="q", top_k=top_k)

    @pytest.mark.parametrize("top_k", [1, 100])
    def test_top_k_bounds_inclusive(self, top_k):
        assert SearchParams(namespace="ns", query="q", top_k=top_k).top_k == top_k

    @pytest.mark.parametrize("hop", [0, 4])
    def test_neighbors_hop_out_of_range(self, hop):
        with pytest.raises(ValidationError):
            SearchParams(namespace="ns", query="q", neighbors_hop=hop)

    def test_dates_parsed_to_timestamps(self):
        params = SearchParams(namespace="ns", query="q", date_from="2026-01-01", date_to="2026-02-01T00:00:00Z")
        assert params.date_from < params.date_to

    def test_empty_date_string_means_unbounded(self):
        assert SearchParams(namespace="ns", query="q", date_from="").date_from is None

    def test_inverted_date_range_rejected(self):
        with pytest.raises(ValidationError, match="dateFrom must not be later than dateTo"):
            SearchParams(namespace="ns", query="q", date_from="2026-02-01", date_to="2026-01-01")

    def test_unparseable_date_rejected(self):
        with pytest.raises(ValidationError, match="Invalid date format"):
            SearchParams(namespace="ns", query="q", date_from="yesterday-ish")

    def test_blank_query_rejected(self):
        with pytest.raises(ValidationError):
            SearchParams(namespace="ns", query="  ")


class TestLinkParams:
    def test_valid(self):
        params = LinkParams(namespace="ns", from_id="a", to_id="b", rel_type="extends", weight=0.5)
        assert params.weight == 0.5
        assert params.metadata == {}

    def test_self_loop_rejected(self):
        with pytest.raises(ValidationError, match="self-loop"):
            LinkParams(namespace="ns", from_id="a", to_id="a", rel_type="updates")

    @pytest.mark.parametrize("weight", [-0.01, 1.01])
    def test_weight_out_of_range(self, weight):
        with pytest.raises(ValidationError):
            LinkParams(namespace="ns", from_id="a", to_id="b", rel_type="updates", weight=weight)

    @pytest.mark.parametrize("weight", [0.0, 1.0])
    def test_weight_bounds_inclusive(self, weight):
        assert LinkParams(namespace="ns", from_id="a", to_id="b", rel_type="updates", weight=weight).weight == weight

    def test_unknown_rel_type_rejected(self):
        with pytest.raises(ValidationError):
            LinkParams(namespace="ns", from_id="a", to_id="b", rel_type="supersedes")


class TestNeighborParams:
    def test_requires_seed(self):
        with pytest.raises(ValidationError):
            NeighborParams(namespace="ns", seed_ids=[])

    def test_hops_bounded(self):
        with pytest.raises(ValidationError):
            NeighborParams(namespace="ns", seed_ids=["a"], hops=4)
