"""Tests for query nodes and catalog search composition."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from gamesearch.core.search.query import (
    BoolQuery,
    MatchAllQuery,
    MultiMatchQuery,
    QueryBuilder,
    RangeQuery,
    SearchRequest,
    TermQuery,
    build_search_query,
    match_all,
)


class TestQueryNodes:
    """Tests for DSL node serialisation."""

    def test_match_all(self):
        """Test match_all with and without boost."""
        assert MatchAllQuery().to_dict() == {"match_all": {}}
        assert MatchAllQuery(boost=2.0).to_dict() == {"match_all": {"boost": 2.0}}

    def test_multi_match_boosted_fields(self):
        """Test field boosts are written as field^boost."""
        query = MultiMatchQuery(
            query="witcher",
            fields={"title": 2.0, "description": 1.0},
            fuzziness="AUTO",
        )

        assert query.to_dict() == {
            "multi_match": {
                "query": "witcher",
                "fields": ["title^2", "description"],
                "type": "best_fields",
                "fuzziness": "AUTO",
            }
        }

    def test_term_with_boost(self):
        """Test term query boost form."""
        assert TermQuery("genre", "RPG").to_dict() == {"term": {"genre": "RPG"}}
        assert TermQuery("genre", "RPG", boost=3.0).to_dict() == {
            "term": {"genre": {"value": "RPG", "boost": 3.0}}
        }

    def test_range_only_given_bounds(self):
        """Test range query omits missing bounds."""
        assert RangeQuery("price", gte=10.0).to_dict() == {"range": {"price": {"gte": 10.0}}}
        assert RangeQuery("price", lt=5).to_dict() == {"range": {"price": {"lt": 5}}}

    def test_bool_query_empty(self):
        """Test emptiness check of bool query."""
        bool_query = BoolQuery()
        assert bool_query.is_empty()

        bool_query.add_filter(TermQuery("platform", "PC"))
        assert not bool_query.is_empty()
        assert bool_query.to_dict() == {"bool": {"filter": [{"term": {"platform": "PC"}}]}}


class TestQueryBuilder:
    """Tests for QueryBuilder."""

    def test_empty_builder_matches_everything(self):
        """Test a builder without clauses builds match_all."""
        assert QueryBuilder().build() == {"match_all": {}}

    def test_must_and_filter(self):
        """Test clauses land in their bool sections."""
        query = (
            QueryBuilder()
            .must(TermQuery("genre", "RPG"))
            .filter(RangeQuery("price", lte=100.0))
            .build()
        )

        assert query == {
            "bool": {
                "must": [{"term": {"genre": "RPG"}}],
                "filter": [{"range": {"price": {"lte": 100.0}}}],
            }
        }


class TestBuildSearchQuery:
    """Tests for build_search_query."""

    def test_no_criteria_is_match_all(self):
        """Test blank query and no filters list the whole catalog."""
        assert build_search_query(SearchRequest()) == {"match_all": {}}
        assert build_search_query(SearchRequest(query="   ")) == match_all()

    def test_blank_filters_ignored(self):
        """Test blank genre and platform count as not given."""
        request = SearchRequest(query="", genre=" ", platform="")
        assert build_search_query(request) == {"match_all": {}}

    def test_text_clause(self):
        """Test free text becomes a fuzzy boosted multi_match."""
        query = build_search_query(SearchRequest(query="  Witcher "))

        assert query == {
            "bool": {
                "must": [{
                    "multi_match": {
                        "query": "Witcher",
                        "fields": ["title^2", "description"],
                        "type": "best_fields",
                        "fuzziness": "AUTO",
                    }
                }]
            }
        }

    def test_clause_order_is_stable(self):
        """Test text scores and filters follow genre, platform, price."""
        request = SearchRequest(
            query="rpg",
            genre="RPG",
            platform="PC",
            min_price=Decimal("10"),
            max_price=Decimal("200.50"),
        )

        body = build_search_query(request)["bool"]

        assert [next(iter(clause)) for clause in body["must"]] == ["multi_match"]
        assert body["filter"] == [
            {"term": {"genre": "RPG"}},
            {"term": {"platform": "PC"}},
            {"range": {"price": {"gte": 10.0, "lte": 200.5}}},
        ]

    def test_single_price_bound(self):
        """Test only supplied price bounds are applied."""
        query = build_search_query(SearchRequest(max_price=Decimal("150")))
        assert query == {"bool": {"filter": [{"range": {"price": {"lte": 150.0}}}]}}

    def test_genre_only(self):
        """Test a genre filter alone."""
        query = build_search_query(SearchRequest(genre="RPG"))
        assert query == {"bool": {"filter": [{"term": {"genre": "RPG"}}]}}


class TestSearchRequest:
    """Tests for SearchRequest validation."""

    def test_offset(self):
        """Test offset from 1-based page."""
        assert SearchRequest(page=1, page_size=10).offset == 0
        assert SearchRequest(page=3, page_size=5).offset == 10

    @pytest.mark.parametrize("kwargs", [
        {"page": 0},
        {"page_size": 0},
        {"min_price": Decimal("-1")},
        {"min_price": Decimal("20"), "max_price": Decimal("10")},
    ])
    def test_invalid_requests(self, kwargs):
        """Test invalid paging and price bounds are rejected."""
        with pytest.raises(ValidationError):
            SearchRequest(**kwargs)
