"""Catalog search module.

Provides:
- Elasticsearch and in-memory search clients
- Index lifecycle management
- Query composition
- Search execution, ranking and aggregations
"""

from gamesearch.core.search.client import (
    SearchClient,
    ElasticsearchClient,
    InMemorySearchClient,
    create_search_client,
)
from gamesearch.core.search.index import (
    IndexManager,
    IndexMapping,
    FieldType,
    create_game_index_mapping,
)
from gamesearch.core.search.query import (
    QueryBuilder,
    BoolQuery,
    MultiMatchQuery,
    TermQuery,
    RangeQuery,
    SearchRequest,
    build_search_query,
)
from gamesearch.core.search.mapper import DocumentMapper
from gamesearch.core.search.executor import SearchExecutor
from gamesearch.core.search.aggregations import AggregationEngine, TermsAggregation
from gamesearch.core.search.ranking import RankingPolicy, RecommendationFallback
from gamesearch.core.search.service import GameSearchService

__all__ = [
    # Client
    "SearchClient",
    "ElasticsearchClient",
    "InMemorySearchClient",
    "create_search_client",
    # Index
    "IndexManager",
    "IndexMapping",
    "FieldType",
    "create_game_index_mapping",
    # Query
    "QueryBuilder",
    "BoolQuery",
    "MultiMatchQuery",
    "TermQuery",
    "RangeQuery",
    "SearchRequest",
    "build_search_query",
    # Read/write path
    "DocumentMapper",
    "SearchExecutor",
    "AggregationEngine",
    "TermsAggregation",
    "RankingPolicy",
    "RecommendationFallback",
    "GameSearchService",
]
