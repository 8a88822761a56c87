"""Search execution with degraded-on-failure semantics.

A read that cannot be served (index unavailable, request rejected, timeout)
is logged, counted, and answered with an empty result instead of an error.
This favours availability of the read path over visibility of the outage;
``strict=True`` turns the same failures back into exceptions.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

from gamesearch.core.errors import IndexUnavailable, QueryFailure
from gamesearch.core.logging.structured import search_context
from gamesearch.core.resilience.timeout import OperationTimeout, SimpleTimeout
from gamesearch.core.search.client import SearchClient, SearchResult
from gamesearch.core.search.index import IndexManager
from gamesearch.core.search.mapper import DocumentMapper
from gamesearch.models.game import Game
from gamesearch.utils.metrics import search_queries_total, search_query_duration_seconds

logger = logging.getLogger(__name__)


class SearchExecutor:
    """Runs built queries against the managed index."""

    def __init__(
        self,
        client: SearchClient,
        index_manager: IndexManager,
        mapper: Optional[DocumentMapper] = None,
        timeout: Optional[SimpleTimeout] = None,
        strict: bool = False,
    ):
        self._client = client
        self._index_manager = index_manager
        self._mapper = mapper or DocumentMapper()
        self._timeout = timeout or SimpleTimeout()
        self._strict = strict

    @property
    def index_name(self) -> str:
        return self._index_manager.index_name

    async def execute(
        self,
        query: Dict[str, Any],
        from_: int = 0,
        size: int = 10,
        sort: Optional[List[Dict[str, Any]]] = None,
        aggregations: Optional[Dict[str, Any]] = None,
        operation: str = "search",
    ) -> Optional[SearchResult]:
        """Run one request; None means it failed and was degraded."""
        with search_context(self.index_name, operation):
            return await self._execute(query, from_, size, sort, aggregations, operation)

    async def _execute(
        self,
        query: Dict[str, Any],
        from_: int,
        size: int,
        sort: Optional[List[Dict[str, Any]]],
        aggregations: Optional[Dict[str, Any]],
        operation: str,
    ) -> Optional[SearchResult]:
        start = time.perf_counter()
        try:
            await self._index_manager.ensure_index()
            result = await self._timeout.execute(
                self._client.search,
                self.index_name,
                query,
                from_=from_,
                size=size,
                sort=sort,
                aggregations=aggregations,
            )
        except OperationTimeout as e:
            failure: Exception = QueryFailure(
                f"{operation} on {self.index_name} timed out after {e.timeout}s",
                details={"index": self.index_name},
            )
            failure.__cause__ = e
        except (QueryFailure, IndexUnavailable) as e:
            failure = e
        else:
            search_queries_total.labels(operation=operation, status="ok").inc()
            search_query_duration_seconds.labels(operation=operation).observe(
                time.perf_counter() - start
            )
            return result

        search_queries_total.labels(operation=operation, status="error").inc()
        logger.error(f"{operation} failed, returning empty result: {failure}")
        if self._strict:
            raise failure
        return None

    async def search(
        self,
        query: Dict[str, Any],
        page: int = 1,
        page_size: int = 10,
        sort: Optional[List[Dict[str, Any]]] = None,
        operation: str = "search",
    ) -> List[Game]:
        """Return one page of games for ``query``.

        ``page`` is 1-based. Without ``sort`` hits come in relevance order.
        A failed request yields ``[]``; a hit that cannot be rebuilt into a
        game raises ``MappingInconsistency``.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")

        result = await self.execute(
            query,
            from_=(page - 1) * page_size,
            size=page_size,
            sort=sort,
            operation=operation,
        )
        if result is None:
            return []

        return [self._mapper.from_source(hit.source, doc_id=hit.id) for hit in result.hits]


__all__ = ["SearchExecutor"]
