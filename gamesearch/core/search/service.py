"""Game search service.

The operation surface the rest of the application talks to. It owns no
connection of its own: the ``SearchClient`` handle is passed in and its
lifetime belongs to the caller.

Writes are a best-effort mirror of the system-of-record. A rejected or timed
out write leaves that document stale until the next write of the same game;
it is logged and counted in ``search_index_writes_total`` but not raised
unless ``strict`` is set.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from gamesearch.core.config import Settings, get_settings
from gamesearch.core.errors import IndexUnavailable, QueryFailure, WriteFailure
from gamesearch.core.logging.structured import search_context
from gamesearch.core.resilience.timeout import OperationTimeout, SimpleTimeout, TimeoutConfig
from gamesearch.core.search.aggregations import AggregationEngine
from gamesearch.core.search.client import SearchClient, create_search_client
from gamesearch.core.search.executor import SearchExecutor
from gamesearch.core.search.index import IndexManager, create_game_index_mapping
from gamesearch.core.search.mapper import DocumentMapper
from gamesearch.core.search.query import SearchRequest, build_search_query
from gamesearch.core.search.ranking import RankingPolicy, RecommendationFallback
from gamesearch.models.game import Game
from gamesearch.utils.metrics import search_index_writes_total

logger = logging.getLogger(__name__)


class GameSearchService:
    """Index, search, rank and aggregate catalog games."""

    def __init__(
        self,
        client: SearchClient,
        index_name: str = "games",
        index_prefix: str = "",
        number_of_shards: int = 1,
        number_of_replicas: int = 1,
        timeout: Optional[SimpleTimeout] = None,
        strict: bool = False,
        refresh_on_write: bool = False,
        max_page_size: Optional[int] = None,
        max_buckets: int = 50,
    ):
        self._client = client
        self._timeout = timeout or SimpleTimeout()
        self._strict = strict
        self._refresh_on_write = refresh_on_write
        self._max_page_size = max_page_size
        self._mapper = DocumentMapper()

        self.index_manager = IndexManager(
            client,
            index_name,
            create_game_index_mapping(number_of_shards, number_of_replicas),
            prefix=index_prefix,
            timeout=self._timeout,
        )
        self.executor = SearchExecutor(
            client,
            self.index_manager,
            mapper=self._mapper,
            timeout=self._timeout,
            strict=strict,
        )
        self.aggregations = AggregationEngine(self.executor, max_buckets=max_buckets)
        self.ranking = RankingPolicy(self.executor)
        self.recommendations = RecommendationFallback(self.ranking)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[SearchClient] = None,
    ) -> "GameSearchService":
        """Build a service from settings, the cached ``get_settings()`` by default.

        A client is created from ``SEARCH_BACKEND`` when none is given; the
        caller still owns it and must close it.
        """
        settings = settings or get_settings()
        return cls(
            client or create_search_client(settings),
            index_name=settings.SEARCH_INDEX_NAME,
            index_prefix=settings.SEARCH_INDEX_PREFIX,
            number_of_shards=settings.SEARCH_INDEX_SHARDS,
            number_of_replicas=settings.SEARCH_INDEX_REPLICAS,
            timeout=SimpleTimeout(TimeoutConfig(timeout=settings.SEARCH_TIMEOUT_SECONDS)),
            strict=settings.SEARCH_STRICT_MODE,
            refresh_on_write=settings.SEARCH_REFRESH_ON_WRITE,
            max_page_size=settings.SEARCH_MAX_PAGE_SIZE,
            max_buckets=settings.AGGREGATION_MAX_BUCKETS,
        )

    @property
    def client(self) -> SearchClient:
        return self._client

    @property
    def index_name(self) -> str:
        return self.index_manager.index_name

    async def initialize(self) -> None:
        """Create the index at startup. Raises ``IndexUnavailable``."""
        await self.index_manager.ensure_index()

    async def ensure_index(self) -> None:
        await self.index_manager.ensure_index()

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def index_entity(self, game: Game) -> bool:
        """Mirror a newly created game into the index."""
        return await self._write(game, operation="index")

    async def update_entity(self, game: Game) -> bool:
        """Mirror an updated game; creates the document if it is absent."""
        return await self._write(game, operation="update")

    async def _write(self, game: Game, operation: str) -> bool:
        with search_context(self.index_name, operation):
            return await self._write_document(game, operation)

    async def _write_document(self, game: Game, operation: str) -> bool:
        # IndexUnavailable is fatal to the write path and propagates
        await self.index_manager.ensure_index()

        doc_id = str(game.id)
        try:
            await self._timeout.execute(
                self._client.index,
                self.index_name,
                doc_id,
                self._mapper.to_source(game),
                refresh=self._refresh_on_write,
            )
        except OperationTimeout as e:
            failure: Exception = WriteFailure(
                f"{operation} of {doc_id} timed out after {e.timeout}s",
                details={"index": self.index_name, "doc_id": doc_id},
            )
            failure.__cause__ = e
        except WriteFailure as e:
            failure = e
        else:
            search_index_writes_total.labels(operation=operation, status="ok").inc()
            logger.debug(f"Indexed game {doc_id} ({operation})")
            return True

        search_index_writes_total.labels(operation=operation, status="error").inc()
        logger.error(f"Index {operation} of game {doc_id} failed, index is stale: {failure}")
        if self._strict:
            raise failure
        return False

    async def get_indexed(self, game_id: Union[uuid.UUID, str]) -> Optional[Game]:
        """Read one game back from the index, or None if it is not there."""
        doc_id = str(game_id)
        try:
            await self.index_manager.ensure_index()
            source = await self._timeout.execute(self._client.get, self.index_name, doc_id)
        except OperationTimeout as e:
            failure: Exception = QueryFailure(
                f"get of {doc_id} timed out after {e.timeout}s",
                details={"index": self.index_name, "doc_id": doc_id},
            )
            failure.__cause__ = e
        except (QueryFailure, IndexUnavailable) as e:
            failure = e
        else:
            if source is None:
                return None
            return self._mapper.from_source(source, doc_id=doc_id)

        logger.error(f"Get of indexed game {doc_id} failed: {failure}")
        if self._strict:
            raise failure
        return None

    async def refresh(self) -> None:
        await self.index_manager.refresh_index()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def search(
        self,
        query: str = "",
        genre: Optional[str] = None,
        platform: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> List[Game]:
        """Search the catalog.

        A blank query with no filters lists the whole catalog. Results are
        in relevance order; an index outage yields ``[]``.
        """
        request = SearchRequest(
            query=query or "",
            genre=genre,
            platform=platform,
            min_price=min_price,
            max_price=max_price,
            page=page,
            page_size=page_size,
        )
        return await self.search_request(request)

    async def search_request(self, request: SearchRequest) -> List[Game]:
        if self._max_page_size is not None and request.page_size > self._max_page_size:
            raise ValueError(
                f"page_size must be <= {self._max_page_size}, got {request.page_size}"
            )
        return await self.executor.search(
            build_search_query(request),
            page=request.page,
            page_size=request.page_size,
        )

    async def popular(self, count: int = 10) -> List[Game]:
        """Most purchased games, ties broken by views."""
        return await self.ranking.popular(count)

    async def recommend(self, user_id: Any, count: int = 10) -> List[Game]:
        """Placeholder: returns ``popular(count)`` regardless of ``user_id``."""
        return await self.recommendations.recommend(user_id, count)

    async def aggregate_by_genre(self) -> Dict[str, int]:
        """Games per genre; bounded to the bucket cap, see ``AggregationEngine``."""
        return await self.aggregations.aggregate_by("genre")

    async def aggregate_by_platform(self) -> Dict[str, int]:
        """Games per platform; bounded to the bucket cap, see ``AggregationEngine``."""
        return await self.aggregations.aggregate_by("platform")

    async def close(self) -> None:
        await self._client.close()


__all__ = ["GameSearchService"]
