"""Catalog application service.

Every mutation is a dual write: the repository is written first and is the
source of truth, then the search index is updated as a best-effort mirror,
then a domain event is appended. There is no transaction spanning the three.
A failed index write is logged by the search service and left for the next
write of the same game or for ``reindex_all``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional, Tuple

from gamesearch.catalog.repository import GameRepository
from gamesearch.catalog.schemas import CreateGameRequest, UpdateGameRequest
from gamesearch.core.errors import SearchError
from gamesearch.core.eventsourcing.store import (
    GAME_AGGREGATE,
    SEARCH_AGGREGATE,
    Event,
    EventStore,
    GameEventType,
    create_event,
)
from gamesearch.core.search.query import SearchRequest
from gamesearch.core.search.service import GameSearchService
from gamesearch.models.game import Game, utcnow

logger = logging.getLogger(__name__)


class GameNotFound(LookupError):
    """Raised when a game id is unknown to the system-of-record."""

    def __init__(self, game_id: Any):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class CatalogService:
    """Create, update, view, purchase and search catalog games."""

    def __init__(
        self,
        repository: GameRepository,
        search: GameSearchService,
        events: EventStore,
    ):
        self._repository = repository
        self._search = search
        self._events = events

    async def _emit(
        self,
        event_type: GameEventType,
        aggregate_id: str,
        data: Dict[str, Any],
        aggregate_type: str = GAME_AGGREGATE,
    ) -> None:
        event = create_event(event_type, aggregate_id, aggregate_type, data)
        await self._events.append(aggregate_id, aggregate_type, [event])

    async def _load(self, game_id: uuid.UUID) -> Game:
        game = await self._repository.get(game_id)
        if game is None:
            raise GameNotFound(game_id)
        return game

    async def create_game(self, request: CreateGameRequest) -> Game:
        game = Game.create(
            title=request.title,
            description=request.description,
            price=request.price,
            image_url=request.image_url,
            genre=request.genre,
            platform=request.platform,
        )
        await self._repository.add(game)
        await self._search.index_entity(game)

        await self._emit(GameEventType.CREATED, str(game.id), {
            "id": str(game.id),
            "title": game.title,
            "description": game.description,
            "price": str(game.price),
            "image_url": game.image_url,
            "genre": game.genre,
            "platform": game.platform,
            "created_at": game.created_at.isoformat(),
        })
        logger.info(f"Game created: {game.id} - {game.title}")
        return game

    async def update_game(self, game_id: uuid.UUID, request: UpdateGameRequest) -> Game:
        game = await self._load(game_id)
        game.update(
            title=request.title,
            description=request.description,
            price=request.price,
            image_url=request.image_url,
            genre=request.genre,
            platform=request.platform,
        )
        await self._repository.update(game)
        await self._search.update_entity(game)

        await self._emit(GameEventType.UPDATED, str(game.id), {
            "id": str(game.id),
            "title": game.title,
            "description": game.description,
            "price": str(game.price),
            "updated_at": game.updated_at.isoformat() if game.updated_at else None,
        })
        logger.info(f"Game updated: {game.id}")
        return game

    async def get_game(self, game_id: uuid.UUID) -> Game:
        """Load a game and count the view."""
        game = await self._load(game_id)
        game.increment_view_count()
        await self._repository.update(game)
        await self._search.update_entity(game)

        await self._emit(GameEventType.VIEWED, str(game.id), {
            "id": str(game.id),
            "title": game.title,
            "viewed_at": utcnow().isoformat(),
        })
        return game

    async def record_purchase(self, game_id: uuid.UUID) -> Game:
        game = await self._load(game_id)
        game.increment_purchase_count()
        await self._repository.update(game)
        await self._search.update_entity(game)

        await self._emit(GameEventType.PURCHASED, str(game.id), {
            "id": str(game.id),
            "title": game.title,
            "purchase_count": game.purchase_count,
            "purchased_at": utcnow().isoformat(),
        })
        logger.info(f"Purchase recorded for game {game.id}")
        return game

    async def list_games(self) -> List[Game]:
        return await self._repository.list()

    async def search_games(self, request: SearchRequest) -> List[Game]:
        games = await self._search.search_request(request)

        await self._emit(
            GameEventType.SEARCHED,
            SEARCH_AGGREGATE,
            {
                "query": request.query,
                "results_count": len(games),
                "searched_at": utcnow().isoformat(),
            },
            aggregate_type=SEARCH_AGGREGATE,
        )
        return games

    async def popular_games(self, count: int = 10) -> List[Game]:
        return await self._search.popular(count)

    async def recommendations(self, user_id: Any, count: int = 10) -> List[Game]:
        """Placeholder: everyone gets the popular list until per-user data exists."""
        return await self._search.recommend(user_id, count)

    async def games_by_genre(self) -> Dict[str, int]:
        return await self._search.aggregate_by_genre()

    async def games_by_platform(self) -> Dict[str, int]:
        return await self._search.aggregate_by_platform()

    async def reindex_all(self) -> Tuple[int, int]:
        """Mirror every stored game into the index again.

        Reconciles documents left stale by failed writes. Returns
        ``(indexed, failed)``.
        """
        indexed = failed = 0
        for game in await self._repository.list():
            try:
                ok = await self._search.update_entity(game)
            except SearchError as e:
                logger.error(f"Reindex of game {game.id} failed: {e}")
                ok = False
            if ok:
                indexed += 1
            else:
                failed += 1

        logger.info(f"Reindex finished: {indexed} indexed, {failed} failed")
        return indexed, failed

    async def get_events(
        self,
        aggregate_id: str,
        aggregate_type: Optional[str] = None,
    ) -> List[Event]:
        """Event stream of a game, or of searches when ``aggregate_id`` is "search"."""
        aggregate_id = str(aggregate_id)
        if aggregate_type is None:
            aggregate_type = SEARCH_AGGREGATE if aggregate_id == SEARCH_AGGREGATE else GAME_AGGREGATE
        return await self._events.get_stream(aggregate_id, aggregate_type)


__all__ = ["CatalogService", "GameNotFound"]
