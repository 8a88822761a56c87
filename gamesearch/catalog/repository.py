"""System-of-record boundary for catalog games."""

from __future__ import annotations

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from gamesearch.models.game import Game


class GameRepository(ABC):
    """Durable store of the canonical ``Game`` entities.

    The search index is only a mirror of what this store holds; monetary
    values and counters are always read from here.
    """

    @abstractmethod
    async def get(self, game_id: uuid.UUID) -> Optional[Game]:
        """Load a game by ID, or None if unknown."""
        pass

    @abstractmethod
    async def add(self, game: Game) -> None:
        """Persist a new game."""
        pass

    @abstractmethod
    async def update(self, game: Game) -> None:
        """Persist changes to an existing game.

        Raises:
            KeyError: If the game was never added.
        """
        pass

    @abstractmethod
    async def list(self) -> List[Game]:
        """All games in insertion order."""
        pass


class InMemoryGameRepository(GameRepository):
    """In-memory repository for testing and development.

    Stores copies so callers cannot mutate persisted state without ``update``.
    """

    def __init__(self):
        self._games: Dict[uuid.UUID, Game] = {}
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def get(self, game_id: uuid.UUID) -> Optional[Game]:
        async with self._get_lock():
            game = self._games.get(game_id)
            return game.model_copy(deep=True) if game else None

    async def add(self, game: Game) -> None:
        async with self._get_lock():
            if game.id in self._games:
                raise ValueError(f"Game {game.id} already exists")
            self._games[game.id] = game.model_copy(deep=True)

    async def update(self, game: Game) -> None:
        async with self._get_lock():
            if game.id not in self._games:
                raise KeyError(str(game.id))
            self._games[game.id] = game.model_copy(deep=True)

    async def list(self) -> List[Game]:
        async with self._get_lock():
            return [game.model_copy(deep=True) for game in self._games.values()]


__all__ = ["GameRepository", "InMemoryGameRepository"]
