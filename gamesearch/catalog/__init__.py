"""Catalog application layer: system-of-record, dual writes and events."""

from gamesearch.catalog.repository import GameRepository, InMemoryGameRepository
from gamesearch.catalog.schemas import CreateGameRequest, GameResponse, UpdateGameRequest
from gamesearch.catalog.service import CatalogService, GameNotFound

__all__ = [
    "GameRepository",
    "InMemoryGameRepository",
    "CreateGameRequest",
    "UpdateGameRequest",
    "GameResponse",
    "CatalogService",
    "GameNotFound",
]
