"""Request and response models for catalog operations."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from gamesearch.models.game import TITLE_MAX_LENGTH, Game


class CreateGameRequest(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    image_url: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None


class UpdateGameRequest(CreateGameRequest):
    """Full replacement of a game's editable fields."""


class GameResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    price: Decimal
    image_url: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    view_count: int
    purchase_count: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, game: Game) -> "GameResponse":
        return cls(**game.model_dump())


__all__ = ["CreateGameRequest", "UpdateGameRequest", "GameResponse"]
