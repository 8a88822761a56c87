"""Canonical catalog entity as held by the system-of-record.

Two ways to obtain a ``Game``:

* ``Game.create(...)`` for a brand-new catalog item: fresh id, zeroed
  counters, ``created_at`` set to now and no ``updated_at``.
* ``Game.rehydrate(...)`` for an item that already exists elsewhere (a
  database row, an index document): every field, including id, counters and
  both timestamps, is supplied by the caller and validated like any other
  input.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TITLE_MAX_LENGTH = 100


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Game(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    id: uuid.UUID
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(min_length=1)
    price: Decimal = Field(ge=0, description="Exact monetary value")
    image_url: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    view_count: int = Field(default=0, ge=0)
    purchase_count: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _timestamps_ordered(self) -> "Game":
        if self.updated_at is not None and self.updated_at < self.created_at:
            raise ValueError("updated_at cannot precede created_at")
        return self

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        price: Decimal,
        image_url: Optional[str] = None,
        genre: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> "Game":
        return cls(
            id=uuid.uuid4(),
            title=title,
            description=description,
            price=price,
            image_url=image_url,
            genre=genre,
            platform=platform,
            view_count=0,
            purchase_count=0,
            created_at=utcnow(),
        )

    @classmethod
    def rehydrate(
        cls,
        *,
        id: uuid.UUID,
        title: str,
        description: str,
        price: Decimal,
        image_url: Optional[str],
        genre: Optional[str],
        platform: Optional[str],
        view_count: int,
        purchase_count: int,
        created_at: datetime,
        updated_at: Optional[datetime],
    ) -> "Game":
        """Rebuild a game from its full persisted state."""
        return cls(
            id=id,
            title=title,
            description=description,
            price=price,
            image_url=image_url,
            genre=genre,
            platform=platform,
            view_count=view_count,
            purchase_count=purchase_count,
            created_at=created_at,
            updated_at=updated_at,
        )

    def update(
        self,
        title: str,
        description: str,
        price: Decimal,
        image_url: Optional[str] = None,
        genre: Optional[str] = None,
        platform: Optional[str] = None,
    ) -> None:
        """Replace the editable fields and stamp ``updated_at``.

        The new state is validated as a whole before anything is assigned,
        so an invalid value leaves the game untouched.
        """
        changes = {
            "title": title,
            "description": description,
            "price": price,
            "image_url": image_url,
            "genre": genre,
            "platform": platform,
            "updated_at": utcnow(),
        }
        candidate = self.model_validate({**self.model_dump(), **changes})
        for name in changes:
            setattr(self, name, getattr(candidate, name))

    def increment_view_count(self) -> None:
        self.view_count += 1

    def increment_purchase_count(self) -> None:
        self.purchase_count += 1


__all__ = ["Game", "TITLE_MAX_LENGTH", "utcnow"]
