"""Conversion between ``Game`` entities and index documents."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import ValidationError

from gamesearch.core.errors import MappingInconsistency
from gamesearch.models.game import Game
from gamesearch.models.game_document import GameDocument

logger = logging.getLogger(__name__)


class DocumentMapper:
    """Bidirectional mapper between the entity and its index document.

    ``to_document`` is total: every entity field has a target field and
    nullable fields become absent keys in the stored source. ``to_entity``
    rebuilds the full entity state through ``Game.rehydrate`` and refuses to
    return a partially populated entity.
    """

    def to_document(self, game: Game) -> GameDocument:
        return GameDocument(
            id=str(game.id),
            title=game.title,
            description=game.description,
            price=float(game.price),
            image_url=game.image_url,
            genre=game.genre,
            platform=game.platform,
            view_count=game.view_count,
            purchase_count=game.purchase_count,
            created_at=game.created_at,
            updated_at=game.updated_at,
        )

    def to_source(self, game: Game) -> Dict[str, Any]:
        return self.to_document(game).to_source()

    def to_entity(self, document: GameDocument) -> Game:
        try:
            return Game.rehydrate(
                id=uuid.UUID(document.id),
                title=document.title,
                description=document.description,
                # Approximation only; the exact price lives in the system-of-record
                price=Decimal(str(document.price)),
                image_url=document.image_url,
                genre=document.genre,
                platform=document.platform,
                view_count=document.view_count,
                purchase_count=document.purchase_count,
                created_at=document.created_at,
                updated_at=document.updated_at,
            )
        except (ValueError, ValidationError) as e:
            raise MappingInconsistency(
                f"Document {document.id} cannot be rebuilt into a game: {e}",
                details={"doc_id": document.id},
            ) from e

    def from_source(
        self,
        source: Dict[str, Any],
        doc_id: Optional[str] = None,
    ) -> Game:
        """Rebuild an entity from a raw ``_source`` body.

        ``doc_id`` is the engine's ``_id`` for the hit; when given it must
        agree with the ``id`` field stored in the body.
        """
        try:
            document = GameDocument.from_source(source)
        except ValidationError as e:
            raise MappingInconsistency(
                f"Index document {doc_id or '?'} does not match the game schema: {e}",
                details={"doc_id": doc_id},
            ) from e

        if doc_id is not None and doc_id != document.id:
            raise MappingInconsistency(
                f"Index key {doc_id} does not match stored id {document.id}",
                details={"doc_id": doc_id, "stored_id": document.id},
            )

        return self.to_entity(document)


__all__ = ["DocumentMapper"]
