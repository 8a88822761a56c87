"""Index-side projection of a ``Game``.

Field typing follows the index mapping rather than the entity: ``price`` is a
float and is only good for range filters. Monetary values shown to users are
always read from the system-of-record.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class GameDocument(BaseModel):
    id: str = Field(description="Same identity as the entity, as a string key")
    title: str
    description: str
    price: float = Field(description="Lossy float copy of the entity price")
    image_url: Optional[str] = None
    genre: Optional[str] = None
    platform: Optional[str] = None
    view_count: int = 0
    purchase_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    def to_source(self) -> Dict[str, Any]:
        """Return the JSON body stored in the index. Null fields are omitted."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_source(cls, source: Dict[str, Any]) -> "GameDocument":
        return cls.model_validate(source)


__all__ = ["GameDocument"]
