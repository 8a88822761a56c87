"""Search Index Management.

Provides the game index mapping and the lifecycle manager that makes sure
the index exists before anything reads from or writes to it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from gamesearch.core.errors import IndexAlreadyExists, IndexUnavailable
from gamesearch.core.resilience.timeout import OperationTimeout, SimpleTimeout
from gamesearch.core.search.client import SearchClient
from gamesearch.utils.metrics import search_index_ready

logger = logging.getLogger(__name__)


class FieldType(str, Enum):
    TEXT = "text"
    KEYWORD = "keyword"
    INTEGER = "integer"
    DOUBLE = "double"
    DATE = "date"


@dataclass
class FieldMapping:
    """Type and analysis of one document field."""
    name: str
    field_type: FieldType
    analyzer: Optional[str] = None
    index: bool = True

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"type": self.field_type.value}
        if self.analyzer:
            body["analyzer"] = self.analyzer
        if not self.index:
            body["index"] = False
        return body


@dataclass
class IndexSettings:
    number_of_shards: int = 1
    number_of_replicas: int = 1
    refresh_interval: str = "1s"

    def to_dict(self) -> Dict[str, Any]:
        return {"index": {
            "number_of_shards": self.number_of_shards,
            "number_of_replicas": self.number_of_replicas,
            "refresh_interval": self.refresh_interval,
        }}


@dataclass
class IndexMapping:
    """Settings plus field mapping; ``to_dict`` is the create-index body.

    ``dynamic`` defaults to ``strict`` so a document carrying an unmapped
    field is rejected instead of silently growing the mapping.
    """
    fields: Dict[str, FieldMapping] = field(default_factory=dict)
    settings: IndexSettings = field(default_factory=IndexSettings)
    dynamic: str = "strict"

    def add_field(self, name: str, field_type: FieldType, **kwargs: Any) -> "IndexMapping":
        self.fields[name] = FieldMapping(name=name, field_type=field_type, **kwargs)
        return self

    def field_names(self) -> List[str]:
        return list(self.fields)

    def to_dict(self) -> Dict[str, Any]:
        properties = {name: mapping.to_dict() for name, mapping in self.fields.items()}
        return {
            "settings": self.settings.to_dict(),
            "mappings": {"dynamic": self.dynamic, "properties": properties},
        }


def create_game_index_mapping(
    number_of_shards: int = 1,
    number_of_replicas: int = 1,
) -> IndexMapping:
    """Create the index mapping for catalog games.

    ``price`` is a double used for range filters only. Keyword fields back
    term filters and aggregation buckets.
    """
    mapping = IndexMapping(settings=IndexSettings(number_of_shards, number_of_replicas))

    for name in ("title", "description"):
        mapping.add_field(name, FieldType.TEXT, analyzer="standard")
    for name in ("id", "image_url", "genre", "platform"):
        mapping.add_field(name, FieldType.KEYWORD)
    mapping.add_field("price", FieldType.DOUBLE)
    for name in ("view_count", "purchase_count"):
        mapping.add_field(name, FieldType.INTEGER)
    for name in ("created_at", "updated_at"):
        mapping.add_field(name, FieldType.DATE)

    return mapping


class IndexManager:
    """Lifecycle manager for one index.

    ``ensure_index`` is idempotent and safe to call concurrently: callers in
    the same process serialise on a lock, and a create that loses a race
    against another process is treated as success.
    """

    def __init__(
        self,
        client: SearchClient,
        name: str,
        mapping: IndexMapping,
        prefix: str = "",
        timeout: Optional[SimpleTimeout] = None,
    ):
        self._client = client
        self._name = name
        self._prefix = prefix
        self._mapping = mapping
        self._timeout = timeout or SimpleTimeout()
        self._ready = False
        self._lock: Optional[asyncio.Lock] = None

    @property
    def index_name(self) -> str:
        """Full index name with prefix."""
        return f"{self._prefix}{self._name}" if self._prefix else self._name

    @property
    def mapping(self) -> IndexMapping:
        return self._mapping

    @property
    def ready(self) -> bool:
        return self._ready

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def ensure_index(self) -> None:
        """Create the index with its mapping unless it already exists.

        Raises:
            IndexUnavailable: If existence cannot be checked or creation fails.
        """
        if self._ready:
            return

        async with self._get_lock():
            if self._ready:
                return

            full_name = self.index_name
            try:
                exists = await self._timeout.execute(self._client.index_exists, full_name)
                if exists:
                    logger.debug(f"Index {full_name} already exists")
                else:
                    await self._create(full_name)
            except OperationTimeout as e:
                search_index_ready.labels(index=full_name).set(0)
                logger.error(f"Index {full_name} unusable: {e}")
                raise IndexUnavailable(
                    f"Timed out preparing index {full_name}",
                    details={"index": full_name},
                ) from e
            except IndexUnavailable as e:
                search_index_ready.labels(index=full_name).set(0)
                logger.error(f"Index {full_name} unusable: {e}")
                raise

            self._ready = True
            search_index_ready.labels(index=full_name).set(1)

    async def _create(self, full_name: str) -> None:
        try:
            await self._timeout.execute(
                self._client.create_index, full_name, self._mapping.to_dict()
            )
            logger.info(f"Created index: {full_name}")
        except IndexAlreadyExists:
            logger.debug(f"Index {full_name} created concurrently by another caller")

    async def index_exists(self) -> bool:
        return await self._client.index_exists(self.index_name)

    def invalidate(self) -> None:
        """Forget readiness so the next ``ensure_index`` checks the engine again."""
        self._ready = False
        search_index_ready.labels(index=self.index_name).set(0)

    async def refresh_index(self) -> None:
        await self._client.refresh(self.index_name)


__all__ = [
    "FieldType",
    "FieldMapping",
    "IndexSettings",
    "IndexMapping",
    "IndexManager",
    "create_game_index_mapping",
]
