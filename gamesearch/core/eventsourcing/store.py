"""Catalog event log.

Audit trail of what happened to games and which searches were run. Each
aggregate (a game, or the single ``"search"`` aggregate) has its own stream
numbered from 1. Events are also kept in one global append order so that a
consumer can page through everything.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

GAME_AGGREGATE = "game"
SEARCH_AGGREGATE = "search"


class GameEventType(str, Enum):
    CREATED = "game.created"
    UPDATED = "game.updated"
    VIEWED = "game.viewed"
    PURCHASED = "game.purchased"
    SEARCHED = "game.searched"


@dataclass
class Event:
    """One recorded fact. ``version`` is assigned by the store on append."""
    event_id: str
    event_type: str
    aggregate_id: str
    aggregate_type: str
    data: Dict[str, Any]
    metadata: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["timestamp"] = self.timestamp.isoformat()
        return payload

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Event":
        values = dict(payload)
        values["timestamp"] = datetime.fromisoformat(values["timestamp"])
        values.setdefault("metadata", {})
        values.setdefault("version", 0)
        return cls(**values)


class ConcurrencyError(Exception):
    """Raised when an append was based on an outdated stream version."""


class EventStore(ABC):
    """Append-only store of catalog events."""

    @abstractmethod
    async def append(
        self,
        aggregate_id: str,
        aggregate_type: str,
        events: Sequence[Event],
        expected_version: Optional[int] = None,
    ) -> int:
        """Append ``events`` to one stream and return its new version.

        Raises:
            ConcurrencyError: If ``expected_version`` is given and differs
                from the stream's current version.
        """
        pass

    @abstractmethod
    async def get_stream(
        self,
        aggregate_id: str,
        aggregate_type: str,
        from_version: int = 0,
    ) -> List[Event]:
        """Events of one stream, oldest first."""
        pass

    @abstractmethod
    async def get_all_events(
        self,
        from_position: int = 0,
        batch_size: int = 100,
        event_types: Optional[List[str]] = None,
    ) -> List[Event]:
        """Events of every stream in append order."""
        pass


class InMemoryEventStore(EventStore):
    """Event store kept in process memory, for tests and development."""

    def __init__(self):
        self._streams: Dict[Tuple[str, str], List[Event]] = {}
        self._log: List[Event] = []
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def append(
        self,
        aggregate_id: str,
        aggregate_type: str,
        events: Sequence[Event],
        expected_version: Optional[int] = None,
    ) -> int:
        async with self._get_lock():
            stream = self._streams.setdefault((aggregate_type, aggregate_id), [])
            if expected_version is not None and expected_version != len(stream):
                raise ConcurrencyError(
                    f"{aggregate_type}/{aggregate_id} is at version {len(stream)}, "
                    f"expected {expected_version}"
                )

            for event in events:
                event.aggregate_id = aggregate_id
                event.aggregate_type = aggregate_type
                event.version = len(stream) + 1
                stream.append(event)
                self._log.append(event)

            logger.debug(f"Appended {len(events)} event(s) to {aggregate_type}/{aggregate_id}")
            return len(stream)

    async def get_stream(
        self,
        aggregate_id: str,
        aggregate_type: str,
        from_version: int = 0,
    ) -> List[Event]:
        async with self._get_lock():
            stream = self._streams.get((aggregate_type, aggregate_id), [])
            return [event for event in stream if event.version >= from_version]

    async def get_all_events(
        self,
        from_position: int = 0,
        batch_size: int = 100,
        event_types: Optional[List[str]] = None,
    ) -> List[Event]:
        async with self._get_lock():
            selected = self._log[from_position:]
            if event_types:
                selected = [event for event in selected if event.event_type in event_types]
            return selected[:batch_size]


def create_event(
    event_type: Union[GameEventType, str],
    aggregate_id: str,
    aggregate_type: str,
    data: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> Event:
    """Build an event with a fresh id and the current UTC time."""
    if isinstance(event_type, GameEventType):
        event_type = event_type.value
    return Event(
        event_id=str(uuid.uuid4()),
        event_type=event_type,
        aggregate_id=aggregate_id,
        aggregate_type=aggregate_type,
        data=data,
        metadata=metadata or {},
    )


__all__ = [
    "GAME_AGGREGATE",
    "SEARCH_AGGREGATE",
    "GameEventType",
    "Event",
    "ConcurrencyError",
    "EventStore",
    "InMemoryEventStore",
    "create_event",
]
