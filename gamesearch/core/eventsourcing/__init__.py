"""Domain event log for the catalog."""

from gamesearch.core.eventsourcing.store import (
    GAME_AGGREGATE,
    SEARCH_AGGREGATE,
    GameEventType,
    Event,
    ConcurrencyError,
    EventStore,
    InMemoryEventStore,
    create_event,
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
