"""Tests for the catalog application service."""

import uuid
from decimal import Decimal

import pytest
from pydantic import ValidationError

from gamesearch.catalog.repository import InMemoryGameRepository
from gamesearch.catalog.schemas import CreateGameRequest, GameResponse, UpdateGameRequest
from gamesearch.catalog.seed import DEMO_GAMES, seed_catalog
from gamesearch.catalog.service import CatalogService, GameNotFound
from gamesearch.core.errors import IndexUnavailable, WriteFailure
from gamesearch.core.eventsourcing.store import GameEventType, InMemoryEventStore
from gamesearch.core.search.query import SearchRequest


@pytest.fixture
def repository():
    return InMemoryGameRepository()


@pytest.fixture
def events():
    return InMemoryEventStore()


@pytest.fixture
def catalog(repository, search_service, events):
    return CatalogService(repository, search_service, events)


def _request(**overrides):
    data = {
        "title": "The Witcher 3",
        "description": "RPG épico de mundo aberto",
        "price": Decimal("149.90"),
        "genre": "RPG",
        "platform": "PC",
    }
    data.update(overrides)
    return CreateGameRequest(**data)


class TestSchemas:
    """Tests for request and response models."""

    @pytest.mark.parametrize("overrides", [
        {"title": ""},
        {"title": "x" * 101},
        {"description": ""},
        {"price": Decimal("-1")},
    ])
    def test_create_request_validation(self, overrides):
        """Test invalid create requests are rejected."""
        with pytest.raises(ValidationError):
            _request(**overrides)

    @pytest.mark.asyncio
    async def test_response_from_entity(self, catalog):
        """Test response mirrors the entity."""
        game = await catalog.create_game(_request())
        response = GameResponse.from_entity(game)

        assert response.id == game.id
        assert response.price == Decimal("149.90")
        assert response.view_count == 0


class TestCatalogService:
    """Tests for CatalogService dual writes and events."""

    @pytest.mark.asyncio
    async def test_create_persists_indexes_and_emits(self, catalog, search_service, repository):
        """Test create writes store, index and event log."""
        game = await catalog.create_game(_request())

        assert (await repository.get(game.id)).title == "The Witcher 3"
        assert (await search_service.get_indexed(game.id)).title == "The Witcher 3"

        stream = await catalog.get_events(str(game.id))
        assert [e.event_type for e in stream] == [GameEventType.CREATED.value]
        assert stream[0].data["price"] == "149.90"
        assert stream[0].data["genre"] == "RPG"
        assert stream[0].version == 1

    @pytest.mark.asyncio
    async def test_create_survives_index_write_failure(
        self, catalog, memory_client, repository,
    ):
        """Test the entity is stored even when the index rejects the write."""
        memory_client.fail_on("index", WriteFailure("rejected"))

        game = await catalog.create_game(_request())

        assert await repository.get(game.id) is not None
        memory_client.clear_failures()
        assert await catalog.search_games(SearchRequest(query="Witcher")) == []

    @pytest.mark.asyncio
    async def test_update(self, catalog, search_service):
        """Test update replaces fields in store and index."""
        game = await catalog.create_game(_request())

        updated = await catalog.update_game(game.id, UpdateGameRequest(
            title="The Witcher 3: Wild Hunt",
            description="Edição completa",
            price=Decimal("99.90"),
            genre="RPG",
        ))

        assert updated.updated_at is not None
        indexed = await search_service.get_indexed(game.id)
        assert indexed.title == "The Witcher 3: Wild Hunt"
        assert indexed.platform is None

        stream = await catalog.get_events(game.id)
        assert [e.event_type for e in stream] == ["game.created", "game.updated"]
        assert stream[1].data["price"] == "99.90"

    @pytest.mark.asyncio
    async def test_unknown_game(self, catalog):
        """Test operations on unknown ids raise GameNotFound."""
        missing = uuid.uuid4()

        with pytest.raises(GameNotFound):
            await catalog.get_game(missing)
        with pytest.raises(GameNotFound):
            await catalog.record_purchase(missing)
        with pytest.raises(GameNotFound):
            await catalog.update_game(missing, UpdateGameRequest(
                title="x", description="y", price=Decimal("1"),
            ))

    @pytest.mark.asyncio
    async def test_get_counts_view(self, catalog, repository, search_service):
        """Test viewing increments the counter everywhere."""
        game = await catalog.create_game(_request())

        await catalog.get_game(game.id)
        viewed = await catalog.get_game(game.id)

        assert viewed.view_count == 2
        assert (await repository.get(game.id)).view_count == 2
        assert (await search_service.get_indexed(game.id)).view_count == 2
        stream = await catalog.get_events(game.id)
        assert [e.event_type for e in stream].count("game.viewed") == 2

    @pytest.mark.asyncio
    async def test_purchases_drive_popularity(self, catalog):
        """Test recorded purchases order the popular list."""
        witcher = await catalog.create_game(_request())
        cyberpunk = await catalog.create_game(_request(title="Cyberpunk 2077"))
        for _ in range(2):
            await catalog.record_purchase(cyberpunk.id)
        await catalog.record_purchase(witcher.id)

        popular = await catalog.popular_games(2)
        recommended = await catalog.recommendations(uuid.uuid4(), 2)

        assert [g.id for g in popular] == [cyberpunk.id, witcher.id]
        assert [g.id for g in recommended] == [cyberpunk.id, witcher.id]
        stream = await catalog.get_events(cyberpunk.id)
        assert stream[-1].data["purchase_count"] == 2

    @pytest.mark.asyncio
    async def test_search_emits_event(self, catalog):
        """Test searches are recorded under the search aggregate."""
        await catalog.create_game(_request())

        results = await catalog.search_games(SearchRequest(query="Witcher"))

        assert len(results) == 1
        stream = await catalog.get_events("search")
        assert stream[0].event_type == "game.searched"
        assert stream[0].data["query"] == "Witcher"
        assert stream[0].data["results_count"] == 1

    @pytest.mark.asyncio
    async def test_list_reads_system_of_record(self, catalog, memory_client):
        """Test list_games does not depend on the index."""
        await catalog.create_game(_request())
        memory_client.fail_on("search", IndexUnavailable("down"))

        assert len(await catalog.list_games()) == 1

    @pytest.mark.asyncio
    async def test_reindex_all_repairs_stale_documents(
        self, catalog, memory_client, search_service,
    ):
        """Test reindex mirrors every stored game again."""
        memory_client.fail_on("index", WriteFailure("rejected"))
        first = await catalog.create_game(_request())
        second = await catalog.create_game(_request(title="FIFA 24", genre="Esporte"))

        assert await catalog.reindex_all() == (0, 2)

        memory_client.clear_failures()
        assert await catalog.reindex_all() == (2, 0)
        assert (await search_service.get_indexed(first.id)).id == first.id
        assert (await search_service.get_indexed(second.id)).genre == "Esporte"
        assert await catalog.games_by_genre() == {"RPG": 1, "Esporte": 1}
        assert await catalog.games_by_platform() == {"PC": 2}


class TestSeed:
    """Tests for the demo seed."""

    @pytest.mark.asyncio
    async def test_seed_once(self, catalog):
        """Test the seed fills an empty catalog only."""
        created = await seed_catalog(catalog)
        again = await seed_catalog(catalog)

        assert len(created) == len(DEMO_GAMES) == 5
        assert again == []
        assert await catalog.games_by_genre() == {
            "RPG": 2, "Esporte": 1, "FPS": 1, "Sandbox": 1,
        }
        assert [g.title for g in await catalog.search_games(SearchRequest(query="Witcher"))] == [
            "The Witcher 3"
        ]
