import os
from decimal import Decimal

import pytest
import pytest_asyncio

from gamesearch.core.config import reset_settings


# Environment variables that tests may set
_ENV_VARS_TO_ISOLATE = [
    "LOG_LEVEL",
    "LOG_JSON",
    "SERVICE_NAME",
    "ELASTICSEARCH_URL",
    "SEARCH_BACKEND",
    "SEARCH_INDEX_NAME",
    "SEARCH_INDEX_PREFIX",
    "SEARCH_TIMEOUT_SECONDS",
    "SEARCH_STRICT_MODE",
    "SEARCH_MAX_PAGE_SIZE",
    "AGGREGATION_MAX_BUCKETS",
]


@pytest.fixture(autouse=True)
def env_isolation():
    """Isolate environment variables and cached settings between tests."""
    backup = {k: os.environ.get(k) for k in _ENV_VARS_TO_ISOLATE}
    reset_settings()
    try:
        yield
    finally:
        for k, v in backup.items():
            if v is None:
                os.environ.pop(k, None)
            else:
                os.environ[k] = v
        reset_settings()


@pytest.fixture
def memory_client():
    from gamesearch.core.search.client import InMemorySearchClient

    return InMemorySearchClient()


@pytest.fixture
def search_service(memory_client):
    from gamesearch.core.search.service import GameSearchService

    return GameSearchService(memory_client, index_name="games-test")


@pytest.fixture
def strict_search_service(memory_client):
    from gamesearch.core.search.service import GameSearchService

    return GameSearchService(memory_client, index_name="games-test", strict=True)


@pytest.fixture
def scenario_games():
    """Witcher, Cyberpunk and FIFA with purchase counts 5, 10 and 1."""
    from gamesearch.models.game import Game

    witcher = Game.create(
        title="The Witcher 3",
        description="RPG épico de mundo aberto",
        price=Decimal("149.90"),
        genre="RPG",
        platform="PC",
    )
    cyberpunk = Game.create(
        title="Cyberpunk 2077",
        description="RPG futurista em Night City",
        price=Decimal("199.90"),
        genre="RPG",
        platform="PC",
    )
    fifa = Game.create(
        title="FIFA 24",
        description="Simulador de futebol",
        price=Decimal("299.90"),
        genre="Esporte",
        platform="PlayStation",
    )
    witcher.purchase_count = 5
    cyberpunk.purchase_count = 10
    fifa.purchase_count = 1
    return {"witcher": witcher, "cyberpunk": cyberpunk, "fifa": fifa}


@pytest_asyncio.fixture
async def indexed_service(search_service, scenario_games):
    """Search service with the three scenario games indexed."""
    for game in scenario_games.values():
        assert await search_service.index_entity(game) is True
    return search_service
