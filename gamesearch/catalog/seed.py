"""Demo catalog used for local development."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from gamesearch.catalog.schemas import CreateGameRequest
from gamesearch.catalog.service import CatalogService
from gamesearch.models.game import Game

logger = logging.getLogger(__name__)

DEMO_GAMES = [
    CreateGameRequest(
        title="The Witcher 3",
        description="RPG épico de mundo aberto",
        price=Decimal("149.90"),
        image_url="https://example.com/witcher3.jpg",
        genre="RPG",
        platform="PC",
    ),
    CreateGameRequest(
        title="Cyberpunk 2077",
        description="RPG futurista em Night City",
        price=Decimal("199.90"),
        image_url="https://example.com/cyberpunk.jpg",
        genre="RPG",
        platform="PC",
    ),
    CreateGameRequest(
        title="FIFA 24",
        description="Simulador de futebol",
        price=Decimal("299.90"),
        image_url="https://example.com/fifa24.jpg",
        genre="Esporte",
        platform="PlayStation",
    ),
    CreateGameRequest(
        title="Call of Duty",
        description="Shooter em primeira pessoa",
        price=Decimal("249.90"),
        image_url="https://example.com/cod.jpg",
        genre="FPS",
        platform="Xbox",
    ),
    CreateGameRequest(
        title="Minecraft",
        description="Jogo de construção e sobrevivência",
        price=Decimal("79.90"),
        image_url="https://example.com/minecraft.jpg",
        genre="Sandbox",
        platform="PC",
    ),
]


async def seed_catalog(catalog: CatalogService) -> List[Game]:
    """Create the demo games unless the catalog already has content."""
    if await catalog.list_games():
        logger.info("Catalog not empty, skipping seed")
        return []

    created = [await catalog.create_game(request) for request in DEMO_GAMES]
    logger.info(f"Seeded {len(created)} demo games")
    return created


__all__ = ["DEMO_GAMES", "seed_catalog"]
