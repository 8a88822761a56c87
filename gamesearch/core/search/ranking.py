"""Popularity ranking and the recommendation fallback."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from gamesearch.core.search.executor import SearchExecutor
from gamesearch.core.search.query import match_all
from gamesearch.models.game import Game

logger = logging.getLogger(__name__)

# Purchases first, views break ties; remaining ties keep engine order
POPULAR_SORT: List[Dict[str, Any]] = [
    {"purchase_count": {"order": "desc"}},
    {"view_count": {"order": "desc"}},
]


class RankingPolicy:
    """Orders the catalog by popularity."""

    def __init__(self, executor: SearchExecutor):
        self._executor = executor

    async def popular(self, count: int) -> List[Game]:
        """Top ``count`` games by purchases, then views."""
        if count < 0:
            raise ValueError(f"count must be >= 0, got {count}")
        if count == 0:
            return []

        return await self._executor.search(
            match_all(),
            page=1,
            page_size=count,
            sort=POPULAR_SORT,
            operation="popular",
        )


class RecommendationFallback:
    """Placeholder recommender.

    Personalised recommendations are not implemented; every user gets the
    popular list. ``user_id`` is accepted so callers already pass it.
    """

    def __init__(self, ranking: RankingPolicy):
        self._ranking = ranking

    async def recommend(self, user_id: Any, count: int) -> List[Game]:
        logger.debug(f"Recommendations for {user_id} fall back to popular games")
        return await self._ranking.popular(count)


__all__ = ["POPULAR_SORT", "RankingPolicy", "RecommendationFallback"]
