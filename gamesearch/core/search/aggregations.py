"""Search Aggregations.

Terms bucketing of the catalog by genre or platform.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from gamesearch.core.search.executor import SearchExecutor
from gamesearch.core.search.query import match_all

logger = logging.getLogger(__name__)

AGGREGATABLE_FIELDS = ("genre", "platform")
DEFAULT_MAX_BUCKETS = 50


@dataclass
class TermsAggregation:
    """Terms bucket aggregation."""

    name: str
    field: str
    size: int = 10

    def to_dict(self) -> Dict[str, Any]:
        return {self.name: {"terms": {"field": self.field, "size": self.size}}}


class AggregationEngine:
    """Counts indexed games per distinct value of a keyword field.

    Results are bounded and may be approximate: at most ``max_buckets``
    values are returned (most frequent first) and any further values are
    dropped silently. On a sharded index the per-shard top-N collection of
    a terms aggregation can also make counts slightly inexact.
    """

    def __init__(self, executor: SearchExecutor, max_buckets: int = DEFAULT_MAX_BUCKETS):
        if max_buckets < 1:
            raise ValueError(f"max_buckets must be >= 1, got {max_buckets}")
        self._executor = executor
        self._max_buckets = max_buckets

    @property
    def max_buckets(self) -> int:
        return self._max_buckets

    async def aggregate_by(
        self,
        field: str,
        max_buckets: Optional[int] = None,
        query: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, int]:
        """Map each distinct ``field`` value to its document count.

        Documents without the field are not counted. A failed request yields
        an empty mapping.
        """
        if field not in AGGREGATABLE_FIELDS:
            raise ValueError(
                f"Cannot aggregate on {field!r}; expected one of {AGGREGATABLE_FIELDS}"
            )

        size = self._max_buckets if max_buckets is None else max_buckets
        if not 1 <= size <= self._max_buckets:
            raise ValueError(f"max_buckets must be between 1 and {self._max_buckets}")

        agg_name = f"by_{field}"
        result = await self._executor.execute(
            query or match_all(),
            size=0,
            aggregations=TermsAggregation(name=agg_name, field=field, size=size).to_dict(),
            operation=f"aggregate_{field}",
        )
        if result is None or not result.aggregations:
            return {}

        agg = result.aggregations.get(agg_name, {})
        dropped = agg.get("sum_other_doc_count", 0)
        if dropped:
            logger.debug(f"{dropped} documents fell outside the top {size} {field} buckets")

        return {
            str(bucket["key"]): int(bucket["doc_count"])
            for bucket in agg.get("buckets", [])
        }


__all__ = ["AGGREGATABLE_FIELDS", "AggregationEngine", "TermsAggregation"]
