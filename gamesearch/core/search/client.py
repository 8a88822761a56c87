"""Search Client Implementation.

Provides the Elasticsearch client used in production and an in-memory
engine used by tests and local development. Both raise the typed failures
from ``gamesearch.core.errors``; deciding whether a failure degrades or
propagates is left to the callers.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from elasticsearch import (
    ApiError,
    AsyncElasticsearch,
    BadRequestError,
    NotFoundError,
    TransportError,
)

from gamesearch.core.errors import (
    IndexAlreadyExists,
    IndexUnavailable,
    QueryFailure,
    SearchError,
    WriteFailure,
)

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (ApiError, TransportError)


@dataclass
class SearchHit:
    """A search result hit."""
    id: str
    index: str
    score: float
    source: Dict[str, Any]


@dataclass
class SearchResult:
    """Search result container."""
    hits: List[SearchHit]
    total: int
    max_score: Optional[float] = None
    took_ms: int = 0
    aggregations: Optional[Dict[str, Any]] = None


class SearchClient(ABC):
    """Abstract base class for search clients.

    One instance is the shared handle to the engine. Each call is a single
    self-contained request, so concurrent use needs no locking on our side.
    """

    @abstractmethod
    async def index_exists(self, index: str) -> bool:
        """Check whether an index exists.

        Raises:
            IndexUnavailable: If the engine cannot be asked.
        """
        pass

    @abstractmethod
    async def create_index(self, index: str, body: Dict[str, Any]) -> None:
        """Create an index with the given settings and mappings.

        Raises:
            IndexAlreadyExists: If another caller created it first.
            IndexUnavailable: On any other failure.
        """
        pass

    @abstractmethod
    async def refresh(self, index: str) -> None:
        """Make recent writes visible to search."""
        pass

    @abstractmethod
    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        """Create or fully replace a document.

        Args:
            index: Index name
            doc_id: Document ID
            document: Document body
            refresh: Whether to wait for the write to become searchable

        Raises:
            WriteFailure: If the engine rejects the write.
        """
        pass

    @abstractmethod
    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document source by ID, or None when absent."""
        pass

    @abstractmethod
    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        from_: int = 0,
        size: int = 10,
        sort: Optional[List[Dict[str, Any]]] = None,
        aggregations: Optional[Dict[str, Any]] = None,
    ) -> SearchResult:
        """Search for documents.

        Args:
            index: Index name
            query: Query DSL
            from_: Start offset
            size: Number of results
            sort: Sort specification
            aggregations: Aggregations

        Raises:
            QueryFailure: If the request cannot be executed.
        """
        pass

    @abstractmethod
    async def count(self, index: str, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching ``query`` (all documents when omitted)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the client connection."""
        pass


def _error_type(error: Exception) -> Optional[str]:
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        detail = body.get("error")
        if isinstance(detail, dict):
            return detail.get("type")
    return None


class ElasticsearchClient(SearchClient):
    """Elasticsearch client implementation."""

    def __init__(
        self,
        hosts: Optional[List[str]] = None,
        cloud_id: Optional[str] = None,
        api_key: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        request_timeout: Optional[float] = None,
        client: Optional[AsyncElasticsearch] = None,
    ):
        self.hosts = hosts or ["http://localhost:9200"]
        self.cloud_id = cloud_id
        self.api_key = api_key
        self.username = username
        self.password = password
        self.request_timeout = request_timeout

        self._client: Optional[AsyncElasticsearch] = client

    @classmethod
    def from_settings(cls, settings: Any) -> "ElasticsearchClient":
        return cls(
            hosts=[settings.ELASTICSEARCH_URL],
            cloud_id=settings.ELASTICSEARCH_CLOUD_ID,
            api_key=settings.ELASTICSEARCH_API_KEY,
            username=settings.ELASTICSEARCH_USERNAME,
            password=settings.ELASTICSEARCH_PASSWORD,
            request_timeout=settings.SEARCH_TIMEOUT_SECONDS,
        )

    def _get_client(self) -> AsyncElasticsearch:
        """Get or create the underlying Elasticsearch client."""
        if self._client is None:
            kwargs: Dict[str, Any] = {}

            if self.cloud_id:
                kwargs["cloud_id"] = self.cloud_id
            else:
                kwargs["hosts"] = self.hosts

            if self.api_key:
                kwargs["api_key"] = self.api_key
            elif self.username and self.password:
                kwargs["basic_auth"] = (self.username, self.password)

            if self.request_timeout:
                kwargs["request_timeout"] = self.request_timeout

            try:
                self._client = AsyncElasticsearch(**kwargs)
            except (ImportError, ValueError) as e:
                # e.g. the aiohttp transport is not installed
                raise IndexUnavailable(f"Cannot build Elasticsearch client: {e}") from e
            logger.info(f"Connected to Elasticsearch at {self.cloud_id or self.hosts}")

        return self._client

    async def index_exists(self, index: str) -> bool:
        try:
            return bool(await self._get_client().indices.exists(index=index))
        except _BACKEND_ERRORS as e:
            raise IndexUnavailable(f"Cannot check index {index}: {e}") from e

    async def create_index(self, index: str, body: Dict[str, Any]) -> None:
        try:
            await self._get_client().indices.create(
                index=index,
                settings=body.get("settings"),
                mappings=body.get("mappings"),
            )
        except BadRequestError as e:
            if _error_type(e) == "resource_already_exists_exception":
                raise IndexAlreadyExists(f"Index {index} already exists") from e
            raise IndexUnavailable(f"Cannot create index {index}: {e}") from e
        except _BACKEND_ERRORS as e:
            raise IndexUnavailable(f"Cannot create index {index}: {e}") from e

    async def refresh(self, index: str) -> None:
        try:
            await self._get_client().indices.refresh(index=index)
        except _BACKEND_ERRORS as e:
            raise WriteFailure(f"Refresh of {index} failed: {e}") from e

    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        try:
            await self._get_client().index(
                index=index,
                id=doc_id,
                document=document,
                refresh="wait_for" if refresh else None,
            )
        except _BACKEND_ERRORS as e:
            raise WriteFailure(
                f"Index write of {doc_id} rejected: {e}",
                details={"index": index, "doc_id": doc_id},
            ) from e

    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = await self._get_client().get(index=index, id=doc_id)
        except NotFoundError:
            return None
        except _BACKEND_ERRORS as e:
            raise QueryFailure(f"Get of {doc_id} failed: {e}") from e
        return response["_source"]

    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        from_: int = 0,
        size: int = 10,
        sort: Optional[List[Dict[str, Any]]] = None,
        aggregations: Optional[Dict[str, Any]] = None,
    ) -> SearchResult:
        try:
            response = await self._get_client().search(
                index=index,
                query=query,
                from_=from_,
                size=size,
                sort=sort,
                aggregations=aggregations,
            )
        except _BACKEND_ERRORS as e:
            raise QueryFailure(
                f"Search on {index} failed: {e}",
                details={"index": index, "query": query},
            ) from e

        hits = [
            SearchHit(
                id=hit["_id"],
                index=hit["_index"],
                score=hit.get("_score", 0.0) or 0.0,
                source=hit["_source"],
            )
            for hit in response["hits"]["hits"]
        ]

        total = response["hits"]["total"]
        if isinstance(total, dict):
            total = total["value"]

        return SearchResult(
            hits=hits,
            total=total,
            max_score=response["hits"].get("max_score"),
            took_ms=response.get("took", 0),
            aggregations=response.get("aggregations"),
        )

    async def count(self, index: str, query: Optional[Dict[str, Any]] = None) -> int:
        try:
            response = await self._get_client().count(index=index, query=query)
        except _BACKEND_ERRORS as e:
            raise QueryFailure(f"Count on {index} failed: {e}") from e
        return response["count"]

    async def close(self) -> None:
        if self._client:
            await self._client.close()
            self._client = None


# ============================================================================
# In-memory engine
# ============================================================================

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: Any) -> List[str]:
    """Lower-cased word tokens, close to the ``standard`` analyzer."""
    if text is None:
        return []
    return _TOKEN_RE.findall(str(text).lower())


def auto_fuzziness(term: str) -> int:
    """Edit distance allowed by ``fuzziness: AUTO`` for a term."""
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


def levenshtein(a: str, b: str, max_distance: int) -> int:
    """Edit distance between ``a`` and ``b``, capped at ``max_distance + 1``."""
    if abs(len(a) - len(b)) > max_distance:
        return max_distance + 1

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        if min(current) > max_distance:
            return max_distance + 1
        previous = current
    return previous[-1]


def _fuzziness_for(term: str, fuzziness: Any) -> int:
    if fuzziness is None:
        return 0
    if isinstance(fuzziness, str) and fuzziness.upper().startswith("AUTO"):
        return auto_fuzziness(term)
    return int(fuzziness)


def _parse_field(spec: str) -> Tuple[str, float]:
    """Split ``"title^2"`` into ``("title", 2.0)``."""
    if "^" in spec:
        name, boost = spec.split("^", 1)
        return name, float(boost)
    return spec, 1.0


class InMemorySearchClient(SearchClient):
    """In-memory search client for testing.

    Implements the subset of the query DSL the catalog relies on. Hits with
    equal sort keys keep insertion order so paging is deterministic.
    ``fail_on`` makes an operation raise until ``clear_failures`` is called.
    """

    def __init__(self):
        self._indices: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._mappings: Dict[str, Dict[str, Any]] = {}
        self._failures: Dict[str, SearchError] = {}
        self.create_calls = 0

    def fail_on(self, operation: str, error: SearchError) -> None:
        self._failures[operation] = error

    def clear_failures(self) -> None:
        self._failures.clear()

    def _maybe_fail(self, operation: str) -> None:
        error = self._failures.get(operation)
        if error is not None:
            raise error

    def mapping_for(self, index: str) -> Optional[Dict[str, Any]]:
        return self._mappings.get(index)

    async def index_exists(self, index: str) -> bool:
        self._maybe_fail("index_exists")
        return index in self._indices

    async def create_index(self, index: str, body: Dict[str, Any]) -> None:
        self._maybe_fail("create_index")
        self.create_calls += 1
        if index in self._indices:
            raise IndexAlreadyExists(f"Index {index} already exists")
        self._indices[index] = {}
        self._mappings[index] = body

    async def refresh(self, index: str) -> None:
        self._maybe_fail("refresh")

    async def index(
        self,
        index: str,
        doc_id: str,
        document: Dict[str, Any],
        refresh: bool = False,
    ) -> None:
        self._maybe_fail("index")
        # Writing to a missing index creates it, as Elasticsearch does
        self._indices.setdefault(index, {})[doc_id] = dict(document)

    async def get(self, index: str, doc_id: str) -> Optional[Dict[str, Any]]:
        self._maybe_fail("get")
        return self._indices.get(index, {}).get(doc_id)

    async def search(
        self,
        index: str,
        query: Dict[str, Any],
        from_: int = 0,
        size: int = 10,
        sort: Optional[List[Dict[str, Any]]] = None,
        aggregations: Optional[Dict[str, Any]] = None,
    ) -> SearchResult:
        self._maybe_fail("search")
        if index not in self._indices:
            raise QueryFailure(f"no such index [{index}]", details={"index": index})

        scored: List[Tuple[str, float, Dict[str, Any]]] = []
        for doc_id, doc in self._indices[index].items():
            score = self._score(doc, query)
            if score is not None:
                scored.append((doc_id, score, doc))

        if sort:
            ordered = self._apply_sort(scored, sort)
            max_score = None
        else:
            ordered = sorted(scored, key=lambda item: -item[1])
            max_score = ordered[0][1] if ordered else None

        hits = [
            SearchHit(id=doc_id, index=index, score=score, source=dict(doc))
            for doc_id, score, doc in ordered[from_:from_ + size]
        ]

        aggs = None
        if aggregations:
            aggs = {
                name: self._aggregate(spec, [doc for _, _, doc in scored])
                for name, spec in aggregations.items()
            }

        return SearchResult(
            hits=hits,
            total=len(scored),
            max_score=max_score,
            aggregations=aggs,
        )

    async def count(self, index: str, query: Optional[Dict[str, Any]] = None) -> int:
        result = await self.search(index, query or {"match_all": {}}, size=0)
        return result.total

    async def close(self) -> None:
        self._indices.clear()
        self._mappings.clear()

    # ------------------------------------------------------------------
    # Query evaluation. ``_score`` returns None when the document does not
    # match, otherwise its relevance score.
    # ------------------------------------------------------------------

    def _score(self, doc: Dict[str, Any], query: Dict[str, Any]) -> Optional[float]:
        if not query or "match_all" in query:
            return float((query or {}).get("match_all", {}).get("boost", 1.0))

        if "bool" in query:
            return self._score_bool(doc, query["bool"])

        if "term" in query:
            field_name, value = next(iter(query["term"].items()))
            if isinstance(value, dict):
                value = value.get("value")
            doc_value = doc.get(field_name)
            if isinstance(doc_value, list):
                return 1.0 if value in doc_value else None
            return 1.0 if doc_value == value else None

        if "range" in query:
            field_name, bounds = next(iter(query["range"].items()))
            return 1.0 if self._in_range(doc.get(field_name), bounds) else None

        if "match" in query:
            field_name, spec = next(iter(query["match"].items()))
            if not isinstance(spec, dict):
                spec = {"query": spec}
            score = self._score_text(
                doc.get(field_name),
                spec.get("query", ""),
                spec.get("fuzziness"),
                spec.get("operator", "or"),
            )
            return score * spec.get("boost", 1.0) if score else None

        if "multi_match" in query:
            spec = query["multi_match"]
            best = 0.0
            for field_spec in spec.get("fields", []):
                field_name, boost = _parse_field(field_spec)
                score = self._score_text(
                    doc.get(field_name),
                    spec.get("query", ""),
                    spec.get("fuzziness"),
                    spec.get("operator", "or"),
                )
                best = max(best, score * boost)
            return best if best > 0 else None

        raise QueryFailure(f"Unsupported query: {list(query)}")

    def _score_bool(self, doc: Dict[str, Any], body: Dict[str, Any]) -> Optional[float]:
        total = 0.0

        for clause in body.get("must", []):
            score = self._score(doc, clause)
            if score is None:
                return None
            total += score

        for clause in body.get("filter", []):
            if self._score(doc, clause) is None:
                return None

        for clause in body.get("must_not", []):
            if self._score(doc, clause) is not None:
                return None

        should = body.get("should", [])
        if should:
            should_scores = [self._score(doc, clause) for clause in should]
            matched = [s for s in should_scores if s is not None]
            required = not body.get("must") and not body.get("filter")
            if required and not matched:
                return None
            total += sum(matched)

        return total

    @staticmethod
    def _in_range(value: Any, bounds: Dict[str, Any]) -> bool:
        if value is None:
            return False
        if "gte" in bounds and not value >= bounds["gte"]:
            return False
        if "gt" in bounds and not value > bounds["gt"]:
            return False
        if "lte" in bounds and not value <= bounds["lte"]:
            return False
        if "lt" in bounds and not value < bounds["lt"]:
            return False
        return True

    @staticmethod
    def _score_text(
        value: Any,
        text: str,
        fuzziness: Any,
        operator: str = "or",
    ) -> float:
        query_terms = tokenize(text)
        doc_terms = tokenize(value)
        if not query_terms or not doc_terms:
            return 0.0

        score = 0.0
        matched_terms = 0
        for term in query_terms:
            if term in doc_terms:
                score += 1.0
                matched_terms += 1
                continue
            allowed = _fuzziness_for(term, fuzziness)
            if allowed and any(
                levenshtein(term, candidate, allowed) <= allowed
                for candidate in doc_terms
            ):
                # Fuzzy hits rank below exact ones
                score += 0.5
                matched_terms += 1

        if operator == "and" and matched_terms < len(query_terms):
            return 0.0
        return score

    @staticmethod
    def _apply_sort(
        scored: List[Tuple[str, float, Dict[str, Any]]],
        sort: List[Dict[str, Any]],
    ) -> List[Tuple[str, float, Dict[str, Any]]]:
        ordered = list(scored)
        # Stable sorts applied from the least significant key up
        for spec in reversed(sort):
            if isinstance(spec, str):
                field_name, order = spec, "desc" if spec == "_score" else "asc"
            else:
                field_name, options = next(iter(spec.items()))
                order = options.get("order", "asc") if isinstance(options, dict) else options

            def value_of(item: Tuple[str, float, Dict[str, Any]]) -> Any:
                return item[1] if field_name == "_score" else item[2].get(field_name)

            present = [item for item in ordered if value_of(item) is not None]
            missing = [item for item in ordered if value_of(item) is None]
            present.sort(key=value_of, reverse=(order == "desc"))
            ordered = present + missing
        return ordered

    @staticmethod
    def _aggregate(spec: Dict[str, Any], docs: List[Dict[str, Any]]) -> Dict[str, Any]:
        if "terms" not in spec:
            raise QueryFailure(f"Unsupported aggregation: {list(spec)}")

        terms = spec["terms"]
        field_name = terms["field"]
        size = terms.get("size", 10)

        counts: Dict[Any, int] = {}
        for doc in docs:
            value = doc.get(field_name)
            values = value if isinstance(value, list) else [value]
            for v in values:
                if v is None:
                    continue
                counts[v] = counts.get(v, 0) + 1

        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], str(kv[0])))
        kept = ranked[:size]
        return {
            "doc_count_error_upper_bound": 0,
            "sum_other_doc_count": sum(c for _, c in ranked[size:]),
            "buckets": [{"key": k, "doc_count": c} for k, c in kept],
        }


def create_search_client(settings: Any) -> SearchClient:
    """Build the client selected by ``settings.SEARCH_BACKEND``.

    The caller owns the returned handle and must ``close()`` it.
    """
    if settings.SEARCH_BACKEND == "memory":
        return InMemorySearchClient()
    return ElasticsearchClient.from_settings(settings)


__all__ = [
    "SearchHit",
    "SearchResult",
    "SearchClient",
    "ElasticsearchClient",
    "InMemorySearchClient",
    "create_search_client",
    "tokenize",
    "auto_fuzziness",
    "levenshtein",
]
