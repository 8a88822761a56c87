"""Search Query DSL Builder.

Provides query nodes serialising to the Elasticsearch DSL, a fluent builder,
and the composition of catalog search requests into a single bool query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

TITLE_FIELD = "title"
DESCRIPTION_FIELD = "description"
TITLE_BOOST = 2.0


@dataclass
class Query:
    """A node of the Elasticsearch query DSL."""

    def to_dict(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass
class MatchAllQuery(Query):
    boost: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {"match_all": {} if self.boost == 1.0 else {"boost": self.boost}}


@dataclass
class MultiMatchQuery(Query):
    """Full-text match over several fields.

    ``fields`` maps field name to boost; a boost of 1.0 is written bare.
    """

    query: str
    fields: Dict[str, float]
    type: str = "best_fields"
    operator: str = "or"
    fuzziness: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "query": self.query,
            "fields": [
                name if boost == 1.0 else f"{name}^{boost:g}"
                for name, boost in self.fields.items()
            ],
            "type": self.type,
        }
        if self.operator != "or":
            body["operator"] = self.operator
        if self.fuzziness:
            body["fuzziness"] = self.fuzziness
        return {"multi_match": body}


@dataclass
class TermQuery(Query):
    """Exact value of a keyword field."""

    field: str
    value: Any
    boost: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        if self.boost == 1.0:
            return {"term": {self.field: self.value}}
        return {"term": {self.field: {"value": self.value, "boost": self.boost}}}


@dataclass
class RangeQuery(Query):
    """Numeric range; only the bounds that are set are sent."""

    field: str
    gte: Optional[Any] = None
    gt: Optional[Any] = None
    lte: Optional[Any] = None
    lt: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        candidates = {"gte": self.gte, "gt": self.gt, "lte": self.lte, "lt": self.lt}
        bounds = {name: value for name, value in candidates.items() if value is not None}
        return {"range": {self.field: bounds}}


@dataclass
class BoolQuery(Query):
    """Conjunction of scoring (``must``) and non-scoring (``filter``) clauses."""

    must: List[Query] = field(default_factory=list)
    filter: List[Query] = field(default_factory=list)

    def add_must(self, query: Query) -> "BoolQuery":
        self.must.append(query)
        return self

    def add_filter(self, query: Query) -> "BoolQuery":
        self.filter.append(query)
        return self

    def is_empty(self) -> bool:
        return not (self.must or self.filter)

    def to_dict(self) -> Dict[str, Any]:
        sections = (("must", self.must), ("filter", self.filter))
        return {"bool": {
            name: [clause.to_dict() for clause in clauses]
            for name, clauses in sections
            if clauses
        }}


class QueryBuilder:
    """Fluent query builder.

    Example:
        query = (QueryBuilder()
            .must(MultiMatchQuery("witcher", {"title": 2.0, "description": 1.0}))
            .must(TermQuery("genre", "RPG"))
            .build())

    A builder with no clauses builds ``match_all``.
    """

    def __init__(self):
        self._bool_query = BoolQuery()

    def must(self, query: Query) -> "QueryBuilder":
        """Add must clause."""
        self._bool_query.add_must(query)
        return self

    def filter(self, query: Query) -> "QueryBuilder":
        """Add filter clause."""
        self._bool_query.add_filter(query)
        return self

    def build(self) -> Dict[str, Any]:
        """Build the query."""
        if self._bool_query.is_empty():
            return MatchAllQuery().to_dict()
        return self._bool_query.to_dict()


class SearchRequest(BaseModel):
    """Catalog search criteria plus the requested page."""

    query: str = ""
    genre: Optional[str] = None
    platform: Optional[str] = None
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @model_validator(mode="after")
    def _price_bounds_ordered(self) -> "SearchRequest":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price cannot exceed max_price")
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


def _given(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def build_search_query(request: SearchRequest) -> Dict[str, Any]:
    """Compose the catalog search into one bool query.

    Each clause is added only when its input is present. The text match is
    the only scoring clause (``must``); the rest are non-scoring ``filter``
    clauses, in this order:

    1. exact term on genre;
    2. exact term on platform;
    3. inclusive price range with only the supplied bounds.

    With no clause at all the query is ``match_all``: an empty search lists
    the whole catalog.
    """
    builder = QueryBuilder()

    if _given(request.query):
        builder.must(MultiMatchQuery(
            query=request.query.strip(),
            fields={TITLE_FIELD: TITLE_BOOST, DESCRIPTION_FIELD: 1.0},
            fuzziness="AUTO",
        ))

    if _given(request.genre):
        builder.filter(TermQuery(field="genre", value=request.genre))

    if _given(request.platform):
        builder.filter(TermQuery(field="platform", value=request.platform))

    if request.min_price is not None or request.max_price is not None:
        builder.filter(RangeQuery(
            field="price",
            gte=float(request.min_price) if request.min_price is not None else None,
            lte=float(request.max_price) if request.max_price is not None else None,
        ))

    return builder.build()


def match_all() -> Dict[str, Any]:
    """Create match_all query."""
    return MatchAllQuery().to_dict()


__all__ = [
    "Query",
    "MatchAllQuery",
    "MultiMatchQuery",
    "TermQuery",
    "RangeQuery",
    "BoolQuery",
    "QueryBuilder",
    "SearchRequest",
    "build_search_query",
    "match_all",
]
