"""Operation input models.

Pydantic models validating the arguments of each engine operation. Range
checks, required fields and cross-field rules (self-loops, inverted date
ranges) all live here as declarative constraints, so they are enforced
before any embedding or store call.
"""

from __future__ import annotations

from typing import Annotated, Any, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from ..utils.date_parsing import parse_date_filter
from .validators import DEFAULT_SOURCE_TYPE, MemoryId, Namespace, NonEmptyText, RelationType, Tags, UnitFloat


def _parse_optional_date(v: Any) -> float | None:
    if v is None or v == "":
        return None
    return parse_date_filter(v)


DateBound = Annotated[float | None, BeforeValidator(_parse_optional_date)]


class _Params(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class AddMemoryParams(_Params):
    """Validated input for ``MemoryEngine.add``."""

    namespace: Namespace
    content: NonEmptyText
    title: str | None = None
    tags: Tags = []
    source_type: NonEmptyText = DEFAULT_SOURCE_TYPE
    source_id: str | None = None
    source_url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    dedupe: bool = True

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> Any:
        return {} if v is None else v


class GetMemoryParams(_Params):
    """Validated input for ``MemoryEngine.get``."""

    namespace: Namespace
    id: MemoryId


class SearchParams(_Params):
    """Validated input for ``MemoryEngine.search``.

    Accepts both snake_case names and the camelCase aliases used on the wire
    (``topK``, ``tagFilter``, ``includeNeighbors`` ...).
    """

    namespace: Namespace
    query: NonEmptyText
    top_k: int = Field(default=10, ge=1, le=100, alias="topK")
    tag_filter: Tags = Field(default=[], alias="tagFilter")
    source_type_filter: Tags = Field(default=[], alias="sourceTypeFilter")
    date_from: DateBound = Field(default=None, alias="dateFrom")
    date_to: DateBound = Field(default=None, alias="dateTo")
    include_neighbors: bool = Field(default=False, alias="includeNeighbors")
    neighbors_hop: int = Field(default=1, ge=1, le=3, alias="neighborsHop")

    @model_validator(mode="after")
    def date_range_ordered(self) -> Self:
        """Reject ranges whose lower bound lies after the upper bound."""
        if self.date_from is not None and self.date_to is not None and self.date_from > self.date_to:
            raise ValueError("dateFrom must not be later than dateTo")
        return self


class LinkParams(_Params):
    """Validated input for ``MemoryEngine.link``."""

    namespace: Namespace
    from_id: MemoryId
    to_id: MemoryId
    rel_type: RelationType
    weight: UnitFloat = 1.0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def default_metadata(cls, v: Any) -> Any:
        return {} if v is None else v

    @model_validator(mode="after")
    def reject_self_loop(self) -> Self:
        """A memory cannot relate to itself."""
        if self.from_id == self.to_id:
            raise ValueError("self-loop: from_id and to_id must differ")
        return self


class NeighborParams(_Params):
    """Validated input for ``MemoryEngine.neighbors``."""

    namespace: Namespace
    seed_ids: list[MemoryId] = Field(min_length=1, alias="seedIds")
    hops: int = Field(default=1, ge=1, le=3)


class RefreshParams(_Params):
    """Validated input for ``MemoryEngine.refresh``."""

    namespace: Namespace
    id: MemoryId
    metadata: dict[str, Any] | None = None
