"""Typed models for the resource catalog."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SortKey = Literal["date", "id", "modified", "parent", "slug", "title"]
SortDirection = Literal["asc", "desc"]
FacetValue = Union[Literal["all"], int]
ChainStatus = Literal["loaded", "failed", "discarded"]

SORT_KEYS = ("date", "id", "modified", "parent", "slug", "title")
SORT_DIRECTIONS = ("asc", "desc")

FACETS = ("audience", "length", "program", "category", "tag")

# Facet -> field name used by the REST API, both as query parameter and as
# the id list on each resource record
FACET_API_FIELDS: Dict[str, str] = {
    "audience": "resource_audiences",
    "length": "resource_lengths",
    "program": "resource_programs",
    "category": "categories",
    "tag": "tags",
}


def _rendered(value: Any) -> Any:
    """Unwrap WordPress ``{"rendered": ...}`` objects."""
    if isinstance(value, dict):
        return value.get("rendered", "")
    return value


class TermRecord(BaseModel):
    """A single named value within a taxonomy vocabulary."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str = ""
    slug: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def _unwrap_name(cls, value: Any) -> str:
        value = _rendered(value)
        return "" if value is None else str(value)


class TaxonomyRefs(BaseModel):
    """Term ids a resource is tagged with, per facet."""

    audience: List[int] = Field(default_factory=list)
    length: List[int] = Field(default_factory=list)
    program: List[int] = Field(default_factory=list)
    category: List[int] = Field(default_factory=list)
    tag: List[int] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any) -> List[Any]:
        if value is None:
            return []
        return value


class Resource(BaseModel):
    """One resource record as returned by ``/wp-json/wp/v2/resource``.

    The WordPress payload nests ``title`` and ``content`` under ``rendered``
    and keeps taxonomy ids in top-level fields; both are flattened here.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    content: str = ""
    protected: bool = False
    taxonomy_refs: TaxonomyRefs = Field(default_factory=TaxonomyRefs)
    date: Optional[datetime] = None
    modified: Optional[datetime] = None
    slug: str = ""
    parent: int = 0
    link: Optional[str] = None
    shown: bool = False

    @model_validator(mode="before")
    @classmethod
    def _from_wordpress(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        payload = dict(data)

        content = payload.get("content")
        if isinstance(content, dict):
            payload["content"] = content.get("rendered") or ""
            payload.setdefault("protected", bool(content.get("protected", False)))
        payload["title"] = _rendered(payload.get("title")) or ""

        if "taxonomy_refs" not in payload:
            payload["taxonomy_refs"] = {
                facet: payload.get(field) for facet, field in FACET_API_FIELDS.items()
            }
        if payload.get("parent") is None:
            payload["parent"] = 0
        return payload


class FilterState(BaseModel):
    """Facet selections, free-text search and the active sort order."""

    model_config = ConfigDict(validate_assignment=True)

    audience: FacetValue = "all"
    length: FacetValue = "all"
    program: FacetValue = "all"
    category: FacetValue = "all"
    tag: FacetValue = "all"
    search: str = ""
    sort_key: SortKey = "title"
    sort_direction: SortDirection = "asc"

    @field_validator("search", mode="before")
    @classmethod
    def _ensure_search(cls, value: Optional[str]) -> str:
        return value or ""

    def facet(self, name: str) -> FacetValue:
        return getattr(self, name)

    def reset(self) -> None:
        """Clear every facet and the search text; the sort order is kept."""
        for name in FACETS:
            setattr(self, name, "all")
        self.search = ""


class CollectionStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "fetch_failed"


class SearchExpansion(BaseModel):
    """Term ids a free-text search widens the resource query with."""

    tag_ids: List[int] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.tag_ids and not self.category_ids
