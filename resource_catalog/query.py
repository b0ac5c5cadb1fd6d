"""Translate filter state into the REST API's query parameters."""

from __future__ import annotations

from typing import Dict, Iterable

from resource_catalog.models import FACET_API_FIELDS, FACETS, FilterState

API_ROOT = "/wp-json/wp/v2"
RESOURCE_ROUTE = "resource"


def endpoint_url(base_url: str, route: str) -> str:
    return f"{base_url.rstrip('/')}{API_ROOT}/{route}"


def build_query(filters: FilterState) -> Dict[str, str]:
    params: Dict[str, str] = {
        "orderby": filters.sort_key,
        "order": filters.sort_direction,
    }
    for facet in FACETS:
        value = filters.facet(facet)
        if value != "all":
            params[FACET_API_FIELDS[facet]] = str(value)
    if filters.search:
        params["search"] = filters.search
    return params


def build_expansion_query(filters: FilterState, facet: str, term_ids: Iterable[int]) -> Dict[str, str]:
    """Query for resources tagged with any of ``term_ids`` in ``facet``.

    The text search is dropped (the terms already matched it); the other
    active facets still apply.
    """
    params = build_query(filters)
    params.pop("search", None)
    params[FACET_API_FIELDS[facet]] = ",".join(str(term_id) for term_id in term_ids)
    return params
