"""Pure helpers over FilterState."""

from typing import Dict

from resource_catalog.models import FACETS, FilterState


def is_filtered(filters: FilterState) -> bool:
    """True when a search is entered or any facet is narrowed."""
    if filters.search:
        return True
    return any(filters.facet(facet) != "all" for facet in FACETS)


def active_facets(filters: FilterState) -> Dict[str, int]:
    """Facets that are narrowed, with the selected term id."""
    return {
        facet: filters.facet(facet)
        for facet in FACETS
        if filters.facet(facet) != "all"
    }
