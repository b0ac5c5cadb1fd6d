"""Async client for a WordPress resource catalog: paginated fetch, facets, search."""

from .client import COLLECTIONS, CatalogClient
from .debounce import Debouncer
from .exceptions import CatalogError, FetchFailedError, PageParseError, UnknownCollectionError
from .expansion import expand_search
from .filters import active_facets, is_filtered
from .models import (
    CollectionStatus,
    FilterState,
    Resource,
    SearchExpansion,
    TaxonomyRefs,
    TermRecord,
)
from .options import CatalogOptions, load_options
from .pagination import PER_PAGE, ChainResult, PaginatedFetcher, parse_total_pages
from .query import build_expansion_query, build_query
from .sorting import sort_resources
from .store import RecordCollection, ResourceStore
from .vocabulary import TermVocabulary

__all__ = [
    "COLLECTIONS",
    "CatalogClient",
    "CatalogError",
    "CatalogOptions",
    "ChainResult",
    "CollectionStatus",
    "Debouncer",
    "FetchFailedError",
    "FilterState",
    "PER_PAGE",
    "PageParseError",
    "PaginatedFetcher",
    "RecordCollection",
    "Resource",
    "ResourceStore",
    "SearchExpansion",
    "TaxonomyRefs",
    "TermRecord",
    "TermVocabulary",
    "UnknownCollectionError",
    "active_facets",
    "build_expansion_query",
    "build_query",
    "expand_search",
    "is_filtered",
    "load_options",
    "parse_total_pages",
    "sort_resources",
]
