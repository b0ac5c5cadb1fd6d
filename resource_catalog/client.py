"""Catalog client: filter state, fetch cycles and the collections they fill.

A fetch cycle for resources is made of up to three concurrent pagination
chains: the base query, plus a tag-expansion and a category-expansion query
when the search text matches term names. All three union into the same
store and re-sort it after their last page, so the visible order does not
depend on which chain finishes first.

Every cycle and every filter change bumps ``generation``. Chains of an older
generation stop and drop their pages instead of merging into a store that
now belongs to a newer query.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from resource_catalog.debounce import DEFAULT_DELAY_SECONDS, Debouncer
from resource_catalog.exceptions import UnknownCollectionError
from resource_catalog.expansion import expand_search
from resource_catalog.filters import is_filtered
from resource_catalog.metrics import FetchMetricsCollector
from resource_catalog.models import (
    FACETS,
    CollectionStatus,
    FacetValue,
    FilterState,
    Resource,
    SortDirection,
    SortKey,
    TermRecord,
)
from resource_catalog.options import CatalogOptions
from resource_catalog.pagination import ChainResult, PaginatedFetcher
from resource_catalog.query import RESOURCE_ROUTE, build_expansion_query, build_query, endpoint_url
from resource_catalog.store import ResourceStore
from resource_catalog.vocabulary import VOCABULARY_ROUTES, TermVocabulary, build_vocabularies

logger = logging.getLogger(__name__)

USER_AGENT = "resource-catalog/1.0"
RESOURCES = "resources"
COLLECTIONS = (RESOURCES,) + tuple(VOCABULARY_ROUTES)

AnalyticsHook = Callable[[str, str, str], Any]
Listener = Callable[[str], Any]


class CatalogClient:
    """One catalog session: filter state, the resource store and the vocabularies.

    Use as an async context manager, or call ``aclose()`` when done.
    """

    def __init__(
        self,
        options: Optional[CatalogOptions] = None,
        *,
        http: Optional[httpx.AsyncClient] = None,
        analytics: Optional[AnalyticsHook] = None,
        debounce_delay: float = DEFAULT_DELAY_SECONDS,
        metrics: Optional[FetchMetricsCollector] = None,
        timeout: float = 30.0,
    ):
        self.options = options or CatalogOptions()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self.fetcher = PaginatedFetcher(self.http, metrics=metrics)
        self.debouncer = Debouncer(debounce_delay)
        self.analytics = analytics

        self.filters = FilterState(
            sort_key=self.options.order.by,
            sort_direction=self.options.order.how,
        )
        self.store = ResourceStore(RESOURCES)
        self.vocabularies: Dict[str, TermVocabulary] = build_vocabularies()
        self.search_expanded = self.options.search_expanded

        self.generation = 0
        self._active_cycle: Optional[int] = None
        self.fetched: Dict[str, bool] = {name: False for name in COLLECTIONS}
        self.status: Dict[str, CollectionStatus] = {name: CollectionStatus.IDLE for name in COLLECTIONS}
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.debouncer.cancel()
        if self._owns_http:
            await self.http.aclose()

    async def start(self) -> List[ChainResult]:
        """Load every vocabulary and, if configured, the initial resources."""
        jobs = [self.fetch_vocabulary(name) for name in self.vocabularies]
        if self.options.features.initial_load:
            jobs.append(self.fetch_resources())
        results: List[ChainResult] = []
        for outcome in await asyncio.gather(*jobs):
            if isinstance(outcome, list):
                results.extend(outcome)
            else:
                results.append(outcome)
        return results

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def resources(self) -> List[Resource]:
        return self.store.records

    @property
    def resource_count(self) -> int:
        return len(self.store)

    @property
    def filtered(self) -> bool:
        return is_filtered(self.filters)

    @property
    def loading(self) -> bool:
        return self.fetcher.loading

    def vocabulary(self, name: str) -> TermVocabulary:
        try:
            return self.vocabularies[name]
        except KeyError:
            raise UnknownCollectionError(
                f"Unknown vocabulary {name!r}", detail={"collection": name}
            ) from None

    def add_listener(self, callback: Listener) -> None:
        """Call ``callback(collection_name)`` whenever a collection changes."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, collection: str) -> None:
        for callback in list(self._listeners):
            try:
                callback(collection)
            except Exception as e:
                logger.warning(f"[CatalogClient] Listener {callback!r} failed for {collection}: {e}")

    # ------------------------------------------------------------------
    # Filter state
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self.generation += 1
        return self.generation

    def set_filter(self, facet: str, value: FacetValue) -> None:
        if facet not in FACETS:
            raise ValueError(f"Unknown facet {facet!r}; expected one of {', '.join(FACETS)}")
        setattr(self.filters, facet, value)
        self._next_generation()

    def set_search(self, text: str) -> None:
        self.filters.search = text
        self._next_generation()

    def set_sort(self, key: SortKey, direction: Optional[SortDirection] = None) -> None:
        self.filters.sort_key = key
        if direction is not None:
            self.filters.sort_direction = direction
        self._next_generation()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _url(self, route: str) -> str:
        return endpoint_url(self.options.base_url, route)

    async def fetch_vocabulary(self, name: str) -> ChainResult:
        vocabulary = self.vocabulary(name)
        self.status[name] = CollectionStatus.LOADING
        result = await self.fetcher.fetch(
            self._url(vocabulary.route), vocabulary, on_merge=self._notify,
        )
        if result.ok:
            self.status[name] = CollectionStatus.LOADED
            self.fetched[name] = True
        else:
            self.status[name] = CollectionStatus.FAILED
        return result

    async def fetch_vocabularies(self) -> List[ChainResult]:
        return list(await asyncio.gather(*(self.fetch_vocabulary(name) for name in self.vocabularies)))

    async def fetch_resources(self) -> List[ChainResult]:
        """Run one resource query cycle for the current filter state."""
        generation = self._next_generation()
        self._active_cycle = generation
        filters = self.filters.model_copy()

        self.store.clear()
        self.fetched[RESOURCES] = False
        self.status[RESOURCES] = CollectionStatus.LOADING
        self._notify(RESOURCES)

        queries = [build_query(filters)]
        if filters.search:
            expansion = expand_search(
                filters.search, self.vocabularies["categories"], self.vocabularies["tags"], filters,
            )
            if expansion.tag_ids:
                queries.append(build_expansion_query(filters, "tag", expansion.tag_ids))
            if expansion.category_ids:
                queries.append(build_expansion_query(filters, "category", expansion.category_ids))
            if not expansion.is_empty:
                logger.info(
                    f"[CatalogClient] Search {filters.search!r} widened by "
                    f"{len(expansion.tag_ids)} tag id(s) and {len(expansion.category_ids)} category id(s)"
                )

        def is_current() -> bool:
            return self.generation == generation

        def sort() -> None:
            self.store.sort(filters.sort_key, filters.sort_direction)

        url = self._url(RESOURCE_ROUTE)
        results = await asyncio.gather(*(
            self.fetcher.fetch(
                url, self.store,
                params=params, union=True, sort=sort,
                is_current=is_current, on_merge=self._notify, generation=generation,
            )
            for params in queries
        ))

        if is_current():
            if all(result.ok for result in results):
                self.status[RESOURCES] = CollectionStatus.LOADED
                self.fetched[RESOURCES] = True
            else:
                self.status[RESOURCES] = CollectionStatus.FAILED
            # A chain that failed after merging skipped its own sort
            sort()
            self._notify(RESOURCES)
        elif self._active_cycle == generation:
            # Superseded by a filter change that has not started its own cycle yet
            self.status[RESOURCES] = CollectionStatus.IDLE
        return list(results)

    def debounce_fetch_resources(self) -> asyncio.Task:
        """Schedule ``fetch_resources``, replacing any pending schedule."""
        return self.debouncer.schedule(self.fetch_resources)

    async def retry(self, collection: str) -> List[ChainResult]:
        """Re-run the fetch for ``collection`` (e.g. after ``fetch_failed``)."""
        if collection == RESOURCES:
            return await self.fetch_resources()
        return [await self.fetch_vocabulary(self.vocabulary(collection).name)]

    async def reset(self) -> List[ChainResult]:
        """Clear facets and search; reload or empty the list."""
        self.debouncer.cancel()
        self.filters.reset()
        if self.options.features.initial_load:
            return await self.fetch_resources()

        self._next_generation()
        self._active_cycle = None
        self.store.clear()
        self.fetched[RESOURCES] = False
        self.status[RESOURCES] = CollectionStatus.IDLE
        self._notify(RESOURCES)
        return []

    # ------------------------------------------------------------------
    # Term lookups
    # ------------------------------------------------------------------

    def term(self, vocabulary: str, term_id: int) -> Union[TermRecord, int]:
        return self.vocabulary(vocabulary).by_id(term_id)

    def term_name(self, vocabulary: str, term_id: int) -> Union[str, int]:
        return self.vocabulary(vocabulary).name(term_id)

    def term_slug(self, vocabulary: str, term_id: int) -> Union[str, int]:
        return self.vocabulary(vocabulary).slug(term_id)

    def audience_name(self, term_id: int) -> Union[str, int]:
        return self.term_name("audiences", term_id)

    def audience_slug(self, term_id: int) -> Union[str, int]:
        return self.term_slug("audiences", term_id)

    def length_name(self, term_id: int) -> Union[str, int]:
        return self.term_name("lengths", term_id)

    def length_slug(self, term_id: int) -> Union[str, int]:
        return self.term_slug("lengths", term_id)

    def program_name(self, term_id: int) -> Union[str, int]:
        return self.term_name("programs", term_id)

    def program_slug(self, term_id: int) -> Union[str, int]:
        return self.term_slug("programs", term_id)

    def category_name(self, term_id: int) -> Union[str, int]:
        return self.term_name("categories", term_id)

    def category_slug(self, term_id: int) -> Union[str, int]:
        return self.term_slug("categories", term_id)

    def tag_name(self, term_id: int) -> Union[str, int]:
        return self.term_name("tags", term_id)

    def tag_slug(self, term_id: int) -> Union[str, int]:
        return self.term_slug("tags", term_id)

    # ------------------------------------------------------------------
    # UI state
    # ------------------------------------------------------------------

    def toggle_search_expanded(self) -> bool:
        self.search_expanded = not self.search_expanded
        return self.search_expanded

    def toggle_resource_content(self, resource_id: int) -> bool:
        if self.store.mark_shown(resource_id):
            self._notify(RESOURCES)
            return True
        return False

    def resource_content_shown(self, resource_id: int) -> bool:
        """Unprotected content is always shown; protected content once revealed."""
        resource = self.store.get(resource_id)
        if resource is None:
            return False
        return resource.shown or not resource.protected

    def capture_outbound_link(self, url: str) -> bool:
        """Report an outbound click. Always True so navigation proceeds."""
        if self.options.features.outbound_analytics and self.analytics is not None:
            try:
                self.analytics("outbound", "click", url)
            except Exception as e:
                logger.warning(f"[CatalogClient] Outbound analytics failed for {url}: {e}")
            else:
                logger.info(f"Outbound link clicked: {url}")
        return True
