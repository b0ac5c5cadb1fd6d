"""Walk a paginated WordPress REST listing to completion."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from pydantic import BaseModel

from resource_catalog.exceptions import FetchFailedError, PageParseError
from resource_catalog.metrics import ChainMetrics, FetchMetricsCollector
from resource_catalog.models import ChainStatus
from resource_catalog.observability import chain_context
from resource_catalog.store import RecordCollection

logger = logging.getLogger(__name__)

PER_PAGE = 50
TOTAL_PAGES_HEADER = "X-WP-TotalPages"


def parse_total_pages(value: Optional[str]) -> int:
    """Page count from the ``X-WP-TotalPages`` header; 1 when absent or bad."""
    if value is None:
        return 1
    try:
        total = int(str(value).strip())
    except ValueError:
        return 1
    return max(total, 1)


class ChainResult(BaseModel):
    """Outcome of one pagination chain."""

    collection: str
    status: ChainStatus
    generation: Optional[int] = None
    pages_fetched: int = 0
    total_pages: int = 1
    record_count: int = 0
    latency_ms: Optional[int] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "loaded"

    def raise_for_status(self) -> None:
        """Raise ``FetchFailedError`` if the chain failed."""
        if self.status == "failed":
            raise FetchFailedError(
                self.message or f"Fetching {self.collection} failed",
                detail={
                    "collection": self.collection,
                    "pages_fetched": self.pages_fetched,
                    "total_pages": self.total_pages,
                },
            )


class PaginatedFetcher:
    """Fetches every page of a listing and merges it into a collection.

    Pages within one chain are requested strictly in order; page N+1 is only
    requested after page N has been merged. Several chains may run on the
    same fetcher concurrently; ``loading`` is true while any of them is in
    flight.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        per_page: int = PER_PAGE,
        metrics: Optional[FetchMetricsCollector] = None,
    ):
        self.http = http
        self.per_page = per_page
        self.metrics = metrics or FetchMetricsCollector()
        self._in_flight = 0

    @property
    def loading(self) -> bool:
        return self._in_flight > 0

    async def _fetch_page(
        self, url: str, params: Dict[str, Any], page: int, collection: str
    ) -> Tuple[List[Any], int]:
        detail = {"collection": collection, "page": page}
        try:
            response = await self.http.get(
                url, params={**params, "page": page, "per_page": self.per_page}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchFailedError(f"HTTP {e.response.status_code} for {collection} page {page}", detail=detail) from e
        except httpx.HTTPError as e:
            raise FetchFailedError(f"{type(e).__name__} for {collection} page {page}: {e}", detail=detail) from e

        total_pages = parse_total_pages(response.headers.get(TOTAL_PAGES_HEADER))
        try:
            payload = response.json()
        except ValueError as e:
            raise PageParseError(f"{collection} page {page} is not valid JSON", detail=detail) from e
        if not isinstance(payload, list):
            raise PageParseError(f"{collection} page {page} is not a JSON array", detail=detail)
        return payload, total_pages

    async def fetch(
        self,
        url: str,
        target: RecordCollection,
        *,
        params: Optional[Dict[str, Any]] = None,
        union: bool = False,
        sort: Optional[Callable[[], None]] = None,
        is_current: Optional[Callable[[], bool]] = None,
        on_merge: Optional[Callable[[str], None]] = None,
        generation: Optional[int] = None,
    ) -> ChainResult:
        """Fetch all pages of ``url`` into ``target``.

        Args:
            url: Listing endpoint.
            target: Collection the pages are merged into.
            params: Query parameters; ``page`` and ``per_page`` are added.
            union: Merge page 1 into the existing records instead of
                replacing them. Later pages always merge.
            sort: Called once after the last page has been merged.
            is_current: Checked before each request and each merge; when it
                returns False the chain stops and its pages are dropped.
            on_merge: Called with the collection name after each change.
            generation: Recorded on the result for the caller's bookkeeping.

        Returns:
            ChainResult. Failures are reported there, never raised; pages
            merged before a failure stay in ``target``.
        """
        self._in_flight += 1
        try:
            with chain_context(target.name, generation) as chain, \
                    self.metrics.track_chain(target.name, chain.chain_id, generation) as metrics:
                return await self._walk(
                    url, target, dict(params or {}), metrics,
                    union=union, sort=sort, is_current=is_current,
                    on_merge=on_merge, generation=generation,
                )
        finally:
            self._in_flight -= 1

    async def _walk(
        self,
        url: str,
        target: RecordCollection,
        params: Dict[str, Any],
        metrics: ChainMetrics,
        *,
        union: bool,
        sort: Optional[Callable[[], None]],
        is_current: Optional[Callable[[], bool]],
        on_merge: Optional[Callable[[str], None]],
        generation: Optional[int],
    ) -> ChainResult:
        started = time.monotonic()
        page = 1
        total_pages = 1
        record_count = 0

        def _result(status: ChainStatus, message: Optional[str] = None) -> ChainResult:
            metrics.status = status
            metrics.error_message = message if status == "failed" else None
            return ChainResult(
                collection=target.name,
                status=status,
                generation=generation,
                pages_fetched=metrics.pages_fetched,
                total_pages=total_pages,
                record_count=record_count,
                latency_ms=int((time.monotonic() - started) * 1000),
                message=message,
            )

        logger.debug(f"[PaginatedFetcher] Fetching {target.name} from {url} params={params}")
        try:
            while True:
                if is_current is not None and not is_current():
                    return _result("discarded", "Superseded by a newer query")

                payload, total_pages = await self._fetch_page(url, params, page, target.name)
                records = target.parse_page(payload)

                if is_current is not None and not is_current():
                    return _result("discarded", "Superseded by a newer query")

                target.merge(records, union=union or page > 1)
                record_count += len(records)
                metrics.record_page(page, total_pages, len(records))
                if on_merge:
                    on_merge(target.name)

                if page >= total_pages:
                    break
                page += 1
        except FetchFailedError as e:
            logger.warning(
                f"[PaginatedFetcher] {target.name} stopped after {metrics.pages_fetched}/{total_pages} pages: {e.message}"
            )
            return _result("failed", e.message)

        if sort is not None:
            sort()
            if on_merge:
                on_merge(target.name)

        return _result("loaded")
