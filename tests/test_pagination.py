"""Tests for walking paginated listings."""

import httpx
import pytest

from resource_catalog.exceptions import FetchFailedError
from resource_catalog.pagination import PER_PAGE, PaginatedFetcher, parse_total_pages
from resource_catalog.store import ResourceStore

URL = "https://catalog.test/wp-json/wp/v2/resource"


def _records(ids):
    return [{"id": i, "title": {"rendered": f"Resource {i}"}} for i in ids]


def paged_handler(pages, calls, total_pages=None, fail_page=None, headers=True):
    """Serve ``pages`` (list of id lists) and log every requested page."""

    def handler(request: httpx.Request) -> httpx.Response:
        page = int(request.url.params["page"])
        calls.append(dict(request.url.params))
        if page == fail_page:
            return httpx.Response(502, text="Bad Gateway")
        response_headers = {}
        if headers:
            response_headers["X-WP-TotalPages"] = str(total_pages if total_pages is not None else len(pages))
        return httpx.Response(200, json=_records(pages[page - 1]), headers=response_headers)

    return handler


def make_fetcher(handler) -> PaginatedFetcher:
    return PaginatedFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_three_pages_with_overlap_merge_to_unique_ids():
    calls = []
    pages = [range(1, 51), range(48, 98), range(98, 121)]
    fetcher = make_fetcher(paged_handler(pages, calls))
    store = ResourceStore()

    result = await fetcher.fetch(URL, store)

    assert result.ok
    assert len(calls) == 3
    assert len(store) == 120
    # first-seen order, no sort requested
    assert store.ids() == list(range(1, 121))
    assert result.pages_fetched == 3
    assert result.total_pages == 3
    assert result.record_count == 123


@pytest.mark.asyncio
async def test_pages_requested_in_order_with_fixed_page_size():
    calls = []
    fetcher = make_fetcher(paged_handler([[1], [2], [3], [4]], calls))

    await fetcher.fetch(URL, ResourceStore(), params={"orderby": "title", "order": "asc"})

    assert [c["page"] for c in calls] == ["1", "2", "3", "4"]
    assert all(c["per_page"] == str(PER_PAGE) for c in calls)
    assert all(c["orderby"] == "title" for c in calls)


@pytest.mark.asyncio
async def test_missing_total_pages_header_means_single_page():
    calls = []
    fetcher = make_fetcher(paged_handler([[1, 2], [3]], calls, headers=False))
    store = ResourceStore()

    result = await fetcher.fetch(URL, store)

    assert result.ok
    assert len(calls) == 1
    assert store.ids() == [1, 2]


@pytest.mark.asyncio
async def test_malformed_total_pages_header_means_single_page():
    calls = []
    fetcher = make_fetcher(paged_handler([[1], [2]], calls, total_pages="lots"))

    result = await fetcher.fetch(URL, ResourceStore())

    assert result.ok
    assert len(calls) == 1


def test_parse_total_pages():
    assert parse_total_pages(None) == 1
    assert parse_total_pages("") == 1
    assert parse_total_pages("abc") == 1
    assert parse_total_pages("0") == 1
    assert parse_total_pages("-3") == 1
    assert parse_total_pages(" 4 ") == 4


@pytest.mark.asyncio
async def test_failure_mid_chain_keeps_partial_result():
    calls = []
    fetcher = make_fetcher(paged_handler([[1, 2], [3, 4], [5]], calls, fail_page=2))
    store = ResourceStore()

    result = await fetcher.fetch(URL, store)

    assert result.status == "failed"
    assert "502" in result.message
    assert store.ids() == [1, 2]
    assert len(calls) == 2
    assert fetcher.loading is False
    with pytest.raises(FetchFailedError):
        result.raise_for_status()


@pytest.mark.asyncio
async def test_transport_error_is_reported_as_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = make_fetcher(handler)
    result = await fetcher.fetch(URL, ResourceStore())

    assert result.status == "failed"
    assert "ConnectError" in result.message
    assert fetcher.loading is False


@pytest.mark.asyncio
async def test_non_array_body_is_a_parse_failure():
    def handler(request):
        return httpx.Response(200, json={"code": "rest_invalid"})

    result = await make_fetcher(handler).fetch(URL, ResourceStore())

    assert result.status == "failed"
    assert "not a JSON array" in result.message


@pytest.mark.asyncio
async def test_invalid_record_is_a_parse_failure():
    def handler(request):
        return httpx.Response(200, json=[{"title": "no id"}])

    store = ResourceStore()
    result = await make_fetcher(handler).fetch(URL, store)

    assert result.status == "failed"
    assert len(store) == 0


@pytest.mark.asyncio
async def test_first_page_replaces_unless_union():
    calls = []
    fetcher = make_fetcher(paged_handler([[3, 4]], calls))
    store = ResourceStore()
    store.merge(store.parse_page(_records([1, 2])))

    await fetcher.fetch(URL, store, union=True)
    assert store.ids() == [1, 2, 3, 4]

    await fetcher.fetch(URL, store)
    assert store.ids() == [3, 4]


@pytest.mark.asyncio
async def test_sort_runs_once_after_last_page():
    calls = []
    sorts = []
    fetcher = make_fetcher(paged_handler([[1], [2], [3]], calls))

    await fetcher.fetch(URL, ResourceStore(), sort=lambda: sorts.append(len(calls)))

    assert sorts == [3]


@pytest.mark.asyncio
async def test_stale_chain_is_discarded():
    calls = []
    fetcher = make_fetcher(paged_handler([[1], [2]], calls))
    store = ResourceStore()
    current = {"value": True}

    def is_current():
        return current["value"]

    def on_merge(name):
        # superseded after the first page lands
        current["value"] = False

    result = await fetcher.fetch(URL, store, is_current=is_current, on_merge=on_merge)

    assert result.status == "discarded"
    assert store.ids() == [1]
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_loading_flag_is_set_while_in_flight():
    seen = []
    fetcher = None

    def handler(request):
        seen.append(fetcher.loading)
        return httpx.Response(200, json=_records([1]), headers={"X-WP-TotalPages": "1"})

    fetcher = make_fetcher(handler)
    assert fetcher.loading is False
    await fetcher.fetch(URL, ResourceStore())

    assert seen == [True]
    assert fetcher.loading is False


@pytest.mark.asyncio
async def test_chain_metrics_are_recorded():
    calls = []
    fetcher = make_fetcher(paged_handler([[1, 2], [3]], calls))

    await fetcher.fetch(URL, ResourceStore(), generation=4)

    metrics = fetcher.metrics.history[-1]
    assert metrics.collection == "resources"
    assert metrics.generation == 4
    assert metrics.pages_fetched == 2
    assert metrics.records_merged == 3
    assert metrics.is_complete()
    assert fetcher.metrics.summary()["loaded"] == 1
