import asyncio
import math
import os
import sys
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

# Add project root to path so tests run without an editable install
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from resource_catalog.client import CatalogClient
from resource_catalog.options import CatalogOptions

SITE_URL = "https://catalog.test"

TAXONOMY_PARAMS = ("resource_audiences", "resource_lengths", "resource_programs", "categories", "tags")


def wp_resource(resource_id: int, title: str, content: str = "", protected: bool = False, **refs) -> Dict[str, Any]:
    """A resource record shaped like the WordPress REST API returns it."""
    record = {
        "id": resource_id,
        "slug": title.lower().replace(" ", "-"),
        "date": f"2024-01-{(resource_id % 28) + 1:02d}T09:00:00",
        "modified": f"2024-02-{(resource_id % 28) + 1:02d}T09:00:00",
        "title": {"rendered": title},
        "content": {"rendered": content, "protected": protected},
        "link": f"{SITE_URL}/resource/{resource_id}",
    }
    for param in TAXONOMY_PARAMS:
        record[param] = list(refs.get(param, []))
    return record


def wp_term(term_id: int, name: str) -> Dict[str, Any]:
    return {"id": term_id, "name": name, "slug": name.lower().replace(" ", "-"), "count": 1}


class FakeWordPress:
    """In-memory stand-in for the /wp-json/wp/v2 endpoints, served via MockTransport."""

    def __init__(self):
        self.routes: Dict[str, List[Dict[str, Any]]] = {
            "resource": [],
            "resource_audiences": [],
            "resource_lengths": [],
            "resource_programs": [],
            "categories": [],
            "tags": [],
        }
        self.requests: List[Tuple[str, Dict[str, str]]] = []
        self.failures: Dict[Tuple[str, int], int] = {}
        self._holds: List[Tuple[Callable[[str, Dict[str, str]], bool], asyncio.Event]] = []

    def fail(self, route: str, page: int = 1, status_code: int = 500) -> None:
        self.failures[(route, page)] = status_code

    def hold(self, predicate: Callable[[str, Dict[str, str]], bool]) -> asyncio.Event:
        """Stall matching requests until the returned event is set."""
        event = asyncio.Event()
        self._holds.append((predicate, event))
        return event

    def resource_requests(self) -> List[Dict[str, str]]:
        return [params for route, params in self.requests if route == "resource"]

    def _matches(self, record: Dict[str, Any], params: Dict[str, str]) -> bool:
        for param in TAXONOMY_PARAMS:
            if param in params:
                wanted = {int(v) for v in params[param].split(",")}
                if not wanted & set(record.get(param, [])):
                    return False
        search = params.get("search")
        if search:
            haystack = f"{record['title']['rendered']} {record['content']['rendered']}".lower()
            if search.lower() not in haystack:
                return False
        return True

    async def handler(self, request: httpx.Request) -> httpx.Response:
        route = request.url.path.rsplit("/", 1)[-1]
        params = dict(request.url.params)
        self.requests.append((route, params))

        for predicate, event in self._holds:
            if predicate(route, params):
                await event.wait()

        page = int(params.get("page", 1))
        if (route, page) in self.failures:
            return httpx.Response(self.failures[(route, page)], json={"code": "rest_error"})

        records = self.routes.get(route)
        if records is None:
            return httpx.Response(404, json={"code": "rest_no_route"})
        if route == "resource":
            records = [r for r in records if self._matches(r, params)]

        per_page = int(params.get("per_page", 10))
        total_pages = max(1, math.ceil(len(records) / per_page))
        chunk = records[(page - 1) * per_page:page * per_page]
        return httpx.Response(200, json=chunk, headers={"X-WP-TotalPages": str(total_pages)})


@pytest.fixture
def wp():
    site = FakeWordPress()
    site.routes["tags"] = [wp_term(7, "Budgeting"), wp_term(8, "Fundraising"), wp_term(9, "Grant writing")]
    site.routes["categories"] = [wp_term(20, "Finance"), wp_term(21, "Budget Templates")]
    site.routes["resource_audiences"] = [wp_term(1, "Board"), wp_term(2, "Staff")]
    site.routes["resource_lengths"] = [wp_term(4, "Short"), wp_term(5, "Long")]
    site.routes["resource_programs"] = [wp_term(30, "Leadership")]
    site.routes["resource"] = [
        wp_resource(101, "Zero-based budget guide", tags=[7], categories=[20]),
        wp_resource(102, "annual report checklist", resource_audiences=[1]),
        wp_resource(103, "Cash flow worksheet", tags=[7]),
        wp_resource(104, "Spreadsheet starter kit", categories=[21]),
        wp_resource(105, "Board onboarding", protected=True, content="members only", resource_audiences=[1], tags=[8]),
    ]
    return site


@pytest_asyncio.fixture
async def http(wp):
    async with httpx.AsyncClient(transport=httpx.MockTransport(wp.handler)) as client:
        yield client


def make_client(http: httpx.AsyncClient, options: Optional[Dict[str, Any]] = None, **kwargs) -> CatalogClient:
    settings = {"site_url": SITE_URL}
    settings.update(options or {})
    kwargs.setdefault("debounce_delay", 0.01)
    return CatalogClient(CatalogOptions.from_mapping(settings), http=http, **kwargs)


@pytest_asyncio.fixture
async def client(http):
    catalog = make_client(http)
    yield catalog
    await catalog.aclose()
