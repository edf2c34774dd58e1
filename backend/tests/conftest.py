"""Pytest configuration and shared fixtures.

Storefronts are simulated with httpx.MockTransport: a MockStorefront maps
URL paths to handlers and records every request it receives.
"""

from typing import Any, Callable, Dict, List, Optional, Union

import httpx
import pytest
import pytest_asyncio

from harvester.scrapers.harvest_service import HarvestService
from harvester.scrapers.session import HarvestSession

ORIGIN = "https://shop.example.com"

Handler = Callable[[httpx.Request], httpx.Response]


class MockStorefront:
    """Path-routed fake storefront for httpx.MockTransport."""

    def __init__(self):
        self.routes: Dict[str, Handler] = {}
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"code": "rest_no_route"})
        return route(request)

    def add(self, path: str, response: Union[Handler, httpx.Response, Any]) -> None:
        """Serve a fixed response, a JSON body, or a custom handler at path."""
        if callable(response):
            self.routes[path] = response
        elif isinstance(response, httpx.Response):
            self.routes[path] = lambda request: response
        else:
            self.routes[path] = lambda request: httpx.Response(200, json=response)

    def status(self, path: str, status_code: int) -> None:
        self.routes[path] = lambda request: httpx.Response(status_code, json={"code": "error"})

    def paginated(
        self,
        path: str,
        records: List[Any],
        *,
        size_param: str = "per_page",
        envelope: Optional[str] = None,
        total_headers: bool = True,
        fail_pages: Optional[Dict[int, int]] = None,
    ) -> None:
        """Serve records in pages driven by the page / per_page (or limit) params.

        Args:
            fail_pages: page number -> status code to answer instead
        """
        fail_pages = fail_pages or {}

        def route(request: httpx.Request) -> httpx.Response:
            page = int(request.url.params.get("page", 1))
            size = int(request.url.params.get(size_param, 10))
            if page in fail_pages:
                return httpx.Response(fail_pages[page], json={"code": "error"})
            chunk = records[(page - 1) * size : page * size]
            headers = {}
            if total_headers:
                headers["X-WP-Total"] = str(len(records))
                headers["X-WP-TotalPages"] = str(max(1, -(-len(records) // size)))
            body = {envelope: chunk} if envelope else chunk
            return httpx.Response(200, json=body, headers=headers)

        self.routes[path] = route

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


def woo_store_product(i: int, **overrides) -> Dict[str, Any]:
    """Raw wc/store/v1 product."""
    product = {
        "id": i,
        "name": f"Product {i}",
        "permalink": f"{ORIGIN}/product/product-{i}/",
        "sku": f"SKU-{i}",
        "description": f"<p>Description of <b>product {i}</b></p>",
        "short_description": "<p>Short</p>",
        "on_sale": False,
        "prices": {
            "price": "1999",
            "regular_price": "1999",
            "sale_price": "1999",
            "currency_code": "USD",
            "currency_minor_unit": 2,
        },
        "is_in_stock": True,
        "categories": [{"id": 7, "name": "Shoes", "slug": "shoes"}],
        "tags": [{"id": 3, "name": "Summer", "slug": "summer"}],
        "images": [{"id": 1, "src": f"https://cdn.example.com/p{i}.jpg"}],
        "attributes": [],
        "variations": [],
    }
    product.update(overrides)
    return product


def woo_rest_product(i: int, **overrides) -> Dict[str, Any]:
    """Raw wc/v3 product."""
    product = {
        "id": i,
        "name": f"Product {i}",
        "permalink": f"{ORIGIN}/product/product-{i}/",
        "sku": f"SKU-{i}",
        "description": "<p>Body</p>",
        "short_description": "",
        "price": "24.50",
        "regular_price": "24.50",
        "sale_price": "",
        "on_sale": False,
        "stock_status": "instock",
        "stock_quantity": 5,
        "categories": [{"id": 7, "name": "Shoes", "slug": "shoes"}],
        "tags": [],
        "images": [{"id": 1, "src": f"https://cdn.example.com/p{i}.jpg"}],
        "attributes": [{"id": 1, "name": "Size", "options": ["S", "M"]}],
        "variations": [101, 102],
        "date_created": "2024-01-01T10:00:00",
        "date_modified": "2024-02-01T10:00:00",
    }
    product.update(overrides)
    return product


def shopify_product(i: int, **overrides) -> Dict[str, Any]:
    """Raw Shopify products.json product."""
    product = {
        "id": 1000 + i,
        "title": f"Tee {i}",
        "handle": f"tee-{i}",
        "body_html": "<p>Soft cotton</p>",
        "product_type": "Shirts",
        "tags": ["cotton", "summer"],
        "created_at": "2024-01-01T10:00:00-05:00",
        "updated_at": "2024-01-02T10:00:00-05:00",
        "variants": [
            {"id": 1, "sku": f"TEE-{i}", "price": "25.00", "compare_at_price": None, "available": True},
        ],
        "images": [{"id": 1, "src": f"https://cdn.shopify.com/tee-{i}.jpg"}],
        "options": [{"name": "Title", "position": 1, "values": ["Default Title"]}],
    }
    product.update(overrides)
    return product


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend for tests."""
    return "asyncio"


@pytest.fixture
def storefront() -> MockStorefront:
    return MockStorefront()


@pytest.fixture
def make_session(storefront: MockStorefront) -> Callable[..., HarvestSession]:
    """Build sessions on the mock storefront with no delay and no retry waits."""

    def factory(**overrides) -> HarvestSession:
        kwargs = dict(delay_ms=0, retry_attempts=1, retry_wait_max=0, bearer_token="", basic_auth=None)
        kwargs.update(overrides)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(storefront.handler))
        return HarvestSession(http_client, **kwargs)

    return factory


@pytest_asyncio.fixture
async def service(make_session) -> HarvestService:
    """HarvestService whose sessions all talk to the mock storefront."""
    harvest_service = HarvestService(make_session(), session_factory=make_session)
    yield harvest_service
    await harvest_service.aclose()
