from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from app.config import Settings, ShopifyCredentials, get_settings
from app.integrations.shopify import ShopifyClient
from app.subscriptions import SubscriptionUpserter

FROZEN_NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
FROZEN_ISO = "2024-01-02T03:04:05.000Z"


class FakeShop:
    """
    In-memory stand-in for the Shopify Admin API, served through httpx.MockTransport.
    Every request is recorded so tests can assert which calls were (not) made.
    """

    def __init__(
        self,
        customers: Optional[List[Dict[str, Any]]] = None,
        search_status: int = 200,
        update_status: int = 200,
        create_status: int = 201,
        new_customer_id: int = 7001,
    ):
        self.customers = customers or []
        self.search_status = search_status
        self.update_status = update_status
        self.create_status = create_status
        self.new_customer_id = new_customer_id
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "GET" and path.endswith("/customers/search.json"):
            if self.search_status != 200:
                return httpx.Response(self.search_status, text='{"errors":"search exploded"}')
            return httpx.Response(200, json={"customers": self.customers})
        if request.method == "PUT" and "/customers/" in path:
            if self.update_status != 200:
                return httpx.Response(self.update_status, text='{"errors":"update rejected"}')
            body = json.loads(request.content)
            return httpx.Response(200, json={"customer": body["customer"]})
        if request.method == "POST" and path.endswith("/customers.json"):
            if self.create_status not in (200, 201):
                return httpx.Response(self.create_status, text='{"errors":{"email":["has already been taken"]}}')
            body = json.loads(request.content)
            return httpx.Response(
                201,
                json={"customer": {"id": self.new_customer_id, "email": body["customer"]["email"]}},
            )
        return httpx.Response(404, text="not found")

    def client_factory(self, credentials: ShopifyCredentials) -> ShopifyClient:
        return ShopifyClient(credentials, transport=httpx.MockTransport(self.handler))

    def calls(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method]

    @staticmethod
    def body(request: httpx.Request) -> Dict[str, Any]:
        return json.loads(request.content)


def make_settings(**overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "SHOPIFY_SHOP_DOMAIN": "test-shop.myshopify.com",
        "SHOPIFY_ACCESS_TOKEN": "shpat_test_token",
        "SHOPIFY_API_VERSION": "2023-10",
        "CORS_ALLOW_ORIGIN": None,
        "ENVIRONMENT": "production",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def shop() -> FakeShop:
    return FakeShop()


@pytest.fixture
def make_upserter():
    def _make(shop: FakeShop, **overrides: Any) -> SubscriptionUpserter:
        return SubscriptionUpserter(
            make_settings(**overrides),
            client_factory=shop.client_factory,
            now=lambda: FROZEN_NOW,
        )

    return _make


@pytest.fixture(autouse=True)
def _fresh_settings_cache():
    # get_settings() is cached per process; env tweaks in one test must not leak
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
