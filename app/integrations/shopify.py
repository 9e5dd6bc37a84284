"""
Shopify Admin REST API (customers)
Docs:
- customers/search: https://shopify.dev/docs/api/admin-rest/2023-10/resources/customer#get-customers-search
- customers (create/update): https://shopify.dev/docs/api/admin-rest/2023-10/resources/customer

This module:
- Searches customers by exact email.
- Updates / creates a customer with a prepared payload.
- Raises UpstreamError on any non-2xx answer (no retries).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from app.config import ShopifyCredentials
from app.errors import UpstreamError
from app.models import CustomerId, RemoteCustomer


class ShopifyClient:
    """
    Thin sync wrapper around httpx.Client bound to one shop.
    Use as a context manager so the connection pool is closed after the request.
    `transport` lets tests plug in httpx.MockTransport.
    """

    def __init__(
        self,
        credentials: ShopifyCredentials,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.credentials = credentials
        self._client = httpx.Client(
            base_url=credentials.base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "X-Shopify-Access-Token": credentials.access_token,
                "Content-Type": "application/json",
            },
        )

    def __enter__(self) -> "ShopifyClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, error: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            r = self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            raise UpstreamError("Failed to reach Shopify", upstream_body=str(e)) from e
        if not r.is_success:
            raise UpstreamError(error, upstream_status=r.status_code, upstream_body=r.text[:1000])
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as e:
            # 2xx with an HTML/garbled body (proxy pages, maintenance mode)
            raise UpstreamError(
                "Invalid response from Shopify", upstream_status=r.status_code, upstream_body=r.text[:1000]
            ) from e

    def search_customers_by_email(self, email: str) -> List[RemoteCustomer]:
        # Shopify wants the literal "email:" prefix, only the address is encoded
        path = f"/customers/search.json?query=email:{quote(email, safe='')}"
        data = self._request("GET", path, error="Failed to search customers")
        return [RemoteCustomer.from_api(c) for c in data.get("customers") or []]

    def update_customer(self, customer_id: CustomerId, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("PUT", f"/customers/{customer_id}.json", error="Failed to update customer", json=payload)
        return data.get("customer") or {}

    def create_customer(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = self._request("POST", "/customers.json", error="Failed to create customer", json=payload)
        return data.get("customer") or {}
