"""
Popup subscription -> Shopify customer upsert.

Flow (strictly sequential, one request at a time):
  1) validate email
  2) validate Shopify credentials (before any outbound call)
  3) search customer by email
  4) found: PUT consent + appended tags (optionally fall through to 5 on failure)
  5) not found: POST a new customer with note + metafields
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from app.config import Settings, ShopifyCredentials
from app.errors import ClientInputError, UpstreamError
from app.integrations.shopify import ShopifyClient
from app.logging_setup import get_logger
from app.models import RemoteCustomer, SubscriptionRequest, UpsertResult
from app.observability import SUBSCRIPTION_UPSERTS, get_tracer
from app.utils import is_valid_email, mask_email, merge_tags

log = get_logger()

ClientFactory = Callable[[ShopifyCredentials], ShopifyClient]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    # Shopify accepts ISO-8601; keep millisecond precision and a Z suffix
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def request_from_payload(body: Dict[str, Any]) -> SubscriptionRequest:
    """
    Turn the parsed JSON body into a SubscriptionRequest.
    Raises ClientInputError for a missing or malformed email.
    `marketing_consent` is accepted by the front-end contract but not used.
    """
    email = body.get("email")
    if not email:
        raise ClientInputError("Email is required", received=body)
    email = str(email)
    if not is_valid_email(email):
        raise ClientInputError("Invalid email format", email=email)
    return SubscriptionRequest(
        email=email,
        source=_clean(body.get("source")),
        discount_code=_clean(body.get("discount_code")),
        tags=_clean(body.get("tags")),
    )


def build_marketing_consent(now: datetime) -> Dict[str, Any]:
    return {
        "state": "subscribed",
        "opt_in_level": "single_opt_in",
        "consent_updated_at": _iso(now),
    }


def build_update_payload(
    customer: RemoteCustomer, req: SubscriptionRequest, settings: Settings, now: datetime
) -> Dict[str, Any]:
    # No request tags -> re-append the popup defaults
    new_tags = req.tags or settings.DEFAULT_TAGS
    return {
        "customer": {
            "id": customer.id,
            "email_marketing_consent": build_marketing_consent(now),
            "tags": merge_tags(customer.tags, new_tags),
        }
    }


def build_note(req: SubscriptionRequest, settings: Settings, now: datetime) -> str:
    source = req.source or settings.DEFAULT_SOURCE
    discount = req.discount_code or settings.DEFAULT_DISCOUNT_CODE
    return (
        f"Customer created via discount popup. Source: {source}. "
        f"Discount: {discount}. Created: {_iso(now)}"
    )


def build_create_payload(req: SubscriptionRequest, settings: Settings, now: datetime) -> Dict[str, Any]:
    namespace = settings.METAFIELD_NAMESPACE
    return {
        "customer": {
            "email": req.email,
            "email_marketing_consent": build_marketing_consent(now),
            "tags": merge_tags(settings.DEFAULT_TAGS, req.tags) if req.tags else settings.DEFAULT_TAGS,
            "note": build_note(req, settings, now),
            "metafields": [
                {
                    "namespace": namespace,
                    "key": "source",
                    "value": req.source or settings.DEFAULT_METAFIELD_SOURCE,
                    "type": "single_line_text_field",
                },
                {
                    "namespace": namespace,
                    "key": "discount_code",
                    "value": req.discount_code or settings.DEFAULT_DISCOUNT_CODE,
                    "type": "single_line_text_field",
                },
            ],
        }
    }


class SubscriptionUpserter:
    """
    Runs the find-or-create sequence against Shopify.
    Settings are injected once; `client_factory` and `now` exist so tests can
    swap the HTTP transport and freeze the clock.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[ClientFactory] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self._client_factory = client_factory or self._default_client
        self._now = now

    def _default_client(self, credentials: ShopifyCredentials) -> ShopifyClient:
        return ShopifyClient(credentials, timeout=self.settings.SHOPIFY_TIMEOUT_S)

    def upsert(self, req: SubscriptionRequest) -> UpsertResult:
        if not is_valid_email(req.email):
            raise ClientInputError("Invalid email format", email=req.email)
        credentials = ShopifyCredentials.from_settings(self.settings)
        masked = mask_email(req.email, self.settings.PII_REDACTION_ENABLED)

        try:
            with self._client_factory(credentials) as client:
                result = self._run(client, req, masked)
        except Exception:
            SUBSCRIPTION_UPSERTS.labels(outcome="failed").inc()
            raise
        SUBSCRIPTION_UPSERTS.labels(outcome="updated" if result.existing_customer else "created").inc()
        return result

    def _run(self, client: ShopifyClient, req: SubscriptionRequest, masked: str) -> UpsertResult:
        tracer = get_tracer()

        with tracer.start_as_current_span("shopify.customer_search"):
            customers = client.search_customers_by_email(req.email)
        log.info("customer_search", email=masked, matches=len(customers))

        if customers:
            # First match wins; duplicates on the Shopify side are ignored
            existing = customers[0]
            payload = build_update_payload(existing, req, self.settings, self._now())
            try:
                with tracer.start_as_current_span("shopify.customer_update"):
                    client.update_customer(existing.id, payload)
            except UpstreamError as e:
                if not self.settings.FALLBACK_ON_UPDATE_FAILURE:
                    log.error("customer_update_failed", customer_id=existing.id, status=e.upstream_status)
                    raise
                log.warning(
                    "customer_update_failed_trying_create",
                    customer_id=existing.id,
                    status=e.upstream_status,
                    body=e.upstream_body,
                )
            else:
                log.info("customer_updated", customer_id=existing.id, email=masked)
                return UpsertResult(
                    customer_id=existing.id,
                    email=req.email,
                    existing_customer=True,
                    message="Existing customer updated with marketing consent",
                )

        payload = build_create_payload(req, self.settings, self._now())
        with tracer.start_as_current_span("shopify.customer_create"):
            created = client.create_customer(payload)
        log.info("customer_created", customer_id=created.get("id"), email=masked)
        return UpsertResult(
            customer_id=created.get("id"),
            email=created.get("email") or req.email,
            existing_customer=False,
            message="Customer created successfully",
        )
