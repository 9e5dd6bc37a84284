"""
Centralized settings using Pydantic Settings (v2).
Reads environment variables (and .env) so the Shopify token is NOT hard-coded.
"""

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.errors import ConfigurationError


class Settings(BaseSettings):
    # ---- Shopify Admin API ----
    SHOPIFY_SHOP_DOMAIN: str | None = Field(default=None, description="e.g. my-shop.myshopify.com")
    SHOPIFY_ACCESS_TOKEN: str | None = Field(default=None, description="Admin API access token")
    SHOPIFY_API_VERSION: str = Field(default="2023-10")
    # None = wait as long as Shopify takes (no client-side timeout)
    SHOPIFY_TIMEOUT_S: float | None = None

    # ---- Upsert behaviour ----
    FALLBACK_ON_UPDATE_FAILURE: bool = Field(
        default=True,
        description="If the PUT on an existing customer fails, try creating the customer instead",
    )
    DEFAULT_SOURCE: str = "popup"
    DEFAULT_METAFIELD_SOURCE: str = "discount_popup"
    DEFAULT_DISCOUNT_CODE: str = "WELCOME10"
    DEFAULT_TAGS: str = "newsletter,discount-popup,popup-subscriber"
    METAFIELD_NAMESPACE: str = "popup"

    # ---- HTTP surface ----
    CORS_ALLOW_ORIGIN: str | None = Field(
        default=None,
        description="Fixed Access-Control-Allow-Origin; unset = reflect the caller's Origin",
    )
    ENVIRONMENT: str = Field(default="production", description="'development' exposes error details")

    # ---- Logging / Observability ----
    LOG_LEVEL: str = Field(default="INFO")
    PII_REDACTION_ENABLED: bool = Field(default=True)
    OTEL_EXPORTER_OTLP_ENDPOINT: str | None = None  # set to export traces
    SERVICE_NAME: str = Field(default="popup-subscribe")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Load settings once per process. Tests call get_settings.cache_clear()."""
    return Settings()


@dataclass(frozen=True)
class ShopifyCredentials:
    shop_domain: str
    access_token: str
    api_version: str = "2023-10"

    @property
    def base_url(self) -> str:
        return f"https://{self.shop_domain}/admin/api/{self.api_version}"

    @classmethod
    def from_settings(cls, settings: Settings) -> "ShopifyCredentials":
        """
        Validate the Shopify part of the settings.
        Raises ConfigurationError when the domain or token is missing.
        """
        domain = (settings.SHOPIFY_SHOP_DOMAIN or "").strip()
        token = (settings.SHOPIFY_ACCESS_TOKEN or "").strip()
        if not domain or not token:
            raise ConfigurationError(
                "Server configuration error",
                details="Missing required environment variables",
            )
        # Accept "https://shop.myshopify.com/" as well as the bare hostname
        domain = domain.removeprefix("https://").removeprefix("http://").rstrip("/")
        return cls(shop_domain=domain, access_token=token, api_version=settings.SHOPIFY_API_VERSION)
