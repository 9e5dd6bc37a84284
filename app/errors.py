"""
Error taxonomy for the subscribe flow.
Each error knows its HTTP status and how to render itself as the JSON body,
so the API layer only needs one exception handler.
"""

from typing import Any, Dict, Optional


class SubscribeError(RuntimeError):
    """Base class. Raised from app.* and rendered by api.main."""

    status_code: int = 500

    def __init__(self, error: str, details: Optional[str] = None, **extra: Any):
        super().__init__(error if not details else f"{error}: {details}")
        self.error = error
        self.details = details
        self.extra = extra

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.error}
        if self.details is not None:
            payload["details"] = self.details
        payload.update(self.extra)
        return payload


class ClientInputError(SubscribeError):
    """Bad body, missing or malformed email."""

    status_code = 400


class ConfigurationError(SubscribeError):
    """Shopify domain or token not configured."""

    status_code = 500


class UpstreamError(SubscribeError):
    """Shopify answered with a non-2xx status (or could not be reached)."""

    status_code = 500

    def __init__(
        self,
        error: str,
        upstream_status: Optional[int] = None,
        upstream_body: Optional[str] = None,
    ):
        details = f"Shopify API Error: {upstream_status}" if upstream_status is not None else None
        extra: Dict[str, Any] = {}
        if upstream_status is not None:
            extra["upstream_status"] = upstream_status
        if upstream_body is not None:
            extra["upstream_body"] = upstream_body
        super().__init__(error, details=details, **extra)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
