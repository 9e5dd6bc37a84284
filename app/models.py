# app/models.py
"""
Transient types for one subscribe request. Nothing here is persisted:
the customer record lives in Shopify and we only see a projection of it.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

CustomerId = Union[int, str]


@dataclass
class SubscriptionRequest:
    email: str
    source: Optional[str] = None
    discount_code: Optional[str] = None
    tags: Optional[str] = None


@dataclass
class RemoteCustomer:
    id: CustomerId
    email: Optional[str] = None
    tags: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RemoteCustomer":
        """Build from one entry of Shopify's `customers` array."""
        return cls(id=data["id"], email=data.get("email"), tags=data.get("tags") or "")


@dataclass
class UpsertResult:
    customer_id: CustomerId
    email: str
    existing_customer: bool
    message: str
