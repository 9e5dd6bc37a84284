"""
Outbound integrations. Only Shopify for now: the popup pushes subscribers
straight into the shop's customer list.
"""

from .shopify import ShopifyClient

__all__ = ["ShopifyClient"]
