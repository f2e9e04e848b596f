"""
Delivery Service Clients Module

HTTP clients for the Metrobi courier API and the Shopify Admin API
"""

from .metrobi_client import MetrobiClient
from .shopify_client import ShopifyClient

__all__ = [
    "MetrobiClient",
    "ShopifyClient",
]
