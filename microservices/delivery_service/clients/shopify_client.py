"""
Shopify Admin API Client

Thin async wrapper around the Shopify Admin REST API: order and fulfillment
order reads, fulfillment creation with tracking info.
"""

import httpx
import logging
from typing import Any, Dict, List, Optional

from ..protocols import CommercePlatformError

logger = logging.getLogger(__name__)


class ShopifyClient:
    """Client for the Shopify Admin REST API"""

    def __init__(
        self,
        shop_domain: Optional[str],
        access_token: Optional[str],
        api_version: str = "2024-01",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.shop_domain = shop_domain
        self.api_version = api_version
        if not shop_domain or not access_token:
            logger.warning("Shopify domain/access token not configured; fulfillment updates will fail")

        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": access_token or "",
            },
        )

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _url(self, path: str) -> str:
        if not self.shop_domain:
            raise CommercePlatformError("Shopify shop domain not configured")
        return f"https://{self.shop_domain}/admin/api/{self.api_version}{path}"

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Fetch an order by ID"""
        data = await self._request("GET", f"/orders/{order_id}.json")
        order = data.get("order")
        if not isinstance(order, dict):
            raise CommercePlatformError(f"Order {order_id} missing from response")
        return order

    async def get_fulfillment_order(self, fulfillment_order_id: str) -> Dict[str, Any]:
        """Fetch a fulfillment order by ID"""
        data = await self._request("GET", f"/fulfillment_orders/{fulfillment_order_id}.json")
        fulfillment_order = data.get("fulfillment_order")
        if not isinstance(fulfillment_order, dict):
            raise CommercePlatformError(f"Fulfillment order {fulfillment_order_id} missing from response")
        return fulfillment_order

    async def list_fulfillment_orders(self, order_id: str) -> List[Dict[str, Any]]:
        """Fetch all fulfillment orders of an order"""
        data = await self._request("GET", f"/orders/{order_id}/fulfillment_orders.json")
        return data.get("fulfillment_orders") or []

    async def create_fulfillment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a fulfillment using the Fulfillment Orders API"""
        data = await self._request("POST", "/fulfillments.json", json=payload)
        return data.get("fulfillment") or {}

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = self._url(path)
        try:
            response = await self.client.request(method, url, json=json)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Shopify {method} {path} failed: {e.response.status_code} {e.response.text[:500]}")
            raise CommercePlatformError(
                f"Shopify {method} {path} returned {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise CommercePlatformError(f"Shopify {method} {path} failed: {e!r}") from e
        except ValueError as e:
            raise CommercePlatformError(f"Shopify {method} {path} returned a non-JSON body") from e
