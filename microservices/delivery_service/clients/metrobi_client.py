"""
Metrobi Courier API Client

HTTP client for rate quotes and delivery creation.
"""

import httpx
import logging
from typing import Any, Dict, Optional

from ..protocols import CourierGatewayError, CourierResponseError

logger = logging.getLogger(__name__)


class MetrobiClient:
    """Client for the Metrobi delivery API"""

    def __init__(
        self,
        base_url: str = "https://delivery-api.metrobi.com/api/v1",
        api_key: Optional[str] = None,
        create_path: str = "/delivery",
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Metrobi client

        Args:
            base_url: API base URL (without trailing slash)
            api_key: Value for the x-api-key header
            create_path: Path of the delivery creation endpoint
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.base_url = base_url.rstrip('/')
        self.create_path = "/" + create_path.lstrip("/")
        if not api_key:
            logger.warning("METROBI_API_KEY not configured; courier calls will be rejected")

        self.client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={
                "accept": "application/json",
                "content-type": "application/json",
                "x-api-key": api_key or "",
            },
        )
        logger.info(f"MetrobiClient initialized with base_url: {self.base_url}")

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def request_rate(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Request a rate quote

        Args:
            endpoint: "deliveryrate" or "delivery_estimate"
            payload: Rate request body

        Returns:
            Decoded response body
        """
        return await self._post(f"{self.base_url}/{endpoint.lstrip('/')}", payload)

    async def create_delivery(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a courier delivery

        Args:
            payload: Delivery request body

        Returns:
            Decoded response body
        """
        return await self._post(f"{self.base_url}{self.create_path}", payload)

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.post(url, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Metrobi {url} returned {e.response.status_code}: {e.response.text[:500]}")
            raise CourierGatewayError(
                f"Metrobi returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Error calling Metrobi {url}: {e!r}")
            raise CourierGatewayError(f"Metrobi request failed: {e!r}", outcome_unknown=True) from e

        try:
            return response.json()
        except ValueError as e:
            raise CourierResponseError("Metrobi returned a non-JSON body") from e
