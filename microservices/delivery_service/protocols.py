"""
Delivery Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

# Import only models (no I/O dependencies)
from .models import DeliveryJob


# ============================================================================
# Custom Exceptions - defined here to avoid importing clients
# ============================================================================

class DeliveryServiceError(Exception):
    """Base exception for delivery service errors"""
    pass


class InvalidPayloadError(DeliveryServiceError):
    """Inbound payload could not be parsed"""
    pass


class CourierGatewayError(DeliveryServiceError):
    """Courier API transport failure or non-success HTTP status"""

    def __init__(self, message: str, status_code: Optional[int] = None, outcome_unknown: bool = False):
        super().__init__(message)
        self.status_code = status_code
        # True when the request may have reached the courier (timeout, dropped connection)
        self.outcome_unknown = outcome_unknown


class CourierResponseError(DeliveryServiceError):
    """Courier answered but the body is not usable"""

    def __init__(self, message: str, rejected: bool = False):
        super().__init__(message)
        # True when the courier explicitly reported success: false
        self.rejected = rejected


class CommercePlatformError(DeliveryServiceError):
    """Shopify Admin API failure"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DeliveryBookingError(DeliveryServiceError):
    """Courier delivery could not be created; surfaced to the webhook caller"""
    pass


# ============================================================================
# Idempotency Store Protocol
# ============================================================================

@runtime_checkable
class IdempotencyStoreProtocol(Protocol):
    """
    Interface for the booking idempotency store.

    try_reserve is check-and-set: it returns True only for the call that
    creates the reservation. Pending reservations expire after a TTL so a
    crashed booking attempt can be retried; committed ones never expire.
    """

    async def initialize(self) -> None:
        """Open connections / create storage"""
        ...

    async def try_reserve(self, key: str) -> bool:
        """Reserve key for booking"""
        ...

    async def record(self, key: str, job: DeliveryJob) -> None:
        """Commit the booking result for a reserved key"""
        ...

    async def release(self, key: str) -> None:
        """Drop a pending reservation"""
        ...

    async def lookup(self, key: str) -> Optional[DeliveryJob]:
        """Get the committed job for key"""
        ...

    async def close(self) -> None:
        ...


# ============================================================================
# Client Protocols
# ============================================================================

@runtime_checkable
class CourierGatewayProtocol(Protocol):
    """Interface for the Metrobi courier API"""

    async def request_rate(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a rate request; returns the decoded body"""
        ...

    async def create_delivery(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a delivery creation request; returns the decoded body"""
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class CommercePlatformGatewayProtocol(Protocol):
    """Interface for the Shopify Admin REST API"""

    async def get_order(self, order_id: str) -> Dict[str, Any]:
        """Get order by ID"""
        ...

    async def get_fulfillment_order(self, fulfillment_order_id: str) -> Dict[str, Any]:
        """Get fulfillment order by ID"""
        ...

    async def list_fulfillment_orders(self, order_id: str) -> List[Dict[str, Any]]:
        """List fulfillment orders of an order"""
        ...

    async def create_fulfillment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a fulfillment carrying tracking info"""
        ...

    async def close(self) -> None:
        ...
