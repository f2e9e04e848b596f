"""
Delivery Service Routes Registry

Defines service metadata and routes exposed on the info endpoint.
"""

SERVICE_METADATA = {
    "service_name": "delivery_service",
    "version": "1.0.0",
    "tags": ["v1", "delivery", "shopify", "metrobi", "microservice"],
    "capabilities": [
        "carrier_rate_quotes",
        "courier_booking",
        "webhook_verification",
        "idempotent_booking",
        "fulfillment_tracking",
    ],
}

ROUTES = [
    # Health endpoints
    {"path": "/health", "methods": ["GET"], "description": "Health check"},
    {"path": "/api/v1/delivery/health", "methods": ["GET"], "description": "Service health check (API v1)"},

    # Service info
    {"path": "/api/v1/delivery/info", "methods": ["GET"], "description": "Service information"},

    # Shopify carrier service
    {"path": "/carrier_service", "methods": ["POST"], "description": "Shopify carrier-service rate quote"},

    # Shopify webhooks
    {"path": "/webhooks/orders_create", "methods": ["POST"], "description": "orders/create webhook"},
    {"path": "/webhooks/fulfillment_orders_create", "methods": ["POST"], "description": "fulfillment_orders/create webhook"},

    # Booking records
    {"path": "/api/v1/delivery/jobs/{key}", "methods": ["GET"], "description": "Get booked delivery job"},
]


__all__ = ["SERVICE_METADATA", "ROUTES"]
