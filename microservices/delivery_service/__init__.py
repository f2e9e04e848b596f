"""
Delivery Service

Shopify <-> Metrobi courier bridge.
Answers carrier-service rate requests and books courier deliveries from
order / fulfillment order webhooks.

Port: 8260
"""

__version__ = "1.0.0"
__service_name__ = "delivery_service"
__service_port__ = 8260
