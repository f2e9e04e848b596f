"""
Delivery Service Factory

Factory for creating DeliveryOrchestrator with real dependencies.
This is the ONLY module that imports concrete implementations.
"""

import logging
from typing import Optional

from core.config import AppConfig, get_settings

from .clients import MetrobiClient, ShopifyClient
from .delivery_job_repository import DeliveryJobRepository
from .delivery_orchestrator import DeliveryOrchestrator
from .idempotency_store import InMemoryIdempotencyStore
from .models import RateEndpoint
from .protocols import IdempotencyStoreProtocol
from .rate_quote_service import RateQuoteService
from .webhook_auth import WebhookAuthenticator

logger = logging.getLogger(__name__)


def create_idempotency_store(settings: AppConfig) -> IdempotencyStoreProtocol:
    """Pick the idempotency backend from IDEMPOTENCY_BACKEND"""
    infra = settings.infrastructure
    if infra.idempotency_backend == "postgres":
        logger.info(f"Using PostgreSQL idempotency store (schema={infra.postgres_schema})")
        return DeliveryJobRepository(
            dsn=infra.dsn,
            schema=infra.postgres_schema,
            pending_ttl_seconds=infra.pending_ttl_seconds,
        )
    if infra.idempotency_backend != "memory":
        raise ValueError(f"Unknown idempotency backend: {infra.idempotency_backend}")

    logger.warning("Using in-memory idempotency store; reservations are lost on restart")
    return InMemoryIdempotencyStore(pending_ttl_seconds=infra.pending_ttl_seconds)


def create_delivery_orchestrator(settings: Optional[AppConfig] = None) -> DeliveryOrchestrator:
    """
    Create DeliveryOrchestrator with all real dependencies

    Args:
        settings: Optional app config (global settings if not provided)

    Returns:
        DeliveryOrchestrator; call initialize() on its idempotency store before use
    """
    if settings is None:
        settings = get_settings()

    courier_config = settings.services.courier
    shopify_config = settings.services.shopify
    store_config = settings.services.store

    courier = MetrobiClient(
        base_url=courier_config.api_url,
        api_key=courier_config.api_key,
        create_path=courier_config.create_path,
        timeout=courier_config.timeout_seconds,
    )
    commerce = ShopifyClient(
        shop_domain=shopify_config.shop_domain,
        access_token=shopify_config.access_token,
        api_version=shopify_config.api_version,
        timeout=shopify_config.timeout_seconds,
    )

    rate_service = RateQuoteService(
        courier=courier,
        endpoint=RateEndpoint(courier_config.rate_endpoint),
        vehicle_size=courier_config.vehicle_size,
        surcharge=courier_config.surcharge,
        timeout_seconds=courier_config.timeout_seconds,
    )

    logger.info("DeliveryOrchestrator created with real dependencies")

    return DeliveryOrchestrator(
        rate_service=rate_service,
        courier=courier,
        commerce=commerce,
        idempotency_store=create_idempotency_store(settings),
        store_name=store_config.name,
        store_address=store_config.address,
        store_phone=store_config.phone,
        store_instructions=store_config.pickup_instructions,
        store_timezone=store_config.timezone,
        excluded_postal_codes=store_config.excluded_postal_codes,
        courier_match_title=store_config.courier_match_title,
        courier_match_code=store_config.courier_match_code,
        vehicle_size=courier_config.vehicle_size,
        notify_customer=shopify_config.notify_customer,
        timeout_seconds=courier_config.timeout_seconds,
    )


def create_webhook_authenticator(settings: Optional[AppConfig] = None) -> WebhookAuthenticator:
    if settings is None:
        settings = get_settings()
    return WebhookAuthenticator(secret=settings.services.shopify.webhook_secret)


__all__ = [
    "create_delivery_orchestrator",
    "create_idempotency_store",
    "create_webhook_authenticator",
]
