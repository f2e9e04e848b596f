#!/usr/bin/env python3
"""Service configuration for the delivery bridge

External systems the delivery service talks to:
- Metrobi courier API (rate quotes, delivery creation)
- Shopify Admin REST API (order / fulfillment order reads, fulfillment create)

Plus the store identity used as the fixed pickup stop.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import List, Optional


def _bool(val: str) -> bool:
    return val.lower() == "true"


def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


def _decimal(val: str, default: str) -> Decimal:
    try:
        return Decimal(val) if val else Decimal(default)
    except InvalidOperation:
        return Decimal(default)


def _list(val: str) -> List[str]:
    return [item.strip() for item in val.split(",") if item.strip()]


@dataclass
class CourierConfig:
    """Metrobi courier API settings"""
    api_url: str = "https://delivery-api.metrobi.com/api/v1"
    api_key: Optional[str] = None
    # "deliveryrate" quotes on addresses only, "delivery_estimate" also sends the pickup slot
    rate_endpoint: str = "deliveryrate"
    create_path: str = "/delivery"
    vehicle_size: str = "suv"
    surcharge: Decimal = Decimal("0")
    timeout_seconds: float = 8.0

    @classmethod
    def from_env(cls) -> 'CourierConfig':
        return cls(
            api_url=os.getenv("METROBI_API_URL", "https://delivery-api.metrobi.com/api/v1").rstrip("/"),
            api_key=os.getenv("METROBI_API_KEY") or None,
            rate_endpoint=os.getenv("METROBI_RATE_ENDPOINT", "deliveryrate"),
            create_path=os.getenv("METROBI_CREATE_PATH", "/delivery"),
            vehicle_size=os.getenv("METROBI_VEHICLE_SIZE", "suv"),
            surcharge=_decimal(os.getenv("METROBI_SURCHARGE", "0"), "0"),
            timeout_seconds=_float(os.getenv("OUTBOUND_TIMEOUT_SECONDS", "8"), 8.0),
        )


@dataclass
class ShopifyConfig:
    """Shopify Admin API settings"""
    shop_domain: Optional[str] = None
    access_token: Optional[str] = None
    api_version: str = "2024-01"
    webhook_secret: Optional[str] = None
    notify_customer: bool = True
    timeout_seconds: float = 8.0

    @classmethod
    def from_env(cls) -> 'ShopifyConfig':
        return cls(
            shop_domain=os.getenv("SHOPIFY_SHOP_DOMAIN") or None,
            access_token=os.getenv("SHOPIFY_ACCESS_TOKEN") or None,
            api_version=os.getenv("SHOPIFY_API_VERSION", "2024-01"),
            webhook_secret=os.getenv("SHOPIFY_WEBHOOK_SECRET") or None,
            notify_customer=_bool(os.getenv("NOTIFY_CUSTOMER", "true")),
            timeout_seconds=_float(os.getenv("OUTBOUND_TIMEOUT_SECONDS", "8"), 8.0),
        )


@dataclass
class StoreConfig:
    """The store is the fixed pickup stop for every delivery"""
    name: str = "Store"
    address: str = "184 Lexington Ave New York NY 10016"
    phone: Optional[str] = None
    pickup_instructions: str = "Pick up at the front counter"
    timezone: str = "America/New_York"
    excluded_postal_codes: List[str] = field(default_factory=lambda: ["10016"])
    courier_match_title: str = "metrobi"
    courier_match_code: str = "METROBI"

    @classmethod
    def from_env(cls) -> 'StoreConfig':
        return cls(
            name=os.getenv("STORE_NAME", "Store"),
            address=os.getenv("STORE_ADDRESS", "184 Lexington Ave New York NY 10016"),
            phone=os.getenv("STORE_PHONE") or None,
            pickup_instructions=os.getenv("STORE_PICKUP_INSTRUCTIONS", "Pick up at the front counter"),
            timezone=os.getenv("STORE_TIMEZONE", "America/New_York"),
            excluded_postal_codes=_list(os.getenv("EXCLUDED_POSTAL_CODES", "10016")),
            courier_match_title=os.getenv("COURIER_MATCH_TITLE", "metrobi"),
            courier_match_code=os.getenv("COURIER_MATCH_CODE", "METROBI"),
        )


@dataclass
class ServiceConfig:
    """External endpoints and store identity"""
    courier: CourierConfig = field(default_factory=CourierConfig)
    shopify: ShopifyConfig = field(default_factory=ShopifyConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        return cls(
            courier=CourierConfig.from_env(),
            shopify=ShopifyConfig.from_env(),
            store=StoreConfig.from_env(),
        )
