"""
Delivery Service Data Models

Pydantic models for rate quotes, Shopify order / fulfillment order events,
pickup slots and courier delivery jobs.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ====================
# Enum Types
# ====================

class RateServiceCode(str, Enum):
    """Service codes returned to the Shopify carrier service"""
    METROBI = "METROBI"
    METROBI_UNAVAILABLE = "METROBI_UNAVAILABLE"


class ReservationStatus(str, Enum):
    """Idempotency reservation status"""
    PENDING = "pending"
    COMMITTED = "committed"


class BookingStatus(str, Enum):
    """Result of handling a booking webhook"""
    BOOKED = "booked"
    NOT_SELECTED = "not_selected"
    DUPLICATE = "duplicate"
    NO_SHIPPING_ADDRESS = "no_shipping_address"


class RateEndpoint(str, Enum):
    """Courier rate endpoint variants"""
    DELIVERY_RATE = "deliveryrate"
    DELIVERY_ESTIMATE = "delivery_estimate"


UNAVAILABLE_PRICE = "999900"


def _coerce_id(value: Any) -> Any:
    # Shopify sends numeric ids as JSON integers
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


# ====================
# Address / Contact
# ====================

class ShopifyAddress(BaseModel):
    """
    Address as sent by Shopify.

    Carrier-service rate requests use postal_code/province/country while
    order payloads use zip/province_code/country_code; both are accepted.
    """
    # Postal codes and street numbers sometimes arrive as JSON numbers
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    province_code: Optional[str] = None
    postal_code: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    country_code: Optional[str] = None
    company: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None

    @property
    def postal(self) -> Optional[str]:
        return self.postal_code or self.zip

    @property
    def region(self) -> Optional[str]:
        return self.province_code or self.province

    @property
    def country_iso(self) -> Optional[str]:
        code = self.country_code or self.country
        return code.upper() if code else None

    @property
    def contact_name(self) -> Optional[str]:
        if self.name:
            return self.name
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or None

    def one_line(self) -> str:
        """Street, city, province and postal code joined with single spaces"""
        parts = [self.address1, self.city, self.region, self.postal]
        return " ".join(part.strip() for part in parts if part and part.strip())


# ====================
# Rate Quotes
# ====================

class RateRequest(BaseModel):
    """The `rate` object of a Shopify carrier-service request"""
    model_config = ConfigDict(extra="ignore")

    origin: Optional[ShopifyAddress] = None
    destination: Optional[ShopifyAddress] = None
    currency: Optional[str] = None


class RateQuote(BaseModel):
    """Single rate returned to Shopify checkout"""
    service_name: str
    service_code: RateServiceCode
    description: str
    total_price: str = Field(..., description="Integer minor units as a decimal string")
    currency: str = "USD"

    @classmethod
    def available(cls, total_price: str, currency: str = "USD") -> "RateQuote":
        return cls(
            service_name="Metrobi Delivery",
            service_code=RateServiceCode.METROBI,
            description="Same-day local courier powered by Metrobi",
            total_price=total_price,
            currency=currency,
        )

    @classmethod
    def unavailable(cls, currency: str = "USD") -> "RateQuote":
        """Degraded sentinel shown instead of failing checkout"""
        return cls(
            service_name="⚠️ Metrobi Delivery - Temporarily Unavailable",
            service_code=RateServiceCode.METROBI_UNAVAILABLE,
            description="Metrobi could not calculate delivery for this address",
            total_price=UNAVAILABLE_PRICE,
            currency=currency,
        )


class RateResponse(BaseModel):
    """Carrier-service response body"""
    rates: List[RateQuote] = Field(default_factory=list)


# ====================
# Shopify Events
# ====================

class ShippingLine(BaseModel):
    """Shipping method chosen at checkout"""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    title: Optional[str] = None
    code: Optional[str] = None
    source: Optional[str] = None


class Customer(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class OrderEvent(BaseModel):
    """Shopify order (orders/create webhook or Admin API order read)"""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    customer: Optional[Customer] = None
    shipping_address: Optional[ShopifyAddress] = None
    shipping_lines: List[ShippingLine] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_order_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @property
    def recipient_name(self) -> Optional[str]:
        if self.shipping_address and self.shipping_address.contact_name:
            return self.shipping_address.contact_name
        if self.customer:
            full = f"{self.customer.first_name or ''} {self.customer.last_name or ''}".strip()
            return full or None
        return None

    @property
    def recipient_phone(self) -> Optional[str]:
        if self.shipping_address and self.shipping_address.phone:
            return self.shipping_address.phone
        if self.phone:
            return self.phone
        return self.customer.phone if self.customer else None

    @property
    def recipient_email(self) -> Optional[str]:
        if self.email:
            return self.email
        return self.customer.email if self.customer else None


class FulfillmentOrderEvent(BaseModel):
    """fulfillment_orders/create reference, ids already normalized"""
    fulfillment_order_id: str
    order_id: Optional[str] = None


class DeliveryRequest(BaseModel):
    """
    Trigger-independent booking input.

    Built from either webhook; `key` is the idempotency key for the
    trigger path (order id or fulfillment order id).
    """
    key: str
    order_id: str
    order_name: Optional[str] = None
    fulfillment_order_id: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None
    recipient_email: Optional[str] = None
    shipping_address: Optional[ShopifyAddress] = None
    shipping_lines: List[ShippingLine] = Field(default_factory=list)

    @classmethod
    def from_order(
        cls,
        order: OrderEvent,
        key: Optional[str] = None,
        fulfillment_order_id: Optional[str] = None,
    ) -> "DeliveryRequest":
        return cls(
            key=key or order.id,
            order_id=order.id,
            order_name=order.name,
            fulfillment_order_id=fulfillment_order_id,
            recipient_name=order.recipient_name,
            recipient_phone=order.recipient_phone,
            recipient_email=order.recipient_email,
            shipping_address=order.shipping_address,
            shipping_lines=order.shipping_lines,
        )


# ====================
# Scheduling / Delivery
# ====================

class PickupSlot(BaseModel):
    """Courier pickup date and time (minute precision, store local time)"""
    day: date
    time_of_day: time

    @property
    def date_str(self) -> str:
        return self.day.isoformat()

    @property
    def time_str(self) -> str:
        return self.time_of_day.strftime("%H:%M")

    def as_payload(self) -> Dict[str, str]:
        return {"date": self.date_str, "time": self.time_str}


class CourierDelivery(BaseModel):
    """Fields extracted from a courier delivery-creation response"""
    delivery_id: str
    tracking_url: Optional[str] = None
    tracking_code: Optional[str] = None


class DeliveryJob(BaseModel):
    """Courier booking recorded against an idempotency key"""
    key: str
    order_id: str
    fulfillment_order_id: Optional[str] = None
    delivery_id: str
    tracking_url: Optional[str] = None
    tracking_number: Optional[str] = None
    created_at: datetime


class BookingOutcome(BaseModel):
    """Result of the booking path for one webhook delivery"""
    status: BookingStatus
    key: Optional[str] = None
    job: Optional[DeliveryJob] = None
    fulfillment_updated: bool = False


# ====================
# Service Responses
# ====================

class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "delivery_service"


class ServiceInfo(BaseModel):
    service_name: str
    version: str
    capabilities: List[str] = Field(default_factory=list)
    routes: List[Dict[str, Any]] = Field(default_factory=list)
