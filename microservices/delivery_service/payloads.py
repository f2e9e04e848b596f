"""
Courier and Shopify payload builders / parsers

Pure functions, no I/O. Everything the orchestrator sends out is built here
from normalized models, and everything it reads back from the courier goes
through a narrow parser that raises CourierResponseError instead of letting
missing fields flow on.
"""

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from .models import CourierDelivery, DeliveryJob, DeliveryRequest, PickupSlot, ShippingLine, ShopifyAddress
from .protocols import CourierResponseError, InvalidPayloadError

FULFILLABLE_STATUSES = ("open", "in_progress")
TRACKING_COMPANY = "Metrobi"

_TRAILING_DIGITS = re.compile(r"(\d+)$")


# ====================
# Identifiers / matching
# ====================

def normalize_numeric_id(value: Any) -> str:
    """
    Normalize a Shopify id to its numeric part.

    Accepts 123, "123" or "gid://shopify/FulfillmentOrder/123".
    """
    if isinstance(value, bool) or value is None:
        raise InvalidPayloadError(f"Invalid identifier: {value!r}")
    if isinstance(value, int):
        return str(value)
    match = _TRAILING_DIGITS.search(str(value).strip())
    if not match:
        raise InvalidPayloadError(f"Invalid identifier: {value!r}")
    return match.group(1)


def courier_selected(shipping_lines: Iterable[ShippingLine], title_term: str, code: str) -> bool:
    """True when a shipping line title contains title_term or its code equals code (case-insensitive)"""
    term = title_term.lower()
    wanted_code = code.lower()
    for line in shipping_lines:
        if line.title and term in line.title.lower():
            return True
        if line.code and line.code.lower() == wanted_code:
            return True
    return False


# ====================
# Courier requests
# ====================

def build_rate_payload(
    pickup_address: str,
    delivery_address: str,
    vehicle_size: str,
    pickup_slot: Optional[PickupSlot] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "size": vehicle_size,
        "pickup_stop": {"address": pickup_address},
        "dropoff_stop": {"address": delivery_address},
    }
    if pickup_slot:
        payload["pickup_time"] = pickup_slot.as_payload()
    return payload


def dropoff_instructions(address: ShopifyAddress) -> str:
    if address.company:
        return f"Business delivery for {address.company}. Leave with reception."
    return "Residential delivery. Hand to recipient or leave at the door."


def build_delivery_payload(
    request: DeliveryRequest,
    store_name: str,
    store_address: str,
    store_phone: Optional[str],
    store_instructions: str,
    vehicle_size: str,
    pickup_slot: PickupSlot,
) -> Dict[str, Any]:
    """Courier booking request for a normalized delivery request"""
    if not request.shipping_address:
        raise InvalidPayloadError(f"Order {request.order_id} has no shipping address")
    address = request.shipping_address

    pickup_contact = {"name": store_name}
    if store_phone:
        pickup_contact["phone"] = store_phone

    dropoff_contact = {"name": request.recipient_name or "Customer"}
    if request.recipient_phone:
        dropoff_contact["phone"] = request.recipient_phone
    if request.recipient_email:
        dropoff_contact["email"] = request.recipient_email

    dropoff_stop: Dict[str, Any] = {
        "address": address.one_line(),
        "contact": dropoff_contact,
        "instructions": dropoff_instructions(address),
    }
    if address.address2:
        dropoff_stop["address2"] = address.address2
    if address.company:
        dropoff_stop["business_name"] = address.company

    return {
        "size": vehicle_size,
        "external_id": request.order_name or request.order_id,
        "pickup_stop": {
            "address": store_address,
            "contact": pickup_contact,
            "instructions": store_instructions,
        },
        "dropoff_stop": dropoff_stop,
        "pickup_time": pickup_slot.as_payload(),
        "settings": {
            "signature_required": False,
            "photo_required": True,
            "notify_recipient": True,
        },
    }


# ====================
# Courier responses
# ====================

def _envelope(body: Any) -> Dict[str, Any]:
    """Return the data object of a courier body, checking the success flag"""
    if not isinstance(body, dict):
        raise CourierResponseError("Courier response is not an object")
    if body.get("success") is not True:
        raise CourierResponseError("Courier response missing success flag", rejected=body.get("success") is False)

    # deliveryrate / delivery nest under response.data, delivery_estimate under data
    response = body.get("response")
    if isinstance(response, dict) and isinstance(response.get("data"), dict):
        return response["data"]
    if isinstance(body.get("data"), dict):
        return body["data"]
    raise CourierResponseError("Courier response has no data object")


def parse_rate_price(body: Any) -> Decimal:
    """Extract the quoted price (dollars) from a rate response"""
    price = _envelope(body).get("price")
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise CourierResponseError(f"Courier price is not numeric: {price!r}")
    amount = Decimal(str(price))
    if not amount.is_finite():
        raise CourierResponseError(f"Courier price is not finite: {price!r}")
    return amount


def parse_delivery(body: Any) -> CourierDelivery:
    """Extract delivery id and tracking fields from a creation response"""
    data = _envelope(body)

    delivery_id = data.get("id") or data.get("delivery_id")
    if isinstance(delivery_id, bool) or not isinstance(delivery_id, (int, str)) or delivery_id == "":
        raise CourierResponseError("Courier delivery response has no delivery id")

    tracking_url = data.get("tracking_url") or data.get("tracking_link")
    tracking_code = data.get("tracking_code") or data.get("tracking_number")
    return CourierDelivery(
        delivery_id=str(delivery_id),
        tracking_url=tracking_url if isinstance(tracking_url, str) else None,
        tracking_code=str(tracking_code) if isinstance(tracking_code, (int, str)) else None,
    )


def to_minor_units(price: Decimal, surcharge: Decimal = Decimal("0")) -> str:
    """(price + surcharge) in cents, rounded half-up, as a string"""
    cents = ((price + surcharge) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return str(int(cents))


# ====================
# Shopify fulfillment
# ====================

def build_fulfillment_payload(
    fulfillment_orders: List[Dict[str, Any]],
    job: DeliveryJob,
    notify_customer: bool = True,
) -> Optional[Dict[str, Any]]:
    """
    Fulfillment create request covering every remaining fulfillable line.

    Returns None when no fulfillment order has anything left to fulfill.
    """
    line_items_by_fulfillment_order = []
    for fulfillment_order in fulfillment_orders:
        if fulfillment_order.get("status") not in FULFILLABLE_STATUSES:
            continue
        line_items = [
            {"id": line["id"], "quantity": line["fulfillable_quantity"]}
            for line in fulfillment_order.get("line_items") or []
            if line.get("id") is not None and (line.get("fulfillable_quantity") or 0) > 0
        ]
        if not line_items:
            continue
        line_items_by_fulfillment_order.append({
            "fulfillment_order_id": fulfillment_order["id"],
            "fulfillment_order_line_items": line_items,
        })

    if not line_items_by_fulfillment_order:
        return None

    return {
        "fulfillment": {
            "line_items_by_fulfillment_order": line_items_by_fulfillment_order,
            "tracking_info": {
                "number": job.tracking_number or job.delivery_id,
                "url": job.tracking_url,
                "company": TRACKING_COMPANY,
            },
            "notify_customer": notify_customer,
        }
    }
