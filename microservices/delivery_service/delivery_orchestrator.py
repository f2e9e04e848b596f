"""
Delivery Orchestrator

Business logic for the two Shopify-facing flows:

- Rate quotes (carrier service): validate, filter unserviceable
  destinations, delegate to RateQuoteService. Never raises.
- Booking (orders/create, fulfillment_orders/create webhooks): book a
  Metrobi delivery at most once per idempotency key, then push tracking
  info back to Shopify on a best-effort basis.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, TypeVar
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from .models import (
    BookingOutcome,
    BookingStatus,
    DeliveryJob,
    DeliveryRequest,
    FulfillmentOrderEvent,
    OrderEvent,
    RateQuote,
    RateRequest,
    RateResponse,
)
from .payloads import (
    build_delivery_payload,
    build_fulfillment_payload,
    courier_selected,
    normalize_numeric_id,
    parse_delivery,
)
from .pickup_scheduler import next_pickup_slot
from .protocols import (
    CommercePlatformError,
    CommercePlatformGatewayProtocol,
    CourierGatewayError,
    CourierGatewayProtocol,
    CourierResponseError,
    DeliveryBookingError,
    IdempotencyStoreProtocol,
    InvalidPayloadError,
)
from .rate_quote_service import RateQuoteService

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STORE_ADDRESS = "184 Lexington Ave New York NY 10016"


class DeliveryOrchestrator:
    """
    Composes rate quoting, pickup scheduling and idempotent booking.

    All collaborators are injected; see factory.create_delivery_orchestrator
    for the production wiring.
    """

    def __init__(
        self,
        rate_service: RateQuoteService,
        courier: CourierGatewayProtocol,
        commerce: CommercePlatformGatewayProtocol,
        idempotency_store: IdempotencyStoreProtocol,
        store_name: str = "Store",
        store_address: str = DEFAULT_STORE_ADDRESS,
        store_phone: Optional[str] = None,
        store_instructions: str = "Pick up at the front counter",
        store_timezone: str = "America/New_York",
        excluded_postal_codes: Iterable[str] = ("10016",),
        courier_match_title: str = "metrobi",
        courier_match_code: str = "METROBI",
        vehicle_size: str = "suv",
        notify_customer: bool = True,
        timeout_seconds: float = 8.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.rate_service = rate_service
        self.courier = courier
        self.commerce = commerce
        self.idempotency_store = idempotency_store

        self.store_name = store_name
        self.store_address = store_address
        self.store_phone = store_phone
        self.store_instructions = store_instructions
        self.store_tz = ZoneInfo(store_timezone)
        self.excluded_postal_codes = {code.strip() for code in excluded_postal_codes}
        self.courier_match_title = courier_match_title
        self.courier_match_code = courier_match_code
        self.vehicle_size = vehicle_size
        self.notify_customer = notify_customer
        self.timeout_seconds = timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        logger.info("DeliveryOrchestrator initialized with dependency injection")

    def _store_now(self) -> datetime:
        return self._clock().astimezone(self.store_tz)

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self.timeout_seconds)

    # ====================
    # Rate quotes
    # ====================

    async def handle_rate_request(self, rate: Dict[str, Any]) -> RateResponse:
        """
        Answer a carrier-service rate request.

        Non-US or excluded destinations get an empty rate list; any other
        failure, including an unparseable rate object, gets the degraded rate.
        Never raises.
        """
        try:
            request = RateRequest.model_validate(rate)
        except ValidationError as e:
            logger.warning(f"Unusable rate request, returning degraded rate: {e}")
            return RateResponse(rates=[RateQuote.unavailable()])

        destination = request.destination
        if destination is None or destination.country_iso != "US":
            return RateResponse(rates=[])

        if destination.postal and destination.postal.strip() in self.excluded_postal_codes:
            logger.info(f"Destination postal code {destination.postal} is excluded")
            return RateResponse(rates=[])

        try:
            origin = request.origin
            pickup_address = origin.one_line() if origin and origin.address1 else self.store_address
            delivery_address = destination.one_line()

            pickup_slot = next_pickup_slot(self._store_now()) if self.rate_service.requires_pickup_slot else None
            quote = await self.rate_service.quote(pickup_address, delivery_address, pickup_slot)
        except Exception as e:
            logger.error(f"Carrier service error: {e}", exc_info=True)
            quote = RateQuote.unavailable()

        return RateResponse(rates=[quote])

    # ====================
    # Booking
    # ====================

    async def handle_order_created(self, payload: Dict[str, Any]) -> BookingOutcome:
        """orders/create webhook; keyed by order id"""
        try:
            order = OrderEvent.model_validate(payload)
        except ValidationError as e:
            raise InvalidPayloadError(f"Invalid order payload: {e}") from e

        return await self.handle_fulfillment_event(DeliveryRequest.from_order(order))

    async def handle_fulfillment_order_created(self, payload: Dict[str, Any]) -> BookingOutcome:
        """
        fulfillment_orders/create webhook; keyed by fulfillment order id.

        The order itself is read back from Shopify before booking.
        """
        event = self.parse_fulfillment_order_event(payload)

        order_id = event.order_id
        if order_id is None:
            fulfillment_order = await self._bounded(
                self.commerce.get_fulfillment_order(event.fulfillment_order_id)
            )
            if fulfillment_order.get("order_id") is None:
                raise CommercePlatformError(
                    f"Fulfillment order {event.fulfillment_order_id} has no order_id"
                )
            order_id = normalize_numeric_id(fulfillment_order["order_id"])

        order_data = await self._bounded(self.commerce.get_order(order_id))
        try:
            order = OrderEvent.model_validate(order_data)
        except ValidationError as e:
            raise CommercePlatformError(f"Unusable order {order_id} from Shopify: {e}") from e

        request = DeliveryRequest.from_order(
            order,
            key=event.fulfillment_order_id,
            fulfillment_order_id=event.fulfillment_order_id,
        )
        return await self.handle_fulfillment_event(request)

    @staticmethod
    def parse_fulfillment_order_event(payload: Dict[str, Any]) -> FulfillmentOrderEvent:
        """Accept {fulfillment_order: {id, order_id}} or a flat {id, order_id}"""
        if not isinstance(payload, dict):
            raise InvalidPayloadError("Fulfillment order payload is not an object")

        body = payload.get("fulfillment_order")
        if not isinstance(body, dict):
            body = payload

        raw_id = body.get("id", payload.get("fulfillment_order_id"))
        raw_order_id = body.get("order_id", payload.get("order_id"))
        return FulfillmentOrderEvent(
            fulfillment_order_id=normalize_numeric_id(raw_id),
            order_id=normalize_numeric_id(raw_order_id) if raw_order_id is not None else None,
        )

    async def handle_fulfillment_event(self, request: DeliveryRequest) -> BookingOutcome:
        """
        Book a courier delivery for a normalized request.

        Raises DeliveryBookingError only when delivery creation fails; a
        failed Shopify fulfillment update after booking is logged and
        reported through `fulfillment_updated`.
        """
        key = request.key

        if not courier_selected(request.shipping_lines, self.courier_match_title, self.courier_match_code):
            logger.info(f"Order {request.order_id} did not select Metrobi, skipping")
            return BookingOutcome(status=BookingStatus.NOT_SELECTED, key=key)

        if request.shipping_address is None:
            logger.warning(f"Order {request.order_id} selected Metrobi but has no shipping address")
            return BookingOutcome(status=BookingStatus.NO_SHIPPING_ADDRESS, key=key)

        pickup_slot = next_pickup_slot(self._store_now())
        payload = build_delivery_payload(
            request,
            store_name=self.store_name,
            store_address=self.store_address,
            store_phone=self.store_phone,
            store_instructions=self.store_instructions,
            vehicle_size=self.vehicle_size,
            pickup_slot=pickup_slot,
        )

        if not await self.idempotency_store.try_reserve(key):
            logger.info(f"Delivery for {key} already booked or in progress, skipping")
            return BookingOutcome(status=BookingStatus.DUPLICATE, key=key)

        try:
            body = await self._bounded(self.courier.create_delivery(payload))
            delivery = parse_delivery(body)
        except asyncio.TimeoutError as e:
            # The courier may still create the job; keep the reservation pending
            logger.error(f"Metrobi delivery creation for {key} timed out after {self.timeout_seconds}s")
            raise DeliveryBookingError(f"Delivery creation timed out for {key}") from e
        except CourierGatewayError as e:
            if not e.outcome_unknown:
                await self.idempotency_store.release(key)
            logger.error(f"Metrobi delivery creation for {key} failed: {e}")
            raise DeliveryBookingError(f"Delivery creation failed for {key}: {e}") from e
        except CourierResponseError as e:
            if e.rejected:
                await self.idempotency_store.release(key)
            logger.error(f"Metrobi delivery response for {key} unusable: {e}")
            raise DeliveryBookingError(f"Delivery creation failed for {key}: {e}") from e

        job = DeliveryJob(
            key=key,
            order_id=request.order_id,
            fulfillment_order_id=request.fulfillment_order_id,
            delivery_id=delivery.delivery_id,
            tracking_url=delivery.tracking_url,
            tracking_number=delivery.tracking_code or delivery.delivery_id,
            created_at=self._clock(),
        )
        await self.idempotency_store.record(key, job)
        logger.info(
            f"Booked Metrobi delivery {job.delivery_id} for order {request.order_id} "
            f"(key={key}, pickup {pickup_slot.date_str} {pickup_slot.time_str})"
        )

        fulfillment_updated = await self._push_tracking(request, job)
        return BookingOutcome(
            status=BookingStatus.BOOKED,
            key=key,
            job=job,
            fulfillment_updated=fulfillment_updated,
        )

    async def _push_tracking(self, request: DeliveryRequest, job: DeliveryJob) -> bool:
        """Best-effort Shopify fulfillment with tracking; never raises"""
        try:
            if request.fulfillment_order_id:
                fulfillment_orders = [
                    await self._bounded(self.commerce.get_fulfillment_order(request.fulfillment_order_id))
                ]
            else:
                fulfillment_orders = await self._bounded(
                    self.commerce.list_fulfillment_orders(request.order_id)
                )

            payload = build_fulfillment_payload(fulfillment_orders, job, self.notify_customer)
            if payload is None:
                logger.info(f"Order {request.order_id} has nothing left to fulfill")
                return False

            await self._bounded(self.commerce.create_fulfillment(payload))
            logger.info(f"Shopify fulfillment created for order {request.order_id} (delivery {job.delivery_id})")
            return True
        except Exception:
            logger.exception(
                f"Failed to update Shopify fulfillment for order {request.order_id}; "
                f"delivery {job.delivery_id} stands"
            )
            return False

    # ====================
    # Queries / lifecycle
    # ====================

    async def get_delivery_job(self, key: str) -> Optional[DeliveryJob]:
        return await self.idempotency_store.lookup(key)

    async def close(self) -> None:
        await self.courier.close()
        await self.commerce.close()
        await self.idempotency_store.close()
