"""
Rate Quote Service

Wraps the courier rate call with a bounded timeout. Every failure mode ends
in the degraded METROBI_UNAVAILABLE rate.
"""

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from .models import PickupSlot, RateEndpoint, RateQuote
from .payloads import build_rate_payload, parse_rate_price, to_minor_units
from .protocols import CourierGatewayError, CourierGatewayProtocol, CourierResponseError

logger = logging.getLogger(__name__)


class RateQuoteService:
    """Courier rate quotes with graceful degradation"""

    def __init__(
        self,
        courier: CourierGatewayProtocol,
        endpoint: RateEndpoint = RateEndpoint.DELIVERY_RATE,
        vehicle_size: str = "suv",
        surcharge: Decimal = Decimal("0"),
        timeout_seconds: float = 8.0,
        currency: str = "USD",
    ):
        self.courier = courier
        self.endpoint = RateEndpoint(endpoint)
        self.vehicle_size = vehicle_size
        self.surcharge = surcharge
        self.timeout_seconds = timeout_seconds
        self.currency = currency

    @property
    def requires_pickup_slot(self) -> bool:
        return self.endpoint == RateEndpoint.DELIVERY_ESTIMATE

    async def quote(
        self,
        pickup_address: str,
        delivery_address: str,
        pickup_slot: Optional[PickupSlot] = None,
    ) -> RateQuote:
        """Quote a delivery; never raises for courier-side failures"""
        payload = build_rate_payload(pickup_address, delivery_address, self.vehicle_size, pickup_slot)

        try:
            body = await asyncio.wait_for(
                self.courier.request_rate(self.endpoint.value, payload),
                timeout=self.timeout_seconds,
            )
            price = parse_rate_price(body)
            total_price = to_minor_units(price, self.surcharge)
        except asyncio.TimeoutError:
            logger.warning(f"Courier rate request timed out after {self.timeout_seconds}s")
            return RateQuote.unavailable(self.currency)
        except CourierGatewayError as e:
            logger.warning(f"Courier rate request failed (status={e.status_code}): {e}")
            return RateQuote.unavailable(self.currency)
        except CourierResponseError as e:
            logger.warning(f"Courier rate response unusable: {e}")
            return RateQuote.unavailable(self.currency)
        except InvalidOperation:
            logger.warning(f"Courier price {price} cannot be converted to minor units")
            return RateQuote.unavailable(self.currency)

        logger.info(f"Courier quoted {price} (+{self.surcharge}) -> {total_price} minor units")
        return RateQuote.available(total_price, self.currency)
