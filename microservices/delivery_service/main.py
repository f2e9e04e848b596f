"""
Delivery Microservice API

Shopify <-> Metrobi courier bridge: carrier-service rate quotes and
webhook-driven courier bookings.
"""

import json
import os
import sys
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

# Add parent directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../.."))
from core.config import get_settings
from core.logger import setup_service_logger

from .delivery_orchestrator import DeliveryOrchestrator
from .factory import create_delivery_orchestrator, create_webhook_authenticator
from .models import DeliveryJob, HealthResponse, RateResponse, ServiceInfo
from .protocols import DeliveryBookingError, InvalidPayloadError
from .routes_registry import ROUTES, SERVICE_METADATA
from .webhook_auth import HMAC_HEADER, SHOP_DOMAIN_HEADER, WebhookAuthenticator

settings = get_settings()

# Configure logger
logger = setup_service_logger("delivery_service", config=settings.logging)

# Global variables
delivery_orchestrator: Optional[DeliveryOrchestrator] = None
webhook_authenticator: Optional[WebhookAuthenticator] = None
SERVICE_PORT = settings.port or 8260


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    global delivery_orchestrator, webhook_authenticator

    try:
        if delivery_orchestrator is None:
            delivery_orchestrator = create_delivery_orchestrator(settings)
        if webhook_authenticator is None:
            webhook_authenticator = create_webhook_authenticator(settings)

        await delivery_orchestrator.idempotency_store.initialize()

        if not settings.services.shopify.webhook_secret:
            logger.warning("SHOPIFY_WEBHOOK_SECRET not set; every webhook will be rejected")
        if not settings.services.courier.api_key:
            logger.warning("METROBI_API_KEY not set; rate quotes will degrade")

        logger.info(f"Delivery service started on port {SERVICE_PORT}")
        yield

    except Exception as e:
        logger.error(f"Failed to initialize delivery service: {e}")
        raise
    finally:
        if delivery_orchestrator:
            try:
                await delivery_orchestrator.close()
                logger.info("Delivery service clients closed")
            except Exception as e:
                logger.error(f"Error closing delivery service clients: {e}")


# Create FastAPI app
app = FastAPI(
    title="Delivery Service",
    description="Shopify carrier-service rates and Metrobi courier booking",
    version=SERVICE_METADATA["version"],
    lifespan=lifespan,
)


# ====================
# Dependency Injection
# ====================


async def get_delivery_orchestrator() -> DeliveryOrchestrator:
    """Get delivery orchestrator instance"""
    if not delivery_orchestrator:
        raise HTTPException(status_code=503, detail="Delivery service not initialized")
    return delivery_orchestrator


async def get_webhook_authenticator() -> WebhookAuthenticator:
    if not webhook_authenticator:
        raise HTTPException(status_code=503, detail="Delivery service not initialized")
    return webhook_authenticator


async def read_verified_webhook(
    request: Request,
    authenticator: WebhookAuthenticator = Depends(get_webhook_authenticator),
) -> bytes:
    """Raw body of a webhook whose HMAC header checks out, else 401"""
    raw_body = await request.body()
    topic = request.headers.get("X-Shopify-Topic", request.url.path)

    if not authenticator.verify(raw_body, request.headers.get(HMAC_HEADER)):
        logger.warning(f"Webhook signature verification failed ({topic})")
        raise HTTPException(status_code=401, detail="Unauthorized")

    shop_domain = request.headers.get(SHOP_DOMAIN_HEADER)
    expected_domain = settings.services.shopify.shop_domain
    if shop_domain and expected_domain and shop_domain.lower() != expected_domain.lower():
        logger.warning(f"Webhook from unexpected shop {shop_domain} (configured {expected_domain})")

    return raw_body


def _decode_object(raw_body: bytes) -> Dict[str, Any]:
    try:
        data = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError) as e:
        raise InvalidPayloadError(f"Body is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidPayloadError("Body is not a JSON object")
    return data


# ====================
# Health Check and Service Info
# ====================


@app.get("/api/v1/delivery/health", response_model=HealthResponse)
@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check"""
    return HealthResponse(status="ok", service=SERVICE_METADATA["service_name"])


@app.get("/api/v1/delivery/info", response_model=ServiceInfo)
async def get_service_info():
    """Get service information"""
    return ServiceInfo(
        service_name=SERVICE_METADATA["service_name"],
        version=SERVICE_METADATA["version"],
        capabilities=SERVICE_METADATA["capabilities"],
        routes=ROUTES,
    )


# ====================
# Carrier Service
# ====================


@app.post("/carrier_service", response_model=RateResponse)
async def carrier_service(
    request: Request,
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    """
    Shopify carrier-service callback.

    Only a malformed body is a 400; everything else answers 200 so checkout
    is never blocked.
    """
    try:
        body = _decode_object(await request.body())
    except InvalidPayloadError as e:
        logger.warning(f"Carrier service bad payload: {e}")
        return JSONResponse(status_code=400, content={"error": "Bad payload"})

    rate = body.get("rate")
    if not isinstance(rate, dict):
        logger.warning("Carrier service request without a rate object")
        return JSONResponse(status_code=400, content={"error": "Bad payload"})

    return await orchestrator.handle_rate_request(rate)


# ====================
# Webhooks
# ====================


@app.post("/webhooks/orders_create")
async def orders_create_webhook(
    raw_body: bytes = Depends(read_verified_webhook),
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    """orders/create: book a courier when Metrobi was chosen at checkout"""
    try:
        outcome = await orchestrator.handle_order_created(_decode_object(raw_body))
    except InvalidPayloadError as e:
        logger.warning(f"orders/create bad payload: {e}")
        raise HTTPException(status_code=400, detail="Bad payload")
    except DeliveryBookingError as e:
        logger.error(f"orders/create booking failed: {e}")
        raise HTTPException(status_code=500, detail="Delivery booking failed")

    return {"status": outcome.status.value, "key": outcome.key}


@app.post("/webhooks/fulfillment_orders_create")
async def fulfillment_orders_create_webhook(
    raw_body: bytes = Depends(read_verified_webhook),
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    """
    fulfillment_orders/create: resolve the order through the Admin API and
    book. Always acknowledged with 200 once authenticated.
    """
    try:
        outcome = await orchestrator.handle_fulfillment_order_created(_decode_object(raw_body))
    except Exception as e:
        logger.error(f"fulfillment_orders/create handling failed: {e}", exc_info=True)
        return {"status": "error"}

    return {"status": outcome.status.value, "key": outcome.key}


# ====================
# Delivery Jobs
# ====================


@app.get("/api/v1/delivery/jobs/{key}", response_model=DeliveryJob)
async def get_delivery_job(
    key: str,
    orchestrator: DeliveryOrchestrator = Depends(get_delivery_orchestrator),
):
    """Get the booked delivery for an idempotency key"""
    job = await orchestrator.get_delivery_job(key)
    if not job:
        raise HTTPException(status_code=404, detail=f"No delivery booked for {key}")
    return job


# ====================
# Error Handlers
# ====================


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """General exception handler"""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if __name__ == "__main__":
    uvicorn.run(
        "microservices.delivery_service.main:app",
        host=settings.host,
        port=SERVICE_PORT,
        reload=settings.debug,
        log_level=settings.logging.log_level.lower(),
    )
