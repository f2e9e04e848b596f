"""
Component Tests for the Delivery Service HTTP API

FastAPI TestClient against main.app with the module globals swapped for an
orchestrator over mock gateways.
"""

import base64
import hashlib
import hmac
import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from microservices.delivery_service.webhook_auth import WebhookAuthenticator

from tests.component.delivery_service.mocks import (
    make_fulfillment_order,
    make_order,
    make_rate,
)

pytestmark = pytest.mark.component

WEBHOOK_SECRET = "component_test_secret"


def signed_headers(raw_body: bytes, secret: str = WEBHOOK_SECRET) -> dict:
    digest = hmac.new(secret.encode(), raw_body, hashlib.sha256).digest()
    return {
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": base64.b64encode(digest).decode(),
        "X-Shopify-Shop-Domain": "test-shop.myshopify.com",
    }


@pytest.fixture
def client(orchestrator):
    """TestClient with the orchestrator and authenticator globals patched"""
    with patch("microservices.delivery_service.main.delivery_orchestrator", orchestrator), \
         patch("microservices.delivery_service.main.webhook_authenticator", WebhookAuthenticator(WEBHOOK_SECRET)):

        from microservices.delivery_service.main import app

        app.dependency_overrides = {}

        with TestClient(app, raise_server_exceptions=False) as test_client:
            yield test_client


def post_webhook(client, path: str, payload, secret: str = WEBHOOK_SECRET):
    raw_body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return client.post(path, content=raw_body, headers=signed_headers(raw_body, secret))


# ====================
# Health / info
# ====================

class TestHealth:

    @pytest.mark.parametrize("path", ["/health", "/api/v1/delivery/health"])
    def test_health(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "service": "delivery_service"}

    def test_info(self, client):
        data = client.get("/api/v1/delivery/info").json()
        assert data["service_name"] == "delivery_service"
        assert "courier_booking" in data["capabilities"]
        assert {"path": "/carrier_service", "methods": ["POST"], "description": "Shopify carrier-service rate quote"} in data["routes"]


# ====================
# Carrier service
# ====================

class TestCarrierService:

    def test_quote(self, client):
        response = client.post("/carrier_service", json={"rate": make_rate()})

        assert response.status_code == 200
        rates = response.json()["rates"]
        assert rates == [{
            "service_name": "Metrobi Delivery",
            "service_code": "METROBI",
            "description": "Same-day local courier powered by Metrobi",
            "total_price": "1250",
            "currency": "USD",
        }]

    def test_non_us_destination(self, client):
        rate = make_rate(destination={"address1": "10 Downing St", "city": "London", "postal_code": "SW1A 2AA", "country": "GB"})
        response = client.post("/carrier_service", json={"rate": rate})

        assert response.status_code == 200
        assert response.json() == {"rates": []}

    def test_excluded_postal_code(self, client):
        rate = make_rate(destination={"address1": "1 Park Ave", "city": "New York", "postal_code": "10016", "country": "US"})
        response = client.post("/carrier_service", json={"rate": rate})

        assert response.json() == {"rates": []}

    def test_missing_rate(self, client):
        response = client.post("/carrier_service", json={"something": "else"})

        assert response.status_code == 400
        assert response.json() == {"error": "Bad payload"}

    def test_malformed_json(self, client):
        response = client.post("/carrier_service", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json() == {"error": "Bad payload"}

    def test_courier_down_still_200(self, client, courier):
        courier.rate_error = RuntimeError("connection refused")

        response = client.post("/carrier_service", json={"rate": make_rate()})

        assert response.status_code == 200
        assert response.json()["rates"][0]["service_code"] == "METROBI_UNAVAILABLE"
        assert response.json()["rates"][0]["total_price"] == "999900"


# ====================
# orders/create
# ====================

class TestOrdersCreateWebhook:

    def test_bad_signature(self, client, courier):
        response = post_webhook(client, "/webhooks/orders_create", make_order(), secret="wrong")

        assert response.status_code == 401
        assert courier.create_calls == []

    def test_missing_signature(self, client):
        response = client.post("/webhooks/orders_create", json=make_order())
        assert response.status_code == 401

    def test_books_and_acknowledges(self, client, courier, commerce):
        commerce.add_order(make_order(1001), [make_fulfillment_order(5001, 1001)])

        response = post_webhook(client, "/webhooks/orders_create", make_order(1001))

        assert response.status_code == 200
        assert response.json() == {"status": "booked", "key": "1001"}
        assert len(courier.create_calls) == 1

    def test_redelivery_is_duplicate(self, client, courier):
        post_webhook(client, "/webhooks/orders_create", make_order(1001))
        response = post_webhook(client, "/webhooks/orders_create", make_order(1001))

        assert response.json()["status"] == "duplicate"
        assert len(courier.create_calls) == 1

    def test_not_selected(self, client):
        order = make_order(1001, shipping_lines=[{"title": "Standard", "code": "STANDARD"}])
        response = post_webhook(client, "/webhooks/orders_create", order)

        assert response.status_code == 200
        assert response.json()["status"] == "not_selected"

    def test_unparseable_body(self, client):
        response = post_webhook(client, "/webhooks/orders_create", b"<xml/>")
        assert response.status_code == 400

    def test_booking_failure_is_500(self, client, courier):
        from microservices.delivery_service.protocols import CourierGatewayError

        courier.create_error = CourierGatewayError("Metrobi returned HTTP 500", status_code=500)

        response = post_webhook(client, "/webhooks/orders_create", make_order(1001))

        assert response.status_code == 500

    def test_shop_domain_mismatch_is_not_rejected(self, client):
        raw_body = json.dumps(make_order(1001, shipping_lines=[])).encode()
        headers = signed_headers(raw_body)
        headers["X-Shopify-Shop-Domain"] = "other-shop.myshopify.com"

        response = client.post("/webhooks/orders_create", content=raw_body, headers=headers)

        assert response.status_code == 200


# ====================
# fulfillment_orders/create
# ====================

class TestFulfillmentOrdersCreateWebhook:

    def test_bad_signature(self, client):
        response = post_webhook(
            client, "/webhooks/fulfillment_orders_create", {"fulfillment_order": {"id": 5001}}, secret="wrong",
        )
        assert response.status_code == 401

    def test_books(self, client, commerce):
        commerce.add_order(make_order(1001), [make_fulfillment_order(5001, 1001)])

        response = post_webhook(
            client, "/webhooks/fulfillment_orders_create",
            {"fulfillment_order": {"id": "gid://shopify/FulfillmentOrder/5001"}},
        )

        assert response.status_code == 200
        assert response.json() == {"status": "booked", "key": "5001"}

    def test_errors_still_acknowledged(self, client, courier):
        # Fulfillment order unknown to Shopify
        response = post_webhook(client, "/webhooks/fulfillment_orders_create", {"fulfillment_order": {"id": 404}})

        assert response.status_code == 200
        assert response.json() == {"status": "error"}
        assert courier.create_calls == []

    def test_unparseable_body_acknowledged(self, client):
        response = post_webhook(client, "/webhooks/fulfillment_orders_create", b"not json")
        assert response.status_code == 200


# ====================
# Delivery jobs
# ====================

class TestDeliveryJobs:

    def test_booked_job(self, client):
        post_webhook(client, "/webhooks/orders_create", make_order(1001))

        response = client.get("/api/v1/delivery/jobs/1001")

        assert response.status_code == 200
        data = response.json()
        assert data["delivery_id"] == "98765"
        assert data["tracking_url"] == "https://track.metrobi.com/98765"

    def test_unknown_key(self, client):
        assert client.get("/api/v1/delivery/jobs/missing").status_code == 404
