"""
Component Tests for the HTTP gateway clients

MetrobiClient and ShopifyClient over httpx.MockTransport: URLs, auth
headers and the mapping of HTTP failures onto service exceptions.
"""

import json

import httpx
import pytest

from microservices.delivery_service.clients import MetrobiClient, ShopifyClient
from microservices.delivery_service.protocols import (
    CommercePlatformError,
    CourierGatewayError,
    CourierResponseError,
)

pytestmark = [pytest.mark.component, pytest.mark.asyncio]


class Recorder:
    """httpx.MockTransport handler returning a canned response"""

    def __init__(self, response: httpx.Response = None, error: Exception = None):
        self.requests = []
        self.response = response or httpx.Response(200, json={"success": True})
        self.error = error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.response


def metrobi(recorder: Recorder) -> MetrobiClient:
    return MetrobiClient(
        base_url="https://metrobi.test/api/v1/",
        api_key="mk_test",
        create_path="delivery",
        transport=httpx.MockTransport(recorder),
    )


def shopify(recorder: Recorder, shop_domain="test-shop.myshopify.com") -> ShopifyClient:
    return ShopifyClient(
        shop_domain=shop_domain,
        access_token="shpat_test",
        api_version="2024-01",
        transport=httpx.MockTransport(recorder),
    )


class TestMetrobiClient:

    async def test_rate_request(self):
        recorder = Recorder(httpx.Response(200, json={"success": True, "response": {"data": {"price": 9}}}))

        async with metrobi(recorder) as client:
            body = await client.request_rate("deliveryrate", {"size": "suv"})

        request = recorder.requests[0]
        assert str(request.url) == "https://metrobi.test/api/v1/deliveryrate"
        assert request.headers["x-api-key"] == "mk_test"
        assert json.loads(request.content) == {"size": "suv"}
        assert body["response"]["data"]["price"] == 9

    async def test_create_delivery_path(self):
        recorder = Recorder()
        async with metrobi(recorder) as client:
            await client.create_delivery({"size": "suv"})
        assert str(recorder.requests[0].url) == "https://metrobi.test/api/v1/delivery"
        assert client.client.is_closed

    async def test_http_error_is_known_outcome(self):
        recorder = Recorder(httpx.Response(422, json={"success": False}))

        async with metrobi(recorder) as client:
            with pytest.raises(CourierGatewayError) as exc:
                await client.create_delivery({})

        assert exc.value.status_code == 422
        assert exc.value.outcome_unknown is False

    async def test_transport_error_is_unknown_outcome(self):
        recorder = Recorder(error=httpx.ReadTimeout("read timed out"))

        async with metrobi(recorder) as client:
            with pytest.raises(CourierGatewayError) as exc:
                await client.create_delivery({})

        assert exc.value.outcome_unknown is True

    async def test_non_json_body(self):
        recorder = Recorder(httpx.Response(200, text="<html>maintenance</html>"))

        async with metrobi(recorder) as client:
            with pytest.raises(CourierResponseError):
                await client.request_rate("deliveryrate", {})


class TestShopifyClient:

    async def test_get_order(self):
        recorder = Recorder(httpx.Response(200, json={"order": {"id": 1001}}))

        async with shopify(recorder) as client:
            order = await client.get_order("1001")

        request = recorder.requests[0]
        assert str(request.url) == "https://test-shop.myshopify.com/admin/api/2024-01/orders/1001.json"
        assert request.headers["X-Shopify-Access-Token"] == "shpat_test"
        assert order == {"id": 1001}

    async def test_list_fulfillment_orders(self):
        recorder = Recorder(httpx.Response(200, json={"fulfillment_orders": [{"id": 5001}]}))

        async with shopify(recorder) as client:
            fulfillment_orders = await client.list_fulfillment_orders("1001")

        assert str(recorder.requests[0].url).endswith("/orders/1001/fulfillment_orders.json")
        assert fulfillment_orders == [{"id": 5001}]

    async def test_create_fulfillment(self):
        recorder = Recorder(httpx.Response(201, json={"fulfillment": {"id": 1, "status": "success"}}))

        async with shopify(recorder) as client:
            result = await client.create_fulfillment({"fulfillment": {"notify_customer": True}})

        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url).endswith("/fulfillments.json")
        assert result["status"] == "success"

    async def test_not_found(self):
        recorder = Recorder(httpx.Response(404, json={"errors": "Not Found"}))

        async with shopify(recorder) as client:
            with pytest.raises(CommercePlatformError) as exc:
                await client.get_fulfillment_order("404")

        assert exc.value.status_code == 404

    async def test_missing_shop_domain(self):
        recorder = Recorder()

        async with shopify(recorder, shop_domain=None) as client:
            with pytest.raises(CommercePlatformError):
                await client.get_order("1001")

        assert recorder.requests == []
