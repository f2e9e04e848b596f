"""
Component Test Fixtures for Delivery Service

Orchestrator wired with mock gateways, the in-memory idempotency store and
a fixed clock.
"""

import pytest

from microservices.delivery_service.delivery_orchestrator import DeliveryOrchestrator
from microservices.delivery_service.idempotency_store import InMemoryIdempotencyStore
from microservices.delivery_service.models import RateEndpoint

from tests.component.delivery_service.mocks import (
    FakeMonotonic,
    MockCommercePlatform,
    MockCourierGateway,
    build_orchestrator,
)


@pytest.fixture
def courier() -> MockCourierGateway:
    return MockCourierGateway()


@pytest.fixture
def commerce() -> MockCommercePlatform:
    return MockCommercePlatform()


@pytest.fixture
def store_clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def idempotency_store(store_clock) -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore(pending_ttl_seconds=300, clock=store_clock)


@pytest.fixture
def orchestrator(courier, commerce, idempotency_store) -> DeliveryOrchestrator:
    return build_orchestrator(courier, commerce, idempotency_store)


@pytest.fixture
def estimate_orchestrator(courier, commerce, idempotency_store) -> DeliveryOrchestrator:
    """Orchestrator quoting through the delivery_estimate endpoint"""
    return build_orchestrator(courier, commerce, idempotency_store, endpoint=RateEndpoint.DELIVERY_ESTIMATE)
