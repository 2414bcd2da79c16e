"""Shared fakes: a scripted backend behind `httpx.MockTransport` and location resolvers."""

import json

import httpx
import pytest

from paybridge.clients.backend import BackendClient
from paybridge.clients.location import Location
from paybridge.common.errors import LocationUnavailable
from paybridge.services.orders.service import PaymentOrderService


def backend_order(order_id: str = "ord-1", **overrides) -> dict:
    """Order JSON as the backend returns it."""

    order = {
        "id": order_id,
        "status": "new",
        "identity": "0xabc",
        "channel_address": "0xchannel",
        "gateway_name": "stripe",
        "receive_myst": "10.5",
        "pay_amount": "12.00",
        "pay_currency": "USD",
        "country": "LT",
        "state": "",
        "currency": "EUR",
        "items_sub_total": "10.00",
        "tax_rate": "21.00",
        "tax_sub_total": "2.10",
        "order_total": "12.10",
        "public_gateway_data": {"checkout_url": "https://pay.example/s/1", "lines": [1, 2, {"x": None}]},
    }
    order.update(overrides)
    return order


class FakeBackend:
    """Routes `(method, path)` to scripted responses and records every request."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], object] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, response) -> None:
        """`response` is an `httpx.Response`, an exception to raise, or a callable."""

        self.routes[(method, path)] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.routes.get((request.method, request.url.path))
        if response is None:
            return httpx.Response(500, text="no route scripted")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> dict:
        return json.loads(request.content)


class StaticLocationResolver:
    def __init__(self, country: str = "lt") -> None:
        self.country = country
        self.calls = 0

    async def get_origin(self) -> Location:
        self.calls += 1
        return Location(ip="1.2.3.4", country=self.country)


class FailingLocationResolver:
    def __init__(self) -> None:
        self.calls = 0

    async def get_origin(self) -> Location:
        self.calls += 1
        raise LocationUnavailable("location service down", "get_origin")


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend_client(fake_backend) -> BackendClient:
    return BackendClient(
        base_url="http://backend.test",
        timeout=1.0,
        transport=httpx.MockTransport(fake_backend.handler),
        service_name="paybridge-test",
    )


@pytest.fixture
def resolver() -> StaticLocationResolver:
    return StaticLocationResolver("lt")


@pytest.fixture
def order_service(backend_client, resolver) -> PaymentOrderService:
    return PaymentOrderService(backend_client, resolver, service_name="paybridge-test")
