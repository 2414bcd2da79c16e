"""HTTP client for the backend order service.

The backend owns gateway integrations, exchange rates and order persistence.
This client makes exactly one request per call: no retries, no caching. The
request timeout is the only limit applied. Failures are mapped onto the bridge
error taxonomy here so callers never see raw `httpx` exceptions.
"""

import json
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter

from paybridge.common.config import settings
from paybridge.common.errors import (
    EncodingError,
    GatewayRejected,
    OrderNotFound,
    PayBridgeError,
    UpstreamUnavailable,
)
from paybridge.common.logging import logger
from paybridge.common.metrics import backend_failures_total, backend_latency_seconds, backend_requests_total
from paybridge.common.rawjson import RawJson, array_elements, object_members, splice_member
from paybridge.services.orders.models import GatewayInfo, GatewayOrder, GatewayOrderRequest, Identity


IDENTITY_HEADER = "X-Identity"

_orders_adapter = TypeAdapter(list[GatewayOrder])
_gateways_adapter = TypeAdapter(list[GatewayInfo])
_order_adapter = TypeAdapter(GatewayOrder)


def _segment(value: str) -> str:
    return quote(value, safe="")


def _order_data(text: str) -> Any:
    """Parsed order whose `public_gateway_data` is the exact JSON text the backend sent."""

    data = json.loads(text, parse_float=Decimal)
    if isinstance(data, dict) and "public_gateway_data" in data:
        data["public_gateway_data"] = object_members(text)["public_gateway_data"]
    return data


def _orders_data(text: str) -> Any:
    if text.lstrip().startswith("["):
        return [_order_data(element) for element in array_elements(text)]
    return json.loads(text)


class BackendClient:
    """Async client for the backend order service REST API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        service_name: str | None = None,
    ) -> None:
        self.service_name = service_name or settings.service_name
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.backend_url,
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _fail(self, error: PayBridgeError) -> PayBridgeError:
        backend_failures_total.labels(
            service=self.service_name,
            operation=error.operation or "unknown",
            error_type=error.kind,
        ).inc()
        logger.warning(
            "backend_call_failed operation=%s identifier=%s error_type=%s error=%s",
            error.operation,
            error.identifier,
            error.kind,
            error.message,
        )
        return error

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        identifier: str | None = None,
        identity: Identity | None = None,
        not_found: bool = False,
        missing_ok: bool = False,
        rejectable: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request and map failures.

        `not_found` turns a 404 into `OrderNotFound`, `missing_ok` hands it back
        to the caller instead. `rejectable` turns any other 4xx into
        `GatewayRejected` with the backend's message verbatim.
        Everything else that fails is `UpstreamUnavailable`.
        """

        headers = kwargs.pop("headers", {})
        if identity is not None:
            headers[IDENTITY_HEADER] = identity.address
        backend_requests_total.labels(service=self.service_name, operation=operation).inc()
        with backend_latency_seconds.labels(service=self.service_name, operation=operation).time():
            try:
                response = await self._client.request(method, path, headers=headers, **kwargs)
            except httpx.HTTPError as exc:
                raise self._fail(
                    UpstreamUnavailable(f"backend request failed: {exc}", operation, identifier)
                ) from exc

        if response.is_success or (missing_ok and response.status_code == 404):
            return response
        if not_found and response.status_code == 404:
            raise self._fail(OrderNotFound(response.text or "order not found", operation, identifier))
        if rejectable and 400 <= response.status_code < 500:
            raise self._fail(GatewayRejected(response.text, operation, identifier))
        raise self._fail(
            UpstreamUnavailable(
                f"backend returned {response.status_code}: {response.text}",
                operation,
                identifier,
            )
        )

    def _decode(
        self,
        operation: str,
        identifier: str | None,
        adapter: TypeAdapter,
        response: httpx.Response,
        parse=None,
    ):
        try:
            if parse is None:
                return adapter.validate_json(response.content)
            return adapter.validate_python(parse(response.content.decode("utf-8")))
        except ValueError as exc:
            raise self._fail(EncodingError(f"malformed backend payload: {exc}", operation, identifier)) from exc

    async def get_payment_gateways(self, options_currency: str) -> list[GatewayInfo]:
        operation = "get_payment_gateways"
        response = await self._request(
            operation,
            "GET",
            "/api/v2/payment/gateways",
            identifier=options_currency,
            params={"options_currency": options_currency},
        )
        return self._decode(operation, options_currency, _gateways_adapter, response)

    async def create_payment_gateway_order(self, req: GatewayOrderRequest) -> GatewayOrder:
        operation = "create_payment_gateway_order"
        try:
            caller_data = RawJson.coerce(req.caller_data) if req.caller_data else RawJson("null")
        except ValueError as exc:
            raise self._fail(EncodingError(f"caller data is not JSON: {exc}", operation, req.gateway)) from exc
        body = {
            "myst_amount": req.myst_amount,
            "amount_usd": req.amount_usd,
            "pay_currency": req.pay_currency,
            "country": req.country,
            "state": req.state,
        }
        response = await self._request(
            operation,
            "POST",
            f"/api/v2/payment/{_segment(req.gateway)}/orders",
            identifier=req.gateway,
            identity=req.identity,
            content=splice_member(json.dumps(body), "caller_data", caller_data).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        return self._decode(operation, req.gateway, _order_adapter, response, _order_data)

    async def get_payment_gateway_order(self, identity: Identity, order_id: str) -> GatewayOrder:
        operation = "get_payment_gateway_order"
        response = await self._request(
            operation,
            "GET",
            f"/api/v2/payment/orders/{_segment(order_id)}",
            identifier=order_id,
            identity=identity,
            not_found=True,
        )
        return self._decode(operation, order_id, _order_adapter, response, _order_data)

    async def get_payment_gateway_order_invoice(self, identity: Identity, order_id: str) -> bytes:
        response = await self._request(
            "get_payment_gateway_order_invoice",
            "GET",
            f"/api/v2/payment/orders/{_segment(order_id)}/invoice",
            identifier=order_id,
            identity=identity,
            not_found=True,
        )
        return response.content

    async def get_payment_gateway_orders(self, identity: Identity) -> list[GatewayOrder]:
        operation = "get_payment_gateway_orders"
        response = await self._request(
            operation,
            "GET",
            "/api/v2/payment/orders",
            identifier=identity.address,
            identity=identity,
            missing_ok=True,
        )
        if response.status_code == 404:
            # The backend answers 404 for identities that never placed an order.
            return []
        return self._decode(operation, identity.address, _orders_adapter, response, _orders_data)

    async def gateway_client_callback(self, identity: Identity, gateway: str, payload: dict[str, Any]) -> None:
        await self._request(
            "gateway_client_callback",
            "POST",
            f"/api/v2/payment/{_segment(gateway)}/client-callback",
            identifier=gateway,
            identity=identity,
            rejectable=True,
            json=payload,
        )

    async def get_myst_exchange_rate_for(self, quote_currency: str) -> Decimal:
        operation = "get_myst_exchange_rate"
        response = await self._request(
            operation,
            "GET",
            f"/api/v1/exchange/myst/{_segment(quote_currency)}",
            identifier=quote_currency,
        )
        try:
            data = json.loads(response.content, parse_float=Decimal)
            return Decimal(str(data["rate"]))
        except (ValueError, KeyError, TypeError, InvalidOperation) as exc:
            raise self._fail(
                EncodingError(f"malformed exchange rate payload: {exc!r}", operation, quote_currency)
            ) from exc
