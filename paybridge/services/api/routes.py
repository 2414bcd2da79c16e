"""JSON endpoints over the order lifecycle facade and the update bridge."""

from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, JsonValue

from paybridge.common.errors import (
    EncodingError,
    GatewayRejected,
    LocationUnavailable,
    OrderNotFound,
    PayBridgeError,
    UpstreamUnavailable,
)
from paybridge.common.logging import logger
from paybridge.common.rawjson import object_members
from paybridge.services.api.listeners import WebhookListener
from paybridge.services.orders.bridge import OrderUpdateBridge
from paybridge.services.orders.schemas import (
    ClientCallbackRequest,
    CreateOrderRequest,
    Gateway,
    GetGatewaysRequest,
    GetOrderRequest,
    ListOrdersRequest,
    PaymentOrder,
    RequestAmount,
)
from paybridge.services.orders.service import PaymentOrderService


router = APIRouter()


ERROR_STATUS: dict[type[PayBridgeError], int] = {
    OrderNotFound: 404,
    GatewayRejected: 422,
    LocationUnavailable: 503,
    UpstreamUnavailable: 502,
    EncodingError: 500,
}


class CreateOrderBody(BaseModel):
    """Payload accepted by `POST /orders`."""

    identity: str = Field(min_length=1)
    gateway: str = Field(min_length=1)
    myst_amount: RequestAmount
    amount_usd: RequestAmount
    pay_currency: str
    country: str = ""
    state: str = ""
    gateway_caller_data: JsonValue = None


class ClientCallbackBody(BaseModel):
    identity: str
    purchase_token: str
    product_id: str


class ListenerBody(BaseModel):
    url: str = Field(min_length=1)


class ExchangeRateResponse(BaseModel):
    quote: str
    rate: str


def _service(request: Request) -> PaymentOrderService:
    return request.app.state.order_service


def _bridge(request: Request) -> OrderUpdateBridge:
    return request.app.state.bridge


def _order_response(order: PaymentOrder) -> Response:
    return Response(content=order.model_dump_json(), media_type="application/json")


def install_error_handlers(app: FastAPI) -> None:
    """Render bridge errors as `{"error": kind, "detail": message}`."""

    async def handle(_: Request, exc: PayBridgeError) -> JSONResponse:
        status_code = ERROR_STATUS.get(type(exc), 500)
        logger.warning("request_failed error_type=%s status=%s error=%s", exc.kind, status_code, exc)
        return JSONResponse(status_code=status_code, content={"error": exc.kind, "detail": str(exc)})

    app.add_exception_handler(PayBridgeError, handle)


@router.get("/gateways", response_model=list[Gateway])
async def list_gateways(request: Request, options_currency: str = Query(...)):
    """Gateways with order options in `options_currency`."""

    return await _service(request).list_gateways(GetGatewaysRequest(options_currency=options_currency))


@router.post("/orders", response_model=PaymentOrder)
async def create_order(body: CreateOrderBody, request: Request):
    """Create an order; `gateway_caller_data` is forwarded as the exact JSON text posted."""

    caller_data = b""
    if body.gateway_caller_data is not None:
        raw = object_members((await request.body()).decode("utf-8"))["gateway_caller_data"]
        caller_data = raw.encode("utf-8")
    order = await _service(request).create_order(
        CreateOrderRequest(
            identity_address=body.identity,
            gateway=body.gateway,
            myst_amount=body.myst_amount,
            amount_usd=body.amount_usd,
            pay_currency=body.pay_currency,
            country=body.country,
            state=body.state,
            gateway_caller_data=caller_data,
        )
    )
    return _order_response(order)


@router.get("/orders", response_model=list[PaymentOrder])
async def list_orders(request: Request, identity: str = Query(...)):
    orders = await _service(request).list_orders(ListOrdersRequest(identity_address=identity))
    content = "[" + ",".join(order.model_dump_json() for order in orders) + "]"
    return Response(content=content, media_type="application/json")


@router.get("/orders/{order_id}", response_model=PaymentOrder)
async def get_order(order_id: str, request: Request, identity: str = Query(...)):
    order = await _service(request).get_order(GetOrderRequest(identity_address=identity, id=order_id))
    return _order_response(order)


@router.get("/orders/{order_id}/invoice")
async def get_order_invoice(order_id: str, request: Request, identity: str = Query(...)):
    """Invoice bytes exactly as the backend produced them."""

    invoice = await _service(request).get_order_invoice(GetOrderRequest(identity_address=identity, id=order_id))
    return Response(content=invoice, media_type="application/octet-stream")


@router.post("/gateways/{gateway}/client-callback", status_code=204)
async def client_callback(gateway: str, body: ClientCallbackBody, request: Request):
    await _service(request).relay_client_callback(
        ClientCallbackRequest(
            identity_address=body.identity,
            gateway=gateway,
            purchase_token=body.purchase_token,
            product_id=body.product_id,
        )
    )
    return Response(status_code=204)


@router.get("/exchange/myst/{quote}", response_model=ExchangeRateResponse)
async def exchange_rate(quote: str, request: Request):
    rate = await _service(request).exchange_rate(quote)
    return ExchangeRateResponse(quote=quote, rate=format(rate, "f"))


@router.post("/internal/order-updates", status_code=202)
async def publish_order_update(body: dict[str, Any], request: Request):
    """Accept an order-updated event pushed by the backend and put it on the event bus."""

    if not isinstance(body.get("id"), str) or "status" not in body:
        raise HTTPException(status_code=422, detail="order update needs id and status")
    bridge = _bridge(request)
    await request.app.state.event_bus.publish(bridge.topic, body)
    return {"accepted": True}


@router.post("/listener", status_code=204)
async def register_listener(body: ListenerBody, request: Request):
    """Route order updates to a webhook, replacing the current listener."""

    _bridge(request).register_listener(WebhookListener(body.url))
    return Response(status_code=204)
