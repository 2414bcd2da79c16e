"""External request/response schemas of the payment-order bridge.

Monetary amounts are decimal strings end to end. The opaque gateway payload is
kept as the JSON text the backend sent and embedded as a nested value.
"""

from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from paybridge.common.rawjson import RawJson, splice_member
from paybridge.services.orders.models import DECIMAL_PATTERN


def _require_decimal(value: str) -> str:
    if not DECIMAL_PATTERN.match(value):
        raise ValueError(f"amount must be a decimal string, got {value!r}")
    return value


RequestAmount = Annotated[str, AfterValidator(_require_decimal)]


class PaymentOrder(BaseModel):
    """Immutable snapshot of one payment order."""

    model_config = ConfigDict(frozen=True)

    id: str
    status: str
    identity: str
    channel_address: str
    gateway: str
    receive_myst: str
    pay_amount: str
    pay_currency: str
    country: str
    currency: str
    items_sub_total: str
    tax_rate: str
    tax_sub_total: str
    order_total: str
    public_gateway_data: RawJson = RawJson("null")

    def model_dump_json(self, **kwargs: Any) -> str:
        """JSON text of the order with the gateway payload written out exactly as received."""

        exclude = set(kwargs.pop("exclude", None) or ())
        text = super().model_dump_json(exclude=exclude | {"public_gateway_data"}, **kwargs)
        if "public_gateway_data" in exclude:
            return text
        return splice_member(text, "public_gateway_data", self.public_gateway_data)


class PaymentOrderOptions(BaseModel):
    """Minimum and suggested MYST amounts for a gateway."""

    model_config = ConfigDict(frozen=True)

    minimum: float
    suggested: list[float]


class Gateway(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    order_options: PaymentOrderOptions
    currencies: list[str]


class OrderUpdateEvent(BaseModel):
    """What an order-updated listener receives."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    status: str
    pay_amount: str
    pay_currency: str


class CreateOrderRequest(BaseModel):
    """Order creation input; `country` may be left empty to default it from location."""

    identity_address: str = Field(min_length=1)
    gateway: str = Field(min_length=1)
    myst_amount: RequestAmount
    amount_usd: RequestAmount
    pay_currency: str
    country: str = ""
    state: str = ""
    # Marshaled JSON accepted by the payment gateway.
    gateway_caller_data: bytes = b""


class GetOrderRequest(BaseModel):
    identity_address: str
    id: str


class ListOrdersRequest(BaseModel):
    identity_address: str


class GetGatewaysRequest(BaseModel):
    options_currency: str


class ClientCallbackRequest(BaseModel):
    """Client-side purchase confirmation (e.g. an in-app purchase token)."""

    identity_address: str
    gateway: str
    purchase_token: str
    product_id: str
