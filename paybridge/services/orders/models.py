"""Internal order and gateway values as returned by the backend order service.

These mirror the backend's JSON and are never handed to bridge callers
directly; `representation` turns them into the external schemas.
"""

import re
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from paybridge.common.rawjson import RawJson


DECIMAL_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def _to_decimal_string(value: Any) -> Any:
    """Normalise numeric amounts into plain decimal strings.

    Floats go through `str` first so `0.1` stays `"0.1"` instead of its binary
    expansion. A missing amount is zero.
    """

    if value is None or value == "":
        return "0"
    if isinstance(value, bool):
        raise ValueError("amount must be a decimal number")
    if isinstance(value, (int, float, Decimal)):
        value = str(value)
    if isinstance(value, str):
        try:
            amount = Decimal(value)
        except InvalidOperation as exc:
            raise ValueError(f"invalid decimal amount {value!r}") from exc
        if not amount.is_finite():
            raise ValueError(f"invalid decimal amount {value!r}")
        if DECIMAL_PATTERN.match(value):
            return value
        return format(amount, "f")
    return value


DecimalString = Annotated[str, BeforeValidator(_to_decimal_string)]


class OrderStatus(str, Enum):
    """Order lifecycle statuses known to the backend."""

    INITIAL = "initial"
    NEW = "new"
    PAID = "paid"
    FAILED = "failed"


def parse_status(value: Any) -> OrderStatus | str:
    """Map a raw status to `OrderStatus`, keeping unknown values as strings."""

    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return str(value)


def status_string(status: OrderStatus | str) -> str:
    """Canonical string form of a status, known to the enumeration or not."""

    if isinstance(status, OrderStatus):
        return status.value
    return str(status)


Status = Annotated[OrderStatus | str, BeforeValidator(parse_status)]


class Identity(BaseModel):
    """Handle for an identity address."""

    model_config = ConfigDict(frozen=True)

    address: str

    @classmethod
    def from_address(cls, address: str) -> "Identity":
        return cls(address=address.strip().lower())


class GatewayOrder(BaseModel):
    """One payment order as the backend reports it."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    status: Status
    identity: str = ""
    channel_address: str = ""
    gateway_name: str = ""
    receive_myst: DecimalString = "0"
    pay_amount: DecimalString = "0"
    pay_currency: str = ""
    country: str = ""
    state: str = ""
    currency: str = ""
    items_sub_total: DecimalString = "0"
    tax_rate: DecimalString = "0"
    tax_sub_total: DecimalString = "0"
    order_total: DecimalString = "0"
    public_gateway_data: RawJson = RawJson("null")


class GatewayOrderOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    minimum: float = 0.0
    suggested: list[float] = Field(default_factory=list)


class GatewayInfo(BaseModel):
    """A payment gateway with its order options in the requested currency."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    order_options: GatewayOrderOptions = Field(default_factory=GatewayOrderOptions)
    currencies: list[str] = Field(default_factory=list)


class GatewayOrderRequest(BaseModel):
    """Order creation request sent downstream once defaulting is done."""

    model_config = ConfigDict(frozen=True)

    identity: Identity
    gateway: str
    myst_amount: str
    amount_usd: str
    pay_currency: str
    country: str
    state: str = ""
    # Raw JSON accepted by the payment gateway, forwarded as is.
    caller_data: bytes = b""


class OrderUpdated(BaseModel):
    """Payload the backend publishes when an order changes status."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    status: Status
    pay_amount: DecimalString = "0"
    pay_currency: str = ""
