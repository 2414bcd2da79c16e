"""Unit tests for the backend-to-external order/gateway mapping."""

import re
from decimal import Decimal

import pytest
from pydantic import ValidationError

from paybridge.common.rawjson import RawJson
from paybridge.services.orders.models import (
    GatewayInfo,
    GatewayOrder,
    OrderStatus,
    OrderUpdated,
    status_string,
)
from paybridge.services.orders.representation import (
    to_external_gateways,
    to_external_order,
    to_update_event,
)
from paybridge.services.orders.schemas import CreateOrderRequest

from tests.conftest import backend_order


MONEY_FIELDS = ["receive_myst", "pay_amount", "items_sub_total", "tax_rate", "tax_sub_total", "order_total"]
DECIMAL = re.compile(r"^-?\d+(\.\d+)?$")


def test_order_fields_are_copied():
    """Every field lands on its external name; gateway_name becomes gateway."""

    order = GatewayOrder.model_validate(backend_order())
    external = to_external_order(order)

    assert external.id == "ord-1"
    assert external.status == "new"
    assert external.identity == "0xabc"
    assert external.channel_address == "0xchannel"
    assert external.gateway == "stripe"
    assert external.receive_myst == "10.5"
    assert external.pay_amount == "12.00"
    assert external.pay_currency == "USD"
    assert external.country == "LT"
    assert external.currency == "EUR"
    assert external.items_sub_total == "10.00"
    assert external.tax_rate == "21.00"
    assert external.tax_sub_total == "2.10"
    assert external.order_total == "12.10"


def test_translation_is_deterministic():
    """Equal inputs give equal outputs; the mapping keeps no hidden state."""

    first = GatewayOrder.model_validate(backend_order())
    second = GatewayOrder.model_validate(backend_order())

    assert to_external_order(first) == to_external_order(second)
    assert to_external_order(first) == to_external_order(first)


def test_gateway_payload_is_embedded_as_nested_json():
    """The opaque payload is passed through as a JSON tree, not a string blob."""

    external = to_external_order(GatewayOrder.model_validate(backend_order()))
    dumped = external.model_dump(mode="json")

    assert dumped["public_gateway_data"] == {
        "checkout_url": "https://pay.example/s/1",
        "lines": [1, 2, {"x": None}],
    }
    assert '"public_gateway_data":{' in external.model_dump_json()


def test_gateway_payload_text_is_written_back_unchanged():
    raw = '{"amount":12.345678901234567890123,"big":12345678901234567890.5, "nested": [1.10, {"x": null}]}'
    order = GatewayOrder.model_validate({**backend_order(), "public_gateway_data": RawJson(raw)})

    external = to_external_order(order)

    assert external.public_gateway_data == raw
    assert external.model_dump_json().endswith('"public_gateway_data":' + raw + "}")
    assert external.model_dump()["public_gateway_data"]["amount"] == Decimal("12.345678901234567890123")


def test_gateway_payload_may_be_any_json_value():
    order = GatewayOrder.model_validate(backend_order(public_gateway_data="plain"))
    missing = {**backend_order()}
    del missing["public_gateway_data"]

    assert to_external_order(order).public_gateway_data == '"plain"'
    assert '"public_gateway_data":null}' in to_external_order(GatewayOrder.model_validate(missing)).model_dump_json()


def test_money_fields_serialize_as_decimal_strings():
    """Amounts are strings in JSON, even when the backend sent numbers."""

    order = GatewayOrder.model_validate(
        backend_order(pay_amount=12.5, receive_myst=10, order_total=Decimal("12.10"), tax_rate=0.1)
    )
    dumped = to_external_order(order).model_dump(mode="json")

    for field in MONEY_FIELDS:
        assert isinstance(dumped[field], str), field
        assert DECIMAL.match(dumped[field]), (field, dumped[field])
    assert dumped["pay_amount"] == "12.5"
    assert dumped["receive_myst"] == "10"
    assert dumped["order_total"] == "12.10"
    assert dumped["tax_rate"] == "0.1"


def test_missing_amounts_are_zero():
    """Absent or null backend amounts still render as decimal strings."""

    payload = backend_order(pay_amount=None, tax_rate="")
    del payload["order_total"]
    dumped = to_external_order(GatewayOrder.model_validate(payload)).model_dump(mode="json")

    assert dumped["pay_amount"] == "0"
    assert dumped["tax_rate"] == "0"
    assert dumped["order_total"] == "0"
    for field in MONEY_FIELDS:
        assert DECIMAL.match(dumped[field]), (field, dumped[field])


def test_exponent_amounts_are_expanded():
    order = GatewayOrder.model_validate(backend_order(pay_amount="1E+2"))

    assert to_external_order(order).pay_amount == "100"


def test_known_status_is_serialized_as_string():
    order = GatewayOrder.model_validate(backend_order(status="paid"))

    assert order.status is OrderStatus.PAID
    assert to_external_order(order).status == "paid"


def test_unknown_status_passes_through():
    """A status the enumeration does not know yet is kept verbatim."""

    order = GatewayOrder.model_validate(backend_order(status="refunded"))

    assert status_string(order.status) == "refunded"
    assert to_external_order(order).status == "refunded"


def test_external_order_is_immutable():
    external = to_external_order(GatewayOrder.model_validate(backend_order()))

    with pytest.raises(ValidationError):
        external.status = "paid"


def test_gateway_list_keeps_order_and_size():
    gateways = [
        GatewayInfo.model_validate(
            {"name": "stripe", "order_options": {"minimum": 5.5, "suggested": [10, 20, 50]}, "currencies": ["USD", "EUR"]}
        ),
        GatewayInfo.model_validate({"name": "coingate", "order_options": {"minimum": 1}, "currencies": []}),
        GatewayInfo.model_validate({"name": "apple", "currencies": ["USD"]}),
    ]

    external = to_external_gateways(gateways)

    assert [g.name for g in external] == ["stripe", "coingate", "apple"]
    assert external[0].order_options.minimum == 5.5
    assert external[0].order_options.suggested == [10.0, 20.0, 50.0]
    assert external[0].currencies == ["USD", "EUR"]
    assert external[1].order_options.suggested == []
    assert external[2].order_options.minimum == 0.0


def test_gateway_options_serialize_as_numbers():
    external = to_external_gateways(
        [GatewayInfo.model_validate({"name": "stripe", "order_options": {"minimum": 5, "suggested": [10.5]}})]
    )
    dumped = external[0].model_dump(mode="json")

    assert dumped["order_options"] == {"minimum": 5.0, "suggested": [10.5]}


def test_update_event_projection():
    event = OrderUpdated.model_validate(
        {"id": "ord-9", "status": "paid", "pay_amount": "3.30", "pay_currency": "EUR", "identity": "0xabc"}
    )

    update = to_update_event(event)

    assert update.order_id == "ord-9"
    assert update.status == "paid"
    assert update.pay_amount == "3.30"
    assert update.pay_currency == "EUR"


def test_update_event_keeps_unknown_status():
    update = to_update_event(OrderUpdated.model_validate({"id": "ord-9", "status": "chargeback"}))

    assert update.status == "chargeback"
    assert update.pay_amount == "0"


@pytest.mark.parametrize("amount", ["12.0.0", "abc", "1,5", ""])
def test_request_amounts_must_be_decimal_strings(amount):
    with pytest.raises(ValidationError):
        CreateOrderRequest(
            identity_address="0xabc",
            gateway="stripe",
            myst_amount=amount,
            amount_usd="12.00",
            pay_currency="USD",
        )
