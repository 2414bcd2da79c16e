"""Pure mapping from backend order/gateway values to the external schemas."""

from paybridge.services.orders.models import GatewayInfo, GatewayOrder, OrderUpdated, status_string
from paybridge.services.orders.schemas import Gateway, OrderUpdateEvent, PaymentOrder, PaymentOrderOptions


def to_external_order(order: GatewayOrder) -> PaymentOrder:
    """Translate one backend order. Total: every field is copied, status as its string form."""

    return PaymentOrder(
        id=order.id,
        status=status_string(order.status),
        identity=order.identity,
        channel_address=order.channel_address,
        gateway=order.gateway_name,
        receive_myst=order.receive_myst,
        pay_amount=order.pay_amount,
        pay_currency=order.pay_currency,
        country=order.country,
        currency=order.currency,
        items_sub_total=order.items_sub_total,
        tax_rate=order.tax_rate,
        tax_sub_total=order.tax_sub_total,
        order_total=order.order_total,
        public_gateway_data=order.public_gateway_data,
    )


def to_external_orders(orders: list[GatewayOrder]) -> list[PaymentOrder]:
    return [to_external_order(order) for order in orders]


def to_external_gateways(gateways: list[GatewayInfo]) -> list[Gateway]:
    """One external gateway per input, same order, nothing filtered."""

    return [
        Gateway(
            name=gateway.name,
            order_options=PaymentOrderOptions(
                minimum=gateway.order_options.minimum,
                suggested=list(gateway.order_options.suggested),
            ),
            currencies=list(gateway.currencies),
        )
        for gateway in gateways
    ]


def to_update_event(event: OrderUpdated) -> OrderUpdateEvent:
    return OrderUpdateEvent(
        order_id=event.id,
        status=status_string(event.status),
        pay_amount=event.pay_amount,
        pay_currency=event.pay_currency,
    )
