"""Order lifecycle facade.

Fills in missing request fields, forwards every operation to the backend order
service and returns external snapshots. Holds no mutable state of its own.
"""

from decimal import Decimal

from paybridge.clients.backend import BackendClient
from paybridge.clients.location import LocationResolver
from paybridge.common.config import settings
from paybridge.common.errors import LocationUnavailable
from paybridge.common.logging import identity_ctx, logger, order_id_ctx
from paybridge.common.metrics import location_lookups_total
from paybridge.services.orders.catalog import GatewayCatalog
from paybridge.services.orders.models import GatewayOrderRequest, Identity, status_string
from paybridge.services.orders.representation import to_external_order, to_external_orders
from paybridge.services.orders.schemas import (
    ClientCallbackRequest,
    CreateOrderRequest,
    Gateway,
    GetGatewaysRequest,
    GetOrderRequest,
    ListOrdersRequest,
    PaymentOrder,
)


class PaymentOrderService:
    """Create, read and list payment orders against the backend order service."""

    def __init__(
        self,
        backend: BackendClient,
        location_resolver: LocationResolver,
        service_name: str | None = None,
    ) -> None:
        self.backend = backend
        self.location_resolver = location_resolver
        self.catalog = GatewayCatalog(backend)
        self.service_name = service_name or settings.service_name

    async def _default_country(self) -> str:
        """Country of the current network location, upper-cased.

        Raises `LocationUnavailable` when the lookup fails or reports no
        country, so an order is never created with an empty country.
        """

        try:
            origin = await self.location_resolver.get_origin()
        except LocationUnavailable:
            location_lookups_total.labels(service=self.service_name, result="failed").inc()
            raise
        if not origin.country:
            location_lookups_total.labels(service=self.service_name, result="empty").inc()
            raise LocationUnavailable("location lookup returned no country", "create_order")
        location_lookups_total.labels(service=self.service_name, result="ok").inc()
        return origin.country.upper()

    async def create_order(self, req: CreateOrderRequest) -> PaymentOrder:
        """Create a payment order, defaulting an empty country from the current location."""

        identity_ctx.set(req.identity_address)
        country = req.country
        if country == "":
            country = await self._default_country()
            logger.info("order_country_defaulted country=%s", country)

        order = await self.backend.create_payment_gateway_order(
            GatewayOrderRequest(
                identity=Identity.from_address(req.identity_address),
                gateway=req.gateway,
                myst_amount=req.myst_amount,
                amount_usd=req.amount_usd,
                pay_currency=req.pay_currency,
                country=country,
                state=req.state,
                caller_data=req.gateway_caller_data,
            )
        )
        order_id_ctx.set(order.id)
        logger.info("order_created gateway=%s status=%s", req.gateway, status_string(order.status))
        return to_external_order(order)

    async def get_order(self, req: GetOrderRequest) -> PaymentOrder:
        order = await self.backend.get_payment_gateway_order(Identity.from_address(req.identity_address), req.id)
        return to_external_order(order)

    async def get_order_invoice(self, req: GetOrderRequest) -> bytes:
        """Invoice document as produced by the backend; the bytes are not inspected."""

        return await self.backend.get_payment_gateway_order_invoice(
            Identity.from_address(req.identity_address), req.id
        )

    async def list_orders(self, req: ListOrdersRequest) -> list[PaymentOrder]:
        """All orders of an identity in backend order; empty when there are none."""

        orders = await self.backend.get_payment_gateway_orders(Identity.from_address(req.identity_address))
        return to_external_orders(orders)

    async def list_gateways(self, req: GetGatewaysRequest) -> list[Gateway]:
        return await self.catalog.list_gateways(req.options_currency)

    async def relay_client_callback(self, req: ClientCallbackRequest) -> None:
        """Forward a client-side purchase confirmation to the gateway's callback handler."""

        payload = {
            "purchase_token": req.purchase_token,
            "google_product_id": req.product_id,
        }
        await self.backend.gateway_client_callback(
            Identity.from_address(req.identity_address), req.gateway, payload
        )
        logger.info("client_callback_relayed gateway=%s", req.gateway)

    async def exchange_rate(self, quote_currency: str) -> Decimal:
        """MYST price in `quote_currency`."""

        return await self.backend.get_myst_exchange_rate_for(quote_currency)
