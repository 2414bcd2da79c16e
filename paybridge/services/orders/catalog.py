"""Read-only view of the payment gateways the backend offers."""

from paybridge.clients.backend import BackendClient
from paybridge.common.logging import logger
from paybridge.services.orders.representation import to_external_gateways
from paybridge.services.orders.schemas import Gateway


class GatewayCatalog:
    """Lists gateways with order options priced in a settlement currency.

    Every call goes to the backend; nothing is cached and failures are not
    retried. The currency code is not validated here.
    """

    def __init__(self, backend: BackendClient) -> None:
        self.backend = backend

    async def list_gateways(self, currency_code: str) -> list[Gateway]:
        gateways = await self.backend.get_payment_gateways(currency_code)
        logger.info("gateways_listed currency=%s count=%s", currency_code, len(gateways))
        return to_external_gateways(gateways)
