"""Order-updated listener that forwards events to an HTTP webhook."""

import httpx

from paybridge.common.config import settings
from paybridge.common.logging import logger
from paybridge.services.orders.schemas import OrderUpdateEvent


class WebhookListener:
    """POSTs every order update as JSON to `url`.

    Each delivery is bounded by `timeout` so a slow receiver cannot hold up the
    events queued behind it.
    """

    def __init__(
        self,
        url: str,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.listener_timeout_seconds
        self._transport = transport

    async def on_update(self, event: OrderUpdateEvent) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(self.url, json=event.model_dump())
        if resp.status_code >= 400:
            logger.error("webhook rejected order update url=%s status=%s", self.url, resp.status_code)
            resp.raise_for_status()
