"""Order-updated notifications for a single external listener.

The bridge subscribes to the order-updated topic once, when it is built, and
stays subscribed for the life of the process. Each event is projected to an
`OrderUpdateEvent` and handed to whichever listener is registered at that
moment. Without a listener the event is dropped: there is no backlog and no
replay for a listener that registers later. An event emitted before the current
listener registered is dropped too, even if it was still queued at that time.
"""

import inspect
import threading
from datetime import datetime
from typing import Awaitable, Protocol

from paybridge.common.config import settings
from paybridge.common.events import EventBus, EventEnvelope, parse_occurred_at, utc_stamp
from paybridge.common.logging import logger
from paybridge.common.metrics import (
    listener_registrations_total,
    order_update_listener_errors_total,
    order_updates_delivered_total,
    order_updates_dropped_total,
    order_updates_received_total,
)
from paybridge.services.orders.models import OrderUpdated
from paybridge.services.orders.representation import to_update_event
from paybridge.services.orders.schemas import OrderUpdateEvent


class OrderUpdatedListener(Protocol):
    """Receives order-updated notifications. May be sync or async; must not block indefinitely."""

    def on_update(self, event: OrderUpdateEvent) -> Awaitable[None] | None: ...


class OrderUpdateBridge:
    """Redelivers backend order-updated events to the current listener."""

    def __init__(self, bus: EventBus, topic: str | None = None, service_name: str | None = None) -> None:
        self.topic = topic or settings.order_updated_topic
        self.service_name = service_name or settings.service_name
        self._lock = threading.Lock()
        self._listener: OrderUpdatedListener | None = None
        self._registered_at: datetime | None = None
        bus.subscribe_async(self.topic, self._on_order_updated)

    def register_listener(self, listener: OrderUpdatedListener) -> None:
        """Make `listener` the only recipient, superseding any previous one."""

        with self._lock:
            previous = self._listener
            self._listener = listener
            self._registered_at = utc_stamp()
        listener_registrations_total.labels(service=self.service_name).inc()
        logger.info(
            "order_listener_registered listener=%s replaced=%s",
            type(listener).__name__,
            previous is not None,
        )

    def _current_listener(self) -> OrderUpdatedListener | None:
        return self._current_slot()[0]

    def _current_slot(self) -> tuple[OrderUpdatedListener | None, datetime | None]:
        with self._lock:
            return self._listener, self._registered_at

    async def _on_order_updated(self, envelope: EventEnvelope) -> None:
        order_updates_received_total.labels(service=self.service_name).inc()
        try:
            emitted_at = parse_occurred_at(envelope.occurred_at)
            event = to_update_event(OrderUpdated.model_validate(envelope.payload))
        except ValueError as exc:
            logger.error("order_update_malformed topic=%s error=%s", self.topic, exc)
            return

        listener, registered_at = self._current_slot()
        if listener is None or emitted_at < registered_at:
            order_updates_dropped_total.labels(service=self.service_name).inc()
            logger.info(
                "order_update_dropped order_id=%s status=%s listener=%s",
                event.order_id,
                event.status,
                listener is not None,
            )
            return

        try:
            result = listener.on_update(event)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            order_update_listener_errors_total.labels(service=self.service_name).inc()
            logger.exception("order_listener_failed order_id=%s error=%s", event.order_id, exc)
            return
        order_updates_delivered_total.labels(service=self.service_name).inc()
