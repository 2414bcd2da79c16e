"""Event envelope, Kafka helpers and the event buses the bridge subscribes to.

Two buses satisfy the same narrow `EventBus` contract (subscribe by topic,
asynchronous delivery): an in-process asyncio bus and a Kafka-backed bus that
runs the shared consumer loop.
"""

import asyncio
import json
import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Protocol
from uuid import uuid4

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer
from pydantic import BaseModel, Field

from paybridge.common.config import settings
from paybridge.common.logging import logger, order_id_ctx, trace_id_ctx
from paybridge.common.metrics import event_queue_delay_seconds


Handler = Callable[["EventEnvelope"], Awaitable[None]]

_clock_lock = threading.Lock()
_last_stamp = datetime.min.replace(tzinfo=timezone.utc)


def utc_stamp() -> datetime:
    """Current UTC time, strictly later than any stamp handed out before in this process."""

    global _last_stamp
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if now <= _last_stamp:
            now = _last_stamp + timedelta(microseconds=1)
        _last_stamp = now
        return now


def parse_occurred_at(value: str) -> datetime:
    occurred_at = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if occurred_at.tzinfo is None:
        occurred_at = occurred_at.replace(tzinfo=timezone.utc)
    return occurred_at


class EventEnvelope(BaseModel):
    """Canonical event shape sent across Kafka topics."""

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: str
    aggregate_id: str
    occurred_at: str = Field(default_factory=lambda: utc_stamp().isoformat())
    trace_id: str
    payload: dict[str, Any]


class EventBus(Protocol):
    """Subscribe-by-topic capability with asynchronous delivery of `EventEnvelope`s."""

    def subscribe_async(self, topic: str, handler: Handler) -> None: ...


def envelope_for(topic: str, payload: dict[str, Any]) -> EventEnvelope:
    """Wrap a payload published on `topic`, stamped with its emission time."""

    return EventEnvelope(
        event_type=topic,
        aggregate_id=str(payload.get("id", "")),
        trace_id=trace_id_ctx.get() or str(uuid4()),
        payload=payload,
    )


class KafkaBus:
    """Lazy Kafka producer wrapper."""

    def __init__(self) -> None:
        self._producer: AIOKafkaProducer | None = None

    async def producer(self) -> AIOKafkaProducer:
        if self._producer is None:
            self._producer = AIOKafkaProducer(bootstrap_servers=settings.kafka_bootstrap_servers)
            await self._producer.start()
        return self._producer

    async def publish(self, topic: str, event: EventEnvelope) -> None:
        producer = await self.producer()
        await producer.send_and_wait(topic, json.dumps(event.model_dump()).encode("utf-8"))

    async def close(self) -> None:
        if self._producer:
            await self._producer.stop()


async def make_consumer(topic: str, group_id: str, auto_offset_reset: str = "latest") -> AIOKafkaConsumer:
    """Create a configured Kafka consumer for one topic/group."""

    consumer = AIOKafkaConsumer(
        topic,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=group_id,
        auto_offset_reset=auto_offset_reset,
        enable_auto_commit=False,
    )
    await consumer.start()
    return consumer


def _observe_delay(topic: str, event: EventEnvelope) -> None:
    occurred_at = parse_occurred_at(event.occurred_at)
    delay_seconds = max(0.0, (datetime.now(timezone.utc) - occurred_at).total_seconds())
    event_queue_delay_seconds.labels(service=settings.service_name, topic=topic).observe(delay_seconds)


async def consume_forever(
    topic: str,
    group_id: str,
    handler,
) -> None:
    """Continuously consume one topic and pass parsed envelopes to `handler`.

    Messages are handled one at a time in partition order. Errors in individual
    messages are logged and processing continues.
    """

    while True:
        consumer = None
        try:
            consumer = await make_consumer(topic, group_id)
            while True:
                results = await consumer.getmany(timeout_ms=500, max_records=50)
                for _, messages in results.items():
                    for msg in messages:
                        try:
                            event = EventEnvelope(**json.loads(msg.value.decode("utf-8")))
                            _observe_delay(topic, event)
                            trace_token = trace_id_ctx.set(event.trace_id)
                            order_token = order_id_ctx.set(event.aggregate_id)
                            try:
                                logger.info(
                                    "event_received topic=%s group=%s event_type=%s aggregate_id=%s",
                                    topic,
                                    group_id,
                                    event.event_type,
                                    event.aggregate_id,
                                )
                                await handler(event)
                            finally:
                                trace_id_ctx.reset(trace_token)
                                order_id_ctx.reset(order_token)
                        except Exception as exc:
                            logger.error(
                                "handler_error topic=%s group=%s offset=%s error=%s",
                                topic,
                                group_id,
                                msg.offset,
                                exc,
                            )
                await consumer.commit()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("consumer_loop_error topic=%s group=%s error=%s", topic, group_id, exc)
            await asyncio.sleep(2)
        finally:
            if consumer is not None:
                await consumer.stop()
            await asyncio.sleep(0)


class _Subscription:
    """One handler with its own queue and worker, so delivery keeps emission order."""

    def __init__(self, topic: str, handler: Handler) -> None:
        self.topic = topic
        self.handler = handler
        self.queue: asyncio.Queue | None = None
        self.task: asyncio.Task | None = None

    def put(self, event: EventEnvelope) -> None:
        if self.queue is None:
            self.queue = asyncio.Queue()
        if self.task is None or self.task.done():
            self.task = asyncio.get_running_loop().create_task(self._run())
        self.queue.put_nowait(event)

    async def _run(self) -> None:
        while True:
            event = await self.queue.get()
            try:
                await self.handler(event)
            except Exception as exc:
                logger.error("handler_error topic=%s error=%s", self.topic, exc)
            finally:
                self.queue.task_done()


class InProcessEventBus:
    """Asyncio event bus for publishers living in the same process."""

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {}

    def subscribe_async(self, topic: str, handler: Handler) -> None:
        self._subscriptions.setdefault(topic, []).append(_Subscription(topic, handler))

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Queue `payload` for every subscription of `topic` and return immediately."""

        event = envelope_for(topic, payload)
        for subscription in self._subscriptions.get(topic, []):
            subscription.put(event)

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""

        for subscriptions in self._subscriptions.values():
            for subscription in subscriptions:
                if subscription.queue is not None:
                    await subscription.queue.join()

    async def close(self) -> None:
        tasks = [
            subscription.task
            for subscriptions in self._subscriptions.values()
            for subscription in subscriptions
            if subscription.task is not None
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class KafkaEventBus:
    """Event bus over Kafka topics carrying `EventEnvelope` messages."""

    def __init__(self, group_id: str | None = None) -> None:
        self.group_id = group_id or settings.service_name
        self.kafka = KafkaBus()
        self._tasks: list[asyncio.Task] = []

    def subscribe_async(self, topic: str, handler: Handler) -> None:
        async def on_envelope(event: EventEnvelope) -> None:
            if "id" not in event.payload:
                event = event.model_copy(update={"payload": {"id": event.aggregate_id, **event.payload}})
            await handler(event)

        task = asyncio.get_running_loop().create_task(
            consume_forever(topic, f"{self.group_id}-{topic}", on_envelope)
        )
        self._tasks.append(task)

    async def publish(self, topic: str, payload: dict[str, Any]) -> None:
        await self.kafka.publish(topic, envelope_for(topic, payload))

    async def close(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        await self.kafka.close()
