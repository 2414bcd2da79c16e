"""Publish one order-updated event to the Kafka topic the bridge consumes.

Useful for checking listener delivery end to end without a real backend.
"""

import argparse
import asyncio
import json
from datetime import datetime, timezone
from uuid import uuid4

from aiokafka import AIOKafkaProducer


def build_envelope(order_id: str, status: str, pay_amount: str, pay_currency: str, topic: str) -> dict:
    """Envelope in the shape `paybridge.common.events.EventEnvelope` parses."""

    return {
        "event_id": str(uuid4()),
        "event_type": topic,
        "aggregate_id": order_id,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "trace_id": str(uuid4()),
        "payload": {
            "id": order_id,
            "status": status,
            "pay_amount": pay_amount,
            "pay_currency": pay_currency,
        },
    }


async def publish(bootstrap_servers: str, topic: str, envelope: dict) -> None:
    """Open producer, publish one message, close producer."""

    producer = AIOKafkaProducer(bootstrap_servers=bootstrap_servers)
    await producer.start()
    try:
        await producer.send_and_wait(topic, json.dumps(envelope).encode("utf-8"))
    finally:
        await producer.stop()


def main() -> None:
    """Parse CLI args and publish one order-updated event."""

    parser = argparse.ArgumentParser(description="Publish an order-updated event to Kafka.")
    parser.add_argument("--bootstrap-servers", default="localhost:9092")
    parser.add_argument("--topic", default="orders.updated")
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--status", default="paid")
    parser.add_argument("--pay-amount", default="0")
    parser.add_argument("--pay-currency", default="USD")
    args = parser.parse_args()

    envelope = build_envelope(args.order_id, args.status, args.pay_amount, args.pay_currency, args.topic)
    asyncio.run(publish(args.bootstrap_servers, args.topic, envelope))
    print(f"Published order_id={args.order_id} status={args.status} to topic={args.topic}")


if __name__ == "__main__":
    main()
