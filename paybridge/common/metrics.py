"""Prometheus metric definitions for the payment-order bridge."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


backend_requests_total = Counter(
    "backend_requests_total",
    "Total calls made to the backend order service",
    ["service", "operation"],
)
backend_failures_total = Counter(
    "backend_failures_total",
    "Backend order service calls that ended in an error",
    ["service", "operation", "error_type"],
)
backend_latency_seconds = Histogram(
    "backend_latency_seconds",
    "Backend order service call latency seconds",
    ["service", "operation"],
)
location_lookups_total = Counter(
    "location_lookups_total",
    "Location lookups made to default a missing order country",
    ["service", "result"],
)
order_updates_received_total = Counter(
    "order_updates_received_total",
    "Order-updated events received from the event bus",
    ["service"],
)
order_updates_delivered_total = Counter(
    "order_updates_delivered_total",
    "Order-updated events handed to the registered listener",
    ["service"],
)
order_updates_dropped_total = Counter(
    "order_updates_dropped_total",
    "Order-updated events dropped because no listener was registered",
    ["service"],
)
order_update_listener_errors_total = Counter(
    "order_update_listener_errors_total",
    "Order-updated deliveries where the listener raised",
    ["service"],
)
listener_registrations_total = Counter(
    "listener_registrations_total",
    "Listener registrations, including replacements",
    ["service"],
)
event_queue_delay_seconds = Histogram(
    "event_queue_delay_seconds",
    "Event queue delay seconds between occurred_at and consume time",
    ["service", "topic"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
