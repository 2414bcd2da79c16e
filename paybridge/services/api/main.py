"""HTTP surface for the payment-order bridge and its event subscription lifecycle."""

from contextlib import asynccontextmanager
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request

from paybridge.clients.backend import BackendClient
from paybridge.clients.location import HttpLocationResolver
from paybridge.common.config import settings
from paybridge.common.events import InProcessEventBus, KafkaEventBus
from paybridge.common.logging import configure_logging, trace_id_ctx
from paybridge.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from paybridge.common.startup import log_startup_config
from paybridge.common.tracing import instrument_app, setup_tracing
from paybridge.services.api.routes import install_error_handlers, router
from paybridge.services.orders.bridge import OrderUpdateBridge
from paybridge.services.orders.service import PaymentOrderService

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings,
    ["backend_url", "location_url", "event_bus", "kafka_bootstrap_servers", "order_updated_topic"],
)


def make_event_bus():
    if settings.event_bus == "kafka":
        return KafkaEventBus()
    return InProcessEventBus()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborators and subscribe the bridge once for the life of the app."""

    backend = BackendClient()
    resolver = HttpLocationResolver()
    bus = make_event_bus()
    app.state.event_bus = bus
    app.state.order_service = PaymentOrderService(backend, resolver)
    app.state.bridge = OrderUpdateBridge(bus)
    yield
    await bus.close()
    await backend.close()
    await resolver.close()


app = FastAPI(title="PayBridge Payment Orders", lifespan=lifespan)
instrument_app(app)
install_error_handlers(app)
app.include_router(router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency and bind a trace id for every HTTP call."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    trace_id_ctx.set(request.headers.get("x-trace-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
