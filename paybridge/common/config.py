"""Central environment-driven settings for the payment-order bridge.

The process loads this once at startup. Behavior is controlled by environment
variables or a local `.env` file.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "paybridge"
    log_level: str = "INFO"
    backend_url: str = "http://payment-backend:8080"
    location_url: str = "http://location:8080/api/v1/location"
    http_timeout_seconds: float = 20.0
    listener_timeout_seconds: float = 5.0
    # "memory" keeps the order-updated stream in process, "kafka" consumes it from Kafka.
    event_bus: str = "memory"
    kafka_bootstrap_servers: str = "kafka:9092"
    order_updated_topic: str = "orders.updated"
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
