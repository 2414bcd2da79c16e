"""Startup-time helpers for safe config logging."""

from paybridge.common.config import CommonSettings
from paybridge.common.logging import logger


_SECRET_MARKERS = ("key", "secret", "password", "token")


def _safe_value(name: str, value) -> str:
    """Render a settings value with simple redaction for secret-like field names."""

    if value is None or value == "":
        return "<unset>"
    if any(marker in name.lower() for marker in _SECRET_MARKERS):
        return "<redacted>"
    return str(value)


def log_startup_config(config: CommonSettings, fields: list[str]) -> None:
    """Log selected settings fields for quick troubleshooting."""

    view = {"service": config.service_name}
    for field in fields:
        view[field] = _safe_value(field, getattr(config, field, None))
    logger.info("startup_config=%s", view)
