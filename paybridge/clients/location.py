"""Client for the IP-based location service."""

from typing import Protocol

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from paybridge.common.config import settings
from paybridge.common.errors import LocationUnavailable
from paybridge.common.logging import logger


class Location(BaseModel):
    """Where the current connection appears to originate from."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    ip: str = ""
    asn: int = 0
    isp: str = ""
    continent: str = ""
    country: str = ""
    region: str = ""
    city: str = ""


class LocationResolver(Protocol):
    async def get_origin(self) -> Location: ...


class HttpLocationResolver:
    """Resolves the origin location by asking the location service once per call."""

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url or settings.location_url
        self._client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.http_timeout_seconds,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def get_origin(self) -> Location:
        try:
            response = await self._client.get(self.url)
            response.raise_for_status()
            return Location.model_validate_json(response.content)
        except (httpx.HTTPError, ValidationError) as exc:
            logger.warning("location_lookup_failed url=%s error=%s", self.url, exc)
            raise LocationUnavailable(f"location lookup failed: {exc}", "get_origin") from exc
