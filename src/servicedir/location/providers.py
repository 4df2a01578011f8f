"""
Geolocation providers (the "platform capability" behind the resolver).

A provider answers one question: where is the current client? It either returns a
`Position` or raises `PositionError` with a platform code. Timeouts and caching
are the resolver's job, not the provider's.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Protocol

import httpx

from servicedir.config.settings import Settings
from servicedir.core.http import get_json
from servicedir.location.errors import PERMISSION_DENIED, POSITION_UNAVAILABLE, TIMEOUT, PositionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionOptions:
    """Request options passed through to the provider."""

    enable_high_accuracy: bool = False
    timeout_seconds: float = 15
    maximum_age_seconds: float = 300


@dataclass(frozen=True)
class Position:
    """One position reading."""

    lat: float
    lng: float
    accuracy_m: float | None = None
    timestamp: float = 0.0


class GeolocationProvider(Protocol):
    async def get_current_position(self, options: PositionOptions) -> Position: ...


class StaticGeolocationProvider:
    """Always reports the same coordinate (e.g. the configured town centre)."""

    def __init__(self, lat: float, lng: float):
        self._lat = float(lat)
        self._lng = float(lng)

    async def get_current_position(self, options: PositionOptions) -> Position:
        return Position(lat=self._lat, lng=self._lng, timestamp=time.time())


class DeniedGeolocationProvider:
    """Refuses every request, as a client that blocked location permissions would."""

    async def get_current_position(self, options: PositionOptions) -> Position:
        raise PositionError(PERMISSION_DENIED, "location disabled by configuration")


class IpGeolocationProvider:
    """Approximate position from an IP lookup service (ip-api.com compatible JSON).

    Expected payload: `{"status": "success", "lat": ..., "lon": ...}`; failures come back
    as `{"status": "fail", "message": ...}`.
    """

    def __init__(self, url: str, *, ip: str | None = None, timeout_seconds: float = 10):
        self._url = url
        self._ip = ip
        self._timeout_seconds = timeout_seconds

    def _lookup_url(self) -> str:
        if not self._ip:
            return self._url
        return self._url.rstrip("/") + "/" + self._ip

    async def get_current_position(self, options: PositionOptions) -> Position:
        timeout = min(self._timeout_seconds, options.timeout_seconds)
        try:
            payload = await get_json(self._lookup_url(), timeout_seconds=timeout)
        except httpx.TimeoutException as e:
            raise PositionError(TIMEOUT, "ip lookup timed out") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code in (401, 403):
                raise PositionError(PERMISSION_DENIED, f"ip lookup refused ({e.response.status_code})") from e
            raise PositionError(POSITION_UNAVAILABLE, f"ip lookup failed ({e.response.status_code})") from e
        except (httpx.HTTPError, ValueError) as e:
            raise PositionError(POSITION_UNAVAILABLE, str(e)) from e

        if not isinstance(payload, dict) or payload.get("status") != "success":
            message = payload.get("message") if isinstance(payload, dict) else None
            raise PositionError(POSITION_UNAVAILABLE, str(message or "ip lookup returned no position"))

        try:
            lat = float(payload["lat"])
            lng = float(payload["lon"])
        except (KeyError, TypeError, ValueError) as e:
            raise PositionError(POSITION_UNAVAILABLE, "ip lookup returned malformed coordinates") from e

        logger.debug("IP lookup resolved lat=%.4f lng=%.4f", lat, lng)
        return Position(lat=lat, lng=lng, timestamp=time.time())


def build_provider(settings: Settings, *, ip: str | None = None) -> GeolocationProvider:
    """Build the provider selected by `location.provider`."""
    loc = settings.location
    if loc.provider == "ip":
        return IpGeolocationProvider(loc.ip_lookup_url, ip=ip, timeout_seconds=settings.app.http_timeout_seconds)
    if loc.provider == "none":
        return DeniedGeolocationProvider()
    return StaticGeolocationProvider(loc.static_lat, loc.static_lng)
