"""
Location resolver.

`LocationResolver.resolve()` obtains a single coordinate for the current client:
- no provider at all -> `LocationUnsupportedError`, immediately;
- a cached reading within `maximum_age_seconds` -> served without asking the provider;
- otherwise the provider is awaited for at most `timeout_seconds`.

Each call produces exactly one outcome (a `Coordinate` or one `LocationError`).
There is no cancel API; a caller that goes away must ignore the late outcome itself.
"""

from __future__ import annotations

import asyncio
import logging

from servicedir.config.settings import Settings, get_settings
from servicedir.domain.models import Coordinate
from servicedir.location.cache import PositionCache
from servicedir.location.errors import (
    LocationError,
    LocationTimeoutError,
    LocationUnknownError,
    LocationUnsupportedError,
    PositionError,
    error_from_position_error,
)
from servicedir.location.providers import GeolocationProvider, PositionOptions, build_provider

logger = logging.getLogger(__name__)


def options_from_settings(settings: Settings) -> PositionOptions:
    loc = settings.location
    return PositionOptions(
        enable_high_accuracy=loc.enable_high_accuracy,
        timeout_seconds=float(loc.timeout_seconds),
        maximum_age_seconds=float(loc.maximum_age_seconds),
    )


class LocationResolver:
    def __init__(
        self,
        provider: GeolocationProvider | None,
        *,
        options: PositionOptions | None = None,
        cache: PositionCache | None = None,
    ):
        self._provider = provider
        self._options = options or PositionOptions()
        self._cache = cache or PositionCache()

    @property
    def options(self) -> PositionOptions:
        return self._options

    async def _read_position(self) -> Coordinate:
        if self._provider is None:
            raise LocationUnsupportedError()

        cached = self._cache.get(self._options.maximum_age_seconds)
        if cached is not None:
            logger.debug("Serving cached position lat=%.4f lng=%.4f", cached.lat, cached.lng)
            return Coordinate(lat=cached.lat, lng=cached.lng)

        try:
            position = await asyncio.wait_for(
                self._provider.get_current_position(self._options),
                timeout=self._options.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LocationTimeoutError() from e
        except PositionError as e:
            raise error_from_position_error(e) from e
        except Exception as e:
            # Anything else a provider throws still ends as one of the five kinds.
            raise LocationUnknownError(str(e) or type(e).__name__) from e

        self._cache.put(position)
        logger.debug("Location success lat=%.4f lng=%.4f", position.lat, position.lng)
        return Coordinate(lat=position.lat, lng=position.lng)

    async def resolve(self) -> Coordinate:
        try:
            return await self._read_position()
        except LocationError as e:
            logger.warning("Geolocation error (%s): %s", e.kind, e.message)
            raise


def build_resolver(settings: Settings | None = None, *, ip: str | None = None) -> LocationResolver:
    settings = settings or get_settings()
    return LocationResolver(build_provider(settings, ip=ip), options=options_from_settings(settings))


async def get_user_location(resolver: LocationResolver | None = None) -> Coordinate:
    """Resolve the current client's coordinate with the configured provider."""
    return await (resolver or build_resolver()).resolve()
