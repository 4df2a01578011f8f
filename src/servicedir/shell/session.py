"""
Client-side directory session.

Holds the state a browsing client keeps between renders: the detected user
coordinate (if any) and whether detection has been attempted. Results are always
recomputed from a fresh snapshot; the query engine itself remembers nothing.

Location detection follows a guard pattern: once the session is closed, a
detection that finishes late is discarded and changes nothing.
"""

from __future__ import annotations

import logging
from typing import Sequence

from servicedir.domain.models import Coordinate, Listing, QueryCriteria
from servicedir.location.errors import LocationError
from servicedir.location.resolver import LocationResolver
from servicedir.query.engine import query_listings

logger = logging.getLogger(__name__)


class DirectorySession:
    def __init__(self, resolver: LocationResolver):
        self._resolver = resolver
        self._closed = False
        self.user_location: Coordinate | None = None
        self.location_error: LocationError | None = None
        self.has_checked_location = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def detect_location(self) -> Coordinate | None:
        """Ask the resolver once; failures leave the session without a location."""
        if self.has_checked_location or self._closed:
            return self.user_location

        location: Coordinate | None = None
        error: LocationError | None = None
        try:
            location = await self._resolver.resolve()
        except LocationError as e:
            logger.info("Could not get user location: %s", e)
            error = e

        if self._closed:
            logger.debug("Session closed while resolving location; discarding result")
            return None

        self.user_location = location
        self.location_error = error
        self.has_checked_location = True
        return location

    def set_location(self, location: Coordinate | None) -> None:
        """Replace the coordinate (e.g. a pin dropped on the map)."""
        if self._closed:
            return
        self.user_location = location
        self.has_checked_location = True

    def criteria(self, criteria: QueryCriteria | None = None) -> QueryCriteria:
        """Fill in the session's coordinate unless the caller supplied one."""
        criteria = criteria or QueryCriteria()
        if criteria.user_location is None and self.user_location is not None:
            return criteria.model_copy(update={"user_location": self.user_location})
        return criteria

    def results(self, source: Sequence[Listing], criteria: QueryCriteria | None = None) -> list[Listing]:
        return query_listings(source, self.criteria(criteria))
