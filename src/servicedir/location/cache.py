"""
In-memory cache for the last position reading.

Mirrors the platform "maximum age" policy: a reading younger than the allowed age may
be served instead of a fresh one. The clock is injectable so tests can move time.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from servicedir.location.providers import Position


@dataclass(frozen=True)
class CachedPosition:
    stored_at: float
    position: Position


class PositionCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entry: CachedPosition | None = None

    def get(self, maximum_age_seconds: float) -> Position | None:
        """Return the cached reading if it is at most `maximum_age_seconds` old."""
        if self._entry is None or maximum_age_seconds <= 0:
            return None
        age = self._clock() - self._entry.stored_at
        if age > maximum_age_seconds:
            return None
        return self._entry.position

    def put(self, position: Position) -> None:
        self._entry = CachedPosition(stored_at=self._clock(), position=position)

    def clear(self) -> None:
        self._entry = None
