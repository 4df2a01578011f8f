import asyncio

import pytest

from servicedir.domain.models import Coordinate, QueryCriteria
from servicedir.location.errors import PositionError
from servicedir.location.providers import DeniedGeolocationProvider, Position, StaticGeolocationProvider
from servicedir.location.resolver import LocationResolver
from servicedir.shell.session import DirectorySession


class GatedProvider:
    """Holds the position until the test opens the gate."""

    def __init__(self, position: Position):
        self.gate = asyncio.Event()
        self.position = position
        self.calls = 0

    async def get_current_position(self, options):
        self.calls += 1
        await self.gate.wait()
        return self.position


def test_detected_location_annotates_results(abc_listings, user_location):
    session = DirectorySession(LocationResolver(StaticGeolocationProvider(user_location.lat, user_location.lng)))

    assert asyncio.run(session.detect_location()) == user_location
    assert session.has_checked_location

    result = session.results(abc_listings, QueryCriteria(sort_by="distance", max_distance=20))
    assert [r.id for r in result] == ["A"]
    assert result[0].distance == pytest.approx(10, abs=1e-6)


def test_location_failure_leaves_session_without_location(abc_listings):
    session = DirectorySession(LocationResolver(DeniedGeolocationProvider()))

    assert asyncio.run(session.detect_location()) is None
    assert session.has_checked_location
    assert session.location_error is not None
    assert session.location_error.kind == "permission_denied"

    result = session.results(abc_listings, QueryCriteria(category="surfing", max_distance=5))
    assert [r.id for r in result] == ["A", "C"]


def test_detection_runs_once_per_session():
    provider = GatedProvider(Position(lat=1, lng=2))
    provider.gate.set()
    session = DirectorySession(LocationResolver(provider, cache=None))

    async def twice():
        await session.detect_location()
        return await session.detect_location()

    assert asyncio.run(twice()) == Coordinate(lat=1, lng=2)
    assert provider.calls == 1


def test_late_result_after_close_is_discarded():
    provider = GatedProvider(Position(lat=1, lng=2))
    session = DirectorySession(LocationResolver(provider))

    async def scenario():
        task = asyncio.create_task(session.detect_location())
        await asyncio.sleep(0)
        session.close()
        provider.gate.set()
        return await task

    assert asyncio.run(scenario()) is None
    assert session.user_location is None
    assert session.has_checked_location is False


def test_late_failure_after_close_is_discarded():
    class SlowFailure:
        async def get_current_position(self, options):
            await asyncio.sleep(0.01)
            raise PositionError(1)

    session = DirectorySession(LocationResolver(SlowFailure()))

    async def scenario():
        task = asyncio.create_task(session.detect_location())
        await asyncio.sleep(0)
        session.close()
        return await task

    assert asyncio.run(scenario()) is None
    assert session.location_error is None


def test_explicit_criteria_location_wins_over_session(abc_listings, user_location, north_of):
    session = DirectorySession(LocationResolver(None))
    session.set_location(north_of(user_location, 50))

    at_c = session.results(abc_listings, QueryCriteria(category="surfing", sort_by="distance"))
    assert [r.id for r in at_c] == ["C", "A"]

    at_user = session.results(abc_listings, QueryCriteria(user_location=user_location, sort_by="distance"))
    assert [r.id for r in at_user] == ["A", "C", "B"]


def test_location_change_reissues_query(abc_listings, user_location, north_of):
    session = DirectorySession(LocationResolver(None))
    assert all(r.distance is None for r in session.results(abc_listings))

    session.set_location(user_location)
    first = session.results(abc_listings)
    session.set_location(north_of(user_location, 10))
    second = session.results(abc_listings)

    assert first[0].distance == pytest.approx(10, abs=1e-6)
    assert second[0].distance == pytest.approx(0, abs=1e-6)


def test_unexpected_provider_failure_stays_inside_the_session(abc_listings):
    class BrokenProvider:
        async def get_current_position(self, options):
            raise OSError("device gone")

    session = DirectorySession(LocationResolver(BrokenProvider()))

    assert asyncio.run(session.detect_location()) is None
    assert session.has_checked_location
    assert session.location_error.kind == "unknown"
    assert "device gone" in session.location_error.message
    assert [r.id for r in session.results(abc_listings)] == ["A", "B", "C"]
