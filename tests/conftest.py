from __future__ import annotations

import json
import math

import pytest

from servicedir.domain.models import Author, Coordinate, Listing
from servicedir.store.json_store import JsonListingStore

KM_PER_DEGREE_LAT = 2 * math.pi * 6371 / 360


def _north_of(origin: Coordinate, km: float) -> Coordinate:
    return Coordinate(lat=origin.lat + km / KM_PER_DEGREE_LAT, lng=origin.lng)


@pytest.fixture
def north_of():
    return _north_of


@pytest.fixture
def user_location() -> Coordinate:
    return Coordinate(lat=0.0, lng=0.0)


@pytest.fixture
def abc_listings(user_location: Coordinate) -> list[Listing]:
    """A: surfing 10km away, B: food without location, C: surfing 50km away."""
    return [
        Listing(
            id="A",
            title="Surf Lessons",
            description="Learn to ride the point",
            category="surfing",
            location=_north_of(user_location, 10),
            author=Author(id="u1", name="Sam Nel", username="samnel"),
        ),
        Listing(
            id="B",
            title="Pizza",
            description="Wood-fired, delivered",
            category="food",
            author=Author(id="u2", name="Pieter V", username="pizzapete"),
        ),
        Listing(
            id="C",
            title="Surf Camp",
            description="A week of waves",
            category="surfing",
            location=_north_of(user_location, 50),
        ),
    ]


@pytest.fixture
def listing_store(tmp_path, abc_listings) -> JsonListingStore:
    path = tmp_path / "services.json"
    path.write_text(json.dumps({"services": [l.to_record() for l in abc_listings]}), encoding="utf-8")
    return JsonListingStore(path)
