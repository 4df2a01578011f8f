"""
Browse facets derived from a listing snapshot.

- category pills (unique categories + counts, in a configured display order)
- map markers (listings that have a usable location)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from servicedir.core.geo import is_valid_coordinate
from servicedir.domain.models import CATEGORY_ORDER, Listing, MapService

ALL_CATEGORIES = "all"


@dataclass(frozen=True)
class CategoryCount:
    name: str
    count: int


def _order_key(category: str, order: Sequence[str]) -> tuple[int, int, str]:
    # Known categories first (by configured position), then the rest alphabetically.
    if category in order:
        return (0, order.index(category), "")
    return (1, 0, category)


def category_counts(listings: Iterable[Listing], order: Sequence[str] = CATEGORY_ORDER) -> list[CategoryCount]:
    counts: dict[str, int] = {}
    for listing in listings:
        if listing.category:
            counts[listing.category] = counts.get(listing.category, 0) + 1
    names = sorted(counts, key=lambda c: _order_key(c, order))
    return [CategoryCount(name=n, count=counts[n]) for n in names]


def to_map_points(listings: Iterable[Listing], *, category: str | None = None) -> list[MapService]:
    """Build map markers, optionally restricted to one category (`"all"` means none)."""
    out: list[MapService] = []
    for listing in listings:
        if not is_valid_coordinate(listing.location):
            continue
        if category and category != ALL_CATEGORIES and listing.category != category:
            continue
        out.append(
            MapService(
                id=listing.id,
                title=listing.title or None,
                category=listing.category or None,
                location=listing.location,
                price_range=listing.price_range,
                author=listing.author,
            )
        )
    return out
