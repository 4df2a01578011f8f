from __future__ import annotations

# Listing query engine.
#
# One query is a fixed pipeline over a borrowed snapshot of listings:
#   1. text filter      (title/description, optionally author name/username)
#   2. category filter  (exact, case-sensitive)
#   3. distance annotation (only with a valid user coordinate)
#   4. max-distance filter (only after step 3)
#   5. distance sort       (only after step 3)
#
# Steps 1 and 2 commute; 3 must precede 4 and 5. The engine is pure: it never
# mutates the input listings (annotation goes through `model_copy`) and keeps
# no state between calls.

import logging
import math
from typing import Iterable, Sequence

from servicedir.core.geo import calculate_distance, is_valid_coordinate
from servicedir.domain.models import Coordinate, Listing, QueryCriteria, TextMatch

logger = logging.getLogger(__name__)

SORT_BY_DISTANCE = "distance"
# Advertised by the criteria type but without a defined ordering; they leave order unchanged.
UNSUPPORTED_SORT_KEYS = frozenset({"date", "views"})

TEXT_MATCH_TITLE_DESCRIPTION: TextMatch = "title_description"
TEXT_MATCH_WITH_AUTHOR: TextMatch = "with_author"

# `max_distance` given without a usable user coordinate: skip the filter.
MAX_DISTANCE_WITHOUT_LOCATION_POLICY = "ignore"
# With a max distance in force, listings whose distance is unknown are dropped.
DROP_UNLOCATED_ON_MAX_DISTANCE = True
# Unknown distances sort after every known one.
MISSING_DISTANCE_SORT_KEY = math.inf


def _contains(haystack: str | None, needle: str) -> bool:
    return needle in (haystack or "").lower()


def filter_by_text(
    listings: Iterable[Listing], query: str, *, policy: TextMatch = TEXT_MATCH_TITLE_DESCRIPTION
) -> list[Listing]:
    """Keep listings whose title or description contains `query` (case-insensitive)."""
    needle = query.lower()
    include_author = policy == TEXT_MATCH_WITH_AUTHOR

    def matches(listing: Listing) -> bool:
        if _contains(listing.title, needle) or _contains(listing.description, needle):
            return True
        if include_author and listing.author is not None:
            return _contains(listing.author.name, needle) or _contains(listing.author.username, needle)
        return False

    return [listing for listing in listings if matches(listing)]


def filter_by_category(listings: Iterable[Listing], category: str) -> list[Listing]:
    return [listing for listing in listings if listing.category == category]


def distance_to(listing: Listing, origin: Coordinate) -> float | None:
    """Distance in km from `origin`, or None when the listing has no usable location."""
    if not is_valid_coordinate(listing.location):
        return None
    return calculate_distance(origin, listing.location)


def annotate_distances(listings: Iterable[Listing], origin: Coordinate) -> list[Listing]:
    """Return copies of `listings` carrying `distance` relative to `origin`. Drops nothing."""
    return [listing.model_copy(update={"distance": distance_to(listing, origin)}) for listing in listings]


def filter_by_max_distance(listings: Iterable[Listing], max_distance: float) -> list[Listing]:
    out: list[Listing] = []
    for listing in listings:
        if listing.distance is None:
            if DROP_UNLOCATED_ON_MAX_DISTANCE:
                continue
            out.append(listing)
            continue
        if listing.distance <= max_distance:
            out.append(listing)
    return out


def _distance_sort_key(listing: Listing) -> float:
    return MISSING_DISTANCE_SORT_KEY if listing.distance is None else listing.distance


def sort_by_distance(listings: Iterable[Listing]) -> list[Listing]:
    """Stable ascending sort by `distance`; unknown distances go last."""
    return sorted(listings, key=_distance_sort_key)


def _has_max_distance(value: float | None) -> bool:
    return value is not None and not math.isnan(value)


def query_listings(source: Sequence[Listing], criteria: QueryCriteria | None = None) -> list[Listing]:
    """Filter, annotate and order `source` according to `criteria`.

    Never raises for well-typed input: malformed coordinates, unknown sort keys and
    empty strings all degrade to the corresponding step being skipped.
    """
    criteria = criteria or QueryCriteria()
    listings = list(source)

    if criteria.query:
        listings = filter_by_text(listings, criteria.query, policy=criteria.text_match)

    if criteria.category:
        listings = filter_by_category(listings, criteria.category)

    origin = criteria.user_location
    if not is_valid_coordinate(origin):
        if _has_max_distance(criteria.max_distance):
            logger.debug(
                "max_distance=%s without a valid user location (policy=%s)",
                criteria.max_distance,
                MAX_DISTANCE_WITHOUT_LOCATION_POLICY,
            )
        return listings

    listings = annotate_distances(listings, origin)

    if _has_max_distance(criteria.max_distance):
        listings = filter_by_max_distance(listings, criteria.max_distance)

    if criteria.sort_by == SORT_BY_DISTANCE:
        listings = sort_by_distance(listings)
    elif criteria.sort_by in UNSUPPORTED_SORT_KEYS:
        logger.debug("sort_by=%s has no ordering; keeping source order", criteria.sort_by)

    return listings
