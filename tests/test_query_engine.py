import math

import pytest

from servicedir.domain.models import Author, Coordinate, Listing, QueryCriteria
from servicedir.query import engine
from servicedir.query.engine import (
    annotate_distances,
    filter_by_category,
    filter_by_text,
    query_listings,
    sort_by_distance,
)


def _ids(listings):
    return [listing.id for listing in listings]


def test_category_location_and_distance_sort_end_to_end(abc_listings, user_location):
    criteria = QueryCriteria(category="surfing", user_location=user_location, max_distance=20, sort_by="distance")

    result = query_listings(abc_listings, criteria)

    assert _ids(result) == ["A"]
    assert result[0].distance == pytest.approx(10, abs=1e-6)


def test_text_query_keeps_source_order_without_location(abc_listings):
    result = query_listings(abc_listings, QueryCriteria(query="surf"))

    assert _ids(result) == ["A", "C"]
    assert all(r.distance is None for r in result)


def test_no_criteria_returns_the_whole_snapshot(abc_listings):
    assert _ids(query_listings(abc_listings)) == ["A", "B", "C"]
    assert _ids(query_listings(abc_listings, QueryCriteria(query="", category=""))) == ["A", "B", "C"]


def test_empty_source_and_no_match_are_empty_results(abc_listings):
    assert query_listings([], QueryCriteria(query="surf", sort_by="distance")) == []
    assert query_listings(abc_listings, QueryCriteria(query="kitesurfing")) == []


def test_text_filter_is_case_insensitive_and_checks_description(abc_listings):
    assert _ids(filter_by_text(abc_listings, "SURF")) == ["A", "C"]
    assert _ids(filter_by_text(abc_listings, "wood-fired")) == ["B"]


def test_author_matching_is_a_policy_option(abc_listings):
    assert filter_by_text(abc_listings, "pizzapete") == []
    assert _ids(filter_by_text(abc_listings, "pizzapete", policy="with_author")) == ["B"]
    assert _ids(filter_by_text(abc_listings, "sam nel", policy="with_author")) == ["A"]

    via_query = query_listings(abc_listings, QueryCriteria(query="Sam", text_match="with_author"))
    assert _ids(via_query) == ["A"]


def test_listings_without_title_or_description_do_not_break_text_filter():
    bare = Listing(id="x")
    assert filter_by_text([bare], "anything", policy="with_author") == []


def test_category_filter_is_exact_and_case_sensitive(abc_listings):
    assert _ids(filter_by_category(abc_listings, "surfing")) == ["A", "C"]
    assert filter_by_category(abc_listings, "Surfing") == []
    assert filter_by_category(abc_listings, "surf") == []


def test_annotation_keeps_unlocated_listings_with_null_distance(abc_listings, user_location):
    annotated = annotate_distances(abc_listings, user_location)

    assert _ids(annotated) == ["A", "B", "C"]
    assert annotated[0].distance == pytest.approx(10, abs=1e-6)
    assert annotated[1].distance is None
    assert annotated[2].distance == pytest.approx(50, abs=1e-6)


def test_query_never_mutates_the_source(abc_listings, user_location):
    query_listings(abc_listings, QueryCriteria(user_location=user_location, sort_by="distance", max_distance=30))

    assert all(listing.distance is None for listing in abc_listings)
    assert _ids(abc_listings) == ["A", "B", "C"]


def test_max_distance_without_location_is_a_no_op(abc_listings):
    assert engine.MAX_DISTANCE_WITHOUT_LOCATION_POLICY == "ignore"
    for criteria in [QueryCriteria(), QueryCriteria(category="surfing"), QueryCriteria(query="surf")]:
        with_max = criteria.model_copy(update={"max_distance": 1})
        assert _ids(query_listings(abc_listings, with_max)) == _ids(query_listings(abc_listings, criteria))


def test_max_distance_drops_listings_without_distance(abc_listings, user_location):
    assert engine.DROP_UNLOCATED_ON_MAX_DISTANCE is True

    result = query_listings(abc_listings, QueryCriteria(user_location=user_location, max_distance=1000))

    assert _ids(result) == ["A", "C"]


def test_max_distance_boundary_is_inclusive(abc_listings, user_location):
    exact = abc_listings[0].model_copy(update={"location": user_location})
    result = query_listings([exact], QueryCriteria(user_location=user_location, max_distance=0))
    assert _ids(result) == ["A"]


def test_nan_max_distance_is_treated_as_unset(abc_listings, user_location):
    result = query_listings(abc_listings, QueryCriteria(user_location=user_location, max_distance=math.nan))
    assert _ids(result) == ["A", "B", "C"]


def test_distance_sort_puts_unknown_distances_last_and_is_stable(abc_listings, user_location, north_of):
    near = Listing(id="N", title="Near", location=north_of(user_location, 1))
    broken = Listing(id="D", title="Broken pin", location=Coordinate(lat=math.nan, lng=24.9))
    source = [abc_listings[1], abc_listings[2], broken, near, abc_listings[0]]

    result = query_listings(source, QueryCriteria(user_location=user_location, sort_by="distance"))

    assert _ids(result) == ["N", "A", "C", "B", "D"]
    keys = [math.inf if r.distance is None else r.distance for r in result]
    assert all(x <= y for x, y in zip(keys, keys[1:]))
    assert engine.MISSING_DISTANCE_SORT_KEY == math.inf


def test_sort_by_distance_on_equal_distances_keeps_input_order():
    a = Listing(id="1", distance=5.0)
    b = Listing(id="2", distance=5.0)
    c = Listing(id="3", distance=None)
    assert _ids(sort_by_distance([c, a, b])) == ["1", "2", "3"]


def test_non_finite_listing_location_is_treated_as_missing(user_location):
    broken = Listing(id="D", location=Coordinate(lat=0.1, lng=math.inf))

    annotated = query_listings([broken], QueryCriteria(user_location=user_location))
    assert annotated[0].distance is None

    assert query_listings([broken], QueryCriteria(user_location=user_location, max_distance=100)) == []


@pytest.mark.parametrize("sort_by", ["date", "views", "rating", "", None])
def test_sort_keys_other_than_distance_keep_source_order(abc_listings, user_location, sort_by):
    reversed_source = list(reversed(abc_listings))

    result = query_listings(reversed_source, QueryCriteria(user_location=user_location, sort_by=sort_by))

    assert _ids(result) == ["C", "B", "A"]
    assert "date" in engine.UNSUPPORTED_SORT_KEYS and "views" in engine.UNSUPPORTED_SORT_KEYS


def test_distance_sort_without_location_keeps_source_order(abc_listings):
    result = query_listings(list(reversed(abc_listings)), QueryCriteria(sort_by="distance"))
    assert _ids(result) == ["C", "B", "A"]


@pytest.mark.parametrize(
    "bad_location",
    [Coordinate(lat=math.nan, lng=0), Coordinate(lat=0, lng=math.inf), Coordinate(lat=-math.inf, lng=math.nan)],
)
def test_invalid_user_location_skips_all_distance_steps(abc_listings, bad_location):
    criteria = QueryCriteria(user_location=bad_location, max_distance=1, sort_by="distance")

    result = query_listings(abc_listings, criteria)

    assert _ids(result) == ["A", "B", "C"]
    assert all(r.distance is None for r in result)


@pytest.mark.parametrize(
    "criteria",
    [
        QueryCriteria(query="surf"),
        QueryCriteria(category="surfing", max_distance=20),
        QueryCriteria(user_location=Coordinate(lat=0, lng=0), max_distance=30, sort_by="distance"),
        QueryCriteria(query="a", user_location=Coordinate(lat=0, lng=0), sort_by="distance"),
    ],
)
def test_reapplying_the_same_criteria_is_idempotent(abc_listings, criteria):
    once = query_listings(abc_listings, criteria)
    twice = query_listings(once, criteria)

    assert _ids(twice) == _ids(once)
    assert [r.distance for r in twice] == [r.distance for r in once]


def test_filter_steps_commute(abc_listings):
    text_then_category = filter_by_category(filter_by_text(abc_listings, "surf"), "surfing")
    category_then_text = filter_by_text(filter_by_category(abc_listings, "surfing"), "surf")
    assert _ids(text_then_category) == _ids(category_then_text)


def test_listing_with_stale_distance_is_reannotated(abc_listings, user_location):
    stale = abc_listings[0].model_copy(update={"distance": 999.0})
    result = query_listings([stale], QueryCriteria(user_location=user_location))
    assert result[0].distance == pytest.approx(10, abs=1e-6)


def test_author_match_requires_author_data():
    listing = Listing(id="x", title="Tours", author=Author(id="u", name=None, username=None))
    assert filter_by_text([listing], "guide", policy="with_author") == []
