"""
API routes.

Endpoints:
- GET   `/api/services`: search/filter/distance-rank the directory.
- GET   `/api/services/{id}`: one listing (with counted views).
- PATCH `/api/services/{id}`: count a view.
- POST  `/api/services/create`: submit a new listing.
- GET   `/api/categories`: category pills with counts.
- GET   `/api/map/services`: map markers.
- GET   `/api/location`: server-side location lookup for the requesting client.
"""

from __future__ import annotations

import ipaddress
import logging
import math
from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from servicedir.config.settings import get_settings
from servicedir.core.env import resolve_project_path
from servicedir.core.kvstore import JsonFileKeyValueStore
from servicedir.domain.models import Coordinate, Listing, ListingCreate, MapService, QueryCriteria
from servicedir.location.errors import LocationError
from servicedir.location.resolver import LocationResolver, build_resolver
from servicedir.query.engine import query_listings
from servicedir.query.facets import category_counts, to_map_points
from servicedir.store.json_store import JsonListingStore, ListingStoreError
from servicedir.store.views import ViewCounter

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache
def _store() -> JsonListingStore:
    settings = get_settings()
    return JsonListingStore(resolve_project_path(settings.store.path))


@lru_cache
def _view_counter() -> ViewCounter:
    settings = get_settings()
    return ViewCounter(JsonFileKeyValueStore(resolve_project_path(settings.store.views_path)))


@lru_cache(maxsize=1024)
def _resolver(client_ip: str | None) -> LocationResolver:
    """One resolver, and so one position cache, per client address."""
    return build_resolver(get_settings(), ip=client_ip)


def _client_ip(request: Request) -> str | None:
    """Address to look up for the caller; None means the lookup service sees our own."""
    host = request.client.host if request.client else None
    try:
        address = ipaddress.ip_address(host or "")
    except ValueError:
        return None
    return None if address.is_loopback or address.is_unspecified else str(address)


def _parse_number(value: str | None) -> float | None:
    """Lenient number parsing for query strings: blank or unparsable means absent."""
    if value is None or not value.strip():
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/api/services", response_model=list[Listing])
def get_services(
    query: str | None = None,
    category: str | None = None,
    lat: str | None = None,
    lng: str | None = None,
    max_distance: str | None = Query(default=None, alias="maxDistance"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    text_match: str | None = Query(default=None, alias="textMatch"),
) -> list[Listing]:
    """Return listings matching the query, optionally annotated/filtered/sorted by distance."""
    settings = get_settings()
    lat_f = _parse_number(lat)
    lng_f = _parse_number(lng)
    user_location = Coordinate(lat=lat_f, lng=lng_f) if lat_f is not None and lng_f is not None else None

    criteria = QueryCriteria(
        query=query,
        category=category,
        user_location=user_location,
        max_distance=_parse_number(max_distance),
        sort_by=sort_by,
        text_match=(
            text_match if text_match in ("title_description", "with_author") else settings.query.default_text_match
        ),
    )
    return query_listings(_store().list_all(), criteria)


@router.get("/api/services/create", include_in_schema=False)
def get_create_not_allowed() -> JSONResponse:
    return _error(405, "Method not allowed. Use POST to create services.")


@router.post("/api/services/create", status_code=201, response_model=Listing)
def post_create_service(submission: ListingCreate) -> Any:
    """Validate and persist a new listing."""
    try:
        return _store().append(submission)
    except ListingStoreError:
        logger.exception("Error creating service")
        return _error(500, "Failed to create service")


@router.get("/api/services/{service_id}", response_model=Listing)
def get_service(service_id: str) -> Any:
    listing = _store().get(service_id)
    if listing is None:
        return _error(404, "Service not found")
    views = listing.views + _view_counter().get(listing.id)
    return listing.model_copy(update={"views": views})


@router.patch("/api/services/{service_id}")
def patch_service_view(service_id: str) -> Any:
    """Count one view of a listing."""
    if _store().get(service_id) is None:
        return _error(404, "Service not found")
    views = _view_counter().increment(service_id)
    return {"success": True, "views": views}


@router.get("/api/categories")
def get_categories() -> dict:
    settings = get_settings()
    listings = _store().list_all()
    counts = category_counts(listings, order=settings.query.category_order)
    return {
        "total": len(listings),
        "categories": [{"name": c.name, "count": c.count} for c in counts],
    }


@router.get("/api/map/services", response_model=list[MapService])
def get_map_services(category: str | None = None) -> list[MapService]:
    return to_map_points(_store().list_all(), category=category)


@router.get("/api/location")
async def get_location(request: Request) -> dict:
    """Resolve a coordinate for the caller; failures come back as data, not HTTP errors."""
    client_ip = _client_ip(request)
    try:
        location = await _resolver(client_ip).resolve()
    except LocationError as e:
        logger.info("No location for client %s: %s", client_ip or "local", e.kind)
        return {"location": None, "error": e.as_dict()}
    return {"location": location.model_dump(), "error": None}
