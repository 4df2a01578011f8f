"""
Domain models (Pydantic).

These types represent the stable "contract" between layers:
- store records (`Listing`, as persisted in `services.json`)
- submission payloads (`ListingCreate`)
- query inputs (`QueryCriteria`) and map output (`MapService`)

Field names are snake_case in Python; the JSON aliases (`_id`, `_createdAt`,
`priceRange`, ...) match the on-disk file and the HTTP payloads.
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Literal

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, TypeAdapter, field_validator

CATEGORIES = (
    "accommodation",
    "surfing",
    "tours",
    "food",
    "transport",
    "home",
    "beauty",
    "events",
    "other",
)

# Display order of the category pills.
CATEGORY_ORDER = (
    "accommodation",
    "surfing",
    "tours",
    "food",
    "transport",
    "beauty",
    "events",
    "home",
    "other",
)

PRICE_RANGES = ("free", "budget", "moderate", "premium", "luxury", "quote")
CONTACT_METHODS = ("phone", "whatsapp", "email", "person")

Category = Literal["accommodation", "surfing", "tours", "food", "transport", "home", "beauty", "events", "other"]
PriceRange = Literal["free", "budget", "moderate", "premium", "luxury", "quote"]
ContactMethod = Literal["phone", "whatsapp", "email", "person"]
TextMatch = Literal["title_description", "with_author"]
SortKey = Literal["distance", "date", "views"]

DEFAULT_SERVICE_RADIUS_KM = 5
MIN_SERVICE_RADIUS_KM = 1
MAX_SERVICE_RADIUS_KM = 50

_URL_ADAPTER = TypeAdapter(AnyHttpUrl)


class Coordinate(BaseModel):
    """A latitude/longitude pair in decimal degrees (no range enforced)."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class Slug(BaseModel):
    current: str


class Author(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str | None = None
    username: str | None = None
    image: str | None = None
    bio: str | None = None


class Listing(BaseModel):
    """A service record in the directory.

    `distance` (km) is a per-query annotation relative to a caller's coordinate;
    the store never persists it.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    created_at: datetime | None = Field(default=None, alias="_createdAt")
    slug: Slug | None = None
    title: str | None = None
    description: str | None = None
    category: str | None = None
    image: str | None = None
    pitch: str | None = None
    price_range: str | None = Field(default=None, alias="priceRange")
    contact_method: str | None = Field(default=None, alias="contactMethod")
    contact_details: str | None = Field(default=None, alias="contactDetails")
    service_radius: float | None = Field(default=None, alias="serviceRadius")
    availability: list[str] = Field(default_factory=list)
    author: Author | None = None
    location: Coordinate | None = None
    views: int = 0
    is_active: bool = Field(default=True, alias="isActive")
    featured: bool = False
    distance: float | None = None

    def to_record(self) -> dict[str, Any]:
        """Serialize for the JSON store (aliases, no transient fields)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"distance"}, exclude_none=True)


class MapService(BaseModel):
    """Map marker payload; only built for listings that have a location."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    title: str | None = None
    category: str | None = None
    location: Coordinate
    price_range: str | None = Field(default=None, alias="priceRange")
    author: Author | None = None


class QueryCriteria(BaseModel):
    """Filter/sort parameters for one query. Never persisted."""

    query: str | None = None
    category: str | None = None
    user_location: Coordinate | None = None
    max_distance: float | None = None
    # Documented keys are `SortKey`; anything else is accepted and ignored.
    sort_by: str | None = None
    text_match: TextMatch = "title_description"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ListingCreate(BaseModel):
    """Submission payload for a new listing (the service form)."""

    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=20, max_length=500)
    category: Category
    link: str | None = None
    pitch: str = Field(..., min_length=10)
    price_range: PriceRange | None = Field(default=None, alias="priceRange")
    contact_method: ContactMethod | None = Field(default=None, alias="contactMethod")
    contact_details: str | None = Field(default=None, alias="contactDetails")
    service_radius: int = Field(default=DEFAULT_SERVICE_RADIUS_KM, alias="serviceRadius")
    availability: list[str] = Field(default_factory=list)
    location: Coordinate
    author: Author | None = None

    @field_validator("price_range", "contact_method", "contact_details", "link", mode="before")
    @classmethod
    def _empty_is_absent(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("link")
    @classmethod
    def _validate_link(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            _URL_ADAPTER.validate_python(value)
        except ValueError as e:
            raise ValueError("Please enter a valid URL") from e
        return value

    @field_validator("service_radius", mode="before")
    @classmethod
    def _parse_radius(cls, value: Any) -> int:
        # Unparsable or out-of-range input falls back to the default radius.
        if value is None:
            return DEFAULT_SERVICE_RADIUS_KM
        match = re.match(r"\s*([+-]?\d+)", str(value))
        if not match:
            return DEFAULT_SERVICE_RADIUS_KM
        radius = int(match.group(1))
        if radius < MIN_SERVICE_RADIUS_KM or radius > MAX_SERVICE_RADIUS_KM:
            return DEFAULT_SERVICE_RADIUS_KM
        return radius

    @field_validator("location")
    @classmethod
    def _validate_location(cls, value: Coordinate) -> Coordinate:
        if not (math.isfinite(value.lat) and math.isfinite(value.lng)):
            raise ValueError("location must have finite coordinates")
        if not -90 <= value.lat <= 90:
            raise ValueError("location.lat must be within [-90, 90]")
        if not -180 <= value.lng <= 180:
            raise ValueError("location.lng must be within [-180, 180]")
        return value

    def slug(self) -> str:
        return re.sub(r"\s+", "-", self.title.lower())
