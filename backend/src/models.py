"""Data models for the Lumen workspace directory."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, List, Tuple

from utils import to_float


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not is_valid_lat_lon(self.lat, self.lon):
            raise ValueError(f"invalid coordinate lat={self.lat!r} lon={self.lon!r}")


def is_valid_lat_lon(lat: float, lon: float) -> bool:
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def coordinate_from_fields(lat: Any, lon: Any) -> Optional[Coordinate]:
    """Build a Coordinate from two nullable fields.

    Returns None when either side is missing, not a number, NaN/inf or out of
    range, so a half-filled row never yields a partial coordinate.
    """
    flat = to_float(lat)
    flon = to_float(lon)
    if flat is None or flon is None:
        return None
    if not is_valid_lat_lon(flat, flon):
        return None
    return Coordinate(lat=flat, lon=flon)


class OriginStatus(str, Enum):
    PRESENT = "present"
    UNAVAILABLE = "unavailable"
    DENIED = "denied"


@dataclass(frozen=True)
class Origin:
    """The user's position, or the reason it is missing."""

    status: OriginStatus
    coordinate: Optional[Coordinate] = None

    @classmethod
    def at(cls, lat: float, lon: float) -> "Origin":
        return cls(status=OriginStatus.PRESENT, coordinate=Coordinate(lat=lat, lon=lon))

    @classmethod
    def unavailable(cls) -> "Origin":
        return cls(status=OriginStatus.UNAVAILABLE)

    @classmethod
    def denied(cls) -> "Origin":
        return cls(status=OriginStatus.DENIED)

    @property
    def is_present(self) -> bool:
        return self.status is OriginStatus.PRESENT and self.coordinate is not None


@dataclass(frozen=True)
class BoundingBox:
    """Latitude/longitude ranges, inclusive.

    When the box crosses the ±180° meridian min_lon is greater than max_lon
    and the longitude range wraps: [min_lon, 180] plus [-180, max_lon].
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lon > self.max_lon

    def lon_ranges(self) -> List[Tuple[float, float]]:
        if self.crosses_antimeridian:
            return [(self.min_lon, 180.0), (-180.0, self.max_lon)]
        return [(self.min_lon, self.max_lon)]

    def contains(self, coordinate: Coordinate) -> bool:
        if not self.min_lat <= coordinate.lat <= self.max_lat:
            return False
        return any(lo <= coordinate.lon <= hi for lo, hi in self.lon_ranges())


@dataclass
class Venue:
    id: str
    name: str
    coordinate: Optional[Coordinate] = None
    visited: bool = False
    slug: Optional[str] = None
    city_slug: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None
    overall_rating: Optional[float] = None


@dataclass
class SearchRequest:
    origin: Coordinate
    radius_km: float
    exclude_ids: frozenset = field(default_factory=frozenset)
    max_results: int = 4


@dataclass
class RankedVenue:
    venue: Venue
    distance_km: float


class NearbyStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    ORIGIN_UNAVAILABLE = "origin_unavailable"
    ORIGIN_DENIED = "origin_denied"


@dataclass
class NearbyOutcome:
    status: NearbyStatus
    radius_km: float
    entries: List[RankedVenue] = field(default_factory=list)
    candidates_considered: int = 0


@dataclass
class City:
    id: str
    name: str
    slug: str
    country: str
    workspace_count: Optional[int] = None
    description: Optional[str] = None


@dataclass
class CountryGroup:
    name: str
    cities: list[City] = field(default_factory=list)


@dataclass
class Workspace:
    id: str
    name: str
    slug: str
    type: str
    short_description: Optional[str] = None
    address: Optional[str] = None
    has_wifi: bool = False
    has_power_outlets: bool = False
    has_coffee: bool = False
    overall_rating: Optional[float] = None
    total_reviews: int = 0
    primary_photo_url: Optional[str] = None
    coordinate: Optional[Coordinate] = None


@dataclass
class WorkspaceDetail(Workspace):
    description: Optional[str] = None
    wifi_speed: Optional[str] = None
    noise_level: Optional[str] = None
    best_time_to_visit: Optional[str] = None
    atmosphere_rating: Optional[float] = None
    productivity_rating: Optional[float] = None
    comfort_rating: Optional[float] = None
    service_rating: Optional[float] = None
    price_range: Optional[str] = None
    power_outlet_availability: Optional[int] = None
    seating_capacity: Optional[int] = None
    has_food: bool = False
    has_natural_light: bool = False
    has_air_conditioning: bool = False
    has_parking: bool = False
    has_bike_parking: bool = False
    is_accessible: bool = False
    allows_pets: bool = False
    website: Optional[str] = None
    phone: Optional[str] = None
    time_limit_hours: Optional[float] = None
    minimum_purchase_required: bool = False
    good_for_meetings: bool = False
    good_for_calls: bool = False


@dataclass
class Review:
    id: str
    user_id: str
    rating: int
    comment: Optional[str]
    created_at: str


@dataclass
class ProfileSummary:
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    tag: Optional[str] = None
    bio: Optional[str] = None


@dataclass
class ReviewThread:
    reviews: List[Review] = field(default_factory=list)
    profiles_by_id: Dict[str, ProfileSummary] = field(default_factory=dict)
