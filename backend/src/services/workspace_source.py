from __future__ import annotations

from typing import Any, Dict, List, Optional, Set, Tuple

from loguru import logger

from models import (
    City,
    Coordinate,
    ProfileSummary,
    Review,
    ReviewThread,
    Venue,
    Workspace,
    WorkspaceDetail,
    coordinate_from_fields,
)
from services.bbox_builder import expand_bbox_from_center
from services.supabase import SupabaseClient
from utils import to_float


APPROVED = ("status", "eq", "approved")

NEARBY_COLUMNS = "id,name,slug,type,address,latitude,longitude,overall_rating,cities(slug)"
LISTING_COLUMNS = (
    "id,name,slug,type,short_description,address,"
    "has_wifi,has_power_outlets,has_coffee,"
    "overall_rating,total_reviews,latitude,longitude,"
    "workspace_photos!workspace_id(url)"
)


def _city_slug(row: Dict[str, Any]) -> Optional[str]:
    city = row.get("cities")
    if isinstance(city, dict):
        return city.get("slug") or None
    return None


def row_to_venue(row: Dict[str, Any], visited_ids: Optional[Set[str]] = None) -> Venue:
    venue_id = str(row.get("id"))
    return Venue(
        id=venue_id,
        name=str(row.get("name") or "Workspace"),
        coordinate=coordinate_from_fields(row.get("latitude"), row.get("longitude")),
        visited=bool(visited_ids and venue_id in visited_ids),
        slug=row.get("slug") or None,
        city_slug=_city_slug(row),
        address=row.get("address") or None,
        type=row.get("type") or None,
        overall_rating=to_float(row.get("overall_rating")),
    )


def row_to_workspace(row: Dict[str, Any]) -> Workspace:
    photos = row.get("workspace_photos") or []
    primary = photos[0].get("url") if photos and isinstance(photos[0], dict) else None
    return Workspace(
        id=str(row.get("id")),
        name=str(row.get("name") or ""),
        slug=str(row.get("slug") or ""),
        type=str(row.get("type") or ""),
        short_description=row.get("short_description"),
        address=row.get("address"),
        has_wifi=bool(row.get("has_wifi")),
        has_power_outlets=bool(row.get("has_power_outlets")),
        has_coffee=bool(row.get("has_coffee")),
        overall_rating=to_float(row.get("overall_rating")),
        total_reviews=int(row.get("total_reviews") or 0),
        primary_photo_url=primary,
        coordinate=coordinate_from_fields(row.get("latitude"), row.get("longitude")),
    )


def fetch_nearby_candidates(
    client: SupabaseClient,
    origin: Coordinate,
    radius_km: float,
) -> List[Venue]:
    """Approved workspaces inside the search box around origin.

    The bounding box is pushed down as range predicates so only rows that can
    possibly be within radius_km are transferred. No row limit is sent: the
    query is unordered, so a cap could drop the nearest rows. When the box
    wraps across the ±180° meridian only the latitude range is pushed down and
    ranking applies the longitude ranges.
    """
    bbox = expand_bbox_from_center(origin, radius_km)
    filters = [
        APPROVED,
        ("latitude", "gte", bbox.min_lat),
        ("latitude", "lte", bbox.max_lat),
    ]
    if not bbox.crosses_antimeridian:
        filters += [
            ("longitude", "gte", bbox.min_lon),
            ("longitude", "lte", bbox.max_lon),
        ]
    rows = client.select("workspaces", columns=NEARBY_COLUMNS, filters=filters)
    venues = [row_to_venue(row) for row in rows]
    logger.debug("nearby candidates fetched={} radius_km={}", len(venues), radius_km)
    return venues


def fetch_visited_ids(client: SupabaseClient, user_id: str) -> Set[str]:
    if not user_id:
        return set()
    rows = client.select(
        "visited_workspaces",
        columns="workspace_id",
        filters=[("user_id", "eq", user_id)],
    )
    return {str(row["workspace_id"]) for row in rows if row.get("workspace_id") is not None}


def count_visited(client: SupabaseClient, user_id: str) -> int:
    return len(fetch_visited_ids(client, user_id))


def count_submitted(client: SupabaseClient, user_id: str) -> int:
    """Approved workspaces the user submitted."""
    if not user_id:
        return 0
    rows = client.select(
        "workspaces",
        columns="id",
        filters=[("submitted_by", "eq", user_id), APPROVED],
    )
    return len(rows)


def row_to_city(row: Dict[str, Any]) -> City:
    return City(
        id=str(row.get("id")),
        name=str(row.get("name") or ""),
        slug=str(row.get("slug") or ""),
        country=str(row.get("country") or ""),
        workspace_count=row.get("workspace_count"),
        description=row.get("description"),
    )


def list_cities(client: SupabaseClient) -> List[City]:
    rows = client.select(
        "cities",
        columns="id,name,slug,country,workspace_count,description",
        order=["country.asc", "name.asc"],
    )
    return [row_to_city(row) for row in rows]


def workspaces_by_city(client: SupabaseClient, city_slug: str) -> List[Workspace]:
    cities = client.select("cities", columns="id", filters=[("slug", "eq", city_slug)], limit=1)
    if not cities:
        return []
    rows = client.select(
        "workspaces",
        columns=LISTING_COLUMNS,
        filters=[("city_id", "eq", cities[0]["id"]), APPROVED],
        order=["name.asc"],
    )
    return [row_to_workspace(row) for row in rows]


# Workspace detail

_DETAIL_TEXT = ("description", "wifi_speed", "noise_level", "best_time_to_visit", "price_range", "website", "phone")
_DETAIL_RATINGS = ("atmosphere_rating", "productivity_rating", "comfort_rating", "service_rating", "time_limit_hours")
_DETAIL_COUNTS = ("power_outlet_availability", "seating_capacity")
_DETAIL_FLAGS = (
    "has_food",
    "has_natural_light",
    "has_air_conditioning",
    "has_parking",
    "has_bike_parking",
    "is_accessible",
    "allows_pets",
    "minimum_purchase_required",
    "good_for_meetings",
    "good_for_calls",
)


def _to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def row_to_workspace_detail(row: Dict[str, Any]) -> WorkspaceDetail:
    extra: Dict[str, Any] = {}
    extra.update({key: row.get(key) or None for key in _DETAIL_TEXT})
    extra.update({key: to_float(row.get(key)) for key in _DETAIL_RATINGS})
    extra.update({key: _to_int(row.get(key)) for key in _DETAIL_COUNTS})
    extra.update({key: bool(row.get(key)) for key in _DETAIL_FLAGS})
    return WorkspaceDetail(**row_to_workspace(row).__dict__, **extra)


def get_workspace_detail(
    client: SupabaseClient, city_slug: str, workspace_slug: str
) -> Tuple[Optional[City], Optional[WorkspaceDetail]]:
    """Resolve a city slug and a workspace slug to the approved workspace.

    Returns (None, None) for an unknown city and (city, None) when the city
    exists but has no approved workspace with that slug.
    """
    cities = client.select(
        "cities",
        columns="id,name,slug,country",
        filters=[("slug", "eq", city_slug)],
        limit=1,
    )
    if not cities:
        return None, None
    city = row_to_city(cities[0])
    rows = client.select(
        "workspaces",
        columns="*,workspace_photos!workspace_id(url)",
        filters=[("slug", "eq", workspace_slug), ("city_id", "eq", cities[0]["id"]), APPROVED],
        limit=1,
    )
    if not rows:
        return city, None
    return city, row_to_workspace_detail(rows[0])


# Reviews

MIN_RATING = 1
MAX_RATING = 5
MAX_COMMENT_LENGTH = 500

PROFILE_COLUMNS = "id,first_name,last_name,avatar_url,email,tag,bio"


def row_to_profile(row: Dict[str, Any]) -> ProfileSummary:
    return ProfileSummary(
        id=str(row.get("id")),
        first_name=row.get("first_name"),
        last_name=row.get("last_name"),
        avatar_url=row.get("avatar_url") or None,
        email=row.get("email"),
        tag=row.get("tag"),
        bio=row.get("bio"),
    )


def get_reviews(client: SupabaseClient, workspace_id: str) -> ReviewThread:
    """Reviews for a workspace, newest first, with their authors' profiles."""
    rows = client.select(
        "reviews",
        columns="id,user_id,rating,comment,created_at",
        filters=[("workspace_id", "eq", workspace_id)],
        order=["created_at.desc"],
    )
    reviews = [
        Review(
            id=str(row.get("id")),
            user_id=str(row.get("user_id")),
            rating=int(row.get("rating") or 0),
            comment=row.get("comment"),
            created_at=str(row.get("created_at") or ""),
        )
        for row in rows
    ]
    if not reviews:
        return ReviewThread()

    user_ids = list(dict.fromkeys(r.user_id for r in reviews))
    profiles = client.select("profiles", columns=PROFILE_COLUMNS, filters=[("id", "in", user_ids)])
    return ReviewThread(
        reviews=reviews,
        profiles_by_id={str(p["id"]): row_to_profile(p) for p in profiles},
    )


def normalize_comment(comment: Optional[str]) -> Optional[str]:
    text = (comment or "").strip()
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValueError(f"comment must be at most {MAX_COMMENT_LENGTH} characters")
    return text or None


def create_review(
    client: SupabaseClient,
    workspace_id: str,
    user_id: str,
    rating: int,
    comment: Optional[str] = None,
) -> Review:
    if not user_id:
        raise ValueError("a signed-in user is required to review")
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise ValueError(f"rating must be a whole number from {MIN_RATING} to {MAX_RATING}")
    text = normalize_comment(comment)

    # reviews reference profiles; make sure the author's row exists
    client.upsert("profiles", {"id": user_id}, on_conflict="id")
    rows = client.insert(
        "reviews",
        {"workspace_id": workspace_id, "user_id": user_id, "rating": rating, "comment": text},
    )
    created = rows[0] if rows else {}
    logger.info("review created workspace={} user={} rating={}", workspace_id, user_id, rating)
    return Review(
        id=str(created.get("id", "")),
        user_id=user_id,
        rating=rating,
        comment=text,
        created_at=str(created.get("created_at") or ""),
    )


# Saved and visited lists

SAVED_TABLE = "saved_workspaces"
VISITED_TABLE = "visited_workspaces"


def _membership_filters(user_id: str, workspace_id: str) -> List[Tuple[str, str, Any]]:
    return [("user_id", "eq", user_id), ("workspace_id", "eq", workspace_id)]


def _has_membership(client: SupabaseClient, table: str, user_id: str, workspace_id: str) -> bool:
    if not user_id or not workspace_id:
        return False
    rows = client.select(table, columns="id", filters=_membership_filters(user_id, workspace_id), limit=1)
    return bool(rows)


def _add_membership(client: SupabaseClient, table: str, user_id: str, workspace_id: str) -> None:
    if not user_id or not workspace_id:
        raise ValueError("user_id and workspace_id are required")
    client.upsert(table, {"user_id": user_id, "workspace_id": workspace_id}, on_conflict="user_id,workspace_id")
    logger.info("{} add user={} workspace={}", table, user_id, workspace_id)


def _remove_membership(client: SupabaseClient, table: str, user_id: str, workspace_id: str) -> None:
    if not user_id or not workspace_id:
        raise ValueError("user_id and workspace_id are required")
    client.delete(table, filters=_membership_filters(user_id, workspace_id))
    logger.info("{} remove user={} workspace={}", table, user_id, workspace_id)


def fetch_saved_ids(client: SupabaseClient, user_id: str) -> Set[str]:
    if not user_id:
        return set()
    rows = client.select(SAVED_TABLE, columns="workspace_id", filters=[("user_id", "eq", user_id)])
    return {str(row["workspace_id"]) for row in rows if row.get("workspace_id") is not None}


def is_workspace_saved(client: SupabaseClient, user_id: str, workspace_id: str) -> bool:
    return _has_membership(client, SAVED_TABLE, user_id, workspace_id)


def save_workspace(client: SupabaseClient, user_id: str, workspace_id: str) -> None:
    _add_membership(client, SAVED_TABLE, user_id, workspace_id)


def unsave_workspace(client: SupabaseClient, user_id: str, workspace_id: str) -> None:
    _remove_membership(client, SAVED_TABLE, user_id, workspace_id)


def is_workspace_visited(client: SupabaseClient, user_id: str, workspace_id: str) -> bool:
    return _has_membership(client, VISITED_TABLE, user_id, workspace_id)


def mark_visited(client: SupabaseClient, user_id: str, workspace_id: str) -> None:
    _add_membership(client, VISITED_TABLE, user_id, workspace_id)


def unmark_visited(client: SupabaseClient, user_id: str, workspace_id: str) -> None:
    _remove_membership(client, VISITED_TABLE, user_id, workspace_id)


# Profiles

EDITABLE_PROFILE_FIELDS = ("first_name", "last_name", "tag", "avatar_url", "bio")


def get_profile(client: SupabaseClient, user_id: str) -> Optional[ProfileSummary]:
    rows = client.select("profiles", columns=PROFILE_COLUMNS, filters=[("id", "eq", user_id)], limit=1)
    return row_to_profile(rows[0]) if rows else None


def update_profile(client: SupabaseClient, user_id: str, updates: Dict[str, Any]) -> Optional[ProfileSummary]:
    """Apply editable profile fields; blank strings clear a field."""
    unknown = sorted(set(updates) - set(EDITABLE_PROFILE_FIELDS))
    if unknown:
        raise ValueError(f"profile fields cannot be edited: {', '.join(unknown)}")
    values: Dict[str, Any] = {}
    for key, value in updates.items():
        if value is not None and not isinstance(value, str):
            raise ValueError(f"{key} must be text")
        values[key] = (value or "").strip() or None
    if not values:
        return get_profile(client, user_id)
    rows = client.update("profiles", values, filters=[("id", "eq", user_id)])
    logger.info("profile updated user={} fields={}", user_id, sorted(values))
    return row_to_profile(rows[0]) if rows else None
