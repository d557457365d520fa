from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Literal, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, model_validator

from config import Configuration
from models import NearbyOutcome, Origin, ProfileSummary, RankedVenue, Review
from services.filters import FILTER_GROUPS, MAX_ACTIVE_FILTERS, SAVED_FILTER, apply_filters, validate_filters
from services.levels import LevelProgress, get_level, get_visited_level
from services.nearby import recommend_nearby
from services.report import build_nearby_report, group_cities_by_country, nearby_message
from services.supabase import SupabaseClient, SupabaseError
from services.workspace_source import (
    count_submitted,
    count_visited,
    create_review,
    fetch_saved_ids,
    fetch_visited_ids,
    get_profile,
    get_reviews,
    get_workspace_detail,
    is_workspace_saved,
    is_workspace_visited,
    list_cities,
    mark_visited,
    save_workspace,
    unmark_visited,
    unsave_workspace,
    update_profile,
    workspaces_by_city,
)


load_dotenv()

app = FastAPI(title="Lumen Workspace Directory")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_config() -> Configuration:
    return Configuration.from_env()


def get_client(cfg: Configuration = Depends(get_config)) -> SupabaseClient:
    try:
        return SupabaseClient(cfg)
    except ValueError as exc:
        raise HTTPException(status_code=503, detail=str(exc))


class NearbyRequest(BaseModel):
    lat: Optional[float] = Field(None, ge=-90, le=90, description="User latitude")
    lon: Optional[float] = Field(None, ge=-180, le=180, description="User longitude")
    origin_status: Optional[Literal["unavailable", "denied"]] = Field(
        None, description="Why no coordinate was sent"
    )
    radius_km: Optional[float] = Field(None, description="One of the offered radius choices")
    user_id: Optional[str] = Field(None, description="Signed-in user, used to skip visited places")
    exclude_visited: bool = True

    @model_validator(mode="after")
    def _both_or_neither(self) -> "NearbyRequest":
        if (self.lat is None) != (self.lon is None):
            raise ValueError("lat and lon must be sent together")
        return self

    def to_origin(self) -> Origin:
        if self.lat is not None and self.lon is not None:
            return Origin.at(self.lat, self.lon)
        if self.origin_status == "denied":
            return Origin.denied()
        return Origin.unavailable()


class NearbyEntryPayload(BaseModel):
    id: str
    name: str
    slug: Optional[str] = None
    city_slug: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = None
    overall_rating: Optional[float] = None
    lat: float
    lon: float
    distance_km: float


class NearbyResponse(BaseModel):
    status: str
    message: str
    radius_km: float
    radius_choices: List[float]
    entries: List[NearbyEntryPayload] = []
    report_markdown: str


class WorkspacePayload(BaseModel):
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


class CityPayload(BaseModel):
    id: str
    name: str
    slug: str
    country: str


class WorkspaceDetailPayload(WorkspacePayload):
    lat: Optional[float] = None
    lon: Optional[float] = None
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


class ReviewCreate(BaseModel):
    user_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class ReviewPayload(BaseModel):
    id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: str


class ProfilePayload(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None
    tag: Optional[str] = None
    bio: Optional[str] = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    tag: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None


class LevelPayload(BaseModel):
    title: str
    level_number: int
    progress: int
    next_threshold: int
    is_max: bool


def _entry_payload(entry: RankedVenue) -> NearbyEntryPayload:
    v = entry.venue
    assert v.coordinate is not None
    return NearbyEntryPayload(
        id=v.id,
        name=v.name,
        slug=v.slug,
        city_slug=v.city_slug,
        address=v.address,
        type=v.type,
        overall_rating=v.overall_rating,
        lat=v.coordinate.lat,
        lon=v.coordinate.lon,
        distance_km=round(entry.distance_km, 3),
    )


def _level_payload(level: LevelProgress) -> LevelPayload:
    return LevelPayload(**level.__dict__)


def _review_payload(review: Review) -> ReviewPayload:
    return ReviewPayload(**review.__dict__)


def _profile_payload(profile: ProfileSummary) -> ProfilePayload:
    return ProfilePayload(**profile.__dict__)


@contextmanager
def _backend_errors(action: str) -> Iterator[None]:
    """Map service errors to HTTP: bad input 400, hosted backend failure 502."""
    try:
        yield
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SupabaseError as exc:
        logger.warning("{} failed: {}", action, exc)
        raise HTTPException(status_code=502, detail="upstream error")


@app.get("/healthz")
def healthz(cfg: Configuration = Depends(get_config)) -> dict:
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.get("/filters")
def filter_groups() -> Dict[str, Any]:
    return {"groups": FILTER_GROUPS, "max_active": MAX_ACTIVE_FILTERS}


@app.get("/cities")
def cities(client: SupabaseClient = Depends(get_client)) -> Dict[str, Any]:
    try:
        groups = group_cities_by_country(list_cities(client))
    except SupabaseError as exc:
        logger.warning("cities fetch failed: {}", exc)
        raise HTTPException(status_code=502, detail="upstream error")
    return {
        "countries": [
            {"name": g.name, "cities": [c.__dict__ for c in g.cities]}
            for g in groups
        ]
    }


@app.get("/cities/{slug}/workspaces", response_model=List[WorkspacePayload])
def city_workspaces(
    slug: str,
    filters: List[str] = Query(default=[]),
    user_id: Optional[str] = Query(None, description="Signed-in user, required by the Saved filter"),
    client: SupabaseClient = Depends(get_client),
) -> List[WorkspacePayload]:
    try:
        saved_ids = None
        if user_id and SAVED_FILTER in validate_filters(filters):
            saved_ids = fetch_saved_ids(client, user_id)
        listing = apply_filters(workspaces_by_city(client, slug), filters, saved_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SupabaseError as exc:
        logger.warning("workspace listing failed city={}: {}", slug, exc)
        raise HTTPException(status_code=502, detail="upstream error")
    return [
        WorkspacePayload(**{k: v for k, v in ws.__dict__.items() if k != "coordinate"})
        for ws in listing
    ]


@app.post("/nearby", response_model=NearbyResponse)
def nearby(
    req: NearbyRequest,
    cfg: Configuration = Depends(get_config),
    client: SupabaseClient = Depends(get_client),
) -> NearbyResponse:
    try:
        outcome: NearbyOutcome = recommend_nearby(
            cfg,
            client,
            req.to_origin(),
            radius_km=req.radius_km,
            user_id=req.user_id,
            exclude_visited=req.exclude_visited,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except SupabaseError as exc:
        logger.warning("nearby fetch failed: {}", exc)
        raise HTTPException(status_code=502, detail="upstream error")
    except Exception as exc:
        logger.exception("nearby failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")

    return NearbyResponse(
        status=outcome.status.value,
        message=nearby_message(outcome.status),
        radius_km=outcome.radius_km,
        radius_choices=cfg.nearby_radius_choices,
        entries=[_entry_payload(e) for e in outcome.entries],
        report_markdown=build_nearby_report(outcome),
    )


@app.get("/users/{user_id}/levels")
def user_levels(user_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, LevelPayload]:
    try:
        submitted = count_submitted(client, user_id)
        visited = count_visited(client, user_id)
    except SupabaseError as exc:
        logger.warning("level counts failed user={}: {}", user_id, exc)
        raise HTTPException(status_code=502, detail="upstream error")
    return {
        "contributions": _level_payload(get_level(submitted)),
        "visited": _level_payload(get_visited_level(visited)),
    }


@app.get("/cities/{slug}/workspaces/{workspace_slug}")
def workspace_detail(slug: str, workspace_slug: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, Any]:
    with _backend_errors(f"workspace detail {slug}/{workspace_slug}"):
        city, workspace = get_workspace_detail(client, slug, workspace_slug)
    if city is None:
        raise HTTPException(status_code=404, detail="city not found")
    if workspace is None:
        raise HTTPException(status_code=404, detail="workspace not found")

    fields = {k: v for k, v in workspace.__dict__.items() if k != "coordinate"}
    if workspace.coordinate is not None:
        fields.update(lat=workspace.coordinate.lat, lon=workspace.coordinate.lon)
    return {
        "city": CityPayload(id=city.id, name=city.name, slug=city.slug, country=city.country),
        "workspace": WorkspaceDetailPayload(**fields),
    }


@app.get("/workspaces/{workspace_id}/reviews")
def workspace_reviews(workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, Any]:
    with _backend_errors(f"reviews workspace={workspace_id}"):
        thread = get_reviews(client, workspace_id)
    return {
        "reviews": [_review_payload(r) for r in thread.reviews],
        "profiles": {pid: _profile_payload(p) for pid, p in thread.profiles_by_id.items()},
    }


@app.post("/workspaces/{workspace_id}/reviews", status_code=201, response_model=ReviewPayload)
def post_review(
    workspace_id: str,
    req: ReviewCreate,
    client: SupabaseClient = Depends(get_client),
) -> ReviewPayload:
    with _backend_errors(f"create review workspace={workspace_id}"):
        review = create_review(client, workspace_id, req.user_id, req.rating, req.comment)
    return _review_payload(review)


@app.get("/users/{user_id}/saved")
def saved_workspaces(user_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, List[str]]:
    with _backend_errors(f"saved list user={user_id}"):
        ids = fetch_saved_ids(client, user_id)
    return {"workspace_ids": sorted(ids)}


@app.get("/users/{user_id}/saved/{workspace_id}")
def saved_status(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"saved check user={user_id}"):
        saved = is_workspace_saved(client, user_id, workspace_id)
    return {"saved": saved}


@app.put("/users/{user_id}/saved/{workspace_id}")
def save(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"save user={user_id}"):
        save_workspace(client, user_id, workspace_id)
    return {"saved": True}


@app.delete("/users/{user_id}/saved/{workspace_id}")
def unsave(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"unsave user={user_id}"):
        unsave_workspace(client, user_id, workspace_id)
    return {"saved": False}


@app.get("/users/{user_id}/visited")
def visited_workspaces(user_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, List[str]]:
    with _backend_errors(f"visited list user={user_id}"):
        ids = fetch_visited_ids(client, user_id)
    return {"workspace_ids": sorted(ids)}


@app.get("/users/{user_id}/visited/{workspace_id}")
def visited_status(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"visited check user={user_id}"):
        visited = is_workspace_visited(client, user_id, workspace_id)
    return {"visited": visited}


@app.put("/users/{user_id}/visited/{workspace_id}")
def mark(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"mark visited user={user_id}"):
        mark_visited(client, user_id, workspace_id)
    return {"visited": True}


@app.delete("/users/{user_id}/visited/{workspace_id}")
def unmark(user_id: str, workspace_id: str, client: SupabaseClient = Depends(get_client)) -> Dict[str, bool]:
    with _backend_errors(f"unmark visited user={user_id}"):
        unmark_visited(client, user_id, workspace_id)
    return {"visited": False}


@app.get("/users/{user_id}/profile", response_model=ProfilePayload)
def profile(user_id: str, client: SupabaseClient = Depends(get_client)) -> ProfilePayload:
    with _backend_errors(f"profile user={user_id}"):
        found = get_profile(client, user_id)
    if found is None:
        raise HTTPException(status_code=404, detail="profile not found")
    return _profile_payload(found)


@app.patch("/users/{user_id}/profile", response_model=ProfilePayload)
def patch_profile(
    user_id: str,
    req: ProfileUpdate,
    client: SupabaseClient = Depends(get_client),
) -> ProfilePayload:
    with _backend_errors(f"profile update user={user_id}"):
        updated = update_profile(client, user_id, req.model_dump(exclude_unset=True))
    if updated is None:
        raise HTTPException(status_code=404, detail="profile not found")
    return _profile_payload(updated)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
