from __future__ import annotations

from typing import Optional

from loguru import logger

from config import Configuration
from models import NearbyOutcome, NearbyStatus, Origin, OriginStatus
from services.ranking import rank_nearby
from services.supabase import SupabaseClient
from services.workspace_source import fetch_nearby_candidates, fetch_visited_ids


def recommend_nearby(
    cfg: Configuration,
    client: SupabaseClient,
    origin: Origin,
    *,
    radius_km: Optional[float] = None,
    user_id: Optional[str] = None,
    exclude_visited: bool = True,
) -> NearbyOutcome:
    """Fetch candidates around origin and rank them.

    Nothing is fetched when the origin is missing; the outcome then carries
    the origin status instead of an empty result.
    """
    radius = cfg.resolve_radius(radius_km)

    if not origin.is_present:
        status = (
            NearbyStatus.ORIGIN_DENIED
            if origin.status is OriginStatus.DENIED
            else NearbyStatus.ORIGIN_UNAVAILABLE
        )
        return NearbyOutcome(status=status, radius_km=radius)

    assert origin.coordinate is not None
    venues = fetch_nearby_candidates(client, origin.coordinate, radius)
    visited = fetch_visited_ids(client, user_id) if (user_id and exclude_visited) else set()
    for venue in venues:
        venue.visited = venue.id in visited

    entries = rank_nearby(
        origin.coordinate,
        venues,
        radius_km=radius,
        exclude_ids=visited,
        max_results=cfg.nearby_max_results,
    )
    status = NearbyStatus.OK if entries else NearbyStatus.EMPTY
    logger.info(
        "nearby status={} radius_km={} candidates={} excluded={} results={}",
        status.value,
        radius,
        len(venues),
        len(visited),
        len(entries),
    )
    return NearbyOutcome(status=status, radius_km=radius, entries=entries, candidates_considered=len(venues))
