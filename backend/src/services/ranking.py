from __future__ import annotations

from typing import AbstractSet, Iterable, List, Optional

from models import Coordinate, RankedVenue, SearchRequest, Venue
from services.bbox_builder import expand_bbox_from_center
from utils import haversine_km


DEFAULT_MAX_RESULTS = 4


def distance_km(origin: Coordinate, target: Coordinate) -> float:
    return haversine_km(origin.lat, origin.lon, target.lat, target.lon)


def rank_nearby(
    origin: Coordinate,
    venues: Iterable[Venue],
    *,
    radius_km: float,
    exclude_ids: Optional[AbstractSet[str]] = None,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> List[RankedVenue]:
    """Nearest venues within radius_km of origin, closest first.

    Venues without a coordinate and venues listed in exclude_ids are skipped.
    The radius is inclusive; ties on distance are broken by venue id. At most
    max_results entries are returned.
    """
    if radius_km < 0:
        raise ValueError("radius_km must be >= 0")
    if max_results < 1:
        raise ValueError("max_results must be >= 1")

    excluded = exclude_ids or frozenset()
    bbox = expand_bbox_from_center(origin, radius_km)

    ranked: list[RankedVenue] = []
    for venue in venues:
        coord = venue.coordinate
        if coord is None or venue.id in excluded:
            continue
        if not bbox.contains(coord):
            continue
        dist = distance_km(origin, coord)
        if dist > radius_km:
            continue
        ranked.append(RankedVenue(venue=venue, distance_km=dist))

    ranked.sort(key=lambda r: (r.distance_km, r.venue.id))
    return ranked[:max_results]


def rank_request(request: SearchRequest, venues: Iterable[Venue]) -> List[RankedVenue]:
    return rank_nearby(
        request.origin,
        venues,
        radius_km=request.radius_km,
        exclude_ids=request.exclude_ids,
        max_results=request.max_results,
    )
