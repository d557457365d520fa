from __future__ import annotations

import math

from models import BoundingBox, Coordinate

KM_PER_DEGREE = 111.0
# cos(radians(±90)) is ~6e-17, not 0; anything this small counts as the pole
POLE_COS_EPSILON = 1e-12


def _wrap_lon(lon: float) -> float:
    return ((lon + 180.0) % 360.0) - 180.0


def expand_bbox_from_center(origin: Coordinate, km: float) -> BoundingBox:
    """Create a lat/lon box around origin by ±km in both axes.

    Approximate on purpose: 1 degree of latitude is taken as 111 km and the
    longitude span is widened by 1/cos(lat). At the pole itself the cosine is
    replaced by 1, and accuracy at high latitudes is not corrected further.
    Boxes crossing the ±180° meridian wrap (min_lon > max_lon); boxes wider
    than the whole globe cover every longitude.
    """
    dlat = km / KM_PER_DEGREE
    cos_lat = abs(math.cos(math.radians(origin.lat)))
    if cos_lat < POLE_COS_EPSILON:
        cos_lat = 1.0
    dlon = km / (KM_PER_DEGREE * cos_lat)

    if dlon >= 180.0:
        min_lon, max_lon = -180.0, 180.0
    else:
        min_lon, max_lon = origin.lon - dlon, origin.lon + dlon
        if min_lon < -180.0 or max_lon > 180.0:
            min_lon, max_lon = _wrap_lon(min_lon), _wrap_lon(max_lon)
    return BoundingBox(
        min_lat=origin.lat - dlat,
        max_lat=origin.lat + dlat,
        min_lon=min_lon,
        max_lon=max_lon,
    )
