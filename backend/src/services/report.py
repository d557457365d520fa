from __future__ import annotations

from typing import Dict, List

from models import City, CountryGroup, NearbyOutcome, NearbyStatus


NEARBY_MESSAGES: Dict[NearbyStatus, str] = {
    NearbyStatus.OK: "Workspaces near you",
    NearbyStatus.EMPTY: "No places found nearby. Try a larger radius or browse all workspaces.",
    NearbyStatus.ORIGIN_UNAVAILABLE: "Share your location to see workspaces near you.",
    NearbyStatus.ORIGIN_DENIED: "Location access denied. Enable location permissions to see workspaces near you.",
}


def nearby_message(status: NearbyStatus) -> str:
    return NEARBY_MESSAGES[status]


def format_distance(km: float) -> str:
    if km < 1.0:
        return f"{round(km * 1000):d} m"
    return f"{km:.1f} km"


def build_nearby_report(outcome: NearbyOutcome) -> str:
    lines = [
        "## Nearby workspaces",
        "",
        f"- Search radius: {outcome.radius_km:g} km",
        "",
    ]
    if outcome.status is not NearbyStatus.OK:
        lines.append(f"> {nearby_message(outcome.status)}")
        return "\n".join(lines)

    for idx, entry in enumerate(outcome.entries, start=1):
        v = entry.venue
        rating = f"{v.overall_rating:.1f}/5" if v.overall_rating is not None else "no rating yet"
        lines += [
            f"### {idx}. {v.name}",
            f"- Distance: {format_distance(entry.distance_km)}",
            f"- Address: {v.address or 'Not provided'}",
            f"- Rating: {rating}",
            "",
        ]
    return "\n".join(lines)


def group_cities_by_country(cities: List[City]) -> List[CountryGroup]:
    groups: Dict[str, CountryGroup] = {}
    for city in cities:
        group = groups.get(city.country)
        if group is None:
            group = groups[city.country] = CountryGroup(name=city.country)
        group.cities.append(city)
    return list(groups.values())
