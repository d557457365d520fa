from __future__ import annotations

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

from models import Workspace


FILTER_GROUPS: Dict[str, List[str]] = {
    "Saved": ["Saved"],
    "Essentials": ["Wi-Fi", "Power", "Coffee"],
    "Focus & Duration": ["Quiet", "Long stays"],
    "Food & Drink": ["Food", "Veggie", "Alcohol"],
    "Space & Access": ["Outdoor", "Restroom", "Accessible", "Pets", "Parking", "Light"],
    "Community": ["Groups"],
}

# Only these labels are backed by listing columns; the rest are shown in the UI
# but do not narrow results yet.
SUPPORTED_FILTERS: Dict[str, str] = {
    "Wi-Fi": "has_wifi",
    "Power": "has_power_outlets",
    "Coffee": "has_coffee",
}

MAX_ACTIVE_FILTERS = 5

KNOWN_FILTERS = {label for options in FILTER_GROUPS.values() for label in options}


def validate_filters(labels: Sequence[str]) -> List[str]:
    active = list(dict.fromkeys(label.strip() for label in labels if label and label.strip()))
    if len(active) > MAX_ACTIVE_FILTERS:
        raise ValueError(f"at most {MAX_ACTIVE_FILTERS} filters can be active")
    unknown = [label for label in active if label not in KNOWN_FILTERS]
    if unknown:
        raise ValueError(f"unknown filters: {', '.join(unknown)}")
    return active


SAVED_FILTER = "Saved"


def apply_filters(
    workspaces: Iterable[Workspace],
    labels: Sequence[str],
    saved_ids: Optional[AbstractSet[str]] = None,
) -> List[Workspace]:
    """Keep workspaces matching every active filter.

    "Saved" narrows to saved_ids, which the caller loads for the signed-in
    user; asking for it without them is an error rather than a no-op.
    """
    active = validate_filters(labels)
    want_saved = SAVED_FILTER in active
    if want_saved and saved_ids is None:
        raise ValueError("the Saved filter needs a signed-in user")
    attrs = [SUPPORTED_FILTERS[label] for label in active if label in SUPPORTED_FILTERS]
    return [
        ws
        for ws in workspaces
        if all(getattr(ws, attr) for attr in attrs) and (not want_saved or ws.id in saved_ids)
    ]
