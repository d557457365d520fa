from __future__ import annotations

import pytest

from models import Workspace
from services.filters import MAX_ACTIVE_FILTERS, apply_filters, validate_filters


def _ws(name: str, **flags) -> Workspace:
    return Workspace(id=name, name=name, slug=name, type="cafe", **flags)


def test_supported_filters_narrow_results() -> None:
    items = [
        _ws("a", has_wifi=True, has_power_outlets=True),
        _ws("b", has_wifi=True),
        _ws("c", has_coffee=True),
    ]
    assert [w.id for w in apply_filters(items, ["Wi-Fi"])] == ["a", "b"]
    assert [w.id for w in apply_filters(items, ["Wi-Fi", "Power"])] == ["a"]
    assert [w.id for w in apply_filters(items, [])] == ["a", "b", "c"]


def test_display_only_filters_do_not_narrow() -> None:
    items = [_ws("a"), _ws("b", has_coffee=True)]
    assert len(apply_filters(items, ["Quiet", "Pets"])) == 2


def test_too_many_filters() -> None:
    labels = ["Wi-Fi", "Power", "Coffee", "Quiet", "Food", "Pets"]
    assert len(labels) > MAX_ACTIVE_FILTERS
    with pytest.raises(ValueError):
        validate_filters(labels)


def test_unknown_filter_and_duplicates() -> None:
    with pytest.raises(ValueError):
        validate_filters(["Jacuzzi"])
    assert validate_filters(["Wi-Fi", "Wi-Fi", " "]) == ["Wi-Fi"]


def test_saved_filter_keeps_only_saved_workspaces() -> None:
    items = [_ws("a", has_wifi=True), _ws("b", has_wifi=True), _ws("c")]
    assert [w.id for w in apply_filters(items, ["Saved"], saved_ids={"b", "c"})] == ["b", "c"]
    assert [w.id for w in apply_filters(items, ["Saved", "Wi-Fi"], saved_ids={"b", "c"})] == ["b"]
    assert apply_filters(items, ["Saved"], saved_ids=set()) == []


def test_saved_filter_without_user_is_rejected() -> None:
    with pytest.raises(ValueError, match="signed-in"):
        apply_filters([_ws("a"), _ws("b")], ["Saved"])
    # saved ids are ignored unless the filter is active
    assert len(apply_filters([_ws("a"), _ws("b")], [], saved_ids={"a"})) == 2
