from __future__ import annotations

import pytest

from services.workspace_source import (
    MAX_COMMENT_LENGTH,
    create_review,
    fetch_saved_ids,
    get_profile,
    get_reviews,
    get_workspace_detail,
    is_workspace_saved,
    is_workspace_visited,
    mark_visited,
    save_workspace,
    unmark_visited,
    unsave_workspace,
    update_profile,
)


CITIES = [{"id": 1, "name": "Lisbon", "slug": "lisbon", "country": "Portugal"}]

WORKSPACES = [
    {"id": "a", "name": "Fabrica", "slug": "fabrica", "type": "cafe", "status": "approved", "city_id": 1,
     "latitude": 38.7225, "longitude": -9.1395, "has_wifi": True, "has_food": True, "wifi_speed": "fast",
     "atmosphere_rating": "4.5", "seating_capacity": 40, "good_for_calls": True,
     "workspace_photos": [{"url": "https://img/a.jpg"}]},
    {"id": "p", "name": "Hidden", "slug": "hidden", "type": "cafe", "status": "pending", "city_id": 1},
]


class TestWorkspaceDetail:
    def test_detail_by_city_and_slug(self, fake_supabase):
        client = fake_supabase({"cities": CITIES, "workspaces": WORKSPACES})
        city, ws = get_workspace_detail(client, "lisbon", "fabrica")
        assert city.name == "Lisbon"
        assert ws.id == "a"
        assert ws.has_wifi and ws.has_food and ws.good_for_calls
        assert ws.has_parking is False
        assert ws.atmosphere_rating == 4.5
        assert ws.seating_capacity == 40
        assert ws.wifi_speed == "fast"
        assert ws.primary_photo_url == "https://img/a.jpg"
        assert ws.coordinate.lat == 38.7225

    def test_unknown_city_or_unapproved_workspace(self, fake_supabase):
        client = fake_supabase({"cities": CITIES, "workspaces": WORKSPACES})
        assert get_workspace_detail(client, "atlantis", "fabrica") == (None, None)
        city, ws = get_workspace_detail(client, "lisbon", "hidden")
        assert city.slug == "lisbon"
        assert ws is None


class TestReviews:
    def test_reviews_newest_first_with_profiles(self, fake_supabase):
        client = fake_supabase(
            {
                "reviews": [
                    {"id": "r1", "workspace_id": "a", "user_id": "u1", "rating": 4, "comment": "ok",
                     "created_at": "2024-01-01T00:00:00Z"},
                    {"id": "r2", "workspace_id": "a", "user_id": "u2", "rating": 5, "comment": None,
                     "created_at": "2024-03-01T00:00:00Z"},
                    {"id": "r3", "workspace_id": "a", "user_id": "u1", "rating": 3, "comment": "meh",
                     "created_at": "2024-02-01T00:00:00Z"},
                    {"id": "r4", "workspace_id": "b", "user_id": "u3", "rating": 1, "comment": "no",
                     "created_at": "2024-02-01T00:00:00Z"},
                ],
                "profiles": [
                    {"id": "u1", "first_name": "Ana", "tag": "nomad"},
                    {"id": "u2", "first_name": "Rui"},
                    {"id": "u3", "first_name": "Eva"},
                ],
            }
        )
        thread = get_reviews(client, "a")
        assert [r.id for r in thread.reviews] == ["r2", "r3", "r1"]
        assert set(thread.profiles_by_id) == {"u1", "u2"}
        assert thread.profiles_by_id["u1"].tag == "nomad"
        profile_call = client.calls[-1]
        assert profile_call["filters"] == [("id", "in", ["u2", "u1"])]

    def test_no_reviews_skips_profile_lookup(self, fake_supabase):
        client = fake_supabase({"reviews": []})
        thread = get_reviews(client, "a")
        assert thread.reviews == [] and thread.profiles_by_id == {}
        assert [c["table"] for c in client.calls] == ["reviews"]

    def test_create_review_trims_comment_and_ensures_profile(self, fake_supabase):
        client = fake_supabase({"reviews": [], "profiles": []})
        review = create_review(client, "a", "u1", 5, "  great light  ")
        assert review.comment == "great light"
        assert review.rating == 5
        assert [c["op"] for c in client.calls] == ["upsert", "insert"]
        assert client.calls[0]["on_conflict"] == "id"
        assert client.tables["profiles"] == [{"id": "u1"}]
        assert client.tables["reviews"][0]["comment"] == "great light"

        blank = create_review(client, "a", "u1", 3, "   ")
        assert blank.comment is None
        # the author's profile row is not duplicated
        assert len(client.tables["profiles"]) == 1

    @pytest.mark.parametrize("rating", [0, 6, 2.5, True])
    def test_create_review_rejects_bad_rating(self, fake_supabase, rating):
        client = fake_supabase({})
        with pytest.raises(ValueError):
            create_review(client, "a", "u1", rating, "x")
        assert client.calls == []

    def test_create_review_rejects_long_comment_and_anonymous(self, fake_supabase):
        client = fake_supabase({})
        with pytest.raises(ValueError, match="500"):
            create_review(client, "a", "u1", 4, "x" * (MAX_COMMENT_LENGTH + 1))
        with pytest.raises(ValueError):
            create_review(client, "a", "", 4, "fine")
        assert client.calls == []
        # exactly at the limit is accepted
        assert create_review(client, "a", "u1", 4, "x" * MAX_COMMENT_LENGTH).comment


class TestSavedAndVisited:
    def test_save_check_list_unsave(self, fake_supabase):
        client = fake_supabase({"saved_workspaces": [{"id": "s0", "user_id": "u2", "workspace_id": "a"}]})
        assert is_workspace_saved(client, "u1", "a") is False
        save_workspace(client, "u1", "a")
        save_workspace(client, "u1", "a")
        save_workspace(client, "u1", "b")
        assert is_workspace_saved(client, "u1", "a") is True
        assert fetch_saved_ids(client, "u1") == {"a", "b"}

        unsave_workspace(client, "u1", "a")
        assert fetch_saved_ids(client, "u1") == {"b"}
        # other users' rows are untouched
        assert fetch_saved_ids(client, "u2") == {"a"}

    def test_visited_toggle(self, fake_supabase):
        client = fake_supabase({"visited_workspaces": []})
        mark_visited(client, "u1", "a")
        assert is_workspace_visited(client, "u1", "a") is True
        unmark_visited(client, "u1", "a")
        assert is_workspace_visited(client, "u1", "a") is False
        upsert = next(c for c in client.calls if c.get("op") == "upsert")
        assert upsert["on_conflict"] == "user_id,workspace_id"

    def test_missing_ids(self, fake_supabase):
        client = fake_supabase({})
        assert is_workspace_saved(client, "", "a") is False
        assert fetch_saved_ids(client, "") == set()
        with pytest.raises(ValueError):
            save_workspace(client, "u1", "")
        with pytest.raises(ValueError):
            unmark_visited(client, "", "a")
        assert client.calls == []


class TestProfiles:
    def test_get_and_update(self, fake_supabase):
        client = fake_supabase({"profiles": [{"id": "u1", "first_name": "Ana", "bio": "old"}]})
        assert get_profile(client, "u1").first_name == "Ana"
        assert get_profile(client, "nobody") is None

        updated = update_profile(client, "u1", {"first_name": "  Ana Maria ", "bio": "  "})
        assert updated.first_name == "Ana Maria"
        assert updated.bio is None
        update_call = client.calls[-1]
        assert update_call["filters"] == [("id", "eq", "u1")]

    def test_rejects_read_only_fields(self, fake_supabase):
        client = fake_supabase({"profiles": [{"id": "u1"}]})
        with pytest.raises(ValueError, match="email"):
            update_profile(client, "u1", {"email": "x@example.com"})
        assert client.calls == []

    def test_empty_update_returns_current_profile(self, fake_supabase):
        client = fake_supabase({"profiles": [{"id": "u1", "tag": "coder"}]})
        assert update_profile(client, "u1", {}).tag == "coder"
        assert all(c.get("op") != "update" for c in client.calls)
