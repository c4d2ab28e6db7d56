"""Tests for vibecheck.services.aggregation.compute_view_model."""

import pytest

from vibecheck.schemas.views import ViewModel
from vibecheck.services.aggregation import compute_view_model, fallback_display_name

NOW = 1_700_000_000_000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _story(created_at: int, expires_in: int | None = 1000, **extra) -> dict:
    record = {"mediaUrl": "https://img.example/a.jpg", "timestamp": created_at, **extra}
    if expires_in is not None:
        record["expiresAt"] = NOW + expires_in
    return record


def _owners(view: ViewModel) -> list[str]:
    return [a.owner_id for a in view.others]


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_other_owner_goes_to_others(self):
        tree = {"u1": {"s1": _story(100)}}
        view = compute_view_model(tree, "u2", NOW)
        assert view.own is None
        assert _owners(view) == ["u1"]

    def test_viewer_owner_goes_to_self(self):
        tree = {"u1": {"s1": _story(100)}}
        view = compute_view_model(tree, "u1", NOW)
        assert view.own is not None
        assert view.own.owner_id == "u1"
        assert view.others == []

    def test_expired_record_drops_owner(self):
        tree = {"u1": {"s1": _story(100, expires_in=-1)}}
        view = compute_view_model(tree, "u2", NOW)
        assert view == ViewModel()

    def test_others_sorted_newest_first(self):
        tree = {"u1": {"s1": _story(100)}, "u2": {"s1": _story(200)}}
        view = compute_view_model(tree, "u3", NOW)
        assert _owners(view) == ["u2", "u1"]

    def test_record_without_payload_is_skipped(self):
        tree = {"u1": {"s1": {"timestamp": 100, "expiresAt": NOW + 1000}}}
        view = compute_view_model(tree, "u2", NOW)
        assert view.others == []


class TestFiltering:
    def test_expiry_equal_to_now_is_inactive(self):
        tree = {"u1": {"s1": _story(100, expires_in=0)}}
        assert compute_view_model(tree, "u2", NOW).others == []

    def test_missing_expiry_is_inactive(self):
        tree = {"u1": {"s1": _story(100, expires_in=None)}}
        assert compute_view_model(tree, "u2", NOW).others == []

    def test_expired_records_removed_but_owner_kept(self):
        tree = {
            "u1": {
                "old": _story(50, expires_in=-10),
                "new": _story(100),
            }
        }
        view = compute_view_model(tree, "u2", NOW)
        assert [r.id for r in view.others[0].active_records] == ["new"]

    def test_missing_creation_time_is_malformed(self):
        tree = {"u1": {"s1": {"mediaUrl": "https://x", "expiresAt": NOW + 1}}}
        assert compute_view_model(tree, "u2", NOW).others == []

    def test_text_payload_counts_as_payload(self):
        tree = {"u1": {"m1": {"text": "hi", "createdAt": 5, "expiresAt": NOW + 1}}}
        view = compute_view_model(tree, "u2", NOW)
        assert view.others[0].active_records[0].text == "hi"

    def test_placeholder_timestamp_falls_back_to_created_at(self):
        record = _story(100)
        record["timestamp"] = {".sv": "timestamp"}
        record["createdAt"] = 150
        view = compute_view_model({"u1": {"s1": record}}, "u2", NOW)
        assert view.others[0].latest_activity_at == 150

    def test_wrong_field_types_do_not_raise(self):
        tree = {
            "u1": {
                "a": "not-a-record",
                "b": {"mediaUrl": 42, "timestamp": 1, "expiresAt": NOW + 1},
                "c": {"mediaUrl": "https://x", "timestamp": "yesterday", "expiresAt": NOW + 1},
                "d": _story(100),
            },
            "u2": ["not", "a", "bucket"],
        }
        view = compute_view_model(tree, "u3", NOW)
        assert _owners(view) == ["u1"]
        assert [r.id for r in view.others[0].active_records] == ["d"]

    def test_boolean_creation_time_is_malformed(self):
        tree = {"u1": {"s1": {"mediaUrl": "https://x", "createdAt": True, "expiresAt": NOW + 1}}}
        reports = []
        view = compute_view_model(tree, "u2", NOW, on_malformed=lambda *args: reports.append(args))
        assert view == ViewModel()
        assert [(owner, record) for owner, record, _ in reports] == [("u1", "s1")]

    def test_malformed_records_reported(self):
        reports = []
        tree = {"u1": {"bad": {"expiresAt": NOW + 1}, "good": _story(1)}}
        compute_view_model(tree, "u2", NOW, on_malformed=lambda *args: reports.append(args))
        assert len(reports) == 1
        assert reports[0][:2] == ("u1", "bad")

    def test_none_tree_is_empty(self):
        assert compute_view_model(None, "u1", NOW) == ViewModel()

    def test_non_mapping_tree_is_empty(self):
        assert compute_view_model(["x"], "u1", NOW) == ViewModel()

    def test_empty_tree_is_empty(self):
        assert compute_view_model({}, "u1", NOW) == ViewModel()


class TestAggregates:
    def test_records_sorted_ascending(self):
        tree = {"u1": {"b": _story(300), "a": _story(100), "c": _story(200)}}
        aggregate = compute_view_model(tree, "u2", NOW).others[0]
        assert [r.created_at for r in aggregate.active_records] == [100, 200, 300]
        assert aggregate.latest_activity_at == 300

    def test_owner_metadata_from_first_record_encountered(self):
        tree = {
            "u1": {
                "s2": _story(200, user={"_id": "u1", "name": "Ana", "avatar": "https://a"}),
                "s1": _story(100, user={"_id": "u1", "name": "Ana B", "avatar": "https://b"}),
            }
        }
        aggregate = compute_view_model(tree, "u2", NOW).others[0]
        assert aggregate.display_name == "Ana"
        assert aggregate.avatar_url == "https://a"

    def test_expired_record_metadata_ignored(self):
        tree = {
            "u1": {
                "old": _story(1, expires_in=-5, user={"name": "Old Name"}),
                "new": _story(2, user={"name": "New Name"}),
            }
        }
        assert compute_view_model(tree, "u2", NOW).others[0].display_name == "New Name"

    def test_generated_name_without_metadata(self):
        tree = {"abcdef123": {"s1": _story(100)}}
        aggregate = compute_view_model(tree, "u2", NOW).others[0]
        assert aggregate.display_name == "User abcd"
        assert aggregate.display_name == fallback_display_name("abcdef123")

    def test_generated_name_when_metadata_has_no_name(self):
        tree = {"u1xyz": {"s1": _story(100, user={"avatar": "https://a"})}}
        aggregate = compute_view_model(tree, "u2", NOW).others[0]
        assert aggregate.display_name == "User u1xy"
        assert aggregate.avatar_url == "https://a"

    def test_viewer_fallback_avatar_only_for_own_bucket(self):
        tree = {"me": {"s1": _story(100)}, "you": {"s1": _story(200)}}
        view = compute_view_model(tree, "me", NOW, viewer_fallback_avatar="https://me.jpg")
        assert view.own.avatar_url == "https://me.jpg"
        assert view.others[0].avatar_url is None

    def test_metadata_avatar_beats_viewer_fallback(self):
        tree = {"me": {"s1": _story(100, user={"avatar": "https://mine"})}}
        view = compute_view_model(tree, "me", NOW, viewer_fallback_avatar="https://fb")
        assert view.own.avatar_url == "https://mine"


class TestOrderingAndPartition:
    def test_ties_broken_by_owner_id(self):
        tree = {"zed": {"s": _story(100)}, "amy": {"s": _story(100)}, "bob": {"s": _story(100)}}
        assert _owners(compute_view_model(tree, None, NOW)) == ["amy", "bob", "zed"]

    def test_viewer_never_in_others(self):
        tree = {"u1": {"s": _story(100)}, "u2": {"s": _story(300)}, "u3": {"s": _story(200)}}
        view = compute_view_model(tree, "u2", NOW)
        assert view.own.owner_id == "u2"
        assert "u2" not in _owners(view)
        assert _owners(view) == ["u3", "u1"]

    def test_no_viewer_puts_everyone_in_others(self):
        tree = {"u1": {"s": _story(100)}}
        view = compute_view_model(tree, None, NOW)
        assert view.own is None
        assert _owners(view) == ["u1"]

    def test_idempotent(self):
        tree = {
            "u1": {"s1": _story(100), "s2": _story(50, expires_in=-1)},
            "u2": {"s1": _story(100, user={"name": "B"})},
            "u3": {"s1": {"bad": True}},
        }
        first = compute_view_model(tree, "u2", NOW, "https://fb")
        second = compute_view_model(tree, "u2", NOW, "https://fb")
        assert first == second
        assert first.model_dump() == second.model_dump()

    @pytest.mark.parametrize("viewer", ["u1", "u2", "nobody", None])
    def test_every_aggregate_has_active_records(self, viewer):
        tree = {
            "u1": {"a": _story(10), "b": _story(20, expires_in=-1)},
            "u2": {"a": _story(30, expires_in=-1)},
            "u3": {"a": {"timestamp": 5, "expiresAt": NOW + 1}},
        }
        view = compute_view_model(tree, viewer, NOW)
        aggregates = view.others + ([view.own] if view.own else [])
        assert all(a.active_records for a in aggregates)
        assert all(r.expires_at > NOW for a in aggregates for r in a.active_records)


class TestSerialization:
    def test_self_key_in_json(self):
        tree = {"u1": {"s1": _story(100)}}
        body = compute_view_model(tree, "u1", NOW).model_dump(by_alias=True)
        assert "self" in body
        assert body["self"]["owner_id"] == "u1"
        assert body["others"] == []
