"""Tests for the session and profile store."""

import json
import logging

import pytest
from unittest.mock import MagicMock

from cabshare.models import (
    ActiveRide, Gender, Match, Partner, PendingRating, RideRequest, RideStatus
)
from cabshare.services.session_store import (
    ActiveRideConflictError, SessionStore, ValidationError
)
from cabshare.storage import keys
from cabshare.storage.kv_store import KeyValueStore, StorageError

SARAH = Partner(id="user1", name="Sarah Chen", rating=4.8, phone="+1234567890", avatar="👩‍💼")
MIKE = Partner(id="user2", name="Mike Johnson", rating=4.9)


def make_match(match_id, name="Candidate"):
    return Match(id=match_id, name=name, rating=4.5, distance=300, destination="Airport")


def make_active_ride(ride_id="ride-1", partner=SARAH):
    return ActiveRide(id=ride_id, partner_id=partner.id, partner_name=partner.name,
                      partner_rating=partner.rating, destination="Airport Terminal 2",
                      partner_phone=partner.phone, partner_avatar=partner.avatar)


class TestProfile:
    """Profile creation and updates."""

    def test_create_profile_defaults(self, session_store):
        """A new profile starts at 5.0 with no rides and no blocked users."""
        profile = session_store.create_profile("new@example.com", "New Rider")

        assert profile.rating == 5.0
        assert profile.total_rides == 0
        assert profile.blocked_users == []
        assert profile.ride_history == []
        assert profile.is_verified is False
        assert profile.preferences.allow_messages is True
        assert profile.preferences.allow_calls is True
        assert profile.preferences.max_ride_distance == 500
        assert profile.preferences.preferred_gender == Gender.ANY

    def test_created_profile_is_persisted(self, session_store):
        profile = session_store.create_profile("new@example.com", "New Rider", "555")
        assert session_store.get_profile() == profile

    def test_get_profile_absent(self, session_store):
        assert session_store.get_profile() is None

    def test_update_profile_merges_fields(self, session_store, profile):
        updated = session_store.update_profile({"name": "Renamed", "phone": "555-000"})

        assert updated.name == "Renamed"
        assert updated.phone == "555-000"
        assert updated.email == profile.email
        assert session_store.get_profile() == updated

    def test_update_profile_merges_preferences(self, session_store, profile):
        """Only the given preference keys change."""
        updated = session_store.update_profile(
            {"preferences": {"allow_calls": False, "preferred_gender": Gender.FEMALE}})

        assert updated.preferences.allow_calls is False
        assert updated.preferences.preferred_gender == Gender.FEMALE
        assert updated.preferences.allow_messages is True
        assert updated.preferences.max_ride_distance == 500

    def test_update_profile_ignores_protected_fields(self, session_store, profile):
        updated = session_store.update_profile({"id": "hijacked", "name": "Still Me"})
        assert updated.id == profile.id
        assert updated.name == "Still Me"

    def test_update_profile_without_profile_is_noop(self, session_store):
        assert session_store.update_profile({"name": "Nobody"}) is None
        assert session_store.get_profile() is None

    def test_update_profile_rejects_invalid_values(self, session_store, profile):
        """Invalid updates raise before anything is written."""
        with pytest.raises(ValidationError):
            session_store.update_profile({"preferences": {"preferred_gender": "robot"}})
        with pytest.raises(ValidationError):
            session_store.update_profile({"preferences": {"max_ride_distance": 750}})
        with pytest.raises(ValidationError):
            session_store.update_profile({"rating": 9})

        assert session_store.get_profile() == profile


class TestBlocking:
    """Block list handling."""

    def test_block_user(self, session_store, profile):
        updated = session_store.block_user("user2")
        assert updated.blocked_users == ["user2"]
        assert session_store.get_profile().is_blocked("user2")

    def test_block_user_is_idempotent(self, session_store, profile):
        session_store.block_user("user2")
        once = session_store.get_profile().blocked_users
        session_store.block_user("user2")

        assert session_store.get_profile().blocked_users == once == ["user2"]

    def test_unblock_user(self, session_store, profile):
        session_store.block_user("user1")
        session_store.block_user("user2")
        updated = session_store.unblock_user("user1")

        assert updated.blocked_users == ["user2"]

    def test_unblock_unknown_user_keeps_list(self, session_store, profile):
        session_store.block_user("user1")
        assert session_store.unblock_user("user9").blocked_users == ["user1"]

    def test_block_without_profile(self, session_store):
        assert session_store.block_user("user1") is None


class TestRideHistory:
    """Recording rides and rating them."""

    def test_record_ride_completion(self, session_store, profile):
        entry = session_store.record_ride_completion("ride-1", SARAH, "Airport Terminal 2")

        assert entry.id == "ride-1"
        assert entry.status == RideStatus.ACTIVE
        assert entry.partner_name == "Sarah Chen"
        assert entry.partner_rating == 4.8
        assert entry.user_rating is None

        stored = session_store.get_profile()
        assert stored.ride_history == [entry]
        assert stored.total_rides == 1

    def test_record_without_profile(self, session_store):
        assert session_store.record_ride_completion("ride-1", SARAH, "Airport") is None

    def test_submit_rating_updates_entry(self, session_store, profile):
        session_store.record_ride_completion("ride-1", SARAH, "Airport")
        updated = session_store.submit_rating("ride-1", 4, "Friendly")

        ride = updated.find_ride("ride-1")
        assert ride.user_rating == 4
        assert ride.comment == "Friendly"
        assert ride.status == RideStatus.COMPLETED
        assert updated.rating == 4.0
        assert session_store.get_profile() == updated

    def test_rating_is_mean_after_each_submission(self, session_store, profile):
        """After every rating the profile rating is the mean of all ratings so far."""
        scores = [5, 3, 4, 1, 2]
        for index, score in enumerate(scores):
            session_store.record_ride_completion(f"ride-{index}", SARAH, "Airport")

        for index, score in enumerate(scores):
            updated = session_store.submit_rating(f"ride-{index}", score)
            rated = scores[:index + 1]
            assert updated.rating == pytest.approx(sum(rated) / len(rated))

    def test_rating_scenario_four_two_five(self, session_store, profile):
        """History rated 4 and 2, then 5 on an unrated ride gives 11/3."""
        session_store.record_ride_completion("ride-a", SARAH, "Airport")
        session_store.record_ride_completion("ride-b", MIKE, "Downtown Mall")
        session_store.record_ride_completion("ride-x", SARAH, "Central Station")
        session_store.submit_rating("ride-a", 4)
        session_store.submit_rating("ride-b", 2)

        updated = session_store.submit_rating("ride-x", 5)

        assert updated.rating == pytest.approx(3.6667, abs=1e-4)
        assert session_store.get_profile().rating == pytest.approx(11 / 3)

    def test_unrated_rides_do_not_count(self, session_store, profile):
        session_store.record_ride_completion("ride-a", SARAH, "Airport")
        session_store.record_ride_completion("ride-b", MIKE, "Mall")
        session_store.mark_ride_completed("ride-b")

        updated = session_store.submit_rating("ride-a", 3)
        assert updated.rating == 3.0

    @pytest.mark.parametrize("score", [0, 6, -1, 2.5, "5", True])
    def test_submit_rating_rejects_invalid_score(self, session_store, profile, score):
        session_store.record_ride_completion("ride-1", SARAH, "Airport")

        with pytest.raises(ValidationError):
            session_store.submit_rating("ride-1", score)

        ride = session_store.get_profile().find_ride("ride-1")
        assert ride.user_rating is None
        assert ride.status == RideStatus.ACTIVE

    def test_submit_rating_unknown_ride_leaves_profile(self, session_store, profile):
        assert session_store.submit_rating("missing", 1) == profile
        assert session_store.get_profile().rating == 5.0

    def test_mark_ride_completed_without_rating(self, session_store, profile):
        session_store.record_ride_completion("ride-1", SARAH, "Airport")
        updated = session_store.mark_ride_completed("ride-1")

        ride = updated.find_ride("ride-1")
        assert ride.status == RideStatus.COMPLETED
        assert ride.user_rating is None
        assert updated.rating == 5.0


class TestSessionSlots:
    """Request, match, active ride and pending rating slots."""

    def test_current_request_round_trip(self, session_store):
        request = RideRequest(destination="Airport", current_location="40.7128, -74.0060",
                              user_id="me")
        session_store.set_current_request(request)
        assert session_store.get_current_request() == request

        session_store.clear_current_request()
        assert session_store.get_current_request() is None

    def test_remove_match_keeps_order(self, session_store):
        session_store.set_current_matches([make_match("a"), make_match("b"), make_match("c")])

        remaining = session_store.remove_match("b")

        assert [match.id for match in remaining] == ["a", "c"]
        assert session_store.get_current_matches() == [make_match("a"), make_match("c")]

    def test_remove_match_leaves_other_fields(self, session_store):
        matches = [make_match("a", "Ann"), make_match("b", "Ben"), make_match("c", "Cid")]
        matches[2].match_percentage = 88
        session_store.set_current_matches(matches)

        session_store.remove_match("a")

        assert session_store.get_current_matches() == matches[1:]

    def test_remove_unknown_match(self, session_store):
        session_store.set_current_matches([make_match("a")])
        assert session_store.remove_match("zzz") == [make_match("a")]

    def test_matches_absent_is_empty(self, session_store):
        assert session_store.get_current_matches() == []

    def test_active_ride_round_trip(self, session_store):
        ride = make_active_ride()
        session_store.set_active_ride(ride)
        assert session_store.get_active_ride() == ride

        session_store.clear_active_ride()
        assert session_store.get_active_ride() is None

    def test_active_ride_conflict(self, session_store):
        session_store.set_active_ride(make_active_ride("ride-1"))

        with pytest.raises(ActiveRideConflictError):
            session_store.set_active_ride(make_active_ride("ride-2", MIKE))

        assert session_store.get_active_ride().id == "ride-1"

    def test_active_ride_replace(self, session_store):
        session_store.set_active_ride(make_active_ride("ride-1"))
        session_store.set_active_ride(make_active_ride("ride-2", MIKE), replace=True)
        assert session_store.get_active_ride().partner_name == "Mike Johnson"

    def test_active_ride_same_id_can_be_rewritten(self, session_store):
        session_store.set_active_ride(make_active_ride("ride-1"))
        session_store.set_active_ride(make_active_ride("ride-1"))
        assert session_store.get_active_ride().id == "ride-1"

    def test_pending_rating_round_trip(self, session_store):
        pending = PendingRating(ride_id="ride-1", partner_name="Sarah Chen")
        session_store.set_pending_rating(pending)
        assert session_store.get_pending_rating() == pending

        session_store.clear_pending_rating()
        assert session_store.get_pending_rating() is None

    def test_rejected_users(self, session_store):
        session_store.add_rejected_user("user1")
        session_store.add_rejected_user("user1")
        session_store.add_rejected_user("user3")
        assert session_store.get_rejected_users() == ["user1", "user3"]

    def test_clear_session(self, session_store, profile, kv_store):
        session_store.set_current_matches([make_match("a")])
        session_store.set_current_request(RideRequest("Airport", "Here"))
        session_store.set_pending_rating(PendingRating("ride-1", "Sarah Chen"))
        kv_store.set_item(keys.USER, json.dumps({"id": profile.id}))

        session_store.clear_session()

        assert session_store.get_profile() is None
        assert session_store.get_current_matches() == []
        assert session_store.get_current_request() is None
        assert kv_store.get_item(keys.USER) is None
        # Only the session keys are removed
        assert session_store.get_pending_rating() is not None


class TestDegradedStorage:
    """Storage failures are logged and absorbed."""

    def test_malformed_json_reads_as_absent(self, session_store, kv_store, caplog):
        kv_store.set_item(keys.USER_PROFILE, "{not json")

        with caplog.at_level(logging.ERROR):
            assert session_store.get_profile() is None
        assert "not valid JSON" in caplog.text

    def test_out_of_range_rating_reads_as_corrupt(self, session_store, kv_store, profile, caplog):
        data = profile.to_dict()
        data["rating"] = 7.5
        kv_store.set_item(keys.USER_PROFILE, json.dumps(data))

        with caplog.at_level(logging.ERROR):
            assert session_store.get_profile() is None
        assert "Corrupt state" in caplog.text

    def test_unknown_gender_reads_as_corrupt(self, session_store, kv_store, profile):
        data = profile.to_dict()
        data["preferences"]["preferred_gender"] = "robot"
        kv_store.set_item(keys.USER_PROFILE, json.dumps(data))

        assert session_store.get_profile() is None

    def test_match_set_that_is_not_a_list(self, session_store, kv_store):
        kv_store.set_item(keys.CURRENT_MATCHES, json.dumps({"id": "a"}))
        assert session_store.get_current_matches() == []

    def test_unavailable_storage(self, caplog):
        backend = MagicMock(spec=KeyValueStore)
        backend.get_item.side_effect = StorageError("storage unavailable")
        backend.set_item.side_effect = StorageError("storage unavailable")
        backend.multi_remove.side_effect = StorageError("storage unavailable")
        store = SessionStore(backend)

        with caplog.at_level(logging.ERROR):
            profile = store.create_profile("rider@example.com", "Rider")
            assert profile.rating == 5.0
            assert store.get_profile() is None
            assert store.update_profile({"name": "x"}) is None
            assert store.get_current_matches() == []
            assert store.set_active_ride(make_active_ride()) is False
            assert store.clear_active_ride() is False

        assert "storage unavailable" in caplog.text

    def test_non_text_values_in_storage_file(self, session_store, kv_store, caplog):
        with open(kv_store.path, 'w') as f:
            json.dump({keys.USER_PROFILE: {"id": "x"}, keys.CURRENT_MATCHES: 5}, f)

        with caplog.at_level(logging.ERROR):
            assert session_store.get_profile() is None
            assert session_store.get_current_matches() == []
        assert "not text" in caplog.text

    def test_backend_returning_non_text(self, caplog):
        backend = MagicMock(spec=KeyValueStore)
        backend.get_item.return_value = {"id": "x"}
        store = SessionStore(backend)

        with caplog.at_level(logging.ERROR):
            assert store.get_profile() is None
        assert "Corrupt state" in caplog.text
