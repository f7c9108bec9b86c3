"""
Unit tests for CallRegistry.
Tests call lifecycle, mailbox routing rules and draining.
"""
import pytest
from datetime import datetime, timedelta, timezone

from bruinsplit.core.call_registry import CallRegistry


class FakeClock:
    """Controllable clock for activity timestamps."""

    def __init__(self):
        self.now = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: int):
        self.now += timedelta(seconds=seconds)


class TestCallLifecycle:
    """Creating, joining and tearing down calls."""

    def test_get_or_create_returns_same_call(self, registry):
        first = registry.get_or_create_call("r1")
        second = registry.get_or_create_call("r1")

        assert first is second
        assert first.participants == set()
        assert registry.get_call("r1") is first

    def test_get_call_missing_returns_none(self, registry):
        assert registry.get_call("nope") is None
        assert "nope" not in registry

    def test_add_participant_is_idempotent(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "a")

        call = registry.get_call("r1")
        assert call.participant_list() == ["a"]
        assert set(call.mailboxes) == {"a"}

    def test_add_participant_requires_call(self, registry):
        with pytest.raises(KeyError):
            registry.add_participant("r1", "a")

    def test_ensure_mailbox_does_not_add_participant(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")

        mailbox = registry.ensure_mailbox("r1", "b")

        call = registry.get_call("r1")
        assert "b" not in call.participants
        assert call.mailboxes["b"] is mailbox
        assert registry.ensure_mailbox("r1", "b") is mailbox

    def test_last_leave_deletes_call(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")

        assert registry.remove_participant("r1", "a") is False
        assert registry.get_call("r1") is not None

        assert registry.remove_participant("r1", "b") is True
        assert registry.get_call("r1") is None

    def test_remove_from_missing_call_is_noop(self, registry):
        assert registry.remove_participant("r1", "a") is False

    def test_new_call_after_teardown_has_new_created_at(self):
        clock = FakeClock()
        registry = CallRegistry(clock=clock)
        first = registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.remove_participant("r1", "a")

        clock.advance(5)
        second = registry.get_or_create_call("r1")

        assert second is not first
        assert second.created_at == first.created_at + timedelta(seconds=5)


class TestSignalRouting:
    """Offer/answer overwrite and ICE append rules."""

    @pytest.fixture
    def call(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")
        return registry.get_call("r1")

    def test_offer_last_write_wins(self, registry, call):
        registry.record_offer("r1", "a", "b", {"sdp": "first"})
        registry.record_offer("r1", "a", "b", {"sdp": "second"})

        offers = call.mailboxes["b"].offers
        assert list(offers) == ["a"]
        assert offers["a"]["offer"] == {"sdp": "second"}
        assert offers["a"]["from"] == "a"
        assert isinstance(offers["a"]["timestamp"], int)

    def test_answer_last_write_wins(self, registry, call):
        registry.record_answer("r1", "b", "a", {"sdp": "one"})
        registry.record_answer("r1", "b", "a", {"sdp": "two"})

        assert call.mailboxes["a"].answers["b"]["answer"] == {"sdp": "two"}

    def test_ice_candidates_append_in_order(self, registry, call):
        registry.record_ice_candidate("r1", "a", "b", "c1")
        registry.record_ice_candidate("r1", "a", "b", "c2")
        registry.record_ice_candidate("r1", "a", "b", "c3")

        candidates = call.mailboxes["b"].ice_candidates["a"]
        assert [c["candidate"] for c in candidates] == ["c1", "c2", "c3"]

    def test_signals_keyed_by_sender(self, registry, call):
        registry.add_participant("r1", "c")
        registry.record_offer("r1", "a", "b", "from-a")
        registry.record_offer("r1", "c", "b", "from-c")

        offers = call.mailboxes["b"].offers
        assert offers["a"]["offer"] == "from-a"
        assert offers["c"]["offer"] == "from-c"

    def test_record_creates_missing_target_mailbox(self, registry, call):
        registry.record_offer("r1", "a", "late", "x")

        assert call.mailboxes["late"].offers["a"]["offer"] == "x"
        assert "late" not in call.participants


class TestDrain:
    """Destructive reads."""

    def test_drain_returns_and_clears(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")
        registry.record_offer("r1", "a", "b", "o")
        registry.record_answer("r1", "a", "b", "ans")
        registry.record_ice_candidate("r1", "a", "b", "c1")

        snapshot = registry.drain_mailbox("r1", "b")

        assert snapshot.offers["a"]["offer"] == "o"
        assert snapshot.answers["a"]["answer"] == "ans"
        assert [c["candidate"] for c in snapshot.ice_candidates["a"]] == ["c1"]
        assert registry.get_call("r1").mailboxes["b"].is_empty()

        again = registry.drain_mailbox("r1", "b")
        assert again.offers == {}
        assert again.answers == {}
        assert again.ice_candidates == {}

    def test_snapshot_unaffected_by_later_writes(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")
        registry.record_ice_candidate("r1", "a", "b", "c1")

        snapshot = registry.drain_mailbox("r1", "b")
        registry.record_ice_candidate("r1", "a", "b", "c2")

        assert [c["candidate"] for c in snapshot.ice_candidates["a"]] == ["c1"]

    def test_drain_without_mailbox_is_empty(self, registry):
        registry.get_or_create_call("r1")

        snapshot = registry.drain_mailbox("r1", "ghost")

        assert snapshot.offers == {}


class TestLeaveCleanup:
    """Everything a leaving user sent or was sent disappears."""

    def test_leave_scrubs_sender_entries(self, registry):
        registry.get_or_create_call("r1")
        for user in ("a", "b", "c"):
            registry.add_participant("r1", user)
        registry.record_offer("r1", "a", "b", "o")
        registry.record_answer("r1", "a", "c", "ans")
        registry.record_ice_candidate("r1", "a", "b", "cand")
        registry.record_offer("r1", "c", "b", "keep")

        registry.remove_participant("r1", "a")

        call = registry.get_call("r1")
        assert "a" not in call.mailboxes
        assert "a" not in call.participants
        for mailbox in call.mailboxes.values():
            assert "a" not in mailbox.offers
            assert "a" not in mailbox.answers
            assert "a" not in mailbox.ice_candidates
        assert call.mailboxes["b"].offers["c"]["offer"] == "keep"


class TestEviction:
    """Idle call eviction and stats."""

    def test_evict_idle_only_removes_stale_calls(self):
        clock = FakeClock()
        registry = CallRegistry(clock=clock)
        registry.get_or_create_call("old")
        registry.add_participant("old", "a")

        clock.advance(600)
        registry.get_or_create_call("fresh")
        registry.add_participant("fresh", "b")

        clock.advance(400)
        evicted = registry.evict_idle(900)

        assert evicted == ["old"]
        assert registry.get_call("old") is None
        assert registry.get_call("fresh") is not None

    def test_activity_keeps_call_alive(self):
        clock = FakeClock()
        registry = CallRegistry(clock=clock)
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")

        clock.advance(800)
        registry.record_ice_candidate("r1", "a", "b", "c1")
        clock.advance(800)

        assert registry.evict_idle(900) == []

    def test_leave_by_non_participant_does_not_keep_call_alive(self):
        clock = FakeClock()
        registry = CallRegistry(clock=clock)
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")

        for _ in range(5):
            clock.advance(1000)
            assert registry.remove_participant("r1", "stranger") is False

        assert registry.evict_idle(1800) == ["r1"]

    def test_leave_by_non_participant_keeps_parked_mailbox(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.record_offer("r1", "a", "b", {"sdp": "early"})

        registry.remove_participant("r1", "b")

        assert registry.get_call("r1").mailboxes["b"].offers["a"]["offer"] == {"sdp": "early"}

    def test_stats(self, registry):
        registry.get_or_create_call("r1")
        registry.add_participant("r1", "a")
        registry.add_participant("r1", "b")
        registry.get_or_create_call("r2")
        registry.add_participant("r2", "z")

        assert registry.stats() == {"active_calls": 2, "active_participants": 3}
        assert len(registry) == 2
