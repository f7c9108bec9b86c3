"""
In-memory registry of active ride calls.

Holds every Call (one per ride) and, inside each call, one PeerMailbox per
user holding the offers, answers and ICE candidates addressed to that user.

Every method here is synchronous. Callers do their awaiting (membership
checks, database reads) before touching the registry, so a mutation always
runs to completion on the event loop without interleaving with another
request.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Set

from bruinsplit.utils.datetime_utils import epoch_ms, utc_now

logger = logging.getLogger(__name__)


@dataclass
class PeerMailbox:
    """
    Inbound signaling for one participant of one call, keyed by sender id.

    Offers and answers keep only the latest entry per sender. ICE candidates
    accumulate per sender in submission order.
    """

    offers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    answers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    ice_candidates: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.offers or self.answers or self.ice_candidates)

    def forget_sender(self, sender_id: str) -> None:
        self.offers.pop(sender_id, None)
        self.answers.pop(sender_id, None)
        self.ice_candidates.pop(sender_id, None)


@dataclass
class MailboxSnapshot:
    """Contents of a mailbox at the moment it was drained."""

    offers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    answers: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    ice_candidates: Dict[str, List[Dict[str, Any]]] = field(default_factory=dict)


@dataclass
class Call:
    """One active signaling session for a ride."""

    ride_id: str
    created_at: datetime
    last_activity_at: datetime
    participants: Set[str] = field(default_factory=set)
    mailboxes: Dict[str, PeerMailbox] = field(default_factory=dict)

    def participant_list(self) -> List[str]:
        return sorted(self.participants)


class CallRegistry:
    """
    Owns ride id -> Call and, per call, user id -> PeerMailbox.

    Primitive and non-authorizing: membership checks belong to the caller.
    Methods that address a call which does not exist raise KeyError.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._calls: Dict[str, Call] = {}
        self._clock = clock

    def __contains__(self, ride_id: str) -> bool:
        return ride_id in self._calls

    def __len__(self) -> int:
        return len(self._calls)

    def get_call(self, ride_id: str) -> Optional[Call]:
        return self._calls.get(ride_id)

    def get_or_create_call(self, ride_id: str) -> Call:
        call = self._calls.get(ride_id)
        if call is None:
            now = self._clock()
            call = Call(ride_id=ride_id, created_at=now, last_activity_at=now)
            self._calls[ride_id] = call
            logger.info(f"[CALLS] Call created for ride {ride_id}")
        return call

    def _require_call(self, ride_id: str) -> Call:
        call = self._calls.get(ride_id)
        if call is None:
            raise KeyError(ride_id)
        return call

    def add_participant(self, ride_id: str, user_id: str) -> Call:
        call = self._require_call(ride_id)
        call.participants.add(user_id)
        call.mailboxes.setdefault(user_id, PeerMailbox())
        call.last_activity_at = self._clock()
        return call

    def ensure_mailbox(self, ride_id: str, user_id: str) -> PeerMailbox:
        """Create a mailbox for user_id without making them a participant."""
        call = self._require_call(ride_id)
        return call.mailboxes.setdefault(user_id, PeerMailbox())

    def remove_participant(self, ride_id: str, user_id: str) -> bool:
        """
        Drop user_id from the call and scrub every trace of them.

        Deletes their mailbox, removes them as a sender from every other
        mailbox, and deletes the call once no participants remain.

        A user who is not a participant is ignored: the call's activity time
        and any mailbox parked for them stay as they are.

        Returns:
            True if the call was torn down by this removal
        """
        call = self._calls.get(ride_id)
        if call is None or user_id not in call.participants:
            return False

        call.participants.discard(user_id)
        call.mailboxes.pop(user_id, None)
        for mailbox in call.mailboxes.values():
            mailbox.forget_sender(user_id)
        call.last_activity_at = self._clock()

        if not call.participants:
            del self._calls[ride_id]
            logger.info(f"[CALLS] Last participant left, call for ride {ride_id} ended")
            return True
        return False

    def record_offer(self, ride_id: str, from_user_id: str, target_user_id: str, offer: Any) -> None:
        mailbox = self._touch(ride_id, target_user_id)
        mailbox.offers[from_user_id] = {
            "from": from_user_id,
            "offer": offer,
            "timestamp": epoch_ms(),
        }

    def record_answer(self, ride_id: str, from_user_id: str, target_user_id: str, answer: Any) -> None:
        mailbox = self._touch(ride_id, target_user_id)
        mailbox.answers[from_user_id] = {
            "from": from_user_id,
            "answer": answer,
            "timestamp": epoch_ms(),
        }

    def record_ice_candidate(self, ride_id: str, from_user_id: str, target_user_id: str, candidate: Any) -> None:
        mailbox = self._touch(ride_id, target_user_id)
        mailbox.ice_candidates.setdefault(from_user_id, []).append({
            "from": from_user_id,
            "candidate": candidate,
            "timestamp": epoch_ms(),
        })

    def _touch(self, ride_id: str, user_id: str) -> PeerMailbox:
        mailbox = self.ensure_mailbox(ride_id, user_id)
        self._calls[ride_id].last_activity_at = self._clock()
        return mailbox

    def drain_mailbox(self, ride_id: str, user_id: str) -> MailboxSnapshot:
        """Return everything addressed to user_id and clear it."""
        call = self._require_call(ride_id)
        call.last_activity_at = self._clock()
        mailbox = call.mailboxes.get(user_id)
        if mailbox is None:
            return MailboxSnapshot()

        snapshot = MailboxSnapshot(
            offers=mailbox.offers,
            answers=mailbox.answers,
            ice_candidates=mailbox.ice_candidates,
        )
        # Swap in fresh containers so the snapshot stays intact for the caller
        mailbox.offers = {}
        mailbox.answers = {}
        mailbox.ice_candidates = {}
        return snapshot

    def evict_idle(self, max_idle_seconds: int, now: Optional[datetime] = None) -> List[str]:
        """
        Delete calls with no activity for max_idle_seconds.

        Returns:
            Ride ids of the evicted calls
        """
        now = now or self._clock()
        cutoff = now - timedelta(seconds=max_idle_seconds)
        evicted = [
            ride_id for ride_id, call in self._calls.items()
            if call.last_activity_at < cutoff
        ]
        for ride_id in evicted:
            del self._calls[ride_id]
        return evicted

    def stats(self) -> Dict[str, int]:
        return {
            "active_calls": len(self._calls),
            "active_participants": sum(len(c.participants) for c in self._calls.values()),
        }
