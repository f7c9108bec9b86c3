"""
Call signaling service.

Routes WebRTC signaling (SDP offers/answers and ICE candidates) between the
members of a ride's call. Media never passes through here: peers exchange
connection metadata via the registry, then talk to each other directly.

Every operation does its awaiting (membership checks, roster lookups) first
and only then mutates the registry, so no request can observe or produce a
half-written mailbox.
"""
import logging
from typing import Any, Dict, Iterable, Optional

from bruinsplit.core.call_registry import CallRegistry
from bruinsplit.core.exceptions import BadRequest, NotInCall
from bruinsplit.services.membership_gate import MembershipGate
from bruinsplit.utils.datetime_utils import to_iso_utc

logger = logging.getLogger(__name__)

SIGNAL_OFFER = "offer"
SIGNAL_ANSWER = "answer"
SIGNAL_ICE_CANDIDATE = "ice-candidate"


def _missing(payload: Any) -> bool:
    return payload is None or payload == ""


class SignalingService:
    """Service for call signaling with membership-gated access."""

    def __init__(
        self,
        registry: CallRegistry,
        gate: MembershipGate,
        notifier: Optional[Any] = None
    ):
        """
        Initialize signaling service.

        Args:
            registry: Call state store shared across requests
            gate: Membership checks for the current request's database session
            notifier: Optional push channel (ConnectionManager) used to nudge
                clients to poll; delivery itself always goes through status()
        """
        self.registry = registry
        self.gate = gate
        self.notifier = notifier

    async def join(self, ride_id: str, user_id: str) -> Dict[str, Any]:
        """
        Join (or create) the call for a ride.

        Returns:
            callId, current participants and the full confirmed roster

        Raises:
            RideNotFound: If the ride does not exist
            Forbidden: If the user is not a confirmed member
        """
        await self.gate.require_member(
            ride_id,
            user_id,
            "You must be a confirmed member of this ride to join the call"
        )
        all_members = await self.gate.confirmed_members(ride_id)

        self.registry.get_or_create_call(ride_id)
        call = self.registry.add_participant(ride_id, user_id)
        participants = call.participant_list()

        logger.info(f"[CALLS] User {user_id} joined call for ride {ride_id} ({len(participants)} in call)")

        await self._notify_participants(
            "participant_joined",
            ride_id,
            user_id,
            (p for p in participants if p != user_id)
        )

        return {
            "success": True,
            "call_id": ride_id,
            "participants": participants,
            "all_members": all_members,
        }

    async def send_offer(self, ride_id: str, target_user_id: str, from_user_id: str, offer: Any) -> Dict[str, Any]:
        """Store from_user_id's SDP offer for target_user_id (latest wins)."""
        if _missing(offer):
            raise BadRequest("Offer is required")
        await self._route(ride_id, target_user_id, from_user_id)
        self.registry.record_offer(ride_id, from_user_id, target_user_id, offer)
        await self._notify_signal(SIGNAL_OFFER, ride_id, target_user_id, from_user_id)
        return {"success": True}

    async def send_answer(self, ride_id: str, target_user_id: str, from_user_id: str, answer: Any) -> Dict[str, Any]:
        """Store from_user_id's SDP answer for target_user_id (latest wins)."""
        if _missing(answer):
            raise BadRequest("Answer is required")
        await self._route(ride_id, target_user_id, from_user_id)
        self.registry.record_answer(ride_id, from_user_id, target_user_id, answer)
        await self._notify_signal(SIGNAL_ANSWER, ride_id, target_user_id, from_user_id)
        return {"success": True}

    async def send_ice_candidate(
        self,
        ride_id: str,
        target_user_id: str,
        from_user_id: str,
        candidate: Any
    ) -> Dict[str, Any]:
        """Append an ICE candidate from from_user_id to target_user_id's mailbox."""
        if _missing(candidate):
            raise BadRequest("Candidate is required")
        await self._route(ride_id, target_user_id, from_user_id)
        self.registry.record_ice_candidate(ride_id, from_user_id, target_user_id, candidate)
        await self._notify_signal(SIGNAL_ICE_CANDIDATE, ride_id, target_user_id, from_user_id)
        return {"success": True}

    async def _route(self, ride_id: str, target_user_id: str, from_user_id: str) -> None:
        """
        Check that a signal from from_user_id to target_user_id may be stored.

        The sender must be in the call. The target must be a confirmed ride
        member but need not have joined yet: their mailbox is created on
        demand so an offer that races ahead of their join is not lost.
        """
        self._require_participant(ride_id, from_user_id)

        await self.gate.require_member(
            ride_id,
            target_user_id,
            "Target user is not a confirmed member of this ride"
        )

        # The membership check awaited; the sender may have left meanwhile
        self._require_participant(ride_id, from_user_id)
        self.registry.ensure_mailbox(ride_id, target_user_id)

    def _require_participant(self, ride_id: str, user_id: str) -> None:
        call = self.registry.get_call(ride_id)
        if call is None or user_id not in call.participants:
            raise NotInCall("You are not in this call")

    async def status(self, ride_id: str, user_id: str) -> Dict[str, Any]:
        """
        Poll for signaling addressed to user_id.

        Destructive: everything returned is removed from the mailbox. A call
        that does not exist (yet) is not an error, just inactive.
        """
        call = self.registry.get_call(ride_id)
        if call is None or user_id not in call.participants:
            return {"active": False}

        snapshot = self.registry.drain_mailbox(ride_id, user_id)
        return {
            "active": True,
            "participants": call.participant_list(),
            "offers": snapshot.offers,
            "answers": snapshot.answers,
            "ice_candidates": snapshot.ice_candidates,
        }

    async def info(self, ride_id: str, user_id: str) -> Dict[str, Any]:
        """
        Describe the ride's call without consuming any signaling.

        Raises:
            RideNotFound: If the ride does not exist
            Forbidden: If the user is not a confirmed member
        """
        await self.gate.require_member(ride_id, user_id)
        all_members = await self.gate.confirmed_members(ride_id)

        call = self.registry.get_call(ride_id)
        if call is None:
            return {
                "active": False,
                "participants": [],
                "all_members": all_members,
                "created_at": None,
            }

        return {
            "active": True,
            "participants": call.participant_list(),
            "all_members": all_members,
            "created_at": to_iso_utc(call.created_at),
        }

    async def leave(self, ride_id: str, user_id: str) -> Dict[str, Any]:
        """Leave the call. Safe to call when not in it."""
        call = self.registry.get_call(ride_id)
        was_participant = call is not None and user_id in call.participants
        remaining = [p for p in call.participant_list() if p != user_id] if call else []

        ended = self.registry.remove_participant(ride_id, user_id)

        if was_participant:
            logger.info(f"[CALLS] User {user_id} left call for ride {ride_id} (call ended: {ended})")
            await self._notify_participants("participant_left", ride_id, user_id, remaining)

        return {"success": True}

    async def _notify_signal(self, kind: str, ride_id: str, target_user_id: str, from_user_id: str) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify_call_signal(target_user_id, ride_id, kind, from_user_id)
        except Exception as e:
            logger.warning(f"[CALLS] Failed to push {kind} notice to {target_user_id}: {e}")

    async def _notify_participants(
        self,
        event: str,
        ride_id: str,
        user_id: str,
        recipients: Iterable[str]
    ) -> None:
        if self.notifier is None:
            return
        targets = list(recipients)
        if not targets:
            return
        try:
            if event == "participant_joined":
                await self.notifier.notify_participant_joined(targets, ride_id, user_id)
            else:
                await self.notifier.notify_participant_left(targets, ride_id, user_id)
        except Exception as e:
            logger.warning(f"[CALLS] Failed to push {event} for ride {ride_id}: {e}")
