"""
Membership gate for ride calls.
Decides whether a user may act on (or be addressed in) a ride's call.
"""
import logging
from typing import List, Protocol

from bruinsplit.core.exceptions import Forbidden

logger = logging.getLogger(__name__)


class MembershipOracle(Protocol):
    """What the gate needs from persistence. RideRepository satisfies it."""

    async def verify_ride_membership(self, ride_id: str, user_id: str) -> bool:
        ...

    async def get_confirmed_members(self, ride_id: str) -> List[str]:
        ...


class MembershipGate:
    """
    Authorization checks against the membership oracle.

    RideNotFound raised by the oracle propagates unchanged; any other oracle
    failure is left to the caller to surface as a server error.
    """

    def __init__(self, oracle: MembershipOracle):
        self.oracle = oracle

    async def require_member(
        self,
        ride_id: str,
        user_id: str,
        message: str = "You must be a confirmed member of this ride"
    ) -> None:
        """
        Raise Forbidden unless user_id is a confirmed member of ride_id.

        Raises:
            RideNotFound: If the ride does not exist
            Forbidden: If the user is not the owner or a confirmed member
        """
        if not await self.oracle.verify_ride_membership(ride_id, user_id):
            logger.info(f"[CALLS] Membership denied: ride={ride_id}, user={user_id}")
            raise Forbidden(message)

    async def confirmed_members(self, ride_id: str) -> List[str]:
        """Full roster of the ride, owner included."""
        return list(await self.oracle.get_confirmed_members(ride_id))
