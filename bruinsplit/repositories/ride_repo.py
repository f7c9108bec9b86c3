"""
Ride repository for ride ownership and membership queries.
Answers the two questions call signaling asks of the database.
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bruinsplit.config import settings
from bruinsplit.core.exceptions import RideNotFound
from bruinsplit.models.ride import Ride, RideMember
from bruinsplit.repositories.base import BaseRepository


class RideRepository(BaseRepository[Ride]):
    """Repository for rides and their confirmed members."""

    def __init__(self, db: AsyncSession):
        super().__init__(Ride, db)
        self.confirmed_status = settings.confirmed_member_status

    async def _get_ride_or_raise(self, ride_id: str) -> Ride:
        ride = await self.get(ride_id)
        if ride is None:
            raise RideNotFound()
        return ride

    async def verify_ride_membership(self, ride_id: str, user_id: str) -> bool:
        """
        Check whether user_id is a confirmed rider of ride_id.

        The ride owner always counts as confirmed.

        Args:
            ride_id: Ride ID
            user_id: Profile ID

        Returns:
            True if the user is the owner or a confirmed member

        Raises:
            RideNotFound: If the ride does not exist
        """
        ride = await self._get_ride_or_raise(ride_id)
        if ride.owner_id == user_id:
            return True

        result = await self.db.execute(
            select(RideMember.user_id).where(
                RideMember.ride_id == ride_id,
                RideMember.user_id == user_id,
                RideMember.status == self.confirmed_status,
            )
        )
        return result.scalar_one_or_none() is not None

    async def get_confirmed_members(self, ride_id: str) -> List[str]:
        """
        List every confirmed rider of ride_id, owner first.

        Raises:
            RideNotFound: If the ride does not exist
        """
        ride = await self._get_ride_or_raise(ride_id)

        result = await self.db.execute(
            select(RideMember.user_id)
            .where(
                RideMember.ride_id == ride_id,
                RideMember.status == self.confirmed_status,
            )
            .order_by(RideMember.joined_at, RideMember.user_id)
        )
        members = [ride.owner_id]
        for user_id in result.scalars().all():
            if user_id not in members:
                members.append(user_id)
        return members
