"""
Ride and RideMember models.

A ride is owned by one profile; other profiles join it through ride_members.
Only members whose status is the confirmed value count as riders.
"""
from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bruinsplit.models.base import Base, StringIDMixin, TimestampMixin

if TYPE_CHECKING:
    from bruinsplit.models.profile import Profile


class Ride(Base, StringIDMixin, TimestampMixin):
    """Ride posting."""

    __tablename__ = "rides"

    owner_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Profile that posted the ride (always a confirmed member)"
    )

    origin_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    destination_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    depart_at: Mapped[datetime | None] = mapped_column(nullable=True)
    platform: Mapped[str | None] = mapped_column(String(32), nullable=True)
    max_seats: Mapped[int | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    owner: Mapped["Profile"] = relationship(back_populates="owned_rides")
    members: Mapped[List["RideMember"]] = relationship(
        back_populates="ride",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Ride(id={self.id}, owner_id={self.owner_id})>"


class RideMember(Base):
    """Membership of a profile in a ride, with its request status."""

    __tablename__ = "ride_members"

    ride_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("rides.id", ondelete="CASCADE"),
        primary_key=True,
    )

    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        primary_key=True,
    )

    status: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Request status, e.g. 'CONFIRMED JOINING' or 'PENDING'"
    )

    joined_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )

    ride: Mapped["Ride"] = relationship(back_populates="members")
    user: Mapped["Profile"] = relationship(back_populates="ride_memberships")

    def __repr__(self) -> str:
        return f"<RideMember(ride_id={self.ride_id}, user_id={self.user_id}, status={self.status})>"


Index("idx_ride_members_ride_status", RideMember.ride_id, RideMember.status)
