"""
Profile model - the public profile row behind every authenticated user.
"""
from typing import TYPE_CHECKING, List

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bruinsplit.models.base import Base, StringIDMixin, TimestampMixin

if TYPE_CHECKING:
    from bruinsplit.models.ride import Ride, RideMember


class Profile(Base, StringIDMixin, TimestampMixin):
    """
    Profile model.

    The JWT's userId claim is a profiles.id; authentication resolves the
    caller by loading this row.
    """

    __tablename__ = "profiles"

    email: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        doc="User email address"
    )

    username: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        doc="Username"
    )

    first_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Relationships
    owned_rides: Mapped[List["Ride"]] = relationship(back_populates="owner")
    ride_memberships: Mapped[List["RideMember"]] = relationship(back_populates="user")

    def to_user_dict(self) -> dict:
        """Shape used for the authenticated user attached to each request."""
        return {
            "id": self.id,
            "email": self.email,
            "username": self.username,
            "first_name": self.first_name,
            "last_name": self.last_name,
        }

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, username={self.username})>"
