"""
SQLAlchemy models for the BruinSplit server.

All models are imported here so Base.metadata knows every table.
"""

# Import Base first
from bruinsplit.models.base import Base, TimestampMixin, StringIDMixin

# Import all models (order matters for relationships)
from bruinsplit.models.profile import Profile
from bruinsplit.models.ride import Ride, RideMember

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "StringIDMixin",
    # Profiles
    "Profile",
    # Rides
    "Ride",
    "RideMember",
]
