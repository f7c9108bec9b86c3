"""
Repository exports.
Provides data access for the application.
"""
from bruinsplit.repositories.base import BaseRepository
from bruinsplit.repositories.ride_repo import RideRepository

__all__ = [
    "BaseRepository",
    "RideRepository",
]
