"""
Domain exceptions for call signaling.

Each carries the HTTP status it maps to so the API layer can translate it
without a lookup table.
"""
from fastapi import status


class CallSignalingError(Exception):
    """Base class for recoverable signaling failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Signaling request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RideNotFound(CallSignalingError):
    """The referenced ride does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Ride not found"


class Forbidden(CallSignalingError):
    """Caller or target is not a confirmed member of the ride."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You must be a confirmed member of this ride"


class NotInCall(CallSignalingError):
    """Caller tried to signal without having joined the call."""

    status_code = status.HTTP_404_NOT_FOUND
    default_message = "You are not in this call"


class BadRequest(CallSignalingError):
    """Required payload field is missing."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"
