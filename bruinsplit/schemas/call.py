"""
Pydantic schemas for call signaling requests and responses.

Responses are serialized in camelCase (allMembers, iceCandidates, createdAt)
to match what the browser client reads.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split('_')
    return components[0] + ''.join(x.title() for x in components[1:])


class CamelModel(BaseModel):
    """Base model that reads snake_case and writes camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Request Schemas
# ============================================================================

class OfferRequest(BaseModel):
    """Body of POST /calls/{rideId}/offer/{targetUserId}."""

    offer: Optional[Any] = Field(default=None, description="RTCSessionDescription of type 'offer'")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"offer": {"type": "offer", "sdp": "v=0\r\n..."}}
        }
    )


class AnswerRequest(BaseModel):
    """Body of POST /calls/{rideId}/answer/{targetUserId}."""

    answer: Optional[Any] = Field(default=None, description="RTCSessionDescription of type 'answer'")


class IceCandidateRequest(BaseModel):
    """Body of POST /calls/{rideId}/ice-candidate/{targetUserId}."""

    candidate: Optional[Any] = Field(default=None, description="RTCIceCandidate as JSON")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "candidate": {
                    "candidate": "candidate:1 1 UDP 2122252543 192.168.1.2 54400 typ host",
                    "sdpMid": "0",
                    "sdpMLineIndex": 0
                }
            }
        }
    )


# ============================================================================
# Response Schemas
# ============================================================================

class SuccessResponse(CamelModel):
    """Acknowledgement for mutating endpoints."""

    success: bool = True


class JoinCallResponse(CamelModel):
    """Result of joining a ride's call."""

    success: bool = True
    call_id: str
    participants: List[str] = Field(description="Users currently in the call")
    all_members: List[str] = Field(description="Every confirmed rider, owner included")


class CallStatusResponse(CamelModel):
    """
    Signaling drained for the caller.

    Only `active` is present when the caller is not in a call.
    Entries are keyed by sender id.
    """

    active: bool
    participants: Optional[List[str]] = None
    offers: Optional[Dict[str, Dict[str, Any]]] = None
    answers: Optional[Dict[str, Dict[str, Any]]] = None
    ice_candidates: Optional[Dict[str, List[Dict[str, Any]]]] = None


class CallInfoResponse(CamelModel):
    """Non-destructive view of a ride's call."""

    active: bool
    participants: List[str] = Field(default_factory=list)
    all_members: List[str] = Field(default_factory=list)
    created_at: Optional[str] = Field(default=None, description="ISO 8601 UTC creation time")
