"""
Call signaling API routes.

WebRTC peers find each other through these endpoints:
1. Each member joins the ride's call.
2. Peers exchange SDP offers/answers and ICE candidates addressed to one
   another; the server only holds them until the recipient polls.
3. Once connected, media flows peer to peer and the server is out of the loop.
"""
import logging
from contextlib import contextmanager
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

from bruinsplit.config import settings
from bruinsplit.core.exceptions import CallSignalingError
from bruinsplit.core.security import (
    SecurityException,
    decode_token,
    extract_token_from_header,
    user_id_from_payload,
)
from bruinsplit.dependencies import get_current_user, get_signaling_service
from bruinsplit.schemas.call import (
    AnswerRequest,
    CallInfoResponse,
    CallStatusResponse,
    IceCandidateRequest,
    JoinCallResponse,
    OfferRequest,
    SuccessResponse,
)
from bruinsplit.services.call_service import SignalingService

logger = logging.getLogger(__name__)

router = APIRouter()


def signaling_rate_key(request: Request) -> str:
    """
    Rate limit bucket for a request: the authenticated user, else the client IP.

    Riders behind one NAT each get their own budget for status polling.
    """
    try:
        token = extract_token_from_header(request.headers.get("Authorization"))
        return f"user:{user_id_from_payload(decode_token(token))}"
    except SecurityException:
        return get_remote_address(request)


def signaling_rate() -> str:
    return f"{settings.rate_limit_signaling_per_minute}/minute"


limiter = Limiter(key_func=signaling_rate_key)


@contextmanager
def signaling_errors(action: str, ride_id: str):
    """Translate signaling failures into HTTP errors."""
    try:
        yield
    except CallSignalingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(
            f"[CALLS] ❌ {action} failed: ride_id={ride_id}, error={type(e).__name__}: {str(e)}",
            exc_info=True
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )


@router.post(
    "/{ride_id}/join",
    response_model=JoinCallResponse,
    summary="Join a ride's call",
    description="Join (or start) the call for a ride. Only confirmed riders may join."
)
@limiter.limit(signaling_rate)
async def join_call(
    request: Request,
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """
    Join a call.

    Returns the users already in the call and every confirmed rider, so the
    client can tell "in the call" from "could join".
    """
    with signaling_errors("Join", ride_id):
        return await service.join(ride_id, current_user["id"])


@router.post(
    "/{ride_id}/offer/{target_user_id}",
    response_model=SuccessResponse,
    summary="Send a WebRTC offer"
)
@limiter.limit(signaling_rate)
async def send_offer(
    request: Request,
    ride_id: str,
    target_user_id: str,
    body: Optional[OfferRequest] = None,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """
    Send an SDP offer to another member.

    - **offer**: RTCSessionDescription; replaces any earlier offer you sent this user
    """
    with signaling_errors("Offer", ride_id):
        return await service.send_offer(
            ride_id, target_user_id, current_user["id"], body.offer if body else None
        )


@router.post(
    "/{ride_id}/answer/{target_user_id}",
    response_model=SuccessResponse,
    summary="Send a WebRTC answer"
)
@limiter.limit(signaling_rate)
async def send_answer(
    request: Request,
    ride_id: str,
    target_user_id: str,
    body: Optional[AnswerRequest] = None,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """Send an SDP answer back to the member who made the offer."""
    with signaling_errors("Answer", ride_id):
        return await service.send_answer(
            ride_id, target_user_id, current_user["id"], body.answer if body else None
        )


@router.post(
    "/{ride_id}/ice-candidate/{target_user_id}",
    response_model=SuccessResponse,
    summary="Send an ICE candidate"
)
@limiter.limit(signaling_rate)
async def send_ice_candidate(
    request: Request,
    ride_id: str,
    target_user_id: str,
    body: Optional[IceCandidateRequest] = None,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """Send one ICE candidate. Candidates are delivered in the order sent."""
    with signaling_errors("ICE candidate", ride_id):
        return await service.send_ice_candidate(
            ride_id, target_user_id, current_user["id"], body.candidate if body else None
        )


@router.get(
    "/{ride_id}/status",
    response_model=CallStatusResponse,
    response_model_exclude_none=True,
    summary="Poll for signaling",
    description="Returns and clears the offers, answers and ICE candidates waiting for you."
)
@limiter.limit(signaling_rate)
async def get_call_status(
    request: Request,
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """
    Poll for new signaling.

    Not being in a call is not an error: the response is just {"active": false}.
    """
    with signaling_errors("Status", ride_id):
        return await service.status(ride_id, current_user["id"])


@router.get(
    "/{ride_id}/info",
    response_model=CallInfoResponse,
    summary="Get call information",
    description="Whether the ride's call is running and who is in it. Does not consume signaling."
)
async def get_call_info(
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    with signaling_errors("Info", ride_id):
        return await service.info(ride_id, current_user["id"])


@router.delete(
    "/{ride_id}/leave",
    response_model=SuccessResponse,
    summary="Leave a call"
)
async def leave_call(
    ride_id: str,
    current_user: dict = Depends(get_current_user),
    service: SignalingService = Depends(get_signaling_service)
):
    """Leave the call. Always succeeds, even if you were not in it."""
    with signaling_errors("Leave", ride_id):
        return await service.leave(ride_id, current_user["id"])
