"""
Dependency injection for FastAPI routes.
Provides reusable dependencies for authentication and call signaling.
"""
import logging
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bruinsplit.core.cache import cache_profile, get_cached_profile
from bruinsplit.core.call_registry import CallRegistry
from bruinsplit.core.database import get_db
from bruinsplit.core.security import (
    decode_token,
    extract_token_from_header,
    user_id_from_payload,
)
from bruinsplit.models.profile import Profile
from bruinsplit.repositories.base import BaseRepository
from bruinsplit.repositories.ride_repo import RideRepository
from bruinsplit.services.call_service import SignalingService
from bruinsplit.services.membership_gate import MembershipGate

logger = logging.getLogger(__name__)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    Dependency to get the current authenticated user.

    Flow:
    1. Decode the Bearer JWT locally
    2. Read the profile id from its userId claim
    3. Load the profile from cache, falling back to the profiles table

    Returns:
        Dictionary with id, email, username, first_name, last_name

    Raises:
        HTTPException: 401 if token is missing/invalid or the profile is gone

    Example:
        ```python
        @router.get("/protected")
        async def protected_route(current_user: dict = Depends(get_current_user)):
            return {"user": current_user["username"]}
        ```
    """
    try:
        token = extract_token_from_header(authorization)
        user_id = user_id_from_payload(decode_token(token))

        cached = await get_cached_profile(user_id)
        if cached:
            return cached

        profile = await BaseRepository(Profile, db).get(user_id)
        if profile is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
                headers={"WWW-Authenticate": "Bearer"},
            )

        user = profile.to_user_dict()
        await cache_profile(user_id, user)
        return user

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"[AUTH] Unexpected authentication error: {type(e).__name__}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        )


def get_call_registry(request: Request) -> CallRegistry:
    """The process-wide registry created at application startup."""
    return request.app.state.call_registry


def get_notifier(request: Request):
    """Push channel for signaling notices, if the app has one."""
    return getattr(request.app.state, "notifier", None)


async def get_signaling_service(
    registry: CallRegistry = Depends(get_call_registry),
    notifier=Depends(get_notifier),
    db: AsyncSession = Depends(get_db)
) -> SignalingService:
    """Signaling service bound to this request's database session."""
    gate = MembershipGate(RideRepository(db))
    return SignalingService(registry, gate, notifier)
