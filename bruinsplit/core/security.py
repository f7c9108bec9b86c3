"""
Security utilities for authentication.
Handles JWT token creation and validation.
"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from fastapi import HTTPException, status
from bruinsplit.config import settings


class SecurityException(HTTPException):
    """Custom exception for security-related errors."""
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_access_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create JWT access token.

    Args:
        data: Payload data to encode
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token

    Example:
        ```python
        token = create_access_token(
            data={"userId": profile_id},
            expires_delta=timedelta(hours=24)
        )
        ```
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)

    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(hours=settings.jwt_expiration_hours)

    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(
        to_encode,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate JWT token.

    Raises:
        SecurityException: If token is invalid or expired
    """
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise SecurityException("Invalid or expired token")
    except jwt.InvalidTokenError:
        raise SecurityException("Invalid or expired token")


def user_id_from_payload(payload: Dict[str, Any]) -> str:
    """
    Pull the profile id out of a decoded token.

    Tokens issued by the auth service carry it as "userId"; "sub" is accepted
    for standard-claim tokens.

    Raises:
        SecurityException: If neither claim is present
    """
    user_id = payload.get("userId") or payload.get("sub")
    if not user_id:
        raise SecurityException("Invalid or expired token")
    return str(user_id)


def extract_token_from_header(authorization: str) -> str:
    """
    Extract JWT token from Authorization header.

    Args:
        authorization: Authorization header value (e.g., "Bearer <token>")

    Raises:
        SecurityException: If header format is invalid
    """
    if not authorization:
        raise SecurityException("No token provided")

    parts = authorization.split()

    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise SecurityException("No token provided")

    return parts[1]
