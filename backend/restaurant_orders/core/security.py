"""
JWT token utilities.

Bearer tokens are issued by the authentication service that sits in front of
this API. This module only verifies them and exposes their claims; it also
keeps a token issuing helper for tooling and tests that need a valid token
signed with the configured key.

Claims layout:
- sub: subject (user) id, as a string
- email: user email
- role: one of CLIENTE, RESTAURANTE, ADMIN
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from restaurant_orders.core.config import get_settings
from restaurant_orders.core.logging import get_logger

logger = get_logger(__name__)


class SecurityError(Exception):
    """Base exception for security-related errors."""

    def __init__(self, message: str, code: str, **context):
        super().__init__(message)
        self.code = code
        self.context = context


class TokenError(SecurityError):
    """Exception raised for token-related errors."""

    pass


def create_access_token(
    subject_id: int,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed JWT access token.

    Args:
        subject_id: User id placed in the ``sub`` claim
        email: User email
        role: Role claim value
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Raises:
        TokenError: If token creation fails
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )

    to_encode = {
        "sub": str(subject_id),
        "email": email,
        "role": role,
        "exp": expire,
        "iat": now,
        "type": "access",
    }

    try:
        encoded_jwt = jwt.encode(
            to_encode,
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
    except JWTError as e:
        logger.error(
            "Failed to create access token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError(
            "Failed to create access token",
            code="TOKEN_CREATE_FAILED",
            original_error=str(e),
        ) from e

    logger.debug(
        "Access token created",
        subject=str(subject_id),
        expires_at=expire.isoformat(),
    )
    return encoded_jwt


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Dictionary of decoded token claims

    Raises:
        TokenError: If token is invalid, expired, or malformed
    """
    if not token:
        logger.warning("Attempted to decode empty token")
        raise TokenError("Token cannot be empty", code="EMPTY_TOKEN")

    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as e:
        logger.warning("Token has expired", error=str(e))
        raise TokenError("Token has expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise TokenError(
            "Invalid token",
            code="TOKEN_INVALID",
            original_error=str(e),
        ) from e

    if payload.get("type", "access") != "access":
        logger.warning(
            "Token type mismatch",
            expected="access",
            actual=payload.get("type"),
            subject=payload.get("sub"),
        )
        raise TokenError("Invalid token type", code="TOKEN_TYPE_INVALID")

    logger.debug(
        "Token decoded successfully",
        subject=payload.get("sub"),
        expires_at=payload.get("exp"),
    )
    return payload
