"""
Identity provider access token handling.

Phone OTP verification and token issuance happen at the external identity
provider; this service only verifies the HS256 access tokens it issues and
extracts the subject (the user id). ``create_access_token`` mints tokens with
the same claims for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from jose import ExpiredSignatureError, JWTError, jwt

from ponno.core.config import get_settings
from ponno.core.exceptions import AuthenticationError
from ponno.core.logging import get_logger

logger = get_logger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(
    user_id: UUID,
    expires_delta: Optional[timedelta] = None,
    extra_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: Subject of the token
        expires_delta: Token lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
        extra_claims: Additional claims merged into the payload

    Returns:
        Encoded JWT string
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "aud": settings.jwt_audience,
        "role": "authenticated",
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra_claims:
        payload.update(extra_claims)

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token.

    Args:
        token: JWT string from the Authorization header

    Returns:
        Dictionary of decoded token claims

    Raises:
        AuthenticationError: If the token is empty, expired or invalid
    """
    if not token:
        raise AuthenticationError("Access token required", code="MISSING_TOKEN")

    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except ExpiredSignatureError as e:
        logger.warning("Token has expired", error=str(e))
        raise AuthenticationError("Token expired", code="TOKEN_EXPIRED") from e
    except JWTError as e:
        logger.warning(
            "Invalid token",
            error=str(e),
            error_type=type(e).__name__,
        )
        raise AuthenticationError(
            "Invalid or expired token", code="INVALID_TOKEN"
        ) from e

    logger.debug(
        "Token decoded successfully",
        subject=payload.get("sub"),
        expires_at=payload.get("exp"),
    )
    return payload


def verify_access_token(token: str) -> UUID:
    """
    Verify an access token and return the identity it was issued for.

    Args:
        token: JWT string

    Returns:
        User id taken from the ``sub`` claim

    Raises:
        AuthenticationError: If the token is invalid or its subject is not a UUID
    """
    payload = decode_token(token)
    subject = payload.get("sub")

    if not subject:
        logger.warning("Token missing 'sub' claim")
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    try:
        return UUID(subject)
    except ValueError as e:
        logger.warning("Token subject is not a valid user id", subject=subject)
        raise AuthenticationError(
            "Invalid or expired token", code="INVALID_TOKEN"
        ) from e
