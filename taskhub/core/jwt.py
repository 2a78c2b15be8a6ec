"""
Bearer token issuing and verification.

Tokens are stateless HS256 JWTs carrying the user id in ``sub``.
Validity is decided only by signature and expiry; callers must still
load the live user record.
"""

from datetime import timedelta
from typing import Optional
from uuid import UUID

import jwt

from taskhub.core.config import Settings, settings as default_settings
from taskhub.errors import ExpiredTokenError, InvalidTokenError
from taskhub.utils.time import utc_now


def create_access_token(
    user_id: UUID,
    settings: Optional[Settings] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed access token for a user id."""
    settings = settings or default_settings
    issued_at = utc_now()
    expires_at = issued_at + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> UUID:
    """
    Verify a token and return its subject user id.

    Raises:
        ExpiredTokenError: the token was valid but its ``exp`` has passed
        InvalidTokenError: bad signature, bad structure or missing subject
    """
    settings = settings or default_settings
    if not token:
        raise InvalidTokenError("Access denied. No token provided.")

    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError("Token expired")
    except jwt.InvalidTokenError:
        raise InvalidTokenError("Invalid token")

    try:
        return UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise InvalidTokenError("Invalid token payload")
