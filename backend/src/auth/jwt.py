"""JWT access token creation and validation.

Token claims:
- sub: user id as a string
- role: role at issuance; informational only, the role used for policy is
  re-read from the database on every request
- username: display name
- iat / exp: issued-at and expiry (iat + JWT_EXPIRY_MINUTES)

Tokens are HS256-signed with JWT_SECRET. Issuance for end users belongs to
the login flow in front of this service; ``create_access_token`` is used by
operator scripts and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from config import settings


def _get_jwt_secret() -> str:
    if not settings.JWT_SECRET:
        raise ValueError("JWT_SECRET is not configured")
    return settings.JWT_SECRET


def create_access_token(
    user_id: int,
    role: str,
    username: str,
    expires_in: Optional[timedelta] = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: Id of the user the token authenticates
        role: User's role (NORMAL, VOLUNTEER, ADMIN)
        username: User's username
        expires_in: Lifetime override; defaults to JWT_EXPIRY_MINUTES

    Returns:
        str: Signed JWT
    """
    now = datetime.now(timezone.utc)
    expiration = now + (expires_in or timedelta(minutes=settings.JWT_EXPIRY_MINUTES))

    payload = {
        'sub': str(user_id),
        'role': role,
        'username': username,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp())
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired
        jwt.InvalidTokenError: If the token is malformed or tampered with
    """
    return jwt.decode(token, _get_jwt_secret(), algorithms=[settings.JWT_ALGORITHM])
