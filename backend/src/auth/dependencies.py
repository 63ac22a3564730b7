"""Bearer-token authentication for the API routers.

The token only identifies the caller. The user row is loaded on every
request, so the role the access policy sees is always the current one and
never the role recorded in the token.

Usage:
    @router.put("/audits/approve/{file_id}")
    def approve(file_id: int, actor: Actor = Depends(get_current_actor)):
        ...

    @router.get("/audits/records")
    def records(user: User = Depends(require_role(UserRole.ADMIN))):
        ...
"""

from typing import Callable

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from domain.moderation.enums import UserRole
from domain.moderation.policy import Actor
from models.user import User
from .jwt import decode_token


bearer_scheme = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _subject_id(token: str) -> int:
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")
    try:
        return int(payload.get("sub", ""))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token: malformed subject claim")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """The user the bearer token was issued to, freshly loaded.

    Raises:
        HTTPException 401: Bad or expired token, or the account is gone
    """
    user = db.get(User, _subject_id(credentials.credentials))
    if user is None:
        raise _unauthorized("User not found")
    return user


def get_current_actor(current_user: User = Depends(get_current_user)) -> Actor:
    return Actor(id=current_user.id, role=UserRole(current_user.role))


def require_role(minimum: UserRole) -> Callable[..., User]:
    """Dependency admitting users whose current role is at least ``minimum``.

    Read endpoints use this; state-changing endpoints leave the decision to
    the access policy inside the services.
    """

    def check_role(current_user: User = Depends(get_current_user)) -> User:
        if UserRole(current_user.role) < minimum:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role {minimum.value} or higher",
            )
        return current_user

    return check_role
