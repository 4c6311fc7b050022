# app/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

ROLE_USER = "user"
ROLE_ADMIN = "admin"

# auto_error=False: a missing Authorization header means "guest", not 403.
bearer_scheme = HTTPBearer(auto_error=False)

user_repo = UserRepository()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify a Supabase access token and return its claims.

    Checks the signature and `exp`. The `aud` claim is not checked since
    Supabase projects issue different audiences.

    Raises:
        HTTPException(401): bad signature, wrong algorithm or expired token.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError as exc:
        logger.info("Rejected access token: %s", exc)
        raise _unauthorized("Invalid or expired token")


def _default_name_from_email(email: str) -> str:
    # Local part of the address, clipped to the column width.
    return email.split("@", 1)[0][:50] or email[:50]


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the caller from the bearer token.

    - no header           -> None (guest checkout and public catalog)
    - valid token         -> the matching `users` row
    - valid token, no row -> a customer profile is created on the fly

    Raises:
        HTTPException(401): token invalid or missing `sub` / `email`.
    """
    if credentials is None:
        return None

    claims = decode_access_token(credentials.credentials)
    sub = claims.get("sub")
    email = claims.get("email")
    if not sub or not email:
        raise _unauthorized("Token missing sub/email")

    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise _unauthorized("Invalid sub in token")

    user = user_repo.get_by_id(session, user_id)
    if user is None:
        # New accounts always start as customers; admins are promoted later.
        user = user_repo.save(
            session,
            User(
                id=user_id,
                email=email,
                name=_default_name_from_email(email),
                role=ROLE_USER,
            ),
        )
        logger.info("Provisioned profile for %s", email)

    return user


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """Any signed-in account (401 for guests)."""
    if user is None:
        raise _unauthorized("Authentication required")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """Admin accounts only (403 otherwise)."""
    if user.role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


def require_user(user: User = Depends(require_auth)) -> User:
    """
    Customer accounts only.

    Guards the cart and checkout: admins do not shop, so they get 403.
    """
    if user.role != ROLE_USER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customer access required",
        )
    return user
