# app/routers/users.py
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserCreate, UserRead, UserRoleUpdate, UserUpdate
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

service = UserService(UserRepository())


@router.get("/me", response_model=UserRead)
def my_profile(account: User = Depends(require_auth)):
    # The auth dependency has already provisioned the row.
    return account


@router.post("/me", response_model=UserRead)
def complete_my_profile(
    payload: UserCreate,
    session: Session = Depends(get_session),
    account: User = Depends(require_auth),
):
    """Set name and phone after sign-up; a mismatched email is a 400."""
    return service.create_me(session, account, payload)


@router.patch("/me", response_model=UserRead)
def edit_my_profile(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    account: User = Depends(require_auth),
):
    return service.update_me(session, account, payload)


# -------- Account management (admin) --------


@router.get("", response_model=list[UserRead], dependencies=[Depends(require_admin)])
def list_accounts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    role: Literal["user", "admin"] | None = None,
    session: Session = Depends(get_session),
):
    return service.list_users(session, skip, limit, role)


@router.get("/{user_id}", response_model=UserRead, dependencies=[Depends(require_admin)])
def get_account(user_id: uuid.UUID, session: Session = Depends(get_session)):
    return service.get_user(session, user_id)


@router.patch("/{user_id}/role", response_model=UserRead)
def set_account_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """Switch an account between customer and admin."""
    return service.update_role(session, admin, user_id, payload)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_account(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    service.delete_user(session, admin, user_id)
