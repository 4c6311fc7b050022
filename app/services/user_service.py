# app/services/user_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import UserCreate, UserRoleUpdate, UserUpdate

logger = logging.getLogger(__name__)


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UserService:
    """Profile edits for signed-in accounts and account management for admins."""

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def create_me(self, session: Session, current_user: User, payload: UserCreate) -> User:
        # The row already exists (auth provisions it); this only fills in
        # the editable fields. Email is owned by Supabase and never changes here.
        if payload.email and payload.email.lower() != current_user.email.lower():
            raise _bad_request("Email cannot be changed")
        return self._edit_profile(session, current_user, payload)

    def update_me(self, session: Session, current_user: User, payload: UserUpdate) -> User:
        return self._edit_profile(session, current_user, payload)

    def _edit_profile(self, session: Session, user: User, payload: UserUpdate | UserCreate) -> User:
        if payload.name is not None:
            user.name = payload.name
        if payload.phone is not None:
            user.phone = payload.phone.strip() or None
        return self.repo.save(session, user)

    # ----- Admin -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        role: str | None = None,
    ) -> list[User]:
        return self.repo.list_users(session, skip=skip, limit=limit, role=role)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.repo.get_by_id(session, user_id)
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    def update_role(
        self,
        session: Session,
        acting_admin: User,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Promote or demote an account.

        The calling admin may not drop their own admin role, which keeps
        at least one admin in the shop.
        """
        target = self.get_user(session, user_id)
        if target.id == acting_admin.id and payload.role != "admin":
            raise _bad_request("Admins cannot demote themselves")

        target.role = payload.role
        target = self.repo.save(session, target)
        logger.info("Role of %s changed to %s by admin %s", target.email, target.role, acting_admin.id)
        return target

    def delete_user(self, session: Session, acting_admin: User, user_id: uuid.UUID) -> None:
        target = self.get_user(session, user_id)
        if target.id == acting_admin.id:
            raise _bad_request("Admins cannot delete themselves")

        self.repo.delete(session, target)
        logger.info("Account %s removed by admin %s", user_id, acting_admin.id)
