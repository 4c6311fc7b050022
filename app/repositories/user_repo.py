# app/repositories/user_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.user import User


class UserRepository:
    """Queries and writes for shop accounts. Every write commits."""

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        return session.get(User, user_id)

    def get_many(self, session: Session, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, User]:
        """Accounts keyed by id. Ids with no row are left out."""
        if not user_ids:
            return {}
        rows = session.exec(select(User).where(col(User.id).in_(user_ids))).all()
        return {row.id: row for row in rows}

    def list_users(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        role: str | None = None,
    ) -> list[User]:
        """Oldest accounts first, optionally narrowed to one role."""
        stmt = select(User).order_by(col(User.created_at))
        if role:
            stmt = stmt.where(User.role == role)
        return list(session.exec(stmt.offset(skip).limit(limit)).all())

    def save(self, session: Session, user: User) -> User:
        """Insert a new account or persist edits to an existing one."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    def delete(self, session: Session, user: User) -> None:
        session.delete(user)
        session.commit()
