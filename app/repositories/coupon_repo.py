# app/repositories/coupon_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, col, select

from app.models.coupon import Coupon, UserCoupon


class CouponRepository:
    """
    Data access layer for coupons and user_coupons.
    """

    # ----- Coupons -----

    def get_by_id(self, session: Session, coupon_id: uuid.UUID) -> Coupon | None:
        return session.get(Coupon, coupon_id)

    def get_by_code(self, session: Session, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == code.strip().upper())
        return session.exec(stmt).first()

    def list_coupons(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 100,
        only_active: bool = False,
    ) -> list[Coupon]:
        stmt = select(Coupon)
        if only_active:
            stmt = stmt.where(Coupon.is_active == True)  # noqa: E712
        stmt = stmt.order_by(col(Coupon.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def save(self, session: Session, coupon: Coupon) -> Coupon:
        session.add(coupon)
        session.commit()
        session.refresh(coupon)
        return coupon

    def delete(self, session: Session, coupon: Coupon) -> None:
        for uc in self.list_assignments_for_coupon(session, coupon.id):
            session.delete(uc)
        session.delete(coupon)
        session.commit()

    # ----- Assignments -----

    def get_assignment(
        self,
        session: Session,
        user_id: uuid.UUID,
        coupon_id: uuid.UUID,
    ) -> UserCoupon | None:
        stmt = select(UserCoupon).where(
            UserCoupon.user_id == user_id,
            UserCoupon.coupon_id == coupon_id,
        )
        return session.exec(stmt).first()

    def list_assignments_for_coupon(
        self,
        session: Session,
        coupon_id: uuid.UUID,
    ) -> list[UserCoupon]:
        stmt = select(UserCoupon).where(UserCoupon.coupon_id == coupon_id)
        return list(session.exec(stmt).all())

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[tuple[UserCoupon, Coupon]]:
        stmt = (
            select(UserCoupon, Coupon)
            .join(Coupon, Coupon.id == UserCoupon.coupon_id)
            .where(UserCoupon.user_id == user_id)
            .order_by(col(UserCoupon.assigned_at).desc())
        )
        return list(session.exec(stmt).all())

    def add_assignment(self, session: Session, assignment: UserCoupon) -> UserCoupon:
        session.add(assignment)
        session.commit()
        session.refresh(assignment)
        return assignment

    # ----- Stats -----

    def count_assignments(self, session: Session, used_only: bool = False) -> int:
        stmt = select(func.count()).select_from(UserCoupon)
        if used_only:
            stmt = stmt.where(col(UserCoupon.used_at).is_not(None))
        return int(session.exec(stmt).one() or 0)
