# app/services/coupon_service.py
import logging
import uuid
from decimal import Decimal

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.pricing import ZERO, coupon_discount, to_money
from app.core.time_utils import as_utc, utcnow
from app.models.coupon import Coupon, UserCoupon
from app.repositories.coupon_repo import CouponRepository
from app.repositories.user_repo import UserRepository
from app.schemas.coupon import (
    CouponCreate,
    CouponRead,
    CouponStats,
    CouponUpdate,
    CouponValidationResult,
    UserCouponRead,
)

logger = logging.getLogger(__name__)


class CouponService:
    """
    Business logic for coupons.

    Responsibilities:
      - CRUD with unique (upper-cased) codes
      - assigning coupons to users
      - validating a code against an order amount
      - recording redemption once an order is paid
    """

    def __init__(self, repo: CouponRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    # ----- Admin CRUD -----

    def list_coupons(self, session: Session, skip: int = 0, limit: int = 100) -> list[Coupon]:
        return self.repo.list_coupons(session, skip=skip, limit=limit)

    def get_coupon(self, session: Session, coupon_id: uuid.UUID) -> Coupon:
        coupon = self.repo.get_by_id(session, coupon_id)
        if not coupon:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Coupon not found",
            )
        return coupon

    def create_coupon(self, session: Session, payload: CouponCreate) -> Coupon:
        if self.repo.get_by_code(session, payload.code):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Coupon code {payload.code} already exists",
            )
        if payload.discount_type == "percentage" and payload.discount_value > 100:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Percentage discount cannot exceed 100",
            )
        coupon = Coupon(**payload.model_dump())
        coupon = self.repo.save(session, coupon)
        logger.info("Coupon %s created", coupon.code)
        return coupon

    def update_coupon(
        self,
        session: Session,
        coupon_id: uuid.UUID,
        payload: CouponUpdate,
    ) -> Coupon:
        coupon = self.get_coupon(session, coupon_id)
        for field, value in payload.model_dump(exclude_unset=True).items():
            setattr(coupon, field, value)
        if coupon.discount_type == "percentage" and coupon.discount_value > 100:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Percentage discount cannot exceed 100",
            )
        return self.repo.save(session, coupon)

    def delete_coupon(self, session: Session, coupon_id: uuid.UUID) -> None:
        coupon = self.get_coupon(session, coupon_id)
        self.repo.delete(session, coupon)

    # ----- Assignment -----

    def assign_to_user(
        self,
        session: Session,
        coupon_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> UserCouponRead:
        coupon = self.get_coupon(session, coupon_id)
        if not self.user_repo.get_by_id(session, user_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found",
            )
        if self.repo.get_assignment(session, user_id, coupon.id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Coupon already assigned to this user",
            )

        assignment = self.repo.add_assignment(
            session, UserCoupon(user_id=user_id, coupon_id=coupon.id)
        )
        return self._user_coupon_read(assignment, coupon)

    def list_user_coupons(self, session: Session, user_id: uuid.UUID) -> list[UserCouponRead]:
        return [
            self._user_coupon_read(assignment, coupon)
            for assignment, coupon in self.repo.list_for_user(session, user_id)
        ]

    # ----- Validation -----

    def check_coupon(
        self,
        session: Session,
        code: str,
        order_amount: Decimal,
    ) -> tuple[Coupon | None, str]:
        """
        Return (coupon, "") when usable, else (None, reason).
        """
        coupon = self.repo.get_by_code(session, code)
        if not coupon or not coupon.is_active:
            return None, "Coupon not found or inactive"

        expires_at = as_utc(coupon.expires_at)
        if expires_at is not None and expires_at < utcnow():
            return None, "Coupon has expired"

        if coupon.max_uses is not None and coupon.uses_count >= coupon.max_uses:
            return None, "Coupon has reached maximum uses"

        if coupon.min_order_amount and to_money(order_amount) < coupon.min_order_amount:
            return None, f"Minimum order amount of ${coupon.min_order_amount} required"

        return coupon, ""

    def validate_coupon(
        self,
        session: Session,
        code: str,
        order_amount: Decimal,
    ) -> CouponValidationResult:
        coupon, reason = self.check_coupon(session, code, order_amount)
        normalized = code.strip().upper()
        if coupon is None:
            return CouponValidationResult(
                valid=False,
                code=normalized,
                discount_amount=ZERO,
                message=reason,
            )
        discount = coupon_discount(order_amount, coupon.discount_type, coupon.discount_value)
        return CouponValidationResult(
            valid=True,
            code=coupon.code,
            discount_amount=discount,
            message="Coupon applied",
        )

    def resolve_discount(
        self,
        session: Session,
        code: str,
        subtotal: Decimal,
    ) -> tuple[Coupon, Decimal]:
        """
        Used by checkout: like validate_coupon but raises 400 on failure.
        """
        coupon, reason = self.check_coupon(session, code, subtotal)
        if coupon is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=reason,
            )
        return coupon, coupon_discount(subtotal, coupon.discount_type, coupon.discount_value)

    def mark_used(
        self,
        session: Session,
        code: str,
        user_id: uuid.UUID | None,
        order_id: uuid.UUID,
    ) -> None:
        """
        Record a redemption inside the caller's transaction (no commit).
        """
        coupon = self.repo.get_by_code(session, code)
        if coupon is None:
            logger.warning("Coupon %s vanished before redemption of order %s", code, order_id)
            return

        coupon.uses_count += 1
        session.add(coupon)

        if user_id is not None:
            assignment = self.repo.get_assignment(session, user_id, coupon.id)
            if assignment is not None and assignment.used_at is None:
                assignment.used_at = utcnow()
                assignment.order_id = order_id
                session.add(assignment)

        logger.info("Coupon %s redeemed by order %s", coupon.code, order_id)

    # ----- Stats -----

    def get_stats(self, session: Session) -> CouponStats:
        coupons = self.repo.list_coupons(session, limit=10_000)
        now = utcnow()
        expired = sum(
            1 for c in coupons if c.expires_at is not None and as_utc(c.expires_at) < now
        )
        return CouponStats(
            total_coupons=len(coupons),
            active_coupons=sum(1 for c in coupons if c.is_active),
            expired_coupons=expired,
            total_assigned=self.repo.count_assignments(session),
            total_used=self.repo.count_assignments(session, used_only=True),
        )

    @staticmethod
    def _user_coupon_read(assignment: UserCoupon, coupon: Coupon) -> UserCouponRead:
        return UserCouponRead(
            id=assignment.id,
            user_id=assignment.user_id,
            assigned_at=assignment.assigned_at,
            used_at=assignment.used_at,
            order_id=assignment.order_id,
            coupon=CouponRead.model_validate(coupon),
        )
