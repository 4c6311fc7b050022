# app/routers/coupons.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.coupon_repo import CouponRepository
from app.repositories.user_repo import UserRepository
from app.schemas.coupon import (
    CouponAssign,
    CouponCreate,
    CouponRead,
    CouponStats,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationResult,
    UserCouponRead,
)
from app.services.coupon_service import CouponService

router = APIRouter(prefix="/coupons", tags=["Coupons"])

service = CouponService(CouponRepository(), UserRepository())


# -------- Customer endpoints --------


@router.get("/me", response_model=list[UserCouponRead])
def list_my_coupons(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Coupons assigned to the current user, with redemption state.
    """
    return service.list_user_coupons(session, current_user.id)


@router.post("/validate", response_model=CouponValidationResult)
def validate_coupon(
    payload: CouponValidateRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Check a code against an order amount.

    Always answers 200; `valid` and `message` carry the verdict.
    """
    return service.validate_coupon(session, payload.code, payload.order_amount)


# -------- Admin endpoints --------


@router.get(
    "/stats",
    response_model=CouponStats,
    dependencies=[Depends(require_admin)],
)
def coupon_stats(session: Session = Depends(get_session)):
    return service.get_stats(session)


@router.get(
    "",
    response_model=list[CouponRead],
    dependencies=[Depends(require_admin)],
)
def list_coupons(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 100,
):
    return service.list_coupons(session, skip=skip, limit=limit)


@router.post(
    "",
    response_model=CouponRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_coupon(
    payload: CouponCreate,
    session: Session = Depends(get_session),
):
    """
    Create a coupon (admin only). Codes are stored upper-case and unique.
    """
    return service.create_coupon(session, payload)


@router.get(
    "/{coupon_id}",
    response_model=CouponRead,
    dependencies=[Depends(require_admin)],
)
def get_coupon(
    coupon_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_coupon(session, coupon_id)


@router.patch(
    "/{coupon_id}",
    response_model=CouponRead,
    dependencies=[Depends(require_admin)],
)
def update_coupon(
    coupon_id: uuid.UUID,
    payload: CouponUpdate,
    session: Session = Depends(get_session),
):
    return service.update_coupon(session, coupon_id, payload)


@router.delete(
    "/{coupon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_coupon(
    coupon_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a coupon and its user assignments (admin only).
    """
    service.delete_coupon(session, coupon_id)
    return None


@router.post(
    "/{coupon_id}/assign",
    response_model=UserCouponRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def assign_coupon(
    coupon_id: uuid.UUID,
    payload: CouponAssign,
    session: Session = Depends(get_session),
):
    return service.assign_to_user(session, coupon_id, payload.user_id)
