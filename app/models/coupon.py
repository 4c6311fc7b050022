# app/models/coupon.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class Coupon(SQLModel, table=True):
    """
    Discount code.

    discount_type:
      - "percentage": discount_value is a percent of the order subtotal
      - "fixed": discount_value is an amount, capped at the subtotal
    """

    __tablename__ = "coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    code: str = Field(
        unique=True,
        index=True,
        max_length=50,
        description="Upper-cased redemption code",
    )

    description: str | None = None

    discount_type: str = Field(description="percentage | fixed")
    discount_value: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)

    max_uses: int | None = Field(default=None, ge=1)
    uses_count: int = Field(default=0, ge=0)

    is_active: bool = Field(default=True, index=True)
    expires_at: datetime | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class UserCoupon(SQLModel, table=True):
    """
    Coupon handed to a specific user by an admin.
    used_at / order_id are filled once the order paying with it is confirmed.
    """

    __tablename__ = "user_coupons"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    coupon_id: uuid.UUID = Field(foreign_key="coupons.id", index=True)

    assigned_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    used_at: datetime | None = None
    order_id: uuid.UUID | None = Field(default=None, foreign_key="orders.id")
