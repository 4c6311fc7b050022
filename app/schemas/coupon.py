# app/schemas/coupon.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

DiscountType = Literal["percentage", "fixed"]


class CouponCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    code: str = Field(min_length=3, max_length=50)
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    min_order_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    max_uses: int | None = Field(default=None, ge=1)
    is_active: bool = True
    expires_at: datetime | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code cannot be empty")
        return v


class CouponUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    min_order_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    max_uses: int | None = Field(default=None, ge=1)
    is_active: bool | None = None
    expires_at: datetime | None = None


class CouponRead(SQLModel):
    id: uuid.UUID
    code: str
    description: str | None
    discount_type: str
    discount_value: Decimal
    min_order_amount: Decimal
    max_uses: int | None
    uses_count: int
    is_active: bool
    expires_at: datetime | None
    created_at: datetime


class CouponAssign(SQLModel):
    model_config = ConfigDict(extra="forbid")

    user_id: uuid.UUID


class UserCouponRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    assigned_at: datetime
    used_at: datetime | None
    order_id: uuid.UUID | None
    coupon: CouponRead


class CouponValidateRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    code: str
    order_amount: Decimal = Field(ge=0)


class CouponValidationResult(SQLModel):
    valid: bool
    code: str
    discount_amount: Decimal
    message: str


class CouponStats(SQLModel):
    total_coupons: int
    active_coupons: int
    expired_coupons: int
    total_assigned: int
    total_used: int
