# app/schemas/cart.py
import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import ConfigDict
from sqlmodel import Field, SQLModel


class CartItemCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    # Product id, or part id when is_part is set.
    item_id: uuid.UUID
    quantity: int = Field(gt=0)
    is_part: bool = False


class CartItemUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    quantity: int = Field(gt=0)


class CartItemRead(SQLModel):
    """One cart line joined with the listing's current display fields."""

    id: uuid.UUID
    user_id: uuid.UUID
    item_id: uuid.UUID
    is_part: bool
    quantity: int
    snapshot_price: Decimal
    line_total: Decimal
    item_name: str | None = None
    item_sku: str | None = None
    item_image_url: str | None = None
    created_at: datetime


class CartSummary(SQLModel):
    """
    Priced cart. shipping, tax and total preview what checkout will
    charge before a coupon is applied.
    """

    items: list[CartItemRead]
    total_quantity: int
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal
