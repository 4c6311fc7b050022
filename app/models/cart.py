# app/models/cart.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlmodel import SQLModel, Field


class CartItem(SQLModel, table=True):
    """
    One line in a customer's cart.

    A row points at either a product or a part (is_part tells which).
    One user cannot have 2 rows for the same listing.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )

    part_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="parts.id",
        index=True,
    )

    is_part: bool = Field(default=False)

    quantity: int = Field(
        gt=0,
        description="Must be >= 1",
    )

    snapshot_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Listing price when the line was last added to",
    )

    item_name: str | None = None
    item_sku: str | None = None
    item_image_url: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def item_id(self) -> uuid.UUID | None:
        return self.part_id if self.is_part else self.product_id
