# app/models/order.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

from app.core.order_status import OrderStatus, PaymentStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(SQLModel, table=True):
    """
    Customer order.

    Lifecycle (see app.core.order_status):
      pending_admin_review -> invoice_sent -> invoice_accepted
        -> payment_submitted -> confirmed -> shipped -> delivered

    Payment happens outside the platform; the customer records a
    transaction reference in `payment_submission` and an admin verifies it.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_number: str = Field(
        unique=True,
        index=True,
        max_length=40,
        description="Human readable number, ORD-<base36 ms>-<5 chars>",
    )

    # Guest orders have no user
    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    customer_email: str | None = Field(default=None, index=True)

    # --- Money ---
    subtotal: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    shipping_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    tax_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    convenience_fee: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    delivery_charge: Decimal | None = Field(default=None, max_digits=12, decimal_places=2)
    total_amount: Decimal = Field(
        default=Decimal("0"),
        max_digits=12,
        decimal_places=2,
        description="subtotal - discount + shipping + fees + tax",
    )
    currency: str = Field(default="USD", max_length=3)

    # --- Workflow ---
    status: str = Field(
        default=OrderStatus.PENDING_ADMIN_REVIEW.value,
        index=True,
        description="System status token",
    )
    payment_status: str = Field(
        default=PaymentStatus.PENDING.value,
        index=True,
    )
    payment_method: str = Field(default="custom_external")

    invoice_notes: str | None = None
    payment_submission: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
        description="{transaction_id, payment_amount, payment_screenshot_url, submitted_at}",
    )
    rejection_reason: str | None = None
    admin_payment_email: str | None = None

    coupon_code: str | None = Field(default=None, max_length=50)

    shipping_address: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )
    billing_address: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    created_at: datetime = Field(
        default_factory=_utcnow,
        description="UTC",
    )
    updated_at: datetime = Field(default_factory=_utcnow)
    invoiced_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order. Catalog fields are copied at order time so
    later catalog edits do not rewrite history.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
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

    product_name: str
    product_sku: str | None = None

    quantity: int = Field(
        gt=0,
        description="Units ordered",
    )

    unit_price: Decimal = Field(
        max_digits=12,
        decimal_places=2,
        description="Pre-tax unit price frozen at order time",
    )
    total_price: Decimal = Field(max_digits=12, decimal_places=2)


class OrderProgressStep(SQLModel, table=True):
    """
    One of the seven tracker steps of an order.

    Rows are a projection of Order.status and are rewritten by
    app.services.progress_service whenever the status changes.
    """

    __tablename__ = "order_progress_steps"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    step_number: int = Field(ge=1, le=7)
    step_name: str
    step_description: str | None = None

    # pending | completed | canceled
    status: str = Field(default="pending")

    completed_at: datetime | None = None
    canceled_at: datetime | None = None

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
