# app/schemas/order.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, EmailStr, field_validator
from sqlmodel import SQLModel, Field

ProgressStepStatus = Literal["pending", "completed", "canceled"]


class Address(SQLModel):
    """
    Free-form postal address stored as JSON on the order.
    """

    first_name: str | None = None
    last_name: str | None = None
    line1: str | None = None
    line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = "US"
    phone: str | None = None
    email: str | None = None


class OrderLineIn(SQLModel):
    """
    One requested line: a product id (or part id with is_part=True).
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    quantity: int = Field(gt=0)
    is_part: bool = False


class CreateOrderRequest(SQLModel):
    """
    Payload for POST /orders/create-order.

    Works for guests; an authenticated caller's id is attached to the order.
    """

    model_config = ConfigDict(extra="forbid")

    items: list[OrderLineIn]
    shipping_address: Address | None = None
    customer_email: EmailStr | None = None
    coupon_code: str | None = None


class CreateOrderResponse(SQLModel):
    local_order_id: uuid.UUID
    order_number: str
    status: str
    message: str


class CheckoutRequest(SQLModel):
    """
    Payload for checking out the current user's server-side cart.

    Backend derives:
      - user_id from token
      - status = 'pending_admin_review'
      - items, subtotal, shipping and tax from the cart
    """

    model_config = ConfigDict(extra="forbid")

    shipping_address: Address | None = None
    billing_address: Address | None = None
    coupon_code: str | None = None

    @field_validator("coupon_code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class PaymentSubmission(SQLModel):
    """
    Customer's record of an external payment, kept as JSON on the order.
    """

    transaction_id: str
    payment_amount: Decimal
    payment_screenshot_url: str | None = None
    submitted_at: datetime


class OrderRead(SQLModel):
    """
    Representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    customer_email: str | None = None

    subtotal: Decimal
    shipping_amount: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    convenience_fee: Decimal | None = None
    delivery_charge: Decimal | None = None
    total_amount: Decimal
    currency: str

    status: str
    payment_status: str
    payment_method: str

    invoice_notes: str | None = None
    payment_submission: PaymentSubmission | None = None
    rejection_reason: str | None = None
    admin_payment_email: str | None = None
    coupon_code: str | None = None

    shipping_address: dict | None = None
    billing_address: dict | None = None

    created_at: datetime
    updated_at: datetime
    invoiced_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None


class OrderItemRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID | None
    part_id: uuid.UUID | None
    is_part: bool
    product_name: str
    product_sku: str | None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class OrderWithItemsRead(OrderRead):
    items: list[OrderItemRead]


class OrderStatusUpdate(SQLModel):
    """
    Body of PATCH /orders/{id}/status.

    `status` accepts system tokens and tracking tokens
    (e.g. "invoice_sent" or "invoice_generated").
    Validation happens in the service so a bad token yields 400.
    """

    status: str | None = None
    payment_status: str | None = None


class OrderStatusSummary(SQLModel):
    id: uuid.UUID
    order_number: str
    status: str
    payment_status: str
    created_at: datetime | None = None
    updated_at: datetime


class StatusHistoryEntry(SQLModel):
    status: str
    timestamp: datetime | None
    description: str
    step: int


class OrderStatusResponse(SQLModel):
    order: OrderStatusSummary
    status_history: list[StatusHistoryEntry]


class OrderStatusUpdateResponse(SQLModel):
    order: OrderStatusSummary
    message: str


# ----- Invoice / payment workflow -----


class InvoiceCreate(SQLModel):
    """
    Admin attaches fees to an order and sends the invoice.
    Negative amounts are rejected by the service with 400.
    """

    model_config = ConfigDict(extra="forbid")

    convenience_fee: Decimal = Decimal("0")
    delivery_charge: Decimal = Decimal("0")
    invoice_notes: str | None = None


class InvoiceDecision(SQLModel):
    model_config = ConfigDict(extra="forbid")

    accept: bool


class PaymentDetailsShare(SQLModel):
    model_config = ConfigDict(extra="forbid")

    admin_payment_email: EmailStr


class PaymentSubmissionCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    transaction_id: str = Field(max_length=200)
    payment_amount: Decimal
    payment_screenshot_url: str | None = None

    @field_validator("transaction_id")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("transaction_id cannot be empty")
        return v


class PaymentVerification(SQLModel):
    """
    approve=True confirms the order; approve=False rejects the payment
    and stores rejection_reason so the customer can resubmit.
    """

    model_config = ConfigDict(extra="forbid")

    approve: bool
    rejection_reason: str | None = None


class OrderCancel(SQLModel):
    model_config = ConfigDict(extra="forbid")

    reason: str | None = None


class ScreenshotUploadRead(SQLModel):
    url: str


# ----- Progress tracker -----


class ProgressStepRead(SQLModel):
    step_number: int
    step_name: str
    step_description: str | None
    status: ProgressStepStatus
    completed_at: datetime | None
    canceled_at: datetime | None


class OrderProgressSummary(SQLModel):
    order_id: uuid.UUID
    steps: list[ProgressStepRead]
    overall_status: Literal["completed", "canceled", "in_progress"]
    total_steps: int
    completed_steps: int
    progress_percentage: int
    current_step: ProgressStepRead | None
    last_updated: datetime | None


class ProgressStepUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    status: ProgressStepStatus
