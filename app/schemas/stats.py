# app/schemas/stats.py
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlmodel import SQLModel


class DailySales(SQLModel):
    date: date
    total_revenue: Decimal
    order_count: int


class TopProduct(SQLModel):
    """Best sellers of the month. Products and parts share one ranking."""

    item_id: uuid.UUID
    name: str
    is_part: bool
    total_quantity: int
    total_revenue: Decimal


class LatestOrderSummary(SQLModel):
    id: uuid.UUID
    order_number: str
    created_at: datetime
    user_id: uuid.UUID | None  # None for guest checkouts
    total_amount: Decimal
    status: str
    payment_status: str


class AdminDashboardStats(SQLModel):
    """
    Admin dashboard payload.

    Revenue figures leave out cancelled orders and declined invoices.
    `status_counts` is keyed by the internal status value.
    """

    total_customers: int
    total_orders: int
    total_revenue: Decimal
    pending_review_count: int
    pending_payment_count: int
    low_stock_count: int
    status_counts: dict[str, int]
    daily_sales: list[DailySales]
    top_products: list[TopProduct]
    latest_orders: list[LatestOrderSummary]
