# app/services/stats_service.py
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.order_status import OrderStatus
from app.core.pricing import ZERO, to_money
from app.core.time_utils import as_utc, utcnow
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import (
    AdminDashboardStats,
    DailySales,
    LatestOrderSummary,
    TopProduct,
)


class StatsService:
    """Builds the admin dashboard. `year`/`month` only scope the daily sales chart."""

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def _daily_sales(self, session: Session, year: int, month: int) -> list[DailySales]:
        """
        One entry per day of the month that had revenue-bearing orders.
        """
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        if month == 12:
            end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            end = datetime(year, month + 1, 1, tzinfo=timezone.utc)

        revenue: dict[date, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[date, int] = defaultdict(int)
        for order in self.repo.orders_between(session, start, end):
            day = as_utc(order.created_at).date()
            revenue[day] += order.total_amount
            counts[day] += 1

        return [
            DailySales(date=day, total_revenue=to_money(revenue[day]), order_count=counts[day])
            for day in sorted(counts)
        ]

    def get_admin_dashboard_stats(
        self,
        session: Session,
        year: int | None = None,
        month: int | None = None,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
    ) -> AdminDashboardStats:
        today = utcnow().date()
        if year is None:
            year = today.year
        if month is None:
            month = today.month

        if not 1 <= month <= 12:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="month must be between 1 and 12",
            )

        status_counts = self.repo.status_counts(session)

        top_products = [
            TopProduct(
                item_id=item_id,
                name=name,
                is_part=bool(is_part),
                total_quantity=int(total_quantity or 0),
                total_revenue=to_money(total_revenue or 0),
            )
            for item_id, name, is_part, total_quantity, total_revenue in self.repo.top_items(
                session, limit=top_n_products
            )
            if item_id is not None
        ]

        latest_orders = [
            LatestOrderSummary(
                id=o.id,
                order_number=o.order_number,
                created_at=o.created_at,
                user_id=o.user_id,
                total_amount=o.total_amount,
                status=o.status,
                payment_status=o.payment_status,
            )
            for o in self.repo.latest_orders(session, limit=latest_n_orders)
        ]

        return AdminDashboardStats(
            total_customers=self.repo.count_customers(session),
            total_orders=self.repo.count_orders(session),
            total_revenue=to_money(self.repo.total_revenue(session)),
            pending_review_count=status_counts.get(OrderStatus.PENDING_ADMIN_REVIEW.value, 0),
            pending_payment_count=status_counts.get(OrderStatus.PAYMENT_SUBMITTED.value, 0),
            low_stock_count=self.repo.count_low_stock(session, get_settings().LOW_STOCK_THRESHOLD),
            status_counts=status_counts,
            daily_sales=self._daily_sales(session, year, month),
            top_products=top_products,
            latest_orders=latest_orders,
        )
