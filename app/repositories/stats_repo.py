# app/repositories/stats_repo.py
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func
from sqlmodel import Session, col, select

from app.core.order_status import OrderStatus
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.models.user import User


def _counts_as_revenue():
    """Cancelled orders and declined invoices never earn anything."""
    return col(Order.status).not_in(
        [OrderStatus.CANCELLED.value, OrderStatus.INVOICE_DECLINED.value]
    )


def _scalar_int(session: Session, stmt) -> int:
    return int(session.exec(stmt).one() or 0)


class StatsRepository:
    """Aggregate queries behind the admin dashboard. Nothing here writes."""

    def count_customers(self, session: Session) -> int:
        return _scalar_int(session, select(func.count()).select_from(User).where(User.role == "user"))

    def count_orders(self, session: Session) -> int:
        return _scalar_int(session, select(func.count()).select_from(Order))

    def count_low_stock(self, session: Session, threshold: int) -> int:
        stmt = (
            select(func.count())
            .select_from(Product)
            .where(col(Product.is_active).is_(True))
            .where(Product.stock_quantity <= threshold)
        )
        return _scalar_int(session, stmt)

    def total_revenue(self, session: Session) -> Decimal:
        stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(_counts_as_revenue())
        return Decimal(str(session.exec(stmt).one() or 0))

    def status_counts(self, session: Session) -> dict[str, int]:
        rows = session.exec(select(Order.status, func.count()).group_by(Order.status)).all()
        return {order_status: int(n) for order_status, n in rows}

    def orders_between(self, session: Session, start: datetime, end: datetime) -> list[Order]:
        # Bucketing by day is left to the caller; date functions differ
        # between Postgres and SQLite.
        stmt = (
            select(Order)
            .where(_counts_as_revenue())
            .where(Order.created_at >= start)
            .where(Order.created_at < end)
            .order_by(col(Order.created_at))
        )
        return list(session.exec(stmt).all())

    def top_items(self, session: Session, limit: int = 5) -> list[tuple]:
        """
        (item_id, name, is_part, quantity, revenue) rows for the best
        sellers, ranked by units sold. Names come from the line snapshots.
        """
        listing_id = func.coalesce(OrderItem.product_id, OrderItem.part_id)
        units = func.coalesce(func.sum(OrderItem.quantity), 0)
        earned = func.coalesce(func.sum(OrderItem.total_price), 0)

        stmt = (
            select(listing_id, OrderItem.product_name, OrderItem.is_part, units, earned)
            .join(Order, col(Order.id) == col(OrderItem.order_id))
            .where(_counts_as_revenue())
            .group_by(listing_id, OrderItem.product_name, OrderItem.is_part)
            .order_by(units.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def latest_orders(self, session: Session, limit: int = 5) -> list[Order]:
        stmt = select(Order).order_by(col(Order.created_at).desc()).limit(limit)
        return list(session.exec(stmt).all())
