# app/repositories/order_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.order import Order, OrderItem, OrderProgressStep


class OrderRepository:
    """
    Orders, their line items and their progress steps.

    Writes only flush. A status change touches the order row and its
    progress rows together (checkout also clears the cart), so the
    service owns the single commit.
    """

    def _newest_first(self, stmt, skip: int, limit: int):
        return stmt.order_by(col(Order.created_at).desc()).offset(skip).limit(limit)

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = self._newest_first(select(Order).where(Order.user_id == user_id), skip, limit)
        return list(session.exec(stmt).all())

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        statuses: list[str] | None = None,
    ) -> list[Order]:
        """Admin listing; `statuses` holds internal status values."""
        stmt = select(Order)
        if statuses:
            stmt = stmt.where(col(Order.status).in_(statuses))
        return list(session.exec(self._newest_first(stmt, skip, limit)).all())

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def get_by_number(self, session: Session, order_number: str) -> Order | None:
        return session.exec(select(Order).where(Order.order_number == order_number)).first()

    def save_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()  # new rows get their id here
        session.refresh(order)
        return order

    # ---- Line items ----

    def list_items_for_order(self, session: Session, order_id: uuid.UUID) -> list[OrderItem]:
        return list(session.exec(select(OrderItem).where(OrderItem.order_id == order_id)).all())

    def add_items(self, session: Session, items: list[OrderItem]) -> list[OrderItem]:
        session.add_all(items)
        session.flush()
        for item in items:
            session.refresh(item)
        return items

    # ---- Progress ----

    def list_progress_steps(self, session: Session, order_id: uuid.UUID) -> list[OrderProgressStep]:
        stmt = (
            select(OrderProgressStep)
            .where(OrderProgressStep.order_id == order_id)
            .order_by(col(OrderProgressStep.step_number))
        )
        return list(session.exec(stmt).all())

    def save_progress_steps(
        self,
        session: Session,
        steps: list[OrderProgressStep],
    ) -> list[OrderProgressStep]:
        session.add_all(steps)
        session.flush()
        return steps
