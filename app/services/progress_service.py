# app/services/progress_service.py
"""
Seven-step order progress tracker.

The steps are a projection of Order.status: `build_step_statuses` derives
them, `sync_order_progress` writes the derivation to order_progress_steps.
Callers run the sync inside the same transaction as the status change and
commit once, so the tracker can never disagree with the order.
"""
import logging
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.order_status import OrderStatus
from app.core.time_utils import as_utc, utcnow
from app.models.order import Order, OrderProgressStep
from app.repositories.order_repo import OrderRepository
from app.schemas.order import OrderProgressSummary, ProgressStepRead

logger = logging.getLogger(__name__)

PENDING = "pending"
COMPLETED = "completed"
CANCELED = "canceled"

STEP_DEFINITIONS: tuple[tuple[str, str], ...] = (
    ("Checkout Request", "Order submitted for admin review"),
    ("Invoice Generated", "Admin prepared the invoice with final charges"),
    ("Invoice Decision", "Customer accepted or declined the invoice"),
    ("Payment Details Shared", "Payment instructions sent to the customer"),
    ("Payment Submitted", "Customer submitted the payment reference"),
    ("Admin Verification", "Admin verified the payment"),
    ("Order Confirmed", "Order confirmed and handed to fulfilment"),
)
TOTAL_STEPS = len(STEP_DEFINITIONS)

# Number of leading steps completed for each non-terminal status.
_COMPLETED_COUNT: dict[OrderStatus, int] = {
    OrderStatus.PENDING_ADMIN_REVIEW: 1,
    OrderStatus.INVOICE_SENT: 2,
    OrderStatus.INVOICE_ACCEPTED: 3,
    OrderStatus.PAYPAL_CREDENTIALS_SHARED: 4,
    OrderStatus.PAYMENT_PENDING: 4,
    OrderStatus.PAYMENT_SUBMITTED: 5,
    OrderStatus.PAYMENT_VERIFIED: 6,
    OrderStatus.CONFIRMED: 7,
    OrderStatus.SHIPPED: 7,
    OrderStatus.DELIVERED: 7,
    # These stop the pipeline; everything after the count is canceled.
    OrderStatus.INVOICE_DECLINED: 2,
    OrderStatus.PAYMENT_REJECTED: 5,
}

_STOPPED = frozenset({OrderStatus.INVOICE_DECLINED, OrderStatus.PAYMENT_REJECTED})


def _pattern(completed: int, cancel_rest: bool) -> list[str]:
    tail = CANCELED if cancel_rest else PENDING
    return [COMPLETED] * completed + [tail] * (TOTAL_STEPS - completed)


def build_step_statuses(order: Order) -> list[str]:
    """
    Derive the seven step statuses from an order.

    For a cancelled order the cut-off depends on how far it got:
    a payment submission means 5 completed steps, an issued invoice
    means 2, otherwise only the checkout request counts.
    """
    try:
        current = OrderStatus(order.status)
    except ValueError:
        logger.warning("Order %s has unknown status %r", order.id, order.status)
        return _pattern(1, cancel_rest=False)

    if current == OrderStatus.CANCELLED:
        if order.payment_submission:
            return _pattern(5, cancel_rest=True)
        if order.invoiced_at is not None:
            return _pattern(2, cancel_rest=True)
        return _pattern(1, cancel_rest=True)

    return _pattern(_COMPLETED_COUNT[current], cancel_rest=current in _STOPPED)


def _apply_status(step: OrderProgressStep, new_status: str, now: datetime) -> bool:
    if step.status == new_status:
        return False
    step.status = new_status
    step.completed_at = now if new_status == COMPLETED else None
    step.canceled_at = now if new_status == CANCELED else None
    step.updated_at = now
    return True


def _new_steps(order_id: uuid.UUID) -> list[OrderProgressStep]:
    return [
        OrderProgressStep(
            order_id=order_id,
            step_number=number,
            step_name=name,
            step_description=description,
        )
        for number, (name, description) in enumerate(STEP_DEFINITIONS, start=1)
    ]


class ProgressService:
    """
    Business logic for order_progress_steps.

    None of the write methods commit except the public endpoints'
    entry points (`refresh_order_progress`, `update_progress_step`).
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    # ----- Transaction helpers (no commit) -----

    def initialize_progress(self, session: Session, order: Order) -> list[OrderProgressStep]:
        """Create the seven rows for an order and apply its current status."""
        steps = _new_steps(order.id)
        now = utcnow()
        for step, value in zip(steps, build_step_statuses(order)):
            _apply_status(step, value, now)
        return self.order_repo.save_progress_steps(session, steps)

    def sync_order_progress(self, session: Session, order: Order) -> list[OrderProgressStep]:
        """
        Bring the stored steps in line with order.status.

        Missing rows are created. Only changed steps get new timestamps.
        """
        steps = self.order_repo.list_progress_steps(session, order.id)
        if len(steps) != TOTAL_STEPS:
            existing = {s.step_number for s in steps}
            steps.extend(s for s in _new_steps(order.id) if s.step_number not in existing)
            steps.sort(key=lambda s: s.step_number)

        now = utcnow()
        changed = 0
        for step, value in zip(steps, build_step_statuses(order)):
            if _apply_status(step, value, now):
                changed += 1

        self.order_repo.save_progress_steps(session, steps)
        logger.info(
            "Progress synced for order %s (status=%s, %d step(s) changed)",
            order.order_number,
            order.status,
            changed,
        )
        return steps

    # ----- Public operations -----

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def get_order_progress(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderProgressSummary:
        """
        Return the tracker summary, creating the rows on first access.
        """
        order = self._get_order(session, order_id)
        steps = self.order_repo.list_progress_steps(session, order.id)
        if not steps:
            steps = self.initialize_progress(session, order)
            session.commit()
        return self._summarize(order.id, steps)

    def refresh_order_progress(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderProgressSummary:
        order = self._get_order(session, order_id)
        steps = self.sync_order_progress(session, order)
        session.commit()
        return self._summarize(order.id, steps)

    def update_progress_step(
        self,
        session: Session,
        order_id: uuid.UUID,
        step_number: int,
        new_status: str,
    ) -> OrderProgressSummary:
        """
        Manual admin edit of a single step.

        Rules:
          - completing step N requires steps 1..N-1 to be completed
          - canceling step N also cancels every pending step after it
          - resetting step N to pending is refused while a later step
            is completed
        """
        if not 1 <= step_number <= TOTAL_STEPS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"step_number must be between 1 and {TOTAL_STEPS}",
            )

        order = self._get_order(session, order_id)
        steps = self.order_repo.list_progress_steps(session, order.id)
        if not steps:
            steps = self.initialize_progress(session, order)

        now = utcnow()
        target = steps[step_number - 1]

        if new_status == COMPLETED:
            blocking = [s.step_number for s in steps[: step_number - 1] if s.status != COMPLETED]
            if blocking:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Steps {blocking} must be completed before step {step_number}",
                )
            _apply_status(target, COMPLETED, now)
        elif new_status == CANCELED:
            for step in steps[step_number - 1 :]:
                if step is target or step.status == PENDING:
                    _apply_status(step, CANCELED, now)
        else:
            later_completed = any(s.status == COMPLETED for s in steps[step_number:])
            if later_completed:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Step {step_number} cannot be reset while a later step is completed",
                )
            _apply_status(target, PENDING, now)

        self.order_repo.save_progress_steps(session, steps)
        session.commit()
        logger.info(
            "Progress step %d of order %s set to %s by admin",
            step_number,
            order.order_number,
            new_status,
        )
        return self._summarize(order.id, steps)

    # ----- Helpers -----

    @staticmethod
    def _summarize(order_id: uuid.UUID, steps: list[OrderProgressStep]) -> OrderProgressSummary:
        reads = [
            ProgressStepRead(
                step_number=s.step_number,
                step_name=s.step_name,
                step_description=s.step_description,
                status=s.status,
                completed_at=s.completed_at,
                canceled_at=s.canceled_at,
            )
            for s in sorted(steps, key=lambda s: s.step_number)
        ]
        completed = sum(1 for s in reads if s.status == COMPLETED)

        if completed == len(reads):
            overall = "completed"
        elif any(s.status == CANCELED for s in reads):
            overall = "canceled"
        else:
            overall = "in_progress"

        current = next((s for s in reads if s.status == PENDING), None)
        last_updated = max((as_utc(s.updated_at) for s in steps), default=None)

        return OrderProgressSummary(
            order_id=order_id,
            steps=reads,
            overall_status=overall,
            total_steps=len(reads),
            completed_steps=completed,
            progress_percentage=round(completed / len(reads) * 100) if reads else 0,
            current_step=current,
            last_updated=last_updated,
        )
