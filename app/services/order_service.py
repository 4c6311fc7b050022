# app/services/order_service.py
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.order_status import (
    PAYABLE_STATUSES,
    PAYMENT_STATUS_ON_ENTRY,
    PAYMENT_STATUS_VALUES,
    TERMINAL_STATUSES,
    TRACKING_STEP_DESCRIPTIONS,
    TRACKING_STEP_ORDER,
    OrderStatus,
    PaymentStatus,
    TrackingStatus,
    can_transition,
    has_reached_status,
    is_known_status,
    map_to_system_status,
)
from app.core.pricing import (
    ZERO,
    compute_invoice_totals,
    compute_pricing,
    generate_order_number,
    shipping_for_subtotal,
    to_money,
)
from app.core.storage_utils import generate_filename, upload_to_storage, validate_image
from app.core.time_utils import utcnow
from app.models.order import Order, OrderItem
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    CheckoutRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    InvoiceCreate,
    OrderItemRead,
    OrderLineIn,
    OrderRead,
    OrderStatusResponse,
    OrderStatusSummary,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    OrderWithItemsRead,
    PaymentDetailsShare,
    PaymentSubmission,
    PaymentSubmissionCreate,
    PaymentVerification,
    StatusHistoryEntry,
)
from app.services.coupon_service import CouponService
from app.services.notification_service import NotificationService
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

INVOICE_DECLINED_REASON = "Invoice declined by customer"
DEFAULT_PAYMENT_REJECTION = "Payment could not be verified"

_ORDER_NUMBER_ATTEMPTS = 5


@dataclass
class _PricedLine:
    """Catalog snapshot of one requested line."""

    item_id: uuid.UUID
    is_part: bool
    name: str
    sku: str | None
    unit_price: Decimal
    quantity: int


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Create orders from a posted item list or the user's cart
      - Validate items against the catalog (exists, active, stock)
      - Price orders (subtotal, shipping, coupon discount, tax)
      - Drive the admin-mediated workflow:
          invoice -> accept/decline -> payment -> verification
      - Enforce the status transition table on every change
      - Keep the progress tracker in the same transaction as the status
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        progress_service: ProgressService,
        coupon_service: CouponService,
        notification_service: NotificationService,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.progress_service = progress_service
        self.coupon_service = coupon_service
        self.notification_service = notification_service

    # -------- Order submission --------

    def create_order(
        self,
        session: Session,
        payload: CreateOrderRequest,
        user: User | None = None,
    ) -> CreateOrderResponse:
        """
        Create an order from a posted list of items (guests allowed).

        Items are re-priced from the catalog; shipping is not charged on
        this path and is settled on the invoice instead.
        """
        if not payload.items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="items array required",
            )

        lines = self._price_lines(
            session,
            [(line.id, line.quantity, line.is_part) for line in self._merge_lines(payload.items)],
        )

        order = self._persist_new_order(
            session,
            lines=lines,
            user_id=user.id if user else None,
            customer_email=payload.customer_email or (user.email if user else None),
            shipping=ZERO,
            coupon_code=payload.coupon_code,
            shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
            billing_address=None,
        )
        session.commit()
        session.refresh(order)

        return CreateOrderResponse(
            local_order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            message="Order created successfully. Awaiting admin review.",
        )

    def checkout_from_cart(
        self,
        session: Session,
        user: User,
        payload: CheckoutRequest,
    ) -> OrderWithItemsRead:
        """
        Convert the current user's cart into an order.

        Steps:
          1. Load cart items; error if empty.
          2. Re-price every line from the catalog (exists, active, stock).
          3. Shipping from the subtotal, optional coupon discount, tax.
          4. Create Order + OrderItems + progress rows.
          5. Clear cart.
          6. Commit once and return the full order.
        """
        cart_items = self.cart_repo.list_for_user(session, user.id)
        if not cart_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        lines = self._price_lines(
            session,
            [(ci.item_id, ci.quantity, ci.is_part) for ci in cart_items],
        )

        settings = get_settings()
        subtotal = to_money(sum((line.unit_price * line.quantity for line in lines), ZERO))
        shipping = shipping_for_subtotal(
            subtotal,
            settings.FREE_SHIPPING_THRESHOLD,
            settings.FLAT_SHIPPING_RATE,
        )

        order = self._persist_new_order(
            session,
            lines=lines,
            user_id=user.id,
            customer_email=user.email,
            shipping=shipping,
            coupon_code=payload.coupon_code,
            shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
            billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
        )

        self.cart_repo.clear_user_cart(session, user.id, commit=False)

        session.commit()
        session.refresh(order)

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_for_user(session, user_id, skip, limit)

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        # Someone else's order is reported as missing, not forbidden.
        order = self._get_owned_order(session, user_id, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: str | None = None,
    ) -> list[Order]:
        """
        List all orders (admin only), optionally filtered by status.
        Tracking tokens are accepted in the filter too.
        """
        statuses = None
        if status_filter:
            statuses = [map_to_system_status(status_filter)]
        return self.order_repo.list_all(session, skip, limit, statuses=statuses)

    def list_pending_payments(self, session: Session) -> list[Order]:
        return self.order_repo.list_all(
            session,
            limit=500,
            statuses=[OrderStatus.PAYMENT_SUBMITTED.value],
        )

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self._get_order(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def ensure_can_view(self, session: Session, user: User, order_id: uuid.UUID) -> Order:
        """
        Admins see every order, customers only their own (404 otherwise).
        """
        if user.role == "admin":
            return self._get_order(session, order_id)
        return self._get_owned_order(session, user.id, order_id)

    # -------- Invoice workflow --------

    def create_invoice(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: InvoiceCreate,
    ) -> Order:
        """
        Admin attaches convenience fee and delivery charge, recomputes
        tax/total and sends the invoice (pending_admin_review -> invoice_sent).
        Re-invoicing an already invoiced order is allowed.
        """
        if payload.convenience_fee < 0 or payload.delivery_charge < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Fees cannot be negative",
            )

        order = self._get_order(session, order_id)
        self._ensure_transition(order, OrderStatus.INVOICE_SENT)

        settings = get_settings()
        totals = compute_invoice_totals(
            subtotal=order.subtotal,
            shipping=order.shipping_amount,
            convenience_fee=payload.convenience_fee,
            delivery_charge=payload.delivery_charge,
            discount=order.discount_amount,
            tax_fees=settings.INVOICE_TAX_INCLUDES_FEES,
            rate=settings.TAX_RATE,
        )

        order.convenience_fee = to_money(payload.convenience_fee)
        order.delivery_charge = to_money(payload.delivery_charge)
        order.tax_amount = totals.tax
        order.total_amount = totals.total
        order.invoice_notes = payload.invoice_notes
        order.invoiced_at = utcnow()

        order = self._commit_transition(session, order, OrderStatus.INVOICE_SENT)
        self.notification_service.notify_order_event(session, order, "invoice_sent")
        return order

    def respond_to_invoice(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        accept: bool,
    ) -> Order:
        """
        Customer accepts or declines the invoice.

        Decline cancels the order outright with payment_status=failed.
        """
        order = self._get_owned_order(session, user_id, order_id)
        if order.status != OrderStatus.INVOICE_SENT.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invoice cannot be answered while order is {order.status}",
            )

        if accept:
            order.payment_status = PaymentStatus.PENDING.value
            return self._commit_transition(session, order, OrderStatus.INVOICE_ACCEPTED)

        order.payment_status = PaymentStatus.FAILED.value
        order.rejection_reason = INVOICE_DECLINED_REASON
        return self._commit_transition(session, order, OrderStatus.CANCELLED)

    # -------- Payment workflow --------

    def share_payment_details(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: PaymentDetailsShare,
    ) -> Order:
        """
        Admin shares the address the customer should pay to.
        """
        order = self._get_order(session, order_id)
        self._ensure_transition(order, OrderStatus.PAYPAL_CREDENTIALS_SHARED)

        order.admin_payment_email = str(payload.admin_payment_email)
        order = self._commit_transition(session, order, OrderStatus.PAYPAL_CREDENTIALS_SHARED)
        self.notification_service.notify_order_event(session, order, "payment_details_shared")
        return order

    def submit_payment(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        payload: PaymentSubmissionCreate,
    ) -> Order:
        """
        Customer records an external payment for admin verification.

        Allowed after the invoice is accepted, and again after a rejection.
        """
        if payload.payment_amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="payment_amount must be positive",
            )

        order = self._get_owned_order(session, user_id, order_id)
        if OrderStatus(order.status) not in PAYABLE_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Payment cannot be submitted while order is {order.status}",
            )

        submission = PaymentSubmission(
            transaction_id=payload.transaction_id,
            payment_amount=to_money(payload.payment_amount),
            payment_screenshot_url=payload.payment_screenshot_url,
            submitted_at=utcnow(),
        )
        order.payment_submission = submission.model_dump(mode="json")
        order.payment_status = PaymentStatus.SUBMITTED.value
        order.rejection_reason = None

        if to_money(payload.payment_amount) != order.total_amount:
            logger.warning(
                "Order %s: submitted amount %s differs from total %s",
                order.order_number,
                payload.payment_amount,
                order.total_amount,
            )

        return self._commit_transition(session, order, OrderStatus.PAYMENT_SUBMITTED)

    def upload_payment_screenshot(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> str:
        """
        Store a payment screenshot in Supabase Storage and return its URL.

        The URL is then sent along with submit_payment.
        """
        order = self._get_owned_order(session, user_id, order_id)
        ext = validate_image(content_type, file_bytes)
        path = f"payments/{order.id}/{generate_filename(ext)}"
        url = upload_to_storage(path, file_bytes, content_type)
        logger.info("Payment screenshot stored for order %s", order.order_number)
        return url

    def verify_payment(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: PaymentVerification,
    ) -> Order:
        """
        Admin verdict on a submitted payment.

          approve -> confirmed, payment verified, coupon redeemed
          reject  -> payment_rejected, payment failed, reason stored
        """
        order = self._get_order(session, order_id)
        if order.status not in (
            OrderStatus.PAYMENT_SUBMITTED.value,
            OrderStatus.PAYMENT_VERIFIED.value,
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"No submitted payment to verify (order is {order.status})",
            )

        if payload.approve:
            order.payment_status = PaymentStatus.VERIFIED.value
            order.rejection_reason = None
            if order.coupon_code:
                self.coupon_service.mark_used(session, order.coupon_code, order.user_id, order.id)
            order = self._commit_transition(session, order, OrderStatus.CONFIRMED)
            self.notification_service.notify_order_event(session, order, "payment_verified")
            return order

        if order.status != OrderStatus.PAYMENT_SUBMITTED.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only a submitted payment can be rejected",
            )
        order.payment_status = PaymentStatus.FAILED.value
        order.rejection_reason = (payload.rejection_reason or "").strip() or DEFAULT_PAYMENT_REJECTION
        order = self._commit_transition(session, order, OrderStatus.PAYMENT_REJECTED)
        self.notification_service.notify_order_event(session, order, "payment_rejected")
        return order

    def cancel_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        reason: str | None = None,
    ) -> Order:
        """
        Admin cancels an order from any non-terminal status.
        """
        order = self._get_order(session, order_id)
        self._ensure_transition(order, OrderStatus.CANCELLED)

        if reason:
            order.rejection_reason = reason.strip()
        order.payment_status = PaymentStatus.FAILED.value
        order = self._commit_transition(session, order, OrderStatus.CANCELLED)
        self.notification_service.notify_order_event(session, order, "cancelled")
        return order

    # -------- Generic status API --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderStatusUpdateResponse:
        """
        Admin-only status update.

        Accepts system or tracking tokens, maps them to the system
        vocabulary and enforces the transition table. Setting the
        current status again only updates payment_status.

        Without an explicit payment_status, entering verified or
        confirmed marks the payment verified and entering cancelled or
        invoice_declined marks it failed. Entering confirmed redeems the
        order's coupon, as an approved payment verification does.
        """
        if not payload.status:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Status is required",
            )
        if not is_known_status(payload.status):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid status value",
            )
        if payload.payment_status is not None and payload.payment_status not in PAYMENT_STATUS_VALUES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid payment_status value",
            )

        order = self._get_order(session, order_id)
        new_status = OrderStatus(map_to_system_status(payload.status))

        if payload.payment_status is not None:
            order.payment_status = payload.payment_status

        if new_status.value == order.status:
            order.updated_at = utcnow()
            self.order_repo.save_order(session, order)
            session.commit()
            session.refresh(order)
        else:
            self._ensure_transition(order, new_status)
            now = utcnow()
            if new_status == OrderStatus.INVOICE_SENT and order.invoiced_at is None:
                order.invoiced_at = now
            elif new_status == OrderStatus.SHIPPED:
                order.shipped_at = now
            elif new_status == OrderStatus.DELIVERED:
                order.delivered_at = now
            if payload.payment_status is None and new_status in PAYMENT_STATUS_ON_ENTRY:
                order.payment_status = PAYMENT_STATUS_ON_ENTRY[new_status].value
            if new_status == OrderStatus.CONFIRMED and order.coupon_code:
                self.coupon_service.mark_used(session, order.coupon_code, order.user_id, order.id)
            order = self._commit_transition(session, order, new_status)
            if new_status in (OrderStatus.SHIPPED, OrderStatus.CANCELLED):
                self.notification_service.notify_order_event(session, order, new_status.value)

        return OrderStatusUpdateResponse(
            order=self._status_summary(order),
            message="Order status updated successfully",
        )

    def get_status(self, session: Session, order_id: uuid.UUID) -> OrderStatusResponse:
        """
        Public tracking view: order summary plus derived status history.
        """
        order = self._get_order(session, order_id)
        return OrderStatusResponse(
            order=self._status_summary(order),
            status_history=self._status_history(order),
        )

    # -------- Helpers --------

    def _get_order(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _get_owned_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    @staticmethod
    def _ensure_transition(order: Order, new_status: OrderStatus) -> None:
        if can_transition(order.status, new_status):
            return
        if order.status in {s.value for s in TERMINAL_STATUSES}:
            detail = f"Order is already {order.status}"
        else:
            detail = f"Invalid status transition: {order.status} -> {new_status.value}"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    def _commit_transition(
        self,
        session: Session,
        order: Order,
        new_status: OrderStatus,
    ) -> Order:
        """
        Write the new status and the progress projection in one commit.
        """
        self._ensure_transition(order, new_status)
        previous = order.status
        order.status = new_status.value
        order.updated_at = utcnow()

        self.order_repo.save_order(session, order)
        self.progress_service.sync_order_progress(session, order)
        session.commit()
        session.refresh(order)

        logger.info(
            "Order %s: %s -> %s (payment=%s)",
            order.order_number,
            previous,
            order.status,
            order.payment_status,
        )
        return order

    @staticmethod
    def _merge_lines(lines: list[OrderLineIn]) -> list[OrderLineIn]:
        """Collapse duplicate (id, is_part) lines by summing quantities."""
        merged: dict[tuple[uuid.UUID, bool], OrderLineIn] = {}
        for line in lines:
            key = (line.id, line.is_part)
            if key in merged:
                merged[key] = OrderLineIn(
                    id=line.id,
                    quantity=merged[key].quantity + line.quantity,
                    is_part=line.is_part,
                )
            else:
                merged[key] = line
        return list(merged.values())

    def _price_lines(
        self,
        session: Session,
        requested: list[tuple[uuid.UUID, int, bool]],
    ) -> list[_PricedLine]:
        """
        Look up every requested (id, quantity, is_part) in the catalog.

        All problems are collected and reported together as one 400.
        """
        product_ids = [item_id for item_id, _, is_part in requested if not is_part]
        part_ids = [item_id for item_id, _, is_part in requested if is_part]
        products = {p.id: p for p in self.product_repo.get_by_ids(session, product_ids)}
        parts = {p.id: p for p in self.product_repo.get_parts_by_ids(session, part_ids)}

        errors: list[dict[str, str]] = []
        lines: list[_PricedLine] = []

        for item_id, quantity, is_part in requested:
            listing = parts.get(item_id) if is_part else products.get(item_id)
            kind = "Part" if is_part else "Product"

            if listing is None:
                errors.append({"item_id": str(item_id), "reason": f"{kind} not found"})
                continue
            if not listing.is_active:
                errors.append({"item_id": str(item_id), "reason": f"{kind} is inactive"})
                continue
            if quantity > listing.stock_quantity:
                errors.append(
                    {
                        "item_id": str(item_id),
                        "reason": f"Insufficient stock (have {listing.stock_quantity}, requested {quantity})",
                    }
                )
                continue

            lines.append(
                _PricedLine(
                    item_id=listing.id,
                    is_part=is_part,
                    name=listing.name,
                    sku=listing.sku,
                    unit_price=to_money(listing.price),
                    quantity=quantity,
                )
            )

        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Order validation failed", "items": errors},
            )
        return lines

    def _new_order_number(self, session: Session) -> str:
        for _ in range(_ORDER_NUMBER_ATTEMPTS):
            number = generate_order_number()
            if self.order_repo.get_by_number(session, number) is None:
                return number
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate an order number, please retry",
        )

    def _persist_new_order(
        self,
        session: Session,
        *,
        lines: list[_PricedLine],
        user_id: uuid.UUID | None,
        customer_email: str | None,
        shipping: Decimal,
        coupon_code: str | None,
        shipping_address: dict | None,
        billing_address: dict | None,
    ) -> Order:
        """
        Insert order, items and progress rows (flush only, caller commits).
        """
        settings = get_settings()
        subtotal = to_money(sum((line.unit_price * line.quantity for line in lines), ZERO))

        discount = ZERO
        normalized_code = None
        if coupon_code:
            coupon, discount = self.coupon_service.resolve_discount(session, coupon_code, subtotal)
            normalized_code = coupon.code

        pricing = compute_pricing(
            [(line.unit_price, line.quantity) for line in lines],
            shipping=shipping,
            discount=discount,
            rate=settings.TAX_RATE,
        )
        if pricing.subtotal <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Total order amount must be positive",
            )

        order = Order(
            order_number=self._new_order_number(session),
            user_id=user_id,
            customer_email=customer_email,
            subtotal=pricing.subtotal,
            shipping_amount=pricing.shipping,
            discount_amount=pricing.discount,
            tax_amount=pricing.tax,
            total_amount=pricing.total,
            currency=settings.CURRENCY,
            status=OrderStatus.PENDING_ADMIN_REVIEW.value,
            payment_status=PaymentStatus.PENDING.value,
            coupon_code=normalized_code,
            shipping_address=shipping_address,
            billing_address=billing_address,
        )
        order = self.order_repo.save_order(session, order)

        self.order_repo.add_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=None if line.is_part else line.item_id,
                    part_id=line.item_id if line.is_part else None,
                    is_part=line.is_part,
                    product_name=line.name,
                    product_sku=line.sku,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=to_money(line.unit_price * line.quantity),
                )
                for line in lines
            ],
        )
        self.progress_service.initialize_progress(session, order)

        logger.info(
            "Order %s created (user=%s, items=%d, total=%s)",
            order.order_number,
            user_id or "guest",
            len(lines),
            order.total_amount,
        )
        return order

    @staticmethod
    def _status_summary(order: Order) -> OrderStatusSummary:
        return OrderStatusSummary(
            id=order.id,
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    @staticmethod
    def _status_history(order: Order) -> list[StatusHistoryEntry]:
        """
        Tracking history derived from the current status.

        Starts with checkout_request at created_at and adds every later
        step the order has reached, stopping at the first one it has not.
        Shipped and delivered orders have passed confirmation, so they
        show the full pipeline followed by their own entries.
        """
        anchor = order.status
        if anchor in (OrderStatus.SHIPPED.value, OrderStatus.DELIVERED.value):
            anchor = OrderStatus.CONFIRMED.value

        submitted_at = None
        if order.payment_submission:
            submitted_at = PaymentSubmission.model_validate(order.payment_submission).submitted_at

        step_times = {
            TrackingStatus.INVOICE_GENERATED: order.invoiced_at,
            TrackingStatus.PAYMENT_SUBMITTED: submitted_at,
        }

        first = TRACKING_STEP_ORDER[0]
        history = [
            StatusHistoryEntry(
                status=first.value,
                timestamp=order.created_at,
                description=TRACKING_STEP_DESCRIPTIONS[first],
                step=1,
            )
        ]
        for number, step in enumerate(TRACKING_STEP_ORDER[1:], start=2):
            if not has_reached_status(anchor, step):
                break
            history.append(
                StatusHistoryEntry(
                    status=step.value,
                    timestamp=step_times.get(step) or order.updated_at,
                    description=TRACKING_STEP_DESCRIPTIONS[step],
                    step=number,
                )
            )

        if order.shipped_at is not None:
            history.append(
                StatusHistoryEntry(
                    status=OrderStatus.SHIPPED.value,
                    timestamp=order.shipped_at,
                    description="Order shipped",
                    step=len(TRACKING_STEP_ORDER) + 1,
                )
            )
        if order.delivered_at is not None:
            history.append(
                StatusHistoryEntry(
                    status=OrderStatus.DELIVERED.value,
                    timestamp=order.delivered_at,
                    description="Order delivered",
                    step=len(TRACKING_STEP_ORDER) + 2,
                )
            )
        return history

    @staticmethod
    def _build_order_with_items_dto(
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models.
        """
        base = OrderRead.model_validate(order)
        return OrderWithItemsRead(
            **base.model_dump(),
            items=[OrderItemRead.model_validate(it) for it in items],
        )
