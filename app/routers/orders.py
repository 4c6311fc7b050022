# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlmodel import Session

from app.core.auth import get_current_user, require_admin, require_auth, require_user
from app.core.storage_utils import read_upload
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.coupon_repo import CouponRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.repositories.user_repo import UserRepository
from app.schemas.order import (
    CheckoutRequest,
    CreateOrderRequest,
    CreateOrderResponse,
    InvoiceCreate,
    InvoiceDecision,
    OrderCancel,
    OrderProgressSummary,
    OrderRead,
    OrderStatusResponse,
    OrderStatusUpdate,
    OrderStatusUpdateResponse,
    OrderWithItemsRead,
    PaymentDetailsShare,
    PaymentSubmissionCreate,
    PaymentVerification,
    ProgressStepUpdate,
    ScreenshotUploadRead,
)
from app.services.coupon_service import CouponService
from app.services.notification_service import NotificationService
from app.services.order_service import OrderService
from app.services.progress_service import ProgressService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
cart_repo = CartRepository()
product_repo = ProductRepository()
user_repo = UserRepository()

progress_service = ProgressService(order_repo)
service = OrderService(
    order_repo,
    cart_repo,
    product_repo,
    progress_service,
    CouponService(CouponRepository(), user_repo),
    NotificationService(SubscriptionRepository(), product_repo, user_repo),
)


# -------- Customer endpoints --------


@router.post(
    "/create-order",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_order(
    payload: CreateOrderRequest,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Submit an order from a posted item list.

    Guests may call this; a logged-in caller is recorded as the owner.
    The order starts in `pending_admin_review`.
    """
    return service.create_order(session, payload, current_user)


@router.post(
    "/checkout",
    response_model=OrderWithItemsRead,
    status_code=status.HTTP_201_CREATED,
)
def checkout(
    payload: CheckoutRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """Turn the caller's cart into an order, priced and optionally discounted."""
    return service.checkout_from_cart(session, current_user, payload)


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.get_user_order(session, current_user.id, order_id)


@router.post(
    "/me/{order_id}/invoice/respond",
    response_model=OrderRead,
)
def respond_to_invoice(
    order_id: uuid.UUID,
    payload: InvoiceDecision,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Accept or decline the invoice. Declining cancels the order.
    """
    return service.respond_to_invoice(session, current_user.id, order_id, payload.accept)


@router.post(
    "/me/{order_id}/payment",
    response_model=OrderRead,
)
def submit_payment(
    order_id: uuid.UUID,
    payload: PaymentSubmissionCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Record an external payment (transaction id, amount, optional
    screenshot URL) for admin verification.
    """
    return service.submit_payment(session, current_user.id, order_id, payload)


@router.post(
    "/me/{order_id}/payment/screenshot",
    response_model=ScreenshotUploadRead,
)
def upload_payment_screenshot(
    order_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Upload a payment screenshot (JPEG, PNG, WEBP) and get its public URL.
    """
    content_type, file_bytes = read_upload(file)
    url = service.upload_payment_screenshot(session, current_user.id, order_id, content_type, file_bytes)
    return ScreenshotUploadRead(url=url)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status_filter: str | None = None,
):
    """
    List all orders (admin only), newest first.

    `status_filter` accepts a system or tracking status token.
    """
    return service.list_all_orders(session, skip, limit, status_filter)


@router.get(
    "/payments/pending",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_pending_payments(session: Session = Depends(get_session)):
    """
    Orders whose payment waits for admin verification.
    """
    return service.list_pending_payments(session)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_order_admin(session, order_id)


@router.post(
    "/{order_id}/invoice",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def create_invoice(
    order_id: uuid.UUID,
    payload: InvoiceCreate,
    session: Session = Depends(get_session),
):
    """
    Attach convenience fee and delivery charge, recompute tax/total and
    send the invoice to the customer (admin only).
    """
    return service.create_invoice(session, order_id, payload)


@router.post(
    "/{order_id}/payment-details",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def share_payment_details(
    order_id: uuid.UUID,
    payload: PaymentDetailsShare,
    session: Session = Depends(get_session),
):
    return service.share_payment_details(session, order_id, payload)


@router.post(
    "/{order_id}/payment/verify",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def verify_payment(
    order_id: uuid.UUID,
    payload: PaymentVerification,
    session: Session = Depends(get_session),
):
    """
    Approve (-> confirmed) or reject (-> payment_rejected) a submitted
    payment (admin only).
    """
    return service.verify_payment(session, order_id, payload)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def cancel_order(
    order_id: uuid.UUID,
    payload: OrderCancel | None = None,
    session: Session = Depends(get_session),
):
    return service.cancel_order(session, order_id, payload.reason if payload else None)


# -------- Status tracking --------


@router.get(
    "/{order_id}/status",
    response_model=OrderStatusResponse,
)
def get_order_status(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Public tracking view: order summary and status history.
    """
    return service.get_status(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderStatusUpdateResponse,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

    Accepts system tokens (`invoice_sent`) and tracking tokens
    (`invoice_generated`); the transition table in
    app.core.order_status decides what is allowed.
    """
    return service.update_status(session, order_id, payload)


# -------- Progress tracker --------


@router.get(
    "/{order_id}/progress",
    response_model=OrderProgressSummary,
)
def get_order_progress(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Progress tracker of an order (owner or admin).
    """
    service.ensure_can_view(session, current_user, order_id)
    return progress_service.get_order_progress(session, order_id)


@router.post(
    "/{order_id}/progress/sync",
    response_model=OrderProgressSummary,
)
def sync_order_progress(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Re-derive the progress steps from the order status.
    """
    service.ensure_can_view(session, current_user, order_id)
    return progress_service.refresh_order_progress(session, order_id)


@router.patch(
    "/{order_id}/progress/{step_number}",
    response_model=OrderProgressSummary,
    dependencies=[Depends(require_admin)],
)
def update_progress_step(
    order_id: uuid.UUID,
    payload: ProgressStepUpdate,
    step_number: int,
    session: Session = Depends(get_session),
):
    """
    Manually set one progress step (admin only).
    """
    return progress_service.update_progress_step(session, order_id, step_number, payload.status)
