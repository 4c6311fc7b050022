# app/routers/notifications.py
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.repositories.user_repo import UserRepository
from app.schemas.notification import (
    BulkNotificationRequest,
    ContactRequest,
    NewListingNotify,
    NotificationRequest,
    NotificationSendResult,
    NotificationSummary,
    SubscriptionRead,
    SubscriptionUpdate,
)
from app.services.notification_service import NotificationService

router = APIRouter(tags=["Notifications"])

service = NotificationService(SubscriptionRepository(), ProductRepository(), UserRepository())


# -------- Raw sends (admin) --------


@router.post(
    "/sendNotification",
    response_model=NotificationSendResult,
    dependencies=[Depends(require_admin)],
)
def send_notification(payload: NotificationRequest):
    """
    Send a single HTML email (admin only).

    Missing `to`, `subject` or `html` -> 400.
    """
    backend = service.send_notification(payload.to, payload.subject, payload.html)
    return NotificationSendResult(
        success=True,
        backend=backend,
        message="Email sent successfully",
    )


@router.post(
    "/sendBulkNotifications",
    dependencies=[Depends(require_admin)],
    responses={207: {"description": "Some recipients failed"}},
)
def send_bulk_notifications(payload: BulkNotificationRequest):
    """
    Announce a product to a list of recipients (admin only).

    200 when every email went out, 207 when some recipients failed.
    """
    if not payload.users or payload.product_info is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: users (non-empty array), product_info",
        )

    summary = service.send_bulk_notifications(payload.users, payload.product_info)
    status_code = status.HTTP_207_MULTI_STATUS if summary.fail_count else status.HTTP_200_OK
    return JSONResponse(
        status_code=status_code,
        content={
            "message": f"Notifications sent to {summary.success_count} of {summary.total_users} user(s)",
            "summary": summary.model_dump(),
        },
    )


# -------- New listing announcements --------


@router.post(
    "/notifications/new-listing",
    response_model=NotificationSummary,
    dependencies=[Depends(require_admin)],
)
def notify_new_listing(
    payload: NewListingNotify,
    session: Session = Depends(get_session),
):
    """
    Email subscribers about a product or part they have not heard of yet.
    """
    return service.notify_new_listing(session, payload.kind, payload.item_id)


# -------- Subscription preferences --------


@router.get("/notifications/subscription", response_model=SubscriptionRead)
def get_subscription(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_subscription(session, current_user)


@router.put("/notifications/subscription", response_model=SubscriptionRead)
def update_subscription(
    payload: SubscriptionUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Subscribe to (or update) new product alerts for the current user.
    """
    return service.upsert_subscription(session, current_user, payload)


@router.delete("/notifications/subscription", response_model=SubscriptionRead)
def unsubscribe(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.unsubscribe(session, current_user)


# -------- Contact form --------


@router.post("/contact")
def submit_contact_form(payload: ContactRequest) -> dict[str, str]:
    """
    Public contact form; forwarded to the shop inbox.
    """
    service.send_contact_message(payload)
    return {"message": "Email sent successfully!"}
