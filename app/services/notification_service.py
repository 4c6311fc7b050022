# app/services/notification_service.py
"""
Customer-facing email notifications.

All delivery goes through app.core.email_client.send_email; this module
owns the templates, the bulk loop and the new-listing fan-out.
"""
import html
import logging
import time
import uuid
from decimal import Decimal

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.email_client import EmailDeliveryError, send_email
from app.core.time_utils import utcnow
from app.models.order import Order
from app.models.subscription import EmailSubscription
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.repositories.user_repo import UserRepository
from app.schemas.notification import (
    ContactRequest,
    NotificationRecipient,
    NotificationSummary,
    ProductInfo,
    SubscriptionRead,
    SubscriptionUpdate,
)

logger = logging.getLogger(__name__)


# ----- Templates -----


def _format_price(price: Decimal | None) -> str:
    if price is None:
        return ""
    return f"${Decimal(str(price)):.2f}"


def render_new_listing_email(recipient_name: str | None, product: ProductInfo) -> tuple[str, str, str]:
    """
    Build (subject, text, html) for a new listing announcement.
    Every interpolated value is HTML-escaped.
    """
    settings = get_settings()
    name = html.escape(product.name)
    greeting = html.escape(recipient_name or "there")
    description = html.escape(product.description or "")
    price = html.escape(_format_price(product.price))
    url = html.escape(product.url or f"{settings.public_site_url}/products", quote=True)

    subject = f"New Product Launched: {product.name}"

    text_body = (
        f"Hi {recipient_name or 'there'},\n\n"
        f"{product.name} just landed at Auto Speed Shop.\n"
        f"{product.description or ''}\n"
        f"{_format_price(product.price)}\n\n"
        f"View it here: {product.url or settings.public_site_url + '/products'}\n"
    )

    image_block = ""
    if product.image_url:
        image_src = html.escape(product.image_url, quote=True)
        image_block = f'<img src="{image_src}" alt="{name}" style="max-width:100%;border-radius:8px;" />'

    html_body = f"""\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; background:#f4f4f4; padding:24px;">
    <div style="max-width:600px;margin:0 auto;background:#fff;border-radius:8px;padding:24px;">
      <h2 style="color:#d32f2f;">New arrival at Auto Speed Shop</h2>
      <p>Hi {greeting},</p>
      <p><strong>{name}</strong> is now available.</p>
      {image_block}
      <p>{description}</p>
      <p style="font-size:18px;"><strong>{price}</strong></p>
      <p><a href="{url}" style="background:#d32f2f;color:#fff;padding:10px 18px;border-radius:4px;text-decoration:none;">View product</a></p>
      <p style="color:#888;font-size:12px;">You receive this email because you subscribed to new product alerts.</p>
    </div>
  </body>
</html>
"""
    return subject, text_body, html_body


_ORDER_EVENT_COPY: dict[str, tuple[str, str]] = {
    "invoice_sent": (
        "Your invoice for order {number} is ready",
        "Your invoice total is {total}. Please review it and accept or decline it from your account.",
    ),
    "payment_details_shared": (
        "Payment details for order {number}",
        "Please send {total} to {payment_email} and submit your transaction reference from your account.",
    ),
    "payment_verified": (
        "Payment received for order {number}",
        "We verified your payment of {total}. Your order is confirmed.",
    ),
    "payment_rejected": (
        "Payment issue with order {number}",
        "We could not verify your payment: {reason}. Please submit it again.",
    ),
    "cancelled": (
        "Order {number} was cancelled",
        "Your order has been cancelled. {reason}",
    ),
    "shipped": (
        "Order {number} has shipped",
        "Good news, your order is on its way.",
    ),
}


def render_order_event_email(order: Order, event: str) -> tuple[str, str, str]:
    settings = get_settings()
    subject_tpl, body_tpl = _ORDER_EVENT_COPY[event]
    values = {
        "number": order.order_number,
        "total": _format_price(order.total_amount),
        "payment_email": order.admin_payment_email or "",
        "reason": order.rejection_reason or "",
    }
    subject = subject_tpl.format(**values)
    text_body = body_tpl.format(**values)
    link = f"{settings.public_site_url}/orders/{order.id}"
    text_full = f"{text_body}\n\nTrack your order: {link}\n"

    escaped = {key: html.escape(str(value)) for key, value in values.items()}
    html_body = f"""\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif;">
    <h2>{html.escape(subject)}</h2>
    <p>{body_tpl.format(**escaped)}</p>
    <p><a href="{html.escape(link, quote=True)}">Track your order</a></p>
  </body>
</html>
"""
    return subject, text_full, html_body


class NotificationService:
    """
    Orchestrates email notifications.

    Responsibilities:
      - single transactional sends (raise on failure)
      - bulk sends with per-recipient failure isolation
      - new-listing announcements to subscribers, deduplicated
      - order workflow emails (best effort)
      - subscription preferences
    """

    def __init__(
        self,
        subscription_repo: SubscriptionRepository,
        product_repo: ProductRepository,
        user_repo: UserRepository,
    ):
        self.subscription_repo = subscription_repo
        self.product_repo = product_repo
        self.user_repo = user_repo

    # ----- Single + bulk -----

    def send_notification(self, to: str | None, subject: str | None, html_body: str | None) -> str:
        """
        Send one email. Missing fields -> 400, delivery failure -> 500.

        Returns the backend name that handled the message.
        """
        if not to or not subject or not html_body:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing required fields: to, subject, html",
            )
        try:
            return send_email(to, subject, text_body=subject, html_body=html_body)
        except EmailDeliveryError as exc:
            logger.error("Notification to %s failed: %s", to, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send email",
            )

    def send_bulk_notifications(
        self,
        users: list[NotificationRecipient],
        product_info: ProductInfo,
    ) -> NotificationSummary:
        """
        Announce a product to a list of recipients, one at a time.

        A failing recipient is logged and skipped; the loop never aborts.
        """
        delay = get_settings().EMAIL_SEND_DELAY_SECONDS
        success = 0
        failed: list[str] = []

        logger.info("Bulk notification for %r to %d user(s)", product_info.name, len(users))

        for index, user in enumerate(users):
            if index and delay > 0:
                time.sleep(delay)
            subject, text_body, html_body = render_new_listing_email(user.name, product_info)
            try:
                send_email(user.email, subject, text_body, html_body)
                success += 1
            except EmailDeliveryError as exc:
                logger.warning("Bulk notification to %s failed: %s", user.email, exc)
                failed.append(user.email)

        return NotificationSummary(
            total_users=len(users),
            success_count=success,
            fail_count=len(failed),
            failed_recipients=failed,
        )

    def send_contact_message(self, payload: ContactRequest) -> str:
        """
        Forward a contact form submission to the shop inbox.
        """
        settings = get_settings()
        inbox = settings.OFFICIAL_EMAIL or settings.SMTP_FROM_EMAIL or settings.smtp_username
        if not inbox:
            logger.warning("OFFICIAL_EMAIL not set; contact form from %s is only logged", payload.email)
            inbox = "contact@localhost"

        full_name = " ".join(p for p in (payload.first_name, payload.last_name) if p)
        subject = f"New Contact Form Submission: {payload.subject}"
        text_body = (
            f"Name: {full_name}\n"
            f"Email: {payload.email}\n"
            f"Phone: {payload.phone or '-'}\n"
            f"Subject: {payload.subject}\n\n"
            f"{payload.message}\n"
        )
        message_html = html.escape(payload.message).replace("\n", "<br />")
        html_body = f"""\
<p><strong>Name:</strong> {html.escape(full_name)}</p>
<p><strong>Email:</strong> {html.escape(str(payload.email))}</p>
<p><strong>Phone:</strong> {html.escape(payload.phone or '-')}</p>
<p><strong>Subject:</strong> {html.escape(payload.subject)}</p>
<p><strong>Message:</strong></p>
<p>{message_html}</p>
"""
        try:
            return send_email(inbox, subject, text_body, html_body)
        except EmailDeliveryError as exc:
            logger.error("Contact form from %s could not be forwarded: %s", payload.email, exc)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send email.",
            )

    # ----- New listing fan-out -----

    def _listing_info(self, session: Session, kind: str, item_id: uuid.UUID) -> ProductInfo:
        settings = get_settings()
        if kind == "part":
            part = self.product_repo.get_part(session, item_id)
            if not part:
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Part not found")
            return ProductInfo(
                id=part.id,
                name=part.name,
                price=part.price,
                description=part.description,
                image_url=part.image_url,
                url=f"{settings.public_site_url}/parts/{part.id}",
            )

        product = self.product_repo.get_by_id(session, item_id)
        if not product:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
        return ProductInfo(
            id=product.id,
            name=product.name,
            price=product.price,
            description=product.description,
            image_url=product.hero_image_url,
            url=f"{settings.public_site_url}/products/{product.slug}",
        )

    def notify_new_listing(
        self,
        session: Session,
        kind: str,
        item_id: uuid.UUID,
    ) -> NotificationSummary:
        """
        Email every subscriber who has not yet been told about this listing.
        A marker row is written after each successful send.
        """
        info = self._listing_info(session, kind, item_id)
        already = self.subscription_repo.notified_user_ids(session, item_id)
        recipients = [
            (sub, user)
            for sub, user in self.subscription_repo.list_subscribers(session)
            if user.id not in already
        ]

        delay = get_settings().EMAIL_SEND_DELAY_SECONDS
        success = 0
        failed: list[str] = []

        for index, (sub, user) in enumerate(recipients):
            if index and delay > 0:
                time.sleep(delay)
            subject, text_body, html_body = render_new_listing_email(user.name, info)
            try:
                send_email(sub.email, subject, text_body, html_body)
            except EmailDeliveryError as exc:
                logger.warning("New listing email to %s failed: %s", sub.email, exc)
                failed.append(sub.email)
                continue
            self.subscription_repo.record_notification(session, user.id, item_id, kind)
            success += 1

        logger.info(
            "New %s %s announced: %d sent, %d failed, %d skipped",
            kind,
            item_id,
            success,
            len(failed),
            len(already),
        )
        return NotificationSummary(
            total_users=len(recipients),
            success_count=success,
            fail_count=len(failed),
            failed_recipients=failed,
        )

    # ----- Order workflow -----

    def notify_order_event(self, session: Session, order: Order, event: str) -> bool:
        """
        Best-effort customer email for an order transition.

        Called after the transition is committed; a delivery failure is
        logged and never undoes the transition.
        """
        recipient = order.customer_email
        if recipient is None and order.user_id is not None:
            user = self.user_repo.get_by_id(session, order.user_id)
            recipient = user.email if user else None
        if not recipient:
            logger.info("No email on file for order %s; skipping %s mail", order.order_number, event)
            return False

        subject, text_body, html_body = render_order_event_email(order, event)
        try:
            send_email(recipient, subject, text_body, html_body)
        except EmailDeliveryError as exc:
            logger.warning("Order %s %s email failed: %s", order.order_number, event, exc)
            return False
        return True

    # ----- Subscriptions -----

    def get_subscription(self, session: Session, user: User) -> SubscriptionRead:
        sub = self.subscription_repo.get_for_user(session, user.id)
        if sub is None:
            return SubscriptionRead(
                user_id=user.id,
                email=user.email,
                subscribed_to_new_products=False,
            )
        return SubscriptionRead.model_validate(sub)

    def upsert_subscription(
        self,
        session: Session,
        user: User,
        payload: SubscriptionUpdate,
    ) -> SubscriptionRead:
        sub = self.subscription_repo.get_for_user(session, user.id)
        if sub is None:
            sub = EmailSubscription(user_id=user.id, email=payload.email or user.email)
        elif payload.email:
            sub.email = payload.email
        sub.subscribed_to_new_products = payload.subscribed_to_new_products
        sub.updated_at = utcnow()
        sub = self.subscription_repo.save(session, sub)
        return SubscriptionRead.model_validate(sub)

    def unsubscribe(self, session: Session, user: User) -> SubscriptionRead:
        sub = self.subscription_repo.get_for_user(session, user.id)
        if sub is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No subscription found",
            )
        sub.subscribed_to_new_products = False
        sub.updated_at = utcnow()
        sub = self.subscription_repo.save(session, sub)
        return SubscriptionRead.model_validate(sub)
