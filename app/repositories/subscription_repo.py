# app/repositories/subscription_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.subscription import EmailSubscription, ProductNotification
from app.models.user import User


class SubscriptionRepository:
    """
    Data access layer for email_subscriptions and product_notifications.
    """

    def get_for_user(self, session: Session, user_id: uuid.UUID) -> EmailSubscription | None:
        stmt = select(EmailSubscription).where(EmailSubscription.user_id == user_id)
        return session.exec(stmt).first()

    def list_subscribers(self, session: Session) -> list[tuple[EmailSubscription, User]]:
        stmt = (
            select(EmailSubscription, User)
            .join(User, User.id == EmailSubscription.user_id)
            .where(EmailSubscription.subscribed_to_new_products == True)  # noqa: E712
            .order_by(col(EmailSubscription.created_at))
        )
        return list(session.exec(stmt).all())

    def save(self, session: Session, subscription: EmailSubscription) -> EmailSubscription:
        session.add(subscription)
        session.commit()
        session.refresh(subscription)
        return subscription

    # ----- Dedupe markers -----

    def notified_user_ids(self, session: Session, item_id: uuid.UUID) -> set[uuid.UUID]:
        stmt = select(ProductNotification.user_id).where(ProductNotification.item_id == item_id)
        return set(session.exec(stmt).all())

    def record_notification(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        item_type: str,
    ) -> ProductNotification:
        marker = ProductNotification(user_id=user_id, item_id=item_id, item_type=item_type)
        session.add(marker)
        session.commit()
        return marker
