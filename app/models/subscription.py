# app/models/subscription.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class EmailSubscription(SQLModel, table=True):
    """
    Per-user opt-in for "new listing" emails. At most one row per user.
    """

    __tablename__ = "email_subscriptions"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", unique=True, index=True)
    email: str
    subscribed_to_new_products: bool = Field(default=True, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ProductNotification(SQLModel, table=True):
    """
    Marker that a user was already emailed about a listing.
    item_type is "product" or "part".
    """

    __tablename__ = "product_notifications"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    item_id: uuid.UUID = Field(index=True)
    item_type: str = Field(default="product", max_length=20)

    sent_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
