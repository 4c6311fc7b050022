# app/schemas/notification.py
import uuid
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, EmailStr
from sqlmodel import SQLModel, Field


class NotificationRequest(SQLModel):
    """
    Body of POST /sendNotification. Fields are optional at the schema
    level so that a missing one produces 400 (not 422), like the
    storefront expects.
    """

    to: str | None = None
    subject: str | None = None
    html: str | None = None


class NotificationRecipient(SQLModel):
    email: str
    name: str | None = None


class ProductInfo(SQLModel):
    id: uuid.UUID | None = None
    name: str
    price: Decimal | None = None
    description: str | None = None
    image_url: str | None = None
    url: str | None = None


class BulkNotificationRequest(SQLModel):
    users: list[NotificationRecipient] | None = None
    product_info: ProductInfo | None = None


class NotificationSummary(SQLModel):
    total_users: int
    success_count: int
    fail_count: int
    failed_recipients: list[str]


class NotificationSendResult(SQLModel):
    success: bool
    backend: str
    message: str


class NewListingNotify(SQLModel):
    model_config = ConfigDict(extra="forbid")

    kind: Literal["product", "part"]
    item_id: uuid.UUID


class SubscriptionRead(SQLModel):
    user_id: uuid.UUID
    email: str
    subscribed_to_new_products: bool


class SubscriptionUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    subscribed_to_new_products: bool = True
    email: EmailStr | None = None


class ContactRequest(SQLModel):
    """
    Public contact form. All fields are plain text and escaped before
    they reach the HTML body.
    """

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=30)
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)
