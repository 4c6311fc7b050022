# app/models/support.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SupportTicket(SQLModel, table=True):
    """
    Customer support ticket.

    status:   open | in_progress | resolved | closed
    priority: low | medium | high | urgent
    """

    __tablename__ = "support_tickets"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    ticket_number: str = Field(unique=True, index=True, max_length=40)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    order_id: uuid.UUID | None = Field(default=None, foreign_key="orders.id")

    subject: str = Field(max_length=200)
    description: str

    status: str = Field(default="open", index=True)
    priority: str = Field(default="medium", index=True)
    category: str = Field(default="general", max_length=50)

    assigned_to: uuid.UUID | None = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    resolved_at: datetime | None = None


class SupportTicketMessage(SQLModel, table=True):
    __tablename__ = "support_ticket_messages"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    ticket_id: uuid.UUID = Field(foreign_key="support_tickets.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id")
    message: str
    is_admin: bool = Field(default=False)

    created_at: datetime = Field(default_factory=_utcnow)


class ChatMessage(SQLModel, table=True):
    """
    Support chat line. A conversation is identified by conversation_id
    (conv_<user_id>_<ms>) and always belongs to one customer (user_id).
    """

    __tablename__ = "chat_messages"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
    )

    conversation_id: str = Field(index=True, max_length=100)

    # Owner of the conversation (the customer)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    sender_id: uuid.UUID = Field(foreign_key="users.id")

    message: str
    is_admin: bool = Field(default=False)
    is_read: bool = Field(default=False, index=True)

    created_at: datetime = Field(default_factory=_utcnow, index=True)
