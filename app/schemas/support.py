# app/schemas/support.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

TicketStatus = Literal["open", "in_progress", "resolved", "closed"]
TicketPriority = Literal["low", "medium", "high", "urgent"]


def _not_blank(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


class TicketCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    subject: str = Field(max_length=200)
    description: str
    priority: TicketPriority = "medium"
    category: str = Field(default="general", max_length=50)
    order_id: uuid.UUID | None = None

    @field_validator("subject", "description")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _not_blank(v)


class TicketRead(SQLModel):
    id: uuid.UUID
    ticket_number: str
    user_id: uuid.UUID
    order_id: uuid.UUID | None
    subject: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category: str
    assigned_to: uuid.UUID | None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None


class TicketMessageCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    message: str

    @field_validator("message")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _not_blank(v)


class TicketMessageRead(SQLModel):
    id: uuid.UUID
    ticket_id: uuid.UUID
    user_id: uuid.UUID
    message: str
    is_admin: bool
    created_at: datetime


class TicketWithMessagesRead(TicketRead):
    messages: list[TicketMessageRead]


class TicketAssign(SQLModel):
    model_config = ConfigDict(extra="forbid")

    admin_id: uuid.UUID


class TicketStats(SQLModel):
    total: int
    open: int
    in_progress: int
    resolved: int
    closed: int
    urgent: int


# ----- Chat -----


class ChatStart(SQLModel):
    model_config = ConfigDict(extra="forbid")

    message: str

    @field_validator("message")
    @classmethod
    def not_empty(cls, v: str) -> str:
        return _not_blank(v)


class ChatMessageCreate(ChatStart):
    pass


class ChatMessageRead(SQLModel):
    id: uuid.UUID
    conversation_id: str
    user_id: uuid.UUID
    sender_id: uuid.UUID
    message: str
    is_admin: bool
    is_read: bool
    created_at: datetime


class ConversationSummary(SQLModel):
    conversation_id: str
    user_id: uuid.UUID
    user_email: str | None
    user_name: str | None
    last_message: ChatMessageRead
    unread_count: int
