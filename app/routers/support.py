# app/routers/support.py
import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin, require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.support_repo import SupportRepository
from app.repositories.user_repo import UserRepository
from app.schemas.support import (
    ChatMessageCreate,
    ChatMessageRead,
    ChatStart,
    ConversationSummary,
    TicketAssign,
    TicketCreate,
    TicketMessageCreate,
    TicketPriority,
    TicketRead,
    TicketStats,
    TicketStatus,
    TicketWithMessagesRead,
)
from app.services.chat_service import ChatService
from app.services.support_service import SupportService

router = APIRouter(prefix="/support", tags=["Support"])

support_repo = SupportRepository()
user_repo = UserRepository()
tickets = SupportService(support_repo, OrderRepository(), user_repo)
chat = ChatService(support_repo, user_repo)


# -------- Tickets: customer --------


@router.post(
    "/tickets",
    response_model=TicketRead,
    status_code=status.HTTP_201_CREATED,
)
def create_ticket(
    payload: TicketCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Open a support ticket, optionally about one of the caller's orders.
    """
    return tickets.create_ticket(session, current_user, payload)


@router.get("/tickets/me", response_model=list[TicketRead])
def list_my_tickets(
    status_filter: TicketStatus | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return tickets.list_my_tickets(session, current_user.id, status_filter)


# -------- Tickets: admin --------


@router.get(
    "/tickets/stats",
    response_model=TicketStats,
    dependencies=[Depends(require_admin)],
)
def ticket_stats(session: Session = Depends(get_session)):
    return tickets.get_stats(session)


@router.get(
    "/tickets",
    response_model=list[TicketRead],
    dependencies=[Depends(require_admin)],
)
def list_tickets(
    session: Session = Depends(get_session),
    status_filter: TicketStatus | None = None,
    priority: TicketPriority | None = None,
    q: str | None = None,
    skip: int = 0,
    limit: int = 50,
):
    """
    List or search all tickets (admin only).

    `q` matches subject, description and ticket number.
    """
    return tickets.list_tickets(
        session,
        status_filter=status_filter,
        priority=priority,
        query=q,
        skip=skip,
        limit=limit,
    )


# -------- Tickets: shared --------


@router.get("/tickets/{ticket_id}", response_model=TicketWithMessagesRead)
def get_ticket(
    ticket_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Ticket with its messages. Customers only see their own tickets.
    """
    return tickets.get_ticket(session, current_user, ticket_id)


@router.post("/tickets/{ticket_id}/messages", response_model=TicketWithMessagesRead)
def add_ticket_message(
    ticket_id: uuid.UUID,
    payload: TicketMessageCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return tickets.add_message(session, current_user, ticket_id, payload)


@router.post(
    "/tickets/{ticket_id}/assign",
    response_model=TicketRead,
    dependencies=[Depends(require_admin)],
)
def assign_ticket(
    ticket_id: uuid.UUID,
    payload: TicketAssign,
    session: Session = Depends(get_session),
):
    return tickets.assign_ticket(session, ticket_id, payload.admin_id)


@router.post(
    "/tickets/{ticket_id}/resolve",
    response_model=TicketRead,
    dependencies=[Depends(require_admin)],
)
def resolve_ticket(
    ticket_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return tickets.resolve_ticket(session, ticket_id)


@router.post(
    "/tickets/{ticket_id}/close",
    response_model=TicketRead,
    dependencies=[Depends(require_admin)],
)
def close_ticket(
    ticket_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return tickets.close_ticket(session, ticket_id)


@router.post(
    "/tickets/{ticket_id}/reopen",
    response_model=TicketRead,
    dependencies=[Depends(require_admin)],
)
def reopen_ticket(
    ticket_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return tickets.reopen_ticket(session, ticket_id)


@router.delete(
    "/tickets/{ticket_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_ticket(
    ticket_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    tickets.delete_ticket(session, ticket_id)
    return None


# -------- Chat --------


@router.post(
    "/chat",
    response_model=ChatMessageRead,
    status_code=status.HTTP_201_CREATED,
)
def start_chat(
    payload: ChatStart,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Start a new conversation with a first message.
    The new conversation_id is on the returned message.
    """
    return chat.start_conversation(session, current_user, payload.message)


@router.get("/chat", response_model=list[ConversationSummary])
def list_conversations(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Conversations with their latest message and unread count.
    Admins see all conversations.
    """
    return chat.list_conversations(session, current_user)


@router.get("/chat/{conversation_id}/messages", response_model=list[ChatMessageRead])
def list_chat_messages(
    conversation_id: str,
    after: datetime | None = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Poll a conversation. `?after=<ISO timestamp>` returns only newer messages.
    """
    return chat.list_messages(session, current_user, conversation_id, after)


@router.post(
    "/chat/{conversation_id}/messages",
    response_model=ChatMessageRead,
    status_code=status.HTTP_201_CREATED,
)
def post_chat_message(
    conversation_id: str,
    payload: ChatMessageCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return chat.post_message(session, current_user, conversation_id, payload.message)
