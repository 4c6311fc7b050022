# app/repositories/support_repo.py
import uuid
from datetime import datetime

from sqlalchemy import func, or_
from sqlmodel import Session, col, select

from app.models.support import ChatMessage, SupportTicket, SupportTicketMessage


class SupportRepository:
    """
    Data access layer for support tickets, ticket messages and chat.

    Single-row writes commit here; services that touch several rows
    pass commit=False and commit themselves.
    """

    # ----- Tickets -----

    def get_ticket(self, session: Session, ticket_id: uuid.UUID) -> SupportTicket | None:
        return session.get(SupportTicket, ticket_id)

    def get_ticket_by_number(self, session: Session, ticket_number: str) -> SupportTicket | None:
        stmt = select(SupportTicket).where(SupportTicket.ticket_number == ticket_number)
        return session.exec(stmt).first()

    def list_tickets(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
        status: str | None = None,
        priority: str | None = None,
        query: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[SupportTicket]:
        stmt = select(SupportTicket)
        if user_id is not None:
            stmt = stmt.where(SupportTicket.user_id == user_id)
        if status:
            stmt = stmt.where(SupportTicket.status == status)
        if priority:
            stmt = stmt.where(SupportTicket.priority == priority)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    col(SupportTicket.subject).ilike(pattern),
                    col(SupportTicket.description).ilike(pattern),
                    col(SupportTicket.ticket_number).ilike(pattern),
                )
            )
        stmt = stmt.order_by(col(SupportTicket.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def save_ticket(
        self,
        session: Session,
        ticket: SupportTicket,
        commit: bool = True,
    ) -> SupportTicket:
        session.add(ticket)
        if commit:
            session.commit()
            session.refresh(ticket)
        else:
            session.flush()
        return ticket

    def delete_ticket(self, session: Session, ticket: SupportTicket) -> None:
        for msg in self.list_ticket_messages(session, ticket.id):
            session.delete(msg)
        session.delete(ticket)
        session.commit()

    def count_tickets_by(self, session: Session, field: str) -> dict[str, int]:
        column = getattr(SupportTicket, field)
        stmt = select(column, func.count()).group_by(column)
        return {value: int(count) for value, count in session.exec(stmt).all()}

    # ----- Ticket messages -----

    def list_ticket_messages(
        self,
        session: Session,
        ticket_id: uuid.UUID,
    ) -> list[SupportTicketMessage]:
        stmt = (
            select(SupportTicketMessage)
            .where(SupportTicketMessage.ticket_id == ticket_id)
            .order_by(SupportTicketMessage.created_at)
        )
        return list(session.exec(stmt).all())

    def add_ticket_message(
        self,
        session: Session,
        message: SupportTicketMessage,
    ) -> SupportTicketMessage:
        session.add(message)
        session.flush()
        return message

    # ----- Chat -----

    def list_chat_messages(
        self,
        session: Session,
        conversation_id: str,
        after: datetime | None = None,
    ) -> list[ChatMessage]:
        stmt = select(ChatMessage).where(ChatMessage.conversation_id == conversation_id)
        if after is not None:
            stmt = stmt.where(ChatMessage.created_at > after)
        stmt = stmt.order_by(ChatMessage.created_at)
        return list(session.exec(stmt).all())

    def first_chat_message(
        self,
        session: Session,
        conversation_id: str,
    ) -> ChatMessage | None:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at)
        )
        return session.exec(stmt).first()

    def list_chat_messages_for_user(
        self,
        session: Session,
        user_id: uuid.UUID | None = None,
    ) -> list[ChatMessage]:
        stmt = select(ChatMessage)
        if user_id is not None:
            stmt = stmt.where(ChatMessage.user_id == user_id)
        stmt = stmt.order_by(col(ChatMessage.created_at).desc())
        return list(session.exec(stmt).all())

    def add_chat_message(self, session: Session, message: ChatMessage) -> ChatMessage:
        session.add(message)
        session.commit()
        session.refresh(message)
        return message
