# app/services/support_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.pricing import generate_ticket_number
from app.core.time_utils import utcnow
from app.models.support import SupportTicket, SupportTicketMessage
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.repositories.support_repo import SupportRepository
from app.repositories.user_repo import UserRepository
from app.schemas.support import (
    TicketCreate,
    TicketMessageCreate,
    TicketMessageRead,
    TicketRead,
    TicketStats,
    TicketWithMessagesRead,
)

logger = logging.getLogger(__name__)

OPEN = "open"
IN_PROGRESS = "in_progress"
RESOLVED = "resolved"
CLOSED = "closed"

_TICKET_NUMBER_ATTEMPTS = 5


class SupportService:
    """
    Business logic for support tickets.

    Customers create tickets and talk on their own tickets; admins see
    everything and move tickets through
    open -> in_progress -> resolved -> closed (reopen goes back to open).
    """

    def __init__(
        self,
        repo: SupportRepository,
        order_repo: OrderRepository,
        user_repo: UserRepository,
    ):
        self.repo = repo
        self.order_repo = order_repo
        self.user_repo = user_repo

    # ----- Helpers -----

    def _get_ticket(self, session: Session, ticket_id: uuid.UUID) -> SupportTicket:
        ticket = self.repo.get_ticket(session, ticket_id)
        if not ticket:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Ticket not found",
            )
        return ticket

    def _get_visible_ticket(
        self,
        session: Session,
        user: User,
        ticket_id: uuid.UUID,
    ) -> SupportTicket:
        ticket = self._get_ticket(session, ticket_id)
        if user.role != "admin" and ticket.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Ticket not found",
            )
        return ticket

    def _new_ticket_number(self, session: Session) -> str:
        for _ in range(_TICKET_NUMBER_ATTEMPTS):
            number = generate_ticket_number()
            if self.repo.get_ticket_by_number(session, number) is None:
                return number
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Could not allocate a ticket number, please retry",
        )

    def _set_status(
        self,
        session: Session,
        ticket: SupportTicket,
        new_status: str,
    ) -> SupportTicket:
        previous = ticket.status
        ticket.status = new_status
        ticket.updated_at = utcnow()
        if new_status == RESOLVED:
            ticket.resolved_at = ticket.updated_at
        elif new_status == OPEN:
            ticket.resolved_at = None
        ticket = self.repo.save_ticket(session, ticket)
        logger.info("Ticket %s: %s -> %s", ticket.ticket_number, previous, new_status)
        return ticket

    def _with_messages(self, session: Session, ticket: SupportTicket) -> TicketWithMessagesRead:
        base = TicketRead.model_validate(ticket)
        return TicketWithMessagesRead(
            **base.model_dump(),
            messages=[
                TicketMessageRead.model_validate(m)
                for m in self.repo.list_ticket_messages(session, ticket.id)
            ],
        )

    # ----- Customer operations -----

    def create_ticket(
        self,
        session: Session,
        user: User,
        payload: TicketCreate,
    ) -> SupportTicket:
        """
        Open a ticket. A referenced order must belong to the caller.
        """
        if payload.order_id is not None:
            order = self.order_repo.get_by_id(session, payload.order_id)
            if order is None or order.user_id != user.id:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Order not found",
                )

        ticket = SupportTicket(
            ticket_number=self._new_ticket_number(session),
            user_id=user.id,
            order_id=payload.order_id,
            subject=payload.subject,
            description=payload.description,
            priority=payload.priority,
            category=payload.category,
        )
        ticket = self.repo.save_ticket(session, ticket)
        logger.info("Ticket %s opened by %s (%s)", ticket.ticket_number, user.id, ticket.priority)
        return ticket

    def list_my_tickets(
        self,
        session: Session,
        user_id: uuid.UUID,
        status_filter: str | None = None,
    ) -> list[SupportTicket]:
        return self.repo.list_tickets(session, user_id=user_id, status=status_filter)

    def get_ticket(
        self,
        session: Session,
        user: User,
        ticket_id: uuid.UUID,
    ) -> TicketWithMessagesRead:
        ticket = self._get_visible_ticket(session, user, ticket_id)
        return self._with_messages(session, ticket)

    def add_message(
        self,
        session: Session,
        user: User,
        ticket_id: uuid.UUID,
        payload: TicketMessageCreate,
    ) -> TicketWithMessagesRead:
        """
        Append a message from the owner or an admin.

        Closed tickets take no messages. The first admin reply on an
        open ticket moves it to in_progress.
        """
        ticket = self._get_visible_ticket(session, user, ticket_id)
        if ticket.status == CLOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ticket is closed",
            )

        is_admin = user.role == "admin"
        self.repo.add_ticket_message(
            session,
            SupportTicketMessage(
                ticket_id=ticket.id,
                user_id=user.id,
                message=payload.message,
                is_admin=is_admin,
            ),
        )

        if is_admin and ticket.status == OPEN:
            ticket.status = IN_PROGRESS
        ticket.updated_at = utcnow()
        self.repo.save_ticket(session, ticket, commit=False)
        session.commit()
        session.refresh(ticket)

        return self._with_messages(session, ticket)

    # ----- Admin operations -----

    def list_tickets(
        self,
        session: Session,
        status_filter: str | None = None,
        priority: str | None = None,
        query: str | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> list[SupportTicket]:
        return self.repo.list_tickets(
            session,
            status=status_filter,
            priority=priority,
            query=(query or "").strip() or None,
            skip=skip,
            limit=limit,
        )

    def assign_ticket(
        self,
        session: Session,
        ticket_id: uuid.UUID,
        admin_id: uuid.UUID,
    ) -> SupportTicket:
        ticket = self._get_ticket(session, ticket_id)
        assignee = self.user_repo.get_by_id(session, admin_id)
        if assignee is None or assignee.role != "admin":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Tickets can only be assigned to admins",
            )
        if ticket.status == CLOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ticket is closed",
            )
        ticket.assigned_to = assignee.id
        return self._set_status(session, ticket, IN_PROGRESS)

    def resolve_ticket(self, session: Session, ticket_id: uuid.UUID) -> SupportTicket:
        ticket = self._get_ticket(session, ticket_id)
        if ticket.status in (RESOLVED, CLOSED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Ticket is already {ticket.status}",
            )
        return self._set_status(session, ticket, RESOLVED)

    def close_ticket(self, session: Session, ticket_id: uuid.UUID) -> SupportTicket:
        ticket = self._get_ticket(session, ticket_id)
        if ticket.status == CLOSED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Ticket is already closed",
            )
        return self._set_status(session, ticket, CLOSED)

    def reopen_ticket(self, session: Session, ticket_id: uuid.UUID) -> SupportTicket:
        ticket = self._get_ticket(session, ticket_id)
        if ticket.status not in (RESOLVED, CLOSED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only resolved or closed tickets can be reopened",
            )
        return self._set_status(session, ticket, OPEN)

    def delete_ticket(self, session: Session, ticket_id: uuid.UUID) -> None:
        ticket = self._get_ticket(session, ticket_id)
        self.repo.delete_ticket(session, ticket)
        logger.info("Ticket %s deleted", ticket.ticket_number)

    def get_stats(self, session: Session) -> TicketStats:
        by_status = self.repo.count_tickets_by(session, "status")
        by_priority = self.repo.count_tickets_by(session, "priority")
        return TicketStats(
            total=sum(by_status.values()),
            open=by_status.get(OPEN, 0),
            in_progress=by_status.get(IN_PROGRESS, 0),
            resolved=by_status.get(RESOLVED, 0),
            closed=by_status.get(CLOSED, 0),
            urgent=by_priority.get("urgent", 0),
        )
