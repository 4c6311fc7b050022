# app/services/chat_service.py
import logging
import time
import uuid
from datetime import datetime

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.time_utils import as_utc
from app.models.support import ChatMessage
from app.models.user import User
from app.repositories.support_repo import SupportRepository
from app.repositories.user_repo import UserRepository
from app.schemas.support import ChatMessageRead, ConversationSummary

logger = logging.getLogger(__name__)


def new_conversation_id(user_id: uuid.UUID, now_ms: int | None = None) -> str:
    """conv_<user_id>_<ms timestamp>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"conv_{user_id}_{now_ms}"


class ChatService:
    """
    Support chat between a customer and the shop admins.

    Clients poll `list_messages(after=...)`; reading a conversation marks
    the other side's messages as read.
    """

    def __init__(self, repo: SupportRepository, user_repo: UserRepository):
        self.repo = repo
        self.user_repo = user_repo

    def _conversation_owner(
        self,
        session: Session,
        user: User,
        conversation_id: str,
    ) -> uuid.UUID:
        first = self.repo.first_chat_message(session, conversation_id)
        if first is None or (user.role != "admin" and first.user_id != user.id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Conversation not found",
            )
        return first.user_id

    def start_conversation(self, session: Session, user: User, message: str) -> ChatMessage:
        conversation_id = new_conversation_id(user.id)
        msg = self.repo.add_chat_message(
            session,
            ChatMessage(
                conversation_id=conversation_id,
                user_id=user.id,
                sender_id=user.id,
                message=message,
                is_admin=False,
            ),
        )
        logger.info("Chat %s started by %s", conversation_id, user.id)
        return msg

    def post_message(
        self,
        session: Session,
        user: User,
        conversation_id: str,
        message: str,
    ) -> ChatMessage:
        owner_id = self._conversation_owner(session, user, conversation_id)
        return self.repo.add_chat_message(
            session,
            ChatMessage(
                conversation_id=conversation_id,
                user_id=owner_id,
                sender_id=user.id,
                message=message,
                is_admin=user.role == "admin",
            ),
        )

    def list_messages(
        self,
        session: Session,
        user: User,
        conversation_id: str,
        after: datetime | None = None,
    ) -> list[ChatMessage]:
        """
        Messages of a conversation, oldest first, optionally only those
        newer than `after`.
        """
        self._conversation_owner(session, user, conversation_id)
        if after is not None:
            after = as_utc(after)
        messages = self.repo.list_chat_messages(session, conversation_id, after)

        reader_is_admin = user.role == "admin"
        unread = [m for m in messages if not m.is_read and m.is_admin != reader_is_admin]
        if unread:
            for m in unread:
                m.is_read = True
                session.add(m)
            session.commit()
            for m in unread:
                session.refresh(m)
        return messages

    def list_conversations(self, session: Session, user: User) -> list[ConversationSummary]:
        """
        One summary per conversation, most recently active first.

        Admins see every conversation, customers only their own. The
        unread count is from the caller's point of view.
        """
        owner_filter = None if user.role == "admin" else user.id
        messages = self.repo.list_chat_messages_for_user(session, owner_filter)
        reader_is_admin = user.role == "admin"

        latest: dict[str, ChatMessage] = {}
        unread: dict[str, int] = {}
        for m in messages:  # newest first
            latest.setdefault(m.conversation_id, m)
            if not m.is_read and m.is_admin != reader_is_admin:
                unread[m.conversation_id] = unread.get(m.conversation_id, 0) + 1

        owners = self.user_repo.get_many(session, list({m.user_id for m in latest.values()}))

        summaries = []
        for conversation_id, last in latest.items():
            owner = owners.get(last.user_id)
            summaries.append(
                ConversationSummary(
                    conversation_id=conversation_id,
                    user_id=last.user_id,
                    user_email=owner.email if owner else None,
                    user_name=owner.name if owner else None,
                    last_message=ChatMessageRead.model_validate(last),
                    unread_count=unread.get(conversation_id, 0),
                )
            )
        return summaries
