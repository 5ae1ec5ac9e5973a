"""Conversation service for thread persistence."""
import logging
from typing import List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import case, desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import MAX_TITLE_LENGTH
from errors import NotFoundError, StoreError, ValidationError
from models.conversations import Conversation, Message, Sender, utcnow
from services.titles import default_title, keyword_title

logger = logging.getLogger(__name__)


def new_thread_id() -> str:
    """Random 128-bit identifier; doubles as the agent checkpointer key."""
    return str(uuid4())


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise StoreError(f"Failed to {action}: {e}") from e


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _validate_title(title: Optional[str]) -> str:
    if title is None or not title.strip():
        raise ValidationError("Title is required")
    title = title.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be at most {MAX_TITLE_LENGTH} characters")
    return title


class ConversationService:
    """Service class for conversation persistence."""

    @staticmethod
    def create(db: Session, title: Optional[str] = None) -> Conversation:
        """Create an empty conversation with a fresh thread id."""
        if title is not None and title.strip():
            conversation = Conversation(
                thread_id=new_thread_id(),
                title=_validate_title(title),
                auto_title=False,
            )
        else:
            conversation = Conversation(thread_id=new_thread_id(), title=default_title(), auto_title=True)

        db.add(conversation)
        _commit(db, "create conversation")
        db.refresh(conversation)

        logger.info(f"Created conversation {conversation.thread_id}")
        return conversation

    @staticmethod
    def create_with_message(db: Session, content: str, title: str) -> Conversation:
        """Create a conversation seeded with its first user message."""
        conversation = Conversation(
            thread_id=new_thread_id(),
            title=_validate_title(title),
            auto_title=False,
        )
        conversation.add_message(content, Sender.USER)

        db.add(conversation)
        _commit(db, "create conversation with message")
        db.refresh(conversation)

        logger.info(f"Created conversation {conversation.thread_id} with first message")
        return conversation

    @staticmethod
    def get_by_thread_id(db: Session, thread_id: str, for_update: bool = False) -> Conversation:
        """Retrieve an active conversation or raise ``NotFoundError``."""
        query = db.query(Conversation).filter(
            Conversation.thread_id == thread_id,
            Conversation.is_active.is_(True),
        )
        if for_update:
            query = query.with_for_update()

        conversation = query.first()
        if conversation is None:
            raise NotFoundError(thread_id)
        return conversation

    @staticmethod
    def append_message(
        db: Session,
        thread_id: str,
        content: str,
        sender: Sender,
        derived_title: Optional[str] = None,
    ) -> Conversation:
        """
        Append a message to an active conversation.

        The row is locked for the read-modify-write. When this is the first
        message, the sender is the user and the title is still a placeholder,
        the title is set to ``derived_title`` (or a keyword title when none
        was derived) and is never touched automatically again.
        """
        conversation = ConversationService.get_by_thread_id(db, thread_id, for_update=True)

        is_first_user_message = conversation.message_count == 0 and sender == Sender.USER
        conversation.add_message(content, sender)

        if is_first_user_message and conversation.auto_title:
            conversation.title = (derived_title or keyword_title(content))[:MAX_TITLE_LENGTH]
            conversation.auto_title = False

        _commit(db, "append message")
        db.refresh(conversation)
        return conversation

    @staticmethod
    def list(db: Session, page: int = 1, page_size: int = 20) -> Tuple[List[Conversation], int]:
        """Active conversations, most recently updated first."""
        query = db.query(Conversation).filter(Conversation.is_active.is_(True))
        total = query.count()

        items = query.order_by(
            desc(Conversation.updated_at),
            desc(Conversation.created_at),
            desc(Conversation.id),
        ).offset((page - 1) * page_size).limit(page_size).all()

        return items, total

    @staticmethod
    def search(db: Session, query: str, page: int = 1, page_size: int = 10) -> Tuple[List[Conversation], int]:
        """
        Case-insensitive substring search over titles and message content.

        Title matches rank above matches found only in messages; ties are
        broken by ``updated_at`` descending, then by id.
        """
        pattern = f"%{_escape_like(query)}%"
        title_match = Conversation.title.ilike(pattern, escape="\\")
        message_match = Conversation.messages.any(Message.content.ilike(pattern, escape="\\"))

        base = db.query(Conversation).filter(
            Conversation.is_active.is_(True),
            or_(title_match, message_match),
        )
        total = base.count()

        relevance = case((title_match, 1), else_=0)
        items = base.order_by(
            desc(relevance),
            desc(Conversation.updated_at),
            desc(Conversation.id),
        ).offset((page - 1) * page_size).limit(page_size).all()

        return items, total

    @staticmethod
    def rename(db: Session, thread_id: str, title: Optional[str]) -> Conversation:
        """Explicitly set a conversation's title."""
        title = _validate_title(title)
        conversation = ConversationService.get_by_thread_id(db, thread_id, for_update=True)

        conversation.title = title
        conversation.auto_title = False
        conversation.updated_at = utcnow()

        _commit(db, "rename conversation")
        db.refresh(conversation)
        return conversation

    @staticmethod
    def soft_delete(db: Session, thread_id: str) -> None:
        """Mark a conversation inactive; a second call raises ``NotFoundError``."""
        conversation = ConversationService.get_by_thread_id(db, thread_id, for_update=True)

        conversation.is_active = False
        conversation.updated_at = utcnow()

        _commit(db, "delete conversation")
        logger.info(f"Soft-deleted conversation {thread_id}")
