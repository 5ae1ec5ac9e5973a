"""Conversation and message models for thread persistence."""
from datetime import datetime, timezone
import enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Sender(str, enum.Enum):
    """Author of a message."""
    USER = "user"
    AI = "ai"


class Conversation(Base):
    """
    SQLAlchemy model for conversation threads.

    ``thread_id`` is the external identifier handed to clients and used as
    the LangGraph checkpointer key. Rows are never physically removed;
    ``is_active = False`` marks a soft-deleted conversation.
    """
    __tablename__ = "conversations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    thread_id = Column(String(64), unique=True, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    # True while the title is a placeholder that the first user message may replace
    auto_title = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    messages = relationship(
        "Message",
        back_populates="conversation",
        order_by="Message.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def last_message(self):
        return self.messages[-1] if self.messages else None

    def add_message(self, content: str, sender: Sender) -> "Message":
        """Append a message and touch ``updated_at``."""
        now = utcnow()
        message = Message(content=content, sender=sender, timestamp=now)
        self.messages.append(message)
        self.updated_at = now
        return message


class Message(Base):
    """A single chat message; insertion order is chronological order."""
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    sender = Column(Enum(Sender, values_callable=lambda e: [m.value for m in e]), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")
