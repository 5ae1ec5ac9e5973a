"""Pydantic schemas for conversation-related requests and responses."""
from datetime import datetime
import math
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.conversations import Conversation, Sender

LIST_PREVIEW_LENGTH = 100
SEARCH_PREVIEW_LENGTH = 150


class CamelModel(BaseModel):
    """Base schema serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ConversationCreate(CamelModel):
    """Schema for creating an empty conversation."""
    title: Optional[str] = None


class TitleUpdate(CamelModel):
    """Schema for renaming a conversation."""
    title: Optional[str] = None


class MessageOut(CamelModel):
    content: str
    sender: Sender
    timestamp: datetime


class LastMessage(CamelModel):
    """Truncated preview of a conversation's latest message."""
    content: str
    sender: Sender
    timestamp: datetime


class ConversationSummary(CamelModel):
    """List/search projection of a conversation; omits message bodies."""
    id: UUID
    title: str
    thread_id: str
    message_count: int
    last_message: Optional[LastMessage] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_conversation(cls, conversation: Conversation, preview_length: int = LIST_PREVIEW_LENGTH) -> "ConversationSummary":
        last = conversation.last_message
        last_message = None
        if last is not None:
            content = last.content[:preview_length]
            if len(last.content) > preview_length:
                content += "..."
            last_message = LastMessage(content=content, sender=last.sender, timestamp=last.timestamp)

        return cls(
            id=conversation.id,
            title=conversation.title,
            thread_id=conversation.thread_id,
            message_count=conversation.message_count,
            last_message=last_message,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class ConversationDetail(CamelModel):
    """Full conversation including its ordered messages."""
    id: UUID
    title: str
    thread_id: str
    messages: List[MessageOut]
    message_count: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationDetail":
        return cls(
            id=conversation.id,
            title=conversation.title,
            thread_id=conversation.thread_id,
            messages=[MessageOut.model_validate(message) for message in conversation.messages],
            message_count=conversation.message_count,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )


class Pagination(CamelModel):
    """Page metadata: ``total`` is the number of pages."""
    current: int
    total: int
    count: int
    total_records: int

    @classmethod
    def build(cls, page: int, page_size: int, count: int, total_records: int) -> "Pagination":
        return cls(
            current=page,
            total=math.ceil(total_records / page_size) if page_size else 0,
            count=count,
            total_records=total_records,
        )


class ConversationPage(CamelModel):
    success: bool = True
    data: List[ConversationSummary]
    pagination: Pagination
    query: Optional[str] = None


class ConversationSummaryResponse(CamelModel):
    success: bool = True
    data: ConversationSummary


class ConversationDetailResponse(CamelModel):
    success: bool = True
    data: ConversationDetail


class StartConversationData(CamelModel):
    thread_id: str
    conversation_id: UUID
    title: str
    message_count: int
    messages: List[MessageOut]


class StartConversationResponse(CamelModel):
    success: bool = True
    data: StartConversationData
    ai_response: str


class SendMessageResponse(CamelModel):
    """Result of one user turn on ``POST /message``."""
    success: bool = True
    response: str
    thread_id: str
    conversation_id: UUID
    message_count: int
    conversation_title: str
    is_new_conversation: bool


class DeleteResponse(CamelModel):
    success: bool = True
    message: str = Field(default="Conversation deleted successfully")


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
