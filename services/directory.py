"""Conversation directory: paginated listing, search, rename and delete."""
from typing import Optional

from sqlalchemy.orm import Session

from errors import ValidationError
from schemas.conversations import (
    ConversationDetail, ConversationPage, ConversationSummary, Pagination,
    LIST_PREVIEW_LENGTH, SEARCH_PREVIEW_LENGTH,
)
from services.conversations import ConversationService


class DirectoryService:
    """Service class wrapping the conversation store with page metadata."""

    @staticmethod
    def list_page(db: Session, page: int = 1, limit: int = 20) -> ConversationPage:
        """One page of active conversations, most recently updated first."""
        conversations, total = ConversationService.list(db, page=page, page_size=limit)
        data = [ConversationSummary.from_conversation(c, LIST_PREVIEW_LENGTH) for c in conversations]

        return ConversationPage(
            data=data,
            pagination=Pagination.build(page, limit, len(data), total),
        )

    @staticmethod
    def search_page(db: Session, query: Optional[str], page: int = 1, limit: int = 10) -> ConversationPage:
        """One page of search results; a blank query is a client error."""
        if query is None or not query.strip():
            raise ValidationError("Search query is required")

        query = query.strip()
        conversations, total = ConversationService.search(db, query, page=page, page_size=limit)
        data = [ConversationSummary.from_conversation(c, SEARCH_PREVIEW_LENGTH) for c in conversations]

        return ConversationPage(
            data=data,
            pagination=Pagination.build(page, limit, len(data), total),
            query=query,
        )

    @staticmethod
    def get(db: Session, thread_id: str) -> ConversationDetail:
        return ConversationDetail.from_conversation(ConversationService.get_by_thread_id(db, thread_id))

    @staticmethod
    def create(db: Session, title: Optional[str] = None) -> ConversationSummary:
        return ConversationSummary.from_conversation(ConversationService.create(db, title))

    @staticmethod
    def rename(db: Session, thread_id: str, title: Optional[str]) -> ConversationSummary:
        return ConversationSummary.from_conversation(ConversationService.rename(db, thread_id, title))

    @staticmethod
    def delete(db: Session, thread_id: str) -> None:
        ConversationService.soft_delete(db, thread_id)
