"""Client-side chat session state."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
import enum
import logging
from typing import Any

from chat_client.api import ApiError, ConversationApi

logger = logging.getLogger(__name__)

ERROR_NOTICE = "Sorry, I encountered an error. Please try again."
SEND_FAILED = "Failed to send message. Please try again."
LOAD_FAILED = "Failed to load conversation"


class MessageStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class LocalMessage:
    """A transcript entry as the client sees it."""

    content: str
    sender: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: MessageStatus = MessageStatus.CONFIRMED
    is_error_notice: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "LocalMessage":
        timestamp = data.get("timestamp")
        return cls(
            content=data["content"],
            sender=data["sender"],
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(timezone.utc),
        )


class ChatSession:
    """State holder behind a chat UI.

    Tracks the active thread (``None`` means "no thread selected") and the
    cached transcript for it. Sends are optimistic: the user's message is
    shown as pending right away and replaced by the confirmed entry once the
    server answers. A failed send keeps the user's message, marks it failed
    and appends an error notice. A reply that arrives after the user moved to
    another thread is dropped.
    """

    def __init__(self, api: ConversationApi) -> None:
        self.api = api
        self.active_thread_id: str | None = None
        self.title: str | None = None
        self.messages: list[LocalMessage] = []
        self.is_sending = False
        self.last_error: str | None = None
        self.conversations: list[dict[str, Any]] = []
        self.pagination: dict[str, Any] | None = None
        self._context = 0

    def _switch_context(self) -> None:
        self._context += 1

    def dismiss_error(self) -> None:
        self.last_error = None

    def new_conversation(self) -> None:
        """Clear to the "no thread" state; the thread is created on first send."""
        self._switch_context()
        self.active_thread_id = None
        self.title = None
        self.messages = []
        self.last_error = None

    async def select(self, thread_id: str) -> bool:
        """Load a conversation and replace the local transcript with it.

        On failure the previously active thread and its transcript stay in place.
        """
        thread_id = (thread_id or "").strip()
        if not thread_id:
            self.last_error = LOAD_FAILED
            return False

        previous = (self.active_thread_id, self.title, self.messages)
        self._switch_context()
        context = self._context
        self.active_thread_id = thread_id
        self.last_error = None

        try:
            body = await self.api.get_conversation(thread_id)
        except ApiError as e:
            logger.error(f"Failed to load conversation {thread_id}: {e}")
            if context == self._context:
                self.active_thread_id, self.title, self.messages = previous
                self.last_error = LOAD_FAILED
            return False

        if context != self._context:
            return False

        data = body["data"]
        self.title = data.get("title")
        self.messages = [LocalMessage.from_api(m) for m in data.get("messages", [])]
        return True

    async def send(self, text: str) -> bool:
        """Send a message on the active thread, or start a new one.

        Returns:
            True when the reply was received and applied
        """
        if self.is_sending or not text.strip():
            return False

        context = self._context
        pending = LocalMessage(content=text, sender="user", status=MessageStatus.PENDING)
        self.messages.append(pending)
        self.is_sending = True

        try:
            body = await self.api.send_message(text, self.active_thread_id)
        except ApiError as e:
            logger.error(f"Failed to send message: {e}")
            if context == self._context:
                pending.status = MessageStatus.FAILED
                self.messages.append(
                    LocalMessage(content=ERROR_NOTICE, sender="ai", status=MessageStatus.FAILED, is_error_notice=True)
                )
                self.last_error = SEND_FAILED
            return False
        finally:
            self.is_sending = False

        if context != self._context:
            logger.info("Discarding reply for a conversation that is no longer active")
            return False

        index = self.messages.index(pending)
        self.messages[index] = LocalMessage(content=text, sender="user", timestamp=pending.timestamp)
        self.messages.append(LocalMessage(content=body["response"], sender="ai"))

        self.active_thread_id = body["threadId"]
        self.title = body.get("conversationTitle", self.title)
        self.last_error = None
        return True

    async def refresh_directory(self, page: int = 1, limit: int = 20) -> list[dict[str, Any]]:
        body = await self.api.list_conversations(page=page, limit=limit)
        self.conversations = body["data"]
        self.pagination = body.get("pagination")
        return self.conversations

    async def search(self, query: str, page: int = 1, limit: int = 10) -> list[dict[str, Any]]:
        body = await self.api.search_conversations(query, page=page, limit=limit)
        self.conversations = body["data"]
        self.pagination = body.get("pagination")
        return self.conversations

    async def rename(self, thread_id: str, title: str) -> dict[str, Any]:
        body = await self.api.update_conversation_title(thread_id, title)
        if thread_id == self.active_thread_id:
            self.title = body["data"]["title"]
        return body["data"]

    async def delete(self, thread_id: str) -> None:
        """Delete a conversation; a 404 means it is already gone."""
        try:
            await self.api.delete_conversation(thread_id)
        except ApiError as e:
            if e.status_code != 404:
                raise
            logger.info(f"Conversation {thread_id} was already deleted")

        self.conversations = [c for c in self.conversations if c.get("threadId") != thread_id]
        if thread_id == self.active_thread_id:
            self.new_conversation()
