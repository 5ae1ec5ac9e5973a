"""Message append protocol: one user turn turned into a persisted exchange."""
from dataclasses import dataclass
import enum
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from config import MAX_MESSAGE_LENGTH
from errors import NotFoundError, ValidationError
from models.conversations import Conversation, Sender
from services.conversations import ConversationService
from services.responder import AgentResponder
from services.titles import TitleGenerator

logger = logging.getLogger(__name__)


class AppendState(str, enum.Enum):
    IDLE = "idle"
    PERSISTING_USER_MESSAGE = "persisting-user-message"
    AWAITING_AGENT_REPLY = "awaiting-agent-reply"
    PERSISTING_AGENT_REPLY = "persisting-agent-reply"
    ERROR = "error"


@dataclass
class SendResult:
    thread_id: str
    response: str
    message_count: int
    title: str
    is_new_conversation: bool
    conversation: Conversation


def validate_message(message: Any, required_error: str = "Message is required and must be a non-empty string") -> str:
    """Reject blank, non-string or oversized messages before any store mutation."""
    if not isinstance(message, str) or not message.strip():
        raise ValidationError(required_error)
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message too long. Maximum {MAX_MESSAGE_LENGTH:,} characters allowed.")
    return message


class MessageService:
    """
    Binds a user turn to persisted state and an agent reply.

    Steps: create the conversation when no thread is given, persist the
    user message, ask the agent, persist the reply. An unknown thread id at
    the user-message step is repaired once by starting a new conversation
    seeded with the message. The agent call is never retried here.
    """

    def __init__(self, responder: AgentResponder, title_generator: TitleGenerator):
        self.responder = responder
        self.title_generator = title_generator
        self.state = AppendState.IDLE

    def _transition(self, state: AppendState, thread_id: Optional[str]) -> None:
        self.state = state
        logger.debug(f"[{thread_id or 'new'}] {state.value}")

    async def _title_for_first_message(self, conversation: Conversation, content: str) -> Optional[str]:
        if conversation.message_count == 0 and conversation.auto_title:
            return await self.title_generator.generate(content)
        return None

    async def _create_with_message(self, db: Session, content: str, title: Optional[str] = None) -> Conversation:
        if not title or not title.strip():
            title = await self.title_generator.generate(content)
        return ConversationService.create_with_message(db, content, title)

    async def _append_user_message(self, db: Session, thread_id: str, content: str) -> Conversation:
        conversation = ConversationService.get_by_thread_id(db, thread_id)
        derived_title = await self._title_for_first_message(conversation, content)
        return ConversationService.append_message(db, thread_id, content, Sender.USER, derived_title=derived_title)

    async def send(self, db: Session, message: Any, thread_id: Optional[str] = None) -> SendResult:
        """Send ``message`` on ``thread_id`` (or a new thread) and return the reply."""
        content = validate_message(message)
        is_new_conversation = False

        try:
            self._transition(AppendState.PERSISTING_USER_MESSAGE, thread_id)
            if not thread_id:
                thread_id = ConversationService.create(db).thread_id
                is_new_conversation = True

            try:
                conversation = await self._append_user_message(db, thread_id, content)
            except NotFoundError:
                logger.warning(f"Thread {thread_id} not found, creating a new conversation for it")
                conversation = await self._create_with_message(db, content)
                is_new_conversation = True
            thread_id = conversation.thread_id

            self._transition(AppendState.AWAITING_AGENT_REPLY, thread_id)
            reply = await self.responder.respond(conversation.messages, thread_id)

            self._transition(AppendState.PERSISTING_AGENT_REPLY, thread_id)
            conversation = ConversationService.append_message(db, thread_id, reply, Sender.AI)
        except Exception:
            self._transition(AppendState.ERROR, thread_id)
            raise

        self._transition(AppendState.IDLE, thread_id)
        logger.info(f"Thread {thread_id}: reply stored, {conversation.message_count} messages")

        return SendResult(
            thread_id=thread_id,
            response=reply,
            message_count=conversation.message_count,
            title=conversation.title,
            is_new_conversation=is_new_conversation,
            conversation=conversation,
        )

    async def start(self, db: Session, message: Any, title: Optional[str] = None) -> SendResult:
        """Create a conversation from its first message and answer it."""
        content = validate_message(message, required_error="Initial message is required")
        thread_id = None

        try:
            self._transition(AppendState.PERSISTING_USER_MESSAGE, thread_id)
            conversation = await self._create_with_message(db, content, title)
            thread_id = conversation.thread_id

            self._transition(AppendState.AWAITING_AGENT_REPLY, thread_id)
            reply = await self.responder.respond(conversation.messages, thread_id)

            self._transition(AppendState.PERSISTING_AGENT_REPLY, thread_id)
            conversation = ConversationService.append_message(db, thread_id, reply, Sender.AI)
        except Exception:
            self._transition(AppendState.ERROR, thread_id)
            raise

        self._transition(AppendState.IDLE, thread_id)

        return SendResult(
            thread_id=thread_id,
            response=reply,
            message_count=conversation.message_count,
            title=conversation.title,
            is_new_conversation=True,
            conversation=conversation,
        )
