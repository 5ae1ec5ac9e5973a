"""Error classes for the conversation backend."""
from typing import Any, Dict, Optional


class ConversationError(Exception):
    """Base exception for conversation errors.

    ``public_message`` is what the HTTP layer shows to clients; ``str(exc)``
    carries the full detail and is only logged.
    """

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str, public_message: Optional[str] = None) -> None:
        self.message = message
        if public_message is not None:
            self.public_message = public_message
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        """Convert exception to the API error body."""
        return {"success": False, "error": self.public_message}


class ValidationError(ConversationError):
    """Bad, missing or oversized input."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message=message)


class NotFoundError(ConversationError):
    """Unknown or soft-deleted thread."""

    status_code = 404
    public_message = "Conversation not found"

    def __init__(self, thread_id: str) -> None:
        self.thread_id = thread_id
        super().__init__(f"Conversation with threadId {thread_id} not found")


class AgentResponseError(ConversationError):
    """The agent responder returned nothing, failed, or timed out."""

    public_message = "Failed to generate a response"


class StoreError(ConversationError):
    """Persistence failure."""

    public_message = "Failed to access conversation store"
