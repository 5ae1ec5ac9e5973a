"""Conversation title derivation from the first user message."""
from datetime import date
import logging
import re
from typing import Any, Optional

from langchain.chat_models import init_chat_model

logger = logging.getLogger(__name__)

MIN_MESSAGE_LENGTH = 10
PREVIEW_LENGTH = 200
MAX_TITLE_LENGTH = 50
MIN_TITLE_LENGTH = 3

TITLE_PROMPT = """Based on this user message, generate a concise title (maximum 6 words) for a conversation. The title should capture the main topic or intent.

User message: "{message}"

Title:"""


def fallback_title(today: Optional[date] = None) -> str:
    """Date-stamped title used whenever derivation is skipped or fails."""
    today = today or date.today()
    return f"Chat - {today.strftime('%m/%d/%Y')}"


def default_title(today: Optional[date] = None) -> str:
    """Placeholder title for a conversation created without one."""
    today = today or date.today()
    return f"New Chat - {today.strftime('%m/%d/%Y')}"


def clean_title(raw: str) -> str:
    """Strip quotes and label artifacts, then bound the length."""
    title = raw.strip()
    previous = None
    while title != previous:
        previous = title
        title = re.sub(r"^Title:\s*", "", title, flags=re.IGNORECASE)
        title = re.sub(r"^[\"']|[\"']$", "", title).strip()

    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3] + "..."

    return title


def keyword_title(message: str) -> str:
    """Offline title built from the first four words longer than three letters."""
    if len(message) < MIN_MESSAGE_LENGTH:
        return fallback_title()

    words = re.sub(r"[^\w\s]", " ", message.lower()).split()
    words = [word for word in words if len(word) > 3][:4]

    if not words:
        return fallback_title()

    return clean_title(" ".join(word.capitalize() for word in words))


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return content if isinstance(content, str) else ""


class TitleGenerator:
    """
    Derives a short conversation title with a chat model.

    ``generate`` never raises: any model failure, empty answer or answer
    shorter than three characters yields the date-stamped fallback. Without
    a model the keyword heuristic is used instead.
    """

    def __init__(self, model: Optional[Any] = None):
        self.model = model

    @classmethod
    def from_model_name(cls, model_name: str) -> "TitleGenerator":
        try:
            return cls(init_chat_model(model_name, temperature=0.3, max_retries=2))
        except Exception as e:
            logger.warning(f"Title model {model_name} unavailable, using keyword titles: {e}")
            return cls()

    async def generate(self, first_message: str) -> str:
        if len(first_message) < MIN_MESSAGE_LENGTH:
            return fallback_title()

        if self.model is None:
            return keyword_title(first_message)

        preview = first_message
        if len(preview) > PREVIEW_LENGTH:
            preview = preview[:PREVIEW_LENGTH] + "..."

        try:
            response = await self.model.ainvoke(TITLE_PROMPT.format(message=preview))
            title = clean_title(_response_text(response))
        except Exception as e:
            logger.error(f"Error generating conversation title: {e}")
            return fallback_title()

        if len(title) < MIN_TITLE_LENGTH:
            return fallback_title()

        return title
