"""Agent responder: runs the compiled agent graph for one user turn."""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from config import AGENT_TIMEOUT_SECONDS
from errors import AgentResponseError
from models.conversations import Sender

logger = logging.getLogger(__name__)


def message_text(message: Any) -> str:
    """Plain text of a LangChain message whose content may be a list of blocks."""
    content = getattr(message, "content", "")
    if isinstance(content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return content or ""


def to_langchain_messages(history: Sequence[Any]) -> List[BaseMessage]:
    """Convert stored messages (anything with ``sender`` and ``content``) for the graph."""
    messages: List[BaseMessage] = []
    for message in history:
        if message.sender == Sender.USER:
            messages.append(HumanMessage(content=message.content))
        else:
            messages.append(AIMessage(content=message.content))
    return messages


class AgentResponder:
    """
    Produces the assistant reply for a thread.

    The compiled graph's checkpointer keeps per-thread state, but it is not
    assumed to survive restarts: when it has nothing for the thread, the
    stored history is sent in full so the agent sees the whole conversation.
    """

    def __init__(self, graph: Any, timeout: Optional[float] = AGENT_TIMEOUT_SECONDS):
        self.graph = graph
        self.timeout = timeout

    async def _has_checkpoint(self, config: dict) -> bool:
        try:
            state = await self.graph.aget_state(config)
        except Exception as e:
            logger.warning(f"Could not read checkpoint for {config['configurable']['thread_id']}: {e}")
            return False
        return bool(state and state.values and state.values.get("messages"))

    async def respond(self, history: Sequence[Any], thread_id: str) -> str:
        if not history:
            raise AgentResponseError("Cannot respond to an empty conversation")

        config = {"configurable": {"thread_id": thread_id}}

        if await self._has_checkpoint(config):
            messages = to_langchain_messages(history[-1:])
        else:
            messages = to_langchain_messages(history)

        try:
            final_state = await asyncio.wait_for(
                self.graph.ainvoke({"messages": messages}, config),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Agent timed out after {self.timeout}s on thread {thread_id}")
            raise AgentResponseError(f"Agent timed out after {self.timeout}s") from e
        except Exception as e:
            logger.exception(f"Agent failed on thread {thread_id}")
            raise AgentResponseError(f"Agent failed: {e}") from e

        final_messages = final_state.get("messages") or []
        last_message = final_messages[-1] if final_messages else None

        if last_message is None or getattr(last_message, "type", None) != "ai" or not message_text(last_message).strip():
            raise AgentResponseError("No response generated from AI")

        return message_text(last_message)
