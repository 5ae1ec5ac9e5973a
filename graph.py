from contextlib import asynccontextmanager
from functools import lru_cache
from typing import TypedDict, Annotated, AsyncIterator, List, Optional
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, SystemMessage
from langchain_core.tools import BaseTool
from langgraph.graph import StateGraph, START, END
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode, tools_condition
from langchain.chat_models import init_chat_model
import logging

from agent_tools import get_agent_tools
from config import CHAT_MODEL, CHECKPOINTER_URL

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful AI assistant. Answer clearly and concisely.
Use the web search tool for current events or facts you are unsure about, and the movie tools for questions about films.
Format answers in Markdown when it helps readability."""


class State(TypedDict):
    messages: Annotated[list[BaseMessage], add_messages]


@lru_cache(maxsize=1)
def get_chat_model() -> BaseChatModel:
    return init_chat_model(CHAT_MODEL, temperature=0, max_retries=2)


def build_graph(model: Optional[BaseChatModel] = None, tools: Optional[List[BaseTool]] = None) -> StateGraph:
    """
    Build the agent workflow: the model is called, any tool calls it makes
    are executed, and the loop repeats until the model answers without tools.
    """
    tools = get_agent_tools() if tools is None else tools

    async def agent(state: State):
        """Call the chat model with the thread's message history."""
        llm = model if model is not None else get_chat_model()
        if tools:
            llm = llm.bind_tools(tools)

        logger.info("Calling LLM...")
        response = await llm.ainvoke([SystemMessage(content=SYSTEM_PROMPT)] + state["messages"])
        return {"messages": [response]}

    builder = (
        StateGraph(State)
        .add_node("agent", agent)
        .add_edge(START, "agent")
    )

    if tools:
        builder.add_node("tools", ToolNode(tools))
        builder.add_conditional_edges("agent", tools_condition)
        builder.add_edge("tools", "agent")
    else:
        builder.add_edge("agent", END)

    return builder


@asynccontextmanager
async def open_checkpointer() -> AsyncIterator[object]:
    """
    Per-thread agent state store keyed by thread id.

    Postgres-backed when CHECKPOINTER_URL is set, otherwise in memory. Either
    way it is a cache owned by the agent; conversation history lives in the
    conversation store.
    """
    if CHECKPOINTER_URL:
        from langgraph.checkpoint.postgres.aio import AsyncPostgresSaver

        async with AsyncPostgresSaver.from_conn_string(CHECKPOINTER_URL) as saver:
            await saver.setup()  # initialize tables if needed
            logger.info("Using Postgres checkpointer")
            yield saver
    else:
        from langgraph.checkpoint.memory import MemorySaver

        logger.info("Using in-memory checkpointer")
        yield MemorySaver()
