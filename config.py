"""Environment-driven settings shared by the API, the agent graph and the client."""
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./conversations.db")

# Postgres URL for the LangGraph checkpointer; the in-memory saver is used when unset
CHECKPOINTER_URL = os.getenv("CHECKPOINTER_URL", "")

CHAT_MODEL = os.getenv("CHAT_MODEL", "openai:gpt-4o-mini")
TITLE_MODEL = os.getenv("TITLE_MODEL", CHAT_MODEL)
AGENT_TIMEOUT_SECONDS = float(os.getenv("AGENT_TIMEOUT_SECONDS", "60"))

TAVILY_API_KEY = os.getenv("TAVILY_API_KEY", "")
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")

ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Client side
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000/api")

# Limits
MAX_MESSAGE_LENGTH = 10_000
MAX_TITLE_LENGTH = 200
DEFAULT_PAGE_SIZE = 20
DEFAULT_SEARCH_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
