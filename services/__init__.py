from .conversations import ConversationService
from .directory import DirectoryService
from .messages import MessageService, SendResult
from .responder import AgentResponder
from .titles import TitleGenerator

__all__ = ["ConversationService", "DirectoryService", "MessageService", "SendResult", "AgentResponder", "TitleGenerator"]
