from .conversations import Base, Conversation, Message, Sender

__all__ = ["Base", "Conversation", "Message", "Sender"]
