"""Message model and persistence."""

from src.messages.models import Message, MessageResponse, MessageType, User
from src.messages.store import MessageStore, SQLiteMessageStore

__all__ = [
    "Message",
    "MessageResponse",
    "MessageStore",
    "MessageType",
    "SQLiteMessageStore",
    "User",
]
