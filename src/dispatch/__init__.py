"""Message dispatch between channels and the application."""

from src.dispatch.core import (
    DEFAULT_HISTORY_PATH,
    DEFAULT_PUSH_PATH,
    BotDispatcher,
    ChannelAlreadyRegisteredError,
    MessageHandler,
    PushHandler,
)

__all__ = [
    "DEFAULT_HISTORY_PATH",
    "DEFAULT_PUSH_PATH",
    "BotDispatcher",
    "ChannelAlreadyRegisteredError",
    "MessageHandler",
    "PushHandler",
]
