"""Channel abstraction layer."""

from src.channels.base import Channel, InboundCallback
from src.channels.webhook_channel import WebhookChannel

__all__ = [
    "Channel",
    "InboundCallback",
    "WebhookChannel",
]
