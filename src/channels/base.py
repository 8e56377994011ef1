"""Channel protocol — interface for every messaging-platform adapter."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from aiohttp import web

    from src.messages.models import Message, MessageResponse

# Callback signature handed to a channel at registration:
# async (message: Message) -> MessageResponse | None
InboundCallback = Callable[["Message"], Awaitable["MessageResponse | None"]]


@runtime_checkable
class Channel(Protocol):
    """Protocol that all channel adapters must satisfy."""

    def configure(
        self,
        router: web.UrlDispatcher,
        channel_name: str,
        inbound_callback: InboundCallback,
    ) -> None:
        """Wire the adapter's inbound route(s) to *inbound_callback*.

        Called exactly once, when the channel is registered under
        *channel_name*.
        """
        ...

    async def send_message(self, message: Message) -> bool:
        """Deliver an outbound message. Returns True on success."""
        ...
