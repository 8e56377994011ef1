"""BotDispatcher — routes messages between channels and the application handler.

One dispatcher is built at startup around the aiohttp router. Channels are
registered before the server starts; after that the registry is read-only
(aiohttp freezes the router on startup, so late registrations fail loudly).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from aiohttp import web
from pydantic import ValidationError

from src.messages.models import Message, MessageResponse, User
from src.webhooks.history import HistoryAPI
from src.webhooks.push import PushRequest, make_push_route

if TYPE_CHECKING:
    from src.channels.base import Channel
    from src.messages.store import MessageStore

logger = logging.getLogger(__name__)

DEFAULT_PUSH_PATH = "/BotPushBack"
DEFAULT_HISTORY_PATH = "/BotHistory"

# Application handler: async (message) -> reply or None
MessageHandler = Callable[[Message], Awaitable[MessageResponse | None]]

# Push re-targeting: async (candidate) -> (channel_name, reply) or None
PushHandler = Callable[[Message], Awaitable[tuple[str, MessageResponse] | None]]


class ChannelAlreadyRegisteredError(ValueError):
    """Raised when a channel name is registered twice."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Channel '{name}' is already registered")
        self.name = name


class BotDispatcher:
    """Owns the channel registry and mediates every message flow.

    Args:
        router: aiohttp router that channels and APIs add their routes to.
        handler: Application callback invoked for every inbound message.
        store: Optional persistence for all messages.
    """

    def __init__(
        self,
        router: web.UrlDispatcher,
        handler: MessageHandler,
        store: MessageStore | None = None,
    ) -> None:
        self._router = router
        self._handler = handler
        self._store = store
        self._channels: dict[str, Channel] = {}
        self._push_token: str | None = None
        self._push_handler: PushHandler | None = None
        self._push_paths: set[str] = set()
        self._history: HistoryAPI | None = None

    @property
    def store(self) -> MessageStore | None:
        return self._store

    @property
    def history(self) -> HistoryAPI | None:
        return self._history

    # -- Registration ----------------------------------------------------------

    def register_channel(self, name: str, channel: Channel) -> None:
        """Register *channel* under *name* and hand it the inbound callback.

        Raises ``ChannelAlreadyRegisteredError`` on a duplicate name; the
        registry is left untouched.
        """
        if name in self._channels:
            raise ChannelAlreadyRegisteredError(name)
        channel.configure(self._router, name, self.on_inbound_message)
        self._channels[name] = channel
        logger.info("Registered channel: %s", name)

    def get_channel(self, name: str) -> Channel | None:
        """Look up a channel by name."""
        return self._channels.get(name)

    def list_channels(self) -> list[str]:
        """Return names of all registered channels."""
        return list(self._channels.keys())

    # -- Inbound ---------------------------------------------------------------

    async def on_inbound_message(self, message: Message) -> MessageResponse | None:
        """Handle a message a user sent on some channel.

        The inbound message is persisted before the handler runs. A response
        message is created and persisted only when the handler replies.
        """
        if self._store is not None:
            await self._store.add_message(message)

        reply = await self._handler(message)
        if reply is None:
            logger.debug("No reply for message %s", message.message_id)
            return None

        if self._store is not None:
            await self._store.add_message(
                Message.response(message.user, reply.text, reply.context)
            )
        return reply

    # -- Push ------------------------------------------------------------------

    def enable_push(
        self,
        security_token: str,
        webhook_path: str = DEFAULT_PUSH_PATH,
        push_handler: PushHandler | None = None,
    ) -> None:
        """Expose the push endpoint at *webhook_path*.

        Calling this again replaces the token and handler; a route is only
        added for paths not seen before.
        """
        if self._push_token is not None:
            logger.warning("Push settings replaced (path=%s)", webhook_path)
        self._push_token = security_token
        self._push_handler = push_handler
        if webhook_path not in self._push_paths:
            self._router.add_post(webhook_path, make_push_route(self))
            self._push_paths.add(webhook_path)
            logger.info("Push endpoint registered at %s", webhook_path)

    async def handle_push_request(self, payload: Any) -> int:
        """Validate and deliver a push request. Returns the HTTP status."""
        try:
            push = PushRequest.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Push rejected: %d invalid field(s)", exc.error_count())
            return web.HTTPBadRequest.status_code

        if self._push_token is None or push.security_token != self._push_token:
            logger.warning("Push rejected: invalid security token (channel=%s)", push.channel)
            return web.HTTPBadRequest.status_code

        message = Message.response(
            User(user_id=push.recipient_id, channel=push.channel),
            push.message_text,
            push.context,
        )

        target = push.channel
        if self._push_handler is not None:
            override = await self._push_handler(message)
            if override is not None:
                target, reply = override
                message = Message.response(
                    User(user_id=push.recipient_id, channel=target),
                    reply.text,
                    reply.context,
                )

        channel = self._channels.get(target)
        if channel is None:
            logger.warning("Push target channel not registered: %s", target)
            return web.HTTPOk.status_code

        if self._store is not None:
            await self._store.add_message(message)
        if not await channel.send_message(message):
            logger.warning("Push delivery failed (channel=%s, message=%s)", target, message.message_id)
        return web.HTTPOk.status_code

    # -- History ---------------------------------------------------------------

    def enable_history(self, token: str, path: str = DEFAULT_HISTORY_PATH) -> HistoryAPI:
        """Expose the read-only history endpoints under *path*."""
        if self._history is not None:
            msg = "History API is already enabled"
            raise RuntimeError(msg)
        self._history = HistoryAPI(self._store, token)
        self._history.add_routes(self._router, path)
        logger.info("History endpoints registered under %s", path)
        return self._history
