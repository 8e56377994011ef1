"""Generic JSON webhook implementation of the Channel protocol.

Inbound: ``POST {path_prefix}/{channel_name}`` with
``{"senderId": ..., "text": ..., "context": {...}}``. The reply, if any, is
returned in the response body.

Outbound: ``send_message`` POSTs the message to ``outbound_url``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import aiohttp
from aiohttp import web
from pydantic import BaseModel, Field, ValidationError

from src.messages.models import Message, User

if TYPE_CHECKING:
    from src.channels.base import InboundCallback

logger = logging.getLogger(__name__)

SECRET_HEADER = "X-Webhook-Secret"


class InboundPayload(BaseModel):
    """Body of an inbound webhook call."""

    sender_id: str = Field(alias="senderId")
    text: str
    context: dict[str, Any] | None = None


class WebhookChannel:
    """Receives and sends messages as plain JSON over HTTP."""

    def __init__(
        self,
        outbound_url: str = "",
        *,
        secret: str = "",
        path_prefix: str = "/channels",
    ) -> None:
        self.outbound_url = outbound_url
        self._secret = secret
        self._path_prefix = path_prefix.rstrip("/")
        self._channel_name = ""
        self._inbound_callback: InboundCallback | None = None
        self._session: aiohttp.ClientSession | None = None

    @property
    def channel_name(self) -> str:
        return self._channel_name

    @property
    def inbound_path(self) -> str:
        return f"{self._path_prefix}/{self._channel_name}"

    def configure(
        self,
        router: web.UrlDispatcher,
        channel_name: str,
        inbound_callback: InboundCallback,
    ) -> None:
        """Register the inbound route for *channel_name*."""
        self._channel_name = channel_name
        self._inbound_callback = inbound_callback
        router.add_post(self.inbound_path, self._handle_inbound)
        logger.info("Webhook channel '%s' listening at %s", channel_name, self.inbound_path)

    # -- Inbound ---------------------------------------------------------------

    async def _handle_inbound(self, request: web.Request) -> web.Response:
        if self._secret and request.headers.get(SECRET_HEADER, "") != self._secret:
            logger.warning("Webhook channel '%s' rejected: invalid secret", self._channel_name)
            return web.json_response({"error": "unauthorized"}, status=401)

        try:
            body = await request.json()
        except Exception:
            logger.warning("Webhook channel '%s' bad request: invalid JSON", self._channel_name)
            return web.json_response({"error": "invalid JSON"}, status=400)

        try:
            payload = InboundPayload.model_validate(body)
        except ValidationError as exc:
            logger.warning(
                "Webhook channel '%s' bad request: %d invalid field(s)",
                self._channel_name,
                exc.error_count(),
            )
            return web.json_response({"error": "invalid payload"}, status=400)

        message = Message.request(
            User(user_id=payload.sender_id, channel=self._channel_name),
            payload.text,
            payload.context,
        )
        reply = await self._inbound_callback(message)
        if reply is None:
            return web.json_response({"ok": True})

        answer: dict[str, Any] = {"text": reply.text}
        if reply.context is not None:
            answer["context"] = reply.context
        return web.json_response(answer)

    # -- Outbound --------------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        """Return (and lazily create) the shared aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def send_message(self, message: Message) -> bool:
        """POST *message* to the outbound URL. Returns True on a 2xx answer."""
        if not self.outbound_url:
            logger.error(
                "Webhook channel '%s' has no outbound URL; dropping message %s",
                self._channel_name,
                message.message_id,
            )
            return False

        payload: dict[str, Any] = {
            "recipientId": message.user.user_id,
            "messageText": message.text,
            "messageId": message.message_id,
        }
        if message.context is not None:
            payload["context"] = message.context

        headers = {SECRET_HEADER: self._secret} if self._secret else None
        session = self._get_session()
        try:
            async with session.post(self.outbound_url, json=payload, headers=headers) as resp:
                if 200 <= resp.status < 300:
                    logger.info(
                        "Delivered message %s to %s via '%s'",
                        message.message_id,
                        message.user.user_id,
                        self._channel_name,
                    )
                    return True
                text = await resp.text()
                logger.error(
                    "Webhook channel '%s' send failed: status=%d body=%s",
                    self._channel_name,
                    resp.status,
                    text[:200],
                )
                return False
        except Exception:
            logger.exception("Webhook channel '%s' send failed (network error)", self._channel_name)
            return False

    async def close(self) -> None:
        """Close the outbound HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
