"""Push endpoint — lets an external backend deliver a message to a channel."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from aiohttp import web
from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from src.dispatch.core import BotDispatcher

logger = logging.getLogger(__name__)


class PushRequest(BaseModel):
    """JSON body of a push request. Field names follow the wire format."""

    channel: str
    recipient_id: str = Field(alias="recipientId")
    message_text: str = Field(alias="messageText")
    security_token: str = Field(alias="securityToken")
    context: dict[str, Any] | None = None


def make_push_route(
    dispatcher: BotDispatcher,
) -> Callable[[web.Request], Awaitable[web.Response]]:
    """Build the aiohttp handler for the push endpoint of *dispatcher*."""

    async def _handle_push(request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except Exception:
            logger.warning("Push bad request: invalid JSON")
            return web.Response(status=400)

        status = await dispatcher.handle_push_request(payload)
        return web.Response(status=status)

    return _handle_push
