"""History endpoints — read-only access to stored messages.

Every route carries the access token in its path. A wrong token, a missing
store, an unknown message and an empty result all answer ``400``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from src.messages.models import User, format_timestamp, parse_timestamp

if TYPE_CHECKING:
    from src.messages.models import Message
    from src.messages.store import MessageStore

logger = logging.getLogger(__name__)

DIRECTION_REQUEST = ">"
DIRECTION_RESPONSE = "<"


def message_to_record(message: Message) -> dict[str, Any]:
    """Serialize a message for the history API.

    User id and channel are left out; callers already have them from the
    request path.
    """
    record: dict[str, Any] = {
        "messageText": message.text,
        "messageId": message.message_id,
        "timestamp": format_timestamp(message.timestamp),
        "direction": DIRECTION_REQUEST if message.is_request else DIRECTION_RESPONSE,
    }
    if message.context is not None:
        record["context"] = message.context
    return record


def _bad_request() -> web.Response:
    return web.Response(status=400)


class HistoryAPI:
    """Token-guarded read surface over a ``MessageStore``."""

    def __init__(self, store: MessageStore | None, token: str) -> None:
        self._store = store
        self._token = token

    def _authorized(self, token: str) -> bool:
        if token != self._token:
            logger.warning("History request rejected: invalid token")
            return False
        return True

    def _list_response(self, messages: list[Message]) -> web.Response:
        if not messages:
            return _bad_request()
        return web.json_response([message_to_record(m) for m in messages])

    # -- Operations ------------------------------------------------------------

    async def get_message(self, token: str, message_id: str) -> web.Response:
        if not self._authorized(token) or self._store is None:
            return _bad_request()
        message = await self._store.get_message(message_id)
        if message is None:
            logger.info("History: message %s not found", message_id)
            return _bad_request()
        return web.json_response(message_to_record(message))

    async def get_all_messages(self, token: str, user: User) -> web.Response:
        if not self._authorized(token) or self._store is None:
            return _bad_request()
        return self._list_response(await self._store.get_all_messages(user))

    async def get_messages_from_id(self, token: str, user: User, from_id: str) -> web.Response:
        if not self._authorized(token) or self._store is None:
            return _bad_request()
        return self._list_response(await self._store.get_messages_from_id(user, from_id))

    async def get_messages_from_date(self, token: str, user: User, from_date: str) -> web.Response:
        if not self._authorized(token) or self._store is None:
            return _bad_request()
        try:
            anchor = parse_timestamp(from_date)
        except ValueError:
            logger.warning("History: unparseable fromDate %r", from_date)
            return _bad_request()
        return self._list_response(await self._store.get_messages_from_date(user, anchor))

    # -- Routing ---------------------------------------------------------------

    def add_routes(self, router: web.UrlDispatcher, path: str) -> None:
        """Add the four GET routes under *path*."""
        base = path.rstrip("/")
        user_base = f"{base}/channel/{{channelId}}/user/{{userId}}"
        router.add_get(f"{base}/{{messageId}}/token/{{token}}", self._route_message)
        router.add_get(f"{user_base}/token/{{token}}", self._route_all)
        router.add_get(f"{user_base}/fromId/{{fromId}}/token/{{token}}", self._route_from_id)
        router.add_get(f"{user_base}/fromDate/{{fromDate}}/token/{{token}}", self._route_from_date)

    async def _route_message(self, request: web.Request) -> web.Response:
        info = request.match_info
        return await self.get_message(info["token"], info["messageId"])

    async def _route_all(self, request: web.Request) -> web.Response:
        info = request.match_info
        return await self.get_all_messages(info["token"], _user_from(info))

    async def _route_from_id(self, request: web.Request) -> web.Response:
        info = request.match_info
        return await self.get_messages_from_id(info["token"], _user_from(info), info["fromId"])

    async def _route_from_date(self, request: web.Request) -> web.Response:
        info = request.match_info
        return await self.get_messages_from_date(info["token"], _user_from(info), info["fromDate"])


def _user_from(match_info: web.UrlMappingMatchInfo) -> User:
    return User(user_id=match_info["userId"], channel=match_info["channelId"])
