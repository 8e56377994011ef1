"""Tests for BotDispatcher registration and the inbound path."""

import pytest

from src.dispatch.core import BotDispatcher, ChannelAlreadyRegisteredError
from src.messages.models import Message, MessageResponse, MessageType, User

# -- Helpers -----------------------------------------------------------------


class FakeChannel:
    """Minimal channel implementation for testing."""

    def __init__(self) -> None:
        self.configured: list[tuple[object, str]] = []
        self.callback = None
        self.sent: list[Message] = []

    def configure(self, router, channel_name: str, inbound_callback) -> None:
        self.configured.append((router, channel_name))
        self.callback = inbound_callback

    async def send_message(self, message: Message) -> bool:
        self.sent.append(message)
        return True


def _inbound(text: str = "hello", context: dict | None = None) -> Message:
    return Message.request(User(user_id="u1", channel="slack"), text, context)


# -- Registration ------------------------------------------------------------


def test_register_and_list(app, store, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler(), store)
    ch = FakeChannel()
    dispatcher.register_channel("slack", ch)

    assert dispatcher.list_channels() == ["slack"]
    assert dispatcher.get_channel("slack") is ch


def test_register_configures_channel_with_inbound_callback(app, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler())
    ch = FakeChannel()
    dispatcher.register_channel("slack", ch)

    assert ch.configured == [(app.router, "slack")]
    assert ch.callback == dispatcher.on_inbound_message


def test_register_duplicate_raises_and_keeps_first(app, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler())
    first = FakeChannel()
    second = FakeChannel()
    dispatcher.register_channel("slack", first)

    with pytest.raises(ChannelAlreadyRegisteredError, match="already registered"):
        dispatcher.register_channel("slack", second)

    assert dispatcher.list_channels() == ["slack"]
    assert dispatcher.get_channel("slack") is first
    assert second.configured == []


def test_duplicate_error_is_value_error() -> None:
    err = ChannelAlreadyRegisteredError("sms")
    assert isinstance(err, ValueError)
    assert err.name == "sms"


def test_get_channel_missing_returns_none(app, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler())
    assert dispatcher.get_channel("nonexistent") is None


# -- Inbound -----------------------------------------------------------------


async def test_inbound_with_reply_persists_both(app, store, make_handler) -> None:
    handler = make_handler(MessageResponse(text="hi back", context={"turn": 2}))
    dispatcher = BotDispatcher(app.router, handler, store)
    msg = _inbound()

    reply = await dispatcher.on_inbound_message(msg)

    assert reply == MessageResponse(text="hi back", context={"turn": 2})
    assert handler.calls == [msg]
    assert len(store.messages) == 2
    assert store.messages[0] is msg
    stored_reply = store.messages[1]
    assert stored_reply.message_type is MessageType.RESPONSE
    assert stored_reply.user == msg.user
    assert stored_reply.text == "hi back"
    assert stored_reply.context == {"turn": 2}
    assert stored_reply.message_id != msg.message_id


async def test_inbound_without_reply_persists_once(app, store, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler(None), store)
    msg = _inbound()

    reply = await dispatcher.on_inbound_message(msg)

    assert reply is None
    assert store.messages == [msg]


async def test_inbound_persisted_before_handler_failure(app, store) -> None:
    async def failing(message: Message) -> MessageResponse | None:
        raise RuntimeError("boom")

    dispatcher = BotDispatcher(app.router, failing, store)
    msg = _inbound()

    with pytest.raises(RuntimeError, match="boom"):
        await dispatcher.on_inbound_message(msg)

    assert store.messages == [msg]


async def test_inbound_handler_sees_persisted_message(app, store) -> None:
    seen: list[int] = []

    async def handler(message: Message) -> MessageResponse | None:
        seen.append(len(store.messages))
        return None

    dispatcher = BotDispatcher(app.router, handler, store)
    await dispatcher.on_inbound_message(_inbound())

    assert seen == [1]


async def test_inbound_without_store(app, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler(MessageResponse(text="ok")))
    reply = await dispatcher.on_inbound_message(_inbound())
    assert reply == MessageResponse(text="ok")


async def test_inbound_through_channel_callback(app, store, make_handler) -> None:
    dispatcher = BotDispatcher(app.router, make_handler(MessageResponse(text="pong")), store)
    ch = FakeChannel()
    dispatcher.register_channel("slack", ch)

    reply = await ch.callback(_inbound("ping"))

    assert reply.text == "pong"
    assert [m.text for m in store.messages] == ["ping", "pong"]
