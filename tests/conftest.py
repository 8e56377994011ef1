"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime

import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from src.messages.models import Message, MessageResponse, User


class _MemoryStore:
    """In-memory MessageStore keeping insertion order."""

    def __init__(self) -> None:
        self.messages: list[Message] = []

    async def add_message(self, message: Message) -> None:
        self.messages.append(message)

    async def get_message(self, message_id: str) -> Message | None:
        return next((m for m in self.messages if m.message_id == message_id), None)

    async def get_all_messages(self, user: User) -> list[Message]:
        return [m for m in self.messages if m.user == user]

    async def get_messages_from_id(self, user: User, from_id: str) -> list[Message]:
        mine = await self.get_all_messages(user)
        ids = [m.message_id for m in mine]
        if from_id not in ids:
            return []
        return mine[ids.index(from_id) :]

    async def get_messages_from_date(self, user: User, from_date: datetime) -> list[Message]:
        return [m for m in await self.get_all_messages(user) if m.timestamp >= from_date]


class _RecordingHandler:
    """Application handler that records calls and returns a fixed reply."""

    def __init__(self, reply: MessageResponse | None = None) -> None:
        self.reply = reply
        self.calls: list[Message] = []

    async def __call__(self, message: Message) -> MessageResponse | None:
        self.calls.append(message)
        return self.reply


@pytest.fixture
def store() -> _MemoryStore:
    """Empty in-memory message store."""
    return _MemoryStore()


@pytest.fixture
def make_handler():
    """Factory for recording application handlers with a fixed reply."""
    return _RecordingHandler


@pytest.fixture
def app() -> web.Application:
    return web.Application()


@pytest.fixture
def make_client():
    """Factory that starts a TestClient for an app; callers close it."""

    async def _make_client(app: web.Application) -> TestClient:
        client = TestClient(TestServer(app))
        await client.start_server()
        return client

    return _make_client
