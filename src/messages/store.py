"""Message persistence: the store protocol and an aiosqlite implementation."""

from __future__ import annotations

import logging
from datetime import UTC
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import aiosqlite

from src.config import settings
from src.messages.models import Message

if TYPE_CHECKING:
    from datetime import datetime
    from pathlib import Path

    from src.messages.models import User

logger = logging.getLogger(__name__)


@runtime_checkable
class MessageStore(Protocol):
    """Persistence contract used by the dispatcher and the history API.

    Implementations must be safe for concurrent calls and return a user's
    messages in creation order. The ``from`` anchors are inclusive.
    """

    async def add_message(self, message: Message) -> None: ...

    async def get_message(self, message_id: str) -> Message | None: ...

    async def get_all_messages(self, user: User) -> list[Message]: ...

    async def get_messages_from_id(self, user: User, from_id: str) -> list[Message]: ...

    async def get_messages_from_date(self, user: User, from_date: datetime) -> list[Message]: ...


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS messages (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    message_id TEXT NOT NULL UNIQUE,
    timestamp TEXT NOT NULL,
    message_type TEXT NOT NULL,
    user_id TEXT NOT NULL,
    channel TEXT NOT NULL,
    text TEXT NOT NULL,
    context TEXT
)
"""

_CREATE_INDEX = """
CREATE INDEX IF NOT EXISTS idx_messages_user ON messages (channel, user_id, seq)
"""

_COLUMNS = "message_id, timestamp, message_type, user_id, channel, text, context"


class SQLiteMessageStore:
    """Persists messages in SQLite.

    Pass an explicit *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    Rows are ordered by an autoincrement sequence, so insertion order is
    creation order.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or settings.database_path
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self) -> aiosqlite.Connection:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(self._db_path))
        if not self._initialised:
            await db.execute(_CREATE_TABLE)
            await db.execute(_CREATE_INDEX)
            await db.commit()
            self._initialised = True
        return db

    async def _select(self, where: str, params: tuple) -> list[Message]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM messages WHERE {where} ORDER BY seq",  # noqa: S608
                params,
            )
            rows = await cursor.fetchall()
            return [Message.from_row(row) for row in rows]
        finally:
            await db.close()

    # -- MessageStore ----------------------------------------------------------

    async def add_message(self, message: Message) -> None:
        """Insert a message."""
        db = await self._connect()
        try:
            await db.execute(
                f"INSERT INTO messages ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",  # noqa: S608
                message.to_row(),
            )
            await db.commit()
            logger.debug(
                "Stored %s message %s (channel=%s, user=%s)",
                message.message_type.value,
                message.message_id,
                message.user.channel,
                message.user.user_id,
            )
        finally:
            await db.close()

    async def get_message(self, message_id: str) -> Message | None:
        """Fetch a message by ID, or None if not found."""
        messages = await self._select("message_id = ?", (message_id,))
        return messages[0] if messages else None

    async def get_all_messages(self, user: User) -> list[Message]:
        """Return every message exchanged with *user*."""
        return await self._select("channel = ? AND user_id = ?", (user.channel, user.user_id))

    async def get_messages_from_id(self, user: User, from_id: str) -> list[Message]:
        """Return *user*'s messages starting at *from_id* (inclusive).

        An anchor that does not exist or belongs to another user yields ``[]``.
        """
        return await self._select(
            """channel = ? AND user_id = ? AND seq >= (
                SELECT seq FROM messages
                WHERE message_id = ? AND channel = ? AND user_id = ?
            )""",
            (user.channel, user.user_id, from_id, user.channel, user.user_id),
        )

    async def get_messages_from_date(self, user: User, from_date: datetime) -> list[Message]:
        """Return *user*'s messages created at or after *from_date*."""
        anchor = from_date.astimezone(UTC).isoformat(timespec="microseconds")
        return await self._select(
            "channel = ? AND user_id = ? AND timestamp >= ?",
            (user.channel, user.user_id, anchor),
        )
