"""Message data model shared by channels, the dispatcher and stores."""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# Wire format for timestamps in history records (yyyy-MM-dd'T'HH:mm:ssZ).
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def format_timestamp(ts: datetime) -> str:
    """Render *ts* in UTC using ``TIMESTAMP_FORMAT``."""
    return ts.astimezone(UTC).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a history timestamp or any ISO 8601 string.

    Naive values are taken as UTC. Raises ``ValueError`` if neither
    format matches or the value falls outside the UTC-representable range.
    """
    try:
        ts = datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    try:
        return ts.astimezone(UTC)
    except OverflowError as exc:
        msg = f"Timestamp out of range: {value!r}"
        raise ValueError(msg) from exc


def make_message_id() -> str:
    return uuid.uuid4().hex


class MessageType(str, Enum):
    REQUEST = "request"
    RESPONSE = "response"


@dataclass(frozen=True)
class User:
    """A user on one channel. The same ``user_id`` on two channels is two users."""

    user_id: str
    channel: str


@dataclass(frozen=True)
class MessageResponse:
    """Reply payload before it is wrapped into a response ``Message``."""

    text: str
    context: dict[str, Any] | None = None


@dataclass(frozen=True)
class Message:
    """A single request or response exchanged with a user.

    Attributes:
        message_id: Unique identifier (UUID hex).
        timestamp: Creation time, timezone-aware UTC.
        message_type: ``REQUEST`` for inbound, ``RESPONSE`` for outbound.
        user: Who sent or will receive the message.
        text: Message body.
        context: Channel-specific metadata carried through the turn. Values
            JSON cannot encode are stored as their ``str()`` form.
    """

    message_id: str
    timestamp: datetime
    message_type: MessageType
    user: User
    text: str
    context: dict[str, Any] | None = field(default=None)

    # -- Factories -------------------------------------------------------------

    @classmethod
    def create(
        cls,
        message_type: MessageType,
        user: User,
        text: str,
        context: dict[str, Any] | None = None,
    ) -> Message:
        """Build a new message with a fresh id and the current time."""
        return cls(
            message_id=make_message_id(),
            timestamp=datetime.now(UTC),
            message_type=message_type,
            user=user,
            text=text,
            context=context,
        )

    @classmethod
    def request(cls, user: User, text: str, context: dict[str, Any] | None = None) -> Message:
        return cls.create(MessageType.REQUEST, user, text, context)

    @classmethod
    def response(cls, user: User, text: str, context: dict[str, Any] | None = None) -> Message:
        return cls.create(MessageType.RESPONSE, user, text, context)

    # -- Convenience properties ------------------------------------------------

    @property
    def is_request(self) -> bool:
        return self.message_type is MessageType.REQUEST

    @property
    def is_response(self) -> bool:
        return self.message_type is MessageType.RESPONSE

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``messages`` column order."""
        return (
            self.message_id,
            self.timestamp.astimezone(UTC).isoformat(timespec="microseconds"),
            self.message_type.value,
            self.user.user_id,
            self.user.channel,
            self.text,
            json.dumps(self.context, default=str) if self.context is not None else None,
        )

    @classmethod
    def from_row(cls, row: tuple) -> Message:
        """Deserialize from a row in ``to_row`` column order."""
        message_id, timestamp, message_type, user_id, channel, text, context = row
        return cls(
            message_id=message_id,
            timestamp=datetime.fromisoformat(timestamp),
            message_type=MessageType(message_type),
            user=User(user_id=user_id, channel=channel),
            text=text,
            context=json.loads(context) if context is not None else None,
        )
