"""Data models for Relay CLI."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

PLACEHOLDER_ID = "loader"
PLACEHOLDER_CONTENT = "..."

DEFAULT_TITLE = "New Chat"
TITLE_LENGTH = 30


def new_id() -> str:
    """Generate an opaque unique id for turns and conversations."""
    return uuid.uuid4().hex


class MessageRole(str, Enum):
    """Message roles in conversation."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """A single message in the conversation."""

    id: str
    role: MessageRole
    content: str

    @property
    def is_placeholder(self) -> bool:
        return self.id == PLACEHOLDER_ID

    def to_wire(self) -> dict[str, str]:
        """Convert to the webhook JSON format."""
        return {"id": self.id, "role": self.role.value, "content": self.content}

    @classmethod
    def from_wire(cls, data: dict[str, Any]) -> "Turn":
        """Build a turn from its webhook JSON form.

        A turn without an id gets a fresh one. Raises ``ValueError`` for an
        unknown role and ``KeyError`` for a missing role.
        """
        turn_id = data.get("id") or new_id()
        content = data.get("content")
        return cls(
            id=str(turn_id),
            role=MessageRole(data["role"]),
            content="" if content is None else str(content),
        )


# Message logs are plain tuples of turns so every change yields a new value.
MessageLog = tuple[Turn, ...]

PLACEHOLDER_TURN = Turn(
    id=PLACEHOLDER_ID,
    role=MessageRole.ASSISTANT,
    content=PLACEHOLDER_CONTENT,
)


def new_turn(role: MessageRole, content: str) -> Turn:
    """Create a turn with a fresh id."""
    return Turn(id=new_id(), role=role, content=content)


def append(log: MessageLog, turn: Turn) -> MessageLog:
    """Return a new log with ``turn`` at the end."""
    return (*log, turn)


def without_placeholder(log: MessageLog) -> MessageLog:
    """Return ``log`` minus the pending placeholder turn, if any."""
    if not any(turn.is_placeholder for turn in log):
        return log
    return tuple(turn for turn in log if not turn.is_placeholder)


def derive_title(log: MessageLog) -> str:
    """Title a conversation after its first turn.

    Never fails: an empty log or an empty first turn gives the default title.
    """
    if not log or not log[0].content:
        return DEFAULT_TITLE
    return log[0].content[:TITLE_LENGTH] + "..."


@dataclass(frozen=True)
class ConversationEntry:
    """A named conversation kept in the store."""

    id: str
    title: str
    messages: MessageLog = field(default_factory=tuple)
