"""In-memory conversation store."""

from dataclasses import dataclass, field, replace
from typing import Optional

from .log import get_logger
from .models import (
    ConversationEntry,
    MessageLog,
    derive_title,
    new_id,
    without_placeholder,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConversationStore:
    """Named conversations, newest first, plus the active conversation id.

    The store is immutable: every operation that changes it returns a new
    store and leaves the original untouched. ``active_id`` of ``None`` means
    a new conversation that has not been saved yet.
    """

    entries: tuple[ConversationEntry, ...] = field(default_factory=tuple)
    active_id: Optional[str] = None

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, conversation_id: Optional[str]) -> Optional[ConversationEntry]:
        """Get an entry by id."""
        if conversation_id is None:
            return None
        for entry in self.entries:
            if entry.id == conversation_id:
                return entry
        return None

    def active_log(self) -> MessageLog:
        """Messages of the active conversation, empty for a new one."""
        entry = self.get(self.active_id)
        return entry.messages if entry is not None else ()

    def upsert(
        self, active_id: Optional[str], resolved_log: MessageLog
    ) -> tuple[str, "ConversationStore"]:
        """Save an authoritative log and return ``(conversation_id, store)``.

        With an id, the matching entry's messages are replaced in place,
        keeping its position and title. Without one, a new entry is created
        at the front and titled after the log's first turn. The returned
        store keeps its current ``active_id``.
        """
        messages = without_placeholder(tuple(resolved_log))

        if active_id is not None and self.get(active_id) is not None:
            entries = tuple(
                replace(entry, messages=messages) if entry.id == active_id else entry
                for entry in self.entries
            )
            return active_id, replace(self, entries=entries)

        if active_id is not None:
            # Only reachable if an entry vanished under us; keep the result.
            logger.warning("No conversation %s to update; saving it as new", active_id)
        conversation_id = active_id or new_id()
        entry = ConversationEntry(
            id=conversation_id,
            title=derive_title(messages),
            messages=messages,
        )
        logger.debug("Created conversation %s (%r)", conversation_id, entry.title)
        return conversation_id, replace(self, entries=(entry, *self.entries))

    def select(self, conversation_id: Optional[str]) -> tuple[MessageLog, "ConversationStore"]:
        """Make a conversation active and return its messages.

        An unknown id starts a fresh conversation instead of failing.
        """
        entry = self.get(conversation_id)
        if entry is None:
            if conversation_id is not None:
                logger.info("Conversation %s not found; starting a new one", conversation_id)
            return (), self.new_conversation()
        return entry.messages, replace(self, active_id=entry.id)

    def new_conversation(self) -> "ConversationStore":
        """Clear the active id so the next exchange creates a new entry."""
        if self.active_id is None:
            return self
        return replace(self, active_id=None)
