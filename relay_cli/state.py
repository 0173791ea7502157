"""Session state and its transitions.

Every function here is pure: it takes a ``SessionState`` and an event and
returns the next state. ``ChatSession`` in ``chat.py`` drives them around the
network call.

A submission snapshots the active conversation id and the view generation
when it starts. When the response (or failure) comes back, the store update
targets the snapshotted id, and the visible log is only rewritten if the user
is looking at that conversation: either never switched away, or came back to it.
"""

from dataclasses import dataclass, field, replace
from typing import Optional

from .models import (
    PLACEHOLDER_TURN,
    MessageLog,
    MessageRole,
    append,
    Turn,
    new_id,
    new_turn,
    without_placeholder,
)
from .store import ConversationStore


@dataclass(frozen=True)
class Submission:
    """One outstanding exchange, with its precomputed views."""

    id: str
    active_id: Optional[str]
    view: int
    base_log: MessageLog
    user_turn: Turn

    @property
    def outbound(self) -> MessageLog:
        """What is sent to the responder, and what a failure rolls back to."""
        return append(self.base_log, self.user_turn)

    @property
    def optimistic(self) -> MessageLog:
        """What the user sees while waiting."""
        return append(self.outbound, PLACEHOLDER_TURN)


@dataclass(frozen=True)
class SessionState:
    """Everything the chat view needs."""

    store: ConversationStore = field(default_factory=ConversationStore)
    visible: MessageLog = ()
    text: str = ""
    pending: Optional[Submission] = None
    error: Optional[str] = None
    view: int = 0

    @property
    def active_id(self) -> Optional[str]:
        return self.store.active_id

    @property
    def is_submitting(self) -> bool:
        return self.pending is not None


def set_text(state: SessionState, text: str) -> SessionState:
    return replace(state, text=text)


def begin_submission(
    state: SessionState, text: str
) -> tuple[SessionState, Optional[Submission]]:
    """Start a submission, or return ``(state, None)`` if it is rejected.

    Rejected when ``text`` is blank or another submission is outstanding.
    """
    if not text.strip() or state.pending is not None:
        return state, None

    submission = Submission(
        id=new_id(),
        active_id=state.store.active_id,
        view=state.view,
        base_log=state.store.active_log(),
        user_turn=new_turn(MessageRole.USER, text),
    )
    next_state = replace(
        state,
        visible=submission.optimistic,
        text="",
        pending=submission,
        error=None,
    )
    return next_state, submission


def _is_watching(state: SessionState, submission: Submission) -> bool:
    """True if the submitting conversation is the one on screen."""
    if state.view == submission.view:
        return True
    # Switched away and back again.
    return submission.active_id is not None and state.store.active_id == submission.active_id


def _finish(state: SessionState, submission: Submission) -> SessionState:
    if state.pending is not None and state.pending.id == submission.id:
        return replace(state, pending=None)
    return state


def resolve_submission(
    state: SessionState, submission: Submission, messages: MessageLog
) -> SessionState:
    """Apply the responder's authoritative log."""
    messages = tuple(messages)
    conversation_id, store = state.store.upsert(submission.active_id, messages)

    if _is_watching(state, submission):
        store = replace(store, active_id=conversation_id)
        state = replace(state, store=store, visible=messages)
    else:
        state = replace(state, store=store)

    return _finish(state, submission)


def fail_submission(
    state: SessionState, submission: Submission, message: str
) -> SessionState:
    """Roll the view back to the outbound log; the store is left untouched."""
    if _is_watching(state, submission):
        state = replace(
            state,
            visible=without_placeholder(submission.optimistic),
            error=message,
        )
    else:
        state = replace(state, error=message)

    return _finish(state, submission)


def select_conversation(state: SessionState, conversation_id: Optional[str]) -> SessionState:
    """Switch to a stored conversation (or a new one for unknown ids)."""
    messages, store = state.store.select(conversation_id)
    return replace(
        state,
        store=store,
        visible=messages,
        text="",
        error=None,
        view=state.view + 1,
    )


def start_new_conversation(state: SessionState) -> SessionState:
    return replace(
        state,
        store=state.store.new_conversation(),
        visible=(),
        text="",
        error=None,
        view=state.view + 1,
    )
