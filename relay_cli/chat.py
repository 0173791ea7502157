"""Chat functionality for Relay CLI."""

from collections.abc import Callable
from typing import Optional

from .errors import ExchangeError, describe_error
from .exchange import ConversationExchange
from .log import get_logger
from .models import ConversationEntry, MessageLog
from .state import (
    SessionState,
    begin_submission,
    fail_submission,
    resolve_submission,
    select_conversation,
    set_text,
    start_new_conversation,
)

logger = get_logger(__name__)

StateListener = Callable[[SessionState], None]


class ChatSession:
    """A chat session against a conversation webhook.

    Owns the current ``SessionState`` and swaps it for a new one on every
    event. Only one submission can be outstanding at a time; while it waits
    on the network the user can still switch or start conversations.
    """

    def __init__(
        self,
        exchange: ConversationExchange,
        state: Optional[SessionState] = None,
    ) -> None:
        self.exchange = exchange
        self.state = state or SessionState()
        self._listeners: list[StateListener] = []

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with every new state. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_state(self, state: SessionState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)

    @property
    def visible(self) -> MessageLog:
        return self.state.visible

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def active_id(self) -> Optional[str]:
        return self.state.active_id

    @property
    def is_submitting(self) -> bool:
        return self.state.is_submitting

    def conversations(self) -> tuple[ConversationEntry, ...]:
        """Saved conversations, newest first."""
        return self.state.store.entries

    def set_text(self, text: str) -> None:
        self._set_state(set_text(self.state, text))

    async def submit(self, text: Optional[str] = None) -> bool:
        """Send ``text`` (or the current draft) and reconcile the answer.

        Returns False when the submission is rejected: blank text, or another
        submission still outstanding. Exchange failures are not raised; they
        roll the visible log back and set ``error``.
        """
        if text is None:
            text = self.state.text

        state, submission = begin_submission(self.state, text)
        if submission is None:
            logger.debug("Submission rejected (blank text or already submitting)")
            return False

        logger.info(
            "Submitting %d messages (conversation=%s)",
            len(submission.outbound),
            submission.active_id or "new",
        )
        self._set_state(state)

        try:
            messages = await self.exchange.send_conversation(submission.outbound)
        except ExchangeError as e:
            logger.warning("Exchange failed: %s", e)
            self._set_state(fail_submission(self.state, submission, describe_error(e)))
        except Exception as e:
            logger.exception("Unexpected error during exchange")
            self._set_state(fail_submission(self.state, submission, describe_error(e)))
        else:
            logger.info("Exchange resolved with %d messages", len(messages))
            self._set_state(resolve_submission(self.state, submission, messages))
        finally:
            # Never leave the session stuck in the submitting state.
            if self.state.pending is submission:
                self._set_state(fail_submission(self.state, submission, "Submission aborted."))

        return True

    def select(self, conversation_id: Optional[str]) -> MessageLog:
        """Switch to a saved conversation and return its messages."""
        self._set_state(select_conversation(self.state, conversation_id))
        return self.state.visible

    def new_conversation(self) -> None:
        """Start a new, unsaved conversation."""
        self._set_state(start_new_conversation(self.state))

    async def close(self) -> None:
        """Close the underlying exchange."""
        await self.exchange.close()
