"""Tests for ChatSession."""

import asyncio

import pytest

from relay_cli.chat import ChatSession
from relay_cli.config import Config
from relay_cli.errors import MalformedResponseError, TransportError
from relay_cli.exchange import WebhookExchange
from relay_cli.models import ConversationEntry, MessageRole, Turn, new_turn
from relay_cli.state import SessionState
from relay_cli.store import ConversationStore

from .conftest import StubExchange


async def wait_for_call(exchange: StubExchange, count: int = 1) -> None:
    while len(exchange.calls) < count:
        await asyncio.sleep(0)


class TestSubmit:
    """Tests for the submit round trip."""

    @pytest.mark.asyncio
    async def test_hello_creates_conversation(self):
        """Empty store, submit 'hello' and get back a two-turn log."""
        reply = (
            Turn(id="u", role=MessageRole.USER, content="hello"),
            Turn(id="a", role=MessageRole.ASSISTANT, content="hi there"),
        )
        session = ChatSession(StubExchange(reply=lambda _: reply))

        assert await session.submit("hello") is True

        entries = session.conversations()
        assert len(entries) == 1
        assert entries[0].title == "hello..."
        assert entries[0].messages == reply
        assert session.visible == reply
        assert session.active_id == entries[0].id
        assert session.error is None
        assert not session.is_submitting

    @pytest.mark.asyncio
    async def test_outbound_is_base_plus_user_turn(self, exchange):
        await session_with_exchange(exchange).submit("one")
        assert len(exchange.calls) == 1
        sent = exchange.calls[0]
        assert [t.content for t in sent] == ["one"]
        assert sent[0].role == MessageRole.USER

    @pytest.mark.asyncio
    async def test_second_message_sends_history(self, exchange):
        session = ChatSession(exchange)
        await session.submit("one")
        await session.submit("two")

        assert [t.content for t in exchange.calls[1]] == ["one", "echo: one", "two"]
        assert len(session.conversations()) == 1
        assert len(session.conversations()[0].messages) == 4

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   "])
    async def test_blank_text_is_noop(self, exchange, text):
        session = ChatSession(exchange)

        assert await session.submit(text) is False
        assert exchange.calls == []
        assert session.visible == ()

    @pytest.mark.asyncio
    async def test_submit_uses_draft_text(self, exchange):
        session = ChatSession(exchange)
        session.set_text("drafted")

        await session.submit()

        assert exchange.calls[0][-1].content == "drafted"
        assert session.state.text == ""

    @pytest.mark.asyncio
    async def test_concurrent_submission_rejected(self, exchange):
        """Should reject a second submission while the first is outstanding."""
        exchange.gate = asyncio.Event()
        session = ChatSession(exchange)

        task = asyncio.create_task(session.submit("first"))
        await wait_for_call(exchange)
        optimistic = session.visible

        assert session.is_submitting
        assert optimistic[-1].id == "loader"
        assert await session.submit("second") is False
        assert session.visible == optimistic

        exchange.gate.set()
        await task

        assert len(exchange.calls) == 1
        assert not session.is_submitting


class TestFailure:
    """Tests for failed exchanges."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [TransportError("boom"), MalformedResponseError("bad"), RuntimeError("weird")],
    )
    async def test_rollback_keeps_user_turn(self, error, user_turn, assistant_turn):
        entry = ConversationEntry(id="a", title="hello...", messages=(user_turn, assistant_turn))
        store = ConversationStore(entries=(entry,), active_id="a")
        session = ChatSession(StubExchange(error=error), SessionState(store=store, visible=entry.messages))

        assert await session.submit("again") is True

        assert session.visible[:2] == (user_turn, assistant_turn)
        assert len(session.visible) == 3
        assert session.visible[-1].content == "again"
        assert session.visible[-1].role == MessageRole.USER
        assert session.state.store is store
        assert session.error.startswith("Sorry, I had trouble connecting:")
        assert not session.is_submitting

    @pytest.mark.asyncio
    async def test_not_configured(self):
        """Unset endpoint fails immediately and keeps only the user turn."""
        exchange = WebhookExchange(Config(_env_file=None, chat_api="YOUR_FALLBACK_WEBHOOK_URL"))
        session = ChatSession(exchange)

        await session.submit("hello")

        assert session.error == "Chat service is not configured."
        assert [(t.role, t.content) for t in session.visible] == [(MessageRole.USER, "hello")]
        assert session.conversations() == ()

    @pytest.mark.asyncio
    async def test_can_retry_after_failure(self, exchange):
        exchange.error = TransportError("down")
        session = ChatSession(exchange)
        await session.submit("hello")

        exchange.error = None
        await session.submit("hello")

        assert session.error is None
        assert len(session.conversations()) == 1

    @pytest.mark.asyncio
    async def test_cancellation_releases_submission(self, exchange):
        exchange.gate = asyncio.Event()
        session = ChatSession(exchange)

        task = asyncio.create_task(session.submit("hello"))
        await wait_for_call(exchange)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not session.is_submitting
        assert session.conversations() == ()


class TestSwitchingMidFlight:
    """Tests for switching conversations while a reply is outstanding."""

    @pytest.mark.asyncio
    async def test_reply_lands_in_original_conversation(self, exchange):
        a = ConversationEntry(id="a", title="A...", messages=(new_turn(MessageRole.USER, "a"),))
        b = ConversationEntry(id="b", title="B...", messages=(new_turn(MessageRole.USER, "b"),))
        store = ConversationStore(entries=(a, b), active_id="a")
        session = ChatSession(exchange, SessionState(store=store, visible=a.messages))
        exchange.gate = asyncio.Event()

        task = asyncio.create_task(session.submit("for a"))
        await wait_for_call(exchange)
        assert session.select("b") == b.messages

        exchange.gate.set()
        await task

        updated_a = session.state.store.get("a")
        assert [t.content for t in updated_a.messages] == ["a", "for a", "echo: for a"]
        assert updated_a.title == "A..."
        assert session.state.store.get("b") == b
        assert session.visible == b.messages
        assert session.active_id == "b"

    @pytest.mark.asyncio
    async def test_reply_shown_after_switching_back(self, exchange):
        a = ConversationEntry(id="a", title="A...", messages=(new_turn(MessageRole.USER, "a"),))
        b = ConversationEntry(id="b", title="B...", messages=(new_turn(MessageRole.USER, "b"),))
        store = ConversationStore(entries=(a, b), active_id="a")
        session = ChatSession(exchange, SessionState(store=store, visible=a.messages))
        exchange.gate = asyncio.Event()

        task = asyncio.create_task(session.submit("for a"))
        await wait_for_call(exchange)
        session.select("b")
        assert session.select("a") == a.messages

        exchange.gate.set()
        await task

        assert session.active_id == "a"
        assert [t.content for t in session.visible] == ["a", "for a", "echo: for a"]
        assert session.visible == session.state.store.get("a").messages


class TestListeners:
    """Tests for state subscriptions."""

    @pytest.mark.asyncio
    async def test_listener_sees_optimistic_and_final_state(self, exchange):
        session = ChatSession(exchange)
        seen = []
        unsubscribe = session.subscribe(lambda state: seen.append(state))

        await session.submit("hi")
        unsubscribe()
        session.new_conversation()

        assert seen[0].visible[-1].id == "loader"
        assert seen[-1].visible[-1].content == "echo: hi"
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_close_closes_exchange(self, exchange):
        await ChatSession(exchange).close()
        assert exchange.closed


def session_with_exchange(exchange: StubExchange) -> ChatSession:
    return ChatSession(exchange)
