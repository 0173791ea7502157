"""Shared test fixtures for the Relay CLI test suite."""

import asyncio
from typing import Callable, Optional

import pytest

from relay_cli.exchange import ConversationExchange
from relay_cli.models import MessageLog, MessageRole, Turn, append, new_turn


def echo_reply(messages: MessageLog) -> MessageLog:
    """Answer with the conversation plus one assistant turn."""
    last = messages[-1].content if messages else ""
    return append(messages, new_turn(MessageRole.ASSISTANT, f"echo: {last}"))


class StubExchange(ConversationExchange):
    """Scriptable exchange that records every outbound log.

    Set ``gate`` to an ``asyncio.Event`` to hold the response until the
    test releases it.
    """

    def __init__(
        self,
        reply: Optional[Callable[[MessageLog], MessageLog]] = echo_reply,
        error: Optional[BaseException] = None,
    ) -> None:
        self.reply = reply
        self.error = error
        self.gate: Optional[asyncio.Event] = None
        self.calls: list[MessageLog] = []
        self.closed = False

    async def send_conversation(self, messages: MessageLog) -> MessageLog:
        self.calls.append(messages)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.reply(messages)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def exchange() -> StubExchange:
    return StubExchange()


@pytest.fixture
def user_turn() -> Turn:
    return Turn(id="u1", role=MessageRole.USER, content="hello")


@pytest.fixture
def assistant_turn() -> Turn:
    return Turn(id="a1", role=MessageRole.ASSISTANT, content="hi there")


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the real env file and RELAY_* variables."""
    import relay_cli.config as config_module

    for name in ("RELAY_CHAT_API", "RELAY_TIMEOUT", "RELAY_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(config_module, "get_env_file_path", lambda: tmp_path / ".env")
    monkeypatch.setattr(config_module, "_config", None)
    return tmp_path / ".env"
