"""Remote exchange with the conversation webhook."""

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from .config import Config, get_config
from .errors import MalformedResponseError, NotConfiguredError, TransportError
from .log import get_logger
from .models import MessageLog, Turn

logger = get_logger(__name__)


class ConversationExchange(ABC):
    """Sends a whole conversation and gets back the authoritative one."""

    @abstractmethod
    async def send_conversation(self, messages: MessageLog) -> MessageLog:
        """Exchange ``messages`` with the responder.

        Raises:
            ExchangeError: on any failure; the caller rolls back.
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None


def parse_messages(payload: object) -> MessageLog:
    """Extract the ``messages`` list from a webhook response body."""
    if not isinstance(payload, dict) or payload.get("messages") is None:
        raise MalformedResponseError("Invalid response structure from chat service")

    raw_messages = payload["messages"]
    if not isinstance(raw_messages, list):
        raise MalformedResponseError("Response 'messages' is not a list")

    turns = []
    for index, raw in enumerate(raw_messages):
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"Message {index} is not an object")
        try:
            turns.append(Turn.from_wire(raw))
        except (KeyError, ValueError) as e:
            raise MalformedResponseError(f"Message {index} is invalid: {e}") from e
    return tuple(turns)


class WebhookExchange(ConversationExchange):
    """POSTs ``{"messages": [...]}`` to the configured webhook.

    The endpoint is read once, when the exchange is created. Without a
    usable endpoint every call fails with ``NotConfiguredError`` and no
    request is made.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        config = config or get_config()
        self.endpoint = config.chat_api.strip() if config.is_configured else None
        self.client: Optional[httpx.AsyncClient] = None

        if self.endpoint is None:
            logger.warning("Chat endpoint is not configured; submissions will fail")
            return

        self.client = httpx.AsyncClient(
            headers={"Content-Type": "application/json"},
            timeout=config.timeout,
            transport=transport,
        )

    @property
    def is_configured(self) -> bool:
        return self.client is not None

    async def send_conversation(self, messages: MessageLog) -> MessageLog:
        if self.client is None or self.endpoint is None:
            raise NotConfiguredError()

        body = {"messages": [turn.to_wire() for turn in messages]}
        logger.debug("POST %s with %d messages", self.endpoint, len(messages))

        try:
            response = await self.client.post(self.endpoint, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            reason = e.response.reason_phrase or "error"
            raise TransportError(
                f"Network response was not ok: {status} {reason}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e

        logger.debug("Chat service answered %s", response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedResponseError("Chat service did not return JSON") from e

        return parse_messages(payload)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self.client is not None:
            await self.client.aclose()
