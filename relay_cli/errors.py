"""Errors raised by the remote exchange."""


class ExchangeError(Exception):
    """Base class for every failure of a conversation exchange."""

    def describe(self) -> str:
        """Human-readable message shown to the user."""
        return f"Sorry, I had trouble connecting: {self}"


class NotConfiguredError(ExchangeError):
    """No usable chat endpoint is configured."""

    def __init__(self, message: str = "Chat service is not configured.") -> None:
        super().__init__(message)

    def describe(self) -> str:
        return str(self)


class TransportError(ExchangeError):
    """Network failure or non-success HTTP status."""


class MalformedResponseError(ExchangeError):
    """The responder answered without a usable ``messages`` field."""


def describe_error(error: BaseException) -> str:
    """Turn any exchange failure into a single message for display."""
    if isinstance(error, ExchangeError):
        return error.describe()
    detail = str(error) or "An unknown error occurred."
    return f"Sorry, I had trouble connecting: {detail}"
