"""Relay CLI - terminal chat client for a conversation webhook."""

__app_name__ = "relay"
__version__ = "0.1.0"
