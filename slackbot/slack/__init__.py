"""Slack RTM connectivity."""

from .connection import ConnectionManager
from .transport import Transport, WebSocketTransport

__all__ = ["ConnectionManager", "Transport", "WebSocketTransport"]
