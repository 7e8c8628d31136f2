"""Custom exception hierarchy for the Slack bot."""

from __future__ import annotations


class SlackBotError(Exception):
    """Base error type."""


class InvalidStateError(SlackBotError):
    """Raised when a connection operation is attempted in the wrong state."""


class DisposedError(SlackBotError):
    """Raised when an operation is attempted on a disposed connection."""


class HandshakeError(SlackBotError):
    """Raised when Slack rejects the RTM handshake or the socket cannot open."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Slack handshake failed: {reason}")
        self.reason = reason


class SendRejectedError(SlackBotError):
    """Raised when Slack rejects an outbound message."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Slack rejected message: {reason}")
        self.reason = reason


class SinkError(SlackBotError):
    def __init__(self, sink_name: str, message: str) -> None:
        super().__init__(message)
        self.sink_name = sink_name


class SinkInitializationError(SinkError):
    def __init__(self, sink_name: str) -> None:
        super().__init__(sink_name, f"Sink {sink_name} failed to initialize")


class SinkProcessingError(SinkError):
    def __init__(self, sink_name: str) -> None:
        super().__init__(sink_name, f"Sink {sink_name} failed to process message")


class ConfigError(SlackBotError):
    pass


class GitHubError(SlackBotError):
    pass
