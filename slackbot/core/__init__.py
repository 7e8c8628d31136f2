"""Core domain logic for the Slack bot."""

from .config import Config, PullRequestFeedConfig, SinkConfig, load_config
from .error_channel import ErrorChannel
from .errors import (
    ConfigError,
    DisposedError,
    GitHubError,
    HandshakeError,
    InvalidStateError,
    SendRejectedError,
    SinkError,
    SinkInitializationError,
    SinkProcessingError,
    SlackBotError,
)
from .models import (
    Attachment,
    AttachmentField,
    ConnectionState,
    Message,
    MessageSubtype,
    SinkResult,
)
from .pipeline import PendingSink, SinkPipeline
from .supervisor import ReconnectSupervisor

__all__ = [
    "Config",
    "PullRequestFeedConfig",
    "SinkConfig",
    "load_config",
    "ErrorChannel",
    "SlackBotError",
    "InvalidStateError",
    "DisposedError",
    "HandshakeError",
    "SendRejectedError",
    "SinkError",
    "SinkInitializationError",
    "SinkProcessingError",
    "ConfigError",
    "GitHubError",
    "Attachment",
    "AttachmentField",
    "ConnectionState",
    "Message",
    "MessageSubtype",
    "SinkResult",
    "PendingSink",
    "SinkPipeline",
    "ReconnectSupervisor",
]
