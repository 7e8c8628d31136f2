"""Message sink abstraction."""

from __future__ import annotations

import abc

from ..core.models import Message, SinkResult


class MessageSender(abc.ABC):
    """Capability to publish a message back to Slack."""

    @abc.abstractmethod
    async def send(self, message: Message) -> None:
        """Publish ``message``; raises if Slack rejects it."""


class ChatMessageSink(abc.ABC):
    """A pluggable handler that may answer or enrich an inbound message."""

    @abc.abstractmethod
    async def initialize(self, name: str) -> None:
        """Prepare the sink using the configuration registered under ``name``."""

    @abc.abstractmethod
    async def process_message(self, sender: MessageSender, message: Message) -> SinkResult:
        """Handle a message.

        Returns:
            ``SinkResult.COMPLETE`` when the message was handled and no further
            sinks should see it, ``SinkResult.CONTINUE`` otherwise.
        """
