"""Routes inbound messages through the configured sinks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Iterable, List, Optional, Tuple

from ..sinks.base import ChatMessageSink, MessageSender
from .error_channel import ErrorChannel
from .errors import SinkInitializationError, SinkProcessingError
from .models import Message, MessageSubtype, SinkResult

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingSink:
    """A sink whose initialization has been requested but not yet awaited."""

    name: str
    task: Awaitable[ChatMessageSink]


class SinkPipeline:
    """Ordered chain of sinks; the first sink to complete a message wins."""

    def __init__(self, error_channel: ErrorChannel) -> None:
        self._error_channel = error_channel
        self._sinks: List[Tuple[str, ChatMessageSink]] = []
        self._initialized = False

    @property
    def sink_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self._sinks)

    async def initialize(self, pending: Iterable[PendingSink]) -> None:
        """Await every pending sink and keep the ones that initialized.

        Initializations run concurrently but sinks are registered in the order
        given. A sink that fails is reported and left out for the whole run.
        """
        if self._initialized:
            raise RuntimeError("Sink pipeline is already initialized")
        self._initialized = True

        scheduled = [(item.name, asyncio.ensure_future(item.task)) for item in pending]
        for name, future in scheduled:
            try:
                sink = await future
            except Exception as exc:
                error = SinkInitializationError(name)
                error.__cause__ = exc
                self._error_channel.report(f"sink {name}", error)
                continue
            self._sinks.append((name, sink))
            LOGGER.info("Registered sink %s", name)

    @staticmethod
    def qualifies(message: Message) -> bool:
        """Only ordinary, visible user messages reach the sinks."""
        return message.subtype is MessageSubtype.MESSAGE and not message.hidden

    async def dispatch(self, sender: MessageSender, message: Message) -> Optional[str]:
        """Offer ``message`` to each sink in turn.

        Returns:
            The name of the sink that completed the message, or None.
        """
        if not self.qualifies(message):
            LOGGER.debug("Ignoring message with subtype %s (hidden=%s)", message.subtype.value, message.hidden)
            return None

        for name, sink in self._sinks:
            try:
                result = await sink.process_message(sender, message)
            except Exception as exc:
                error = SinkProcessingError(name)
                error.__cause__ = exc
                self._error_channel.report(f"sink {name}", error)
                continue
            if result is SinkResult.COMPLETE:
                LOGGER.debug("Message in %s handled by sink %s", message.channel, name)
                return name
        return None
