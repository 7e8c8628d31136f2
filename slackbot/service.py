"""Bot service: wires the connection, supervisor, sinks and feeds together."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional, Set

from .core.config import Config
from .core.error_channel import ErrorChannel
from .core.errors import SlackBotError
from .core.models import ConnectionState, Message
from .core.pipeline import PendingSink, SinkPipeline
from .core.supervisor import ReconnectSupervisor
from .feeds.pull_requests import PullRequestMonitor
from .github import GitHubManager
from .sinks.registry import create_pending_sinks
from .slack.connection import ConnectionManager

LOGGER = logging.getLogger(__name__)


class BotService:
    """Runs one bot session from ``start()`` until ``stop()``."""

    def __init__(
        self,
        config: Config,
        error_channel: Optional[ErrorChannel] = None,
        connection_factory: Callable[[], ConnectionManager] = ConnectionManager,
        pending_sinks: Optional[Callable[[Config], Iterable[PendingSink]]] = None,
        monitor_factory: Optional[Callable[[Config, ErrorChannel], Optional[PullRequestMonitor]]] = None,
    ) -> None:
        self._config = config
        self._error_channel = error_channel or ErrorChannel()
        self._connection_factory = connection_factory
        self._pending_sinks = pending_sinks or create_pending_sinks
        self._monitor_factory = monitor_factory or _default_monitor
        self._running = False
        self._connection: Optional[ConnectionManager] = None
        self._supervisor: Optional[ReconnectSupervisor] = None
        self._monitor: Optional[PullRequestMonitor] = None
        self._pipeline = SinkPipeline(self._error_channel)
        self._dispatches: Set[asyncio.Task[Optional[str]]] = set()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def connection(self) -> Optional[ConnectionManager]:
        return self._connection

    @property
    def pipeline(self) -> SinkPipeline:
        return self._pipeline

    async def start(self) -> None:
        if self._running:
            raise RuntimeError("Bot service already started")
        if self._connection is not None:
            await self._connection.dispose()

        self._running = True
        connection = self._connection = self._connection_factory()
        self._supervisor = ReconnectSupervisor(
            connect=self._connect,
            is_running=lambda: self._running,
            delay=self._config.reconnect_delay,
        )
        connection.add_state_listener(self._supervisor.on_state_changed)
        connection.add_message_listener(self._on_message)

        self._monitor = self._monitor_factory(self._config, self._error_channel)
        if self._monitor is not None:
            self._monitor.start(
                connection,
                lambda: connection.state == ConnectionState.ESTABLISHED,
            )

        await self._pipeline.initialize(self._pending_sinks(self._config))
        LOGGER.info("Active sinks: %s", ", ".join(self._pipeline.sink_names) or "none")
        await self._connect()

    async def stop(self) -> None:
        self._running = False
        if self._supervisor is not None:
            await self._supervisor.stop()
        if self._monitor is not None:
            await self._monitor.stop()
        if self._connection is not None:
            try:
                await self._connection.close()
            except SlackBotError as exc:
                self._error_channel.report("slack connection", exc)
        if self._dispatches:
            await asyncio.gather(*self._dispatches, return_exceptions=True)
        LOGGER.info("Bot service stopped")

    async def _connect(self) -> None:
        connection = self._connection
        if connection is None:
            return
        try:
            await connection.open(self._config.slack_bot_token)
        except SlackBotError as exc:
            self._error_channel.report("slack connection", exc)

    def _on_message(self, message: Message) -> None:
        if not SinkPipeline.qualifies(message) or self._connection is None:
            return
        task = asyncio.create_task(self._pipeline.dispatch(self._connection, message))
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)


def _default_monitor(config: Config, error_channel: ErrorChannel) -> Optional[PullRequestMonitor]:
    if config.pull_requests is None:
        return None
    github = GitHubManager(config.github_token)
    if not github.is_configured():
        LOGGER.warning("pull_requests is configured but GITHUB_TOKEN is not set; feed disabled")
        return None
    return PullRequestMonitor(github, config.pull_requests, error_channel)
