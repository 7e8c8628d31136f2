"""Announces newly opened GitHub pull requests in a Slack channel."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, List, Optional

from ..core.config import PullRequestFeedConfig
from ..core.error_channel import ErrorChannel
from ..core.models import Attachment, Message, MessageSubtype
from ..github import GitHubManager, PullRequestInfo
from ..sinks.base import MessageSender

LOGGER = logging.getLogger(__name__)

ANNOUNCEMENT_TEXT = "Watch out humans!"
ANNOUNCEMENT_COLOR = "danger"

Clock = Callable[[], datetime]
SleepFn = Callable[[float], Awaitable[None]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_announcement(channel: str, pulls: List[PullRequestInfo]) -> Message:
    attachments = tuple(
        Attachment(
            fallback=pull.title,
            color=ANNOUNCEMENT_COLOR,
            title=pull.title,
            title_link=pull.url,
            image_url=pull.author_avatar_url,
        )
        for pull in pulls
    )
    return Message(
        channel=channel,
        text=ANNOUNCEMENT_TEXT,
        subtype=MessageSubtype.BOT_MESSAGE,
        attachments=attachments,
    )


class PullRequestMonitor:
    """Polls a repository on a timer and posts pull requests opened since the last poll."""

    def __init__(
        self,
        github: GitHubManager,
        config: PullRequestFeedConfig,
        error_channel: ErrorChannel,
        clock: Clock = _utcnow,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._github = github
        self._config = config
        self._error_channel = error_channel
        self._clock = clock
        self._sleep = sleep
        self._last_update = clock() - timedelta(minutes=config.lookback_minutes)
        self._task: Optional[asyncio.Task[None]] = None

    def start(self, sender: MessageSender, can_send: Callable[[], bool]) -> None:
        if self._task is not None and not self._task.done():
            raise RuntimeError("Pull request monitor already running")
        self._task = asyncio.create_task(self._run(sender, can_send))

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def poll(self, sender: MessageSender) -> Optional[Message]:
        """Send one announcement for pull requests opened since the previous poll."""
        started = self._clock()
        pulls = await self._github.list_open_pull_requests(self._config.repo)
        fresh = sorted(
            (pull for pull in pulls if pull.created_at >= self._last_update),
            key=lambda pull: pull.created_at,
            reverse=True,
        )
        for pull in fresh:
            LOGGER.info("NEW PR: %s", pull.title)

        if not fresh:
            self._last_update = started
            return None
        message = build_announcement(self._config.channel, fresh)
        await sender.send(message)
        self._last_update = started
        return message

    async def _run(self, sender: MessageSender, can_send: Callable[[], bool]) -> None:
        while True:
            await self._sleep(self._config.interval_seconds)
            if not can_send():
                LOGGER.debug("Slack connection not established; deferring pull request poll")
                continue
            try:
                await self.poll(sender)
            except Exception as exc:
                self._error_channel.report("pull request monitor", exc)
