"""Sink that expands GitHub issue references into Slack attachments."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional

from ..core.config import Config
from ..core.errors import ConfigError
from ..core.models import Attachment, AttachmentField, Message, SinkResult
from ..github import GitHubManager, IssueInfo
from .base import ChatMessageSink, MessageSender

LOGGER = logging.getLogger(__name__)

ISSUE_PATTERN = re.compile(r"(^|\b)gh ?#?(?P<id>[0-9]+)", re.IGNORECASE)

DEFAULT_COLORS: Dict[str, str] = {
    "bug": "#cc293d",
    "task": "#f2cb1d",
    "enhancement": "#009ccc",
    "feature": "#773b93",
    "epic": "#ff7b00",
    "issue": "#6a737d",
    "pull request": "#2cbe4e",
}


def slack_escape(value: Optional[str]) -> Optional[str]:
    """Escape the three characters Slack treats as control sequences."""
    if not value:
        return value
    return value.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


class GitHubIssueSink(ChatMessageSink):
    """Replies with issue details when a message mentions ``gh#123``.

    Options (from the sink's entry in ``bot.yaml``):
      - ``repo``: ``owner/name`` of the repository to look issues up in.
      - ``search_prefix``: optional trigger; text after it searches open issues.
      - ``colors``: optional label/kind to attachment color overrides.
    """

    def __init__(
        self,
        config: Config,
        github_factory: Callable[[Optional[str]], GitHubManager] = GitHubManager,
    ) -> None:
        self._config = config
        self._github_factory = github_factory
        self._github: Optional[GitHubManager] = None
        self._repo = ""
        self._search_prefix = ""
        self._colors: Dict[str, str] = dict(DEFAULT_COLORS)

    async def initialize(self, name: str) -> None:
        options = self._config.get_sink(name).options
        repo = options.get("repo")
        if not repo:
            raise ConfigError(f"Sink {name} requires a repo option")
        self._repo = str(repo)
        self._search_prefix = str(options.get("search_prefix") or "")
        self._colors.update({str(k).lower(): str(v) for k, v in (options.get("colors") or {}).items()})

        github = self._github_factory(self._config.github_token)
        if not github.is_configured():
            raise ConfigError(f"Sink {name} requires GITHUB_TOKEN")
        self._repo = await github.verify_repo(self._repo)
        self._github = github
        LOGGER.info("GitHub issue sink %s watching %s", name, self._repo)

    async def process_message(self, sender: MessageSender, message: Message) -> SinkResult:
        if self._github is None:
            raise RuntimeError("GitHub client is not initialized")

        attachments: List[Attachment] = []
        for match in ISSUE_PATTERN.finditer(message.text):
            number = match.group("id")
            issue = await self._github.get_issue(self._repo, int(number))
            if issue is None:
                await sender.send(message.create_reply(f"Issue {number} not found"))
                return SinkResult.COMPLETE
            attachments.append(self._to_attachment(issue))

        if not attachments and self._search_prefix and self._search_prefix in message.text:
            term = message.text.replace(self._search_prefix, "").strip()
            if term:
                for issue in await self._github.search_issues(self._repo, term):
                    attachments.append(self._to_attachment(issue))

        if attachments:
            await sender.send(message.create_reply("", tuple(attachments)))
            return SinkResult.COMPLETE
        return SinkResult.CONTINUE

    def _to_attachment(self, issue: IssueInfo) -> Attachment:
        fields = [AttachmentField("State", issue.state)]
        if issue.assignee:
            fields.append(AttachmentField("Assigned To", issue.assignee))
        return Attachment(
            fallback=f"{issue.kind} {issue.number}: {issue.url}",
            color=self._color_for(issue),
            text=f"<{slack_escape(issue.url)}|{slack_escape(issue.kind)} {issue.number} {slack_escape(issue.title)}>",
            fields=tuple(fields),
        )

    def _color_for(self, issue: IssueInfo) -> Optional[str]:
        for label in issue.labels:
            color = self._colors.get(label.lower())
            if color:
                return color
        return self._colors.get(issue.kind.lower())
