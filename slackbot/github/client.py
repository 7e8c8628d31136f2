"""Lightweight GitHub client helpers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

import requests
from github import Github, GithubException, UnknownObjectException

from ..core.errors import GitHubError

LOGGER = logging.getLogger(__name__)

SEARCH_URL = "https://api.github.com/search/issues"


@dataclass(frozen=True)
class IssueInfo:
    number: int
    title: str
    state: str
    url: str
    is_pull_request: bool = False
    assignee: Optional[str] = None
    labels: Tuple[str, ...] = ()

    @property
    def kind(self) -> str:
        return "Pull Request" if self.is_pull_request else "Issue"


@dataclass(frozen=True)
class PullRequestInfo:
    number: int
    url: str
    title: str
    created_at: datetime
    author: str
    author_avatar_url: Optional[str] = None
    description: Optional[str] = None


class GitHubManager:
    """Wrapper around PyGithub that exposes async helpers."""

    def __init__(self, token: Optional[str]) -> None:
        self._token = token
        self._client = Github(token) if token else None

    def is_configured(self) -> bool:
        return self._client is not None

    async def verify_repo(self, repo_name: str) -> str:
        return await asyncio.to_thread(self._verify_repo_sync, repo_name)

    async def get_issue(self, repo_name: str, number: int) -> Optional[IssueInfo]:
        """Return the issue or pull request, or None if it does not exist."""
        return await asyncio.to_thread(self._get_issue_sync, repo_name, number)

    async def search_issues(self, repo_name: str, term: str) -> List[IssueInfo]:
        return await asyncio.to_thread(self._search_issues_sync, repo_name, term)

    async def list_open_pull_requests(self, repo_name: str) -> List[PullRequestInfo]:
        return await asyncio.to_thread(self._list_open_pull_requests_sync, repo_name)

    def _verify_repo_sync(self, repo_name: str) -> str:
        return self._get_repo(repo_name).full_name

    def _get_issue_sync(self, repo_name: str, number: int) -> Optional[IssueInfo]:
        repo = self._get_repo(repo_name)
        try:
            issue = repo.get_issue(number)
        except UnknownObjectException:
            return None
        except GithubException as exc:
            raise GitHubError(f"Failed to load issue #{number}: {exc}") from exc
        return IssueInfo(
            number=issue.number,
            title=issue.title or "",
            state=issue.state,
            url=issue.html_url,
            is_pull_request=issue.pull_request is not None,
            assignee=issue.assignee.login if issue.assignee else None,
            labels=tuple(label.name for label in issue.labels),
        )

    def _search_issues_sync(self, repo_name: str, term: str) -> List[IssueInfo]:
        """Search open issues, keeping those whose title or assignee mention ``term``."""
        if not self._token:
            raise GitHubError("GitHub token is not configured.")
        try:
            response = requests.get(
                SEARCH_URL,
                params={"q": f"repo:{repo_name} is:open {term}", "per_page": 50},
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/vnd.github+json",
                },
                timeout=30,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise GitHubError(f"Issue search failed: {exc}") from exc

        results: List[IssueInfo] = []
        for item in response.json().get("items", []):
            info = self._to_issue_info(item)
            if term in info.title or (info.assignee and term in info.assignee):
                results.append(info)
        LOGGER.info("Search for %r in %s matched %s issue(s)", term, repo_name, len(results))
        return results

    def _list_open_pull_requests_sync(self, repo_name: str) -> List[PullRequestInfo]:
        repo = self._get_repo(repo_name)
        try:
            pulls = list(repo.get_pulls(state="open", sort="created", direction="desc"))
        except GithubException as exc:
            raise GitHubError(f"Failed to query pull requests: {exc}") from exc
        return [
            PullRequestInfo(
                number=pull.number,
                url=pull.html_url,
                title=pull.title or "",
                created_at=_as_utc(pull.created_at),
                author=pull.user.login if pull.user else "unknown",
                author_avatar_url=pull.user.avatar_url if pull.user else None,
                description=pull.body,
            )
            for pull in pulls
        ]

    def _get_repo(self, repo_name: str) -> Any:
        if not self._client:
            raise GitHubError("GitHub token is not configured.")
        try:
            return self._client.get_repo(repo_name)
        except GithubException as exc:
            raise GitHubError(f"Failed to load repository {repo_name}: {exc}") from exc

    @staticmethod
    def _to_issue_info(item: dict) -> IssueInfo:
        assignee = item.get("assignee") or {}
        return IssueInfo(
            number=int(item["number"]),
            title=item.get("title") or "",
            state=item.get("state") or "",
            url=item.get("html_url") or "",
            is_pull_request="pull_request" in item,
            assignee=assignee.get("login"),
            labels=tuple(label.get("name", "") for label in item.get("labels") or ()),
        )


def _as_utc(value: datetime) -> datetime:
    # Older PyGithub releases return naive UTC datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
