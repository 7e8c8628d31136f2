"""GitHub helpers."""

from .client import GitHubManager, IssueInfo, PullRequestInfo

__all__ = ["GitHubManager", "IssueInfo", "PullRequestInfo"]
