"""Periodic outbound feeds."""

from .pull_requests import PullRequestMonitor, build_announcement

__all__ = ["PullRequestMonitor", "build_announcement"]
