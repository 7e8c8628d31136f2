"""Slack RTM bot with a pluggable sink pipeline."""

__version__ = "0.1.0"
