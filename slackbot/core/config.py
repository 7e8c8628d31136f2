"""Configuration loader."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError
from .supervisor import DEFAULT_RECONNECT_DELAY

LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path("~/.slackbot").expanduser()
CONFIG_DIR_ENV = "SLACKBOT_CONFIG_DIR"
ENV_FILE_NAME = ".env"
BOT_FILE = "bot.yaml"


@dataclass
class SinkConfig:
    name: str
    type: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PullRequestFeedConfig:
    repo: str
    channel: str = "general"
    interval_seconds: float = 180.0
    lookback_minutes: float = 30.0


@dataclass
class Config:
    slack_bot_token: str
    sinks: List[SinkConfig] = field(default_factory=list)
    reconnect_delay: float = DEFAULT_RECONNECT_DELAY
    pull_requests: Optional[PullRequestFeedConfig] = None
    github_token: Optional[str] = None
    config_dir: Optional[Path] = None

    def get_sink(self, name: str) -> SinkConfig:
        for sink in self.sinks:
            if sink.name == name:
                return sink
        raise ConfigError(f"No sink named {name} is configured")


def resolve_config_dir(config_dir: Path | str | None) -> Path:
    """Resolve and validate the directory containing .env + bot.yaml."""
    raw = config_dir or os.getenv(CONFIG_DIR_ENV)
    target = (Path(raw).expanduser() if raw else DEFAULT_CONFIG_DIR).resolve()
    if not target.exists():
        raise ConfigError(
            f"Config directory {target} does not exist. "
            "Create it and add .env and bot.yaml."
        )
    if not target.is_dir():
        raise ConfigError(f"Config directory {target} is not a directory")
    return target


def load_config(config_dir: Path | str | None = None) -> Config:
    """Load bot configuration from the provided or default directory."""
    root = resolve_config_dir(config_dir)
    _load_env_file(root / ENV_FILE_NAME)
    data = _load_bot_file(root / BOT_FILE)

    return Config(
        slack_bot_token=_require_env("SLACK_BOT_TOKEN"),
        sinks=_parse_sinks(data.get("sinks")),
        reconnect_delay=_parse_positive(data, "reconnect_delay_seconds", DEFAULT_RECONNECT_DELAY),
        pull_requests=_parse_pull_requests(data.get("pull_requests")),
        github_token=os.getenv("GITHUB_TOKEN") or None,
        config_dir=root,
    )


def _load_env_file(path: Path) -> None:
    if not path.exists():
        LOGGER.warning("No .env file found at %s; relying on shell environment.", path)
        return
    load_dotenv(dotenv_path=path, override=False)


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} is not set")
    return value


def _load_bot_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        LOGGER.warning("No %s found at %s; running without sinks.", BOT_FILE, path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {BOT_FILE} structure at {path}")
    return data


def _parse_sinks(raw: Any) -> List[SinkConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("sinks must be a list")

    sinks: List[SinkConfig] = []
    seen = set()
    for index, cfg in enumerate(raw):
        if not isinstance(cfg, dict):
            raise ConfigError(f"Sink #{index + 1} must be a mapping")
        options = dict(cfg)
        name = options.pop("name", None)
        sink_type = options.pop("type", None)
        if not name:
            raise ConfigError(f"Sink #{index + 1} is missing name")
        if not sink_type:
            raise ConfigError(f"Sink {name} is missing type")
        if name in seen:
            raise ConfigError(f"Duplicate sink name {name}")
        seen.add(name)
        sinks.append(SinkConfig(name=str(name), type=str(sink_type), options=options))
    return sinks


def _parse_pull_requests(raw: Any) -> Optional[PullRequestFeedConfig]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ConfigError("pull_requests must be a mapping")
    repo = raw.get("repo")
    if not repo:
        raise ConfigError("pull_requests.repo is required")
    return PullRequestFeedConfig(
        repo=str(repo),
        channel=str(raw.get("channel") or "general"),
        interval_seconds=_parse_positive(raw, "interval_seconds", 180.0),
        lookback_minutes=_parse_positive(raw, "lookback_minutes", 30.0),
    )


def _parse_positive(data: Dict[str, Any], key: str, default: float) -> float:
    value = data.get(key)
    if value is None:
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{key} must be a number") from exc
    if parsed <= 0:
        raise ConfigError(f"{key} must be positive")
    return parsed
