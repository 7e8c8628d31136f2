"""Central registry of supported sink types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..core.config import Config
from ..core.errors import ConfigError
from ..core.pipeline import PendingSink
from .base import ChatMessageSink
from .github_issues import GitHubIssueSink

SinkFactory = Callable[[Config], ChatMessageSink]


@dataclass(frozen=True)
class SinkSpec:
    """Metadata describing a sink type that can appear in ``bot.yaml``."""

    type: str
    factory: SinkFactory
    description: str


SINK_SPECS: Tuple[SinkSpec, ...] = (
    SinkSpec(
        type="github_issues",
        factory=GitHubIssueSink,
        description="Expand gh#123 references and search open GitHub issues.",
    ),
)
SINK_LOOKUP: Dict[str, SinkSpec] = {spec.type: spec for spec in SINK_SPECS}


def create_pending_sinks(
    config: Config,
    lookup: Optional[Dict[str, SinkSpec]] = None,
) -> List[PendingSink]:
    """Start initializing every configured sink, preserving configuration order."""
    specs = SINK_LOOKUP if lookup is None else lookup
    return [PendingSink(name=sink.name, task=_initialize(config, specs, sink.name, sink.type)) for sink in config.sinks]


async def _initialize(
    config: Config,
    specs: Dict[str, SinkSpec],
    name: str,
    sink_type: str,
) -> ChatMessageSink:
    spec = specs.get(sink_type.lower())
    if spec is None:
        raise ConfigError(f"Unknown sink type {sink_type} for sink {name}")
    sink = spec.factory(config)
    await sink.initialize(name)
    return sink
