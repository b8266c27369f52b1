"""Per-agent enablement, mode, and interval loaded from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from hireflow.contracts.types import AgentMode

DEFAULT_AGENT_CONFIG = Path(__file__).with_name("agents.yaml")
AGENT_KEYS = ("sourcing", "screening", "scheduling", "interview", "analytics")


@dataclass(slots=True)
class AgentConfig:
    enabled: bool = False
    mode: AgentMode = AgentMode.RECOMMEND
    interval_seconds: float | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> AgentConfig:
        data = data or {}
        interval = data.get("interval_seconds")
        if interval is not None and float(interval) <= 0:
            raise ValueError("interval_seconds must be positive")
        return cls(
            enabled=bool(data.get("enabled", False)),
            mode=AgentMode(data.get("mode", AgentMode.RECOMMEND.value)),
            interval_seconds=float(interval) if interval is not None else None,
        )


@dataclass(slots=True)
class AgentSettings:
    """Loaded agent configuration."""

    agents: dict[str, AgentConfig] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Path | None = None) -> AgentSettings:
        data = yaml.safe_load((path or DEFAULT_AGENT_CONFIG).read_text(encoding="utf-8")) or {}
        raw_agents = data.get("agents") or {}
        unknown = set(raw_agents) - set(AGENT_KEYS)
        if unknown:
            raise ValueError(f"Unknown agents in config: {sorted(unknown)}")
        return cls(agents={key: AgentConfig.from_mapping(raw_agents.get(key)) for key in AGENT_KEYS})

    def for_agent(self, key: str) -> AgentConfig:
        return self.agents.get(key) or AgentConfig()
