"""Centralized application settings for the agent runtime."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from hireflow.config.config_adapter import get_config_value

STORE_BACKENDS = ("memory", "file")
INFERENCE_PROVIDERS = ("heuristic", "openai")
MEETING_PROVIDERS = ("google_meet", "ms_teams")


def _parse_csv(value: str | None, *, fallback: Iterable[str]) -> list[str]:
    if not value:
        return list(fallback)
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_int(value: str | None, default: int | None) -> int | None:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _choice(value: str | None, allowed: tuple[str, ...], default: str) -> str:
    normalized = (value or "").strip().lower()
    if not normalized:
        return default
    if normalized not in allowed:
        raise ValueError(f"expected one of {allowed}, got {value!r}")
    return normalized


@dataclass(slots=True)
class AppSettings:
    app_env: str = "dev"
    service_name: str = "hireflow-agents"
    app_version: str = "0.1.0"
    store_backend: str = "memory"
    data_dir: Path = Path(".hireflow")
    inference_provider: str = "heuristic"
    llm_model: str | None = None
    llm_timeout_seconds: float = 60.0
    log_level: str = "INFO"
    metrics_port: int | None = None
    meeting_provider: str = "google_meet"
    agent_config_path: Path | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])

    def cors_allowlist(self) -> list[str]:
        if self.app_env == "dev" and not self.cors_origins:
            return ["*"]
        return self.cors_origins


def load_app_settings() -> AppSettings:
    """Build settings from the configured sources, bypassing the cache."""
    agent_config = get_config_value("HIREFLOW_AGENT_CONFIG")
    return AppSettings(
        app_env=get_config_value("APP_ENV", "dev") or "dev",
        service_name=get_config_value("SERVICE_NAME", "hireflow-agents") or "hireflow-agents",
        app_version=get_config_value("APP_VERSION", "0.1.0") or "0.1.0",
        store_backend=_choice(get_config_value("HIREFLOW_STORE"), STORE_BACKENDS, "memory"),
        data_dir=Path(get_config_value("HIREFLOW_DATA_DIR", ".hireflow") or ".hireflow"),
        inference_provider=_choice(
            get_config_value("HIREFLOW_INFERENCE"), INFERENCE_PROVIDERS, "heuristic"
        ),
        llm_model=get_config_value("LLM_MODEL"),
        llm_timeout_seconds=_parse_float(get_config_value("LLM_TIMEOUT_SECONDS"), 60.0),
        log_level=(get_config_value("LOG_LEVEL", "INFO") or "INFO").upper(),
        metrics_port=_parse_int(get_config_value("METRICS_PORT"), None),
        meeting_provider=_choice(
            get_config_value("HIREFLOW_MEETING_PROVIDER"), MEETING_PROVIDERS, "google_meet"
        ),
        agent_config_path=Path(agent_config) if agent_config else None,
        cors_origins=_parse_csv(
            get_config_value("CORS_ORIGINS"), fallback=("http://localhost:3000",)
        ),
    )


@lru_cache
def get_app_settings() -> AppSettings:
    return load_app_settings()
