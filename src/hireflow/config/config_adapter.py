"""Layered configuration lookup.

Values are resolved from the process environment first, then a ``.env`` file
(``DOTENV_PATH``), then an optional flat YAML file (``HIREFLOW_CONFIG_FILE``).
"""

from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
import os
from pathlib import Path
from typing import Protocol

import yaml  # type: ignore[import-untyped]


class ConfigSource(Protocol):
    def get(self, key: str) -> str | None: ...


class EnvConfigSource:
    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def get(self, key: str) -> str | None:
        environ = os.environ if self._environ is None else self._environ
        return environ.get(key)


def parse_dotenv(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines, ignoring comments and an ``export`` prefix."""
    values: dict[str, str] = {}
    for line in (raw.strip() for raw in text.splitlines()):
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ").lstrip()
        name, sep, value = line.partition("=")
        if not sep:
            continue
        value = value.strip()
        if len(value) > 1 and value[0] in "\"'" and value[-1] == value[0]:
            value = value[1:-1]
        values[name.strip()] = value
    return values


def parse_yaml_config(text: str, origin: str = "<config>") -> dict[str, str]:
    """Parse a flat YAML mapping; scalars become strings and nulls are dropped."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{origin} must contain a mapping of config keys")
    values: dict[str, str] = {}
    for name, value in data.items():
        if isinstance(value, (dict, list)):
            raise ValueError(f"config key {name!r} in {origin} must be a scalar")
        if value is None:
            continue
        values[str(name)] = str(value).lower() if isinstance(value, bool) else str(value)
    return values


class _FileConfigSource:
    """Reads its file on first lookup; a missing file contributes nothing."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._values: dict[str, str] | None = None

    def _parse(self, text: str) -> dict[str, str]:
        raise NotImplementedError

    def get(self, key: str) -> str | None:
        if self._values is None:
            try:
                text = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                text = ""
            self._values = self._parse(text)
        return self._values.get(key)


class DotEnvConfigSource(_FileConfigSource):
    def _parse(self, text: str) -> dict[str, str]:
        return parse_dotenv(text)


class YamlFileConfigSource(_FileConfigSource):
    def _parse(self, text: str) -> dict[str, str]:
        return parse_yaml_config(text, str(self.path))


class ConfigAdapter:
    """Returns the value from the first source that has one."""

    def __init__(self, *sources: ConfigSource) -> None:
        self.sources = sources

    def get(self, key: str, default: str | None = None) -> str | None:
        for source in self.sources:
            found = source.get(key)
            if found is not None:
                return found
        return default


@lru_cache
def _config_adapter() -> ConfigAdapter:
    layers: list[ConfigSource] = [
        EnvConfigSource(),
        DotEnvConfigSource(Path(os.getenv("DOTENV_PATH", ".env"))),
    ]
    config_file = os.getenv("HIREFLOW_CONFIG_FILE")
    if config_file:
        layers.append(YamlFileConfigSource(Path(config_file)))
    return ConfigAdapter(*layers)


def get_config_value(key: str, default: str | None = None) -> str | None:
    return _config_adapter().get(key, default)
