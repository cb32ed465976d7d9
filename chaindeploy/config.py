"""Structural validation of deployment configurations."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigValidationError
from .network import NetworkClient


def _type_name(value: Any) -> str:
    return "None" if value is None else type(value).__name__


def config_error(config: Any) -> str | None:
    """Return the first structural problem with ``config``, or ``None``."""

    if not isinstance(config, Mapping):
        return f"the config must be a mapping, got type {_type_name(config)}"
    if config.get("entry") is None:
        return f"No defined entry! 'config[\"entry\"]' must be defined, got type {_type_name(config.get('entry'))}."

    module = config.get("module")
    if not isinstance(module, Mapping):
        return f"No defined deployment module! 'config[\"module\"]' must be a mapping, got type {_type_name(module)}"
    deployment = module.get("deployment")
    if not callable(deployment):
        return (
            "No defined deployment function! 'config[\"module\"][\"deployment\"]' must be callable "
            f"(i.e. 'async def deployment(deploy, artifacts)'), got {_type_name(deployment)}"
        )

    environment = module.get("environment")
    if not isinstance(environment, Mapping):
        return f"No defined module environment! 'config[\"module\"][\"environment\"]' must be a mapping, got {_type_name(environment)}"
    provider = environment.get("provider")
    if not isinstance(provider, NetworkClient):
        return (
            "No defined provider! 'config[\"module\"][\"environment\"]' must have a 'provider' network client, "
            f"got {_type_name(provider)}"
        )
    if not isinstance(environment.get("name"), str):
        return (
            "No defined environment name! 'config[\"module\"][\"environment\"][\"name\"]' must be a string, "
            f"got {_type_name(environment.get('name'))}"
        )

    return None


def validate_config(config: Any) -> None:
    """Raise :class:`ConfigValidationError` when ``config`` is malformed."""

    message = config_error(config)
    if message is not None:
        raise ConfigValidationError(message)


@dataclass(slots=True)
class OutputSettings:
    path: str = "./"
    filename: str = "environments.json"
    safe: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "OutputSettings":
        section = data if isinstance(data, Mapping) else {}
        return cls(
            path=str(section.get("path") or "./"),
            filename=str(section.get("filename") or "environments.json"),
            safe=bool(section.get("safe", False)),
        )

    @property
    def target(self) -> Path:
        return Path(self.path) / self.filename


__all__ = ["OutputSettings", "config_error", "validate_config"]
