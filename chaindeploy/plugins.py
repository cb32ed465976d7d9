"""Output plugins: string transforms applied to the serialized record."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Mapping, Protocol, Sequence, runtime_checkable
import json

import yaml

from .console import Console
from .errors import ConfigValidationError, PluginExecutionError


PluginFn = Callable[..., str]


@runtime_checkable
class Plugin(Protocol):
    def process(
        self,
        *,
        output: str,
        config: Mapping[str, Any],
        base_artifacts: Mapping[str, Any],
        artifacts: Mapping[str, Any],
        environment: Any,
    ) -> str:
        ...


class JsonMinifier:
    """Strip all insignificant whitespace from the JSON output."""

    def process(self, *, output: str, **_: Any) -> str:
        return json.dumps(json.loads(output), separators=(",", ":"))


class JsonExpander:
    """Re-indent the JSON output."""

    def __init__(self, indent: int = 2) -> None:
        self.indent = indent

    def process(self, *, output: str, **_: Any) -> str:
        return json.dumps(json.loads(output), indent=self.indent)


class JsonFilter:
    """Keep only some record fields and, optionally, some environments."""

    def __init__(self, include: Iterable[str] | None = None, environments: Iterable[str] | None = None) -> None:
        self.include = list(include) if include is not None else None
        self.environments = list(environments) if environments is not None else None

    def process(self, *, output: str, **_: Any) -> str:
        data = json.loads(output)
        filtered: Dict[str, Any] = {}
        for environment_name, records in data.items():
            if self.environments is not None and environment_name not in self.environments:
                continue
            if self.include is None or not isinstance(records, Mapping):
                filtered[environment_name] = records
                continue
            filtered[environment_name] = {
                name: (
                    {key: value for key, value in record.items() if key in self.include}
                    if isinstance(record, Mapping)
                    else record
                )
                for name, record in records.items()
            }
        return json.dumps(filtered, indent=2)


class YamlWriter:
    """Convert the JSON output to YAML."""

    def process(self, *, output: str, **_: Any) -> str:
        return yaml.safe_dump(json.loads(output), sort_keys=False)


PLUGINS: Dict[str, Callable[[], Any]] = {
    "json-minifier": JsonMinifier,
    "json-expander": JsonExpander,
    "json-filter": JsonFilter,
    "yaml": YamlWriter,
}
"""Mapping of plugin identifiers to plugin factories."""


def register_plugin(name: str, factory: Callable[[], Any]) -> None:
    """Register ``factory`` under ``name``."""

    if not name:
        raise ValueError("Plugin name cannot be empty")
    PLUGINS[name] = factory


class _FunctionPlugin:
    def __init__(self, function: PluginFn) -> None:
        self.function = function
        self.__name__ = getattr(function, "__name__", repr(function))

    def process(self, **kwargs: Any) -> str:
        return self.function(**kwargs)


def resolve_plugin(reference: Any) -> Plugin:
    """Turn a registry name, plugin object or function into a plugin."""

    if isinstance(reference, str):
        factory = PLUGINS.get(reference)
        if factory is None:
            available = ", ".join(sorted(PLUGINS)) or "<none>"
            raise ConfigValidationError(f"unknown plugin '{reference}'. Available: {available}")
        return factory()
    if isinstance(reference, type):
        return reference()
    if isinstance(reference, Plugin):
        return reference
    if callable(reference):
        return _FunctionPlugin(reference)
    raise ConfigValidationError(f"plugins must expose a 'process' method, got {type(reference).__name__}")


def plugin_label(plugin: Any) -> str:
    if isinstance(plugin, _FunctionPlugin):
        return plugin.__name__
    return type(plugin).__name__


def serialize_output(output_object: Mapping[str, Any]) -> str:
    return json.dumps(output_object, indent=2, default=str)


def process_output(
    plugins: Any,
    output_object: Mapping[str, Any],
    config: Mapping[str, Any],
    base_artifacts: Mapping[str, Any],
    artifacts: Mapping[str, Any],
    environment: Any,
    *,
    console: Console | None = None,
) -> str:
    """Serialize ``output_object`` and thread it through ``plugins`` in order."""

    console = console or Console()
    if not isinstance(plugins, Sequence) or isinstance(plugins, (str, bytes, bytearray)):
        raise ConfigValidationError(f"while processing output with plugins, plugins must be a list, got {type(plugins).__name__}")

    resolved: List[Plugin] = [resolve_plugin(plugin) for plugin in plugins]
    output = serialize_output(output_object)
    for plugin in resolved:
        label = plugin_label(plugin)
        console.debug(f"running output plugin '{label}'")
        try:
            output = plugin.process(
                output=output,
                config=config,
                base_artifacts=base_artifacts,
                artifacts=artifacts,
                environment=environment,
            )
        except Exception as exc:
            raise PluginExecutionError(label, exc) from exc
        if not isinstance(output, str):
            raise PluginExecutionError(label, TypeError(f"plugin returned {type(output).__name__}, expected str"))
    return output


__all__ = [
    "JsonExpander",
    "JsonFilter",
    "JsonMinifier",
    "PLUGINS",
    "Plugin",
    "PluginFn",
    "YamlWriter",
    "plugin_label",
    "process_output",
    "register_plugin",
    "resolve_plugin",
    "serialize_output",
]
