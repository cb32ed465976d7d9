"""Loader registry and the loader pipeline."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, MutableMapping, Sequence
import copy
import importlib
import inspect
import json

from .console import Console
from .environment import ResolvedEnvironment
from .errors import ConfigValidationError, LoaderExecutionError
from .formats import decode_document, merge_mappings
from .sources import SourceMap, filter_source_map


Artifacts = Dict[str, Any]
LoaderFn = Callable[[SourceMap, Mapping[str, Any], ResolvedEnvironment], Mapping[str, Any]]


def environment_loader(source_map: SourceMap, config: Mapping[str, Any], environment: ResolvedEnvironment) -> Artifacts:
    """Read previously written output documents into base artifact records."""

    records: Artifacts = {}
    for path, content in source_map.items():
        document = content if isinstance(content, Mapping) else decode_document(path, content)
        records = merge_mappings(records, document)
    return records


def raw_loader(source_map: SourceMap, config: Mapping[str, Any], environment: ResolvedEnvironment) -> Artifacts:
    """Treat every source value as an already built artifact."""

    return {environment.name: copy.deepcopy(dict(source_map))}


def _is_contract_output(value: Any) -> bool:
    return isinstance(value, Mapping) and any(key in value for key in ("bytecode", "interface", "abi", "evm"))


def _contract_definition(data: Mapping[str, Any]) -> Dict[str, Any]:
    bytecode = data.get("bytecode")
    if bytecode is None:
        bytecode = data.get("evm", {}).get("bytecode", {}).get("object", "")
    interface = data.get("interface")
    if interface is None:
        interface = json.dumps(data.get("abi", []))
    return {"bytecode": bytecode, "interface": interface}


def compiled_json_loader(source_map: SourceMap, config: Mapping[str, Any], environment: ResolvedEnvironment) -> Artifacts:
    """Collect contracts from compiler JSON output.

    Accepts both the flat ``{"File:Name": {...}}`` layout and the nested
    ``{"File": {"Name": {...}}}`` layout of standard JSON output.
    """

    contracts: Artifacts = {}
    for path, content in source_map.items():
        document = content if isinstance(content, Mapping) else json.loads(content)
        for key, value in (document.get("contracts") or {}).items():
            if _is_contract_output(value):
                contracts[str(key).rsplit(":", 1)[-1]] = _contract_definition(value)
            elif isinstance(value, Mapping):
                for name, nested in value.items():
                    if _is_contract_output(nested):
                        contracts[str(name)] = _contract_definition(nested)
    return {environment.name: contracts}


LOADERS: Dict[str, LoaderFn] = {
    "environment": environment_loader,
    "raw": raw_loader,
    "compiled-json": compiled_json_loader,
}
"""Mapping of loader identifiers to loader callables."""


def register_loader(name: str, loader: LoaderFn) -> None:
    """Register ``loader`` under ``name``."""

    if not name:
        raise ValueError("Loader name cannot be empty")
    if not callable(loader):
        raise TypeError(f"Loader '{name}' must be callable")
    LOADERS[name] = loader


def loader_label(loader_config: Any) -> str:
    if isinstance(loader_config, Mapping):
        reference = loader_config.get("loader")
        if isinstance(reference, str):
            return reference
        if callable(reference):
            return getattr(reference, "__name__", repr(reference))
    return repr(loader_config)


def require_loader(loader_config: Any) -> LoaderFn:
    """Resolve the loader named by ``loader_config['loader']``."""

    base = f"while requiring loader {loader_label(loader_config)},"
    if not isinstance(loader_config, Mapping):
        raise ConfigValidationError(f"{base} config must be a mapping, got {type(loader_config).__name__}")

    reference = loader_config.get("loader")
    if callable(reference):
        return reference
    if not isinstance(reference, str):
        raise ConfigValidationError(f"{base} config.loader must be a string or callable, got {reference!r}")

    if reference in LOADERS:
        return LOADERS[reference]

    if ":" in reference:
        module_name, _, attribute = reference.partition(":")
        try:
            module = importlib.import_module(module_name)
            loader = getattr(module, attribute)
        except (ImportError, AttributeError) as exc:
            raise ConfigValidationError(f"{base} could not import '{reference}': {exc}", cause=exc) from exc
        if not callable(loader):
            raise ConfigValidationError(f"{base} '{reference}' is not callable")
        return loader

    available = ", ".join(sorted(LOADERS)) or "<none>"
    raise ConfigValidationError(f"{base} unknown loader '{reference}'. Available: {available}")


def merge_artifacts(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Artifacts:
    """Overlay environment scopes, replacing same-named artifacts inside a scope."""

    result: Artifacts = copy.deepcopy(dict(base))
    for scope, value in overlay.items():
        existing = result.get(scope)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged = dict(existing)
            merged.update(copy.deepcopy(dict(value)))
            result[scope] = merged
        else:
            result[scope] = copy.deepcopy(value)
    return result


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def run_loaders(
    loaders: Any,
    base: Mapping[str, Any],
    source_map: Mapping[str, Any],
    environment: ResolvedEnvironment,
    *,
    console: Console | None = None,
) -> Artifacts:
    """Run each loader over its slice of ``source_map`` and merge the results in order."""

    console = console or Console()
    if not _is_sequence(loaders):
        raise ConfigValidationError(f"while processing entry data, loaders must be a list, got {type(loaders).__name__}")

    # resolve every stage before running any of them
    stages: List[tuple[Mapping[str, Any], LoaderFn]] = [(config, require_loader(config)) for config in loaders]

    output = copy.deepcopy(dict(base))
    for config, loader in stages:
        label = loader_label(config)
        filtered = filter_source_map(config.get("test"), config.get("include"), source_map, config.get("exclude"))
        console.debug(f"loader '{label}' matched {len(filtered)} source(s)")
        try:
            loaded = loader(filtered, copy.deepcopy(dict(config)), environment.copy())
        except Exception as exc:
            raise LoaderExecutionError(label, exc) from exc

        if inspect.isawaitable(loaded):
            if inspect.iscoroutine(loaded):
                loaded.close()
            raise LoaderExecutionError(label, TypeError("loaders must be synchronous"))
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, Mapping):
            raise LoaderExecutionError(label, TypeError(f"loader returned {type(loaded).__name__}, expected a mapping"))

        output = merge_artifacts(output, loaded)
    return output


def scope_artifacts(artifacts: Mapping[str, Any], environment_name: str) -> Artifacts:
    """Return the artifacts of one environment, each mapping tagged with its name."""

    scoped = copy.deepcopy(dict(artifacts.get(environment_name) or {}))
    for name, definition in scoped.items():
        if isinstance(definition, MutableMapping):
            definition["name"] = name
    return scoped


__all__ = [
    "Artifacts",
    "LOADERS",
    "LoaderFn",
    "compiled_json_loader",
    "environment_loader",
    "loader_label",
    "merge_artifacts",
    "raw_loader",
    "register_loader",
    "require_loader",
    "run_loaders",
    "scope_artifacts",
]
