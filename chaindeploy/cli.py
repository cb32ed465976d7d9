"""Command line interface for chaindeploy."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType, SimpleNamespace
from typing import Any, Dict, Iterable, Mapping
import asyncio
import importlib.util
import sys

from .config import OutputSettings
from .console import Console
from .errors import ChainDeployError, ConfigValidationError
from .loaders import LOADERS
from .output import write_output
from .pipeline import run_pipeline
from .plugins import JsonExpander, JsonFilter, JsonMinifier, YamlWriter


@dataclass(slots=True)
class ConfigOptions:
    """Passed to a config module's ``config(options)`` function."""

    environment: str | None = None
    plugins: SimpleNamespace = field(
        default_factory=lambda: SimpleNamespace(
            JsonMinifier=JsonMinifier,
            JsonExpander=JsonExpander,
            JsonFilter=JsonFilter,
            YamlWriter=YamlWriter,
        )
    )
    loaders: Dict[str, Any] = field(default_factory=lambda: dict(LOADERS))


def _import_config_module(path: Path) -> ModuleType:
    if not path.is_file():
        raise ConfigValidationError(f"Config file '{path}' does not exist")
    spec = importlib.util.spec_from_file_location(f"chaindeploy_config_{path.stem.replace('.', '_')}", path)
    if spec is None or spec.loader is None:
        raise ConfigValidationError(f"Config file '{path}' is not an importable Python module")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def load_config(path: Path, options: ConfigOptions) -> Any:
    """Import ``path`` and return its config mapping."""

    module = _import_config_module(path)
    factory = getattr(module, "config", None)
    if callable(factory):
        return factory(options)
    if hasattr(module, "CONFIG"):
        return module.CONFIG
    raise ConfigValidationError(f"Config file '{path}' must define a 'config(options)' function or a 'CONFIG' mapping")


def _output_settings(config: Mapping[str, Any], override: str | None) -> OutputSettings:
    settings = OutputSettings.from_mapping(config.get("output"))
    if override:
        target = Path(override)
        settings.path = str(target.parent)
        settings.filename = target.name
    return settings


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="chaindeploy", description="Configuration-driven contract deployment")
    parser.add_argument("config", help="Path to a Python config module")
    parser.add_argument("-e", "--env", dest="environment", help="Environment name passed to config(options)")
    parser.add_argument("-o", "--output", help="Override the output file path")
    parser.add_argument(
        "-l",
        "--log",
        choices=list(Console.LEVELS),
        default="error",
        help="Set log level (default: error)",
    )
    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(args.log)

    try:
        config = load_config(Path(args.config), ConfigOptions(environment=args.environment))
    except ConfigValidationError as exc:
        print(f"Error: {exc}")
        return 2
    except Exception as exc:
        print(f"Error: could not load config '{args.config}': {exc}")
        return 2

    try:
        result = asyncio.run(run_pipeline(config, console=console))
    except ConfigValidationError as exc:
        print(f"Error: {exc}")
        return 2
    except ChainDeployError as exc:
        print(f"Error: {exc}")
        return 1
    except Exception as exc:
        print(f"Error: deployment routine failed: {exc}")
        return 1

    target = write_output(_output_settings(config, args.output), result.output)
    print(f"Wrote {target}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
