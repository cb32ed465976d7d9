"""End-to-end pipeline: sources, environment, loaders, deployment, output."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping
import asyncio
import copy
import inspect

from .config import validate_config
from .console import Console
from .deployer import DeployFn, build_deploy_method
from .environment import ResolvedEnvironment, resolve_environment
from .errors import ChainDeployError, ConfigValidationError, SourceResolutionError
from .loaders import run_loaders, scope_artifacts
from .output import DeploymentRecorder, build_output_object
from .plugins import process_output
from .sources import SourceMap, build_source_map


Callback = Callable[[BaseException | None, str | None], Any]


@dataclass(slots=True)
class PipelineResult:
    output: str
    environment: ResolvedEnvironment
    base_artifacts: Dict[str, Any] = field(default_factory=dict)
    artifacts: Dict[str, Any] = field(default_factory=dict)
    deployed: Dict[str, Any] = field(default_factory=dict)


async def collect_sources(config: Mapping[str, Any]) -> SourceMap:
    """Build the source map with ``source_mapper`` when given, else from disk."""

    entry = config.get("entry")
    mapper = config.get("source_mapper")
    if mapper is None:
        return build_source_map(entry)
    if not callable(mapper):
        raise ConfigValidationError(f"'config[\"source_mapper\"]' must be callable, got {type(mapper).__name__}")

    try:
        result = mapper(copy.deepcopy(entry))
        if inspect.isawaitable(result):
            result = await result
    except ChainDeployError:
        raise
    except Exception as exc:
        raise SourceResolutionError(repr(entry), exc) from exc

    if not isinstance(result, Mapping):
        raise SourceResolutionError(repr(entry), TypeError(f"source_mapper returned {type(result).__name__}, expected a mapping"))
    return dict(result)


def _accepts_done(routine: Callable[..., Any]) -> bool:
    try:
        parameters = inspect.signature(routine).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = 0
    for parameter in parameters:
        if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            return True
        # a defaulted third parameter is an option, not a done callback
        if parameter.default is not inspect.Parameter.empty:
            continue
        if parameter.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 3


async def run_deployment(routine: Callable[..., Any], deploy: DeployFn, artifacts: Dict[str, Any]) -> None:
    """Run the user deployment routine until it returns or calls ``done``."""

    if not _accepts_done(routine):
        result = routine(deploy, artifacts)
        if inspect.isawaitable(result):
            await result
        return

    finished: asyncio.Future[None] = asyncio.get_running_loop().create_future()

    def done(error: Any = None) -> None:
        if finished.done():
            return
        if error is None:
            finished.set_result(None)
        elif isinstance(error, BaseException):
            finished.set_exception(error)
        else:
            finished.set_exception(ChainDeployError(str(error)))

    result = routine(deploy, artifacts, done)
    if inspect.isawaitable(result):
        await result
    await finished


async def run_pipeline(config: Any, *, console: Console | None = None) -> PipelineResult:
    """Run every stage in order; the first failure aborts the run."""

    console = console or Console()
    validate_config(config)
    module = config["module"]

    source_map = await collect_sources(config)
    console.debug(f"source map holds {len(source_map)} entr{'y' if len(source_map) == 1 else 'ies'}")

    environment = await resolve_environment(module["environment"], console=console)

    base_artifacts = run_loaders(_stage_list(module, "pre_loaders"), {}, source_map, environment, console=console)
    artifacts = run_loaders(_stage_list(module, "loaders"), base_artifacts, source_map, environment, console=console)

    recorder = DeploymentRecorder()
    deploy = build_deploy_method(
        scope_artifacts(base_artifacts, environment.name),
        environment,
        recorder,
        console=console,
    )
    await run_deployment(module["deployment"], deploy, scope_artifacts(artifacts, environment.name))

    output_object = build_output_object(base_artifacts, environment.name, recorder.records)
    output = process_output(
        _stage_list(config, "plugins"),
        output_object,
        config,
        base_artifacts,
        artifacts,
        environment.copy(),
        console=console,
    )
    return PipelineResult(
        output=output,
        environment=environment,
        base_artifacts=base_artifacts,
        artifacts=artifacts,
        deployed=dict(recorder.records),
    )


def _stage_list(section: Mapping[str, Any], key: str) -> Any:
    value = section.get(key)
    return [] if value is None else value


def chaindeploy(config: Any, callback: Callback, *, console: Console | None = None) -> None:
    """Run the pipeline and report ``(error, output)`` through ``callback``.

    ``output`` is only given on success.
    """

    console = console or Console()
    try:
        result = asyncio.run(run_pipeline(config, console=console))
    except Exception as exc:
        console.error(str(exc))
        callback(exc, None)
        return
    callback(None, result.output)


__all__ = [
    "Callback",
    "PipelineResult",
    "chaindeploy",
    "collect_sources",
    "run_deployment",
    "run_pipeline",
]
