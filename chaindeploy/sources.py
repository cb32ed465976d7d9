"""Source map construction from configured entry paths."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Pattern, Sequence, Union
import copy
import re

from .errors import SourceResolutionError
from .formats import merge_mappings


SourceMap = Dict[str, Any]
SourceResolver = Callable[[str], Mapping[str, Any]]
PatternLike = Optional[Union[str, Pattern[str]]]


def get_input_sources(entry: str) -> SourceMap:
    """Read ``entry`` (a file or a directory) into a ``{path: text}`` mapping."""

    path = Path(entry)
    if path.is_file():
        key = path.as_posix()
        return {key: _read_text(path, key)}
    if not path.is_dir():
        raise SourceResolutionError(entry, FileNotFoundError(f"no such file or directory: {entry}"))

    sources: SourceMap = {}
    for child in sorted(path.rglob("*")):
        if not child.is_file():
            continue
        key = (Path(entry) / child.relative_to(path)).as_posix()
        sources[key] = _read_text(child, key)
    return sources


def _read_text(path: Path, key: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceResolutionError(key, exc) from exc


def normalize_entry(entry: Any) -> list[Any]:
    if isinstance(entry, str):
        return [entry]
    if isinstance(entry, Sequence) and not isinstance(entry, (bytes, bytearray)):
        return list(entry)
    return []


def build_source_map(entry: Any, resolver: SourceResolver = get_input_sources) -> SourceMap:
    """Fold every string entry into one source map, later entries winning.

    Non-string items are skipped; an empty entry list gives an empty map.
    """

    source_map: SourceMap = {}
    for item in normalize_entry(entry):
        if not isinstance(item, str):
            continue
        try:
            resolved = resolver(item)
        except SourceResolutionError:
            raise
        except Exception as exc:
            raise SourceResolutionError(item, exc) from exc
        source_map = merge_mappings(source_map, resolved)
    return source_map


def _compile(pattern: PatternLike) -> Pattern[str] | None:
    if pattern is None:
        return None
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


def filter_source_map(
    test: PatternLike,
    include: PatternLike,
    source_map: Mapping[str, Any],
    exclude: PatternLike = None,
) -> SourceMap:
    """Select the keys matching ``test`` and ``include`` but not ``exclude``."""

    test_pattern = _compile(test)
    include_pattern = _compile(include)
    exclude_pattern = _compile(exclude)

    filtered: SourceMap = {}
    for key, value in source_map.items():
        if test_pattern is not None and not test_pattern.search(key):
            continue
        if include_pattern is not None and not include_pattern.search(key):
            continue
        if exclude_pattern is not None and exclude_pattern.search(key):
            continue
        filtered[key] = copy.deepcopy(value)
    return filtered


__all__ = [
    "SourceMap",
    "SourceResolver",
    "build_source_map",
    "filter_source_map",
    "get_input_sources",
    "normalize_entry",
]
