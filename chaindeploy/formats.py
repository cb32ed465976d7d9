"""Decoding of persisted deployment documents and mapping helpers."""
from __future__ import annotations

from pathlib import PurePosixPath
from typing import Any, Callable, Dict, Mapping
import json
import tomllib

import yaml


DocumentDecoder = Callable[[str], Any]


DOCUMENT_DECODERS: Dict[str, DocumentDecoder] = {
    ".json": json.loads,
    ".toml": tomllib.loads,
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
}
"""Mapping of file suffixes to text decoders."""


def register_decoder(suffix: str, decoder: DocumentDecoder) -> None:
    """Register ``decoder`` for documents ending with ``suffix``."""

    normalized = suffix.lower()
    if not normalized.startswith("."):
        raise ValueError("Suffix must start with '.'")
    DOCUMENT_DECODERS[normalized] = decoder


def decode_document(path: str, content: str) -> Mapping[str, Any]:
    """Decode ``content`` according to the suffix of ``path``."""

    suffix = PurePosixPath(path).suffix.lower()
    decoder = DOCUMENT_DECODERS.get(suffix)
    if decoder is None:
        supported = ", ".join(sorted(DOCUMENT_DECODERS)) or "<none>"
        raise ValueError(f"Unsupported document extension: {suffix}. Supported: {supported}")

    # an empty file is an empty record, not an error
    if not content.strip():
        return {}

    data = decoder(content)
    if not isinstance(data, Mapping):
        raise TypeError(f"Document '{path}' must contain a mapping at the root")
    return data


def merge_mappings(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> Dict[str, Any]:
    """Deep merge two mapping objects."""

    result: Dict[str, Any] = dict(base)
    for key, value in overlay.items():
        existing = result.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            result[key] = merge_mappings(existing, value)
        else:
            result[key] = value
    return result


__all__ = [
    "DOCUMENT_DECODERS",
    "DocumentDecoder",
    "decode_document",
    "merge_mappings",
    "register_decoder",
]
