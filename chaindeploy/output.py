"""Assembly and persistence of the deployment record."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping
import copy
import os
import shutil
import stat
import tempfile

from .config import OutputSettings


class DeploymentRecorder:
    """Report function collecting every deployed or reused artifact."""

    def __init__(self) -> None:
        self.records: Dict[str, Dict[str, Any]] = {}

    def __call__(
        self,
        name: str,
        definition: Mapping[str, Any],
        address: str,
        inputs: List[Any],
        transaction: Dict[str, Any],
        receipt: Any,
    ) -> None:
        interface = definition.get("interface")
        if interface is not None and not isinstance(interface, str):
            interface = copy.deepcopy(interface)
        self.records[name] = {
            "bytecode": definition.get("bytecode"),
            "interface": interface,
            "address": address,
            "inputs": copy.deepcopy(inputs),
            "transactionObject": copy.deepcopy(transaction),
            "receipt": copy.deepcopy(receipt),
        }


def build_output_object(
    base_artifacts: Mapping[str, Any],
    environment_name: str,
    deployed: Mapping[str, Any],
) -> Dict[str, Any]:
    """Overlay this run's records on the prior record of ``environment_name``.

    Other environments are carried over untouched.
    """

    output = copy.deepcopy(dict(base_artifacts))
    previous = output.get(environment_name)
    scope = dict(previous) if isinstance(previous, Mapping) else {}
    scope.update(copy.deepcopy(dict(deployed)))
    output[environment_name] = scope
    return output


def _file_mode(target: Path) -> int:
    """Mode of the existing file, or what a plain ``open`` would create."""

    if target.exists():
        return stat.S_IMODE(target.stat().st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_output(settings: OutputSettings, text: str) -> Path:
    """Write ``text`` to the configured output file and return its path.

    With ``settings.safe`` the previous file is kept as ``<filename>.bak`` and
    the new content replaces it atomically.
    """

    target = settings.target
    target.parent.mkdir(parents=True, exist_ok=True)

    if not settings.safe:
        target.write_text(text, encoding="utf-8")
        return target

    mode = _file_mode(target)
    if target.exists():
        shutil.copy2(target, target.with_name(f"{target.name}.bak"))
    handle, temp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(text)
        os.chmod(temp_name, mode)
        os.replace(temp_name, target)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise
    return target


__all__ = ["DeploymentRecorder", "build_output_object", "write_output"]
