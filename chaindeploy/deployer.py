"""Deployment decision engine: reuse a prior deployment or issue a new one."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Protocol
import copy
import json

from .console import Console
from .environment import ResolvedEnvironment, is_address, transform_tx_object
from .errors import DeploymentError, InvalidFromAddressError, MissingArtifactError
from .network import ContractInstance


TX_OBJECT_KEYS = ("from", "to", "data", "gas", "gasPrice")


class ReportFn(Protocol):
    def __call__(
        self,
        name: str,
        definition: Mapping[str, Any],
        address: str,
        inputs: List[Any],
        transaction: Dict[str, Any],
        receipt: Any,
    ) -> None:
        ...


DeployFn = Callable[..., Awaitable[ContractInstance]]


def is_transaction_object(value: Any) -> bool:
    """Guess whether a trailing deploy argument is a transaction override.

    Mappings with more than five keys never qualify; an empty mapping always
    does; otherwise one of ``from``, ``to``, ``data``, ``gas`` or
    ``gasPrice`` must be present.
    """

    if not isinstance(value, Mapping):
        return False
    if len(value) > 5:
        return False
    if len(value) == 0:
        return True
    return any(key in value for key in TX_OBJECT_KEYS)


def normalize_bytecode(value: Any) -> str:
    text = "" if value is None else str(value)
    if text.startswith("0x"):
        text = text[2:]
    return f"0x{text}"


def normalize_inputs(value: Any) -> Any:
    """Convert constructor inputs to the shapes they take once persisted as JSON."""

    if isinstance(value, (list, tuple)):
        return [normalize_inputs(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): normalize_inputs(item) for key, item in value.items()}
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Decimal):
        return str(value)
    return value


def decode_interface(name: str, value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            return json.loads(value)
        except ValueError as exc:
            raise DeploymentError(name, ValueError(f"interface is not valid JSON: {exc}")) from exc
    return copy.deepcopy(value)


def artifact_is_deployed(base_record: Mapping[str, Any], staged: Mapping[str, Any]) -> bool:
    """Return ``True`` when ``staged`` matches the recorded deployment exactly."""

    if not isinstance(base_record, Mapping):
        return False
    return (
        isinstance(base_record.get("address"), str)
        and base_record.get("transactionObject") == staged.get("transactionObject")
        and normalize_bytecode(base_record.get("bytecode")) == normalize_bytecode(staged.get("bytecode"))
        and base_record.get("inputs") == staged.get("inputs")
    )


def build_deploy_method(
    base_artifacts: Mapping[str, Any],
    environment: ResolvedEnvironment,
    report: ReportFn,
    *,
    console: Console | None = None,
) -> DeployFn:
    """Return the ``deploy`` coroutine function handed to the deployment routine.

    ``deploy(artifact, *args, tx=None)`` deploys ``artifact`` with ``args`` as
    constructor inputs. ``tx`` overrides fields of the environment's default
    transaction; without it a trailing argument that looks like a transaction
    object is used as the override instead. A trailing callable is dropped.

    When the artifact's bytecode, inputs and transaction equal those recorded
    for the same name in ``base_artifacts``, no transaction is sent and the
    recorded address is returned. Both outcomes are passed to ``report``.
    """

    console = console or Console()

    async def deploy(artifact: Any, *args: Any, tx: Mapping[str, Any] | None = None) -> ContractInstance:
        if not isinstance(artifact, Mapping):
            raise MissingArtifactError(artifact)

        name = str(artifact.get("name", "<unnamed>"))
        base_record = base_artifacts.get(name)
        if not isinstance(base_record, Mapping):
            base_record = {}

        inputs = list(args)
        if inputs and callable(inputs[-1]):
            inputs.pop()

        override: Any = None
        if tx is not None:
            if not isinstance(tx, Mapping):
                raise TypeError(f"tx for artifact '{name}' must be a mapping, got {type(tx).__name__}")
            override = tx
        elif inputs and is_transaction_object(inputs[-1]):
            override = inputs.pop()

        default_tx = environment.default_tx if isinstance(environment.default_tx, Mapping) else {}
        transaction: Dict[str, Any] = copy.deepcopy(dict(default_tx))
        if override is not None:
            transaction.update(transform_tx_object(override, environment.accounts))

        if not is_address(transaction.get("from")):
            raise InvalidFromAddressError(name, transaction.get("from"))

        inputs = normalize_inputs(inputs)
        bytecode = normalize_bytecode(artifact.get("bytecode"))
        interface = decode_interface(name, artifact.get("interface"))

        staged = {"transactionObject": transaction, "bytecode": bytecode, "inputs": inputs}
        if artifact_is_deployed(base_record, staged):
            console.info(f"artifact '{name}' unchanged, reusing deployment at {base_record['address']}")
            instance = ContractInstance.at(interface, base_record["address"], base_record.get("receipt"))
        else:
            console.info(f"deploying artifact '{name}' from {transaction['from']}")
            try:
                instance = await environment.provider.deploy(
                    interface,
                    bytecode,
                    copy.deepcopy(inputs),
                    copy.deepcopy(transaction),
                )
            except Exception as exc:
                console.error(f"while deploying artifact '{name}': {exc}")
                raise DeploymentError(name, exc) from exc
            console.info(f"deployed artifact '{name}' at {instance.address}")

        receipt = instance.receipt if instance.receipt is not None else base_record.get("receipt")
        report(name, artifact, instance.address, inputs, transaction, receipt)
        return instance

    return deploy


__all__ = [
    "DeployFn",
    "ReportFn",
    "TX_OBJECT_KEYS",
    "artifact_is_deployed",
    "build_deploy_method",
    "decode_interface",
    "is_transaction_object",
    "normalize_bytecode",
    "normalize_inputs",
]
