"""Environment resolution: node checks, accounts and transaction defaults."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Sequence
import copy
import re

from .console import Console
from .errors import EnvironmentConnectError, EnvironmentIdentityError


_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

_RESERVED_KEYS = {"name", "provider", "default_tx"}


@dataclass(frozen=True, slots=True)
class AccountIndex:
    """Sender given as a position in the node's account list."""

    index: int


@dataclass(frozen=True, slots=True)
class AccountAddress:
    """Sender given as a literal address."""

    address: Any


SenderRef = AccountIndex | AccountAddress


def parse_sender(value: Any) -> SenderRef:
    if isinstance(value, int) and not isinstance(value, bool):
        return AccountIndex(value)
    return AccountAddress(value)


def resolve_sender(ref: SenderRef, accounts: Sequence[str]) -> Any:
    if isinstance(ref, AccountIndex):
        if 0 <= ref.index < len(accounts):
            return accounts[ref.index]
        return None
    return ref.address


def is_address(value: Any) -> bool:
    """Return ``True`` for a ``0x`` prefixed 20 byte hex string."""

    return isinstance(value, str) and bool(_ADDRESS_PATTERN.match(value))


def transform_tx_object(tx: Any, accounts: Sequence[str]) -> Any:
    """Swap a numeric ``from`` for the matching account.

    Anything that is not a mapping is returned untouched, as is a ``from``
    that is already an address.
    """

    if not isinstance(tx, Mapping):
        return tx

    transformed = copy.deepcopy(dict(tx))
    if "from" in transformed:
        transformed["from"] = resolve_sender(parse_sender(transformed["from"]), accounts)
    return transformed


@dataclass(frozen=True, slots=True)
class ResolvedEnvironment:
    name: str
    provider: Any
    accounts: tuple[str, ...]
    default_tx: Any = None
    protocol_version: str | None = None
    extras: Dict[str, Any] = field(default_factory=dict)

    def copy(self) -> "ResolvedEnvironment":
        """Return an instance whose ``default_tx`` and ``extras`` are private copies.

        The provider is shared.
        """

        return replace(self, default_tx=copy.deepcopy(self.default_tx), extras=copy.deepcopy(self.extras))

    def to_mapping(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "accounts": list(self.accounts),
            "protocol_version": self.protocol_version,
        }
        if self.default_tx is not None:
            data["default_tx"] = copy.deepcopy(self.default_tx)
        data.update(copy.deepcopy(self.extras))
        return data


async def resolve_environment(environment: Mapping[str, Any], *, console: Console | None = None) -> ResolvedEnvironment:
    """Query the node for its version and accounts, then resolve ``default_tx``.

    The input mapping is never mutated.
    """

    console = console or Console()
    name = str(environment.get("name"))
    provider = environment.get("provider")

    try:
        version = await provider.protocol_version()
    except Exception as exc:
        raise EnvironmentConnectError(name, exc) from exc

    try:
        accounts = await provider.accounts()
    except Exception as exc:
        raise EnvironmentIdentityError(name, exc) from exc

    accounts = tuple(accounts or ())
    console.info(f"connected to environment '{name}' (protocol version {version}, {len(accounts)} accounts)")

    extras = {
        key: copy.deepcopy(value)
        for key, value in environment.items()
        if key not in _RESERVED_KEYS
    }
    return ResolvedEnvironment(
        name=name,
        provider=provider,
        accounts=accounts,
        default_tx=transform_tx_object(environment.get("default_tx"), accounts),
        protocol_version=str(version) if version is not None else None,
        extras=extras,
    )


__all__ = [
    "AccountAddress",
    "AccountIndex",
    "ResolvedEnvironment",
    "SenderRef",
    "is_address",
    "parse_sender",
    "resolve_environment",
    "resolve_sender",
    "transform_tx_object",
]
