"""Network collaborator interface and an in-memory test chain."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Protocol, Sequence, runtime_checkable
import hashlib
import json

from .errors import ChainDeployError


class NetworkError(ChainDeployError):
    """Raised by network collaborators when a node request fails."""


@dataclass
class ContractInstance:
    """Handle on a contract living at ``address``."""

    address: str
    interface: Any = None
    receipt: Mapping[str, Any] | None = None
    transaction_hash: str | None = None

    @classmethod
    def at(cls, interface: Any, address: str, receipt: Mapping[str, Any] | None = None) -> "ContractInstance":
        """Bind a handle to an existing address without touching the network."""

        return cls(address=address, interface=interface, receipt=receipt)


@runtime_checkable
class NetworkClient(Protocol):
    """Minimal node interface required by the pipeline."""

    async def protocol_version(self) -> str:
        ...

    async def accounts(self) -> List[str]:
        ...

    async def deploy(
        self,
        interface: Any,
        bytecode: str,
        inputs: Sequence[Any],
        tx: Mapping[str, Any],
    ) -> ContractInstance:
        ...


@dataclass
class DeploymentCall:
    """A deployment received by :class:`InMemoryNetwork`."""

    interface: Any
    bytecode: str
    inputs: List[Any]
    tx: Dict[str, Any]


class InMemoryNetwork:
    """Network client that records deployments instead of sending them.

    Addresses are derived from the sender and its nonce so repeated runs
    against fresh instances produce the same addresses.
    """

    def __init__(
        self,
        accounts: Sequence[str] | None = None,
        *,
        version: str = "1337",
        fail_version: BaseException | None = None,
        fail_accounts: BaseException | None = None,
        fail_deploy: BaseException | None = None,
    ) -> None:
        self._accounts = list(accounts) if accounts is not None else [_derive_address("account", index) for index in range(10)]
        self._version = version
        self.fail_version = fail_version
        self.fail_accounts = fail_accounts
        self.fail_deploy = fail_deploy
        self.deployments: List[DeploymentCall] = []
        self._nonces: Dict[str, int] = {}
        self._block = 0

    async def protocol_version(self) -> str:
        if self.fail_version is not None:
            raise self.fail_version
        return self._version

    async def accounts(self) -> List[str]:
        if self.fail_accounts is not None:
            raise self.fail_accounts
        return list(self._accounts)

    async def deploy(
        self,
        interface: Any,
        bytecode: str,
        inputs: Sequence[Any],
        tx: Mapping[str, Any],
    ) -> ContractInstance:
        if self.fail_deploy is not None:
            raise self.fail_deploy

        sender = str(tx.get("from", "")).lower()
        nonce = self._nonces.get(sender, 0)
        self._nonces[sender] = nonce + 1
        self._block += 1

        call = DeploymentCall(interface=interface, bytecode=bytecode, inputs=list(inputs), tx=dict(tx))
        self.deployments.append(call)

        address = _derive_address(sender, nonce)
        transaction_hash = "0x" + hashlib.sha256(
            json.dumps([sender, nonce, bytecode, call.inputs], sort_keys=True, default=str).encode("utf-8")
        ).hexdigest()
        receipt = {
            "transactionHash": transaction_hash,
            "blockNumber": self._block,
            "contractAddress": address,
            "from": sender,
            "gasUsed": tx.get("gas", 0),
            "status": 1,
        }
        return ContractInstance(
            address=address,
            interface=interface,
            receipt=receipt,
            transaction_hash=transaction_hash,
        )


def _derive_address(seed: str, nonce: int) -> str:
    digest = hashlib.sha256(f"{seed}:{nonce}".encode("utf-8")).hexdigest()
    return "0x" + digest[-40:]


__all__ = [
    "ContractInstance",
    "DeploymentCall",
    "InMemoryNetwork",
    "NetworkClient",
    "NetworkError",
]
