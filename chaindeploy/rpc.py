"""JSON-RPC over HTTP network client."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Sequence
import asyncio
import itertools

import httpx

from .network import ContractInstance, NetworkError


ArgumentEncoder = Callable[[Any, Sequence[Any]], str]

_QUANTITY_FIELDS = ("gas", "gasPrice", "value", "nonce")


def to_quantity(value: Any) -> Any:
    """Encode integers as ``0x`` hex quantities, pass strings through."""

    if isinstance(value, bool):
        raise TypeError("booleans are not valid quantities")
    if isinstance(value, int):
        return hex(value)
    return value


class JsonRpcNetwork:
    """Network client talking to a node's JSON-RPC endpoint.

    The node is expected to hold the unlocked ``from`` accounts; this client
    never signs transactions. Constructor arguments are appended to the
    bytecode by ``argument_encoder`` when the deployment has inputs.
    """

    def __init__(
        self,
        url: str,
        *,
        namespace: str = "eth",
        argument_encoder: ArgumentEncoder | None = None,
        poll_interval: float = 1.0,
        max_polls: int = 120,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.namespace = namespace
        self.argument_encoder = argument_encoder
        self.poll_interval = poll_interval
        self.max_polls = max_polls
        self._timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(params or []),
        }
        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport) as client:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkError(f"{method} request to {self.url} failed: {exc}", cause=exc) from exc

        if not isinstance(body, Mapping):
            raise NetworkError(f"{method} returned a malformed response: {body!r}")
        error = body.get("error")
        if error:
            message = error.get("message") if isinstance(error, Mapping) else error
            raise NetworkError(f"{method} failed: {message}")
        return body.get("result")

    async def protocol_version(self) -> str:
        return str(await self.request("net_version"))

    async def accounts(self) -> List[str]:
        result = await self.request(f"{self.namespace}_accounts")
        return list(result or [])

    def _build_transaction(self, interface: Any, bytecode: str, inputs: Sequence[Any], tx: Mapping[str, Any]) -> Dict[str, Any]:
        data = bytecode
        if inputs:
            if self.argument_encoder is None:
                raise NetworkError("deploying with constructor arguments requires an argument_encoder")
            encoded = self.argument_encoder(interface, inputs)
            data = data + (encoded[2:] if encoded.startswith("0x") else encoded)

        transaction: Dict[str, Any] = {}
        for key, value in tx.items():
            transaction[key] = to_quantity(value) if key in _QUANTITY_FIELDS else value
        transaction["data"] = data
        return transaction

    async def deploy(
        self,
        interface: Any,
        bytecode: str,
        inputs: Sequence[Any],
        tx: Mapping[str, Any],
    ) -> ContractInstance:
        transaction = self._build_transaction(interface, bytecode, inputs, tx)
        transaction_hash = await self.request(f"{self.namespace}_sendTransaction", [transaction])
        receipt = await self.wait_for_receipt(transaction_hash)

        if str(receipt.get("status", "0x1")) in {"0x0", "0"}:
            raise NetworkError(f"transaction {transaction_hash} was reverted")
        address = receipt.get("contractAddress")
        if not address:
            raise NetworkError(f"transaction {transaction_hash} did not create a contract")
        return ContractInstance(
            address=address,
            interface=interface,
            receipt=dict(receipt),
            transaction_hash=transaction_hash,
        )

    async def wait_for_receipt(self, transaction_hash: str) -> Mapping[str, Any]:
        for attempt in range(self.max_polls):
            receipt = await self.request(f"{self.namespace}_getTransactionReceipt", [transaction_hash])
            if receipt:
                return receipt
            if attempt + 1 < self.max_polls:
                await asyncio.sleep(self.poll_interval)
        raise NetworkError(f"no receipt for transaction {transaction_hash} after {self.max_polls} polls")


__all__ = ["ArgumentEncoder", "JsonRpcNetwork", "to_quantity"]
