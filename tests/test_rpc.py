from __future__ import annotations

import json
import unittest

import httpx

from chaindeploy.network import NetworkClient, NetworkError
from chaindeploy.rpc import JsonRpcNetwork, to_quantity


ADDRESS_A = "0x" + "a" * 40
CONTRACT = "0x" + "c" * 40
TX_HASH = "0x" + "1" * 64


class FakeNode:
    """Answers JSON-RPC calls from a table of canned results."""

    def __init__(self, results: dict, pending_receipts: int = 0) -> None:
        self.results = results
        self.pending_receipts = pending_receipts
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        self.requests.append(payload)
        method = payload["method"]
        if method.endswith("_getTransactionReceipt") and self.pending_receipts:
            self.pending_receipts -= 1
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": None})
        result = self.results[method]
        if isinstance(result, httpx.Response):
            return result
        if isinstance(result, dict) and "error" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "error": result["error"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    def methods(self) -> list[str]:
        return [payload["method"] for payload in self.requests]


def make_network(node: FakeNode, **kwargs) -> JsonRpcNetwork:
    kwargs.setdefault("poll_interval", 0)
    return JsonRpcNetwork("http://node.test:8545", transport=httpx.MockTransport(node), **kwargs)


class ToQuantityTests(unittest.TestCase):
    def test_values(self) -> None:
        self.assertEqual(to_quantity(3000000), "0x2dc6c0")
        self.assertEqual(to_quantity(0), "0x0")
        self.assertEqual(to_quantity("0x10"), "0x10")
        with self.assertRaises(TypeError):
            to_quantity(True)


class JsonRpcNetworkTests(unittest.IsolatedAsyncioTestCase):
    def receipt(self, **overrides) -> dict:
        receipt = {"transactionHash": TX_HASH, "contractAddress": CONTRACT, "status": "0x1", "blockNumber": "0x5"}
        receipt.update(overrides)
        return receipt

    async def test_is_a_network_client(self) -> None:
        self.assertIsInstance(make_network(FakeNode({})), NetworkClient)

    async def test_version_and_accounts(self) -> None:
        node = FakeNode({"net_version": 3, "eth_accounts": [ADDRESS_A]})
        network = make_network(node)
        self.assertEqual(await network.protocol_version(), "3")
        self.assertEqual(await network.accounts(), [ADDRESS_A])
        self.assertEqual(node.methods(), ["net_version", "eth_accounts"])
        self.assertEqual(node.requests[0]["jsonrpc"], "2.0")
        self.assertNotEqual(node.requests[0]["id"], node.requests[1]["id"])

    async def test_namespace(self) -> None:
        node = FakeNode({"vap_accounts": []})
        await make_network(node, namespace="vap").accounts()
        self.assertEqual(node.methods(), ["vap_accounts"])

    async def test_deploy_sends_transaction_and_polls_receipt(self) -> None:
        node = FakeNode(
            {"eth_sendTransaction": TX_HASH, "eth_getTransactionReceipt": self.receipt()},
            pending_receipts=2,
        )
        network = make_network(node)
        instance = await network.deploy([], "0x6060", [], {"from": ADDRESS_A, "gas": 3000000, "gasPrice": "0x1"})

        self.assertEqual(instance.address, CONTRACT)
        self.assertEqual(instance.transaction_hash, TX_HASH)
        self.assertEqual(instance.receipt["blockNumber"], "0x5")
        self.assertEqual(
            node.methods(),
            ["eth_sendTransaction"] + ["eth_getTransactionReceipt"] * 3,
        )
        sent = node.requests[0]["params"][0]
        self.assertEqual(sent, {"from": ADDRESS_A, "gas": "0x2dc6c0", "gasPrice": "0x1", "data": "0x6060"})

    async def test_constructor_arguments_are_encoded(self) -> None:
        node = FakeNode({"eth_sendTransaction": TX_HASH, "eth_getTransactionReceipt": self.receipt()})
        encoded: list = []

        def encoder(interface, inputs):
            encoded.append((interface, list(inputs)))
            return "0x" + "0" * 63 + "7"

        await make_network(node, argument_encoder=encoder).deploy([{"type": "constructor"}], "0x6060", [7], {"from": ADDRESS_A})
        self.assertEqual(encoded, [([{"type": "constructor"}], [7])])
        self.assertEqual(node.requests[0]["params"][0]["data"], "0x6060" + "0" * 63 + "7")

    async def test_inputs_without_encoder_fail_before_sending(self) -> None:
        node = FakeNode({})
        with self.assertRaises(NetworkError):
            await make_network(node).deploy([], "0x6060", [1], {"from": ADDRESS_A})
        self.assertEqual(node.requests, [])

    async def test_reverted_receipt(self) -> None:
        node = FakeNode({"eth_sendTransaction": TX_HASH, "eth_getTransactionReceipt": self.receipt(status="0x0")})
        with self.assertRaises(NetworkError) as ctx:
            await make_network(node).deploy([], "0x6060", [], {"from": ADDRESS_A})
        self.assertIn("reverted", str(ctx.exception))

    async def test_receipt_without_contract(self) -> None:
        node = FakeNode({"eth_sendTransaction": TX_HASH, "eth_getTransactionReceipt": self.receipt(contractAddress=None)})
        with self.assertRaises(NetworkError):
            await make_network(node).deploy([], "0x6060", [], {"from": ADDRESS_A})

    async def test_receipt_timeout(self) -> None:
        node = FakeNode({"eth_sendTransaction": TX_HASH}, pending_receipts=10)
        with self.assertRaises(NetworkError) as ctx:
            await make_network(node, max_polls=3).deploy([], "0x6060", [], {"from": ADDRESS_A})
        self.assertIn("3 polls", str(ctx.exception))
        self.assertEqual(node.methods().count("eth_getTransactionReceipt"), 3)

    async def test_rpc_error_field(self) -> None:
        node = FakeNode({"eth_accounts": {"error": {"code": -32000, "message": "node is syncing"}}})
        with self.assertRaises(NetworkError) as ctx:
            await make_network(node).accounts()
        self.assertIn("eth_accounts failed: node is syncing", str(ctx.exception))

    async def test_http_error(self) -> None:
        node = FakeNode({"net_version": httpx.Response(503, text="unavailable")})
        with self.assertRaises(NetworkError) as ctx:
            await make_network(node).protocol_version()
        self.assertIsInstance(ctx.exception.cause, httpx.HTTPStatusError)

    async def test_malformed_body(self) -> None:
        node = FakeNode({"net_version": httpx.Response(200, text="not json")})
        with self.assertRaises(NetworkError):
            await make_network(node).protocol_version()

        node = FakeNode({"net_version": httpx.Response(200, json=[1, 2])})
        with self.assertRaises(NetworkError):
            await make_network(node).protocol_version()


if __name__ == "__main__":
    unittest.main()
