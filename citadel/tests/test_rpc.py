"""Tests for the JSON-RPC and faucet clients."""

from __future__ import annotations

import json

import httpx
import pytest

from citadel.chain.faucet import FaucetClient
from citadel.chain.rpc import JsonRpcClient
from citadel.core.errors import ErrorCode, FundingError, RpcError, RpcTransportError


def _client(handler) -> JsonRpcClient:
    return JsonRpcClient("http://node.test", transport=httpx.MockTransport(handler))


class TestJsonRpcClient:
    @pytest.mark.asyncio
    async def test_request_returns_result(self, node):
        async with JsonRpcClient("http://node.test", transport=node.transport) as rpc:
            assert await rpc.chain_id() == 412346

    @pytest.mark.asyncio
    async def test_balance_and_code_helpers(self, node):
        node.fund("0x00000000000000000000000000000000000000aa", 5)
        async with JsonRpcClient("http://node.test", transport=node.transport) as rpc:
            assert await rpc.get_balance("0x00000000000000000000000000000000000000aa") == 5
            assert await rpc.get_code("0x00000000000000000000000000000000000000aa") == b""

    @pytest.mark.asyncio
    async def test_request_ids_increase(self):
        seen: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            seen.append(body["id"])
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x1"})

        rpc = _client(handler)
        await rpc.chain_id()
        await rpc.chain_id()
        await rpc.close()
        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_json_rpc_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "nonce too low"}},
            )

        rpc = _client(handler)
        with pytest.raises(RpcError, match="nonce too low") as exc_info:
            await rpc.request("eth_sendRawTransaction", ["0x00"])
        await rpc.close()
        assert exc_info.value.rpc_code == -32000
        assert exc_info.value.code is ErrorCode.RPC_ERROR

    @pytest.mark.asyncio
    async def test_unreachable_node(self, node):
        node.unreachable = True
        rpc = JsonRpcClient("http://node.test", transport=node.transport)
        with pytest.raises(RpcTransportError, match="cannot reach"):
            await rpc.chain_id()
        await rpc.close()

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        rpc = _client(lambda request: httpx.Response(502, text="bad gateway"))
        with pytest.raises(RpcTransportError, match="HTTP 502"):
            await rpc.gas_price()
        await rpc.close()

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        rpc = _client(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RpcTransportError, match="invalid JSON"):
            await rpc.gas_price()
        await rpc.close()

    @pytest.mark.asyncio
    async def test_wait_for_receipt_times_out(self, node):
        node.mine = False
        async with JsonRpcClient("http://node.test", transport=node.transport) as rpc:
            with pytest.raises(TimeoutError):
                await rpc.wait_for_receipt("0x" + "ab" * 32, timeout=0.02, poll_interval=0.005)


class TestFaucetClient:
    @pytest.mark.asyncio
    async def test_accepted(self, node):
        faucet = FaucetClient("http://faucet.test", transport=node.transport)
        assert await faucet.request_funds("0x00000000000000000000000000000000000000aa") is True
        await faucet.close()
        assert node.faucet_requests == ["0x00000000000000000000000000000000000000aa"]

    @pytest.mark.asyncio
    async def test_rejected(self, node):
        node.faucet_status = 429
        faucet = FaucetClient("http://faucet.test", transport=node.transport)
        assert await faucet.request_funds("0x00000000000000000000000000000000000000aa") is False
        await faucet.close()

    @pytest.mark.asyncio
    async def test_server_error_is_unreachable(self, node):
        node.faucet_status = 503
        faucet = FaucetClient("http://faucet.test", transport=node.transport)
        with pytest.raises(FundingError) as exc_info:
            await faucet.request_funds("0x00000000000000000000000000000000000000aa")
        await faucet.close()
        assert exc_info.value.code is ErrorCode.FAUCET_UNREACHABLE

    @pytest.mark.asyncio
    async def test_connection_error(self, node):
        node.faucet_unreachable = True
        faucet = FaucetClient("http://faucet.test", transport=node.transport)
        with pytest.raises(FundingError) as exc_info:
            await faucet.request_funds("0x00000000000000000000000000000000000000aa")
        await faucet.close()
        assert exc_info.value.code is ErrorCode.FAUCET_UNREACHABLE
