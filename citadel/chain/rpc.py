"""Minimal async JSON-RPC client for an EVM node."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

from citadel.core.errors import RpcError, RpcTransportError

logger = logging.getLogger(__name__)


def _to_int(value: str | int | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def _to_bytes(value: str | None) -> bytes:
    if not value:
        return b""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


class JsonRpcClient:
    """Async JSON-RPC 2.0 client over HTTP.

    Usage::

        async with JsonRpcClient("http://127.0.0.1:42069") as rpc:
            balance = await rpc.get_balance("0xf39F...")

    Every call is a single request/response; nothing is retried here.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self._next_id = 0
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Content-Type": "application/json", "User-Agent": "citadel/0.1.0"},
            transport=transport,
        )

    # ── Context manager ──────────────────────────────────────────────

    async def __aenter__(self) -> JsonRpcClient:
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ── JSON-RPC primitive ───────────────────────────────────────────

    async def request(self, method: str, params: list[Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            RpcError: The node returned a JSON-RPC error object
            RpcTransportError: The node was unreachable or sent a malformed response
        """
        self._next_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id,
            "method": method,
            "params": params or [],
        }

        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise RpcTransportError(
                f"{method} failed: HTTP {exc.response.status_code} from {self.url}"
            ) from exc
        except httpx.RequestError as exc:
            raise RpcTransportError(f"{method} failed: cannot reach {self.url}: {exc}") from exc
        except ValueError as exc:
            raise RpcTransportError(f"{method} failed: invalid JSON from {self.url}") from exc

        error = data.get("error")
        if error:
            raise RpcError(
                error.get("message", f"{method} failed"),
                rpc_code=error.get("code"),
                data=error.get("data"),
            )
        return data.get("result")

    # ── eth_* helpers ────────────────────────────────────────────────

    async def chain_id(self) -> int:
        return _to_int(await self.request("eth_chainId"))

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return _to_int(await self.request("eth_getBalance", [address, block]))

    async def get_code(self, address: str, block: str = "latest") -> bytes:
        return _to_bytes(await self.request("eth_getCode", [address, block]))

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return _to_int(await self.request("eth_getTransactionCount", [address, block]))

    async def gas_price(self) -> int:
        return _to_int(await self.request("eth_gasPrice"))

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return _to_int(await self.request("eth_estimateGas", [tx]))

    async def send_raw_transaction(self, raw: bytes) -> str:
        return await self.request("eth_sendRawTransaction", ["0x" + raw.hex()])

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def call(self, tx: dict[str, Any], block: str = "latest") -> bytes:
        return _to_bytes(await self.request("eth_call", [tx, block]))

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120.0,
        poll_interval: float = 1.0,
    ) -> dict[str, Any]:
        """Poll until the transaction is mined.

        Raises:
            TimeoutError: If no receipt appears within ``timeout`` seconds
        """
        start = time.monotonic()
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() - start >= timeout:
                raise TimeoutError(f"Transaction {tx_hash} not mined within {timeout}s")
            logger.debug("Waiting for receipt of %s", tx_hash)
            await asyncio.sleep(poll_interval)
