"""Shared fixtures for the Citadel test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, AsyncIterator

import httpx
import pytest
import pytest_asyncio
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from citadel.chain.context import NetworkContext, open_network_context
from citadel.chain.signer import Signer
from citadel.core.config import Settings
from citadel.core.sealing import scope_binding, seal
from citadel.permits.issuer import recover_permit_signer

# Well-known Hardhat development keys
ADMIN_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
PLAYER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

LOCALFHENIX_CHAIN_ID = 412346

KING_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "getPlayerCount",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getCurrentWeather",
        "inputs": [
            {
                "name": "permission",
                "type": "tuple",
                "components": [
                    {"name": "publicKey", "type": "bytes32"},
                    {"name": "signature", "type": "bytes"},
                ],
            }
        ],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
    {
        "type": "function",
        "name": "getCurrentKing",
        "inputs": [
            {
                "name": "permission",
                "type": "tuple",
                "components": [
                    {"name": "publicKey", "type": "bytes32"},
                    {"name": "signature", "type": "bytes"},
                ],
            }
        ],
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
    },
]

KING_BYTECODE = "0x6080604052348015600f57600080fd5b50603f80601d6000396000f3fe"


def _selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


# ── Fake Fhenix node ─────────────────────────────────────────────────────────


class Revert(Exception):
    """Raised inside the fake node to answer with an execution-reverted error."""


class FakeFhenixNode:
    """In-process stand-in for a localfhenix node and its faucet.

    Serves JSON-RPC on any path and the faucet on ``/faucet`` through an
    ``httpx.MockTransport``. Contract creation installs a KingOfTheCastle
    game whose king is the deployer; sealed accessors enforce the permit the
    same way the contract does (signature must recover to ``msg.sender`` for
    this chain and contract).
    """

    def __init__(self, chain_id: int = LOCALFHENIX_CHAIN_ID) -> None:
        self.chain_id = chain_id
        self.balances: dict[str, int] = {}
        self.code: dict[str, bytes] = {}
        self.games: dict[str, dict[str, Any]] = {}
        self.nonces: dict[str, int] = {}
        self.receipts: dict[str, dict[str, Any]] = {}

        # Observations
        self.sent_transactions: list[str] = []
        self.faucet_requests: list[str] = []
        self.calls: list[dict[str, Any]] = []

        # Behaviour knobs
        self.genesis: dict[str, Any] = {"player_count": 1, "weather": 0}
        self.faucet_status = 200
        self.faucet_credits = True
        self.faucet_unreachable = False
        self.unreachable = False
        self.mine = True
        self.revert_next_deploy = False
        self.corrupt_sealed = False
        self.failing_methods: set[str] = set()

        self.transport = httpx.MockTransport(self.handle)

    # ── helpers ──────────────────────────────────────────────────────

    def fund(self, address: str, amount: int = 10**18) -> None:
        self.balances[address.lower()] = self.balances.get(address.lower(), 0) + amount

    def game(self, address: str) -> dict[str, Any]:
        return self.games[address.lower()]

    # ── transport ────────────────────────────────────────────────────

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/faucet":
            return self._faucet(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        payload = json.loads(request.content)
        method, params = payload["method"], payload.get("params", [])

        if method in self.failing_methods:
            return self._error(payload["id"], -32000, f"{method} unavailable")

        handler = getattr(self, f"_{method}", None)
        if handler is None:
            return self._error(payload["id"], -32601, f"method {method} not found")

        try:
            result = handler(*params)
        except Revert as exc:
            return self._error(payload["id"], 3, f"execution reverted: {exc}")
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], "result": result})

    @staticmethod
    def _error(req_id: int, code: int, message: str) -> httpx.Response:
        return httpx.Response(
            200,
            json={"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}},
        )

    def _faucet(self, request: httpx.Request) -> httpx.Response:
        if self.faucet_unreachable:
            raise httpx.ConnectError("faucet down", request=request)
        address = request.url.params["address"]
        self.faucet_requests.append(address)
        if self.faucet_status == 200 and self.faucet_credits:
            self.fund(address)
        return httpx.Response(self.faucet_status, json={"address": address})

    # ── eth_* ────────────────────────────────────────────────────────

    def _eth_chainId(self) -> str:
        return hex(self.chain_id)

    def _eth_getBalance(self, address: str, block: str) -> str:
        return hex(self.balances.get(address.lower(), 0))

    def _eth_getCode(self, address: str, block: str) -> str:
        return "0x" + self.code.get(address.lower(), b"").hex()

    def _eth_getTransactionCount(self, address: str, block: str) -> str:
        return hex(self.nonces.get(address.lower(), 0))

    def _eth_gasPrice(self) -> str:
        return hex(10**9)

    def _eth_estimateGas(self, tx: dict[str, Any]) -> str:
        return hex(500_000)

    def _eth_sendRawTransaction(self, raw: str) -> str:
        sender = Account.recover_transaction(raw)
        tx_hash = "0x" + keccak(hexstr=raw).hex()
        self.sent_transactions.append(tx_hash)
        self.nonces[sender.lower()] = self.nonces.get(sender.lower(), 0) + 1

        if self.revert_next_deploy:
            self.revert_next_deploy = False
            self.receipts[tx_hash] = {"transactionHash": tx_hash, "status": "0x0", "contractAddress": None}
            return tx_hash

        address = to_checksum_address(keccak(hexstr=raw)[12:])
        self.code[address.lower()] = bytes.fromhex(KING_BYTECODE[2:])
        self.games[address.lower()] = {
            "player_count": self.genesis["player_count"],
            "weather": self.genesis["weather"],
            "king": sender,
        }
        self.receipts[tx_hash] = {"transactionHash": tx_hash, "status": "0x1", "contractAddress": address}
        return tx_hash

    def _eth_getTransactionReceipt(self, tx_hash: str) -> dict[str, Any] | None:
        if not self.mine:
            return None
        return self.receipts.get(tx_hash)

    def _eth_call(self, tx: dict[str, Any], block: str) -> str:
        self.calls.append(tx)
        game = self.games.get(tx["to"].lower())
        if game is None:
            return "0x"

        data = bytes.fromhex(tx["data"][2:])
        selector, args = data[:4], data[4:]

        if selector == _selector("getPlayerCount()"):
            return "0x" + encode(["uint256"], [game["player_count"]]).hex()
        if selector == _selector("getCurrentWeather((bytes32,bytes))"):
            return self._sealed(tx, args, "uint8", game["weather"])
        if selector == _selector("getCurrentKing((bytes32,bytes))"):
            return self._sealed(tx, args, "address", game["king"])
        raise Revert("unknown selector")

    def _sealed(self, tx: dict[str, Any], args: bytes, output_type: str, value: Any) -> str:
        ((public_key, signature),) = decode(["(bytes32,bytes)"], args)
        contract = to_checksum_address(tx["to"])
        try:
            signer = recover_permit_signer(self.chain_id, contract, public_key, "0x" + signature.hex())
        except Exception as exc:
            raise Revert(f"invalid permission: {exc}")
        if signer.lower() != tx.get("from", "").lower():
            raise Revert("Permission: signer is not msg.sender")

        sealed = seal(encode([output_type], [value]), public_key, scope_binding(tx["from"], contract))
        if self.corrupt_sealed:
            sealed = sealed[:-4] + ("0000" if not sealed.endswith("0000") else "ffff")
        return "0x" + encode(["string"], [sealed]).hex()


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def node() -> FakeFhenixNode:
    return FakeFhenixNode()


@pytest.fixture
def admin() -> Signer:
    return Signer.from_private_key(ADMIN_KEY)


@pytest.fixture
def player() -> Signer:
    return Signer.from_private_key(PLAYER_KEY)


@pytest.fixture
def artifacts_dir(tmp_path: Path) -> Path:
    """A Hardhat artifacts tree containing KingOfTheCastle."""
    root = tmp_path / "artifacts"
    art = root / "contracts" / "KingOfTheCastle.sol"
    art.mkdir(parents=True)
    (art / "KingOfTheCastle.json").write_text(
        json.dumps(
            {
                "_format": "hh-sol-artifact-1",
                "contractName": "KingOfTheCastle",
                "sourceName": "contracts/KingOfTheCastle.sol",
                "abi": KING_ABI,
                "bytecode": KING_BYTECODE,
            }
        )
    )
    (art / "KingOfTheCastle.dbg.json").write_text("{}")
    return root


@pytest.fixture
def settings(tmp_path: Path, artifacts_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        network="localfhenix",
        private_key=ADMIN_KEY,
        artifacts_dir=str(artifacts_dir),
        deployments_dir=str(tmp_path / "deployments"),
        tx_confirmation_timeout_seconds=0.05,
        tx_poll_interval_seconds=0.01,
        faucet_poll_interval_seconds=0.01,
    )


@pytest.fixture
def testnet_settings(settings: Settings) -> Settings:
    return settings.model_copy(update={"network": "testnet"})


@pytest_asyncio.fixture
async def ctx(
    settings: Settings,
    node: FakeFhenixNode,
    admin: Signer,
    player: Signer,
) -> AsyncIterator[NetworkContext]:
    """Network context on localfhenix wired to the fake node."""
    async with open_network_context(settings, signers=[admin, player], transport=node.transport) as c:
        yield c


@pytest_asyncio.fixture
async def testnet_ctx(
    testnet_settings: Settings,
    node: FakeFhenixNode,
    admin: Signer,
) -> AsyncIterator[NetworkContext]:
    """Network context on a non-dev network wired to the fake node."""
    node.chain_id = 8008135
    async with open_network_context(testnet_settings, signers=[admin], transport=node.transport) as c:
        yield c
