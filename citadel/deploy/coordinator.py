"""Deploy contracts once per network and keep their records current."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import to_checksum_address

from citadel.chain.context import NetworkContext
from citadel.chain.signer import Signer
from citadel.contracts.registry import CompiledContract, get_contract_definition
from citadel.core.errors import DeployError, ErrorCode, RpcError, RpcTransportError
from citadel.core.types import DeploymentRecord

logger = logging.getLogger(__name__)


class DeploymentCoordinator:
    """Submit contract-creation transactions and maintain deployment records.

    With ``skip_if_already_deployed`` the existing record is returned as-is
    and nothing is broadcast; otherwise a new instance is always deployed and
    its record overwrites the previous one. Failures are not retried.
    """

    def __init__(self, ctx: NetworkContext) -> None:
        self.ctx = ctx

    async def deploy(
        self,
        name: str,
        args: Sequence[Any] = (),
        *,
        skip_if_already_deployed: bool = False,
        signer: Signer | None = None,
    ) -> DeploymentRecord:
        """Deploy ``name`` with constructor ``args`` on the context's network.

        Raises:
            DeployError: Unknown contract, unreadable deployment record, bad
                artifact/arguments, RPC failure, reverted constructor, or
                confirmation timeout
        """
        signer = signer or self.ctx.signer
        network = self.ctx.network.name

        if get_contract_definition(name) is None:
            raise DeployError(f"Unknown contract: {name}", ErrorCode.UNKNOWN_CONTRACT)

        if skip_if_already_deployed:
            try:
                existing = self.ctx.deployments.get(name, network)
            except ValueError as exc:
                raise DeployError(str(exc), ErrorCode.INVALID_RECORD) from exc
            if existing is not None:
                logger.info(
                    "Reusing %s at %s on %s",
                    name,
                    existing.address,
                    network,
                    extra={"network": network, "contract": name, "address": existing.address},
                )
                return existing

        compiled = self._load_artifact(name)
        data = self._deploy_data(compiled, list(args))

        try:
            tx_hash = await self._broadcast(signer, data)
            receipt = await self.ctx.rpc.wait_for_receipt(
                tx_hash,
                timeout=self.ctx.settings.tx_confirmation_timeout_seconds,
                poll_interval=self.ctx.settings.tx_poll_interval_seconds,
            )
        except (RpcError, RpcTransportError) as exc:
            raise DeployError(
                f"Deploying {name} on {network} failed: {exc}",
                ErrorCode.TRANSACTION_FAILED,
            ) from exc
        except TimeoutError as exc:
            raise DeployError(str(exc), ErrorCode.CONFIRMATION_TIMEOUT) from exc

        if int(receipt.get("status", "0x0"), 16) != 1:
            raise DeployError(
                f"{name} constructor reverted (tx {tx_hash})",
                ErrorCode.REVERTED,
            )
        if not receipt.get("contractAddress"):
            raise DeployError(
                f"Receipt for {tx_hash} has no contract address",
                ErrorCode.TRANSACTION_FAILED,
            )

        record = DeploymentRecord(
            name=name,
            network=network,
            chain_id=self.ctx.chain_id,
            address=to_checksum_address(receipt["contractAddress"]),
            args=list(args),
            abi=compiled.abi,
            transaction_hash=tx_hash,
        )
        self.ctx.deployments.save(record)

        logger.info(
            "Deployed %s at %s on %s (tx %s)",
            name,
            record.address,
            network,
            tx_hash,
            extra={
                "network": network,
                "contract": name,
                "address": record.address,
                "tx_hash": tx_hash,
            },
        )
        return record

    # ── Internals ────────────────────────────────────────────────────────

    def _load_artifact(self, name: str) -> CompiledContract:
        try:
            return self.ctx.artifacts.load(name)
        except (FileNotFoundError, ValueError) as exc:
            raise DeployError(str(exc), ErrorCode.ARTIFACT_NOT_FOUND) from exc

    @staticmethod
    def _deploy_data(compiled: CompiledContract, args: list[Any]) -> str:
        """Creation bytecode followed by the ABI-encoded constructor arguments."""
        types = compiled.constructor_types
        if len(types) != len(args):
            raise DeployError(
                f"{compiled.name} constructor takes {len(types)} argument(s), got {len(args)}",
                ErrorCode.INVALID_ARGUMENTS,
            )
        if not types:
            return compiled.bytecode
        try:
            encoded = encode(types, args)
        except (EncodingError, TypeError, ValueError) as exc:
            raise DeployError(
                f"Cannot encode constructor arguments for {compiled.name}: {exc}",
                ErrorCode.INVALID_ARGUMENTS,
            ) from exc
        return compiled.bytecode + encoded.hex()

    async def _broadcast(self, signer: Signer, data: str) -> str:
        rpc = self.ctx.rpc
        nonce = await rpc.get_transaction_count(signer.address)
        gas_price = await rpc.gas_price()
        gas = await rpc.estimate_gas({"from": signer.address, "data": data})

        raw = signer.sign_transaction(
            {
                "nonce": nonce,
                "gasPrice": gas_price,
                "gas": int(gas * self.ctx.settings.gas_limit_multiplier),
                "value": 0,
                "data": data,
                "chainId": self.ctx.chain_id,
            }
        )
        return await rpc.send_raw_transaction(raw)
