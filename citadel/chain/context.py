"""Per-run network context shared by every harness component."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from citadel.chain.faucet import FaucetClient
from citadel.chain.rpc import JsonRpcClient
from citadel.chain.signer import Signer
from citadel.contracts.registry import ArtifactStore
from citadel.core.config import Settings, get_settings
from citadel.core.networks import NetworkConfig, resolve_network
from citadel.deploy.registry import DeploymentRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NetworkContext:
    """Everything a run needs to talk to one network.

    Opened once per run with ``open_network_context`` and read-only after
    that; components receive it explicitly instead of reaching for globals.
    """

    settings: Settings
    network: NetworkConfig
    chain_id: int
    rpc: JsonRpcClient
    signers: tuple[Signer, ...]
    deployments: DeploymentRegistry
    artifacts: ArtifactStore
    faucet: FaucetClient | None = None

    @property
    def signer(self) -> Signer:
        """The default (admin) signer."""
        return self.signers[0]

    @property
    def is_dev_network(self) -> bool:
        return self.network.is_dev


@asynccontextmanager
async def open_network_context(
    settings: Settings | None = None,
    *,
    signers: list[Signer] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[NetworkContext]:
    """Resolve the network, connect to it, and close the clients on exit.

    Args:
        settings: Harness settings (defaults to ``get_settings()``)
        signers: Accounts to use; defaults to the one configured in settings
        transport: Optional httpx transport shared by the RPC and faucet clients
    """
    settings = settings or get_settings()
    network = resolve_network(settings)
    if not signers:
        signers = [Signer.from_settings(settings)]

    rpc = JsonRpcClient(network.rpc_url, settings.rpc_timeout_seconds, transport=transport)
    faucet: FaucetClient | None = None
    if network.is_dev and network.faucet_url:
        faucet = FaucetClient(network.faucet_url, settings.rpc_timeout_seconds, transport=transport)

    try:
        chain_id = await rpc.chain_id()
        if network.chain_id and chain_id != network.chain_id:
            logger.warning(
                "Node at %s reports chain id %d, expected %d for %s",
                network.rpc_url,
                chain_id,
                network.chain_id,
                network.name,
            )

        yield NetworkContext(
            settings=settings,
            network=network,
            chain_id=chain_id,
            rpc=rpc,
            signers=tuple(signers),
            deployments=DeploymentRegistry(settings.deployments_dir),
            artifacts=ArtifactStore(settings.artifacts_dir),
            faucet=faucet,
        )
    finally:
        await rpc.close()
        if faucet is not None:
            await faucet.close()
