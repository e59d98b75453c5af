"""Supported Fhenix network configurations."""

from __future__ import annotations

from dataclasses import dataclass, replace

from citadel.core.config import Settings

FHENIX_FAUCET_URL = "https://faucet.fhenix.zone"


@dataclass(frozen=True)
class NetworkConfig:
    """Configuration for a network the harness can deploy to."""

    name: str
    chain_id: int
    rpc_url: str
    faucet_url: str = ""
    is_dev: bool = False  # Only dev networks may auto-fund from a faucet
    native_currency: str = "tFHE"
    funding_hint: str = FHENIX_FAUCET_URL


# ── Network Registry ─────────────────────────────────────────────────────────

NETWORKS: dict[str, NetworkConfig] = {
    "localfhenix": NetworkConfig(
        name="localfhenix",
        chain_id=412346,
        rpc_url="http://127.0.0.1:42069",
        faucet_url="http://127.0.0.1:42000",
        is_dev=True,
    ),
    "testnet": NetworkConfig(
        name="testnet",
        chain_id=8008135,
        rpc_url="https://api.helium.fhenix.zone",
    ),
}


def get_network_config(name: str) -> NetworkConfig | None:
    """Get network configuration by exact name."""
    return NETWORKS.get(name)


def resolve_network(settings: Settings) -> NetworkConfig:
    """Build the effective network config from the registry plus overrides.

    Networks missing from the registry are accepted when an RPC URL is
    configured; they are never treated as dev networks.

    Raises:
        ValueError: If the network is unknown and no RPC URL is configured
    """
    config = get_network_config(settings.network)
    if config is None:
        if not settings.rpc_url:
            raise ValueError(
                f"Unknown network '{settings.network}' "
                "(set CITADEL_RPC_URL to use a custom endpoint)"
            )
        config = NetworkConfig(
            name=settings.network,
            chain_id=settings.chain_id,
            rpc_url=settings.rpc_url,
        )

    overrides: dict[str, object] = {}
    if settings.rpc_url:
        overrides["rpc_url"] = settings.rpc_url
    if settings.faucet_url:
        overrides["faucet_url"] = settings.faucet_url
    if settings.chain_id:
        overrides["chain_id"] = settings.chain_id
    return replace(config, **overrides) if overrides else config
