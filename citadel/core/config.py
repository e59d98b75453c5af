"""Core configuration for the Citadel harness."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Harness settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CITADEL_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "Citadel"
    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # ── Network ──────────────────────────────────────────────────────────
    network: str = "localfhenix"
    rpc_url: str = ""  # Overrides the registry RPC endpoint when set
    faucet_url: str = ""  # Overrides the registry faucet endpoint when set
    chain_id: int = 0  # 0 = take it from the node
    rpc_timeout_seconds: float = 30.0

    # ── Accounts ─────────────────────────────────────────────────────────
    private_key: str = ""
    mnemonic: str = ""
    account_index: int = 0

    # ── Deployment ───────────────────────────────────────────────────────
    artifacts_dir: str = "artifacts"
    deployments_dir: str = "deployments"
    tx_confirmation_timeout_seconds: float = 120.0
    tx_poll_interval_seconds: float = 1.0
    gas_limit_multiplier: float = 1.2

    # ── Funding ──────────────────────────────────────────────────────────
    faucet_confirm_timeout_seconds: float = 0.0  # 0 = request and proceed
    faucet_poll_interval_seconds: float = 1.0
    strict_funding: bool = False

    # ── Permits ──────────────────────────────────────────────────────────
    permit_ttl_seconds: int = 86_400  # 0 = no expiry


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
