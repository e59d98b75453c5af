"""Shared enums and types used across the harness."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import AliasChoices, BaseModel, Field

from citadel.core.sealing import SealingKeyPair, scope_binding

PlainValue = Union[int, str, bool, bytes]


# ── Enums ────────────────────────────────────────────────────────────────────


class FundingOutcome(str, enum.Enum):
    """Result of a successful funding check."""

    ALREADY_FUNDED = "already_funded"
    FAUCET_REQUESTED = "faucet_requested"
    FAUCET_CONFIRMED = "faucet_confirmed"


# ── Deployments ──────────────────────────────────────────────────────────────


class DeploymentRecord(BaseModel):
    """A deployed contract instance on one network."""

    name: str
    network: str
    chain_id: int = Field(0, validation_alias=AliasChoices("chain_id", "chainId"))
    address: str
    args: list[Any] = Field(default_factory=list)
    abi: list[dict[str, Any]] = Field(default_factory=list)
    transaction_hash: str = Field("", validation_alias=AliasChoices("transaction_hash", "transactionHash"))
    last_deployed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ── Contract fields ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FieldDefinition:
    """A named accessor on a contract and how its return value is delivered."""

    accessor: str
    output_type: str  # ABI type of the plaintext value, e.g. "uint8", "address"
    encrypted: bool = False

    @property
    def call_signature(self) -> str:
        # Sealed accessors take the Permission struct (bytes32 publicKey, bytes signature)
        if self.encrypted:
            return f"{self.accessor}((bytes32,bytes))"
        return f"{self.accessor}()"


# ── Permits ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AccessPermit:
    """Capability to unseal values a contract emits for one signer."""

    signer: str
    contract_address: str
    chain_id: int
    public_key: bytes
    signature: str
    issued_at: datetime
    expires_at: datetime | None = None
    sealing_key: SealingKeyPair | None = field(repr=False, compare=False, default=None)

    def covers(self, signer: str, contract_address: str) -> bool:
        return (
            self.signer.lower() == signer.lower()
            and self.contract_address.lower() == contract_address.lower()
        )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) >= self.expires_at

    def permission(self) -> tuple[bytes, bytes]:
        """The on-chain Permission struct presented with sealed reads."""
        return (self.public_key, bytes.fromhex(self.signature.removeprefix("0x")))

    def unseal(self, sealed: str) -> bytes:
        """Unseal a value emitted for this permit's (signer, contract) scope.

        Raises:
            ValueError: If the permit holds no sealing key, or the value was
                sealed for another key or scope.
        """
        if self.sealing_key is None:
            raise ValueError(f"Permit for {self.contract_address} holds no sealing key")
        return self.sealing_key.unseal(sealed, scope_binding(self.signer, self.contract_address))


# ── Verification ─────────────────────────────────────────────────────────────


class CheckResult(BaseModel):
    """One expected-vs-actual comparison made by the harness."""

    name: str
    expected: Any
    actual: Any
    passed: bool


class VerificationReport(BaseModel):
    """Outcome of a full fund → deploy → permit → read run."""

    network: str
    contract_name: str
    contract_address: str
    signer: str
    funding: FundingOutcome
    checks: list[CheckResult] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failures(self) -> list[CheckResult]:
        return [c for c in self.checks if not c.passed]
