"""Error taxonomy for the Citadel harness.

Every failure the harness surfaces is a ``HarnessError`` carrying a stable
``ErrorCode`` and, where one exists, a human-readable remediation ``hint``:

    try:
        await ensure_funded(ctx, signer)
    except FundingError as exc:
        if exc.code is ErrorCode.UNFUNDED:
            print(exc.hint)

Components translate lower-level ``RpcError`` / ``RpcTransportError`` into
their own family with ``raise ... from`` so callers only need to handle the
family of the step they invoked.
"""

from __future__ import annotations

from enum import Enum


# ── Error Codes ──────────────────────────────────────────────────────────────


class ErrorCode(str, Enum):
    """Stable error codes attached to every harness error."""

    # Transport
    RPC_ERROR = "RPC_ERROR"
    RPC_UNREACHABLE = "RPC_UNREACHABLE"

    # Funding
    UNFUNDED = "UNFUNDED"
    FAUCET_REJECTED = "FAUCET_REJECTED"
    FAUCET_UNREACHABLE = "FAUCET_UNREACHABLE"
    FAUCET_UNCONFIRMED = "FAUCET_UNCONFIRMED"

    # Deployment
    UNKNOWN_CONTRACT = "UNKNOWN_CONTRACT"
    ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"
    INVALID_RECORD = "INVALID_RECORD"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    REVERTED = "REVERTED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"

    # Permits
    SIGNATURE_REJECTED = "SIGNATURE_REJECTED"
    CONTRACT_NOT_FOUND = "CONTRACT_NOT_FOUND"
    AUTHORITY_UNREACHABLE = "AUTHORITY_UNREACHABLE"
    INVALID_ADDRESS = "INVALID_ADDRESS"

    # Reads
    PERMIT_REQUIRED = "PERMIT_REQUIRED"
    SCOPE_MISMATCH = "SCOPE_MISMATCH"
    PERMIT_EXPIRED = "PERMIT_EXPIRED"
    CALL_FAILED = "CALL_FAILED"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"


# ── Exceptions ───────────────────────────────────────────────────────────────


class HarnessError(Exception):
    """Base exception for Citadel harness errors."""

    def __init__(self, message: str, code: ErrorCode, hint: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.hint = hint

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} ({self.hint})" if self.hint else base


class RpcError(HarnessError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, message: str, rpc_code: int | None = None, data: object = None) -> None:
        super().__init__(message, ErrorCode.RPC_ERROR)
        self.rpc_code = rpc_code
        self.data = data


class RpcTransportError(HarnessError):
    """The node could not be reached or answered with a non-JSON-RPC response."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ErrorCode.RPC_UNREACHABLE)


class FundingError(HarnessError):
    """The signer has no balance and could not be funded automatically."""


class DeployError(HarnessError):
    """A contract deployment could not be completed."""


class PermitError(HarnessError):
    """An access permit could not be issued."""


class ReadError(HarnessError):
    """A contract field could not be read or decrypted."""
