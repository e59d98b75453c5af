"""Issue access permits that let one signer unseal one contract's state.

A permit is an EIP-712 signature over a freshly generated sealing public key,
scoped to the contract as ``verifyingContract``. The contract itself is the
granting authority: every sealed read presents ``(publicKey, signature)`` and
the contract checks that it recovers to ``msg.sender`` before sealing the
value to ``publicKey``. The sealing private key never leaves this process.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address

from citadel.chain.context import NetworkContext
from citadel.chain.signer import Signer
from citadel.core.errors import ErrorCode, PermitError, RpcError, RpcTransportError
from citadel.core.sealing import SealingKeyPair
from citadel.core.types import AccessPermit

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

PERMISSION_DOMAIN_NAME = "Fhenix Permission"
PERMISSION_DOMAIN_VERSION = "1.0"
PERMISSION_TYPES: dict[str, list[dict[str, str]]] = {
    "Permissioned": [{"name": "publicKey", "type": "bytes32"}],
}


def permission_domain(chain_id: int, contract_address: str) -> dict[str, Any]:
    """EIP-712 domain binding a permit to one contract on one chain."""
    return {
        "name": PERMISSION_DOMAIN_NAME,
        "version": PERMISSION_DOMAIN_VERSION,
        "chainId": chain_id,
        "verifyingContract": contract_address,
    }


def recover_permit_signer(
    chain_id: int,
    contract_address: str,
    public_key: bytes,
    signature: str,
) -> str:
    """Address that signed a permission for ``public_key`` on ``contract_address``."""
    message = encode_typed_data(
        domain_data=permission_domain(chain_id, contract_address),
        message_types=PERMISSION_TYPES,
        message_data={"publicKey": public_key},
    )
    return Account.recover_message(message, signature=signature)


class PermitIssuer:
    """Create and cache access permits per (signer, contract) pair.

    Re-issuing for a pair that already holds an unexpired permit returns that
    same permit, so repeated calls never change scope or capability.
    """

    def __init__(self, ctx: NetworkContext, ttl_seconds: int | None = None) -> None:
        self.ctx = ctx
        self.ttl_seconds = ctx.settings.permit_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._permits: dict[tuple[str, str], AccessPermit] = {}

    @staticmethod
    def _key(signer: str, contract_address: str) -> tuple[str, str]:
        return (signer.lower(), contract_address.lower())

    def get_permit(self, signer: Signer, contract_address: str) -> AccessPermit | None:
        """Return the cached, unexpired permit for the pair, if any."""
        permit = self._permits.get(self._key(signer.address, contract_address))
        if permit is None or permit.is_expired():
            return None
        return permit

    def revoke(self, signer: Signer, contract_address: str) -> None:
        """Forget the cached permit for the pair."""
        self._permits.pop(self._key(signer.address, contract_address), None)

    async def create_permit(self, signer: Signer, contract_address: str) -> AccessPermit:
        """Issue (or reuse) a permit for ``signer`` on ``contract_address``.

        Raises:
            PermitError: Invalid address, no contract at the address, node
                unreachable, or the signer failed to produce a valid signature
        """
        if not _ADDRESS_RE.match(contract_address or ""):
            raise PermitError(
                f"Invalid contract address: {contract_address!r}",
                ErrorCode.INVALID_ADDRESS,
            )
        contract_address = to_checksum_address(contract_address)

        cached = self.get_permit(signer, contract_address)
        if cached is not None:
            logger.debug("Reusing permit for %s on %s", signer.address, contract_address)
            return cached

        await self._require_contract(contract_address)

        keys = SealingKeyPair.generate()
        try:
            signature = signer.sign_typed_data(
                permission_domain(self.ctx.chain_id, contract_address),
                PERMISSION_TYPES,
                {"publicKey": keys.public_key},
            )
        except Exception as exc:
            raise PermitError(
                f"{signer.address} did not sign the permit for {contract_address}: {exc}",
                ErrorCode.SIGNATURE_REJECTED,
            ) from exc

        recovered = recover_permit_signer(
            self.ctx.chain_id, contract_address, keys.public_key, signature
        )
        if recovered.lower() != signer.address.lower():
            raise PermitError(
                f"Permit signature recovers to {recovered}, not {signer.address}",
                ErrorCode.SIGNATURE_REJECTED,
            )

        issued_at = datetime.now(timezone.utc)
        permit = AccessPermit(
            signer=signer.address,
            contract_address=contract_address,
            chain_id=self.ctx.chain_id,
            public_key=keys.public_key,
            signature=signature,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.ttl_seconds) if self.ttl_seconds else None,
            sealing_key=keys,
        )
        self._permits[self._key(signer.address, contract_address)] = permit

        logger.info(
            "Issued permit for %s on %s",
            signer.address,
            contract_address,
            extra={"network": self.ctx.network.name, "address": contract_address, "signer": signer.address},
        )
        return permit

    async def _require_contract(self, contract_address: str) -> None:
        try:
            code = await self.ctx.rpc.get_code(contract_address)
        except (RpcError, RpcTransportError) as exc:
            raise PermitError(
                f"Cannot reach {self.ctx.network.name} to verify {contract_address}: {exc}",
                ErrorCode.AUTHORITY_UNREACHABLE,
            ) from exc
        if not code:
            raise PermitError(
                f"No contract deployed at {contract_address} on {self.ctx.network.name}",
                ErrorCode.CONTRACT_NOT_FOUND,
            )
