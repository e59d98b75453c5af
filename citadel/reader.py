"""Read contract state, unsealing encrypted fields with an access permit."""

from __future__ import annotations

import logging
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from citadel.chain.context import NetworkContext
from citadel.chain.signer import Signer
from citadel.contracts.registry import ContractDefinition
from citadel.core.errors import ErrorCode, ReadError, RpcError, RpcTransportError
from citadel.core.types import AccessPermit, FieldDefinition, PlainValue

logger = logging.getLogger(__name__)


def _normalize(output_type: str, value: Any) -> PlainValue:
    if output_type == "address":
        return to_checksum_address(value)
    return value


class EncryptedStateReader:
    """Call a contract's accessors as one signer.

    Whether a field is sealed is taken from the contract definition, never
    guessed from the returned bytes. Sealed fields are only ever returned as
    plaintext unsealed with a permit whose scope is exactly (this reader's
    signer, the contract being read); anything else raises ``ReadError``.
    """

    def __init__(
        self,
        ctx: NetworkContext,
        definition: ContractDefinition,
        signer: Signer | None = None,
    ) -> None:
        self.ctx = ctx
        self.definition = definition
        self.signer = signer or ctx.signer

    async def read_field(
        self,
        contract_address: str,
        accessor: str,
        permit: AccessPermit | None = None,
    ) -> PlainValue:
        """Read one field, unsealing it with ``permit`` if it is encrypted.

        Raises:
            ReadError: Unknown field, missing/mismatched/expired permit, call
                failure, or a value that does not unseal under the permit
        """
        try:
            field_def = self.definition.field(accessor)
        except KeyError as exc:
            raise ReadError(str(exc.args[0]), ErrorCode.UNKNOWN_FIELD) from exc

        if not field_def.encrypted:
            raw = await self._call(contract_address, field_def, b"")
            try:
                (value,) = decode([field_def.output_type], raw)
            except DecodingError as exc:
                raise ReadError(
                    f"{accessor} returned undecodable data: {exc}",
                    ErrorCode.CALL_FAILED,
                ) from exc
            return _normalize(field_def.output_type, value)

        permit = self._check_permit(contract_address, accessor, permit)
        raw = await self._call(
            contract_address,
            field_def,
            encode(["(bytes32,bytes)"], [permit.permission()]),
        )
        try:
            (sealed,) = decode(["string"], raw)
            plaintext = permit.unseal(sealed)
            (value,) = decode([field_def.output_type], plaintext)
        except (DecodingError, ValueError) as exc:
            raise ReadError(
                f"Cannot decrypt {accessor} from {contract_address}: {exc}",
                ErrorCode.DECRYPTION_FAILED,
            ) from exc
        return _normalize(field_def.output_type, value)

    async def read_snapshot(
        self,
        contract_address: str,
        permit: AccessPermit | None = None,
    ) -> dict[str, PlainValue]:
        """Read every declared field, in declaration order."""
        return {
            f.accessor: await self.read_field(contract_address, f.accessor, permit)
            for f in self.definition.fields
        }

    # ── Internals ────────────────────────────────────────────────────────

    def _check_permit(
        self,
        contract_address: str,
        accessor: str,
        permit: AccessPermit | None,
    ) -> AccessPermit:
        if permit is None:
            raise ReadError(
                f"{accessor} is encrypted; a permit for {contract_address} is required",
                ErrorCode.PERMIT_REQUIRED,
            )
        if not permit.covers(self.signer.address, contract_address):
            raise ReadError(
                f"Permit for ({permit.signer}, {permit.contract_address}) cannot read "
                f"{accessor} as ({self.signer.address}, {contract_address})",
                ErrorCode.SCOPE_MISMATCH,
            )
        if permit.is_expired():
            raise ReadError(
                f"Permit for {contract_address} expired at {permit.expires_at}",
                ErrorCode.PERMIT_EXPIRED,
            )
        return permit

    async def _call(self, contract_address: str, field_def: FieldDefinition, args: bytes) -> bytes:
        data = function_signature_to_4byte_selector(field_def.call_signature) + args
        try:
            return await self.ctx.rpc.call(
                {"from": self.signer.address, "to": contract_address, "data": "0x" + data.hex()}
            )
        except (RpcError, RpcTransportError) as exc:
            raise ReadError(
                f"{field_def.accessor} call on {contract_address} failed: {exc}",
                ErrorCode.CALL_FAILED,
            ) from exc
