"""Local signing accounts backed by eth-account."""

from __future__ import annotations

from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount

from citadel.core.config import Settings


class Signer:
    """An account able to sign transactions and EIP-712 payloads.

    The identity is fixed for the lifetime of the object; balances are always
    queried from the node, never cached here.
    """

    def __init__(self, account: LocalAccount) -> None:
        self._account = account
        self.address: str = account.address

    def __repr__(self) -> str:
        return f"Signer(address={self.address})"

    @classmethod
    def from_private_key(cls, private_key: str) -> Signer:
        return cls(Account.from_key(private_key))

    @classmethod
    def from_mnemonic(cls, mnemonic: str, index: int = 0) -> Signer:
        Account.enable_unaudited_hdwallet_features()
        return cls(Account.from_mnemonic(mnemonic, account_path=f"m/44'/60'/0'/0/{index}"))

    @classmethod
    def from_settings(cls, settings: Settings) -> Signer:
        """Build the run's signer from a private key or mnemonic.

        Raises:
            ValueError: If neither CITADEL_PRIVATE_KEY nor CITADEL_MNEMONIC is set
        """
        if settings.private_key:
            return cls.from_private_key(settings.private_key)
        if settings.mnemonic:
            return cls.from_mnemonic(settings.mnemonic, settings.account_index)
        raise ValueError("No signer configured: set CITADEL_PRIVATE_KEY or CITADEL_MNEMONIC")

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        message: dict[str, Any],
    ) -> str:
        """Sign an EIP-712 payload and return the 65-byte signature as hex."""
        signed = self._account.sign_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
        return "0x" + bytes(signed.signature).hex()

    def sign_transaction(self, tx: dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw serialized bytes."""
        return bytes(self._account.sign_transaction(tx).raw_transaction)
