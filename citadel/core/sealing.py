"""Sealed-output encryption for permit-gated contract reads.

The FHE coprocessor re-encrypts ("seals") a ciphertext to the public key the
caller presents in its permit. This module is the client's view of that
black box:

- X25519 key agreement between an ephemeral sender key and the permit key
- Key derivation from the shared secret via HKDF
- AES-256-GCM with the (contract, signer) scope as associated data

The sealed format is hex-encoded:
    version (1 byte) || ephemeral public key (32 bytes) || nonce (12 bytes) || ciphertext+tag

Usage:
    keys = SealingKeyPair.generate()
    sealed = seal(value_bytes, keys.public_key, scope_binding(signer, contract))
    plaintext = keys.unseal(sealed, scope_binding(signer, contract))
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

# Version byte for future scheme changes
_SEALING_VERSION = b"\x01"
_PUBLIC_KEY_SIZE = 32
_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_TAG_SIZE = 16    # 128-bit authentication tag
_HEADER_SIZE = 1 + _PUBLIC_KEY_SIZE + _NONCE_SIZE


def scope_binding(signer: str, contract_address: str) -> bytes:
    """Associated data binding a sealed value to one (signer, contract) pair."""
    return f"{contract_address.lower()}:{signer.lower()}".encode()


def _derive_key(shared_secret: bytes) -> bytes:
    """Derive a 256-bit AES key from an X25519 shared secret."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=b"citadel-sealing-v1",
        info=b"sealed-output",
    )
    return hkdf.derive(shared_secret)


def _raw_public(key: X25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def seal(plaintext: bytes, public_key: bytes, associated_data: bytes) -> str:
    """Seal ``plaintext`` to the holder of ``public_key``.

    Args:
        plaintext: Raw value bytes (ABI-encoded by the contract).
        public_key: 32-byte X25519 public key from the permit.
        associated_data: Scope binding; unsealing must present the same bytes.

    Returns:
        Hex string (``0x``-prefixed) in the sealed format.
    """
    if len(public_key) != _PUBLIC_KEY_SIZE:
        raise ValueError("Sealing public key must be 32 bytes")

    ephemeral = X25519PrivateKey.generate()
    shared = ephemeral.exchange(X25519PublicKey.from_public_bytes(public_key))
    nonce = os.urandom(_NONCE_SIZE)
    ct = AESGCM(_derive_key(shared)).encrypt(nonce, plaintext, associated_data)
    blob = _SEALING_VERSION + _raw_public(ephemeral) + nonce + ct
    return "0x" + blob.hex()


class SealingKeyPair:
    """X25519 key pair whose public half is registered in an access permit."""

    def __init__(self, private_key: X25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key = _raw_public(private_key)

    @classmethod
    def generate(cls) -> SealingKeyPair:
        return cls(X25519PrivateKey.generate())

    def __repr__(self) -> str:
        return f"SealingKeyPair(public_key=0x{self.public_key.hex()})"

    def unseal(self, sealed: str, associated_data: bytes) -> bytes:
        """Unseal a hex-encoded sealed value.

        Raises:
            ValueError: If the value is malformed, sealed to another key, or
                bound to a different scope.
        """
        try:
            blob = bytes.fromhex(sealed[2:] if sealed.startswith("0x") else sealed)
        except ValueError:
            raise ValueError("Sealed value is not valid hex")

        if len(blob) < _HEADER_SIZE + _TAG_SIZE:
            raise ValueError("Sealed value too short")

        version = blob[0:1]
        if version != _SEALING_VERSION:
            raise ValueError(f"Unknown sealing version: {version!r}")

        ephemeral_public = blob[1 : 1 + _PUBLIC_KEY_SIZE]
        nonce = blob[1 + _PUBLIC_KEY_SIZE : _HEADER_SIZE]
        ct = blob[_HEADER_SIZE:]

        shared = self._private_key.exchange(X25519PublicKey.from_public_bytes(ephemeral_public))
        try:
            return AESGCM(_derive_key(shared)).decrypt(nonce, ct, associated_data)
        except InvalidTag as e:
            raise ValueError("Unseal failed: key or scope mismatch") from e
