"""Public-key sealing for input ciphertexts and re-encrypted reads.

A sealed blob is an ECIES envelope over X25519:

    version (1 byte) || ephemeral public key (32) || nonce (12) || ciphertext+tag

The AES-256-GCM key is derived from the X25519 shared secret with HKDF-SHA256.
The ``info`` label separates the input channel from the re-encryption channel,
so a blob sealed for one cannot be opened as the other.
"""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from confidential_amm.constants import SEAL_VERSION

KEY_SIZE = 32
_NONCE_SIZE = 12  # 96-bit nonce for AES-GCM
_TAG_SIZE = 16  # 128-bit authentication tag
_HEADER_SIZE = 1 + KEY_SIZE + _NONCE_SIZE

# Channel labels
INPUT_INFO = b"confidential-amm-input-v1"
REENCRYPT_INFO = b"confidential-amm-reencrypt-v1"

# Encoded plaintext: width (1 byte) || value (8 bytes, big-endian)
_VALUE_SIZE = 8


class SealError(ValueError):
    """Sealed blob is malformed or does not open under the given key."""

    pass


def generate_keypair() -> tuple[bytes, bytes]:
    """Generate an X25519 keypair.

    Returns:
        Tuple of (public_key, private_key), both 32 raw bytes
    """
    private = X25519PrivateKey.generate()
    return _public_bytes(private.public_key()), _private_bytes(private)


def public_key_from_private(private_key: bytes) -> bytes:
    """Derive the raw X25519 public key from a raw private key."""
    return _public_bytes(X25519PrivateKey.from_private_bytes(private_key).public_key())


def seal(plaintext: bytes, recipient_public_key: bytes, info: bytes) -> bytes:
    """Seal plaintext so that only the holder of the recipient's private key can open it.

    Raises:
        SealError: If the recipient public key is not a valid X25519 key
    """
    try:
        recipient = X25519PublicKey.from_public_bytes(recipient_public_key)
    except ValueError as err:
        raise SealError(f"Invalid X25519 public key: {err}") from err

    ephemeral = X25519PrivateKey.generate()
    ephemeral_public = _public_bytes(ephemeral.public_key())
    key = _derive_key(ephemeral.exchange(recipient), ephemeral_public, recipient_public_key, info)
    nonce = os.urandom(_NONCE_SIZE)
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, info)
    return bytes([SEAL_VERSION]) + ephemeral_public + nonce + ciphertext


def open_sealed(blob: bytes, private_key: bytes, info: bytes) -> bytes:
    """Open a sealed blob with the recipient's private key.

    Raises:
        SealError: If the blob is malformed, tampered, or sealed for another key
    """
    if len(blob) < _HEADER_SIZE + _TAG_SIZE:
        raise SealError(f"Sealed blob too short: {len(blob)} bytes")
    if blob[0] != SEAL_VERSION:
        raise SealError(f"Unknown seal version: {blob[0]}")

    ephemeral_public = blob[1 : 1 + KEY_SIZE]
    nonce = blob[1 + KEY_SIZE : _HEADER_SIZE]
    ciphertext = blob[_HEADER_SIZE:]

    private = X25519PrivateKey.from_private_bytes(private_key)
    recipient_public = _public_bytes(private.public_key())
    try:
        shared = private.exchange(X25519PublicKey.from_public_bytes(ephemeral_public))
    except ValueError as err:
        raise SealError(f"Invalid ephemeral key: {err}") from err

    key = _derive_key(shared, ephemeral_public, recipient_public, info)
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, info)
    except InvalidTag as err:
        raise SealError("Sealed blob failed authentication") from err


def encode_value(value: int, bits: int) -> bytes:
    """Encode a typed plaintext for sealing."""
    return bytes([bits]) + value.to_bytes(_VALUE_SIZE, "big")


def decode_value(data: bytes) -> tuple[int, int]:
    """Decode a typed plaintext.

    Returns:
        Tuple of (value, bits)

    Raises:
        SealError: If the payload has the wrong size
    """
    if len(data) != 1 + _VALUE_SIZE:
        raise SealError(f"Typed plaintext must be {1 + _VALUE_SIZE} bytes, got {len(data)}")
    return int.from_bytes(data[1:], "big"), data[0]


def _derive_key(shared: bytes, ephemeral_public: bytes, recipient_public: bytes, info: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=32,
        salt=ephemeral_public + recipient_public,
        info=info,
    )
    return hkdf.derive(shared)


def _public_bytes(key: X25519PublicKey) -> bytes:
    return key.public_bytes(Encoding.Raw, PublicFormat.Raw)


def _private_bytes(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
