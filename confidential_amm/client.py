"""Client-side instance for talking to confidential contracts.

FheInstance is what a wallet holds: it encrypts inputs to the network key,
keeps one re-encryption keypair per contract, signs the EIP-712 token that
authorizes that keypair, and decrypts values re-encrypted for it.

Usage:
    instance = FheInstance(chain.runtime.network_public_key, chain.chain_id, alice)
    amount = instance.encrypt16(500)
    token = instance.get_token_signature(pool.address)
    blob = pool.connect(alice).balance_of(token.public_key, token.signature)
    shares = instance.decrypt(pool.address, blob)
"""

from __future__ import annotations

from dataclasses import dataclass

from eth_account.signers.local import LocalAccount

from confidential_amm.access import reencryption_message
from confidential_amm.constants import SUPPORTED_BITS
from confidential_amm.fhe.sealing import (
    INPUT_INFO,
    REENCRYPT_INFO,
    decode_value,
    encode_value,
    generate_keypair,
    open_sealed,
    seal,
)
from confidential_amm.models.types import normalize_address


@dataclass(frozen=True)
class TokenSignature:
    """Re-encryption public key and the signature authorizing it."""

    public_key: bytes
    signature: bytes


@dataclass(frozen=True)
class _ContractKeypair:
    public_key: bytes
    private_key: bytes
    signature: bytes


class FheInstance:
    """Per-account encryption and decryption helper."""

    def __init__(self, network_public_key: bytes, chain_id: int, account: LocalAccount) -> None:
        self.network_public_key = network_public_key
        self.chain_id = chain_id
        self.account = account
        self._keypairs: dict[str, _ContractKeypair] = {}

    @property
    def address(self) -> str:
        return normalize_address(self.account.address)

    def encrypt(self, value: int, bits: int) -> bytes:
        """Encrypt a plaintext input of the given width to the network key.

        Raises:
            ValueError: If the width is unsupported or the value does not fit
        """
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported width: {bits}")
        if value < 0 or value >= 1 << bits:
            raise ValueError(f"Value {value} does not fit in {bits} bits")
        return seal(encode_value(value, bits), self.network_public_key, INPUT_INFO)

    def encrypt8(self, value: int) -> bytes:
        return self.encrypt(value, 8)

    def encrypt16(self, value: int) -> bytes:
        return self.encrypt(value, 16)

    def encrypt32(self, value: int) -> bytes:
        return self.encrypt(value, 32)

    def encrypt64(self, value: int) -> bytes:
        return self.encrypt(value, 64)

    def generate_token(self, contract: str) -> TokenSignature:
        """Create and sign a fresh re-encryption keypair for ``contract``.

        Replaces any keypair previously held for that contract.
        """
        public_key, private_key = generate_keypair()
        message = reencryption_message(self.chain_id, contract, public_key)
        signature = bytes(self.account.sign_message(message).signature)
        self._keypairs[normalize_address(contract)] = _ContractKeypair(public_key, private_key, signature)
        return TokenSignature(public_key=public_key, signature=signature)

    def get_token_signature(self, contract: str) -> TokenSignature:
        """Return the token for ``contract``, generating one on first use."""
        keypair = self._keypairs.get(normalize_address(contract))
        if keypair is None:
            return self.generate_token(contract)
        return TokenSignature(public_key=keypair.public_key, signature=keypair.signature)

    def has_keypair(self, contract: str) -> bool:
        return normalize_address(contract) in self._keypairs

    def decrypt(self, contract: str, ciphertext: bytes) -> int:
        """Decrypt a value re-encrypted under this instance's key for ``contract``.

        Raises:
            KeyError: If no keypair was generated for ``contract``
            SealError: If the ciphertext was not sealed for this keypair
        """
        keypair = self._keypairs.get(normalize_address(contract))
        if keypair is None:
            raise KeyError(f"No re-encryption keypair for contract {contract}")
        value, _ = decode_value(open_sealed(ciphertext, keypair.private_key, REENCRYPT_INFO))
        return value


def create_instances(
    network_public_key: bytes, chain_id: int, accounts: dict[str, LocalAccount]
) -> dict[str, FheInstance]:
    """Create one FheInstance per named account."""
    return {name: FheInstance(network_public_key, chain_id, account) for name, account in accounts.items()}
