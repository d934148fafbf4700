"""Owner-gated re-encryption reads.

A read is split in two steps so each can be tested on its own:

1. authorize(): recover the signer of an EIP-712 ``Reencrypt(bytes32 publicKey)``
   message under the contract's domain and check it is the caller. The result
   is a ReencryptionCapability binding (contract, caller, public key).
2. disclose(): re-encrypt a stored ciphertext under the capability's key.

Nothing on this path ever returns a plaintext.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_keys.exceptions import BadSignature, ValidationError
from eth_utils import to_checksum_address

from confidential_amm.constants import (
    REENCRYPT_DOMAIN_NAME,
    REENCRYPT_DOMAIN_VERSION,
    REENCRYPT_PRIMARY_TYPE,
)
from confidential_amm.errors import AuthenticationError
from confidential_amm.fhe.sealing import KEY_SIZE
from confidential_amm.models.types import normalize_address

if TYPE_CHECKING:
    from confidential_amm.fhe.encrypted_int import EncryptedInt
    from confidential_amm.fhe.runtime import FheRuntime

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReencryptionCapability:
    """Proof that ``owner`` controls ``public_key`` for reads on ``contract``."""

    contract: str
    owner: str
    public_key: bytes


def reencryption_message(chain_id: int, contract: str, public_key: bytes) -> SignableMessage:
    """Build the EIP-712 message a holder signs to authorize a re-encryption key.

    Args:
        chain_id: Chain id of the domain
        contract: Verifying contract address
        public_key: 32-byte X25519 public key being authorized

    Returns:
        Signable message for eth_account
    """
    return encode_typed_data(
        domain_data={
            "name": REENCRYPT_DOMAIN_NAME,
            "version": REENCRYPT_DOMAIN_VERSION,
            "chainId": chain_id,
            "verifyingContract": to_checksum_address(contract),
        },
        message_types={REENCRYPT_PRIMARY_TYPE: [{"name": "publicKey", "type": "bytes32"}]},
        message_data={"publicKey": public_key},
    )


class AccessGate:
    """Authenticates re-encryption requests for one contract."""

    def __init__(self, runtime: FheRuntime, chain_id: int, contract: str) -> None:
        self.runtime = runtime
        self.chain_id = chain_id
        self.contract = normalize_address(contract)

    def authorize(self, caller: str, public_key: bytes, signature: bytes) -> ReencryptionCapability:
        """Verify that ``signature`` authorizes ``public_key`` for ``caller``.

        Raises:
            AuthenticationError: If the key is malformed or the signer is not the caller
        """
        if len(public_key) != KEY_SIZE:
            raise AuthenticationError(f"Public key must be {KEY_SIZE} bytes, got {len(public_key)}")

        message = reencryption_message(self.chain_id, self.contract, public_key)
        try:
            signer = Account.recover_message(message, signature=signature)
        except (BadSignature, ValidationError, ValueError, TypeError) as err:
            raise AuthenticationError(f"Invalid signature: {err}") from err

        caller = normalize_address(caller)
        if normalize_address(signer) != caller:
            logger.warning(
                "reencryption_signer_mismatch",
                contract=self.contract,
                caller=caller,
                signer=normalize_address(signer),
            )
            raise AuthenticationError("Signature does not authenticate the public key for the caller")

        return ReencryptionCapability(contract=self.contract, owner=caller, public_key=public_key)

    def disclose(self, capability: ReencryptionCapability, value: EncryptedInt) -> bytes:
        """Re-encrypt ``value`` under the capability's public key.

        Raises:
            AuthenticationError: If the capability was issued for another contract
        """
        if capability.contract != self.contract:
            raise AuthenticationError("Capability was issued for a different contract")
        return self.runtime.reencrypt(value.handle, capability.public_key)
