"""Mock FHE runtime and the encrypted integer types built on it."""

from confidential_amm.fhe.encrypted_int import EncryptedBool, EncryptedInt, select
from confidential_amm.fhe.runtime import FheRuntime, Handle
from confidential_amm.fhe.sealing import SealError, generate_keypair

__all__ = [
    "EncryptedBool",
    "EncryptedInt",
    "FheRuntime",
    "Handle",
    "SealError",
    "generate_keypair",
    "select",
]
