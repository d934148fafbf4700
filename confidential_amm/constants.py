"""Protocol constants for the confidential AMM.

Centralizes ciphertext widths, EIP-712 domain values and dev-node defaults.
"""

from confidential_amm.models.types import is_valid_address

# Encrypted integer widths supported by the runtime (ebool is width 1)
BOOL_BITS = 1
SUPPORTED_BITS = (8, 16, 32, 64)

# Default widths: token amounts/reserves, liquidity shares, intermediates
DEFAULT_AMOUNT_BITS = 16
DEFAULT_SHARE_BITS = 32
DEFAULT_WIDE_BITS = 64

# EIP-712 domain used for re-encryption authorization tokens
REENCRYPT_DOMAIN_NAME = "Authorization token"
REENCRYPT_DOMAIN_VERSION = "1"
REENCRYPT_PRIMARY_TYPE = "Reencrypt"

# Local development chain id (matches the hardhat default)
DEFAULT_CHAIN_ID = 31337

# Sealed payload format version (first byte of every sealed blob)
SEAL_VERSION = 1


def _validate_address(name: str, address: str) -> str:
    """Validate and return an address constant.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# Zero address, used as the mint source in ledger bookkeeping
ZERO_ADDRESS = _validate_address("zero", "0x0000000000000000000000000000000000000000")
