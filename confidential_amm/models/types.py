"""Shared type definitions for the confidential AMM.

These types are used by the contracts and the dev-node API models.
"""

from typing import Annotated, Any

from pydantic import BeforeValidator, Field


def validate_hex_bytes(value: Any) -> str:
    """Validate that a value is 0x-prefixed hex with an even number of digits.

    Args:
        value: Value to validate (string or bytes)

    Returns:
        Lowercase 0x-prefixed hex string

    Raises:
        ValueError: If value is not valid hex
    """
    if isinstance(value, bytes | bytearray):
        return "0x" + bytes(value).hex()

    if not isinstance(value, str):
        raise ValueError(f"Hex bytes must be string or bytes, got {type(value).__name__}")

    if not value.startswith("0x"):
        raise ValueError(f"Hex bytes must start with 0x: '{value}'")

    digits = value[2:]
    if len(digits) % 2 != 0:
        raise ValueError(f"Hex bytes must have an even number of digits: '{value}'")

    try:
        bytes.fromhex(digits)
    except ValueError as err:
        raise ValueError(f"Invalid hex bytes: '{value}'") from err

    return value.lower()


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Arbitrary hex bytes (ciphertexts, signatures, public keys)
HexBytes = Annotated[
    str,
    BeforeValidator(validate_hex_bytes),
    Field(description="0x-prefixed hex encoded bytes"),
]

# 32-byte value (re-encryption public keys)
Bytes32 = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{64}$")]


def hex_to_bytes(value: str) -> bytes:
    """Decode a 0x-prefixed hex string to bytes."""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.
                  If False (default), returns normalized form without validation.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address.

    Args:
        address: String to validate

    Returns:
        True if valid Ethereum address format
    """
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False
