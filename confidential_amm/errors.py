"""Exception hierarchy for the confidential AMM.

Ledger and runtime failures propagate through the pool unchanged; the host
transaction boundary restores state before they reach the caller.
"""

from __future__ import annotations


class ConfidentialAmmError(Exception):
    """Base class for all confidential AMM errors."""

    pass


class AuthenticationError(ConfidentialAmmError):
    """Signature does not authenticate the public key for the caller."""

    pass


class InsufficientBalance(ConfidentialAmmError):
    """Hidden balance check failed on a ledger transfer."""

    pass


class InsufficientAllowance(ConfidentialAmmError):
    """Hidden allowance check failed on a ledger transferFrom."""

    pass


class SupplyOverflow(ConfidentialAmmError):
    """Mint would push the encrypted total supply past the token width."""

    pass


class ArithmeticOverflow(ConfidentialAmmError, ArithmeticError):
    """Configured widths cannot hold the intermediate products.

    This is never caught: it signals a configuration or implementation bug.
    """

    pass


class CiphertextDecodeError(ConfidentialAmmError, ValueError):
    """Input ciphertext is malformed, undecryptable or out of range."""

    pass


class UnknownHandle(ConfidentialAmmError, KeyError):
    """Ciphertext handle was never issued by this runtime."""

    pass


class UnknownToken(ConfidentialAmmError, ValueError):
    """Token identifier is not one of the pool's two tokens."""

    pass


class Unauthorized(ConfidentialAmmError):
    """Caller is not allowed to invoke an owner-only operation."""

    pass
