"""Mock FHE coprocessor.

FheRuntime plays the part of the cryptographic runtime a confidential ledger
delegates to. Contracts only ever see opaque 32-byte handles; the runtime keeps
the plaintext behind each handle and evaluates homomorphic operations on it.
Nothing a contract receives from the runtime reveals a value, with two
sanctioned exceptions:

- reencrypt(): seals a value under a caller-supplied X25519 key
- reveal_predicate(): discloses a single encrypted boolean to the host, which
  is how the ledger aborts a transfer whose hidden balance check failed

Arithmetic follows fixed-width unsigned semantics: add, sub and mul wrap
modulo 2**bits and division by an encrypted zero yields the all-ones value.
Binary operations require both operands to share a width; EncryptedInt
promotes operands before calling in.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable

import structlog
from eth_abi import encode  # type: ignore[attr-defined]
from eth_utils import keccak

from confidential_amm.constants import BOOL_BITS, SUPPORTED_BITS
from confidential_amm.errors import CiphertextDecodeError, UnknownHandle
from confidential_amm.fhe.sealing import (
    INPUT_INFO,
    REENCRYPT_INFO,
    SealError,
    decode_value,
    encode_value,
    generate_keypair,
    open_sealed,
    public_key_from_private,
    seal,
)

logger = structlog.get_logger()

Handle = bytes


def _mask(bits: int) -> int:
    return (1 << bits) - 1


class FheRuntime:
    """Handle-based homomorphic evaluator with a network keypair.

    Safe to share across contracts and threads: the handle table is the only
    mutable state and it is guarded by a lock.
    """

    def __init__(self, network_private_key: bytes | None = None) -> None:
        if network_private_key is None:
            self._public_key, self._private_key = generate_keypair()
        else:
            self._private_key = network_private_key
            self._public_key = public_key_from_private(network_private_key)
        # handle -> (bits, plaintext)
        self._values: dict[Handle, tuple[int, int]] = {}
        self._counter = 0
        self._lock = threading.Lock()

    @property
    def network_public_key(self) -> bytes:
        """Public key clients seal their inputs to."""
        return self._public_key

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, handle: object) -> bool:
        return handle in self._values

    # --- Handle table ---

    def _store(self, op: str, operands: tuple[Handle, ...], bits: int, value: int) -> Handle:
        with self._lock:
            self._counter += 1
            handle = keccak(
                encode(
                    ["bytes32", "string", "bytes32[]", "uint256"],
                    [self._public_key, op, list(operands), self._counter],
                )
            )
            self._values[handle] = (bits, value & _mask(bits))
        return handle

    def prune(self, live: Iterable[Handle]) -> int:
        """Release every handle not in ``live`` and return how many were dropped.

        The table otherwise grows with every operation. Values still referring
        to a released handle raise UnknownHandle when used.
        """
        keep = set(live)
        with self._lock:
            released = [handle for handle in self._values if handle not in keep]
            for handle in released:
                del self._values[handle]
        return len(released)

    def _load(self, handle: Handle) -> tuple[int, int]:
        try:
            return self._values[handle]
        except KeyError:
            raise UnknownHandle(f"Unknown ciphertext handle: 0x{handle.hex()}") from None

    def type_of(self, handle: Handle) -> int:
        """Width in bits of the value behind a handle (1 for booleans)."""
        return self._load(handle)[0]

    # --- Encryption entry points ---

    def trivial_encrypt(self, value: int, bits: int) -> Handle:
        """Encrypt a public constant.

        Raises:
            ValueError: If the width is unsupported or the value does not fit
        """
        if bits != BOOL_BITS and bits not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported width: {bits}")
        if value < 0 or value > _mask(bits):
            raise ValueError(f"Value {value} does not fit in {bits} bits")
        return self._store("trivial", (), bits, value)

    def verify_input(self, ciphertext: bytes) -> Handle:
        """Decrypt a client input ciphertext into a fresh handle.

        Raises:
            CiphertextDecodeError: If the ciphertext is malformed or out of range
        """
        try:
            value, bits = decode_value(open_sealed(ciphertext, self._private_key, INPUT_INFO))
        except SealError as err:
            logger.debug("input_ciphertext_rejected", reason=str(err))
            raise CiphertextDecodeError(f"Malformed input ciphertext: {err}") from err

        if bits not in SUPPORTED_BITS:
            raise CiphertextDecodeError(f"Unsupported input width: {bits}")
        if value > _mask(bits):
            raise CiphertextDecodeError(f"Input value does not fit in {bits} bits")
        return self._store("input", (), bits, value)

    def reencrypt(self, handle: Handle, public_key: bytes) -> bytes:
        """Seal the value behind a handle under a caller-supplied public key.

        Raises:
            ValueError: If the public key is not a valid X25519 key
        """
        bits, value = self._load(handle)
        return seal(encode_value(value, bits), public_key, REENCRYPT_INFO)

    def reveal_predicate(self, handle: Handle) -> bool:
        """Disclose an encrypted boolean to the host.

        Raises:
            TypeError: If the handle is not a boolean
        """
        bits, value = self._load(handle)
        if bits != BOOL_BITS:
            raise TypeError(f"Only encrypted booleans can be revealed, got {bits}-bit value")
        return value == 1

    # --- Homomorphic operations ---

    def _binary(self, op: str, a: Handle, b: Handle, fn: Callable[[int, int, int], int]) -> Handle:
        bits_a, va = self._load(a)
        bits_b, vb = self._load(b)
        if bits_a != bits_b:
            raise ValueError(f"Width mismatch in {op}: {bits_a} vs {bits_b}")
        return self._store(op, (a, b), bits_a, fn(va, vb, bits_a))

    def _compare(self, op: str, a: Handle, b: Handle, fn: Callable[[int, int], bool]) -> Handle:
        bits_a, va = self._load(a)
        bits_b, vb = self._load(b)
        if bits_a != bits_b:
            raise ValueError(f"Width mismatch in {op}: {bits_a} vs {bits_b}")
        return self._store(op, (a, b), BOOL_BITS, int(fn(va, vb)))

    def add(self, a: Handle, b: Handle) -> Handle:
        return self._binary("add", a, b, lambda x, y, _: x + y)

    def sub(self, a: Handle, b: Handle) -> Handle:
        return self._binary("sub", a, b, lambda x, y, _: x - y)

    def mul(self, a: Handle, b: Handle) -> Handle:
        return self._binary("mul", a, b, lambda x, y, _: x * y)

    def div(self, a: Handle, b: Handle) -> Handle:
        """Unsigned division truncating toward zero; x / 0 is all ones."""
        return self._binary("div", a, b, lambda x, y, bits: x // y if y else _mask(bits))

    def min(self, a: Handle, b: Handle) -> Handle:
        return self._binary("min", a, b, lambda x, y, _: min(x, y))

    def max(self, a: Handle, b: Handle) -> Handle:
        return self._binary("max", a, b, lambda x, y, _: max(x, y))

    def eq(self, a: Handle, b: Handle) -> Handle:
        return self._compare("eq", a, b, lambda x, y: x == y)

    def ne(self, a: Handle, b: Handle) -> Handle:
        return self._compare("ne", a, b, lambda x, y: x != y)

    def lt(self, a: Handle, b: Handle) -> Handle:
        return self._compare("lt", a, b, lambda x, y: x < y)

    def le(self, a: Handle, b: Handle) -> Handle:
        return self._compare("le", a, b, lambda x, y: x <= y)

    def gt(self, a: Handle, b: Handle) -> Handle:
        return self._compare("gt", a, b, lambda x, y: x > y)

    def ge(self, a: Handle, b: Handle) -> Handle:
        return self._compare("ge", a, b, lambda x, y: x >= y)

    def and_(self, a: Handle, b: Handle) -> Handle:
        return self._binary("and", a, b, lambda x, y, _: x & y)

    def or_(self, a: Handle, b: Handle) -> Handle:
        return self._binary("or", a, b, lambda x, y, _: x | y)

    def not_(self, a: Handle) -> Handle:
        bits, value = self._load(a)
        return self._store("not", (a,), bits, ~value)

    def select(self, cond: Handle, if_true: Handle, if_false: Handle) -> Handle:
        """Oblivious choice between two values of the same width.

        Raises:
            TypeError: If cond is not an encrypted boolean
            ValueError: If the branches differ in width
        """
        cond_bits, c = self._load(cond)
        if cond_bits != BOOL_BITS:
            raise TypeError(f"select condition must be an encrypted boolean, got {cond_bits}-bit value")
        bits_t, vt = self._load(if_true)
        bits_f, vf = self._load(if_false)
        if bits_t != bits_f:
            raise ValueError(f"Width mismatch in select: {bits_t} vs {bits_f}")
        return self._store("select", (cond, if_true, if_false), bits_t, vt if c else vf)

    def cast(self, a: Handle, bits: int) -> Handle:
        """Change width; narrowing keeps the low bits."""
        if bits not in SUPPORTED_BITS:
            raise ValueError(f"Unsupported width: {bits}")
        _, value = self._load(a)
        return self._store("cast", (a,), bits, value)
