"""Encrypted integer wrapper for homomorphic arithmetic on token amounts.

This module provides EncryptedInt and EncryptedBool, lightweight wrappers over
runtime handles that make homomorphic arithmetic read like plain arithmetic:

- Operands of different widths are promoted to the wider width
- Plain ints are encrypted as constants of the operand's width
- Comparisons return EncryptedBool, never a Python bool
- Truthiness raises TypeError, so no secret can drive an ``if``

Usage pattern:
    from confidential_amm.fhe import EncryptedInt, select

    def withdraw(reserve: EncryptedInt, shares: EncryptedInt, supply: EncryptedInt) -> EncryptedInt:
        wide = 64
        denominator = select(supply.eq(0), 1, supply).widen(wide)
        return (reserve.widen(wide) * shares.widen(wide) // denominator).narrow(reserve.bits)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from confidential_amm.constants import BOOL_BITS
from confidential_amm.errors import CiphertextDecodeError

if TYPE_CHECKING:
    from confidential_amm.fhe.runtime import FheRuntime, Handle


class EncryptedBool:
    """Encrypted boolean produced by comparisons.

    Attributes:
        runtime: Runtime holding the ciphertext
        handle: Opaque 32-byte ciphertext handle
    """

    __slots__ = ("runtime", "handle")

    def __init__(self, runtime: FheRuntime, handle: Handle) -> None:
        self.runtime = runtime
        self.handle = handle

    @classmethod
    def trivial(cls, runtime: FheRuntime, value: bool) -> EncryptedBool:
        return cls(runtime, runtime.trivial_encrypt(int(value), BOOL_BITS))

    def __repr__(self) -> str:
        return f"EncryptedBool(0x{self.handle.hex()[:16]}...)"

    def __bool__(self) -> bool:
        raise TypeError("Cannot branch on an encrypted boolean; use select()")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EncryptedBool):
            return self.handle == other.handle
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.handle)

    def __and__(self, other: EncryptedBool) -> EncryptedBool:
        return EncryptedBool(self.runtime, self.runtime.and_(self.handle, other.handle))

    def __or__(self, other: EncryptedBool) -> EncryptedBool:
        return EncryptedBool(self.runtime, self.runtime.or_(self.handle, other.handle))

    def __invert__(self) -> EncryptedBool:
        return EncryptedBool(self.runtime, self.runtime.not_(self.handle))

    def select(self, if_true: EncryptedInt | int, if_false: EncryptedInt | int) -> EncryptedInt:
        """Choose between two values without revealing which was chosen."""
        return select(self, if_true, if_false)


class EncryptedInt:
    """Fixed-width unsigned integer held as a runtime ciphertext.

    Wraps a handle and provides operators that dispatch to the runtime:
    - ``+``, ``-`` and ``*`` wrap modulo 2**bits
    - ``//`` truncates toward zero; dividing by an encrypted zero yields all ones
    - saturating_sub() clamps at zero instead of wrapping

    Callers that must not wrap are expected to widen() before the operation
    and narrow() the result, which is how the pool keeps its products exact.

    Equality (``==``) compares ciphertext handles, not plaintexts; use eq()
    for an encrypted comparison.

    Attributes:
        runtime: Runtime holding the ciphertext
        handle: Opaque 32-byte ciphertext handle
    """

    __slots__ = ("runtime", "handle", "_bits")

    def __init__(self, runtime: FheRuntime, handle: Handle) -> None:
        self.runtime = runtime
        self.handle = handle
        self._bits = runtime.type_of(handle)
        if self._bits == BOOL_BITS:
            raise TypeError("Use EncryptedBool for encrypted booleans")

    @property
    def bits(self) -> int:
        """Declared width of the ciphertext."""
        return self._bits

    @classmethod
    def trivial(cls, runtime: FheRuntime, value: int, bits: int) -> EncryptedInt:
        """Encrypt a public constant."""
        return cls(runtime, runtime.trivial_encrypt(value, bits))

    @classmethod
    def zero(cls, runtime: FheRuntime, bits: int) -> EncryptedInt:
        """Create an encrypted zero."""
        return cls.trivial(runtime, 0, bits)

    @classmethod
    def from_input(cls, runtime: FheRuntime, ciphertext: bytes, bits: int) -> EncryptedInt:
        """Verify a client input ciphertext and widen it to ``bits``.

        Raises:
            CiphertextDecodeError: If the ciphertext is malformed or wider than ``bits``
        """
        value = cls(runtime, runtime.verify_input(ciphertext))
        if value.bits > bits:
            raise CiphertextDecodeError(f"Input is {value.bits}-bit, expected at most {bits}-bit")
        return value.widen(bits)

    def __repr__(self) -> str:
        return f"EncryptedInt{self._bits}(0x{self.handle.hex()[:16]}...)"

    def __bool__(self) -> bool:
        raise TypeError("Cannot branch on an encrypted integer; compare and select() instead")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, EncryptedInt):
            return self.handle == other.handle
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.handle)

    # --- Width handling ---

    def widen(self, bits: int) -> EncryptedInt:
        """Cast up to ``bits``; a no-op when already that wide."""
        if bits < self._bits:
            raise ValueError(f"Cannot widen {self._bits}-bit value to {bits} bits")
        if bits == self._bits:
            return self
        return EncryptedInt(self.runtime, self.runtime.cast(self.handle, bits))

    def narrow(self, bits: int) -> EncryptedInt:
        """Cast down to ``bits``, keeping the low bits."""
        if bits > self._bits:
            raise ValueError(f"Cannot narrow {self._bits}-bit value to {bits} bits")
        if bits == self._bits:
            return self
        return EncryptedInt(self.runtime, self.runtime.cast(self.handle, bits))

    def _coerce(self, other: EncryptedInt | int) -> tuple[Handle, Handle, int]:
        """Promote both operands to a common width and return their handles."""
        if isinstance(other, EncryptedInt):
            bits = max(self._bits, other._bits)
            return self.widen(bits).handle, other.widen(bits).handle, bits
        if isinstance(other, int):
            return self.handle, self.runtime.trivial_encrypt(other, self._bits), self._bits
        raise TypeError(f"EncryptedInt operand must be EncryptedInt or int, got {type(other).__name__}")

    def _wrap(self, handle: Handle) -> EncryptedInt:
        return EncryptedInt(self.runtime, handle)

    def _wrap_bool(self, handle: Handle) -> EncryptedBool:
        return EncryptedBool(self.runtime, handle)

    # --- Arithmetic operations ---

    def __add__(self, other: EncryptedInt | int) -> EncryptedInt:
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.add(a, b))

    def __radd__(self, other: int) -> EncryptedInt:
        return self.__add__(other)

    def __sub__(self, other: EncryptedInt | int) -> EncryptedInt:
        """Subtract, wrapping modulo 2**bits on underflow."""
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.sub(a, b))

    def __mul__(self, other: EncryptedInt | int) -> EncryptedInt:
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.mul(a, b))

    def __rmul__(self, other: int) -> EncryptedInt:
        return self.__mul__(other)

    def __floordiv__(self, other: EncryptedInt | int) -> EncryptedInt:
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.div(a, b))

    # --- Comparison operations ---

    def eq(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.eq(a, b))

    def ne(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.ne(a, b))

    def lt(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.lt(a, b))

    def le(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.le(a, b))

    def gt(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.gt(a, b))

    def ge(self, other: EncryptedInt | int) -> EncryptedBool:
        a, b, _ = self._coerce(other)
        return self._wrap_bool(self.runtime.ge(a, b))

    # --- Named operations ---

    def min(self, other: EncryptedInt | int) -> EncryptedInt:
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.min(a, b))

    def max(self, other: EncryptedInt | int) -> EncryptedInt:
        a, b, _ = self._coerce(other)
        return self._wrap(self.runtime.max(a, b))

    def saturating_sub(self, other: EncryptedInt | int) -> EncryptedInt:
        """Subtract, clamping the result to zero instead of wrapping.

        Both candidates are computed; the comparison only picks one.
        """
        return select(self.lt(other), 0, self - other)

    def nonzero_or_one(self) -> EncryptedInt:
        """Substitute 1 for an encrypted zero, for use as a divisor."""
        return select(self.eq(0), 1, self)


def select(cond: EncryptedBool, if_true: EncryptedInt | int, if_false: EncryptedInt | int) -> EncryptedInt:
    """Branch-free choice between two values keyed on an encrypted predicate.

    Both branches must already be computed; plain ints are encrypted at the
    width of the other branch. The result has the wider of the two widths.

    Raises:
        TypeError: If cond is not an EncryptedBool or both branches are plain ints
    """
    if not isinstance(cond, EncryptedBool):
        raise TypeError(f"select condition must be EncryptedBool, got {type(cond).__name__}")

    runtime = cond.runtime
    if isinstance(if_true, EncryptedInt):
        if isinstance(if_false, int):
            if_false = EncryptedInt.trivial(runtime, if_false, if_true.bits)
    elif isinstance(if_false, EncryptedInt):
        if_true = EncryptedInt.trivial(runtime, if_true, if_false.bits)
    else:
        raise TypeError("select needs at least one EncryptedInt branch to fix the width")

    bits = max(if_true.bits, if_false.bits)
    handle = runtime.select(cond.handle, if_true.widen(bits).handle, if_false.widen(bits).handle)
    return EncryptedInt(runtime, handle)
