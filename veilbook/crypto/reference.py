"""
Reference opaque backend.

A deterministic stand-in for a homomorphic-encryption library, used by the
test suite, the CLI simulation and local development.

Values are symbolic 32-byte handles. Every operation derives its result
handle from the operation domain and the operand handles, so the handle of
an aggregate depends on the exact operation graph that produced it: adding
one more order, or dropping one through the expiry filter, changes the
resulting handle even when the plaintext sum is unchanged.

Plaintexts live only in the backend's key-holder registry. The engine sees
handles; the reference decryption oracle (holding the backend) can decrypt
them.

This is NOT encryption: handles of trivially-encrypted public integers are
predictable by anyone.
"""

import secrets
from typing import Dict, Optional

from .hashing import keccak256
from .opaque import OpaqueBackend, OpaqueValue
from ..constants import (
    CIPHERTEXT_WIDTH,
    DOMAIN_ADD,
    DOMAIN_ENCRYPT,
    DOMAIN_LE,
    DOMAIN_TRIVIAL,
)

DEFAULT_BIT_WIDTH = 64


class ReferenceOpaque(OpaqueValue):
    """Handle-backed opaque value bound to a ReferenceBackend."""

    __slots__ = ("_handle", "_backend")

    def __init__(self, handle: Optional[bytes], backend: "ReferenceBackend"):
        self._handle = handle
        self._backend = backend

    @property
    def handle(self) -> Optional[bytes]:
        return self._handle

    @property
    def is_initialized(self) -> bool:
        return self._handle is not None

    def add(self, other: OpaqueValue) -> OpaqueValue:
        return self._backend.add(self, other)

    def le(self, other: OpaqueValue) -> OpaqueValue:
        return self._backend.le(self, other)

    def to_bytes(self) -> bytes:
        if self._handle is None:
            raise ValueError("Cannot serialize an uninitialized opaque value")
        return self._handle

    def __eq__(self, other) -> bool:
        if not isinstance(other, ReferenceOpaque):
            return NotImplemented
        return self._handle == other._handle and self._backend is other._backend

    def __hash__(self) -> int:
        return hash(self._handle)

    def __repr__(self) -> str:
        if self._handle is None:
            return "<ReferenceOpaque uninitialized>"
        return f"<ReferenceOpaque 0x{self._handle.hex()[:16]}…>"


class ReferenceBackend(OpaqueBackend):
    """
    Deterministic handle arithmetic with an in-memory key-holder registry.

    The registry is never pruned. Every encryption, addition and comparison
    adds an entry, including the trivial encryption of each block height an
    aggregation is run at, so it grows for the lifetime of the backend.

    Args:
        bit_width: plaintext modulus is 2**bit_width; additions wrap.
        seed: salt mixed into client-side encryption handles (random by default)
    """

    def __init__(self, bit_width: int = DEFAULT_BIT_WIDTH, seed: Optional[bytes] = None):
        if bit_width < 1 or bit_width > 8 * CIPHERTEXT_WIDTH:
            raise ValueError(f"bit_width must be 1-{8 * CIPHERTEXT_WIDTH}, got {bit_width}")
        self.bit_width = bit_width
        self._modulus = 1 << bit_width
        self._seed = seed if seed is not None else secrets.token_bytes(16)
        self._encrypt_counter = 0
        self._plaintexts: Dict[bytes, int] = {}

    # ── Value construction ────────────────────────────────────────────

    def _register(self, handle: bytes, plaintext: int) -> ReferenceOpaque:
        self._plaintexts[handle] = plaintext % self._modulus
        return ReferenceOpaque(handle, self)

    def _check_range(self, value: int) -> None:
        if value < 0 or value >= self._modulus:
            raise ValueError(f"Value {value} out of range for {self.bit_width}-bit plaintexts")

    def encrypt(self, value: int) -> ReferenceOpaque:
        """Client-side encryption: a fresh handle per call, even for equal values."""
        self._check_range(value)
        self._encrypt_counter += 1
        handle = keccak256(
            DOMAIN_ENCRYPT + self._seed + self._encrypt_counter.to_bytes(8, "big")
        )
        return self._register(handle, value)

    def as_opaque(self, value: int) -> ReferenceOpaque:
        self._check_range(value)
        handle = keccak256(DOMAIN_TRIVIAL + value.to_bytes(CIPHERTEXT_WIDTH, "big"))
        return self._register(handle, value)

    def zero(self) -> ReferenceOpaque:
        return self.as_opaque(0)

    def uninitialized(self) -> ReferenceOpaque:
        return ReferenceOpaque(None, self)

    def owns(self, value: OpaqueValue) -> bool:
        return isinstance(value, ReferenceOpaque) and value._backend is self

    # ── Homomorphic operations ────────────────────────────────────────

    def _operand(self, value: OpaqueValue) -> bytes:
        if not self.owns(value):
            raise TypeError(f"{value!r} does not belong to this backend")
        if not value.is_initialized:
            raise ValueError("Operand is uninitialized")
        return value.handle

    def add(self, a: OpaqueValue, b: OpaqueValue) -> ReferenceOpaque:
        ha, hb = self._operand(a), self._operand(b)
        handle = keccak256(DOMAIN_ADD + ha + hb)
        return self._register(handle, self._plaintexts[ha] + self._plaintexts[hb])

    def le(self, a: OpaqueValue, b: OpaqueValue) -> ReferenceOpaque:
        ha, hb = self._operand(a), self._operand(b)
        handle = keccak256(DOMAIN_LE + ha + hb)
        return self._register(handle, int(self._plaintexts[ha] <= self._plaintexts[hb]))

    def resolve_bool(self, predicate: OpaqueValue) -> bool:
        return bool(self._plaintexts[self._operand(predicate)])

    # ── Key holder ────────────────────────────────────────────────────

    def decrypt(self, ciphertext: bytes) -> int:
        """Plaintext behind a serialized handle (key-holder operation)."""
        try:
            return self._plaintexts[bytes(ciphertext)]
        except KeyError:
            raise KeyError(f"Unknown ciphertext 0x{bytes(ciphertext).hex()}") from None
