"""
Opaque value contract.

The engine never sees plaintext order values. It only relies on the
operations declared here, which a homomorphic-encryption backend provides:

  - OpaqueValue.is_initialized
  - OpaqueValue.add(other)       homomorphic addition
  - OpaqueValue.le(other)        homomorphic less-or-equal (encrypted boolean)
  - OpaqueValue.to_bytes()       fixed-width serialization (CIPHERTEXT_WIDTH)
  - OpaqueBackend.zero()         constant zero
  - OpaqueBackend.as_opaque(n)   trivial encryption of a public integer

Comparison results are themselves opaque. The engine branches on them only
through OpaqueBackend.resolve_bool(), which marks the single point where an
encrypted predicate crosses into plaintext control flow. Backends that
cannot resolve predicates locally must route them through their decryption
authority.
"""

from abc import ABC, abstractmethod
from typing import Optional


class OpaqueValue(ABC):
    """A value whose plaintext is not observable by the engine."""

    @property
    @abstractmethod
    def is_initialized(self) -> bool:
        ...

    @abstractmethod
    def add(self, other: "OpaqueValue") -> "OpaqueValue":
        ...

    @abstractmethod
    def le(self, other: "OpaqueValue") -> "OpaqueValue":
        ...

    @abstractmethod
    def to_bytes(self) -> bytes:
        """Fixed-width serialization. Uninitialized values cannot be serialized."""
        ...

    def __add__(self, other: "OpaqueValue") -> "OpaqueValue":
        return self.add(other)


class OpaqueBackend(ABC):
    """Factory and predicate resolver for a family of opaque values."""

    @abstractmethod
    def zero(self) -> OpaqueValue:
        ...

    @abstractmethod
    def as_opaque(self, value: int) -> OpaqueValue:
        ...

    @abstractmethod
    def uninitialized(self) -> OpaqueValue:
        ...

    @abstractmethod
    def resolve_bool(self, predicate: OpaqueValue) -> bool:
        ...

    @abstractmethod
    def owns(self, value: OpaqueValue) -> bool:
        """True if *value* was produced by this backend."""
        ...


def is_set(value: Optional[OpaqueValue]) -> bool:
    """True for a present, initialized opaque value."""
    return value is not None and value.is_initialized
