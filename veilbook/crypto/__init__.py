"""
Veilbook crypto helpers.

Provides:
  - keccak256 / state_hash : request binding digests
  - normalize_address      : checksum address validation
  - OpaqueValue / OpaqueBackend : contract expected from a homomorphic backend
  - ReferenceBackend       : deterministic development backend
"""

from .hashing import keccak256, state_hash
from .address import normalize_address, is_zero_address
from .opaque import OpaqueValue, OpaqueBackend, is_set
from .reference import ReferenceBackend, ReferenceOpaque

__all__ = [
    "keccak256",
    "state_hash",
    "normalize_address",
    "is_zero_address",
    "OpaqueValue",
    "OpaqueBackend",
    "is_set",
    "ReferenceBackend",
    "ReferenceOpaque",
]
