"""
Decryption oracle collaborators.

Provides:
  - DecryptionOracle      : interface consumed by the decryption protocol
  - LocalDecryptionOracle : in-process reference authority
"""

from .base import DecryptionOracle, OracleError, VerificationError
from .local import LocalDecryptionOracle, PendingRequest

__all__ = [
    "DecryptionOracle",
    "OracleError",
    "VerificationError",
    "LocalDecryptionOracle",
    "PendingRequest",
]
