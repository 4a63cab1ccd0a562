"""
Decryption oracle interface.

The decryption authority is an external collaborator. The engine hands it a
list of serialized ciphertexts and receives a request id immediately; the
cleartext arrives later through the engine's callback, accompanied by a
proof that the engine checks with verify().
"""

from abc import ABC, abstractmethod
from typing import Sequence


class OracleError(Exception):
    """Base exception raised by decryption oracles."""


class VerificationError(OracleError):
    """Proof does not authenticate the cleartext for the request."""


class DecryptionOracle(ABC):
    """Contract consumed by the decryption protocol."""

    @abstractmethod
    def submit(self, ciphertexts: Sequence[bytes]) -> int:
        """Queue a decryption of *ciphertexts*; returns the request id."""
        ...

    @abstractmethod
    def verify(self, request_id: int, cleartext: bytes, proof: bytes) -> None:
        """Raise VerificationError unless *proof* authenticates *cleartext*."""
        ...
