"""
Local decryption oracle.

In-process decryption authority backed by the ReferenceBackend key holder.
Requests are numbered from 1. Proofs are HMAC-SHA256 tags over
(domain, request id, keccak256(cleartext)) under the oracle key, so that
verify() accepts only cleartexts the oracle itself released for that
request.

Cleartext layout: one CLEARTEXT_FIELD_WIDTH-byte big-endian unsigned field
per submitted ciphertext, in submission order.
"""

import hmac
import hashlib
import secrets
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .base import DecryptionOracle, OracleError, VerificationError
from ..constants import (
    CIPHERTEXT_WIDTH,
    CLEARTEXT_FIELD_WIDTH,
    DOMAIN_ORACLE_PROOF,
    VEILBOOK_ORACLE_KEY,
)
from ..crypto.hashing import keccak256
from ..crypto.reference import ReferenceBackend
from ..logger import get_logger

logger = get_logger(__name__)

ResultCallback = Callable[[int, bytes, bytes], object]


@dataclass
class PendingRequest:
    """A submitted decryption request awaiting release."""
    request_id: int
    ciphertexts: List[bytes]
    released: bool = False


class LocalDecryptionOracle(DecryptionOracle):
    """
    Reference decryption authority.

    Args:
        backend: key holder able to decrypt submitted handles
        key: HMAC key for proofs (defaults to VEILBOOK_ORACLE_KEY, else random)
    """

    def __init__(self, backend: ReferenceBackend, key: Optional[bytes] = None):
        self._backend = backend
        if key is None:
            key = bytes.fromhex(VEILBOOK_ORACLE_KEY) if VEILBOOK_ORACLE_KEY else secrets.token_bytes(32)
        if not key:
            raise OracleError("Oracle key cannot be empty")
        self._key = key
        self._requests: Dict[int, PendingRequest] = {}
        self._next_id = 1

    # ── DecryptionOracle ──────────────────────────────────────────────

    def submit(self, ciphertexts: Sequence[bytes]) -> int:
        if not ciphertexts:
            raise OracleError("Nothing to decrypt")
        for ct in ciphertexts:
            if len(ct) != CIPHERTEXT_WIDTH:
                raise OracleError(
                    f"Ciphertext must be {CIPHERTEXT_WIDTH} bytes, got {len(ct)}"
                )

        request_id = self._next_id
        self._next_id += 1
        self._requests[request_id] = PendingRequest(
            request_id=request_id,
            ciphertexts=[bytes(ct) for ct in ciphertexts],
        )
        logger.debug("Oracle accepted request #%d (%d ciphertexts)", request_id, len(ciphertexts))
        return request_id

    def verify(self, request_id: int, cleartext: bytes, proof: bytes) -> None:
        if request_id not in self._requests:
            raise VerificationError(f"Unknown request #{request_id}")
        expected = self.sign(request_id, cleartext)
        if not hmac.compare_digest(expected, bytes(proof)):
            raise VerificationError(f"Proof mismatch for request #{request_id}")

    # ── Authority side ────────────────────────────────────────────────

    def sign(self, request_id: int, cleartext: bytes) -> bytes:
        message = (
            DOMAIN_ORACLE_PROOF
            + request_id.to_bytes(32, "big")
            + keccak256(bytes(cleartext))
        )
        return hmac.new(self._key, message, hashlib.sha256).digest()

    def reveal(self, request_id: int) -> Tuple[bytes, bytes]:
        """
        Decrypt a pending request.

        Returns:
            (cleartext, proof) ready to be delivered to the engine callback
        """
        request = self._requests.get(request_id)
        if request is None:
            raise OracleError(f"Unknown request #{request_id}")

        cleartext = b"".join(
            self._backend.decrypt(ct).to_bytes(CLEARTEXT_FIELD_WIDTH, "big")
            for ct in request.ciphertexts
        )
        request.released = True
        return cleartext, self.sign(request_id, cleartext)

    def deliver(self, request_id: int, callback: ResultCallback):
        """Reveal *request_id* and hand the result to *callback* (relayer role)."""
        cleartext, proof = self.reveal(request_id)
        logger.debug("Oracle delivering request #%d", request_id)
        return callback(request_id, cleartext, proof)

    # ── Introspection ─────────────────────────────────────────────────

    def get_request(self, request_id: int) -> Optional[PendingRequest]:
        return self._requests.get(request_id)

    @property
    def pending_requests(self) -> List[int]:
        return [rid for rid, req in self._requests.items() if not req.released]
