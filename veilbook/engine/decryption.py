"""
Aggregate decryption protocol.

Request side (owner, rate-limited, not while paused):

    aggregate → serialize totals → state_hash(ciphertexts, engine address)
    → oracle.submit(ciphertexts) → store DecryptionContext under request id

Callback side (independent invocation, possibly many blocks later):

    context exists?             else UnknownRequestError
    context not processed?      else ReplayAttemptError
    recomputed hash == stored?  else StateMismatchError
    oracle.verify(proof)?       else InvalidProofError
    cleartext layout valid?     else MalformedCleartextError
    → mark processed, emit DecryptionCompleted

Only the context record crosses the asynchronous gap. No lock is held while
a request is pending; consistency is re-checked through the stored hash.
A failed callback mutates nothing and leaves the context pending.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Tuple

from .access import AccessControl
from .aggregation import AggregationEngine
from .batch import BatchLifecycle
from .events import DecryptionCompleted, DecryptionRequested, EventLog
from .state import EngineState
from ..constants import AGGREGATE_FIELD_COUNT, CLEARTEXT_FIELD_WIDTH
from ..crypto.hashing import state_hash
from ..exceptions import (
    InvalidProofError,
    MalformedCleartextError,
    OrderNotFoundError,
    ReplayAttemptError,
    StateMismatchError,
    UnknownRequestError,
)
from ..logger import get_logger
from ..oracle.base import DecryptionOracle, VerificationError

logger = get_logger(__name__)


class DecryptionStatus(IntEnum):
    REQUESTED = 0
    COMPLETED = 1


@dataclass
class DecryptionContext:
    """
    Per-request record.

    `processed` flips from False to True exactly once, on the first valid
    callback, and never back.
    """
    request_id: int
    batch_id: int
    state_hash: bytes
    requested_at_height: int
    processed: bool = False
    ask_volume: Optional[int] = None
    bid_volume: Optional[int] = None

    @property
    def status(self) -> DecryptionStatus:
        return DecryptionStatus.COMPLETED if self.processed else DecryptionStatus.REQUESTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requestId": self.request_id,
            "batchId": self.batch_id,
            "stateHash": "0x" + self.state_hash.hex(),
            "requestedAtHeight": self.requested_at_height,
            "processed": self.processed,
            "status": self.status.name,
            "askVolume": self.ask_volume,
            "bidVolume": self.bid_volume,
        }


def decode_volumes(cleartext: bytes) -> Tuple[int, int]:
    """Split a revealed payload into (ask_volume, bid_volume)."""
    expected = CLEARTEXT_FIELD_WIDTH * AGGREGATE_FIELD_COUNT
    if len(cleartext) != expected:
        raise MalformedCleartextError(
            f"Cleartext must be {expected} bytes, got {len(cleartext)}"
        )
    ask = int.from_bytes(cleartext[:CLEARTEXT_FIELD_WIDTH], "big")
    bid = int.from_bytes(cleartext[CLEARTEXT_FIELD_WIDTH:], "big")
    return ask, bid


def encode_volumes(ask_volume: int, bid_volume: int) -> bytes:
    """Inverse of decode_volumes; used by decryption authorities."""
    return (
        ask_volume.to_bytes(CLEARTEXT_FIELD_WIDTH, "big")
        + bid_volume.to_bytes(CLEARTEXT_FIELD_WIDTH, "big")
    )


class DecryptionOracleProtocol:
    """Issues aggregate reveal requests and validates their callbacks."""

    def __init__(
        self,
        state: EngineState,
        access: AccessControl,
        batches: BatchLifecycle,
        aggregation: AggregationEngine,
        oracle: DecryptionOracle,
        events: EventLog,
    ):
        self._state = state
        self._access = access
        self._batches = batches
        self._aggregation = aggregation
        self._oracle = oracle
        self._events = events
        self._contexts: Dict[int, DecryptionContext] = {}

    # ── Read-only views ───────────────────────────────────────────────

    def get_context(self, request_id: int) -> Optional[DecryptionContext]:
        return self._contexts.get(request_id)

    @property
    def pending(self) -> List[int]:
        return [rid for rid, ctx in self._contexts.items() if not ctx.processed]

    def __len__(self) -> int:
        return len(self._contexts)

    # ── Helpers ───────────────────────────────────────────────────────

    def current_ciphertexts(self) -> List[bytes]:
        """Serialized (ask, bid) totals for the current ledger and height."""
        return self._aggregation.aggregate_detailed(self._state.block_height).ciphertexts()

    def current_state_hash(self) -> bytes:
        return state_hash(self.current_ciphertexts(), self._state.address)

    # ── Request ───────────────────────────────────────────────────────

    def request_aggregate_decryption(self, caller: str, batch_id: int) -> int:
        """
        Ask the oracle to reveal the current aggregate.

        The batch only has to be the current one; it may be open or closed.

        Returns:
            The oracle-issued request id
        """
        caller = self._access.require_owner(caller)
        self._access.require_not_paused()
        self._access.require_cooldown(caller, self._state.last_request)
        self._batches.require_current(batch_id)

        ciphertexts = self.current_ciphertexts()
        digest = state_hash(ciphertexts, self._state.address)

        request_id = self._oracle.submit(ciphertexts)
        if request_id in self._contexts:
            raise ReplayAttemptError(f"Oracle reissued request id {request_id}")

        self._contexts[request_id] = DecryptionContext(
            request_id=request_id,
            batch_id=batch_id,
            state_hash=digest,
            requested_at_height=self._state.block_height,
        )
        self._access.record_request(caller)

        logger.info(
            "Decryption request #%d for batch #%d (state 0x%s)",
            request_id, batch_id, digest.hex(),
        )
        self._events.emit(DecryptionRequested(
            request_id=request_id,
            batch_id=batch_id,
            timestamp=self._state.timestamp,
        ))
        return request_id

    # ── Callback ──────────────────────────────────────────────────────

    def on_decryption_result(
        self,
        request_id: int,
        cleartext: bytes,
        proof: bytes,
    ) -> DecryptionCompleted:
        context = self._contexts.get(request_id)
        if context is None:
            raise UnknownRequestError(f"No decryption request #{request_id}")
        if context.processed:
            logger.warning("Replay of processed request #%d rejected", request_id)
            raise ReplayAttemptError(f"Request #{request_id} was already processed")

        try:
            current = self.current_state_hash()
        except OrderNotFoundError as e:
            # every order that fed the request has since expired
            raise StateMismatchError(
                f"Aggregate changed since request #{request_id} was issued: {e}"
            ) from e
        if current != context.state_hash:
            logger.warning(
                "State drift on request #%d: stored 0x%s, now 0x%s",
                request_id, context.state_hash.hex(), current.hex(),
            )
            raise StateMismatchError(
                f"Aggregate changed since request #{request_id} was issued"
            )

        try:
            self._oracle.verify(request_id, cleartext, proof)
        except VerificationError as e:
            logger.warning("Invalid proof for request #%d: %s", request_id, e)
            raise InvalidProofError(f"Proof rejected for request #{request_id}: {e}") from e

        ask_volume, bid_volume = decode_volumes(bytes(cleartext))

        context.processed = True
        context.ask_volume = ask_volume
        context.bid_volume = bid_volume

        logger.info(
            "Decryption request #%d completed for batch #%d: ask=%d bid=%d",
            request_id, context.batch_id, ask_volume, bid_volume,
        )
        return self._events.emit(DecryptionCompleted(
            request_id=request_id,
            batch_id=context.batch_id,
            ask_volume=ask_volume,
            bid_volume=bid_volume,
            timestamp=self._state.timestamp,
        ))
