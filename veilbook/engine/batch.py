"""
Batch lifecycle.

    NO_BATCH ──open──▶ OPEN ──close──▶ CLOSED ──open──▶ OPEN ──▶ …

The batch id increments on every transition into OPEN; the first batch has
id 1. Only the owner may transition, and never while the engine is paused.
"""

from enum import IntEnum
from typing import Dict, Set

from .access import AccessControl
from .events import BatchClosed, BatchOpened, EventLog
from .state import Batch, EngineState
from ..exceptions import BatchAlreadyOpenError, BatchNotOpenError, InvalidBatchIdError
from ..logger import get_logger

logger = get_logger(__name__)


class BatchStatus(IntEnum):
    NO_BATCH = 0
    OPEN = 1
    CLOSED = 2


_VALID_TRANSITIONS: Dict[BatchStatus, Set[BatchStatus]] = {
    BatchStatus.NO_BATCH: {BatchStatus.OPEN},
    BatchStatus.OPEN:     {BatchStatus.CLOSED},
    BatchStatus.CLOSED:   {BatchStatus.OPEN},
}


class BatchLifecycle:
    """Single-batch state machine gating submission and aggregation."""

    def __init__(self, state: EngineState, access: AccessControl, events: EventLog):
        self._state = state
        self._access = access
        self._events = events

    @property
    def current(self) -> Batch:
        """Copy of the current batch record."""
        return Batch(id=self._state.batch.id, is_open=self._state.batch.is_open)

    @property
    def status(self) -> BatchStatus:
        batch = self._state.batch
        if batch.is_open:
            return BatchStatus.OPEN
        if batch.id == 0:
            return BatchStatus.NO_BATCH
        return BatchStatus.CLOSED

    def can_transition(self, target: BatchStatus) -> bool:
        return target in _VALID_TRANSITIONS[self.status]

    # ── Guards ────────────────────────────────────────────────────────

    def require_open(self) -> Batch:
        if not self._state.batch.is_open:
            raise BatchNotOpenError("No batch is open")
        return self._state.batch

    def require_current(self, batch_id: int) -> None:
        if batch_id != self._state.batch.id:
            raise InvalidBatchIdError(
                f"Batch id {batch_id} does not match current batch {self._state.batch.id}"
            )

    # ── Transitions ───────────────────────────────────────────────────

    def open_batch(self, caller: str) -> BatchOpened:
        self._access.require_owner(caller)
        self._access.require_not_paused()
        if not self.can_transition(BatchStatus.OPEN):
            raise BatchAlreadyOpenError(f"Batch {self._state.batch.id} is already open")

        self._state.batch.id += 1
        self._state.batch.is_open = True
        logger.info("Opened batch #%d at height %d", self._state.batch.id, self._state.block_height)
        return self._events.emit(BatchOpened(
            batch_id=self._state.batch.id,
            timestamp=self._state.timestamp,
        ))

    def close_batch(self, caller: str) -> BatchClosed:
        self._access.require_owner(caller)
        self._access.require_not_paused()
        if not self.can_transition(BatchStatus.CLOSED):
            raise BatchNotOpenError("No batch is open")

        self._state.batch.is_open = False
        logger.info("Closed batch #%d at height %d", self._state.batch.id, self._state.block_height)
        return self._events.emit(BatchClosed(
            batch_id=self._state.batch.id,
            timestamp=self._state.timestamp,
        ))
