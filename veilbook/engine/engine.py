"""
Veilbook Batch Engine

Facade that owns the engine state context and every component. The
sequencing layer drives it in one of two ways:

    engine.begin_block(height, timestamp)
    engine.open_batch(owner)                 # direct calls, or
    result = engine.process_transaction(tx)  # sequenced envelopes

Every operation takes the calling address explicitly. Operations validate
all of their preconditions before mutating state, so a failed call leaves
the engine exactly as it was.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from eth_utils import to_canonical_address, to_checksum_address

from .access import AccessControl
from .aggregation import AggregateResult, AggregationEngine
from .batch import BatchLifecycle
from .decryption import DecryptionContext, DecryptionOracleProtocol
from .events import (
    BatchClosed,
    BatchOpened,
    CooldownUpdated,
    DecryptionCompleted,
    EngineEvent,
    EventListener,
    EventLog,
    OwnershipTransferred,
    ProviderAdded,
    ProviderRemoved,
)
from .ledger import Order, OrderLedger, OrderRecord
from .state import Batch, EngineState
from .transactions import EngineOpType, EngineTransaction
from ..constants import DEFAULT_COOLDOWN_SECONDS, ENGINE_VERSION
from ..crypto.address import normalize_address
from ..crypto.hashing import keccak256
from ..crypto.opaque import OpaqueBackend, OpaqueValue
from ..exceptions import ConfigurationError, VeilbookError
from ..logger import get_logger
from ..oracle.base import DecryptionOracle

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Transaction execution result
# ---------------------------------------------------------------------------

class ExecResult:
    """Result of executing a single engine transaction."""

    __slots__ = ("success", "data", "error", "events")

    def __init__(
        self,
        success: bool = True,
        data: Optional[Dict[str, Any]] = None,
        error: str = "",
        events: Optional[List[EngineEvent]] = None,
    ):
        self.success = success
        self.data = data or {}
        self.error = error
        self.events = events or []

    def __repr__(self) -> str:
        if self.success:
            return f"<ExecResult ok data={self.data}>"
        return f"<ExecResult failed error={self.error!r}>"


def derive_engine_address(owner: str) -> str:
    """Deterministic engine identity for an owner when none is configured."""
    digest = keccak256(b"veilbook/engine" + to_canonical_address(owner))
    return to_checksum_address(digest[-20:])


# ---------------------------------------------------------------------------
# Batch Engine
# ---------------------------------------------------------------------------

class BatchEngine:
    """
    Confidential order-batching engine.

    Args:
        owner: deploying address; becomes owner and first provider
        backend: opaque-value backend for order operands and totals
        oracle: decryption authority
        address: engine identity bound into state hashes
            (derived from the owner when omitted)
        cooldown: initial per-address cooldown in seconds
    """

    def __init__(
        self,
        owner: str,
        backend: OpaqueBackend,
        oracle: DecryptionOracle,
        address: Optional[str] = None,
        cooldown: int = DEFAULT_COOLDOWN_SECONDS,
    ):
        owner = normalize_address(owner)
        if cooldown < 0:
            raise ConfigurationError(f"Cooldown cannot be negative, got {cooldown}")
        address = normalize_address(address) if address else derive_engine_address(owner)

        self.backend = backend
        self.oracle = oracle
        self.state = EngineState(address=address, owner=owner, cooldown=cooldown)
        self.state.providers.add(owner)

        self.events = EventLog()
        self.access = AccessControl(self.state, self.events)
        self.batches = BatchLifecycle(self.state, self.access, self.events)
        self.ledger = OrderLedger(self.state, self.access, self.batches, self.events, backend)
        self.aggregation = AggregationEngine(self.ledger, backend)
        self.decryption = DecryptionOracleProtocol(
            self.state, self.access, self.batches, self.aggregation, oracle, self.events,
        )

        # Per-sender nonces for transaction replay protection
        self._nonces: Dict[str, int] = {}

        logger.info("Batch engine %s deployed by %s (cooldown=%ds)", address, owner, cooldown)

    @classmethod
    def from_config(
        cls,
        config,
        backend: OpaqueBackend,
        oracle: DecryptionOracle,
    ) -> BatchEngine:
        """Build an engine from an EngineSectionConfig."""
        if not config.owner:
            raise ConfigurationError("engine.owner is required")
        return cls(
            owner=config.owner,
            backend=backend,
            oracle=oracle,
            address=config.address or None,
            cooldown=config.cooldown,
        )

    # =====================================================================
    #  Block lifecycle
    # =====================================================================

    def begin_block(self, block_height: int, block_timestamp: float) -> None:
        """
        Called by the sequencing layer before executing a block.

        Height and timestamp may not move backwards.
        """
        if block_height < self.state.block_height:
            raise ValueError(
                f"Block height {block_height} is below current {self.state.block_height}"
            )
        if block_timestamp < self.state.timestamp:
            raise ValueError(
                f"Block timestamp {block_timestamp} is before current {self.state.timestamp}"
            )
        self.state.block_height = block_height
        self.state.timestamp = block_timestamp

    def advance(self, blocks: int = 1, seconds: float = 0.0) -> None:
        """Move forward by *blocks* blocks and *seconds* seconds."""
        self.begin_block(self.state.block_height + blocks, self.state.timestamp + seconds)

    @property
    def block_height(self) -> int:
        return self.state.block_height

    @property
    def timestamp(self) -> float:
        return self.state.timestamp

    # =====================================================================
    #  Operations
    # =====================================================================

    def transfer_ownership(self, caller: str, new_owner: str) -> OwnershipTransferred:
        return self.access.transfer_ownership(caller, new_owner)

    def add_provider(self, caller: str, address: str) -> ProviderAdded:
        return self.access.add_provider(caller, address)

    def remove_provider(self, caller: str, address: str) -> ProviderRemoved:
        return self.access.remove_provider(caller, address)

    def set_paused(self, caller: str, paused: bool) -> EngineEvent:
        return self.access.set_paused(caller, paused)

    def set_cooldown(self, caller: str, duration: int) -> CooldownUpdated:
        return self.access.set_cooldown(caller, duration)

    def open_batch(self, caller: str) -> BatchOpened:
        return self.batches.open_batch(caller)

    def close_batch(self, caller: str) -> BatchClosed:
        return self.batches.close_batch(caller)

    def submit_order(
        self,
        caller: str,
        asset_id: OpaqueValue,
        amount: OpaqueValue,
        price: OpaqueValue,
        expiry: Optional[OpaqueValue],
        is_ask: bool,
    ) -> int:
        return self.ledger.submit_order(caller, asset_id, amount, price, expiry, is_ask)

    def aggregate(self) -> Tuple[OpaqueValue, OpaqueValue]:
        """Opaque (ask_total, bid_total) at the current block height."""
        return self.aggregation.aggregate(self.state.block_height)

    def aggregate_detailed(self) -> AggregateResult:
        return self.aggregation.aggregate_detailed(self.state.block_height)

    def request_aggregate_decryption(self, caller: str, batch_id: int) -> int:
        return self.decryption.request_aggregate_decryption(caller, batch_id)

    def on_decryption_result(
        self,
        request_id: int,
        cleartext: bytes,
        proof: bytes,
    ) -> DecryptionCompleted:
        return self.decryption.on_decryption_result(request_id, cleartext, proof)

    # =====================================================================
    #  Read surface
    # =====================================================================

    @property
    def address(self) -> str:
        return self.state.address

    @property
    def owner(self) -> str:
        return self.state.owner

    @property
    def paused(self) -> bool:
        return self.state.paused

    @property
    def cooldown(self) -> int:
        return self.state.cooldown

    @property
    def current_batch(self) -> Batch:
        return self.batches.current

    @property
    def order_count(self) -> int:
        return len(self.ledger)

    def is_provider(self, address: str) -> bool:
        return self.access.is_provider(address)

    def get_order(self, order_id: int) -> Order:
        return self.ledger.get(order_id)

    def get_order_record(self, order_id: int) -> OrderRecord:
        return self.ledger.get_record(order_id)

    def get_decryption_context(self, request_id: int) -> Optional[DecryptionContext]:
        return self.decryption.get_context(request_id)

    def is_available(self) -> bool:
        """True while the engine accepts submissions and requests."""
        return not self.state.paused

    def subscribe(self, listener: EventListener) -> None:
        self.events.subscribe(listener)

    def get_status(self) -> Dict[str, Any]:
        """Summary for monitoring and the RPC layer."""
        batch = self.state.batch
        return {
            "version": ENGINE_VERSION,
            "address": self.state.address,
            "owner": self.state.owner,
            "paused": self.state.paused,
            "cooldown": self.state.cooldown,
            "providers": sorted(self.state.providers),
            "batch": batch.to_dict(),
            "orderCount": len(self.ledger),
            "pendingRequests": self.decryption.pending,
            "blockHeight": self.state.block_height,
            "timestamp": self.state.timestamp,
            "eventCount": len(self.events),
        }

    def nonce_of(self, address: str) -> int:
        return self._nonces.get(normalize_address(address), 0)

    # =====================================================================
    #  Sequenced transactions
    # =====================================================================

    def process_transaction(self, tx: EngineTransaction) -> ExecResult:
        """
        Execute one sequenced transaction.

        Engine errors become failed results and consume no nonce; any other
        exception propagates to the sequencing layer.
        """
        try:
            tx.validate_basic()
            sender = normalize_address(tx.sender)
        except (ValueError, VeilbookError) as e:
            return self._finish(tx, ExecResult(success=False, error=str(e)))

        expected_nonce = self._nonces.get(sender, 0)
        if tx.nonce != expected_nonce:
            return self._finish(tx, ExecResult(
                success=False,
                error=f"Invalid nonce: expected {expected_nonce}, got {tx.nonce}",
            ))

        mark = len(self.events)
        try:
            data = self._execute_op(sender, tx)
        except VeilbookError as e:
            logger.warning("Engine op %s from %s failed: %s", tx.op_type.name, sender, e)
            return self._finish(tx, ExecResult(success=False, error=f"{type(e).__name__}: {e}"))

        self._nonces[sender] = tx.nonce + 1
        return self._finish(tx, ExecResult(
            success=True,
            data=data,
            events=self.events.filter()[mark:],
        ))

    @staticmethod
    def _finish(tx: EngineTransaction, result: ExecResult) -> ExecResult:
        tx.success = result.success
        tx.result = result.data
        tx.error = result.error
        return result

    def _execute_op(self, sender: str, tx: EngineTransaction) -> Dict[str, Any]:
        """Dispatch to the appropriate handler."""
        p = tx.params
        op = tx.op_type

        if op == EngineOpType.TRANSFER_OWNERSHIP:
            self.transfer_ownership(sender, p["new_owner"])
            return {"owner": self.state.owner}
        if op == EngineOpType.ADD_PROVIDER:
            self.add_provider(sender, p["address"])
            return {"provider": normalize_address(p["address"])}
        if op == EngineOpType.REMOVE_PROVIDER:
            self.remove_provider(sender, p["address"])
            return {"provider": normalize_address(p["address"])}
        if op == EngineOpType.SET_PAUSED:
            self.set_paused(sender, p["paused"])
            return {"paused": self.state.paused}
        if op == EngineOpType.SET_COOLDOWN:
            self.set_cooldown(sender, p["duration"])
            return {"cooldown": self.state.cooldown}
        if op == EngineOpType.OPEN_BATCH:
            event = self.open_batch(sender)
            return {"batch_id": event.batch_id}
        if op == EngineOpType.CLOSE_BATCH:
            event = self.close_batch(sender)
            return {"batch_id": event.batch_id}
        if op == EngineOpType.SUBMIT_ORDER:
            order_id = self.submit_order(
                sender,
                p["asset_id"],
                p["amount"],
                p["price"],
                p.get("expiry"),
                p["is_ask"],
            )
            return {"order_id": order_id}
        if op == EngineOpType.REQUEST_DECRYPTION:
            request_id = self.request_aggregate_decryption(sender, p["batch_id"])
            return {"request_id": request_id}
        if op == EngineOpType.DECRYPTION_CALLBACK:
            event = self.on_decryption_result(p["request_id"], p["cleartext"], p["proof"])
            return {
                "request_id": event.request_id,
                "ask_volume": event.ask_volume,
                "bid_volume": event.bid_volume,
            }
        raise ValueError(f"Unhandled op type: {op}")
