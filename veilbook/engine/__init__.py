"""
Veilbook Batching Engine

Components:
  - AccessControl            (owner / provider roles, pause, cooldowns)
  - BatchLifecycle           (single open batch, monotonic ids)
  - OrderLedger              (append-only opaque orders)
  - AggregationEngine        (homomorphic ask / bid totals)
  - DecryptionOracleProtocol (hash-bound reveal requests, replay-safe callbacks)
  - BatchEngine              (facade, block lifecycle, sequenced transactions)
"""

from .access import AccessControl
from .aggregation import AggregateResult, AggregationEngine
from .batch import BatchLifecycle, BatchStatus
from .decryption import (
    DecryptionContext,
    DecryptionOracleProtocol,
    DecryptionStatus,
    decode_volumes,
    encode_volumes,
)
from .engine import BatchEngine, ExecResult, derive_engine_address
from .events import (
    BatchClosed,
    BatchOpened,
    CooldownUpdated,
    DecryptionCompleted,
    DecryptionRequested,
    EngineEvent,
    EventLog,
    OrderSubmitted,
    OwnershipTransferred,
    Paused,
    ProviderAdded,
    ProviderRemoved,
    Unpaused,
)
from .ledger import Order, OrderLedger, OrderRecord
from .state import Batch, EngineState
from .transactions import EngineOpType, EngineTransaction

__all__ = [
    # Components
    "AccessControl", "BatchLifecycle", "BatchStatus", "OrderLedger",
    "AggregationEngine", "AggregateResult", "DecryptionOracleProtocol",
    # Facade
    "BatchEngine", "ExecResult", "derive_engine_address",
    # Data model
    "Batch", "EngineState", "Order", "OrderRecord", "DecryptionContext",
    "DecryptionStatus", "decode_volumes", "encode_volumes",
    # Events
    "EngineEvent", "EventLog", "OwnershipTransferred", "ProviderAdded",
    "ProviderRemoved", "Paused", "Unpaused", "CooldownUpdated", "BatchOpened",
    "BatchClosed", "OrderSubmitted", "DecryptionRequested", "DecryptionCompleted",
    # Transactions
    "EngineOpType", "EngineTransaction",
]
