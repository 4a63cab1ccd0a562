"""
Engine Transaction Types

Defines the envelope for engine operations that are sequenced by the
ledger/consensus layer and executed one at a time by
BatchEngine.process_transaction().

Transaction Types:
  - TRANSFER_OWNERSHIP:   Hand the owner role to another address
  - ADD_PROVIDER:         Grant the provider role
  - REMOVE_PROVIDER:      Revoke the provider role
  - SET_PAUSED:           Pause or unpause the engine
  - SET_COOLDOWN:         Change the per-address cooldown
  - OPEN_BATCH:           Open the next batch
  - CLOSE_BATCH:          Close the current batch
  - SUBMIT_ORDER:         Append an opaque order to the ledger
  - REQUEST_DECRYPTION:   Ask the oracle to reveal the aggregate
  - DECRYPTION_CALLBACK:  Deliver an oracle result (relayer duty)

Security:
  - Per-sender nonce prevents transaction replay
  - Deterministic hash over canonical bytes (opaque params hash by handle)
"""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Tuple

from ..crypto.opaque import OpaqueValue


class EngineOpType(IntEnum):
    """All engine operation types.  Values are part of the tx hash."""
    TRANSFER_OWNERSHIP = 1
    ADD_PROVIDER = 2
    REMOVE_PROVIDER = 3
    SET_PAUSED = 4
    SET_COOLDOWN = 5
    OPEN_BATCH = 6
    CLOSE_BATCH = 7
    SUBMIT_ORDER = 8
    REQUEST_DECRYPTION = 9
    DECRYPTION_CALLBACK = 10


REQUIRED_PARAMS: Dict[EngineOpType, Tuple[str, ...]] = {
    EngineOpType.TRANSFER_OWNERSHIP: ("new_owner",),
    EngineOpType.ADD_PROVIDER: ("address",),
    EngineOpType.REMOVE_PROVIDER: ("address",),
    EngineOpType.SET_PAUSED: ("paused",),
    EngineOpType.SET_COOLDOWN: ("duration",),
    EngineOpType.OPEN_BATCH: (),
    EngineOpType.CLOSE_BATCH: (),
    EngineOpType.SUBMIT_ORDER: ("asset_id", "amount", "price", "is_ask"),
    EngineOpType.REQUEST_DECRYPTION: ("batch_id",),
    EngineOpType.DECRYPTION_CALLBACK: ("request_id", "cleartext", "proof"),
}

# Accepted Python types per param name; checked whenever the param is present
PARAM_TYPES: Dict[str, Tuple[type, ...]] = {
    "new_owner": (str,),
    "address": (str,),
    "paused": (bool,),
    "duration": (int,),
    "asset_id": (OpaqueValue,),
    "amount": (OpaqueValue,),
    "price": (OpaqueValue,),
    "expiry": (OpaqueValue, type(None)),
    "is_ask": (bool,),
    "batch_id": (int,),
    "request_id": (int,),
    "cleartext": (bytes, bytearray),
    "proof": (bytes, bytearray),
}


def _canonical_default(value: Any) -> str:
    if isinstance(value, OpaqueValue):
        return "0x" + value.to_bytes().hex() if value.is_initialized else "uninitialized"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


@dataclass
class EngineTransaction:
    """
    Envelope for a single engine operation.

    Fields other than the execution results are covered by the tx hash.
    """
    op_type: EngineOpType
    sender: str                         # caller address
    nonce: int                          # per-sender monotonic nonce
    params: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0              # submission timestamp

    # --- Computed after execution ---
    success: bool = False
    result: Dict[str, Any] = field(default_factory=dict)
    error: str = ""

    def __post_init__(self):
        self.op_type = EngineOpType(self.op_type)
        if self.timestamp == 0.0:
            self.timestamp = time.time()

    # -- Hashing ------------------------------------------------------------

    def tx_hash(self) -> str:
        """Deterministic transaction hash."""
        return hashlib.blake2b(self._canonical_bytes(), digest_size=32).hexdigest()

    def _canonical_bytes(self) -> bytes:
        params_json = json.dumps(
            self.params, sort_keys=True, default=_canonical_default
        ).encode("utf-8")
        parts = [
            int(self.op_type).to_bytes(1, "big"),
            self.sender.encode("utf-8"),
            self.nonce.to_bytes(8, "big"),
            params_json,
        ]
        return b"".join(parts)

    # -- Serialization ------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe summary; opaque params are rendered as handles."""
        return {
            "op_type": int(self.op_type),
            "sender": self.sender,
            "nonce": self.nonce,
            "params": json.loads(json.dumps(self.params, default=_canonical_default)),
            "timestamp": self.timestamp,
            "tx_hash": self.tx_hash(),
            "success": self.success,
            "error": self.error,
        }

    # -- Validation ---------------------------------------------------------

    def validate_basic(self) -> bool:
        """
        Structural validation (no state access needed).

        Raises:
            ValueError: with specific reason
        """
        if not self.sender:
            raise ValueError("Missing sender address")
        if not isinstance(self.nonce, int) or isinstance(self.nonce, bool) or self.nonce < 0:
            raise ValueError("Nonce must be a non-negative integer")

        for key in REQUIRED_PARAMS[self.op_type]:
            if key not in self.params:
                raise ValueError(f"{self.op_type.name} missing param: {key}")

        for key, value in self.params.items():
            expected = PARAM_TYPES.get(key)
            if expected is None:
                continue
            # bool is an int subclass but never a valid count or id
            if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
                names = "/".join(t.__name__ for t in expected)
                raise ValueError(
                    f"{self.op_type.name} param {key} must be {names}, got {type(value).__name__}"
                )
        return True
