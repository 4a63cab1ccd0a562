"""
Engine state context.

All mutable engine state lives in one EngineState object owned by the
BatchEngine and passed by reference to every component. Nothing is held in
module globals, so independent engines can coexist in one process.

Block height and timestamp are supplied by the sequencing layer through
BatchEngine.begin_block(); components read them from here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Set

from ..constants import INITIAL_BATCH_ID


@dataclass
class Batch:
    """The singleton batch record."""
    id: int = INITIAL_BATCH_ID
    is_open: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "isOpen": self.is_open}


@dataclass
class EngineState:
    """
    Mutable engine context.

    Fields:
        address:            Engine identity bound into state hashes
        owner:              Owner address (checksum form)
        paused:             Global pause flag
        cooldown:           Seconds between rate-limited calls per address
        providers:          Addresses holding the provider role
        last_submission:    address → timestamp of last accepted submission
        last_request:       address → timestamp of last decryption request
        batch:              Current batch record
        block_height:       Height of the block being executed
        timestamp:          Timestamp of the block being executed
    """
    address: str
    owner: str
    paused: bool = False
    cooldown: int = 0
    providers: Set[str] = field(default_factory=set)
    last_submission: Dict[str, float] = field(default_factory=dict)
    last_request: Dict[str, float] = field(default_factory=dict)
    batch: Batch = field(default_factory=Batch)
    block_height: int = 0
    timestamp: float = 0.0
