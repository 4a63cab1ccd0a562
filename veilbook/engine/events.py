"""
Engine notification events.

These are the only externally observable effects of the engine besides
state reads. Events are immutable, appended to the engine's EventLog in
emission order and fanned out to registered listeners.

Listeners run after the emitting operation has committed. A listener that
raises is logged and skipped; it cannot undo or fail the operation.
"""

import time
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Type

from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineEvent:
    """Base class; `name` is the wire name used in to_dict()."""
    name = "EngineEvent"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"event": self.name}
        for f in fields(self):
            data[_camel(f.name)] = getattr(self, f.name)
        return data


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# ── Access control ────────────────────────────────────────────────────

@dataclass(frozen=True)
class OwnershipTransferred(EngineEvent):
    name = "OwnershipTransferred"
    previous_owner: str
    new_owner: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ProviderAdded(EngineEvent):
    name = "ProviderAdded"
    provider: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ProviderRemoved(EngineEvent):
    name = "ProviderRemoved"
    provider: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Paused(EngineEvent):
    name = "Paused"
    account: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class Unpaused(EngineEvent):
    name = "Unpaused"
    account: str
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class CooldownUpdated(EngineEvent):
    name = "CooldownUpdated"
    old_cooldown: int
    new_cooldown: int
    timestamp: float = field(default_factory=time.time)


# ── Batch lifecycle / ledger ──────────────────────────────────────────

@dataclass(frozen=True)
class BatchOpened(EngineEvent):
    name = "BatchOpened"
    batch_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class BatchClosed(EngineEvent):
    name = "BatchClosed"
    batch_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class OrderSubmitted(EngineEvent):
    name = "OrderSubmitted"
    submitter: str
    order_id: int
    batch_id: int
    is_ask: bool
    timestamp: float = field(default_factory=time.time)


# ── Decryption protocol ───────────────────────────────────────────────

@dataclass(frozen=True)
class DecryptionRequested(EngineEvent):
    name = "DecryptionRequested"
    request_id: int
    batch_id: int
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class DecryptionCompleted(EngineEvent):
    name = "DecryptionCompleted"
    request_id: int
    batch_id: int
    ask_volume: int
    bid_volume: int
    timestamp: float = field(default_factory=time.time)


EventListener = Callable[[EngineEvent], None]


class EventLog:
    """Append-only event sink with synchronous listeners."""

    def __init__(self) -> None:
        self._events: List[EngineEvent] = []
        self._listeners: List[EventListener] = []

    def emit(self, event: EngineEvent) -> EngineEvent:
        self._events.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed on %s", listener, event.name)
        return event

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def filter(self, event_type: Optional[Type[EngineEvent]] = None) -> List[EngineEvent]:
        if event_type is None:
            return list(self._events)
        return [e for e in self._events if isinstance(e, event_type)]

    def last(self, event_type: Optional[Type[EngineEvent]] = None) -> Optional[EngineEvent]:
        matches = self.filter(event_type)
        return matches[-1] if matches else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))
