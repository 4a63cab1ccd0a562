"""
Access control: owner and provider roles, pause flag, per-address cooldowns.

Every mutating engine operation starts with the guards defined here. Guards
only read state; the recording helpers are called by operations after all of
their preconditions passed.
"""

from typing import Dict

from .events import (
    CooldownUpdated,
    EventLog,
    OwnershipTransferred,
    Paused,
    ProviderAdded,
    ProviderRemoved,
    Unpaused,
)
from .state import EngineState
from ..crypto.address import is_zero_address, normalize_address
from ..exceptions import (
    CooldownActiveError,
    InvalidAddressError,
    InvalidCooldownError,
    NotOwnerError,
    NotProviderError,
    PausedError,
    PauseStateUnchangedError,
    RoleAlreadyGrantedError,
    RoleNotGrantedError,
)
from ..logger import get_logger

logger = get_logger(__name__)


class AccessControl:
    """Role, pause and rate-limit management over an EngineState."""

    def __init__(self, state: EngineState, events: EventLog):
        self._state = state
        self._events = events

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._state.owner

    @property
    def paused(self) -> bool:
        return self._state.paused

    @property
    def cooldown(self) -> int:
        return self._state.cooldown

    def is_provider(self, address: str) -> bool:
        return normalize_address(address) in self._state.providers

    def last_submission_of(self, address: str) -> float:
        return self._state.last_submission.get(normalize_address(address), 0.0)

    def last_request_of(self, address: str) -> float:
        return self._state.last_request.get(normalize_address(address), 0.0)

    # ── Guards ────────────────────────────────────────────────────────

    def require_owner(self, caller: str) -> str:
        caller = normalize_address(caller)
        if caller != self._state.owner:
            raise NotOwnerError(f"{caller} is not the owner")
        return caller

    def require_provider(self, caller: str) -> str:
        caller = normalize_address(caller)
        if caller not in self._state.providers:
            raise NotProviderError(f"{caller} is not a provider")
        return caller

    def require_not_paused(self) -> None:
        if self._state.paused:
            raise PausedError("Engine is paused")

    def require_cooldown(self, caller: str, table: Dict[str, float]) -> None:
        """Fail while `now < last[caller] + cooldown`; first calls always pass."""
        last = table.get(caller)
        if last is None:
            return
        ready_at = last + self._state.cooldown
        if self._state.timestamp < ready_at:
            raise CooldownActiveError(
                f"Cooldown active for {caller}: "
                f"{ready_at - self._state.timestamp:.0f}s remaining"
            )

    def record_submission(self, caller: str) -> None:
        self._state.last_submission[caller] = self._state.timestamp

    def record_request(self, caller: str) -> None:
        self._state.last_request[caller] = self._state.timestamp

    # ── Owner operations ──────────────────────────────────────────────

    def transfer_ownership(self, caller: str, new_owner: str) -> OwnershipTransferred:
        self.require_owner(caller)
        new_owner = normalize_address(new_owner)
        if is_zero_address(new_owner):
            raise InvalidAddressError("New owner cannot be the zero address")
        if new_owner == self._state.owner:
            raise InvalidAddressError(f"{new_owner} already owns the engine")

        previous = self._state.owner
        self._state.owner = new_owner
        logger.info("Ownership transferred: %s -> %s", previous, new_owner)
        return self._events.emit(OwnershipTransferred(
            previous_owner=previous,
            new_owner=new_owner,
            timestamp=self._state.timestamp,
        ))

    def add_provider(self, caller: str, address: str) -> ProviderAdded:
        self.require_owner(caller)
        address = normalize_address(address)
        if address in self._state.providers:
            raise RoleAlreadyGrantedError(f"{address} is already a provider")

        self._state.providers.add(address)
        logger.info("Provider added: %s", address)
        return self._events.emit(ProviderAdded(provider=address, timestamp=self._state.timestamp))

    def remove_provider(self, caller: str, address: str) -> ProviderRemoved:
        self.require_owner(caller)
        address = normalize_address(address)
        if address not in self._state.providers:
            raise RoleNotGrantedError(f"{address} is not a provider")

        self._state.providers.remove(address)
        logger.info("Provider removed: %s", address)
        return self._events.emit(ProviderRemoved(provider=address, timestamp=self._state.timestamp))

    def set_paused(self, caller: str, paused: bool):
        caller = self.require_owner(caller)
        paused = bool(paused)
        if paused == self._state.paused:
            raise PauseStateUnchangedError(
                f"Engine is already {'paused' if paused else 'unpaused'}"
            )

        self._state.paused = paused
        if paused:
            logger.warning("Engine paused by %s", caller)
            return self._events.emit(Paused(account=caller, timestamp=self._state.timestamp))
        logger.info("Engine unpaused by %s", caller)
        return self._events.emit(Unpaused(account=caller, timestamp=self._state.timestamp))

    def set_cooldown(self, caller: str, duration: int) -> CooldownUpdated:
        self.require_owner(caller)
        duration = int(duration)
        if duration < 0:
            raise InvalidCooldownError(f"Cooldown cannot be negative, got {duration}")

        old = self._state.cooldown
        self._state.cooldown = duration
        logger.info("Cooldown updated: %ds -> %ds", old, duration)
        return self._events.emit(CooldownUpdated(
            old_cooldown=old,
            new_cooldown=duration,
            timestamp=self._state.timestamp,
        ))
