"""
Veilbook Exceptions

Custom exception classes for the confidential batching engine.

Every engine failure aborts the triggering operation before any state is
mutated. Categories mirror the failure taxonomy: authorization, lifecycle,
rate limiting, availability, consistency, integrity, protocol and
precondition errors.
"""


class VeilbookError(Exception):
    """Base exception for Veilbook."""
    pass


class ConfigurationError(VeilbookError):
    """Configuration error."""
    pass


# ── Authorization ─────────────────────────────────────────────────────

class AuthorizationError(VeilbookError):
    """Caller lacks the role required for the operation."""
    pass


class NotOwnerError(AuthorizationError):
    """Caller is not the engine owner."""
    pass


class NotProviderError(AuthorizationError):
    """Caller does not hold the provider role."""
    pass


# ── Lifecycle ─────────────────────────────────────────────────────────

class LifecycleError(VeilbookError):
    """Operation is not allowed in the current batch state."""
    pass


class BatchAlreadyOpenError(LifecycleError):
    """A batch is already open."""
    pass


class BatchNotOpenError(LifecycleError):
    """No batch is currently open."""
    pass


class InvalidBatchIdError(LifecycleError):
    """Requested batch id does not match the current batch."""
    pass


# ── Rate limiting / availability ──────────────────────────────────────

class RateLimitError(VeilbookError):
    """Caller exceeded its allowed call rate."""
    pass


class CooldownActiveError(RateLimitError):
    """Caller's cooldown window has not elapsed."""
    pass


class AvailabilityError(VeilbookError):
    """Engine is not accepting mutations."""
    pass


class PausedError(AvailabilityError):
    """Engine is paused."""
    pass


# ── Oracle protocol ───────────────────────────────────────────────────

class ConsistencyError(VeilbookError):
    """Aggregate state changed between request and callback."""
    pass


class StateMismatchError(ConsistencyError):
    """Recomputed aggregate hash differs from the one stored at request time."""
    pass


class IntegrityError(VeilbookError):
    """Decryption result could not be authenticated."""
    pass


class InvalidProofError(IntegrityError):
    """Oracle proof did not verify."""
    pass


class MalformedCleartextError(IntegrityError):
    """Revealed cleartext does not have the expected layout."""
    pass


class ProtocolError(VeilbookError):
    """Oracle protocol violation."""
    pass


class ReplayAttemptError(ProtocolError):
    """Callback for an already-processed request."""
    pass


class UnknownRequestError(ProtocolError):
    """Callback for a request id the engine never issued."""
    pass


# ── Preconditions ─────────────────────────────────────────────────────

class PreconditionError(VeilbookError):
    """Operation arguments or state violate a precondition."""
    pass


class OrderNotFoundError(PreconditionError):
    """No order contributes to the aggregate, or an order id is unknown."""
    pass


class InvalidOrderError(PreconditionError):
    """Order operands are not valid opaque values."""
    pass


class RoleAlreadyGrantedError(PreconditionError):
    """Target already holds the role."""
    pass


class RoleNotGrantedError(PreconditionError):
    """Target does not hold the role."""
    pass


class PauseStateUnchangedError(PreconditionError):
    """Pause flag already has the requested value."""
    pass


class InvalidAddressError(PreconditionError):
    """Invalid address format."""
    pass


class InvalidCooldownError(PreconditionError):
    """Cooldown duration is negative."""
    pass
