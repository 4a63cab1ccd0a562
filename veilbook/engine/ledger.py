"""
Order ledger.

Append-only store of submitted orders. Order ids are dense and issued in
submission order starting at 0; orders are never removed. Expired orders
stay in the ledger and are skipped at aggregation time.

Orders are not tagged with the batch that was open when they were
submitted: aggregation covers the whole ledger, filtered by expiry only.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .access import AccessControl
from .batch import BatchLifecycle
from .events import EventLog, OrderSubmitted
from .state import EngineState
from ..crypto.opaque import OpaqueBackend, OpaqueValue, is_set
from ..exceptions import InvalidOrderError, OrderNotFoundError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Order:
    """An opaque order. Only the side flag is plaintext."""
    asset_id: OpaqueValue
    amount: OpaqueValue
    price: OpaqueValue
    expiry: OpaqueValue
    is_ask: bool


@dataclass(frozen=True)
class OrderRecord:
    """Ledger metadata kept alongside each order."""
    order_id: int
    submitter: str
    block_height: int
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderId": self.order_id,
            "submitter": self.submitter,
            "blockHeight": self.block_height,
            "timestamp": self.timestamp,
        }


class OrderLedger:
    """Append-only order store plus the provider submission operation."""

    def __init__(
        self,
        state: EngineState,
        access: AccessControl,
        batches: BatchLifecycle,
        events: EventLog,
        backend: OpaqueBackend,
    ):
        self._state = state
        self._access = access
        self._batches = batches
        self._events = events
        self._backend = backend
        self._orders: List[Order] = []
        self._records: List[OrderRecord] = []

    # ── Read-only views ───────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._orders)

    def __iter__(self) -> Iterator[Order]:
        return iter(list(self._orders))

    @property
    def next_order_id(self) -> int:
        return len(self._orders)

    def get(self, order_id: int) -> Order:
        if not 0 <= order_id < len(self._orders):
            raise OrderNotFoundError(f"Order {order_id} does not exist")
        return self._orders[order_id]

    def get_record(self, order_id: int) -> OrderRecord:
        if not 0 <= order_id < len(self._records):
            raise OrderNotFoundError(f"Order {order_id} does not exist")
        return self._records[order_id]

    def items(self) -> List[Tuple[int, Order]]:
        return list(enumerate(self._orders))

    # ── Submission ────────────────────────────────────────────────────

    def _check_operand(self, label: str, value: Optional[OpaqueValue], required: bool) -> None:
        if value is None:
            if required:
                raise InvalidOrderError(f"Order {label} is required")
            return
        if not self._backend.owns(value):
            raise InvalidOrderError(f"Order {label} is not an opaque value of this engine's backend")
        if required and not is_set(value):
            raise InvalidOrderError(f"Order {label} is uninitialized")

    def submit_order(
        self,
        caller: str,
        asset_id: OpaqueValue,
        amount: OpaqueValue,
        price: OpaqueValue,
        expiry: Optional[OpaqueValue],
        is_ask: bool,
    ) -> int:
        """
        Append a new order for the calling provider.

        Args:
            caller: submitting provider
            asset_id, amount, price: initialized opaque operands
            expiry: opaque block height after which the order lapses;
                None or uninitialized means the order never expires
            is_ask: plaintext side flag (True = sell / ask)

        Returns:
            The new order id
        """
        caller = self._access.require_provider(caller)
        self._access.require_not_paused()
        self._access.require_cooldown(caller, self._state.last_submission)
        batch = self._batches.require_open()

        self._check_operand("asset id", asset_id, required=True)
        self._check_operand("amount", amount, required=True)
        self._check_operand("price", price, required=True)
        self._check_operand("expiry", expiry, required=False)

        if expiry is None:
            expiry = self._backend.uninitialized()

        order_id = len(self._orders)
        self._orders.append(Order(
            asset_id=asset_id,
            amount=amount,
            price=price,
            expiry=expiry,
            is_ask=bool(is_ask),
        ))
        self._records.append(OrderRecord(
            order_id=order_id,
            submitter=caller,
            block_height=self._state.block_height,
            timestamp=self._state.timestamp,
        ))
        self._access.record_submission(caller)

        logger.debug(
            "Order %d submitted by %s in batch #%d (%s)",
            order_id, caller, batch.id, "ask" if is_ask else "bid",
        )
        self._events.emit(OrderSubmitted(
            submitter=caller,
            order_id=order_id,
            batch_id=batch.id,
            is_ask=bool(is_ask),
            timestamp=self._state.timestamp,
        ))
        return order_id
