"""
Homomorphic aggregation of outstanding orders.

For every order in the ledger:

  - skip it if its expiry is initialized and expiry <= block height;
  - otherwise lazily initialize both running totals to the opaque zero and
    add its amount to the ask or bid total according to the plaintext side
    flag.

Aggregation fails with OrderNotFoundError when no order contributes, so an
uninitialized total is never serialized or sent for decryption.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from .ledger import Order, OrderLedger
from ..crypto.opaque import OpaqueBackend, OpaqueValue, is_set
from ..exceptions import OrderNotFoundError
from ..logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregateResult:
    """Opaque totals plus which orders contributed to them."""
    ask_total: OpaqueValue
    bid_total: OpaqueValue
    included: Tuple[int, ...]
    skipped: Tuple[int, ...]

    def ciphertexts(self) -> List[bytes]:
        """Serialized totals, ask first."""
        return [self.ask_total.to_bytes(), self.bid_total.to_bytes()]


class AggregationEngine:
    """Computes opaque ask/bid volume totals over the order ledger."""

    def __init__(self, ledger: OrderLedger, backend: OpaqueBackend):
        self._ledger = ledger
        self._backend = backend

    def is_expired(self, order: Order, block_height: int) -> bool:
        """Initialized expiry at or below *block_height*; uninitialized never expires."""
        if not is_set(order.expiry):
            return False
        height = self._backend.as_opaque(block_height)
        return self._backend.resolve_bool(order.expiry.le(height))

    def aggregate_detailed(self, block_height: int) -> AggregateResult:
        ask_total: Optional[OpaqueValue] = None
        bid_total: Optional[OpaqueValue] = None
        included: List[int] = []
        skipped: List[int] = []

        for order_id, order in self._ledger.items():
            if self.is_expired(order, block_height):
                skipped.append(order_id)
                continue

            if ask_total is None:
                ask_total = self._backend.zero()
            if bid_total is None:
                bid_total = self._backend.zero()

            if order.is_ask:
                ask_total = ask_total.add(order.amount)
            else:
                bid_total = bid_total.add(order.amount)
            included.append(order_id)

        if not (is_set(ask_total) and is_set(bid_total)):
            raise OrderNotFoundError(
                f"No live orders to aggregate at height {block_height} "
                f"({len(skipped)} expired)"
            )

        logger.debug(
            "Aggregated %d orders at height %d (%d expired skipped)",
            len(included), block_height, len(skipped),
        )
        return AggregateResult(
            ask_total=ask_total,
            bid_total=bid_total,
            included=tuple(included),
            skipped=tuple(skipped),
        )

    def aggregate(self, block_height: int) -> Tuple[OpaqueValue, OpaqueValue]:
        """Return (ask_total, bid_total) over non-expired orders."""
        result = self.aggregate_detailed(block_height)
        return result.ask_total, result.bid_total
