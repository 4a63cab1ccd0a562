"""
Veilbook batch_* RPC Methods

Read-only view of the batching engine for wallets, dashboards and
monitoring. No method here mutates engine state.

Namespace: ``batch``  (methods are ``batch_getCurrentBatch``, etc.)
"""

from typing import Any, Dict, List, Optional

from ..server import RPCModule, rpc_method, RPCError, RPCErrorCode
from ...crypto.address import normalize_address
from ...crypto.opaque import OpaqueValue, is_set

MAX_EVENTS_PER_CALL = 500


def _handle_hex(value: Optional[OpaqueValue]) -> Optional[str]:
    if not is_set(value):
        return None
    return "0x" + value.to_bytes().hex()


class BatchModule(RPCModule):
    """
    Batch engine RPC methods (batch_* namespace).

    Context expectations:
        self.context: BatchEngine instance
    """

    namespace = "batch"

    def _engine(self):
        if self.context is None:
            raise RPCError(RPCErrorCode.RESOURCE_UNAVAILABLE, "Batch engine not available")
        return self.context

    # ── Batches / orders ────────────────────────────────────────────

    @rpc_method
    async def getCurrentBatch(self) -> Dict[str, Any]:
        return self._engine().current_batch.to_dict()

    @rpc_method
    async def getOrderCount(self) -> int:
        return self._engine().order_count

    @rpc_method
    async def getOrder(self, order_id: int) -> Dict[str, Any]:
        """
        Return an order's opaque handles and ledger metadata.

        Handles are ciphertext references; they reveal nothing about the
        order values.
        """
        engine = self._engine()
        order = engine.get_order(int(order_id))
        record = engine.get_order_record(int(order_id))

        return {
            **record.to_dict(),
            "isAsk": order.is_ask,
            "assetId": _handle_hex(order.asset_id),
            "amount": _handle_hex(order.amount),
            "price": _handle_hex(order.price),
            "expiry": _handle_hex(order.expiry),
        }

    # ── Decryption ──────────────────────────────────────────────────

    @rpc_method
    async def getDecryptionContext(self, request_id: int) -> Dict[str, Any]:
        context = self._engine().get_decryption_context(int(request_id))
        if context is None:
            raise RPCError(
                RPCErrorCode.RESOURCE_NOT_FOUND,
                f"No decryption request #{request_id}",
            )
        return context.to_dict()

    # ── Roles / status ──────────────────────────────────────────────

    @rpc_method
    async def getRoles(self, address: str) -> Dict[str, Any]:
        engine = self._engine()
        address = normalize_address(address)
        return {
            "address": address,
            "isOwner": address == engine.owner,
            "isProvider": engine.is_provider(address),
            "lastSubmission": engine.access.last_submission_of(address),
            "lastRequest": engine.access.last_request_of(address),
        }

    @rpc_method
    async def getStatus(self) -> Dict[str, Any]:
        return self._engine().get_status()

    @rpc_method
    async def isAvailable(self) -> bool:
        return self._engine().is_available()

    @rpc_method
    async def getEvents(self, limit: int = 50, event: Optional[str] = None) -> List[Dict[str, Any]]:
        """Most recent events, oldest first, optionally filtered by name."""
        limit = max(0, min(int(limit), MAX_EVENTS_PER_CALL))
        events = [e.to_dict() for e in self._engine().events]
        if event:
            events = [e for e in events if e["event"] == event]
        return events[-limit:] if limit else []
