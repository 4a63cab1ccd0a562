"""
batch_* RPC Test Suite

Coverage:
  RPCServer    : JSON-RPC envelope handling, batches, notifications
  BatchModule  : read-only engine views and error codes
"""

import json
import os
import sys

import pytest
from eth_utils import to_checksum_address

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from veilbook.crypto.reference import ReferenceBackend
from veilbook.engine import BatchEngine
from veilbook.oracle import LocalDecryptionOracle
from veilbook.exceptions import PausedError, StateMismatchError
from veilbook.rpc import BatchModule, RPCErrorCode, RPCServer, create_rpc_server
from veilbook.rpc.server import RPCModule, rpc_method


OWNER = "0x" + "a1" * 20
PROVIDER = "0x" + "b2" * 20


def make_engine():
    backend = ReferenceBackend(seed=b"rpc")
    engine = BatchEngine(OWNER, backend, LocalDecryptionOracle(backend, key=b"k"))
    engine.begin_block(5, 500.0)
    engine.add_provider(OWNER, PROVIDER)
    return engine


def populated_engine():
    engine = make_engine()
    b = engine.backend
    engine.open_batch(OWNER)
    engine.submit_order(PROVIDER, b.encrypt(1), b.encrypt(100), b.encrypt(9), None, True)
    engine.submit_order(PROVIDER, b.encrypt(1), b.encrypt(40), b.encrypt(9), b.as_opaque(50), False)
    return engine


async def call(server, method, params=None, req_id=1):
    payload = {"jsonrpc": "2.0", "method": method, "id": req_id}
    if params is not None:
        payload["params"] = params
    return json.loads(await server.handle_request(json.dumps(payload)))


class TestRPCServer:

    @pytest.mark.asyncio
    async def test_methods_registered(self):
        server = create_rpc_server(make_engine())
        methods = server.get_methods()
        for name in (
            "batch_getCurrentBatch",
            "batch_getOrderCount",
            "batch_getOrder",
            "batch_getDecryptionContext",
            "batch_getRoles",
            "batch_getStatus",
            "batch_isAvailable",
            "batch_getEvents",
        ):
            assert name in methods

    @pytest.mark.asyncio
    async def test_parse_error(self):
        server = create_rpc_server(make_engine())
        resp = json.loads(await server.handle_request("{not json"))
        assert resp["error"]["code"] == RPCErrorCode.PARSE_ERROR

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        resp = await call(create_rpc_server(make_engine()), "batch_openBatch")
        assert resp["error"]["code"] == RPCErrorCode.METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_wrong_version(self):
        server = create_rpc_server(make_engine())
        resp = json.loads(await server.handle_request(
            {"jsonrpc": "1.0", "method": "batch_getOrderCount", "id": 1}
        ))
        assert resp["error"]["code"] == RPCErrorCode.INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_batch_request(self):
        server = create_rpc_server(populated_engine())
        raw = await server.handle_request([
            {"jsonrpc": "2.0", "method": "batch_getOrderCount", "id": 1},
            {"jsonrpc": "2.0", "method": "batch_isAvailable", "id": 2},
            {"jsonrpc": "2.0", "method": "batch_getOrderCount"},
        ])
        responses = {r["id"]: r["result"] for r in json.loads(raw)}
        assert responses == {1: 2, 2: True}

    @pytest.mark.asyncio
    async def test_notification_has_no_response(self):
        server = create_rpc_server(make_engine())
        assert await server.handle_request({"jsonrpc": "2.0", "method": "batch_getStatus"}) is None

    @pytest.mark.asyncio
    async def test_bad_arity(self):
        resp = await call(create_rpc_server(make_engine()), "batch_getOrder", [1, 2, 3])
        assert resp["error"]["code"] == RPCErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_module_without_engine(self):
        server = RPCServer()
        server.register_module(BatchModule())
        resp = await call(server, "batch_getStatus")
        assert resp["error"]["code"] == RPCErrorCode.RESOURCE_UNAVAILABLE


class TestBatchModule:

    @pytest.mark.asyncio
    async def test_current_batch(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getCurrentBatch")
        assert resp["result"] == {"id": 1, "isOpen": True}

    @pytest.mark.asyncio
    async def test_get_order(self):
        engine = populated_engine()
        server = create_rpc_server(engine)
        result = (await call(server, "batch_getOrder", [1]))["result"]
        assert result["orderId"] == 1
        assert result["isAsk"] is False
        assert result["submitter"] == to_checksum_address(PROVIDER)
        assert result["blockHeight"] == 5
        assert result["amount"] == "0x" + engine.get_order(1).amount.to_bytes().hex()
        assert result["expiry"].startswith("0x")

    @pytest.mark.asyncio
    async def test_get_order_without_expiry(self):
        server = create_rpc_server(populated_engine())
        result = (await call(server, "batch_getOrder", {"order_id": 0}))["result"]
        assert result["expiry"] is None

    @pytest.mark.asyncio
    async def test_get_missing_order(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getOrder", [7])
        assert resp["error"]["code"] == RPCErrorCode.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_get_order_bad_id(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getOrder", ["seven"])
        assert resp["error"]["code"] == RPCErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_decryption_context(self):
        engine = populated_engine()
        request_id = engine.request_aggregate_decryption(OWNER, 1)
        server = create_rpc_server(engine)

        pending = (await call(server, "batch_getDecryptionContext", [request_id]))["result"]
        assert pending["status"] == "REQUESTED"
        assert pending["askVolume"] is None

        engine.oracle.deliver(request_id, engine.on_decryption_result)
        done = (await call(server, "batch_getDecryptionContext", [request_id]))["result"]
        assert done["processed"] is True
        assert (done["askVolume"], done["bidVolume"]) == (100, 40)
        assert done["stateHash"] == pending["stateHash"]

    @pytest.mark.asyncio
    async def test_missing_decryption_context(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getDecryptionContext", [1])
        assert resp["error"]["code"] == RPCErrorCode.RESOURCE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_roles(self):
        server = create_rpc_server(populated_engine())
        owner = (await call(server, "batch_getRoles", [OWNER]))["result"]
        assert owner["isOwner"] is True
        assert owner["isProvider"] is True

        provider = (await call(server, "batch_getRoles", [PROVIDER]))["result"]
        assert provider["isOwner"] is False
        assert provider["lastSubmission"] == 500.0

    @pytest.mark.asyncio
    async def test_roles_invalid_address(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getRoles", ["0x12"])
        assert resp["error"]["code"] == RPCErrorCode.INVALID_PARAMS

    @pytest.mark.asyncio
    async def test_status_and_availability(self):
        engine = populated_engine()
        server = create_rpc_server(engine)
        status = (await call(server, "batch_getStatus"))["result"]
        assert status["orderCount"] == 2
        assert status["blockHeight"] == 5

        engine.set_paused(OWNER, True)
        assert (await call(server, "batch_isAvailable"))["result"] is False

    @pytest.mark.asyncio
    async def test_events(self):
        server = create_rpc_server(populated_engine())
        events = (await call(server, "batch_getEvents"))["result"]
        assert [e["event"] for e in events] == [
            "ProviderAdded", "BatchOpened", "OrderSubmitted", "OrderSubmitted",
        ]

        submitted = (await call(server, "batch_getEvents", {"limit": 1, "event": "OrderSubmitted"}))["result"]
        assert len(submitted) == 1
        assert submitted[0]["orderId"] == 1

        assert (await call(server, "batch_getEvents", [0]))["result"] == []


class FaultyModule(RPCModule):
    namespace = "faulty"

    @rpc_method
    async def paused(self):
        raise PausedError("Engine is paused")

    @rpc_method
    async def drifted(self):
        raise StateMismatchError("Aggregate changed")

    @rpc_method
    async def crash(self):
        raise RuntimeError("unexpected")


class TestEngineErrorMapping:

    @pytest.mark.asyncio
    async def test_missing_order_names_error_class(self):
        server = create_rpc_server(populated_engine())
        error = (await call(server, "batch_getOrder", [9]))["error"]
        assert error["code"] == RPCErrorCode.RESOURCE_NOT_FOUND
        assert error["data"] == "OrderNotFoundError"

    @pytest.mark.asyncio
    async def test_invalid_address_names_error_class(self):
        server = create_rpc_server(populated_engine())
        error = (await call(server, "batch_getRoles", ["0x12"]))["error"]
        assert error["data"] == "InvalidAddressError"

    @pytest.mark.asyncio
    async def test_availability_error(self):
        server = RPCServer()
        server.register_module(FaultyModule())
        error = (await call(server, "faulty_paused"))["error"]
        assert error["code"] == RPCErrorCode.RESOURCE_UNAVAILABLE
        assert error["data"] == "PausedError"

    @pytest.mark.asyncio
    async def test_other_engine_errors(self):
        server = RPCServer()
        server.register_module(FaultyModule())
        error = (await call(server, "faulty_drifted"))["error"]
        assert error["code"] == RPCErrorCode.ENGINE_ERROR
        assert error["data"] == "StateMismatchError"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self):
        server = RPCServer()
        server.register_module(FaultyModule())
        error = (await call(server, "faulty_crash"))["error"]
        assert error["code"] == RPCErrorCode.INTERNAL_ERROR
        assert "data" not in error

    @pytest.mark.asyncio
    async def test_scalar_params_rejected(self):
        server = create_rpc_server(populated_engine())
        resp = await call(server, "batch_getOrder", 3)
        assert resp["error"]["code"] == RPCErrorCode.INVALID_PARAMS
