"""
Veilbook JSON-RPC 2.0 Server

Transport-agnostic dispatcher for the engine's read surface. Engine errors
raised by a method are translated into JSON-RPC error objects by category:

    OrderNotFoundError, UnknownRequestError  → RESOURCE_NOT_FOUND
    InvalidAddressError, bad argument values → INVALID_PARAMS
    AvailabilityError (paused)               → RESOURCE_UNAVAILABLE
    any other VeilbookError                  → ENGINE_ERROR

The error's ``data`` member carries the exception class name.
"""

import asyncio
import json
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from ..exceptions import (
    AvailabilityError,
    InvalidAddressError,
    OrderNotFoundError,
    UnknownRequestError,
    VeilbookError,
)
from ..logger import get_logger

logger = get_logger(__name__)


class RPCErrorCode(IntEnum):
    """JSON-RPC 2.0 error codes used by the batch_* namespace."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Implementation-defined (-32000 to -32099)
    ENGINE_ERROR = -32000
    RESOURCE_NOT_FOUND = -32001
    RESOURCE_UNAVAILABLE = -32002


# Checked in order; the first matching base wins
_ENGINE_ERROR_CODES = (
    ((OrderNotFoundError, UnknownRequestError), RPCErrorCode.RESOURCE_NOT_FOUND),
    ((InvalidAddressError,), RPCErrorCode.INVALID_PARAMS),
    ((AvailabilityError,), RPCErrorCode.RESOURCE_UNAVAILABLE),
)


@dataclass
class RPCError(Exception):
    """JSON-RPC error."""

    code: int
    message: str
    data: Optional[Any] = None

    @classmethod
    def from_engine_error(cls, error: VeilbookError) -> "RPCError":
        code = RPCErrorCode.ENGINE_ERROR
        for bases, mapped in _ENGINE_ERROR_CODES:
            if isinstance(error, bases):
                code = mapped
                break
        return cls(code, str(error), data=type(error).__name__)

    def to_dict(self) -> dict:
        result = {"code": int(self.code), "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result


@dataclass
class RPCRequest:
    """JSON-RPC request."""

    jsonrpc: str
    method: str
    params: Union[List, Dict, None]
    id: Union[str, int, None]

    @classmethod
    def from_dict(cls, data: dict) -> "RPCRequest":
        return cls(
            jsonrpc=data.get("jsonrpc", "2.0"),
            method=data.get("method", ""),
            params=data.get("params"),
            id=data.get("id"),
        )

    @property
    def is_notification(self) -> bool:
        return self.id is None


def _response(request_id: Any, result: Any = None, error: Optional[RPCError] = None) -> dict:
    response = {"jsonrpc": "2.0", "id": request_id}
    if error is not None:
        response["error"] = error.to_dict()
    else:
        response["result"] = result
    return response


RPCMethod = Callable[..., Awaitable[Any]]


class RPCModule:
    """
    A namespace of RPC methods bound to a context object.

    Public coroutine methods decorated with @rpc_method are exposed as
    ``<namespace>_<name>``.
    """

    namespace: str = ""

    def __init__(self, context: Any = None):
        self.context = context

    def get_methods(self) -> Dict[str, RPCMethod]:
        methods = {}
        for name in dir(self):
            if name.startswith("_"):
                continue
            attr = getattr(self, name)
            if callable(attr) and getattr(attr, "__rpc_method__", False):
                methods[f"{self.namespace}_{name}"] = attr
        return methods


def rpc_method(func: RPCMethod) -> RPCMethod:
    """Mark a module coroutine as an RPC endpoint."""
    func.__rpc_method__ = True
    return func


class RPCServer:
    """Routes JSON-RPC requests to registered module methods."""

    def __init__(self):
        self._methods: Dict[str, RPCMethod] = {}

    def register_module(self, module: RPCModule) -> None:
        methods = module.get_methods()
        self._methods.update(methods)
        logger.info("Registered RPC module %s (%d methods)", module.namespace, len(methods))

    def get_methods(self) -> List[str]:
        return list(self._methods)

    async def handle_request(self, data: Union[str, bytes, dict, list]) -> Optional[str]:
        """
        Handle a single request or a batch.

        Returns:
            JSON response string, or None when only notifications were sent
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                error = RPCError(RPCErrorCode.PARSE_ERROR, f"Parse error: {e}")
                return json.dumps(_response(None, error=error))

        if isinstance(data, list):
            if not data:
                error = RPCError(RPCErrorCode.INVALID_REQUEST, "Empty batch")
                return json.dumps(_response(None, error=error))
            responses = await asyncio.gather(*(self._handle_single(item) for item in data))
            responses = [r for r in responses if r is not None]
            return json.dumps(responses) if responses else None

        response = await self._handle_single(data)
        return json.dumps(response) if response is not None else None

    async def _handle_single(self, data: Any) -> Optional[dict]:
        if not isinstance(data, dict):
            return _response(None, error=RPCError(RPCErrorCode.INVALID_REQUEST, "Invalid request"))

        request = RPCRequest.from_dict(data)
        if request.jsonrpc != "2.0":
            error = RPCError(RPCErrorCode.INVALID_REQUEST, "Invalid JSON-RPC version")
        elif not request.method:
            error = RPCError(RPCErrorCode.INVALID_REQUEST, "Missing method")
        elif request.method not in self._methods:
            error = RPCError(RPCErrorCode.METHOD_NOT_FOUND, f"Method not found: {request.method}")
        else:
            try:
                result = await self._invoke(self._methods[request.method], request.params)
            except RPCError as e:
                error = e
            except VeilbookError as e:
                error = RPCError.from_engine_error(e)
            except (TypeError, ValueError) as e:
                # wrong arity, unknown keyword, or an argument that fails conversion
                error = RPCError(RPCErrorCode.INVALID_PARAMS, str(e))
            except Exception as e:
                logger.exception("Error handling RPC method %s", request.method)
                error = RPCError(RPCErrorCode.INTERNAL_ERROR, str(e))
            else:
                return None if request.is_notification else _response(request.id, result)

        if request.is_notification:
            return None
        return _response(request.id, error=error)

    @staticmethod
    async def _invoke(handler: RPCMethod, params: Any) -> Any:
        if params is None:
            return await handler()
        if isinstance(params, list):
            return await handler(*params)
        if isinstance(params, dict):
            return await handler(**params)
        raise RPCError(RPCErrorCode.INVALID_PARAMS, "Params must be an array or object")
