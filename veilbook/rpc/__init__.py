"""
Veilbook RPC Module

JSON-RPC 2.0 read surface for the batching engine.
"""

from .server import RPCServer, RPCError, RPCErrorCode
from .modules import BatchModule


def create_rpc_server(engine) -> RPCServer:
    """RPC server with the batch_* namespace bound to *engine*."""
    server = RPCServer()
    server.register_module(BatchModule(engine))
    return server


__all__ = [
    "RPCServer",
    "RPCError",
    "RPCErrorCode",
    "BatchModule",
    "create_rpc_server",
]
