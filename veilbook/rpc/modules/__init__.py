"""RPC method namespaces."""

from .batch import BatchModule

__all__ = ["BatchModule"]
