"""
Veilbook Confidential Order-Batching Engine

Core imports are lazily loaded so that importing a submodule does not pull
in the whole engine. For direct module access, import from submodules:

    from veilbook.engine import BatchEngine
    from veilbook.crypto import ReferenceBackend
    from veilbook.oracle import LocalDecryptionOracle
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'BatchEngine':
        from .engine import BatchEngine
        return BatchEngine
    elif name == 'ReferenceBackend':
        from .crypto import ReferenceBackend
        return ReferenceBackend
    elif name == 'LocalDecryptionOracle':
        from .oracle import LocalDecryptionOracle
        return LocalDecryptionOracle
    elif name == 'VeilbookError':
        from .exceptions import VeilbookError
        return VeilbookError
    raise AttributeError(f"module 'veilbook' has no attribute {name!r}")

__all__ = ['BatchEngine', 'ReferenceBackend', 'LocalDecryptionOracle', 'VeilbookError']
