"""
Veilbook Crypto Hashing Module

Provides the hash functions used by the engine:
- keccak256: binds decryption requests to aggregate ciphertexts
- state_hash: the request/callback binding digest
"""

from typing import Sequence, Union

from Crypto.Hash import keccak as _keccak
from eth_utils import to_canonical_address


def keccak256(data: Union[bytes, str]) -> bytes:
    """
    Compute Keccak-256 hash (Ethereum standard).

    Args:
        data: Input bytes or hex string

    Returns:
        32-byte hash
    """
    if isinstance(data, str):
        if data.startswith('0x') or data.startswith('0X'):
            data = bytes.fromhex(data[2:])
        else:
            data = bytes.fromhex(data)

    k = _keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def state_hash(ciphertexts: Sequence[bytes], self_address: str) -> bytes:
    """
    Digest binding a list of serialized ciphertexts to the engine instance.

    keccak256(ct_0 ‖ ct_1 ‖ … ‖ address20)
    """
    payload = b"".join(ciphertexts) + to_canonical_address(self_address)
    return keccak256(payload)
