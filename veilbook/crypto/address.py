"""
Address helpers.

All addresses handled by the engine are 20-byte hex strings normalized to
EIP-55 checksum form so that role and timestamp maps have a single key per
account.
"""

from eth_utils import is_address, to_checksum_address

from ..constants import ZERO_ADDRESS
from ..exceptions import InvalidAddressError


def normalize_address(address: str) -> str:
    """Validate *address* and return its checksum form."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def is_zero_address(address: str) -> bool:
    return normalize_address(address) == to_checksum_address(ZERO_ADDRESS)
