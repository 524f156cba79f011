"""
vrng.types: request records, enums and address helpers.

Addresses are raw bytes (32 bytes canonical). Hex strings, with or without
"0x", are accepted by :func:`to_address` and normalized to bytes so that
identity comparisons in the fulfillment path are plain byte equality.

All integers crossing the provider boundary (request ids, raw values and
normalized values) live in the uint256 domain.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Union

UINT256_MOD = 1 << 256
UINT256_MAX = UINT256_MOD - 1

ADDRESS_LEN = 32
ZERO_ADDRESS = b"\x00" * ADDRESS_LEN
ZERO_HASH = b"\x00" * 32

AddressLike = Union[bytes, bytearray, memoryview, str]


class RequestStatus(IntEnum):
    NONE = 0
    REQUESTED = 1
    FULFILLED = 2


class NormalizationMethod(IntEnum):
    """Post-processing applied to a provider's raw output."""

    HYPER_EFFICIENT = 0
    HASH_WITH_REQUEST_ID = 1
    MOST_NORMALIZED = 2


@dataclass(frozen=True)
class Request:
    """
    Snapshot of one request. ``normalized_value`` is meaningful only when
    ``status`` is FULFILLED and is 0 otherwise.
    """

    status: RequestStatus = RequestStatus.NONE
    normalized_value: int = 0

    @property
    def is_pending(self) -> bool:
        return self.status is RequestStatus.REQUESTED

    @property
    def is_fulfilled(self) -> bool:
        return self.status is RequestStatus.FULFILLED

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.name, "normalized_value": self.normalized_value}


EMPTY_REQUEST = Request()


def _strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def to_address(value: AddressLike) -> bytes:
    """
    Coerce ``value`` to address bytes.

    - str is read as hex (with or without '0x'); odd-length hex is rejected.
    - bytes-like objects are copied to immutable bytes.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        h = _strip_0x(value.strip())
        if len(h) % 2 != 0:
            raise ValueError(f"hex string must have even length, got {len(h)}")
        return bytes.fromhex(h)
    raise TypeError(f"cannot convert type {type(value).__name__} to an address")


def to_hex(b: Union[bytes, bytearray, memoryview]) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def require_uint256(name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise TypeError(f"{name} must be int, got {type(v).__name__}")
    if v < 0 or v > UINT256_MAX:
        raise ValueError(f"{name} out of uint256 range: {v}")
    return v


__all__ = [
    "UINT256_MOD",
    "UINT256_MAX",
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "ZERO_HASH",
    "AddressLike",
    "RequestStatus",
    "NormalizationMethod",
    "Request",
    "EMPTY_REQUEST",
    "to_address",
    "to_hex",
    "require_uint256",
]
