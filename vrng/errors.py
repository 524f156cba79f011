"""
vrng.errors
-----------

Exception hierarchy for the VRNG consumer.

Every validation failure of the request/fulfill protocol surfaces as one of
the classes below. They are raised synchronously to the immediate caller,
never retried internally, and leave coordinator state untouched.

Design goals
~~~~~~~~~~~~
- Stable codes: upper-snake ASCII identifiers suitable for logs and RPC.
- Deterministic payloads: ``details`` carry request ids and addresses only,
  never timestamps or host-specific data. Large values are summarized.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


def _truncate(data: Any, max_len: int = 256) -> Any:
    """
    Truncate large strings/bytes for safe inclusion in diagnostics.
    Bytes are rendered as 0x-hex so the result stays JSON friendly.
    """
    if isinstance(data, (bytes, bytearray)):
        b = bytes(data)
        if len(b) > max_len:
            return "0x" + b[:max_len].hex() + "..."
        return "0x" + b.hex()
    if isinstance(data, str):
        if len(data) <= max_len:
            return data
        return data[:max_len] + "..."
    if isinstance(data, (list, tuple)):
        return [_truncate(x, max_len) for x in data[:16]] + (
            ["..."] if len(data) > 16 else []
        )
    if isinstance(data, dict):
        out: Dict[str, Any] = {}
        for i, (k, v) in enumerate(data.items()):
            if i >= 16:
                out["..."] = "truncated"
                break
            out[str(k)] = _truncate(v, max_len)
        return out
    return data


class VRNGError(Exception):
    """
    Base class for coordinator errors.

    Attributes
    ----------
    code : str
        Stable, upper-snake ASCII identifier (e.g., 'ONLY_PROVIDER').
    message : str
        Human-friendly explanation (single line).
    details : dict
        Structured data safe to expose in logs.
    """

    code: str = "VRNG_ERROR"

    def __init__(
        self,
        message: str = "vrng error",
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = _truncate(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


class NotInitialized(VRNGError):
    """A request was attempted while no provider is bound."""

    code = "NOT_INITIALIZED"

    def __init__(self, message: str = "no randomness provider bound") -> None:
        super().__init__(message)


class InvalidRequestId(VRNGError):
    """
    The provider handed out an identifier the coordinator has already seen
    (collision or replay at the provider boundary).
    """

    code = "INVALID_REQUEST_ID"

    def __init__(self, *, request_id: int, status: str) -> None:
        super().__init__(
            f"request id {request_id} already in use",
            details={"request_id": request_id, "status": status},
        )
        self.request_id = request_id


class InvalidFulfillment(VRNGError):
    """
    Fulfillment for an identifier that is not awaiting one: either never
    requested or already fulfilled.
    """

    code = "INVALID_FULFILLMENT"

    def __init__(self, *, request_id: int, status: str) -> None:
        super().__init__(
            f"request {request_id} is not awaiting fulfillment",
            details={"request_id": request_id, "status": status},
        )
        self.request_id = request_id


class OnlyProvider(VRNGError):
    """Fulfillment attempted by a caller other than the bound provider."""

    code = "ONLY_PROVIDER"

    def __init__(self, *, caller: bytes, provider: Optional[bytes]) -> None:
        super().__init__(
            "only the bound provider may fulfill requests",
            details={"caller": caller, "provider": provider},
        )
        self.caller = caller


class InvalidNormalizationMethod(VRNGError):
    """Construction with a normalization method outside the supported set."""

    code = "INVALID_NORMALIZATION_METHOD"

    def __init__(self, method: Any, *, reason: Optional[str] = None) -> None:
        super().__init__(
            reason or f"unsupported normalization method: {method!r}",
            details={"method": repr(method)},
        )
        self.method = method


class AddressCollision(VRNGError):
    """A consumer is already deployed at the derived address."""

    code = "ADDRESS_COLLISION"

    def __init__(self, *, address: bytes) -> None:
        super().__init__(
            "a consumer is already deployed at this address",
            details={"address": address},
        )
        self.address = address


class NotOwner(VRNGError):
    """A privileged host operation was called by a non-owner."""

    code = "NOT_OWNER"

    def __init__(self, *, caller: bytes) -> None:
        super().__init__("caller is not the owner", details={"caller": caller})


__all__ = [
    "VRNGError",
    "NotInitialized",
    "InvalidRequestId",
    "InvalidFulfillment",
    "OnlyProvider",
    "InvalidNormalizationMethod",
    "AddressCollision",
    "NotOwner",
]
