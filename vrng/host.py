"""
vrng.host
=========

A small host program composing a :class:`~vrng.coordinator.VRNGConsumer`.

It shows the pieces a real application adds around the coordinator:

- an owner that alone may bind or swap the provider (``set_provider``),
- a public entrypoint that issues requests (``roll``),
- an ``on_fulfilled`` hook that stores results for later reads.

Ownership mirrors the usual Ownable pattern: set once at construction,
transferable, and renounceable (leaving the provider frozen).
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .coordinator import VRNGConsumer
from .errors import NotOwner
from .events import EventLog
from .history import BlockHashSource
from .metrics import Metrics
from .normalize import MethodLike
from .provider import VRNGProvider
from .types import AddressLike, Request, to_address, to_hex

log = logging.getLogger("vrng.host")


class OwnedRandomConsumer:
    def __init__(
        self,
        owner: AddressLike,
        method: MethodLike,
        *,
        history: Optional[BlockHashSource] = None,
        events: Optional[EventLog] = None,
        metrics: Optional[Metrics] = None,
        name: str = "owned",
    ) -> None:
        self._owner: Optional[bytes] = to_address(owner)
        self.results: Dict[int, int] = {}
        self.hook_calls: List[Tuple[int, int]] = []
        self.vrng = VRNGConsumer(
            method,
            history=history,
            on_fulfilled=self._on_fulfilled,
            events=events,
            metrics=metrics,
            name=name,
        )

    # --- ownership ------------------------------------------------------------

    @property
    def owner(self) -> Optional[bytes]:
        return self._owner

    def require_owner(self, caller: AddressLike) -> None:
        c = to_address(caller)
        if self._owner is None or c != self._owner:
            raise NotOwner(caller=c)

    def transfer_ownership(self, new_owner: AddressLike, *, caller: AddressLike) -> None:
        self.require_owner(caller)
        new = to_address(new_owner)
        if not new:
            raise ValueError("new owner must be non-empty; use renounce_ownership")
        log.info(
            "ownership_transferred",
            extra={"previous": to_hex(self._owner or b""), "new": to_hex(new)},
        )
        self._owner = new

    def renounce_ownership(self, *, caller: AddressLike) -> None:
        self.require_owner(caller)
        self._owner = None

    # --- privileged -----------------------------------------------------------

    def set_provider(self, provider: Optional[VRNGProvider], *, caller: AddressLike) -> None:
        self.require_owner(caller)
        self.vrng.bind_provider(provider)

    # --- public ---------------------------------------------------------------

    def roll(self, trace_id: int = 0) -> int:
        return self.vrng.request_random_number(trace_id)

    def result_of(self, request_id: int) -> Optional[int]:
        return self.results.get(request_id)

    def request(self, request_id: int) -> Request:
        return self.vrng.get_request(request_id)

    # --- hook -----------------------------------------------------------------

    def _on_fulfilled(self, request_id: int, normalized_value: int) -> None:
        self.hook_calls.append((request_id, normalized_value))
        self.results[request_id] = normalized_value


__all__ = ["OwnedRandomConsumer"]
