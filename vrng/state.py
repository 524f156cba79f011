"""
vrng.state: coordinator state with journaled checkpoints.

``CoordinatorState`` holds the provider binding and the request table of one
coordinator. Writes go to the top overlay of a checkpoint stack; reads consult
overlays from top to base. ``commit()`` merges the top overlay into the next
layer (or the base if it is the last one), ``revert()`` discards it.

    st = CoordinatorState()
    with st.checkpoint():
        st.put_request(7, Request(RequestStatus.REQUESTED))
        ...                       # an exception here undoes the write

Nesting is allowed, so a hook that calls back into the coordinator opens an
inner checkpoint whose changes fold into the outer one.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .types import EMPTY_REQUEST, Request, RequestStatus

_UNSET = object()


@dataclass
class _Overlay:
    """One journal layer: staged request writes and, optionally, a provider swap."""

    requests: Dict[int, Request] = field(default_factory=dict)
    provider: Any = _UNSET


class CoordinatorState:
    def __init__(self) -> None:
        self._provider: Any = None
        self._requests: Dict[int, Request] = {}
        self._layers: List[_Overlay] = []

    # --- checkpoints ---------------------------------------------------------

    def depth(self) -> int:
        return len(self._layers)

    def begin(self) -> int:
        self._layers.append(_Overlay())
        return len(self._layers)

    def commit(self) -> None:
        if not self._layers:
            raise RuntimeError("commit without checkpoint")
        top = self._layers.pop()
        if self._layers:
            parent = self._layers[-1]
            parent.requests.update(top.requests)
            if top.provider is not _UNSET:
                parent.provider = top.provider
            return
        self._requests.update(top.requests)
        if top.provider is not _UNSET:
            self._provider = top.provider

    def revert(self) -> None:
        if not self._layers:
            raise RuntimeError("revert without checkpoint")
        self._layers.pop()

    @contextmanager
    def checkpoint(self) -> Iterator[None]:
        """Commit on clean exit, revert on any exception."""
        self.begin()
        try:
            yield
        except BaseException:
            self.revert()
            raise
        self.commit()

    # --- provider binding ----------------------------------------------------

    @property
    def provider(self) -> Any:
        for layer in reversed(self._layers):
            if layer.provider is not _UNSET:
                return layer.provider
        return self._provider

    def set_provider(self, provider: Any) -> None:
        if self._layers:
            self._layers[-1].provider = provider
        else:
            self._provider = provider

    # --- requests ------------------------------------------------------------

    def get_request(self, request_id: int) -> Request:
        for layer in reversed(self._layers):
            if request_id in layer.requests:
                return layer.requests[request_id]
        return self._requests.get(request_id, EMPTY_REQUEST)

    def put_request(self, request_id: int, request: Request) -> None:
        if self._layers:
            self._layers[-1].requests[request_id] = request
        else:
            self._requests[request_id] = request

    def _merged(self) -> Dict[int, Request]:
        merged = dict(self._requests)
        for layer in self._layers:
            merged.update(layer.requests)
        return merged

    def request_ids(self, status: Optional[RequestStatus] = None) -> List[int]:
        """Known request ids (optionally filtered by status), ascending."""
        return sorted(
            rid for rid, req in self._merged().items() if status is None or req.status is status
        )

    def __len__(self) -> int:
        return len(self._merged())


__all__ = ["CoordinatorState"]
