"""
vrng.provider
=============

The provider side of the request/fulfill protocol.

A provider accepts ``request_random_number(trace_id)`` synchronously and
returns a fresh request id; later it calls the consumer's
``fulfill(request_id, raw_value, caller=<its address>)`` exactly once per
accepted id. How the provider produces its raw values (drand, commit/reveal,
a VRF) is not visible to the consumer.

``LocalProvider`` is an in-process provider for development, the CLI
simulator and tests. It hands out sequential ids, remembers each trace id and
fires each accepted id at most once.
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from .hashing import digest_to_int, keccak256, keccak_words
from .types import AddressLike, require_uint256, to_address

log = logging.getLogger("vrng.provider")


@runtime_checkable
class VRNGProvider(Protocol):
    address: bytes

    def request_random_number(self, trace_id: int) -> int: ...


@runtime_checkable
class Fulfillable(Protocol):
    def fulfill(self, request_id: int, raw_value: int, *, caller: bytes) -> None: ...


RawSource = Callable[[int], int]


def provider_address(label: str) -> bytes:
    """Stable 32-byte address for a named provider."""
    return keccak256(b"vrng.provider:" + label.encode("utf-8"))


def derive_raw_value(seed: Union[bytes, str], request_id: int) -> int:
    """
    Deterministic stand-in for a provider's raw output:
    ``keccak256(keccak256(seed) || u256(request_id))``.
    """
    s = seed.encode("utf-8") if isinstance(seed, str) else bytes(seed)
    return digest_to_int(keccak_words(keccak256(s), request_id))


class LocalProvider:
    """
    Sequential-id provider living in the same process as its consumer.

    Parameters
    ----------
    address:
        Identity used when calling back. Defaults to ``provider_address(name)``.
    name:
        Label used to derive the default address and in logs.
    first_id:
        First request id handed out.
    """

    def __init__(
        self,
        address: Optional[AddressLike] = None,
        *,
        name: str = "local",
        first_id: int = 1,
    ) -> None:
        self.name = name
        self.address: bytes = to_address(address) if address is not None else provider_address(name)
        self._next_id = require_uint256("first_id", first_id)
        self._lock = RLock()
        self._consumer: Optional[Fulfillable] = None
        self._traces: Dict[int, int] = {}
        self._pending: List[int] = []
        self._delivered: Dict[int, int] = {}
        self._failures: Dict[int, Exception] = {}

    def attach(self, consumer: Fulfillable) -> None:
        """Set the consumer that callbacks are delivered to."""
        self._consumer = consumer

    # --- provider surface ----------------------------------------------------

    def request_random_number(self, trace_id: int = 0) -> int:
        with self._lock:
            rid = self._next_id
            self._next_id += 1
            self._traces[rid] = trace_id
            self._pending.append(rid)
        log.debug("provider_request_accepted", extra={"provider": self.name, "request_id": rid})
        return rid

    # --- callbacks -----------------------------------------------------------

    def fulfill(self, request_id: int, raw_value: int) -> None:
        """
        Deliver ``raw_value`` for ``request_id`` to the attached consumer.

        The id is marked delivered before the callback runs: if the consumer
        rejects it, it is not fired again.
        """
        require_uint256("raw_value", raw_value)
        with self._lock:
            if self._consumer is None:
                raise RuntimeError("no consumer attached")
            if request_id not in self._pending:
                raise ValueError(f"request {request_id} is not pending at provider {self.name}")
            self._pending.remove(request_id)
            self._delivered[request_id] = raw_value
            consumer = self._consumer
        log.debug(
            "provider_fulfill",
            extra={"provider": self.name, "request_id": request_id},
        )
        consumer.fulfill(request_id, raw_value, caller=self.address)

    def fulfill_pending(self, raw_source: RawSource) -> List[int]:
        """
        Fulfill every pending request with ``raw_source(request_id)``.

        Returns the ids whose callback completed. An error for one id does not
        stop the batch; it is logged and kept in :meth:`failures`. An id whose
        consumer callback raised is spent (see :meth:`fulfill`); an id whose
        raw value could not be produced stays pending.
        """
        done: List[int] = []
        for rid in self.pending():
            try:
                self.fulfill(rid, raw_source(rid))
            except Exception as e:
                with self._lock:
                    self._failures[rid] = e
                log.warning(
                    "provider_callback_failed",
                    extra={"provider": self.name, "request_id": rid, "error": repr(e)},
                )
                continue
            done.append(rid)
        return done

    # --- views ---------------------------------------------------------------

    def pending(self) -> List[int]:
        with self._lock:
            return list(self._pending)

    def trace_id_of(self, request_id: int) -> Optional[int]:
        with self._lock:
            return self._traces.get(request_id)

    def delivered_value(self, request_id: int) -> Optional[int]:
        with self._lock:
            return self._delivered.get(request_id)

    def failures(self) -> Dict[int, Exception]:
        """Callback errors seen by :meth:`fulfill_pending`, keyed by request id."""
        with self._lock:
            return dict(self._failures)


__all__ = [
    "VRNGProvider",
    "Fulfillable",
    "RawSource",
    "provider_address",
    "derive_raw_value",
    "LocalProvider",
]
