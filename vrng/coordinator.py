"""
vrng.coordinator
================

``VRNGConsumer``, the request coordinator a host program composes to obtain
randomness from an external provider.

Protocol
--------
    host                     coordinator                     provider
     | request_random_number  |                                |
     |----------------------->| request_random_number(trace)   |
     |                        |------------------------------->|
     |                        |<------------- request_id ------|
     |<------ request_id -----|  REQUESTED, RequestCreated      |
     |                        |                                |
     |                        |<-- fulfill(id, raw, caller) ---|
     |                        |  auth, state check, normalize  |
     |                        |  FULFILLED, RequestFulfilled   |
     |<-- on_fulfilled(id, v) |                                |

Per request id the state moves ``NONE -> REQUESTED -> FULFILLED`` and never
back. Every public mutation runs inside a state checkpoint and an event
transaction: a failure anywhere, including inside the host hook, leaves state,
the published event stream and the request/fulfillment metrics exactly as they
were.

The FULFILLED write happens before the hook runs, so a hook that calls
``fulfill`` again for the same id is rejected with ``InvalidFulfillment``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Iterator, List, Optional

from .errors import InvalidFulfillment, InvalidRequestId, NotInitialized, OnlyProvider, VRNGError
from .events import PROVIDER_BOUND, REQUEST_CREATED, REQUEST_FULFILLED, EventLog
from .history import BlockHashSource
from .metrics import Metrics, get_metrics
from .normalize import MethodLike, Normalizer
from .provider import VRNGProvider
from .state import CoordinatorState
from .types import (
    AddressLike,
    NormalizationMethod,
    Request,
    RequestStatus,
    require_uint256,
    to_address,
    to_hex,
)

log = logging.getLogger("vrng.coordinator")

FulfilledHook = Callable[[int, int], Any]


@dataclass(frozen=True)
class _Binding:
    """A bound provider and its address, normalized once at bind time."""

    provider: VRNGProvider
    address: bytes


class VRNGConsumer:
    """
    Request coordinator bound to one normalization method for its lifetime.

    Parameters
    ----------
    method:
        Normalization method (enum member, int or name). An unsupported value
        raises ``InvalidNormalizationMethod`` and no instance is created.
    history:
        Block-hash source; required for ``MOST_NORMALIZED``.
    on_fulfilled:
        Host hook called as ``on_fulfilled(request_id, normalized_value)``
        once per successful fulfillment, after the state commit.
    events:
        Event log to emit into. A private one is created by default.
    metrics:
        Prometheus instruments; defaults to the process-wide instance.
    name:
        Label used in logs and metrics.
    """

    def __init__(
        self,
        method: MethodLike = NormalizationMethod.HASH_WITH_REQUEST_ID,
        *,
        history: Optional[BlockHashSource] = None,
        on_fulfilled: Optional[FulfilledHook] = None,
        events: Optional[EventLog] = None,
        metrics: Optional[Metrics] = None,
        name: str = "vrng",
    ) -> None:
        self._normalizer = Normalizer.for_method(method, history)
        self._state = CoordinatorState()
        self._events = events if events is not None else EventLog()
        self._metrics = metrics if metrics is not None else get_metrics()
        self._on_fulfilled = on_fulfilled
        self._lock = RLock()
        # Metric updates staged until the outermost checkpoint commits.
        self._staged_metrics: List[Callable[[], None]] = []
        self.name = name
        log.debug(
            "consumer_created",
            extra={"consumer": name, "method": self._normalizer.method.name},
        )

    # ------------------------------------------------------------------ views

    @property
    def method(self) -> NormalizationMethod:
        return self._normalizer.method

    @property
    def normalizer(self) -> Normalizer:
        return self._normalizer

    @property
    def events(self) -> EventLog:
        return self._events

    def current_provider(self) -> Optional[VRNGProvider]:
        with self._lock:
            binding = self._state.provider
            return binding.provider if binding is not None else None

    def get_request(self, request_id: int) -> Request:
        with self._lock:
            return self._state.get_request(request_id)

    def pending_request_ids(self) -> List[int]:
        with self._lock:
            return self._state.request_ids(RequestStatus.REQUESTED)

    # -------------------------------------------------------------- mutations

    def bind_provider(self, provider: Optional[VRNGProvider]) -> None:
        """
        Set or replace the trusted provider; ``None`` disables requests.

        The provider's ``address`` may be bytes or hex; it is normalized to
        bytes here and later callers are compared against that value.
        Privileged: the host decides who may reach this method.
        """
        binding = None
        if provider is not None:
            binding = _Binding(provider, to_address(provider.address))
        address = binding.address if binding is not None else None
        with self._lock, self._atomic():
            self._state.set_provider(binding)
            self._events.emit(PROVIDER_BOUND, {"provider": address})
        log.info(
            "provider_bound",
            extra={"consumer": self.name, "provider": to_hex(address) if address else None},
        )

    def request_random_number(self, trace_id: int = 0) -> int:
        """
        Ask the bound provider for a random number; returns its request id.

        Raises ``NotInitialized`` without a provider and ``InvalidRequestId``
        if the provider hands out an id this coordinator has already seen.
        """
        require_uint256("trace_id", trace_id)
        with self._lock:
            binding = self._state.provider
            if binding is None:
                raise self._reject(NotInitialized())

            request_id = require_uint256(
                "request_id", binding.provider.request_random_number(trace_id)
            )
            current = self._state.get_request(request_id)
            if current.status is not RequestStatus.NONE:
                raise self._reject(
                    InvalidRequestId(request_id=request_id, status=current.status.name)
                )

            with self._atomic():
                self._state.put_request(request_id, Request(RequestStatus.REQUESTED))
                self._events.emit(REQUEST_CREATED, {"request_id": request_id})
                self._staged_metrics.append(lambda: self._metrics.record_request(self.name))

        log.info(
            "request_created",
            extra={"consumer": self.name, "request_id": request_id, "trace_id": trace_id},
        )
        return request_id

    def fulfill(self, request_id: int, raw_value: int, *, caller: AddressLike) -> None:
        """
        Provider callback completing ``request_id`` with ``raw_value``.

        Raises ``OnlyProvider`` unless ``caller`` is the bound provider's
        address and ``InvalidFulfillment`` unless the request is awaiting
        fulfillment.
        """
        sender = to_address(caller)
        with self._lock:
            binding = self._state.provider
            bound = binding.address if binding is not None else None
            if bound is None or sender != bound:
                raise self._reject(OnlyProvider(caller=sender, provider=bound))

            current = self._state.get_request(request_id)
            if current.status is not RequestStatus.REQUESTED:
                raise self._reject(
                    InvalidFulfillment(request_id=request_id, status=current.status.name)
                )

            require_uint256("raw_value", raw_value)
            normalized = self._normalizer(raw_value, request_id)
            method = self.method.name.lower()

            with self._atomic():
                self._state.put_request(
                    request_id, Request(RequestStatus.FULFILLED, normalized)
                )
                self._events.emit(
                    REQUEST_FULFILLED,
                    {"request_id": request_id, "normalized_value": normalized},
                )
                self._staged_metrics.append(
                    lambda: self._metrics.record_fulfillment(self.name, method)
                )
                if self._on_fulfilled is not None:
                    self._run_hook(request_id, normalized)

        log.info(
            "request_fulfilled",
            extra={"consumer": self.name, "request_id": request_id},
        )

    # -------------------------------------------------------------- internals

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        """
        Event transaction + state checkpoint. Metric updates staged inside
        are applied once the outermost checkpoint commits and dropped if any
        enclosing one reverts.
        """
        mark = len(self._staged_metrics)
        try:
            with self._events.transaction(), self._state.checkpoint():
                yield
        except BaseException:
            del self._staged_metrics[mark:]
            raise
        if self._state.depth() == 0:
            staged, self._staged_metrics = self._staged_metrics, []
            for apply in staged:
                apply()

    def _run_hook(self, request_id: int, normalized: int) -> None:
        try:
            with self._metrics.hook_timer():
                self._on_fulfilled(request_id, normalized)  # type: ignore[misc]
        except Exception as e:
            log.warning(
                "on_fulfilled_failed; fulfillment reverted",
                extra={"consumer": self.name, "request_id": request_id, "error": repr(e)},
            )
            raise

    def _reject(self, err: VRNGError) -> VRNGError:
        self._metrics.record_rejection(self.name, err.code)
        log.debug(
            "rejected",
            extra={"consumer": self.name, "code": err.code, "details": err.details},
        )
        return err

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"VRNGConsumer(name={self.name!r}, method={self.method.name})"


# Alias matching the protocol vocabulary.
RequestCoordinator = VRNGConsumer

__all__ = ["FulfilledHook", "VRNGConsumer", "RequestCoordinator"]
