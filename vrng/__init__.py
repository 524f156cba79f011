"""
vrng
----

Asynchronous randomness requests for host programs.

A host composes a :class:`VRNGConsumer`, binds an external provider, issues
requests and receives normalized values through an ``on_fulfilled`` hook once
the provider calls back. Three normalization methods are available; see
:mod:`vrng.normalize`.

    from vrng import LocalProvider, NormalizationMethod, VRNGConsumer

    provider = LocalProvider()
    consumer = VRNGConsumer(NormalizationMethod.HASH_WITH_REQUEST_ID)
    provider.attach(consumer)
    consumer.bind_provider(provider)
    rid = consumer.request_random_number()
    provider.fulfill(rid, 12345)
    consumer.get_request(rid).normalized_value
"""

from __future__ import annotations

from .coordinator import RequestCoordinator, VRNGConsumer
from .errors import (
    AddressCollision,
    InvalidFulfillment,
    InvalidNormalizationMethod,
    InvalidRequestId,
    NotInitialized,
    NotOwner,
    OnlyProvider,
    VRNGError,
)
from .events import Event, EventLog
from .factory import ConsumerFactory
from .history import BLOCKHASH_WINDOW, BlockHistory
from .host import OwnedRandomConsumer
from .normalize import Normalizer
from .provider import LocalProvider, VRNGProvider
from .types import NormalizationMethod, Request, RequestStatus
from .version import __version__

__all__ = [
    "__version__",
    "VRNGConsumer",
    "RequestCoordinator",
    "ConsumerFactory",
    "OwnedRandomConsumer",
    "LocalProvider",
    "VRNGProvider",
    "Normalizer",
    "NormalizationMethod",
    "Request",
    "RequestStatus",
    "Event",
    "EventLog",
    "BLOCKHASH_WINDOW",
    "BlockHistory",
    "VRNGError",
    "NotInitialized",
    "InvalidRequestId",
    "InvalidFulfillment",
    "OnlyProvider",
    "InvalidNormalizationMethod",
    "AddressCollision",
    "NotOwner",
]
