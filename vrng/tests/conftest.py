from __future__ import annotations

from typing import Callable, Optional

import pytest
from prometheus_client import CollectorRegistry

from vrng.coordinator import VRNGConsumer
from vrng.events import EventLog
from vrng.history import BlockHistory
from vrng.metrics import Metrics
from vrng.provider import LocalProvider


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> Metrics:
    return Metrics(registry=registry)


@pytest.fixture
def history() -> BlockHistory:
    """History with 300 sealed blocks, so the whole 256-block window is populated."""
    h = BlockHistory()
    h.mine(300)
    return h


@pytest.fixture
def provider() -> LocalProvider:
    return LocalProvider(name="test")


@pytest.fixture
def make_consumer(
    metrics: Metrics, history: BlockHistory, provider: LocalProvider
) -> Callable[..., VRNGConsumer]:
    """
    Build a consumer wired to the ``provider`` fixture.

    ``bind=False`` leaves the consumer without a provider binding.
    """

    def _make(
        method=1,
        *,
        on_fulfilled=None,
        events: Optional[EventLog] = None,
        bind: bool = True,
        name: str = "t",
    ) -> VRNGConsumer:
        consumer = VRNGConsumer(
            method,
            history=history,
            on_fulfilled=on_fulfilled,
            events=events,
            metrics=metrics,
            name=name,
        )
        if bind:
            provider.attach(consumer)
            consumer.bind_provider(provider)
        return consumer

    return _make
