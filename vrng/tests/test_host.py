from __future__ import annotations

import pytest

from vrng.errors import NotOwner
from vrng.host import OwnedRandomConsumer
from vrng.provider import LocalProvider
from vrng.types import NormalizationMethod, RequestStatus

OWNER = b"\x0a" * 32
ALICE = b"\x0b" * 32


@pytest.fixture
def host(history, metrics) -> OwnedRandomConsumer:
    return OwnedRandomConsumer(
        OWNER, NormalizationMethod.HYPER_EFFICIENT, history=history, metrics=metrics
    )


@pytest.fixture
def wired(host, provider):
    provider.attach(host.vrng)
    host.set_provider(provider, caller=OWNER)
    return host


def test_only_owner_sets_provider(host, provider):
    with pytest.raises(NotOwner):
        host.set_provider(provider, caller=ALICE)
    assert host.vrng.current_provider() is None
    host.set_provider(provider, caller=OWNER)
    assert host.vrng.current_provider() is provider


def test_roll_and_results(wired, provider):
    rid = wired.roll(trace_id=3)
    assert wired.request(rid).status is RequestStatus.REQUESTED
    assert wired.result_of(rid) is None

    provider.fulfill(rid, 100)
    assert wired.result_of(rid) == rid + 100
    assert wired.hook_calls == [(rid, rid + 100)]
    assert provider.trace_id_of(rid) == 3


def test_hook_runs_once_per_request(wired, provider):
    ids = [wired.roll() for _ in range(3)]
    provider.fulfill_pending(lambda rid: 1)
    assert [rid for rid, _ in wired.hook_calls] == ids


def test_transfer_ownership(host, provider):
    host.transfer_ownership(ALICE, caller=OWNER)
    assert host.owner == ALICE
    with pytest.raises(NotOwner):
        host.set_provider(provider, caller=OWNER)
    host.set_provider(provider, caller=ALICE)

    with pytest.raises(ValueError):
        host.transfer_ownership(b"", caller=ALICE)
    with pytest.raises(NotOwner):
        host.transfer_ownership(OWNER, caller=OWNER)


def test_renounce_freezes_provider(host, provider):
    host.renounce_ownership(caller=OWNER)
    assert host.owner is None
    with pytest.raises(NotOwner):
        host.set_provider(provider, caller=OWNER)
