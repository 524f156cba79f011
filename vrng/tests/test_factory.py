from __future__ import annotations

import pytest

from vrng.errors import AddressCollision, InvalidNormalizationMethod
from vrng.factory import ConsumerFactory
from vrng.provider import LocalProvider
from vrng.types import ZERO_ADDRESS, NormalizationMethod, RequestStatus

DEPLOYER = b"\xde" * 32


@pytest.fixture
def factory(history, metrics) -> ConsumerFactory:
    return ConsumerFactory(DEPLOYER, history=history, metrics=metrics)


def test_unsalted_deploy_uses_nonce(factory):
    predicted = factory.predict_address()
    a1, c1 = factory.deploy(NormalizationMethod.HYPER_EFFICIENT)
    a2, _ = factory.deploy(NormalizationMethod.HYPER_EFFICIENT)
    assert a1 == predicted
    assert a1 != a2
    assert len(a1) == 32
    assert factory.get(a1) is c1
    assert len(factory) == 2


def test_salted_address_is_predictable(factory):
    predicted = factory.predict_address(salt=b"dice")
    addr, consumer = factory.deploy("hash", salt=b"dice")
    assert addr == predicted
    assert consumer.method is NormalizationMethod.HASH_WITH_REQUEST_ID
    # salted deploys leave the nonce alone
    assert factory.predict_address() == ConsumerFactory(DEPLOYER).predict_address()


def test_salted_address_depends_on_deployer(factory):
    other = ConsumerFactory(b"\x01" * 32)
    assert factory.predict_address(salt=1) != other.predict_address(salt=1)


def test_salt_reuse_collides(factory):
    factory.deploy(0, salt=7)
    with pytest.raises(AddressCollision):
        factory.deploy(1, salt=7)
    assert len(factory) == 1


def test_salt_forms():
    f = ConsumerFactory(DEPLOYER)
    assert f.predict_address(salt=1) == f.predict_address(salt=b"\x01")
    assert f.predict_address(salt="a") != f.predict_address(salt=b"a")
    with pytest.raises(ValueError):
        f.predict_address(salt=b"\x00" * 33)


def test_invalid_method_registers_nothing(factory):
    before = factory.predict_address()
    with pytest.raises(InvalidNormalizationMethod):
        factory.deploy(3)
    assert len(factory) == 0
    assert factory.predict_address() == before


def test_try_deploy_returns_zero_address_on_failure(factory):
    before = factory.predict_address()
    assert factory.try_deploy(3) == ZERO_ADDRESS
    assert factory.try_deploy("bogus", salt=b"x") == ZERO_ADDRESS
    assert len(factory) == 0
    assert factory.predict_address() == before
    assert factory.get(ZERO_ADDRESS) is None

    addr = factory.try_deploy(2)
    assert addr == before
    assert factory.get(addr).method is NormalizationMethod.MOST_NORMALIZED


def test_most_normalized_without_history_fails(metrics):
    f = ConsumerFactory(DEPLOYER, metrics=metrics)
    assert f.try_deploy(NormalizationMethod.MOST_NORMALIZED) == ZERO_ADDRESS


def test_deployed_consumers_have_isolated_state(factory):
    _, a = factory.deploy(0)
    _, b = factory.deploy(0)
    pa, pb = LocalProvider(name="a"), LocalProvider(name="b")
    pa.attach(a)
    pb.attach(b)
    a.bind_provider(pa)
    b.bind_provider(pb)

    rid = a.request_random_number()
    assert b.get_request(rid).status is RequestStatus.NONE
    b.request_random_number()
    pa.fulfill(rid, 1)
    assert a.get_request(rid).is_fulfilled
    assert b.get_request(rid).is_pending
