from __future__ import annotations

import logging

import pytest

from vrng.events import REQUEST_CREATED, REQUEST_FULFILLED, Event, EventLog


def _collect(log: EventLog, name=None):
    seen = []
    log.subscribe(name, seen.append)
    return seen


def test_emit_outside_transaction_publishes_immediately():
    log = EventLog()
    seen = _collect(log)
    ev = log.emit(REQUEST_CREATED, {"request_id": 1})
    assert seen == [ev]
    assert log.events() == [ev]


def test_transaction_buffers_until_exit():
    log = EventLog()
    seen = _collect(log)
    with log.transaction():
        log.emit(REQUEST_CREATED, {"request_id": 1})
        assert seen == []
        assert log.events() == []
    assert [e.name for e in seen] == [REQUEST_CREATED]


def test_transaction_discards_on_error():
    log = EventLog()
    seen = _collect(log)
    with pytest.raises(RuntimeError):
        with log.transaction():
            log.emit(REQUEST_CREATED, {"request_id": 1})
            raise RuntimeError("boom")
    assert seen == []
    assert log.events() == []


def test_nested_transaction_merges_into_outer():
    log = EventLog()
    with pytest.raises(RuntimeError):
        with log.transaction():
            with log.transaction():
                log.emit(REQUEST_CREATED, {"request_id": 1})
            raise RuntimeError("outer fails")
    assert log.events() == []

    with log.transaction():
        log.emit(REQUEST_CREATED, {"request_id": 2})
        with pytest.raises(RuntimeError):
            with log.transaction():
                log.emit(REQUEST_CREATED, {"request_id": 3})
                raise RuntimeError("inner fails")
    assert [e.args["request_id"] for e in log.events()] == [2]


def test_listener_errors_are_logged_not_raised(caplog):
    log = EventLog()

    def bad(ev):
        raise RuntimeError("listener down")

    log.subscribe(None, bad)
    good = _collect(log)
    with caplog.at_level(logging.ERROR, logger="vrng.events"):
        log.emit(REQUEST_CREATED, {"request_id": 1})
    assert len(good) == 1
    assert "event_listener_failed" in caplog.text


def test_subscribe_by_name_and_unsubscribe():
    log = EventLog()
    created = _collect(log, REQUEST_CREATED)
    everything = []
    log.subscribe(None, everything.append)

    log.emit(REQUEST_CREATED, {"request_id": 1})
    log.emit(REQUEST_FULFILLED, {"request_id": 1, "normalized_value": 9})
    assert len(created) == 1
    assert len(everything) == 2

    log.unsubscribe(everything.append)
    log.emit(REQUEST_CREATED, {"request_id": 2})
    assert len(everything) == 2
    assert len(created) == 2


def test_subscribe_requires_callable():
    with pytest.raises(TypeError):
        EventLog().subscribe(None, "nope")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "name,args",
    [
        ("bad-name", {"x": 1}),
        ("", {"x": 1}),
        ("N" * 65, {"x": 1}),
        ("Ok", {"1bad": 1}),
        ("Ok", {"x": 1 << 256}),
        ("Ok", {"x": 1.5}),
        ("Ok", {"x": b"\x00" * 4097}),
        ("Ok", [("x", 1)]),
    ],
)
def test_emit_validation(name, args):
    log = EventLog()
    with pytest.raises(ValueError):
        log.emit(name, args)
    assert log.events() == []


def test_receipt_encoding():
    ev = Event("ProviderBound", {"provider": b"\xab\xcd", "none": None, "flag": True, "n": 7})
    assert ev.to_receipt() == {
        "name": "ProviderBound",
        "args": [
            {"k": "provider", "t": "b", "v": "0xabcd"},
            {"k": "none", "t": "b", "v": "0x"},
            {"k": "flag", "t": "z", "v": True},
            {"k": "n", "t": "i", "v": 7},
        ],
    }


def test_filter_receipt_and_clear():
    log = EventLog()
    log.emit(REQUEST_CREATED, {"request_id": 1})
    log.emit(REQUEST_FULFILLED, {"request_id": 1, "normalized_value": 2})
    assert [e.name for e in log.events(REQUEST_FULFILLED)] == [REQUEST_FULFILLED]
    assert [r["name"] for r in log.to_receipt()] == [REQUEST_CREATED, REQUEST_FULFILLED]
    log.clear()
    assert log.events() == []
