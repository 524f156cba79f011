from __future__ import annotations

import json
import logging

import pytest

from vrng.logging import HANDLER_NAME, setup_logging, teardown_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    level = root.level
    yield root
    teardown_logging()
    root.setLevel(level)


def _last_json_line(text: str) -> dict:
    lines = [ln for ln in text.splitlines() if ln.startswith("{")]
    assert lines, text
    return json.loads(lines[-1])


def test_stdlib_records_render_as_json_with_extras(restore_root, capsys):
    setup_logging(service_name="vrng-test", level="INFO", log_format="json")
    logging.getLogger("vrng.coordinator").info(
        "request_created", extra={"consumer": "dice", "request_id": 4}
    )
    out = _last_json_line(capsys.readouterr().err)
    assert out["event"] == "request_created"
    assert out["consumer"] == "dice"
    assert out["request_id"] == 4
    assert out["service"] == "vrng-test"
    assert out["level"] == "info"
    assert out["logger"] == "vrng.coordinator"


def test_setup_is_idempotent(restore_root):
    setup_logging(level="DEBUG")
    setup_logging(level="WARNING")
    ours = [h for h in restore_root.handlers if h.get_name() == HANDLER_NAME]
    assert len(ours) == 1
    assert restore_root.level == logging.WARNING


def test_env_selects_level(restore_root, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "error")
    setup_logging()
    assert restore_root.level == logging.ERROR


def test_teardown_leaves_other_handlers(restore_root):
    other = logging.NullHandler()
    restore_root.addHandler(other)
    try:
        setup_logging()
        teardown_logging()
        assert other in restore_root.handlers
        assert all(h.get_name() != HANDLER_NAME for h in restore_root.handlers)
    finally:
        restore_root.removeHandler(other)
