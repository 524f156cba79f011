from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple

log = logging.getLogger("vrng.events")

REQUEST_CREATED = "RequestCreated"
REQUEST_FULFILLED = "RequestFulfilled"
PROVIDER_BOUND = "ProviderBound"

# Basic bounds (generous; indexers only rely on them being enforced).
MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

# Names and keys are identifier-like.
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Listener = Callable[["Event"], None]


@dataclass(frozen=True)
class Event:
    """An observable coordinator event."""

    name: str
    args: Dict[str, Any]

    def to_receipt(self) -> Dict[str, Any]:
        """
        Canonical form for indexers:

            {"name": ..., "args": [{"k", "t", "v"}, ...]}
            t="b" => bytes encoded as 0x-prefixed hex (None => "0x")
            t="i" => integer
            t="z" => boolean
        """
        enc: List[Dict[str, Any]] = []
        for k, v in self.args.items():
            if v is None or isinstance(v, (bytes, bytearray)):
                enc.append({"k": k, "t": "b", "v": "0x" + bytes(v or b"").hex()})
            elif isinstance(v, bool):
                enc.append({"k": k, "t": "z", "v": v})
            else:
                enc.append({"k": k, "t": "i", "v": int(v)})
        return {"name": self.name, "args": enc}


def _check_ident(what: str, s: Any, max_len: int) -> str:
    if not isinstance(s, str) or not s:
        raise ValueError(f"event {what} must be a non-empty str")
    if len(s) > max_len:
        raise ValueError(f"event {what} too long ({len(s)} > {max_len})")
    if not _IDENT_RE.match(s):
        raise ValueError(f"event {what} has invalid characters: {s!r}")
    return s


def _check_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        b = bytes(value)
        if len(b) > MAX_BYTES_LEN:
            raise ValueError(f"event bytes arg too long ({len(b)})")
        return b
    if isinstance(value, bool):
        # bool is a subclass of int, so check it before int.
        return value
    if isinstance(value, int):
        if value.bit_length() > MAX_INT_BITS:
            raise ValueError(f"event int arg out of range ({value.bit_length()} bits)")
        return int(value)
    raise ValueError(f"unsupported event arg type: {type(value).__name__}")


class EventLog:
    """
    Append-only event log with subscribers.

    Events emitted inside :meth:`transaction` are held back until the
    outermost transaction exits cleanly; on error they are dropped, so
    observers never see an event for a transition that was rolled back.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._events: List[Event] = []
        self._pending: List[List[Event]] = []
        self._listeners: List[Tuple[Optional[str], Listener]] = []

    # --- subscribers --------------------------------------------------------

    def subscribe(self, name: Optional[str], listener: Listener) -> None:
        """Call ``listener(event)`` for every published event named ``name`` (None = all)."""
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._listeners.append((name, listener))

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners = [(n, l) for (n, l) in self._listeners if l != listener]

    # --- emission -----------------------------------------------------------

    def emit(self, name: str, args: Mapping[str, Any]) -> Event:
        n = _check_ident("name", name, MAX_EVENT_NAME_LEN)
        if not isinstance(args, Mapping):
            raise ValueError("event args must be a mapping")
        checked = {_check_ident("key", k, MAX_KEY_LEN): _check_value(v) for k, v in args.items()}
        ev = Event(n, checked)
        with self._lock:
            if self._pending:
                self._pending[-1].append(ev)
            else:
                self._publish([ev])
        return ev

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            self._pending.append([])
            try:
                yield
            except BaseException:
                dropped = self._pending.pop()
                if dropped:
                    log.debug("events_discarded", extra={"count": len(dropped)})
                raise
            buf = self._pending.pop()
            if self._pending:
                self._pending[-1].extend(buf)
            else:
                self._publish(buf)

    def _publish(self, batch: List[Event]) -> None:
        self._events.extend(batch)
        for ev in batch:
            for name, listener in list(self._listeners):
                if name is not None and name != ev.name:
                    continue
                try:
                    listener(ev)
                except Exception:
                    # Observers cannot undo a committed transition.
                    log.exception("event_listener_failed", extra={"event": ev.name})

    # --- reads --------------------------------------------------------------

    def events(self, name: Optional[str] = None) -> List[Event]:
        with self._lock:
            return [ev for ev in self._events if name is None or ev.name == name]

    def to_receipt(self) -> List[Dict[str, Any]]:
        return [ev.to_receipt() for ev in self.events()]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()

    def __len__(self) -> int:  # pragma: no cover - trivial
        with self._lock:
            return len(self._events)


__all__ = [
    "REQUEST_CREATED",
    "REQUEST_FULFILLED",
    "PROVIDER_BOUND",
    "MAX_EVENT_NAME_LEN",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
    "Event",
    "EventLog",
]
