"""
timestamping.runtime.events: validated events with checkpointed buffering.

Events emitted during a call are buffered next to the journal checkpoint of
that call. When the call commits its buffer is appended to the parent call's
buffer (or to the host's committed :class:`EventLog` for a top-level call);
when it reverts the buffer is dropped. A committed transition therefore
appears in the log exactly once, in emission order.

List args have no length cap; ``StampCreated`` carries the whole signer list.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from timestamping.errors import StateError

MAX_EVENT_NAME_BYTES = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_INT_BITS = 256

_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class Event:
    """
    A committed or buffered event.

    ``contract`` is the emitting contract address; ``args`` values are bytes,
    bool, int, or tuples of those.
    """

    name: bytes
    args: Dict[str, Any]
    contract: bytes = b""

    def __getitem__(self, key: str) -> Any:
        return self.args[key]

    def to_dict(self) -> Dict[str, Any]:
        """Canonical JSON-friendly form (bytes → 0x-hex)."""
        return {
            "name": self.name.decode("ascii", "replace"),
            "contract": "0x" + self.contract.hex(),
            "args": {k: _json_value(v) for k, v in self.args.items()},
        }


def _json_value(v: Any) -> Any:
    if isinstance(v, bytes):
        return "0x" + v.hex()
    if isinstance(v, tuple):
        return [_json_value(x) for x in v]
    return v


def _check_name(name: Any) -> bytes:
    if not isinstance(name, (bytes, bytearray)) or not name:
        raise StateError("event name must be non-empty bytes")
    if len(name) > MAX_EVENT_NAME_BYTES:
        raise StateError("event name too long", data={"len": len(name)})
    return bytes(name)


def _check_key(key: Any) -> str:
    if not isinstance(key, str) or not _KEY_RE.match(key) or len(key) > MAX_KEY_LEN:
        raise StateError("invalid event key", data={"key": repr(key)})
    return key


def _check_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        if len(value) > MAX_BYTES_LEN:
            raise StateError("event bytes arg too long", data={"len": len(value)})
        return bytes(value)
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if value.bit_length() > MAX_INT_BITS:
            raise StateError("event int arg out of range", data={"bits": value.bit_length()})
        return int(value)
    if isinstance(value, (list, tuple)):
        if any(isinstance(v, (list, tuple)) for v in value):
            raise StateError("nested lists are not allowed in event args")
        return tuple(_check_value(v) for v in value)
    raise StateError("unsupported event arg type", data={"py_type": type(value).__name__})


def make_event(name: bytes, args: Mapping[str, Any], contract: bytes = b"") -> Event:
    if not isinstance(args, Mapping):
        raise StateError("event args must be a mapping")
    checked = {_check_key(k): _check_value(v) for k, v in args.items()}
    return Event(_check_name(name), checked, bytes(contract))


class EventLog:
    """Append-only ordered log of committed events."""

    def __init__(self) -> None:
        self._events: List[Event] = []

    def extend(self, events: Sequence[Event]) -> None:
        self._events.extend(events)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[Event]:
        return iter(tuple(self._events))

    def __getitem__(self, i: int) -> Event:
        return self._events[i]

    def named(self, name: bytes, *, contract: Optional[bytes] = None) -> List[Event]:
        return [
            e for e in self._events
            if e.name == name and (contract is None or e.contract == contract)
        ]

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]


class EventBuffer:
    """Stack of per-checkpoint buffers mirroring the journal depth."""

    def __init__(self, log: EventLog) -> None:
        self._log = log
        self._stack: List[List[Event]] = []

    def begin(self) -> None:
        self._stack.append([])

    def emit(self, event: Event) -> None:
        if not self._stack:
            raise StateError("event emitted outside of a call")
        self._stack[-1].append(event)

    def commit(self) -> List[Event]:
        """Pop the top buffer into its parent (or the log). Returns the events it held."""
        top = self._stack.pop()
        if self._stack:
            self._stack[-1].extend(top)
        else:
            self._log.extend(top)
        return top

    def revert(self) -> None:
        self._stack.pop()


__all__ = [
    "Event",
    "EventLog",
    "EventBuffer",
    "make_event",
    "MAX_EVENT_NAME_BYTES",
    "MAX_KEY_LEN",
    "MAX_BYTES_LEN",
    "MAX_INT_BITS",
]
