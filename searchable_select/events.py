from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("Widget")

SELECT_CHANGE = "select-change"
REFRESH_FAILED = "refresh-failed"
SELECT_TEXT = "select-text"

Listener = Callable[[Any], None]


@dataclass(eq=False)
class ListenerHandle:
    event: str
    callback: Listener
    once: bool = False


class EventEmitter:
    """Named-event listener registry; a failing listener never stops dispatch."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[ListenerHandle]] = {}

    def on(self, event: str, callback: Listener) -> ListenerHandle:
        handle = ListenerHandle(event, callback)
        self._listeners.setdefault(event, []).append(handle)
        return handle

    def once(self, event: str, callback: Listener) -> ListenerHandle:
        handle = ListenerHandle(event, callback, once=True)
        self._listeners.setdefault(event, []).append(handle)
        return handle

    def off(self, handle: ListenerHandle) -> None:
        stack = self._listeners.get(handle.event, [])
        self._listeners[handle.event] = [item for item in stack if item is not handle]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, payload: Any = None) -> int:
        stack = list(self._listeners.get(event, []))
        for handle in stack:
            try:
                handle.callback(payload)
            except Exception:
                _LOGGER.exception("Listener for %s raised", event)
        spent = [handle for handle in stack if handle.once]
        if spent:
            self._listeners[event] = [item for item in self._listeners.get(event, []) if item not in spent]
        return len(stack)


__all__ = ["EventEmitter", "ListenerHandle", "REFRESH_FAILED", "SELECT_CHANGE", "SELECT_TEXT"]
