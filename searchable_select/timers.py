from __future__ import annotations

import asyncio
from typing import Callable, Optional

from searchable_select.logging_utils import get_logger

AfterFn = Callable[[int, Callable[[], None]], object]
AfterCancelFn = Callable[[object], None]

_LOGGER = get_logger("Filter")


class DebounceTimer:
    """Single-slot debounce: scheduling again always supersedes the pending callback.

    ``after``/``after_cancel`` follow the Tk signature (``widget.after(ms, cb)`` /
    ``widget.after_cancel(handle)``) so a Tk widget, an :class:`AsyncioScheduler` or
    a Qt scheduler can drive it.
    """

    def __init__(self, *, after: AfterFn, after_cancel: AfterCancelFn, delay_ms: int = 350) -> None:
        self._after = after
        self._after_cancel = after_cancel
        self.delay_ms = max(0, int(delay_ms))
        self._handle: object | None = None
        self._callback: Optional[Callable[[], None]] = None
        self._token: object | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callable[[], None], *, delay_ms: int | None = None) -> object:
        self.cancel()
        delay = self.delay_ms if delay_ms is None else max(0, int(delay_ms))
        self._callback = callback
        token = object()
        self._token = token
        self._handle = self._after(delay, lambda: self._fire(token))
        return self._handle

    def cancel(self) -> None:
        handle = self._handle
        self._handle = None
        self._callback = None
        self._token = None
        if handle is None:
            return
        try:
            self._after_cancel(handle)
        except Exception as exc:
            _LOGGER.debug("Ignoring failure while cancelling debounce handle %r: %s", handle, exc)

    def flush(self) -> bool:
        """Run the pending callback now; return False when nothing was pending."""
        if self._handle is None:
            return False
        callback = self._callback
        self.cancel()
        if callback is not None:
            callback()
        return True

    def _fire(self, token: object) -> None:
        if token is not self._token:
            return
        callback = self._callback
        self._token = None
        self._handle = None
        self._callback = None
        if callback is not None:
            callback()


class AsyncioScheduler:
    """``after``/``after_cancel`` pair backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def after(self, delay_ms: int, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self._resolve_loop().call_later(max(0, delay_ms) / 1000.0, callback)

    def after_cancel(self, handle: object) -> None:
        if isinstance(handle, asyncio.TimerHandle):
            handle.cancel()


__all__ = ["AfterCancelFn", "AfterFn", "AsyncioScheduler", "DebounceTimer"]
