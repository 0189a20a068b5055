"""Filter strategies and the debounced, generation-guarded refresh engine."""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Tuple

from searchable_select.catalog import Catalog, Entry, KeyFn, LabelFn, NodeFn, build
from searchable_select.config import DEFAULT_DEBOUNCE_MS, GatePolicy
from searchable_select.logging_utils import get_logger
from searchable_select.timers import AfterCancelFn, AfterFn, DebounceTimer

_LOGGER = get_logger("Filter")

FetchFn = Callable[[str], Awaitable[Sequence[Any]]]
Entries = Tuple[Entry, ...]


@dataclass(frozen=True)
class FilterQuery:
    text: str
    generation: int
    reason: str = "input"


class RefreshStrategy(Protocol):
    catalog: Catalog

    def refresh(self, query_text: str) -> Sequence[Entry] | Awaitable[Sequence[Entry]]: ...

    def adopt(self, entries: Sequence[Entry]) -> None: ...


def apply_min_length_gate(text: str, min_length: int, policy: GatePolicy) -> Optional[str]:
    """Return the query to issue, or None when the refresh must be suppressed."""
    if len(text) >= min_length:
        return text
    if policy is GatePolicy.SUPPRESS:
        return None
    return ""


def match_span(label: str, query: str) -> Optional[Tuple[int, int]]:
    """Span of the first case-insensitive occurrence of ``query`` in ``label``."""
    if not query:
        return None
    start = label.lower().find(query.lower())
    if start < 0:
        return None
    return start, start + len(query)


class LocalFilter:
    """Synchronous case-insensitive substring match over a fixed catalog."""

    replaces_catalog = False

    def __init__(self, catalog: Optional[Catalog] = None) -> None:
        self.catalog = catalog if catalog is not None else Catalog()

    def refresh(self, query_text: str) -> Entries:
        if not query_text:
            return self.catalog.entries
        needle = query_text.lower()
        return tuple(entry for entry in self.catalog if needle in entry.display_key.lower())

    def adopt(self, entries: Sequence[Entry]) -> None:
        return None


class RemoteFilter:
    """Delegates each query to an async fetch and wraps the returned records as a new catalog."""

    replaces_catalog = True

    def __init__(
        self,
        fetch: FetchFn,
        *,
        label_fn: LabelFn,
        node_fn: Optional[NodeFn] = None,
        key_fn: Optional[KeyFn] = None,
        catalog: Optional[Catalog] = None,
    ) -> None:
        self._fetch = fetch
        self._label_fn = label_fn
        self._node_fn = node_fn
        self._key_fn = key_fn
        self.catalog = catalog if catalog is not None else Catalog(key_fn=key_fn)

    async def refresh(self, query_text: str) -> Entries:
        records = await self._fetch(query_text)
        return build(records, self._label_fn, self._node_fn, self._key_fn).entries

    def adopt(self, entries: Sequence[Entry]) -> None:
        self.catalog = Catalog(entries, key_fn=self._key_fn)


ResultFn = Callable[[FilterQuery, Entries], None]
ErrorFn = Callable[[FilterQuery, BaseException], None]


def _noop_result(query: FilterQuery, entries: Entries) -> None:
    return None


def _noop_error(query: FilterQuery, exc: BaseException) -> None:
    return None


class FilterEngine:
    """Owns the refresh strategy, the debounce slot and the generation guard.

    Every issued query gets the next generation number. A response (or failure) is
    applied only while its generation is still the latest one issued; ``cancel``
    withdraws the latest generation so nothing outstanding can land afterwards.
    """

    def __init__(
        self,
        strategy: RefreshStrategy,
        *,
        after: AfterFn,
        after_cancel: AfterCancelFn,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        min_length: int = 0,
        gate: GatePolicy = GatePolicy.EMPTY,
        on_result: Optional[ResultFn] = None,
        on_error: Optional[ErrorFn] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self.strategy = strategy
        self.min_length = max(0, int(min_length))
        self.gate_policy = gate
        self.on_result: ResultFn = on_result or _noop_result
        self.on_error: ErrorFn = on_error or _noop_error
        self._loop = loop
        self._timer = DebounceTimer(after=after, after_cancel=after_cancel, delay_ms=debounce_ms)
        self._generation = 0
        self._latest: Optional[int] = None
        self._applied: Optional[int] = None
        self._in_flight: Dict[int, asyncio.Task[Any]] = {}

    @property
    def catalog(self) -> Catalog:
        return self.strategy.catalog

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._latest is not None and self._latest in self._in_flight

    @property
    def debounce_pending(self) -> bool:
        return self._timer.pending

    def gate(self, text: str) -> Optional[str]:
        return apply_min_length_gate(text, self.min_length, self.gate_policy)

    def request(self, text: str, *, reason: str = "input") -> bool:
        """Debounce a refresh for ``text``; return False when the length gate suppressed it."""
        query_text = self.gate(text)
        if query_text is None:
            self._timer.cancel()
            _LOGGER.debug("Refresh suppressed: %r shorter than %d characters", text, self.min_length)
            return False
        self._timer.schedule(lambda: self.issue(query_text, reason=reason))
        return True

    def flush(self) -> bool:
        return self._timer.flush()

    def issue(self, text: str, *, reason: str = "input") -> FilterQuery:
        """Issue a refresh immediately, superseding any pending debounce."""
        self._timer.cancel()
        self._generation += 1
        query = FilterQuery(text=text, generation=self._generation, reason=reason)
        self._latest = query.generation
        _LOGGER.debug("Issuing refresh #%d for %r (%s)", query.generation, text, reason)
        try:
            result = self.strategy.refresh(text)
        except Exception as exc:
            self._fail(query, exc)
            return query
        if inspect.isawaitable(result):
            self._track(query, result)
        else:
            self._deliver(query, tuple(result))
        return query

    def cancel(self) -> None:
        """Drop the pending debounce, cancel in-flight fetches and withdraw the latest generation."""
        self._timer.cancel()
        self._latest = None
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            if not task.done():
                task.cancel()
        if tasks:
            _LOGGER.debug("Cancelled %d in-flight refresh(es)", len(tasks))

    async def wait(self, query: FilterQuery) -> bool:
        """Wait for ``query`` to settle; True only when its result was applied.

        Cancelling the waiter cancels the refresh it is waiting on.
        """
        task = self._in_flight.get(query.generation)
        if task is None:
            return self._applied == query.generation
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        if task.cancelled():
            return False
        return bool(task.result())

    def _track(self, query: FilterQuery, awaitable: Awaitable[Sequence[Entry]]) -> None:
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError as exc:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            self._fail(query, exc)
            return
        task = loop.create_task(self._await(query, awaitable))
        self._in_flight[query.generation] = task
        task.add_done_callback(lambda _task, generation=query.generation: self._forget(generation, _task))

    def _forget(self, generation: int, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(generation) is task:
            del self._in_flight[generation]

    async def _await(self, query: FilterQuery, awaitable: Awaitable[Sequence[Entry]]) -> bool:
        try:
            entries = await awaitable
        except asyncio.CancelledError:
            _LOGGER.debug("Refresh #%d for %r cancelled", query.generation, query.text)
            raise
        except Exception as exc:
            self._recover(self._fail, query, exc)
            return False
        return bool(self._recover(self._deliver, query, tuple(entries)))

    def _recover(self, handler: Callable[[FilterQuery, Any], object], query: FilterQuery, payload: Any) -> object:
        try:
            return handler(query, payload)
        except Exception:
            _LOGGER.exception("Applying refresh #%d for %r failed", query.generation, query.text)
            return False

    def _deliver(self, query: FilterQuery, entries: Entries) -> bool:
        if query.generation != self._latest:
            _LOGGER.debug(
                "Discarding stale refresh #%d for %r (latest=%s)", query.generation, query.text, self._latest
            )
            return False
        self._in_flight.pop(query.generation, None)
        self._applied = query.generation
        self.strategy.adopt(entries)
        _LOGGER.debug("Applying refresh #%d for %r: %d entries", query.generation, query.text, len(entries))
        self.on_result(query, entries)
        return True

    def _fail(self, query: FilterQuery, exc: BaseException) -> None:
        if query.generation != self._latest:
            _LOGGER.debug("Ignoring failure of stale refresh #%d: %s", query.generation, exc)
            return
        self._in_flight.pop(query.generation, None)
        self._latest = None
        _LOGGER.warning("Refresh #%d for %r failed: %s", query.generation, query.text, exc)
        self.on_error(query, exc)


__all__ = [
    "FetchFn",
    "FilterEngine",
    "FilterQuery",
    "LocalFilter",
    "RefreshStrategy",
    "RemoteFilter",
    "apply_min_length_gate",
    "match_span",
]
