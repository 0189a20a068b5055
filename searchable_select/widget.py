"""Host-facing facade for the select, typeahead and dynamic typeahead variants."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple

from searchable_select.accessibility import AccessibilityMirror
from searchable_select.catalog import Catalog, Entry, KeyFn, LabelFn, NodeFn, build
from searchable_select.config import SelectConfig, resolve_config
from searchable_select.errors import ConfigurationError, FetchFailed
from searchable_select.events import REFRESH_FAILED, SELECT_CHANGE, SELECT_TEXT, EventEmitter, Listener, ListenerHandle
from searchable_select.filtering import FetchFn, FilterEngine, LocalFilter, RemoteFilter, match_span
from searchable_select.logging_utils import get_logger
from searchable_select.positioning import OverlayPositioner
from searchable_select.state import PRIMARY_BUTTON, KeyAction, KeyEvent, KeyOutcome, SelectionState, SelectionStateMachine
from searchable_select.timers import AfterCancelFn, AfterFn, AsyncioScheduler

_LOGGER = get_logger("Widget")

AttributeFn = Callable[[str, object], None]


@dataclass(frozen=True)
class SelectionChanged:
    """Payload of the ``select-change`` event."""

    item: Any
    entry: Entry


def _require_callable(name: str, value: object) -> None:
    if value is None or not callable(value):
        raise ConfigurationError(f"{name} must be callable, got {value!r}")


class SearchableSelect:
    """Dropdown selector core shared by the select and typeahead variants.

    Variants differ only by :class:`SelectConfig` policy values and by the refresh
    strategy: a :class:`LocalFilter` over the stored records, or a :class:`RemoteFilter`
    around ``fetch`` for dynamic sources. ``after``/``after_cancel`` drive the
    debounce; Tk hosts pass ``widget.after``/``widget.after_cancel``, asyncio hosts
    can omit them.
    """

    def __init__(
        self,
        *,
        label_fn: LabelFn,
        node_fn: NodeFn,
        config: Optional[SelectConfig] = None,
        variant: str = "select",
        fetch: Optional[FetchFn] = None,
        key_fn: Optional[KeyFn] = None,
        after: Optional[AfterFn] = None,
        after_cancel: Optional[AfterCancelFn] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        positioner: Optional[OverlayPositioner] = None,
        mirror: Optional[AccessibilityMirror] = None,
        on_attribute: Optional[AttributeFn] = None,
    ) -> None:
        _require_callable("label_fn", label_fn)
        _require_callable("node_fn", node_fn)
        self.config = config if config is not None else resolve_config(variant)
        if self.config.remote and fetch is None:
            raise ConfigurationError(f"{self.config.variant} requires a fetch delegate")
        if fetch is not None:
            _require_callable("fetch", fetch)
        if (after is None) != (after_cancel is None):
            raise ConfigurationError("after and after_cancel must be supplied together")
        if after is None or after_cancel is None:
            scheduler = AsyncioScheduler(loop)
            after, after_cancel = scheduler.after, scheduler.after_cancel

        self._label_fn = label_fn
        self._node_fn = node_fn
        self._key_fn = key_fn
        self._fetch = fetch
        self._positioner = positioner
        self._mirror = mirror
        self._on_attribute = on_attribute
        self._disabled = False
        self._placeholder = ""
        self._title = ""
        self._events = EventEmitter()

        if fetch is not None:
            strategy = RemoteFilter(fetch, label_fn=label_fn, node_fn=node_fn, key_fn=key_fn)
        else:
            strategy = LocalFilter(Catalog(key_fn=key_fn))
        self._engine = FilterEngine(
            strategy,
            after=after,
            after_cancel=after_cancel,
            debounce_ms=self.config.debounce_ms,
            min_length=self.config.min_length,
            gate=self.config.gate,
            loop=loop,
        )
        self._machine = SelectionStateMachine(
            self._engine,
            self.config,
            on_change=self._handle_state_change,
            on_selection_changed=self._handle_selection_changed,
            on_refresh_failed=self._handle_refresh_failed,
            on_select_text=lambda: self._events.emit(SELECT_TEXT),
        )
        _LOGGER.debug("Created %s (remote=%s, debounce=%dms)", self.config.variant, fetch is not None, self.config.debounce_ms)

    def __repr__(self) -> str:
        return f"<SearchableSelect {self.config.variant} open={self.is_open} label={self.label!r}>"

    # Data -------------------------------------------------------------------

    @property
    def store(self) -> Catalog:
        return self._machine.catalog

    @store.setter
    def store(self, records: Sequence[Any]) -> None:
        catalog = build(records, self._label_fn, self._node_fn, self._key_fn)
        self._machine.replace_catalog(catalog)

    async def load(self, query: str = "") -> bool:
        """Replace the store with the fetch delegate's records for ``query``.

        The load competes with typed queries under the same generation guard: it
        applies only if nothing newer was issued before it resolved. Failures surface
        as ``refresh-failed``. Returns True when the fetched records became the store.
        """
        if self._fetch is None:
            raise ConfigurationError(f"{self.config.variant} has no fetch delegate to load from")
        issued = self._engine.issue(query, reason="load")
        applied = await self._engine.wait(issued)
        if not applied:
            _LOGGER.debug("Load #%d for %r was not applied", issued.generation, query)
        return applied

    @property
    def items(self) -> Tuple[Entry, ...]:
        return self._machine.state.visible.entries

    @property
    def item(self) -> Optional[Entry]:
        return self._machine.state.selected

    @item.setter
    def item(self, entry: Optional[Entry]) -> None:
        if entry is None:
            self._machine.select_index(len(self.store))
            return
        index = self.store.index_of(entry)
        if index is None:
            raise ValueError(f"{entry!r} is not part of the store")
        self._machine.select_index(index)

    @property
    def selected(self) -> Any:
        entry = self._machine.state.selected
        return entry.data if entry is not None else None

    @property
    def label(self) -> str:
        entry = self._machine.state.selected
        return entry.display_key if entry is not None else ""

    @property
    def first(self) -> Any:
        return self.store.first

    @property
    def last(self) -> Any:
        return self.store.last

    def emphasis(self, entry: Entry) -> Optional[Tuple[int, int]]:
        """Span of ``entry``'s label matching the typed text, for hosts that bold the match."""
        if not self.config.editable:
            return None
        return match_span(entry.display_key, self._machine.state.input_text)

    def select_index(self, index: int) -> Optional[Entry]:
        return self._machine.select_index(index)

    def select(self, predicate: Callable[[Any, int], Any]) -> Optional[Entry]:
        return self._machine.select(predicate)

    # State ------------------------------------------------------------------

    @property
    def state(self) -> SelectionState:
        return self._machine.state

    @property
    def is_open(self) -> bool:
        return self._machine.is_open

    @property
    def active(self) -> Optional[Entry]:
        return self._machine.state.active

    @property
    def input_text(self) -> str:
        return self._machine.state.input_text

    @property
    def loading(self) -> bool:
        return self._engine.loading

    @property
    def engine(self) -> FilterEngine:
        return self._engine

    # Passthroughs -----------------------------------------------------------

    def _forward(self, name: str, value: object) -> None:
        if self._on_attribute is not None:
            self._on_attribute(name, value)

    @property
    def disabled(self) -> bool:
        return self._disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._disabled = bool(value)
        if self._disabled:
            self._machine.dismiss()
        self._forward("disabled", self._disabled)

    @property
    def placeholder(self) -> str:
        return self._placeholder

    @placeholder.setter
    def placeholder(self, value: str) -> None:
        self._placeholder = value
        self._forward("placeholder", value)

    @property
    def title(self) -> str:
        return self._title

    @title.setter
    def title(self, value: str) -> None:
        self._title = value
        self._forward("title", value)

    # Events -----------------------------------------------------------------

    def on(self, event: str, callback: Listener) -> ListenerHandle:
        return self._events.on(event, callback)

    def once(self, event: str, callback: Listener) -> ListenerHandle:
        return self._events.once(event, callback)

    def off(self, handle: ListenerHandle) -> None:
        self._events.off(handle)

    # Input ------------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> KeyOutcome:
        if self._disabled:
            return KeyOutcome(KeyAction.NONE, False)
        outcome = self._machine.handle_key(event)
        if outcome.action is KeyAction.SELECT_TEXT:
            self._events.emit(SELECT_TEXT)
        return outcome

    def click_anchor(self) -> None:
        if self._disabled:
            return
        self._machine.toggle()

    def press_entry(self, entry: Entry, *, button: int = PRIMARY_BUTTON) -> bool:
        if self._disabled:
            return False
        return self._machine.press_entry(entry, button=button)

    def input_changed(self, text: str) -> bool:
        if self._disabled:
            return False
        return self._machine.input_changed(text)

    def blur(self) -> None:
        self._machine.dismiss()

    def close(self) -> None:
        self._machine.dismiss()

    # Collaborators ----------------------------------------------------------

    def _handle_state_change(self, previous: SelectionState, current: SelectionState) -> None:
        if self._positioner is not None:
            if current.open and not previous.open:
                self._positioner.open()
            elif previous.open and not current.open:
                self._positioner.close()
            if current.open and current.active is not None and current.active is not previous.active:
                self._positioner.reveal(current.active.entry_id)
        if self._mirror is not None:
            self._mirror.sync(current)

    def _handle_selection_changed(self, entry: Entry) -> None:
        self._events.emit(SELECT_CHANGE, SelectionChanged(item=entry.data, entry=entry))

    def _handle_refresh_failed(self, failure: FetchFailed) -> None:
        self._events.emit(REFRESH_FAILED, failure)


__all__ = ["SearchableSelect", "SelectionChanged"]
