"""Closed/open selection state machine driven by keyboard, pointer and filter results."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from searchable_select.catalog import Catalog, Entry, NavigationRing, relink, same_identity
from searchable_select.config import SelectConfig
from searchable_select.errors import FetchFailed
from searchable_select.filtering import Entries, FilterEngine, FilterQuery
from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("State")

PRIMARY_BUTTON = 1


class Key(str, Enum):
    ARROW_UP = "ArrowUp"
    ARROW_DOWN = "ArrowDown"
    ENTER = "Enter"
    ESCAPE = "Escape"


_HANDLED_KEYS = {key.value for key in Key}
_KEY_ALIASES = {"Up": "ArrowUp", "Down": "ArrowDown", "Return": "Enter", "KP_Enter": "Enter"}


@dataclass(frozen=True)
class KeyEvent:
    key: str
    shift: bool = False
    ctrl: bool = False
    alt: bool = False
    meta: bool = False

    @property
    def normalized(self) -> str:
        return _KEY_ALIASES.get(self.key, self.key)


class KeyAction(str, Enum):
    NONE = "none"
    OPEN = "open"
    NAVIGATE = "navigate"
    CYCLE = "cycle"
    COMMIT = "commit"
    DISMISS = "dismiss"
    SELECT_TEXT = "select_text"


@dataclass(frozen=True)
class KeyOutcome:
    action: KeyAction
    prevent_default: bool


@dataclass(frozen=True)
class SelectionState:
    open: bool = False
    active: Optional[Entry] = None
    selected: Optional[Entry] = None
    visible: NavigationRing = field(default_factory=NavigationRing)
    input_text: str = ""


StateFn = Callable[[SelectionState, SelectionState], None]
SelectionFn = Callable[[Entry], None]
FailureFn = Callable[[FetchFailed], None]
HookFn = Callable[[], None]


def _noop(*_args: Any) -> None:
    return None


class SelectionStateMachine:
    """Tracks open/active/selected and resolves input into transitions.

    Every transition swaps in a new immutable :class:`SelectionState`, so the visible
    ring and the active entry change together and observers never see a half-built
    ring. ``on_change(previous, current)`` fires after each swap; ``on_selection_changed``
    fires once per committed selection whose identity differs from the previous one.
    """

    def __init__(
        self,
        engine: FilterEngine,
        config: SelectConfig,
        *,
        on_change: Optional[StateFn] = None,
        on_selection_changed: Optional[SelectionFn] = None,
        on_refresh_failed: Optional[FailureFn] = None,
        on_select_text: Optional[HookFn] = None,
    ) -> None:
        self.engine = engine
        self.config = config
        self.on_change: StateFn = on_change or _noop
        self.on_selection_changed: SelectionFn = on_selection_changed or _noop
        self.on_refresh_failed: FailureFn = on_refresh_failed or _noop
        self.on_select_text: HookFn = on_select_text or _noop
        self._state = SelectionState()
        self._last_ring = NavigationRing()
        engine.on_result = self._apply_refresh
        engine.on_error = self._refresh_failed

    # State ------------------------------------------------------------------

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def catalog(self) -> Catalog:
        return self.engine.catalog

    @property
    def last_ring(self) -> NavigationRing:
        return self._last_ring

    @property
    def is_open(self) -> bool:
        return self._state.open

    def _label(self, entry: Optional[Entry]) -> str:
        return entry.display_key if entry is not None else ""

    def _swap(self, **changes: Any) -> SelectionState:
        previous = self._state
        current = replace(previous, **changes)
        if current == previous:
            return current
        self._state = current
        self.on_change(previous, current)
        return current

    def _close(self, selected: Optional[Entry]) -> None:
        self._swap(
            open=False,
            active=None,
            visible=NavigationRing(),
            selected=selected,
            input_text=self._label(selected),
        )
        if self.config.editable:
            self.on_select_text()

    def _commit(self, entry: Entry) -> None:
        previous = self._state.selected
        self.engine.cancel()
        self._close(entry)
        if same_identity(previous, entry):
            _LOGGER.debug("Commit of %s kept the current selection", entry.entry_id)
            return
        _LOGGER.debug("Selection changed to %s (%r)", entry.entry_id, entry.display_key)
        self.on_selection_changed(entry)

    # Catalog ----------------------------------------------------------------

    def replace_catalog(self, catalog: Catalog) -> None:
        """Swap in a new catalog, close the list and select its first entry."""
        self.engine.cancel()
        self.engine.strategy.catalog = catalog
        self._reset_to(catalog)

    def _reset_to(self, catalog: Catalog) -> None:
        self._last_ring = catalog.ring()
        first = catalog[0] if len(catalog) else None
        self._swap(open=False, active=None, visible=NavigationRing(), selected=first, input_text=self._label(first))

    def select_index(self, index: int) -> Optional[Entry]:
        """Select the catalog entry at ``index``; ``len(catalog)`` means no selection."""
        catalog = self.catalog
        if index == len(catalog):
            entry = None
        elif 0 <= index < len(catalog):
            entry = catalog[index]
        else:
            raise IndexError(f"selection index {index} outside 0..{len(catalog)}")
        self._swap(selected=entry, input_text=self._label(entry))
        return entry

    def select(self, predicate: Callable[[Any, int], Any]) -> Optional[Entry]:
        return self.select_index(self.catalog.find(predicate))

    # Transitions ------------------------------------------------------------

    def activate(self) -> bool:
        """Open the list; return False when the query gate kept it closed."""
        if self._state.open:
            return True
        text = ""
        if self.config.filter_on_open and self._state.selected is None:
            gated = self.engine.gate(self._state.input_text)
            if gated is None:
                _LOGGER.debug("Open suppressed: input %r below minimum length", self._state.input_text)
                return False
            text = gated
        self.engine.issue(text, reason="open")
        return True

    def toggle(self) -> None:
        if self._state.open:
            self.dismiss()
        else:
            self.activate()

    def dismiss(self) -> None:
        """Close without touching the selection; outstanding refreshes are dropped."""
        self.engine.cancel()
        self._close(self._state.selected)

    def commit(self, entry: Optional[Entry] = None) -> bool:
        state = self._state
        if not state.open:
            return False
        if entry is not None and entry not in state.visible:
            _LOGGER.debug("Ignoring commit of %r: not in the visible set", entry)
            return False
        target = entry or state.active or state.visible.first
        if target is None:
            return False
        self._commit(target)
        return True

    def press_entry(self, entry: Entry, *, button: int = PRIMARY_BUTTON) -> bool:
        if button != PRIMARY_BUTTON:
            return False
        return self.commit(entry)

    def navigate(self, step: int) -> Optional[Entry]:
        """Move the highlight (open) or the selection (closed with cycling) by ``step``."""
        state = self._state
        if not state.open:
            if not self.config.cycle_when_closed:
                return None
            return self._cycle_closed(step)
        ring = state.visible
        if not len(ring):
            return None
        if state.active is None:
            active = ring.first if step > 0 else ring.last
        else:
            active = ring.step(state.active, step)
        self._swap(active=active, input_text=active.display_key)
        return active

    def _cycle_closed(self, step: int) -> Optional[Entry]:
        selected = self._state.selected
        ring = self._last_ring
        current = ring.locate(selected)
        if current is None and selected is not None:
            ring = self.catalog.ring()
            current = ring.locate(selected)
        if not len(ring):
            return None
        if current is None:
            target = ring.first if step > 0 else ring.last
        else:
            target = ring.step(current, step)
        self._commit(target)
        return target

    def input_changed(self, text: str) -> bool:
        """Mirror typed text and schedule a debounced refresh (editable variants only)."""
        if not self.config.editable:
            return False
        self._swap(input_text=text)
        return self.engine.request(text, reason="input")

    def handle_key(self, event: KeyEvent) -> KeyOutcome:
        key = event.normalized
        prevent = key in _HANDLED_KEYS
        if key == Key.ARROW_UP and event.shift:
            return KeyOutcome(KeyAction.SELECT_TEXT, prevent)
        if key in (Key.ARROW_DOWN, Key.ARROW_UP):
            was_open = self._state.open
            moved = self.navigate(1 if key == Key.ARROW_DOWN else -1)
            if moved is None:
                return KeyOutcome(KeyAction.NONE, prevent)
            return KeyOutcome(KeyAction.NAVIGATE if was_open else KeyAction.CYCLE, prevent)
        if key == Key.ENTER:
            if not self._state.open:
                opened = self.activate()
                return KeyOutcome(KeyAction.OPEN if opened else KeyAction.NONE, prevent)
            committed = self.commit()
            return KeyOutcome(KeyAction.COMMIT if committed else KeyAction.NONE, prevent)
        if key == Key.ESCAPE:
            self.dismiss()
            return KeyOutcome(KeyAction.DISMISS, prevent)
        return KeyOutcome(KeyAction.NONE, False)

    # Filter results ---------------------------------------------------------

    def _apply_refresh(self, query: FilterQuery, entries: Entries) -> None:
        if query.reason == "load":
            # The engine already adopted the fetched records as the catalog.
            self._reset_to(self.catalog)
            return
        ring = relink(entries)
        self._last_ring = ring
        if not len(ring) and self.config.close_when_empty:
            if self._state.open:
                self._swap(open=False, active=None, visible=NavigationRing())
            return
        if query.reason == "open":
            active = ring.locate(self._state.selected)
        else:
            active = None
        self._swap(open=True, visible=ring, active=active)

    def _refresh_failed(self, query: FilterQuery, exc: BaseException) -> None:
        state = self._state
        if state.open and not len(state.visible):
            self._swap(open=False, active=None, visible=NavigationRing())
        self.on_refresh_failed(FetchFailed(query=query.text, generation=query.generation, error=exc))


__all__ = [
    "Key",
    "KeyAction",
    "KeyEvent",
    "KeyOutcome",
    "PRIMARY_BUTTON",
    "SelectionState",
    "SelectionStateMachine",
]
