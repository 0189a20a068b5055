from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from searchable_select.catalog import same_identity
from searchable_select.state import SelectionState

CONTROL_TARGET = "control"


@dataclass(frozen=True)
class EntryMarkers:
    entry_id: str
    selected: bool = False
    highlighted: bool = False
    position: Optional[int] = None
    set_size: Optional[int] = None


@dataclass(frozen=True)
class AccessibilityState:
    active_descendant: str = ""
    markers: Tuple[EntryMarkers, ...] = ()

    def marker_for(self, entry_id: str) -> Optional[EntryMarkers]:
        for marker in self.markers:
            if marker.entry_id == entry_id:
                return marker
        return None


@dataclass(frozen=True)
class MarkerChange:
    """One attribute update; ``target`` is an entry id or :data:`CONTROL_TARGET`."""

    target: str
    attribute: str
    value: object


def project(state: SelectionState) -> AccessibilityState:
    """Derive assistive-technology markers from a selection state snapshot."""
    visible = state.visible
    size = len(visible)
    markers: List[EntryMarkers] = []
    selected_seen = False
    for position, entry in enumerate(visible, start=1):
        is_selected = not selected_seen and same_identity(entry, state.selected)
        selected_seen = selected_seen or is_selected
        markers.append(
            EntryMarkers(
                entry_id=entry.entry_id,
                selected=is_selected,
                highlighted=entry is state.active,
                position=position,
                set_size=size,
            )
        )
    if state.selected is not None and not selected_seen:
        markers.append(EntryMarkers(entry_id=state.selected.entry_id, selected=True))
    active_descendant = state.active.entry_id if state.active is not None else ""
    return AccessibilityState(active_descendant=active_descendant, markers=tuple(markers))


def diff(previous: AccessibilityState, current: AccessibilityState) -> List[MarkerChange]:
    """Ordered changes from ``previous`` to ``current``.

    Selected/highlighted markers that go away are cleared before any new marker is
    applied, so two entries are never marked at the same time.
    """
    before: Dict[str, EntryMarkers] = {marker.entry_id: marker for marker in previous.markers}
    after: Dict[str, EntryMarkers] = {marker.entry_id: marker for marker in current.markers}
    clears: List[MarkerChange] = []
    applies: List[MarkerChange] = []

    for entry_id, old in before.items():
        new = after.get(entry_id)
        for attribute in ("selected", "highlighted"):
            if getattr(old, attribute) and not (new is not None and getattr(new, attribute)):
                clears.append(MarkerChange(entry_id, attribute, False))

    for entry_id, new in after.items():
        old = before.get(entry_id)
        for attribute in ("selected", "highlighted"):
            value = getattr(new, attribute)
            if value and not (old is not None and getattr(old, attribute)):
                applies.append(MarkerChange(entry_id, attribute, True))
        for attribute in ("position", "set_size"):
            value = getattr(new, attribute)
            if value is not None and (old is None or getattr(old, attribute) != value):
                applies.append(MarkerChange(entry_id, attribute, value))

    if previous.active_descendant != current.active_descendant:
        applies.append(MarkerChange(CONTROL_TARGET, "active_descendant", current.active_descendant))
    return clears + applies


class AccessibilityMirror:
    """Keeps host markers in step with the selection state."""

    def __init__(self, apply_fn: Callable[[Sequence[MarkerChange]], None]) -> None:
        self._apply = apply_fn
        self._current = AccessibilityState()

    @property
    def current(self) -> AccessibilityState:
        return self._current

    def sync(self, state: SelectionState) -> List[MarkerChange]:
        projected = project(state)
        changes = diff(self._current, projected)
        self._current = projected
        if changes:
            self._apply(changes)
        return changes


__all__ = [
    "AccessibilityMirror",
    "AccessibilityState",
    "CONTROL_TARGET",
    "EntryMarkers",
    "MarkerChange",
    "diff",
    "project",
]
