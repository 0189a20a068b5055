"""Catalog entries and the navigation ring rebuilt on every filter pass."""

from __future__ import annotations

import itertools
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from searchable_select.errors import CatalogError
from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("Catalog")

LabelFn = Callable[[Any], Any]
NodeFn = Callable[[Any], Any]
KeyFn = Callable[[Any], Any]

_ENTRY_IDS = itertools.count(1)


class _NoKey:
    def __repr__(self) -> str:
        return "NO_KEY"


NO_KEY: Any = _NoKey()


def next_entry_id() -> str:
    """Return a process-unique identifier usable as an accessibility id."""
    return f"auto_{next(_ENTRY_IDS)}"


@dataclass(frozen=True)
class TextNode:
    """Default content handle: the entry label as plain text."""

    text: str


@dataclass(frozen=True, eq=False)
class Entry:
    data: Any
    display_key: str
    node: Any
    entry_id: str = field(default_factory=next_entry_id)
    key: Any = NO_KEY

    def __repr__(self) -> str:
        return f"Entry({self.entry_id}, {self.display_key!r})"


def same_identity(left: Optional[Entry], right: Optional[Entry]) -> bool:
    """Entries match by caller key when both carry one, by reference otherwise."""
    if left is None or right is None:
        return left is right
    if left is right:
        return True
    if left.key is NO_KEY or right.key is NO_KEY:
        return False
    return left.key == right.key


class NavigationRing:
    """Immutable cycle over an ordered subset of entries.

    ``next``/``prev`` are index arithmetic over the owned tuple; entries are never
    linked to each other, so rebuilding the ring cannot disturb catalog order.
    """

    __slots__ = ("_entries", "_positions")

    def __init__(self, entries: Sequence[Entry] = ()) -> None:
        self._entries: Tuple[Entry, ...] = tuple(entries)
        self._positions: Dict[int, int] = {id(entry): idx for idx, entry in enumerate(self._entries)}

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    def __contains__(self, entry: object) -> bool:
        return id(entry) in self._positions and self._entries[self._positions[id(entry)]] is entry

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NavigationRing):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"NavigationRing({list(self._entries)!r})"

    @property
    def first(self) -> Optional[Entry]:
        return self._entries[0] if self._entries else None

    @property
    def last(self) -> Optional[Entry]:
        return self._entries[-1] if self._entries else None

    def index_of(self, entry: Entry) -> Optional[int]:
        if entry not in self:
            return None
        return self._positions[id(entry)]

    def step(self, entry: Entry, offset: int) -> Entry:
        index = self.index_of(entry)
        if index is None:
            raise KeyError(f"{entry!r} is not part of the current ring")
        return self._entries[(index + offset) % len(self._entries)]

    def next(self, entry: Entry) -> Entry:
        return self.step(entry, 1)

    def prev(self, entry: Entry) -> Entry:
        return self.step(entry, -1)

    def locate(self, entry: Optional[Entry]) -> Optional[Entry]:
        """Return the ring member with the same identity as ``entry``, if any."""
        if entry is None:
            return None
        if entry in self:
            return entry
        if entry.key is NO_KEY:
            return None
        for candidate in self._entries:
            if same_identity(candidate, entry):
                return candidate
        return None


def relink(subset: Sequence[Entry]) -> NavigationRing:
    """Build exactly one cycle over ``subset`` in the given order.

    Repeated entries are dropped after their first occurrence so the result never
    contains a sub-cycle.
    """
    seen: set[int] = set()
    ordered: list[Entry] = []
    for entry in subset:
        marker = id(entry)
        if marker in seen:
            _LOGGER.debug("Dropping repeated entry %s from relink", entry.entry_id)
            continue
        seen.add(marker)
        ordered.append(entry)
    return NavigationRing(ordered)


def derive_label(label_fn: LabelFn, record: Any) -> str:
    try:
        value = label_fn(record)
    except (KeyError, AttributeError, TypeError, ValueError) as exc:
        _LOGGER.debug("Label derivation failed for %r: %s; using empty label", record, exc)
        return ""
    if value is None:
        return ""
    return str(value)


def _derive_key(key_fn: Optional[KeyFn], record: Any) -> Any:
    if key_fn is None:
        return NO_KEY
    try:
        return key_fn(record)
    except (KeyError, AttributeError, TypeError, ValueError) as exc:
        _LOGGER.debug("Identity derivation failed for %r: %s; comparing by reference", record, exc)
        return NO_KEY


class Catalog:
    """Ordered, immutable collection of entries built from one data source."""

    def __init__(self, entries: Sequence[Entry] = (), *, key_fn: Optional[KeyFn] = None) -> None:
        self._entries: Tuple[Entry, ...] = tuple(entries)
        self.key_fn = key_fn

    @property
    def entries(self) -> Tuple[Entry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    @property
    def first(self) -> Any:
        return self._entries[0].data if self._entries else None

    @property
    def last(self) -> Any:
        return self._entries[-1].data if self._entries else None

    def index_of(self, entry: Entry) -> Optional[int]:
        for idx, candidate in enumerate(self._entries):
            if candidate is entry:
                return idx
        return None

    def find(self, predicate: Callable[[Any, int], Any]) -> int:
        """Index of the first record matching ``predicate(record, index)``, or ``len(self)``."""
        for idx, entry in enumerate(self._entries):
            if predicate(entry.data, idx):
                return idx
        return len(self._entries)

    def ring(self) -> NavigationRing:
        return relink(self._entries)


def _ensure_finite_sequence(records: Any) -> Sequence[Any]:
    if isinstance(records, (str, bytes, bytearray, Mapping)) or not isinstance(records, Sequence):
        raise CatalogError(f"records must be a finite sequence, got {type(records).__name__}")
    return records


def build(
    records: Sequence[Any],
    label_fn: LabelFn,
    node_fn: Optional[NodeFn] = None,
    key_fn: Optional[KeyFn] = None,
) -> Catalog:
    """Wrap raw records into a catalog of entries."""
    records = _ensure_finite_sequence(records)
    entries = []
    for record in records:
        label = derive_label(label_fn, record)
        node = node_fn(record) if node_fn is not None else TextNode(label)
        entries.append(Entry(data=record, display_key=label, node=node, key=_derive_key(key_fn, record)))
    _LOGGER.debug("Built catalog with %d entries", len(entries))
    return Catalog(entries, key_fn=key_fn)


__all__ = [
    "Catalog",
    "Entry",
    "NavigationRing",
    "NO_KEY",
    "TextNode",
    "build",
    "derive_label",
    "next_entry_id",
    "relink",
    "same_identity",
]
