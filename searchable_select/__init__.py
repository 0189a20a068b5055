"""Searchable dropdown selector core.

The PyQt6 glue (``QtScheduler``, ``SelectSignals``, ``key_event_from_qt`` and
``rect_from_qrect``) lives in :mod:`searchable_select.qt_host` and is imported on
first attribute access, so the core runs without a Qt binding loaded.
"""

from importlib import import_module

from .accessibility import AccessibilityMirror, AccessibilityState, MarkerChange
from .catalog import Catalog, Entry, NavigationRing, TextNode, build, relink
from .config import GatePolicy, SelectConfig, load_config, resolve_config
from .errors import CatalogError, ConfigurationError, FetchError, FetchFailed, SelectError
from .events import REFRESH_FAILED, SELECT_CHANGE, SELECT_TEXT
from .filtering import FilterEngine, FilterQuery, LocalFilter, RemoteFilter, match_span
from .positioning import OverlayGeometry, OverlayPositioner, Rect, ScrollOffset, reposition, scroll_into_view
from .sources import HttpJsonSource
from .state import Key, KeyAction, KeyEvent, KeyOutcome, SelectionState, SelectionStateMachine
from .timers import AsyncioScheduler, DebounceTimer
from .widget import SearchableSelect, SelectionChanged

__version__ = "0.1.0"

_QT_EXPORTS = ("QtScheduler", "SelectSignals", "key_event_from_qt", "rect_from_qrect")


def __getattr__(name: str):
    if name in _QT_EXPORTS:
        return getattr(import_module(".qt_host", __name__), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "AccessibilityMirror",
    "AccessibilityState",
    "AsyncioScheduler",
    "Catalog",
    "CatalogError",
    "ConfigurationError",
    "DebounceTimer",
    "Entry",
    "FetchError",
    "FetchFailed",
    "FilterEngine",
    "FilterQuery",
    "GatePolicy",
    "Key",
    "KeyAction",
    "KeyEvent",
    "HttpJsonSource",
    "KeyOutcome",
    "LocalFilter",
    "MarkerChange",
    "NavigationRing",
    "OverlayGeometry",
    "OverlayPositioner",
    "REFRESH_FAILED",
    "Rect",
    "RemoteFilter",
    "SELECT_CHANGE",
    "SELECT_TEXT",
    "ScrollOffset",
    "SearchableSelect",
    "SelectConfig",
    "SelectError",
    "SelectionChanged",
    "SelectionState",
    "SelectionStateMachine",
    "TextNode",
    "build",
    "load_config",
    "match_span",
    "relink",
    "reposition",
    "resolve_config",
    "scroll_into_view",
]
