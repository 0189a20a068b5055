"""Placement of the floating list relative to its anchor.

This module stays free of toolkit types; callers inject thin adapters for reading
the anchor rectangle, the scroll offset, applying geometry and subscribing to
viewport resizes.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from searchable_select.logging_utils import get_logger

_LOGGER = get_logger("Position")


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass(frozen=True)
class ScrollOffset:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class OverlayGeometry:
    top: float
    left: float
    width: float


def reposition(anchor: Rect, scroll: ScrollOffset = ScrollOffset()) -> OverlayGeometry:
    """Place the overlay flush under the anchor, in document coordinates."""
    return OverlayGeometry(
        top=anchor.bottom + scroll.y,
        left=anchor.left + scroll.x,
        width=anchor.width,
    )


def scroll_into_view(item: Rect, viewport: Rect, scroll_top: float) -> float:
    """Return the list scroll offset that brings ``item`` fully into ``viewport``."""
    if item.bottom > viewport.bottom:
        return scroll_top + item.bottom - viewport.top - viewport.height
    if item.top < viewport.top:
        return scroll_top + item.top - viewport.top
    return scroll_top


ResizeCallback = Callable[..., None]


class OverlayPositioner:
    """Keeps the overlay aligned while open; owns the viewport resize subscription."""

    def __init__(
        self,
        *,
        anchor_rect_fn: Callable[[], Rect],
        apply_geometry_fn: Callable[[OverlayGeometry], None],
        add_resize_listener_fn: Callable[[ResizeCallback], object],
        remove_resize_listener_fn: Callable[[object], None],
        scroll_offset_fn: Optional[Callable[[], ScrollOffset]] = None,
        item_rect_fn: Optional[Callable[[str], Optional[Rect]]] = None,
        list_viewport_fn: Optional[Callable[[], Tuple[Rect, float]]] = None,
        set_list_scroll_fn: Optional[Callable[[float], None]] = None,
    ) -> None:
        self._anchor_rect = anchor_rect_fn
        self._apply_geometry = apply_geometry_fn
        self._add_resize_listener = add_resize_listener_fn
        self._remove_resize_listener = remove_resize_listener_fn
        self._scroll_offset = scroll_offset_fn or ScrollOffset
        self._item_rect = item_rect_fn
        self._list_viewport = list_viewport_fn
        self._set_list_scroll = set_list_scroll_fn
        self._listener_handle: object | None = None
        self._last_geometry: Optional[OverlayGeometry] = None

    @property
    def attached(self) -> bool:
        return self._listener_handle is not None

    @property
    def geometry(self) -> Optional[OverlayGeometry]:
        return self._last_geometry

    def open(self) -> Optional[OverlayGeometry]:
        if self._listener_handle is None:
            self._listener_handle = self._add_resize_listener(self._handle_resize)
            _LOGGER.debug("Attached viewport resize listener")
        return self.refresh(force=True)

    def close(self) -> None:
        handle = self._listener_handle
        self._listener_handle = None
        self._last_geometry = None
        if handle is None:
            return
        self._remove_resize_listener(handle)
        _LOGGER.debug("Detached viewport resize listener")

    def refresh(self, *, force: bool = False) -> Optional[OverlayGeometry]:
        if self._listener_handle is None:
            return None
        geometry = reposition(self._anchor_rect(), self._scroll_offset())
        if force or geometry != self._last_geometry:
            _LOGGER.debug("Overlay geometry: top=%.1f left=%.1f width=%.1f", geometry.top, geometry.left, geometry.width)
            self._apply_geometry(geometry)
        self._last_geometry = geometry
        return geometry

    def reveal(self, entry_id: str) -> Optional[float]:
        """Scroll the list so the entry with ``entry_id`` is fully visible.

        ``list_viewport_fn`` returns the list's visible rect and its current scroll
        offset. Without the three list hooks this is a no-op.
        """
        if self._item_rect is None or self._list_viewport is None or self._set_list_scroll is None:
            return None
        item = self._item_rect(entry_id)
        if item is None:
            return None
        viewport, scroll_top = self._list_viewport()
        target = scroll_into_view(item, viewport, scroll_top)
        if target != scroll_top:
            self._set_list_scroll(target)
        return target

    def _handle_resize(self, *_args: object) -> None:
        self.refresh()


__all__ = ["OverlayGeometry", "OverlayPositioner", "Rect", "ScrollOffset", "reposition", "scroll_into_view"]
