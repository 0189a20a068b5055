"""PyQt6 adapters for hosting the selection core inside a Qt widget tree."""
from __future__ import annotations

from typing import Callable, List, Optional, Set

from PyQt6.QtCore import QObject, QRect, Qt, QTimer, pyqtSignal

from searchable_select.events import REFRESH_FAILED, SELECT_CHANGE, SELECT_TEXT, ListenerHandle
from searchable_select.logging_utils import get_logger
from searchable_select.positioning import Rect
from searchable_select.state import Key, KeyEvent
from searchable_select.widget import SearchableSelect

_LOGGER = get_logger("Qt")

_QT_KEYS = {
    Qt.Key.Key_Up: Key.ARROW_UP.value,
    Qt.Key.Key_Down: Key.ARROW_DOWN.value,
    Qt.Key.Key_Return: Key.ENTER.value,
    Qt.Key.Key_Enter: Key.ENTER.value,
    Qt.Key.Key_Escape: Key.ESCAPE.value,
}


class QtScheduler:
    """``after``/``after_cancel`` pair backed by single-shot :class:`QTimer` objects."""

    def __init__(self, parent: Optional[QObject] = None) -> None:
        self._parent = parent
        self._timers: Set[QTimer] = set()

    @property
    def pending(self) -> int:
        return len(self._timers)

    def after(self, delay_ms: int, callback: Callable[[], None]) -> QTimer:
        timer = QTimer(self._parent)
        timer.setSingleShot(True)
        timer.timeout.connect(lambda: self._fire(timer, callback))
        self._timers.add(timer)
        timer.start(max(0, int(delay_ms)))
        return timer

    def after_cancel(self, handle: object) -> None:
        if not isinstance(handle, QTimer):
            return
        handle.stop()
        self._release(handle)

    def _fire(self, timer: QTimer, callback: Callable[[], None]) -> None:
        self._release(timer)
        callback()

    def _release(self, timer: QTimer) -> None:
        if timer in self._timers:
            self._timers.discard(timer)
            timer.deleteLater()


class SelectSignals(QObject):
    """Re-emits a widget's events as Qt signals."""

    selection_changed = pyqtSignal(object)
    refresh_failed = pyqtSignal(object)
    select_text = pyqtSignal()

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._handles: List[tuple[SearchableSelect, ListenerHandle]] = []

    def bind(self, widget: SearchableSelect) -> None:
        self._handles.append((widget, widget.on(SELECT_CHANGE, self.selection_changed.emit)))
        self._handles.append((widget, widget.on(REFRESH_FAILED, self.refresh_failed.emit)))
        self._handles.append((widget, widget.on(SELECT_TEXT, lambda _payload: self.select_text.emit())))
        _LOGGER.debug("Bound Qt signals to %r", widget)

    def unbind(self) -> None:
        handles = self._handles
        self._handles = []
        for widget, handle in handles:
            widget.off(handle)


def rect_from_qrect(rect: QRect) -> Rect:
    return Rect(left=rect.x(), top=rect.y(), width=rect.width(), height=rect.height())


def key_event_from_qt(key: int | Qt.Key, modifiers: Qt.KeyboardModifier) -> Optional[KeyEvent]:
    """Translate a Qt key press into a :class:`KeyEvent`; None for keys the core ignores."""
    try:
        qt_key = Qt.Key(key)
    except ValueError:
        return None
    name = _QT_KEYS.get(qt_key)
    if name is None:
        return None
    return KeyEvent(
        key=name,
        shift=bool(modifiers & Qt.KeyboardModifier.ShiftModifier),
        ctrl=bool(modifiers & Qt.KeyboardModifier.ControlModifier),
        alt=bool(modifiers & Qt.KeyboardModifier.AltModifier),
        meta=bool(modifiers & Qt.KeyboardModifier.MetaModifier),
    )


__all__ = ["QtScheduler", "SelectSignals", "key_event_from_qt", "rect_from_qrect"]
