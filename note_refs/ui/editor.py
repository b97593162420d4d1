from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QCoreApplication, Qt, Signal
from PySide6.QtGui import QColor, QTextCharFormat, QTextCursor
from PySide6.QtWidgets import QApplication, QPlainTextEdit, QTextEdit

from note_refs.core.buffer import NoteBuffer
from note_refs.core.errors import ReadOnlyRegionError
from note_refs.ui.qt_utils import index_to_utf16, utf16_to_index

log = logging.getLogger(__name__)


class NoteEditor(QPlainTextEdit):
    """
    View over a NoteBuffer. The buffer is the source of truth:

      - user edits are forwarded to it; a refused edit reverts the widget
      - programmatic buffer changes (region render/remove) re-sync the widget
    """

    userActivity = Signal()
    referenceClicked = Signal(int)  # buffer offset
    modificationChanged = Signal(bool)

    def __init__(self, parent=None) -> None:
        super().__init__(parent)
        self._buffer: Optional[NoteBuffer] = None
        self._syncing = False
        self._forwarding = False
        self._key_count = 0
        self._was_modified = False

        self._region_format = QTextCharFormat()
        self._region_format.setForeground(QColor("#888888"))

        self.document().contentsChange.connect(self._on_contents_change)

    @property
    def buffer(self) -> Optional[NoteBuffer]:
        return self._buffer

    @property
    def key_count(self) -> int:
        return self._key_count

    def set_buffer(self, buffer: Optional[NoteBuffer]) -> None:
        if self._buffer is not None:
            self._buffer.off_change(self._on_buffer_changed)
        self._buffer = buffer
        if buffer is not None:
            buffer.on_change(self._on_buffer_changed)
        self._sync_from_buffer(keep_cursor=False)

    # ───────────────────────── buffer -> widget ─────────────────────────

    def _on_buffer_changed(self, buffer: NoteBuffer) -> None:
        if self._forwarding:
            return
        self._sync_from_buffer()

    def _sync_from_buffer(self, *, keep_cursor: bool = True) -> None:
        buffer = self._buffer
        old = self.toPlainText()
        new = buffer.text if buffer is not None else ""

        cur = utf16_to_index(old, self.textCursor().position()) if keep_cursor else 0
        if keep_cursor:
            # shift the cursor if the change happened before it
            prefix = 0
            limit = min(len(old), len(new))
            while prefix < limit and old[prefix] == new[prefix]:
                prefix += 1
            if cur > prefix:
                cur = max(prefix, cur + len(new) - len(old))
        cur = min(cur, len(new))

        self._syncing = True
        try:
            if old != new:
                scroll = self.verticalScrollBar().value()
                self.setPlainText(new)
                self.verticalScrollBar().setValue(scroll)
            c = self.textCursor()
            c.setPosition(index_to_utf16(new, cur))
            self.setTextCursor(c)
        finally:
            self._syncing = False
        self._paint_region()
        self._emit_modified()

    def _paint_region(self) -> None:
        selections = []
        region = self._buffer.region if self._buffer is not None else None
        if region is not None:
            text = self._buffer.text
            sel = QTextEdit.ExtraSelection()
            sel.format = self._region_format
            c = QTextCursor(self.document())
            c.setPosition(index_to_utf16(text, region.start))
            c.setPosition(index_to_utf16(text, region.end), QTextCursor.KeepAnchor)
            sel.cursor = c
            selections.append(sel)
        self.setExtraSelections(selections)

    def _emit_modified(self) -> None:
        modified = bool(self._buffer is not None and self._buffer.modified)
        if modified != self._was_modified:
            self._was_modified = modified
            self.modificationChanged.emit(modified)

    # ───────────────────────── widget -> buffer ─────────────────────────

    def _on_contents_change(self, pos: int, removed: int, added: int) -> None:
        if self._syncing or self._buffer is None:
            return
        buffer = self._buffer
        old = buffer.text
        new = self.toPlainText()

        start = utf16_to_index(new, pos)
        inserted = new[start:utf16_to_index(new, pos + added)]
        old_end = start + len(old) - len(new) + len(inserted)
        if old[start:old_end] == inserted and len(old) == len(new):
            return  # formatting-only change

        self._forwarding = True
        try:
            buffer.replace(start, old_end, inserted)
        except (ReadOnlyRegionError, IndexError) as e:
            log.debug("Edit refused: %s", e)
            QApplication.beep()
            self._forwarding = False
            self._sync_from_buffer(keep_cursor=False)
            self._restore_cursor(start)
            return
        finally:
            self._forwarding = False
        self._paint_region()
        self._emit_modified()

    def _restore_cursor(self, index: int) -> None:
        text = self.toPlainText()
        c = self.textCursor()
        c.setPosition(index_to_utf16(text, min(index, len(text))))
        self.setTextCursor(c)

    # ───────────────────────── input ─────────────────────────

    def keyPressEvent(self, event):  # type: ignore[override]
        self._key_count += 1
        self.userActivity.emit()
        super().keyPressEvent(event)

    def mouseReleaseEvent(self, event):  # type: ignore[override]
        super().mouseReleaseEvent(event)
        if event.button() != Qt.LeftButton or self._buffer is None:
            return
        if self.textCursor().hasSelection():
            return
        pos16 = self.cursorForPosition(event.position().toPoint()).position()
        index = utf16_to_index(self.toPlainText(), pos16)
        if self._buffer.reference_at(index) is not None:
            self.referenceClicked.emit(index)


class EditorInputProbe:
    """
    Input probe for the scheduler: drains queued events, then reports
    whether a key press reached the editor since reset().
    """

    def __init__(self, editor: NoteEditor) -> None:
        self._editor = editor
        self._mark = editor.key_count

    def reset(self) -> None:
        self._mark = self._editor.key_count

    def pending(self) -> bool:
        QCoreApplication.processEvents()
        return self._editor.key_count != self._mark
