from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QSettings
from PySide6.QtGui import QAction
from PySide6.QtWidgets import QFileDialog, QMainWindow, QMessageBox

from note_refs.app_settings import SettingsKeys, load_config
from note_refs.core.buffer import NoteBuffer
from note_refs.infrastructure.filesystem import write_recovery_copy
from note_refs.services.manager import ReferencesManager
from note_refs.settings import APP_NAME
from note_refs.ui.editor import EditorInputProbe, NoteEditor
from note_refs.ui.qt_utils import blocked_signals, safe_set_setting
from note_refs.vault.repo import VaultRepository

log = logging.getLogger(__name__)


class NotesWindow(QMainWindow):
    """One note at a time, with the links / backlinks region kept live."""

    def __init__(self, repo: VaultRepository, *, settings: Optional[QSettings] = None) -> None:
        super().__init__()
        self.repo = repo
        self._settings = settings or QSettings(APP_NAME, APP_NAME)
        self.refs = ReferencesManager(
            repo,
            config=load_config(self._settings, open_reference=self.open_path),
            parent=self,
        )

        self.editor = NoteEditor(self)
        self.setCentralWidget(self.editor)
        self._probe = EditorInputProbe(self.editor)

        self.editor.userActivity.connect(self._on_user_activity)
        self.editor.referenceClicked.connect(self._on_reference_clicked)
        self.editor.modificationChanged.connect(lambda _m: self._update_title())

        self._build_menu()
        self._update_title()

    @property
    def buffer(self) -> Optional[NoteBuffer]:
        return self.editor.buffer

    def _build_menu(self) -> None:
        filem = self.menuBar().addMenu("File")

        act_open = QAction("Open note…", self)
        act_open.setShortcut("Ctrl+O")
        act_open.triggered.connect(self.open_note_dialog)

        act_save = QAction("Save", self)
        act_save.setShortcut("Ctrl+S")
        act_save.triggered.connect(self.save_now)

        filem.addAction(act_open)
        filem.addSeparator()
        filem.addAction(act_save)

        refm = self.menuBar().addMenu("References")

        self._act_toggle = QAction("Show links / backlinks", self, checkable=True)
        self._act_toggle.setShortcut("Ctrl+Shift+B")
        self._act_toggle.toggled.connect(self.set_references_enabled)

        act_refresh = QAction("Refresh now", self)
        act_refresh.setShortcut("F5")
        act_refresh.triggered.connect(self.refresh_references)

        refm.addAction(self._act_toggle)
        refm.addAction(act_refresh)

    def _update_title(self) -> None:
        buf = self.buffer
        if buf is None or buf.path is None:
            self.setWindowTitle(APP_NAME)
            return
        mark = "*" if buf.modified else ""
        self.setWindowTitle(f"{mark}{self.repo.relativize(buf.path)} — {APP_NAME}")

    # ───────────────────────── notes ─────────────────────────

    def open_note_dialog(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open note", str(self.repo.root()), "Notes (*.md *.markdown)"
        )
        if path:
            self.open_path(path)

    def open_path(self, path) -> bool:
        """Default open-reference action: switch the window to `path`."""
        path = Path(path)
        if not path.exists():
            QMessageBox.warning(self, "Open note", f"Note does not exist:\n{path}")
            return False
        if not self._flush_current():
            return False

        was_enabled = True
        old = self.buffer
        if old is not None:
            was_enabled = self.refs.is_enabled(old)
            self.refs.disable(old)

        try:
            buf = NoteBuffer.load(path)
        except (OSError, UnicodeDecodeError) as e:
            log.exception("Failed to open note: %s", path)
            QMessageBox.critical(self, "Open note", str(e))
            return False

        log.info("Note opened: %s", path)
        self.editor.set_buffer(buf)
        if was_enabled:
            self.refs.enable(buf, input_probe=self._probe)
        with blocked_signals(self._act_toggle):
            self._act_toggle.setChecked(was_enabled)
        safe_set_setting(self._settings, SettingsKeys.LAST_NOTE, str(path))
        self._update_title()
        return True

    def save_now(self) -> bool:
        buf = self.buffer
        if buf is None:
            return True
        try:
            buf.save()
        except OSError as e:
            log.exception("Save failed: %s", buf.path)
            try:
                rec = write_recovery_copy(buf.path or Path("Untitled.md"), buf.persisted_text())
                log.warning("Recovery copy written: %s", rec)
            except OSError:
                log.exception("Recovery copy failed")
            QMessageBox.critical(self, "Save failed", str(e))
            return False
        self._update_title()
        return True

    def _flush_current(self) -> bool:
        buf = self.buffer
        if buf is None or not buf.modified:
            return True
        log.info("Flush-save before switch: %s", buf.path)
        return self.save_now()

    # ───────────────────────── references ─────────────────────────

    def set_references_enabled(self, enabled: bool) -> None:
        buf = self.buffer
        if buf is None:
            return
        if enabled:
            self.refs.enable(buf, input_probe=self._probe)
        else:
            self.refs.disable(buf)

    def refresh_references(self) -> None:
        buf = self.buffer
        ctrl = self.refs.controller_for(buf) if buf is not None else None
        if ctrl is not None:
            ctrl.refresh()

    def _on_user_activity(self) -> None:
        buf = self.buffer
        ctrl = self.refs.controller_for(buf) if buf is not None else None
        if ctrl is not None and ctrl.scheduler is not None:
            ctrl.scheduler.postpone()

    def _on_reference_clicked(self, index: int) -> None:
        buf = self.buffer
        ctrl = self.refs.controller_for(buf) if buf is not None else None
        if ctrl is not None:
            ctrl.activate_reference(index)

    def closeEvent(self, event):  # type: ignore[override]
        """Persist pending edits and take the region down before closing."""
        if not self._flush_current():
            event.ignore()
            return
        self.refs.disable_all()
        super().closeEvent(event)
