"""Desktop entry point: a note editor with a live links / backlinks region."""

from __future__ import annotations

import argparse
from pathlib import Path

from PySide6.QtCore import QSettings
from PySide6.QtWidgets import QApplication

from note_refs.app_settings import SettingsKeys, get_str
from note_refs.logging_setup import SESSION_ID, install_global_exception_hooks, log, setup_logging
from note_refs.settings import APP_NAME
from note_refs.ui.main_window import NotesWindow
from note_refs.vault.repo import VaultRepository

WELCOME = (
    "---\n"
    "title: Welcome\n"
    "---\n"
    "\n"
    "# Welcome\n"
    "\n"
    "Links to other notes look like [[Second note]].\n"
)


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog=APP_NAME, description="Notes with live links / backlinks")
    p.add_argument("--vault", type=Path, default=None, help="Path to notes folder (vault)")
    p.add_argument("note", nargs="?", type=Path, default=None, help="Note to open")
    return p.parse_args(argv)


def ensure_vault(vault: Path) -> Path:
    """Create the vault if needed; returns the note to open when none was given."""
    vault.mkdir(parents=True, exist_ok=True)
    welcome = vault / "Welcome.md"
    if welcome.exists():
        return welcome
    notes = sorted(vault.glob("*.md"), key=lambda p: p.name.lower())
    if notes:
        return notes[0]
    welcome.write_text(WELCOME, encoding="utf-8")
    return welcome


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()
    install_global_exception_hooks()

    app = QApplication([])
    settings = QSettings(APP_NAME, APP_NAME)

    vault = args.vault or Path(get_str(settings, SettingsKeys.VAULT_DIR, "") or Path.cwd() / "vault")
    fallback = ensure_vault(vault)
    settings.setValue(SettingsKeys.VAULT_DIR, str(vault))

    repo = VaultRepository(vault)
    win = NotesWindow(repo, settings=settings)
    win.resize(900, 700)

    note = args.note
    if note is None:
        last = get_str(settings, SettingsKeys.LAST_NOTE, "")
        note = Path(last) if last and Path(last).exists() else fallback
    if note.exists():
        win.open_path(note)

    win.show()
    log.info("Application started, SID=%s vault=%s", SESSION_ID, repo.root())
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
