from __future__ import annotations

from contextlib import contextmanager

from PySide6.QtCore import QSettings


@contextmanager
def blocked_signals(obj):
    """Temporarily silence Qt signals of `obj`; always re-enabled."""
    if obj is None:
        yield
        return
    try:
        obj.blockSignals(True)
        yield
    finally:
        try:
            obj.blockSignals(False)
        except RuntimeError:
            # C++ object already deleted by Qt
            pass


def safe_set_setting(settings: QSettings, key: str, value) -> None:
    """Best-effort write to QSettings without crashing the UI."""
    try:
        settings.setValue(key, value)
    except Exception:
        pass


def utf16_to_index(text: str, pos16: int) -> int:
    """QString (UTF-16) position -> Python str index."""
    i = n = 0
    while n < pos16 and i < len(text):
        n += 2 if ord(text[i]) > 0xFFFF else 1
        i += 1
    return i


def index_to_utf16(text: str, index: int) -> int:
    return index + sum(1 for ch in text[:index] if ord(ch) > 0xFFFF)
