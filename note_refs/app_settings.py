from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QSettings

from note_refs.core.references import SECTION_ORDER

DELAY_FIRST_MS = 100
DELAY_INIT_MS = 1000
DELAY_MAINTAIN_MS = 10_000


@dataclass(frozen=True)
class SettingsKeys:
    VAULT_DIR: str = "vault/dir"
    LAST_NOTE: str = "nav/last_note"
    SECTIONS: str = "refs/sections"
    DELAY_FIRST_MS: str = "refs/delay_first_ms"
    DELAY_INIT_MS: str = "refs/delay_init_ms"
    DELAY_MAINTAIN_MS: str = "refs/delay_maintain_ms"


@dataclass(frozen=True)
class ReferencesConfig:
    """
    sections        which lists to show, always in render order
    first_ms        delay of the very first tick after activation
    init_ms         delay while some list is still being computed
    maintain_ms     delay once every list is populated
    open_reference  called with an absolute path when an entry is activated
    """

    sections: tuple[str, ...] = SECTION_ORDER
    first_ms: int = DELAY_FIRST_MS
    init_ms: int = DELAY_INIT_MS
    maintain_ms: int = DELAY_MAINTAIN_MS
    open_reference: Optional[Callable[[str], object]] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sections", normalize_sections(self.sections))
        object.__setattr__(self, "first_ms", normalize_delay(self.first_ms, DELAY_FIRST_MS))
        object.__setattr__(self, "init_ms", normalize_delay(self.init_ms, DELAY_INIT_MS))
        object.__setattr__(self, "maintain_ms", normalize_delay(self.maintain_ms, DELAY_MAINTAIN_MS))


def normalize_sections(value: Iterable[str] | str | None) -> tuple[str, ...]:
    """Known section names in render order; None means all of them."""
    if value is None:
        return SECTION_ORDER
    if isinstance(value, str):
        value = value.replace(",", " ").split()
    wanted = {(v or "").strip().lower() for v in value}
    return tuple(s for s in SECTION_ORDER if s in wanted)


def normalize_delay(value, default: int) -> int:
    try:
        ms = int(value)
    except (TypeError, ValueError):
        return default
    return ms if ms >= 0 else default


def get_str(settings: QSettings, key: str, default: str) -> str:
    try:
        val = settings.value(key, default)
        return str(val) if val is not None else default
    except Exception:
        return default


def get_int(settings: QSettings, key: str, default: int) -> int:
    try:
        return int(settings.value(key, default))
    except Exception:
        return default


def load_config(settings: QSettings, *, open_reference: Optional[Callable[[str], object]] = None) -> ReferencesConfig:
    raw = settings.value(SettingsKeys.SECTIONS, None)
    if isinstance(raw, (list, tuple)):
        # QSettings hands back a list for "links, backlinks" in ini files
        raw = [str(v) for v in raw]
    return ReferencesConfig(
        sections=normalize_sections(raw),
        first_ms=get_int(settings, SettingsKeys.DELAY_FIRST_MS, DELAY_FIRST_MS),
        init_ms=get_int(settings, SettingsKeys.DELAY_INIT_MS, DELAY_INIT_MS),
        maintain_ms=get_int(settings, SettingsKeys.DELAY_MAINTAIN_MS, DELAY_MAINTAIN_MS),
        open_reference=open_reference,
    )
