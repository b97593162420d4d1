from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

from note_refs.infrastructure.filesystem import atomic_write_text

from .errors import ReadOnlyRegionError
from .filenames import safe_filename

log = logging.getLogger(__name__)

BufferCallback = Callable[["NoteBuffer"], None]

MARKDOWN_SUFFIXES = {".md", ".markdown"}


def detect_format(path: Optional[Path]) -> str:
    if path is not None and Path(path).suffix.lower() in MARKDOWN_SUFFIXES:
        return "markdown"
    return "text"


@dataclass(frozen=True)
class ReferenceButton:
    """Activatable span inside a region; offsets are relative to the region start."""

    start: int
    end: int
    payload: str


@dataclass(frozen=True)
class ManagedRegion:
    """
    Tagged span [start, end) owned by the references engine.

    `separator` is True when one extra character (the blank line) follows
    the tagged span and belongs to the region for removal purposes.
    """

    start: int
    end: int
    tag: str
    buttons: tuple[ReferenceButton, ...] = field(default=())
    separator: bool = False

    @property
    def protected_end(self) -> int:
        return self.end + (1 if self.separator else 0)

    def shifted(self, delta: int) -> "ManagedRegion":
        return ManagedRegion(
            start=self.start + delta,
            end=self.end + delta,
            tag=self.tag,
            buttons=self.buttons,
            separator=self.separator,
        )


class NoteBuffer:
    """
    In-memory text of one note plus the transient state attached to it:

      - `modified` ("has unsaved changes")
      - at most one ManagedRegion
      - persist / change subscriptions

    insert/delete/replace are user edits and refuse to touch the region.
    Code that owns the region wraps its edits in inhibit_read_only().
    """

    def __init__(self, text: str = "", *, path: Optional[Path] = None, modified: bool = False) -> None:
        self._text = text
        self.path: Optional[Path] = Path(path) if path is not None else None
        self.modified = modified

        self._region: Optional[ManagedRegion] = None
        self._inhibit = 0

        self._before_persist: list[BufferCallback] = []
        self._after_persist: list[BufferCallback] = []
        self._on_change: list[BufferCallback] = []

    def __repr__(self) -> str:
        return f"NoteBuffer(path={self.path!s}, len={len(self._text)}, modified={self.modified})"

    @classmethod
    def load(cls, path: Path) -> "NoteBuffer":
        path = Path(path)
        return cls(path.read_text(encoding="utf-8"), path=path)

    # ───────────────────────── properties ─────────────────────────

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    @property
    def identifier(self) -> Optional[str]:
        if self.path is None:
            return None
        return safe_filename(self.path.stem)

    @property
    def format(self) -> str:
        return detect_format(self.path)

    @property
    def region(self) -> Optional[ManagedRegion]:
        return self._region

    @property
    def read_only_inhibited(self) -> bool:
        return self._inhibit > 0

    # ───────────────────────── edits ─────────────────────────

    def insert(self, pos: int, s: str) -> None:
        self.replace(pos, pos, s)

    def delete(self, start: int, end: int) -> None:
        self.replace(start, end, "")

    def replace(self, start: int, end: int, s: str) -> None:
        n = len(self._text)
        if not (0 <= start <= end <= n):
            raise IndexError(f"range [{start}, {end}) out of bounds for length {n}")
        if start == end and not s:
            return

        region = self._region
        if region is not None and not self._inhibit and self._touches(region, start, end):
            raise ReadOnlyRegionError(start, end)

        self._text = self._text[:start] + s + self._text[end:]
        self.modified = True

        if region is not None:
            delta = len(s) - (end - start)
            if end <= region.start:
                if delta:
                    self._region = region.shifted(delta)
            elif start >= region.protected_end:
                pass
            else:
                # the region text itself was rewritten: the record is stale
                self._region = None

        self._emit(self._on_change)

    @staticmethod
    def _touches(region: ManagedRegion, start: int, end: int) -> bool:
        if start == end:
            # no typing at either edge: it would glue text to the region
            return region.start <= start <= region.end
        return start < region.protected_end and end > region.start

    @contextmanager
    def inhibit_read_only(self) -> Iterator[None]:
        self._inhibit += 1
        try:
            yield
        finally:
            self._inhibit -= 1

    @contextmanager
    def preserve_modified(self) -> Iterator[None]:
        """Restore the unsaved-changes flag to its value on entry."""
        was = self.modified
        try:
            yield
        finally:
            self.modified = was

    # ───────────────────────── region record ─────────────────────────

    def set_region(self, region: ManagedRegion) -> None:
        if self._region is not None:
            raise RuntimeError("a managed region is already present; remove it first")
        if not (0 <= region.start <= region.end <= len(self._text)):
            raise IndexError(f"region [{region.start}, {region.end}) out of bounds")
        self._region = region

    def clear_region(self) -> Optional[ManagedRegion]:
        region, self._region = self._region, None
        return region

    def region_at(self, offset: int, tag: Optional[str] = None) -> Optional[ManagedRegion]:
        """The region iff it starts exactly at `offset` (and carries `tag`, if given)."""
        region = self._region
        if region is None or region.start != offset:
            return None
        if tag is not None and region.tag != tag:
            return None
        return region

    def reference_at(self, pos: int) -> Optional[str]:
        region = self._region
        if region is None or not (region.start <= pos < region.end):
            return None
        rel = pos - region.start
        for b in region.buttons:
            if b.start <= rel < b.end:
                return b.payload
        return None

    def persisted_text(self) -> str:
        """Text as it must appear on disk: never contains the managed region."""
        region = self._region
        if region is None:
            return self._text
        end = min(region.protected_end, len(self._text))
        return self._text[:region.start] + self._text[end:]

    # ───────────────────────── persistence ─────────────────────────

    def on_before_persist(self, cb: BufferCallback) -> None:
        self._before_persist.append(cb)

    def off_before_persist(self, cb: BufferCallback) -> None:
        _discard(self._before_persist, cb)

    def on_after_persist(self, cb: BufferCallback) -> None:
        self._after_persist.append(cb)

    def off_after_persist(self, cb: BufferCallback) -> None:
        _discard(self._after_persist, cb)

    def on_change(self, cb: BufferCallback) -> None:
        self._on_change.append(cb)

    def off_change(self, cb: BufferCallback) -> None:
        _discard(self._on_change, cb)

    def save(self, path: Optional[Path] = None) -> Path:
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("buffer has no backing path")

        self._emit(self._before_persist)
        if self._region is not None:
            log.warning("Managed region still present at save time; writing without it: %s", target)

        atomic_write_text(target, self.persisted_text(), encoding="utf-8")
        self.path = target
        self.modified = False
        log.info("Note saved: %s", target)

        self._emit(self._after_persist)
        return target

    def _emit(self, callbacks: list[BufferCallback]) -> None:
        for cb in list(callbacks):
            cb(self)


def _discard(callbacks: list[BufferCallback], cb: BufferCallback) -> None:
    try:
        callbacks.remove(cb)
    except ValueError:
        pass
