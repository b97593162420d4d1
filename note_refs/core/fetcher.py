from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .buffer import NoteBuffer
from .references import BACKLINKS, LINKS, SECTION_ORDER, ReferenceEntry, ReferenceStore

log = logging.getLogger(__name__)

Checkpoint = Callable[[], None]


def _no_checkpoint() -> None:
    return None


class Fetcher:
    """
    Recomputes the links / backlinks lists of a note.

    Collaborators are plain callables:
      root()                   -> collection root
      resolve(identifier)      -> absolute paths named by a link target
      extract(text, fmt)       -> outbound link targets
      backlinks(identifier, checkpoint=...) -> absolute paths of notes linking here

    `checkpoint` is called between units of work and may raise
    FetchInterrupted. A section is committed to the store only once its
    list is complete, so an interrupted fetch never leaves a partial list.
    """

    def __init__(
        self,
        *,
        root: Callable[[], Path],
        resolve: Callable[[str], Iterable[Path]],
        extract: Callable[[str, str], Iterable[str]],
        backlinks: Callable[..., Iterable[Path]],
        sections: Sequence[str] = SECTION_ORDER,
    ) -> None:
        self._root = root
        self._resolve = resolve
        self._extract = extract
        self._backlinks = backlinks
        self.sections = tuple(s for s in SECTION_ORDER if s in sections)

    def fetch(self, buffer: NoteBuffer, store: ReferenceStore, *, checkpoint: Checkpoint = _no_checkpoint) -> bool:
        """Returns False if the note has no existing backing file (store untouched)."""
        path = buffer.path
        if path is None or not path.exists():
            log.debug("Fetch skipped, no backing file: %r", buffer)
            return False

        root = Path(self._root())
        for section in self.sections:
            checkpoint()
            if section == LINKS:
                entries = self._fetch_links(buffer, root, checkpoint)
            else:
                entries = self._fetch_backlinks(buffer, root, checkpoint)
            store.put(section, entries)
            log.debug("Fetched %s: note=%s count=%d", section, path.name, len(entries))
        return True

    def _fetch_links(self, buffer: NoteBuffer, root: Path, checkpoint: Checkpoint) -> list[ReferenceEntry]:
        targets = sorted(set(self._extract(buffer.text, buffer.format)), key=str.lower)
        seen: set[str] = set()
        entries: list[ReferenceEntry] = []
        for target in targets:
            checkpoint()
            for p in self._resolve(target):
                entry = ReferenceEntry.from_path(Path(p), root)
                if entry.absolute_path in seen:
                    continue
                seen.add(entry.absolute_path)
                entries.append(entry)
        return entries

    def _fetch_backlinks(self, buffer: NoteBuffer, root: Path, checkpoint: Checkpoint) -> list[ReferenceEntry]:
        own = _canonical(buffer.path)
        paths = list(self._backlinks(buffer.identifier or "", checkpoint=checkpoint))
        checkpoint()

        seen: set[Path] = {own}
        entries: list[ReferenceEntry] = []
        for p in paths:
            key = _canonical(Path(p))
            if key in seen:
                continue
            seen.add(key)
            entries.append(ReferenceEntry.from_path(Path(p), root))
        return entries


def _canonical(path: Path) -> Path:
    try:
        return Path(path).resolve()
    except OSError:
        return Path(path).absolute()
