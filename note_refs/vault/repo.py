from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from note_refs.core.buffer import MARKDOWN_SUFFIXES, detect_format
from note_refs.core.filenames import identifier_key, safe_filename
from note_refs.core.links import LinkIndex

log = logging.getLogger(__name__)

Extractor = Callable[[str, str], "set[str]"]


class VaultRepository:
    """
    Collection adapter: root resolver, identifier resolver, path relativization.

    Identifier of a note = canonical file stem (safe_filename), compared
    case-insensitively.
    """

    def __init__(self, vault_dir: Path, *, catalog_ttl: float = 1.0) -> None:
        self.vault_dir = Path(vault_dir).resolve()
        self.catalog_ttl = catalog_ttl
        self._catalog: dict[str, list[Path]] = {}
        self._scanned_at: Optional[float] = None

    def __repr__(self) -> str:
        return f"VaultRepository({self.vault_dir})"

    def ensure(self) -> None:
        self.vault_dir.mkdir(parents=True, exist_ok=True)

    def root(self) -> Path:
        return self.vault_dir

    def note_paths(self) -> list[Path]:
        out: list[Path] = []
        for p in self.vault_dir.rglob("*"):
            if p.suffix.lower() not in MARKDOWN_SUFFIXES:
                continue
            rel = p.relative_to(self.vault_dir)
            # .obsidian/, .trash/, atomic-write temp files
            if any(part.startswith(".") for part in rel.parts):
                continue
            if p.is_file():
                out.append(p)
        return sorted(out, key=lambda p: str(p).lower())

    def identifier_for(self, path: Path) -> str:
        return safe_filename(Path(path).stem)

    def relativize(self, path: Path) -> str:
        path = Path(path)
        try:
            return path.relative_to(self.vault_dir).as_posix()
        except ValueError:
            return path.as_posix()

    def catalog(self, *, force: bool = False) -> dict[str, list[Path]]:
        now = time.monotonic()
        stale = self._scanned_at is None or (now - self._scanned_at) > self.catalog_ttl
        if force or stale:
            catalog: dict[str, list[Path]] = {}
            for p in self.note_paths():
                catalog.setdefault(identifier_key(p.stem), []).append(p)
            self._catalog = catalog
            self._scanned_at = now
        return self._catalog

    def resolve(self, identifier: str) -> list[Path]:
        """Absolute paths of the notes named by `identifier` (empty if none exist)."""
        key = identifier_key(identifier)
        if not key:
            return []
        return list(self.catalog().get(key, ()))


class VaultBacklinkIndex:
    """
    Reverse index: identifier -> notes whose text links to it.

    Kept incrementally: refresh() re-reads only files whose mtime changed
    and forgets deleted ones. The optional checkpoint runs before each
    file; if it raises, the files already read stay indexed.
    """

    def __init__(self, repo: VaultRepository, extractor: Extractor) -> None:
        self.repo = repo
        self._extract = extractor
        self._index = LinkIndex()
        self._mtimes: dict[Path, int] = {}

    @property
    def index(self) -> LinkIndex:
        return self._index

    def clear(self) -> None:
        self._index.clear()
        self._mtimes.clear()

    def refresh(self, *, checkpoint: Optional[Callable[[], None]] = None) -> int:
        """Returns the number of notes whose outgoing links changed."""
        t0 = time.perf_counter()
        changed = 0
        seen: set[Path] = set()

        for path in self.repo.note_paths():
            if checkpoint is not None:
                checkpoint()
            seen.add(path)
            try:
                mtime = path.stat().st_mtime_ns
            except OSError:
                continue
            if self._mtimes.get(path) == mtime:
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                log.warning("Unreadable note skipped by backlink index: %s", path)
                continue
            targets = {identifier_key(t) for t in self._extract(text, detect_format(path))}
            targets.discard("")
            if self._index.update_note(str(path), targets):
                changed += 1
            self._mtimes[path] = mtime

        for gone in set(self._mtimes) - seen:
            self._mtimes.pop(gone, None)
            if self._index.forget_note(str(gone)):
                changed += 1

        if changed:
            log.debug(
                "Backlink index refreshed: changed=%d notes=%d time_ms=%.1f",
                changed,
                len(seen),
                (time.perf_counter() - t0) * 1000.0,
            )
        return changed

    def backlinks(self, identifier: str, *, checkpoint: Optional[Callable[[], None]] = None) -> list[Path]:
        self.refresh(checkpoint=checkpoint)
        return [Path(p) for p in self._index.backlinks_for(identifier_key(identifier))]

    __call__ = backlinks
