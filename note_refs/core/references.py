from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

LINKS = "links"
BACKLINKS = "backlinks"

# fixed render order
SECTION_ORDER: tuple[str, ...] = (LINKS, BACKLINKS)

SINGULAR = {
    LINKS: "link",
    BACKLINKS: "backlink",
}


class _Sentinel(enum.Enum):
    NOT_READY = "not-ready"

    def __repr__(self) -> str:
        return "NOT_READY"


NOT_READY = _Sentinel.NOT_READY


@dataclass(frozen=True)
class ReferenceEntry:
    relative_path: str
    absolute_path: str

    @classmethod
    def from_path(cls, path: Path, root: Path) -> "ReferenceEntry":
        """Relativize `path` against the collection root (kept absolute if outside it)."""
        path = Path(path)
        try:
            rel = path.relative_to(root).as_posix()
        except ValueError:
            rel = path.as_posix()
        return cls(relative_path=rel, absolute_path=str(path))


ReferenceList = Union[_Sentinel, tuple[ReferenceEntry, ...]]


class ReferenceStore:
    """
    Links / backlinks of one active note.

    Only the fetcher writes here (via `put`); everything else reads `get()`.
    """

    def __init__(self) -> None:
        self._lists: dict[str, ReferenceList] = {name: NOT_READY for name in SECTION_ORDER}
        # bumped on every write; lets a caller tell whether a fetch committed anything
        self.version = 0

    def get(self) -> dict[str, ReferenceList]:
        return dict(self._lists)

    def __getitem__(self, section: str) -> ReferenceList:
        return self._lists[section]

    @property
    def links(self) -> ReferenceList:
        return self._lists[LINKS]

    @property
    def backlinks(self) -> ReferenceList:
        return self._lists[BACKLINKS]

    def put(self, section: str, entries: Sequence[ReferenceEntry]) -> None:
        if section not in self._lists:
            raise KeyError(section)
        self._lists[section] = tuple(entries)
        self.version += 1

    def is_ready(self, sections: Sequence[str] = SECTION_ORDER) -> bool:
        return all(self._lists[s] is not NOT_READY for s in sections)


def count_suffix(n: int) -> str:
    if n == 0:
        return ""
    if n == 1:
        return ":"
    return "s:"


def count_line(section: str, refs: ReferenceList) -> str:
    """
      NOT_READY -> "... links"
      0         -> "0 links"
      1         -> "1 link:"
      n         -> "n links:"
    """
    if refs is NOT_READY:
        return f"... {section}"
    n = len(refs)
    if n == 0:
        return f"{n} {section}"
    return f"{n} {SINGULAR[section]}{count_suffix(n)}"
