from __future__ import annotations


class NoteRefsError(Exception):
    """Base class for errors raised by the references engine."""


class HeaderNotFound(NoteRefsError, LookupError):
    """The note has no recognizable header / front matter to anchor the region."""


class FetchInterrupted(NoteRefsError):
    """Raised at a fetch checkpoint when user input is pending."""


class ReadOnlyRegionError(NoteRefsError):
    """A normal edit touched the managed references region."""

    def __init__(self, start: int, end: int) -> None:
        super().__init__(f"edit [{start}, {end}) touches the read-only references region")
        self.start = start
        self.end = end
