from __future__ import annotations

import logging
from typing import Callable, Sequence

from .buffer import ManagedRegion, NoteBuffer, ReferenceButton
from .errors import HeaderNotFound
from .frontmatter import header_end
from .references import NOT_READY, SECTION_ORDER, ReferenceStore, count_line

log = logging.getLogger(__name__)

REGION_TAG = "note-refs"
ENTRY_INDENT = "  "


class Renderer:
    """
    Draws / erases the references region right after the note header.

    Layout (the tagged span), followed by one blank separator line:

        0 links
        1 backlink:
          notes/a.md

    Neither operation changes the note's unsaved-changes flag.
    """

    def __init__(
        self,
        *,
        sections: Sequence[str] = SECTION_ORDER,
        locate_header: Callable[[str], int] = header_end,
        tag: str = REGION_TAG,
    ) -> None:
        self.sections = tuple(s for s in SECTION_ORDER if s in sections)
        self._locate_header = locate_header
        self.tag = tag

    def compose(self, store: ReferenceStore) -> tuple[str, tuple[ReferenceButton, ...]]:
        parts: list[str] = []
        buttons: list[ReferenceButton] = []
        pos = 0

        def emit(line: str) -> int:
            nonlocal pos
            start = pos
            parts.append(line + "\n")
            pos += len(line) + 1
            return start

        for section in self.sections:
            refs = store[section]
            emit(count_line(section, refs))
            if refs is NOT_READY:
                continue
            for entry in refs:
                line_start = emit(ENTRY_INDENT + entry.relative_path)
                start = line_start + len(ENTRY_INDENT)
                buttons.append(ReferenceButton(start, start + len(entry.relative_path), entry.absolute_path))

        return "".join(parts), tuple(buttons)

    def render(self, buffer: NoteBuffer, store: ReferenceStore) -> bool:
        """Replace the region with a fresh one. False if there is nowhere to draw it."""
        with buffer.preserve_modified():
            self.remove(buffer)

            try:
                offset = self._locate_header(buffer.text)
            except HeaderNotFound:
                log.debug("Render skipped, header not found: %r", buffer)
                return False

            body, buttons = self.compose(store)
            if not body:
                return False

            # header ending at EOF without a newline: keep the region off the terminator line
            if offset > 0 and buffer.text[offset - 1] != "\n":
                body = "\n" + body
                buttons = tuple(ReferenceButton(b.start + 1, b.end + 1, b.payload) for b in buttons)

            with buffer.inhibit_read_only():
                buffer.insert(offset, body + "\n")
            buffer.set_region(
                ManagedRegion(
                    start=offset,
                    end=offset + len(body),
                    tag=self.tag,
                    buttons=buttons,
                    separator=True,
                )
            )
        return True

    def remove(self, buffer: NoteBuffer, *, force: bool = False) -> bool:
        """
        Delete the region (plus its separator) through its record.

        The record is followed even when an edit at the header boundary
        moved the header end away from the region start. A note whose
        header is gone keeps its region unless force=True.
        """
        try:
            offset = self._locate_header(buffer.text)
        except HeaderNotFound:
            if not force:
                log.debug("Remove skipped, header not found: %r", buffer)
                return False
            offset = None

        region = buffer.region
        if region is None or region.tag != self.tag:
            return False
        if offset is not None and buffer.region_at(offset, self.tag) is None:
            log.debug("Region drifted from header end (%d != %d): %r", region.start, offset, buffer)

        end = region.end
        if end < len(buffer):
            end += 1

        with buffer.preserve_modified(), buffer.inhibit_read_only():
            buffer.clear_region()
            buffer.delete(region.start, end)
        return True
