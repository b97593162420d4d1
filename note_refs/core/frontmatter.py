from __future__ import annotations

import re

from .errors import HeaderNotFound

# Terminator may be the last line of the note without a trailing newline.
_FM_RE = re.compile(r"(?s)\A---[ \t]*\n.*?\n---[ \t]*(?:\n|\Z)")
_FM_EMPTY_RE = re.compile(r"\A---[ \t]*\n---[ \t]*(?:\n|\Z)")
_H1_LINE_RE = re.compile(r"\A#[ \t]+[^\n]*(?:\n|\Z)")


def header_end(text: str) -> int:
    """
    Offset right after the note header.

      - YAML front matter: `---` ... `---` (terminator line included)
      - no front matter: a leading `# Title` line

    Raises HeaderNotFound otherwise.
    """
    if not text:
        raise HeaderNotFound("empty note")

    for rx in (_FM_EMPTY_RE, _FM_RE, _H1_LINE_RE):
        m = rx.match(text)
        if m:
            return m.end()
    raise HeaderNotFound("note has neither front matter nor a title line")
