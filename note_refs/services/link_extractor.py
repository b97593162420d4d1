from __future__ import annotations

from html.parser import HTMLParser
from pathlib import PurePosixPath
from urllib.parse import unquote, urlsplit

import markdown as md

from note_refs.core.buffer import MARKDOWN_SUFFIXES
from note_refs.core.filenames import safe_filename
from note_refs.core.wikilinks import NOTE_SCHEME, extract_wikilink_targets, wikilinks_to_anchors


class _HrefCollector(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.hrefs: list[str] = []

    def handle_starttag(self, tag, attrs):
        if tag != "a":
            return
        for name, value in attrs:
            if name == "href" and value:
                self.hrefs.append(value)


class LinkExtractor:
    """
    Outbound link targets of a note.

    Markdown notes go through the markdown renderer, so [[links]] and
    [text](other.md) inside code spans or fenced blocks do not count.
    Any other format is scanned for wikilinks only.
    """

    def __init__(self, *, extensions: list[str] | None = None) -> None:
        self.extensions = list(extensions) if extensions is not None else ["fenced_code"]

    def extract(self, text: str, fmt: str = "markdown") -> set[str]:
        if not text:
            return set()
        if fmt != "markdown":
            return extract_wikilink_targets(text)

        rendered = md.markdown(wikilinks_to_anchors(text), extensions=self.extensions)
        collector = _HrefCollector()
        collector.feed(rendered)
        collector.close()

        targets: set[str] = set()
        for href in collector.hrefs:
            target = _href_target(href)
            if target:
                targets.add(target)
        return targets

    __call__ = extract


def _href_target(href: str) -> str | None:
    if href.startswith(NOTE_SCHEME):
        raw = unquote(href[len(NOTE_SCHEME):]).split("#", 1)[0].strip()
        return raw or None

    parts = urlsplit(href)
    if parts.scheme or parts.netloc or not parts.path:
        return None
    p = PurePosixPath(unquote(parts.path))
    if p.suffix.lower() not in MARKDOWN_SUFFIXES or not p.stem:
        return None
    return safe_filename(p.stem)
