from __future__ import annotations

import html
import re
from urllib.parse import quote

from .filenames import safe_filename

# [[target]]
# [[target|alias]]
WIKILINK_RE = re.compile(r"\[\[([^\]]+)\]\]")

NOTE_SCHEME = "note://"


def extract_wikilink_targets(text: str) -> set[str]:
    """
    Parse wikilinks and return a set of canonical targets.

    Supported:
      [[Note]]
      [[Note|Alias]]
      [[Note#Heading]]
      [[Note^block]]
    """
    targets: set[str] = set()
    for m in WIKILINK_RE.finditer(text or ""):
        inner = (m.group(1) or "").strip()
        if not inner:
            continue
        base = _base_target(inner)
        if not base:
            continue
        targets.add(safe_filename(base))
    return targets


def wikilinks_to_anchors(text: str) -> str:
    """
    Replace wikilinks with <a href="note://<canonical target>"> anchors.

    Used before markdown rendering so that the markdown parser decides
    which wikilinks are real (not inside code spans / fenced blocks).
    """
    if not text:
        return text

    def repl(m: re.Match) -> str:
        inner = (m.group(1) or "").strip()
        if not inner:
            return m.group(0)
        target, alias = _split_alias(inner)
        base = _base_target(inner)
        if not base:
            return m.group(0)
        label = html.escape(alias if alias is not None else target, quote=False)
        href = NOTE_SCHEME + quote(safe_filename(base), safe="")
        return f'<a href="{href}">{label}</a>'

    return WIKILINK_RE.sub(repl, text)


# ───────────────────────── helpers ─────────────────────────


def _split_alias(raw: str) -> tuple[str, str | None]:
    if "|" in raw:
        target, alias = raw.split("|", 1)
        return target.strip(), alias.strip()
    return raw.strip(), None


def _split_suffix(target: str) -> tuple[str, str]:
    """
    Split Obsidian-style suffixes:
      Note#Heading
      Note^block
    """
    for sep in ("#", "^"):
        if sep in target:
            base, rest = target.split(sep, 1)
            return base.strip(), sep + rest
    return target.strip(), ""


def _base_target(raw: str) -> str:
    target, _ = _split_alias(raw)
    base, _ = _split_suffix(target)
    return base
