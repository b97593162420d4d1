import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from note_refs.core.buffer import NoteBuffer
from note_refs.core.fetcher import Fetcher
from note_refs.core.references import BACKLINKS, LINKS, NOT_READY, ReferenceStore
from note_refs.core.renderer import Renderer
from note_refs.core.scheduler import (
    PHASE_INITIALIZING,
    PHASE_MAINTAINING,
    PHASE_UNINITIALIZED,
    NoInputProbe,
    Scheduler,
)
from note_refs.services.link_extractor import LinkExtractor
from note_refs.vault.repo import VaultBacklinkIndex, VaultRepository

FIRST, INIT, MAINTAIN = 50, 500, 5000


class ScriptedProbe:
    """Reports pending input on the given checkpoint numbers (1-based, per tick)."""

    def __init__(self, *interrupt_at):
        self.plan = list(interrupt_at)
        self.calls = 0
        self.current = None

    def reset(self):
        self.calls = 0
        self.current = self.plan.pop(0) if self.plan else None

    def pending(self):
        self.calls += 1
        return self.current is not None and self.calls == self.current


@pytest.fixture
def note(tmp_path):
    path = tmp_path / "a.md"
    path.write_text("---\ntitle: A\n---\nSee [[b]].\n", encoding="utf-8")
    (tmp_path / "b.md").write_text("[[a]]\n", encoding="utf-8")
    return NoteBuffer.load(path)


def _scheduler(buf, probe=None):
    root = buf.path.parent
    fetcher = Fetcher(
        root=lambda: root,
        resolve=lambda t: [root / f"{t}.md"] if (root / f"{t}.md").exists() else [],
        extract=lambda text, fmt: {"b"} if "[[b]]" in text else set(),
        backlinks=lambda ident, checkpoint=None: [root / "b.md"],
    )
    store = ReferenceStore()
    sched = Scheduler(
        buf,
        store,
        fetcher=fetcher,
        renderer=Renderer(),
        first_ms=FIRST,
        init_ms=INIT,
        maintain_ms=MAINTAIN,
        input_probe=probe,
    )
    return sched, store


def test_first_tick_uses_first_delay(qapp, note):
    sched, _ = _scheduler(note)
    sched.start()
    assert sched.phase == PHASE_UNINITIALIZED
    assert sched.timer.is_pending
    assert sched.timer.interval == FIRST
    sched.stop()


def test_completed_tick_renders_and_switches_to_maintain(qapp, note):
    sched, store = _scheduler(note)
    sched.start()

    assert sched.tick()

    assert store.is_ready()
    assert "1 link:\n  b.md\n1 backlink:\n  b.md\n" in note.text
    assert sched.phase == PHASE_MAINTAINING
    assert sched.timer.is_pending
    assert sched.timer.interval == MAINTAIN
    sched.stop()


def test_preempted_tick_does_not_render(qapp, note):
    before = note.text
    sched, store = _scheduler(note, ScriptedProbe(1))
    sched.start()

    assert not sched.tick()

    assert note.text == before
    assert store.links is NOT_READY
    assert sched.phase == PHASE_INITIALIZING
    assert sched.timer.interval == INIT
    sched.stop()


def test_partially_preempted_tick_renders_committed_section(qapp, note):
    # checkpoints: links section, target "b", backlinks section
    sched, store = _scheduler(note, ScriptedProbe(3))
    sched.start()

    assert sched.tick()

    assert store.links is not NOT_READY
    assert store.backlinks is NOT_READY
    assert "1 link:\n  b.md\n... backlinks\n" in note.text
    assert sched.timer.interval == INIT
    sched.stop()


def test_converges_once_input_stops(qapp, note):
    sched, store = _scheduler(note, ScriptedProbe(1, 2, 1))
    sched.start()
    for _ in range(3):
        sched.tick()
        assert not store.is_ready()
    sched.tick()
    assert store.is_ready()
    assert sched.timer.interval == MAINTAIN
    sched.stop()


def test_single_pending_timer(qapp, note):
    sched, _ = _scheduler(note)
    sched.start()
    sched.start()
    sched.tick()
    sched.postpone()
    assert sched.timer.is_pending
    assert sched.timer.interval == MAINTAIN
    sched.stop()
    assert not sched.timer.is_pending


def test_tick_after_stop_is_noop(qapp, note):
    before = note.text
    sched, store = _scheduler(note)
    sched.start()
    sched.stop()
    assert not sched.tick()
    assert note.text == before
    assert not sched.timer.is_pending


def test_collaborator_failure_keeps_loop_alive(qapp, note):
    sched, store = _scheduler(note)
    sched._fetcher._backlinks = lambda ident, checkpoint=None: 1 / 0
    sched.start()
    sched.tick()
    # links committed before the failure, so the region still shows them
    assert "1 link:" in note.text
    assert store.backlinks is NOT_READY
    assert sched.timer.is_pending
    assert sched.timer.interval == INIT
    sched.stop()


def test_disabled_section_does_not_block_maintain(qapp, note):
    root = note.path.parent
    store = ReferenceStore()
    sched = Scheduler(
        note,
        store,
        fetcher=Fetcher(
            root=lambda: root,
            resolve=lambda t: [],
            extract=lambda text, fmt: set(),
            backlinks=lambda ident, checkpoint=None: [],
            sections=[BACKLINKS],
        ),
        renderer=Renderer(sections=[BACKLINKS]),
        first_ms=FIRST,
        init_ms=INIT,
        maintain_ms=MAINTAIN,
        input_probe=NoInputProbe(),
    )
    sched.start()
    sched.tick()
    assert store.links is NOT_READY
    assert sched.timer.interval == MAINTAIN
    assert "0 backlinks\n" in note.text
    assert "links" not in note.text.replace("backlinks", "")
    sched.stop()


def test_input_during_backlink_scan_preempts_tick(qapp, note):
    root = note.path.parent.resolve()
    index = VaultBacklinkIndex(VaultRepository(root), LinkExtractor().extract)
    store = ReferenceStore()
    sched = Scheduler(
        note,
        store,
        fetcher=Fetcher(
            root=lambda: root,
            resolve=lambda t: [root / f"{t}.md"] if (root / f"{t}.md").exists() else [],
            extract=lambda text, fmt: {"b"} if "[[b]]" in text else set(),
            backlinks=index.backlinks,
        ),
        renderer=Renderer(),
        first_ms=FIRST,
        init_ms=INIT,
        maintain_ms=MAINTAIN,
        # checkpoints: links section, target "b", backlinks section, a.md, b.md
        input_probe=ScriptedProbe(5),
    )
    sched.start()

    sched.tick()

    assert store.links is not NOT_READY
    assert store.backlinks is NOT_READY
    assert "... backlinks\n" in note.text
    # the file scanned before the input arrived is not read again
    assert sorted(p.name for p in index._mtimes) == ["a.md"]
    assert sched.timer.interval == INIT

    sched.tick()

    assert store.is_ready()
    assert [e.relative_path for e in store.backlinks] == ["b.md"]
    assert sorted(p.name for p in index._mtimes) == ["a.md", "b.md"]
    sched.stop()
