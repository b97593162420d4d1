import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pathlib import Path

import pytest

from note_refs.core.buffer import ManagedRegion, NoteBuffer, ReferenceButton, detect_format
from note_refs.core.errors import ReadOnlyRegionError

HEADER = "---\ntitle: A\n---\n"
REGION = "0 links\n"


def _buffer_with_region(body="body\n"):
    buf = NoteBuffer(HEADER + REGION + "\n" + body)
    start = len(HEADER)
    buf.set_region(ManagedRegion(start, start + len(REGION), "note-refs", separator=True))
    return buf


def test_user_edit_sets_modified():
    buf = NoteBuffer("abc")
    assert not buf.modified
    buf.insert(3, "d")
    assert buf.text == "abcd"
    assert buf.modified


def test_out_of_bounds_edit():
    with pytest.raises(IndexError):
        NoteBuffer("abc").delete(2, 9)


def test_edit_inside_region_refused():
    buf = _buffer_with_region()
    start = buf.region.start
    with pytest.raises(ReadOnlyRegionError):
        buf.insert(start + 2, "x")
    with pytest.raises(ReadOnlyRegionError):
        buf.delete(start - 1, start + 1)
    assert not buf.modified


def test_no_insertion_at_region_edges():
    buf = _buffer_with_region()
    with pytest.raises(ReadOnlyRegionError):
        buf.insert(buf.region.start, "x")
    with pytest.raises(ReadOnlyRegionError):
        buf.insert(buf.region.end, "x")


def test_separator_is_protected():
    buf = _buffer_with_region()
    end = buf.region.end
    with pytest.raises(ReadOnlyRegionError):
        buf.delete(end, end + 1)


def test_edit_after_region_keeps_record():
    buf = _buffer_with_region()
    region = buf.region
    buf.insert(region.protected_end, "typed ")
    assert buf.region == region
    assert buf.text.endswith("typed body\n")


def test_edit_before_region_shifts_record():
    buf = _buffer_with_region()
    start = buf.region.start
    buf.replace(len("---\ntitle: "), len("---\ntitle: A"), "Longer")
    assert buf.region.start == start + 5
    assert buf.text[buf.region.start:buf.region.end] == REGION


def test_inhibited_edit_over_region_drops_record():
    buf = _buffer_with_region()
    with buf.inhibit_read_only():
        buf.delete(buf.region.start, buf.region.end)
    assert buf.region is None


def test_single_region_slot():
    buf = _buffer_with_region()
    with pytest.raises(RuntimeError):
        buf.set_region(ManagedRegion(0, 1, "note-refs"))


def test_region_at_and_reference_at():
    buf = NoteBuffer(HEADER + "1 link:\n  b.md\n\n")
    start = len(HEADER)
    buf.set_region(
        ManagedRegion(
            start,
            start + len("1 link:\n  b.md\n"),
            "note-refs",
            buttons=(ReferenceButton(10, 14, "/v/b.md"),),
            separator=True,
        )
    )
    assert buf.region_at(start) is buf.region
    assert buf.region_at(start, "other-tag") is None
    assert buf.region_at(start + 1) is None
    assert buf.reference_at(start + 10) == "/v/b.md"
    assert buf.reference_at(start + 13) == "/v/b.md"
    assert buf.reference_at(start + 14) is None
    assert buf.reference_at(start + 1) is None


def test_persisted_text_excludes_region():
    buf = _buffer_with_region()
    assert buf.persisted_text() == HEADER + "body\n"


def test_preserve_modified():
    buf = NoteBuffer("x")
    with buf.preserve_modified():
        buf.insert(0, "y")
    assert not buf.modified


def test_change_listener():
    buf = NoteBuffer("x")
    seen = []
    buf.on_change(seen.append)
    buf.insert(1, "y")
    buf.off_change(seen.append)
    buf.insert(2, "z")
    assert seen == [buf]


def test_save_runs_hooks_in_order(tmp_path):
    path = tmp_path / "a.md"
    buf = NoteBuffer(HEADER + "body\n", path=path, modified=True)
    calls = []
    buf.on_before_persist(lambda b: calls.append(("before", path.exists())))
    buf.on_after_persist(lambda b: calls.append(("after", path.read_text(encoding="utf-8"))))

    buf.save()

    assert calls == [("before", False), ("after", HEADER + "body\n")]
    assert not buf.modified


def test_save_never_writes_region(tmp_path):
    buf = _buffer_with_region()
    buf.save(tmp_path / "a.md")
    assert (tmp_path / "a.md").read_text(encoding="utf-8") == HEADER + "body\n"
    assert buf.path == tmp_path / "a.md"


def test_save_without_path():
    with pytest.raises(ValueError):
        NoteBuffer("x").save()


def test_load_identifier_and_format(tmp_path):
    path = tmp_path / "My Note.md"
    path.write_text("# My Note\n", encoding="utf-8")
    buf = NoteBuffer.load(path)
    assert buf.text == "# My Note\n"
    assert buf.identifier == "My Note"
    assert buf.format == "markdown"
    assert not buf.modified


def test_detect_format():
    assert detect_format(Path("a.MD")) == "markdown"
    assert detect_format(Path("a.markdown")) == "markdown"
    assert detect_format(Path("a.txt")) == "text"
    assert detect_format(None) == "text"
