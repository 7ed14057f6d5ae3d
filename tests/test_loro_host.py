#!/usr/bin/env python3
# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Test suite for the Loro-backed editing host.

Covers line access, sticky decoration behavior under edits, namespaces,
notifications, saving and the window-style rendering used by the CLI.
"""

import logging

import pytest

from multibuffer.errors import DocumentNotFoundError, HostError, InvalidRangeError
from multibuffer.model.loro_host import LoroHost
from multibuffer.model.types import HostEvent


class TestLines:
    """Test line content access"""

    def test_create_document_with_lines(self, host, doc_a):
        """Test that initial lines are stored and counted"""
        assert host.line_count(doc_a) == 10
        assert host.get_lines(doc_a, 0, 3) == ["A0", "A1", "A2"]
        assert host.get_name(doc_a) == "a.txt"

    def test_empty_document_has_one_empty_line(self, host):
        """Test that a new document behaves like an empty editor buffer"""
        doc = host.create_document("empty")
        assert host.line_count(doc) == 1
        assert host.get_lines(doc, 0, -1) == [""]

    def test_negative_indices_count_from_the_end(self, host, doc_a):
        """Test that -1 means one past the last line"""
        assert host.get_lines(doc_a, 0, -1) == [f"A{i}" for i in range(10)]
        assert host.get_lines(doc_a, -3, -1) == ["A8", "A9"]

    def test_out_of_bounds_range_raises(self, host, doc_a):
        """Test that ranges outside the document are rejected"""
        with pytest.raises(InvalidRangeError):
            host.get_lines(doc_a, 5, 11)
        with pytest.raises(InvalidRangeError):
            host.get_lines(doc_a, 6, 5)
        with pytest.raises(InvalidRangeError):
            host.set_lines(doc_a, 12, 12, ["x"])

    def test_set_lines_replaces_span(self, host, doc_a):
        """Test replacing, inserting and deleting lines"""
        host.set_lines(doc_a, 1, 3, ["X"])
        assert host.get_lines(doc_a, 0, 3) == ["A0", "X", "A3"]

        host.set_lines(doc_a, 0, 0, ["top"])
        assert host.get_lines(doc_a, 0, 2) == ["top", "A0"]

        host.set_lines(doc_a, 0, 2, [])
        assert host.get_lines(doc_a, 0, 2) == ["X", "A3"]
        assert host.line_count(doc_a) == 8

    def test_replacing_everything_with_nothing_leaves_one_line(self, host, doc_a):
        """Test that clearing a document keeps a single empty line"""
        host.set_lines(doc_a, 0, -1, [])
        assert host.get_lines(doc_a, 0, -1) == [""]

    def test_lines_with_newlines_are_rejected(self, host, doc_a):
        """Test that a line cannot smuggle in a line break"""
        with pytest.raises(InvalidRangeError):
            host.set_lines(doc_a, 0, 1, ["one\ntwo"])
        assert host.get_lines(doc_a, 0, 1) == ["A0"]

    def test_non_ascii_text_round_trips(self, host):
        """Test that accented text survives the Loro text container"""
        doc = host.create_document("unicode", lines=["héllo", "wörld"])
        host.set_lines(doc, 1, 2, ["wörld ünd mehr"])
        assert host.get_lines(doc, 0, -1) == ["héllo", "wörld ünd mehr"]

    def test_text_lives_in_loro_container(self, host, doc_a):
        """Test that edits reach the underlying LoroText"""
        host.set_lines(doc_a, 2, 10, [])
        assert host._documents[doc_a].text.to_string() == "A0\nA1"

    def test_set_lines_marks_modified(self, host, doc_a):
        """Test the modified flag"""
        assert not host.is_modified(doc_a)
        host.set_lines(doc_a, 0, 1, ["changed"])
        assert host.is_modified(doc_a)
        host.set_modified(doc_a, False)
        assert not host.is_modified(doc_a)

    def test_unknown_document_raises(self, host):
        """Test that unknown handles raise DocumentNotFoundError"""
        assert not host.is_valid(99)
        with pytest.raises(DocumentNotFoundError) as excinfo:
            host.get_lines(99, 0, -1)
        assert excinfo.value.handle == 99
        # Still a LookupError for callers that do not know our hierarchy
        assert isinstance(excinfo.value, LookupError)


class TestStickyRanges:
    """Test that range decorations follow edits"""

    @pytest.fixture
    def ns(self, host):
        return host.create_namespace("test")

    def span(self, host, doc, ns, mark_id):
        decoration = host.get_decoration(doc, ns, mark_id)
        return decoration.row, decoration.end_row

    def test_insert_above_shifts_range(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 0, 0, ["new"])
        assert self.span(host, doc_a, ns, mark_id) == (3, 6)

    def test_insert_inside_grows_range(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 3, 3, ["new"])
        assert self.span(host, doc_a, ns, mark_id) == (2, 6)

    def test_insert_at_end_does_not_extend_range(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 5, 5, ["new"])
        assert self.span(host, doc_a, ns, mark_id) == (2, 5)

    def test_insert_at_start_pushes_range_down(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 2, 2, ["new"])
        assert self.span(host, doc_a, ns, mark_id) == (3, 6)

    def test_replacing_exact_span_maps_onto_replacement(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 2, 5, ["x", "y"])
        assert self.span(host, doc_a, ns, mark_id) == (2, 4)

    def test_deleting_all_lines_collapses_range(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 2, 5, [])
        assert self.span(host, doc_a, ns, mark_id) == (2, 2)

    def test_delete_above_shifts_range_up(self, host, doc_a, ns):
        mark_id = host.set_decoration(doc_a, ns, 2, end_row=5)
        host.set_lines(doc_a, 0, 2, [])
        assert self.span(host, doc_a, ns, mark_id) == (0, 3)

    def test_point_marks_follow_edits(self, host, doc_a, ns):
        below = host.set_decoration(doc_a, ns, 7)
        inside = host.set_decoration(doc_a, ns, 4)
        host.set_lines(doc_a, 3, 6, [])
        assert host.get_decoration(doc_a, ns, below).row == 4
        assert host.get_decoration(doc_a, ns, inside).row == 3

    def test_other_documents_are_untouched(self, host, doc_a, doc_b, ns):
        mark_id = host.set_decoration(doc_b, ns, 2, end_row=5)
        host.set_lines(doc_a, 0, 0, ["new"])
        assert self.span(host, doc_b, ns, mark_id) == (2, 5)


class TestDecorations:
    """Test namespaces and decoration bookkeeping"""

    def test_namespace_ids_are_stable_per_name(self, host):
        first = host.create_namespace("one")
        assert host.create_namespace("one") == first
        assert host.create_namespace("two") != first

    def test_unknown_namespace_raises(self, host, doc_a):
        with pytest.raises(HostError):
            host.set_decoration(doc_a, 42, 0)

    def test_ids_are_unique_per_namespace_across_documents(self, host, doc_a, doc_b):
        """Test that an id taken in one document is never handed out again"""
        ns = host.create_namespace("shared")
        first = host.set_decoration(doc_a, ns, 0)
        explicit = host.set_decoration(doc_b, ns, 0, id=7)
        following = host.set_decoration(doc_a, ns, 1)

        assert explicit == 7
        assert first != following
        assert following > explicit

    def test_set_decoration_with_id_replaces(self, host, doc_a):
        ns = host.create_namespace("test")
        mark_id = host.set_decoration(doc_a, ns, 1, end_row=3)
        host.set_decoration(doc_a, ns, 4, end_row=6, id=mark_id)

        decorations = host.list_decorations(doc_a, ns)
        assert len(decorations) == 1
        assert (decorations[0].row, decorations[0].end_row) == (4, 6)

    def test_set_decoration_validates_rows(self, host, doc_a):
        ns = host.create_namespace("test")
        with pytest.raises(InvalidRangeError):
            host.set_decoration(doc_a, ns, 10)
        with pytest.raises(InvalidRangeError):
            host.set_decoration(doc_a, ns, 2, end_row=11)
        with pytest.raises(InvalidRangeError):
            host.set_decoration(doc_a, ns, 2, end_row=1)
        # A range may end one past the last line
        host.set_decoration(doc_a, ns, 9, end_row=10)

    def test_list_is_ordered_by_row_then_id(self, host, doc_a):
        ns = host.create_namespace("test")
        late = host.set_decoration(doc_a, ns, 5)
        early = host.set_decoration(doc_a, ns, 1)
        same_row = host.set_decoration(doc_a, ns, 5)
        assert [d.id for d in host.list_decorations(doc_a, ns)] == [early, late, same_row]

    def test_delete_decoration(self, host, doc_a):
        ns = host.create_namespace("test")
        mark_id = host.set_decoration(doc_a, ns, 1)
        host.delete_decoration(doc_a, ns, mark_id)
        assert host.get_decoration(doc_a, ns, mark_id) is None
        # Unknown ids are ignored
        host.delete_decoration(doc_a, ns, mark_id)

    def test_clear_namespace_by_row_range(self, host, doc_a):
        ns = host.create_namespace("test")
        other = host.create_namespace("other")
        for row in (1, 3, 5):
            host.set_decoration(doc_a, ns, row)
        kept = host.set_decoration(doc_a, other, 3)

        host.clear_namespace(doc_a, ns, 2, 5)
        assert [d.row for d in host.list_decorations(doc_a, ns)] == [1, 5]

        host.clear_namespace(doc_a, ns)
        assert host.list_decorations(doc_a, ns) == []
        assert host.get_decoration(doc_a, other, kept) is not None


class TestNotifications:
    """Test per-document subscriptions"""

    def test_changed_fires_for_edits(self, host, doc_a, doc_b):
        calls = []
        host.subscribe(doc_a, HostEvent.CHANGED, calls.append)

        host.set_lines(doc_a, 0, 1, ["x"])
        host.set_lines(doc_b, 0, 1, ["y"])

        assert calls == [doc_a]

    def test_unsubscribe_stops_callbacks(self, host, doc_a):
        calls = []
        subscription_id = host.subscribe(doc_a, HostEvent.CHANGED, calls.append)
        host.unsubscribe(subscription_id)
        host.set_lines(doc_a, 0, 1, ["x"])
        assert calls == []

    def test_callback_errors_are_logged_not_raised(self, host, doc_a, caplog):
        def broken(doc):
            raise RuntimeError("boom")

        calls = []
        host.subscribe(doc_a, HostEvent.CHANGED, broken)
        host.subscribe(doc_a, HostEvent.CHANGED, calls.append)

        with caplog.at_level(logging.ERROR):
            host.set_lines(doc_a, 0, 1, ["x"])

        assert calls == [doc_a]
        assert "boom" in caplog.text

    def test_close_fires_closed_then_discards(self, host, doc_a):
        seen = []
        host.subscribe(doc_a, HostEvent.CLOSED, lambda doc: seen.append(host.is_valid(doc)))

        host.close_document(doc_a)

        # The document is still readable while CLOSED subscribers run
        assert seen == [True]
        assert not host.is_valid(doc_a)
        assert host._subscriptions == {}
        with pytest.raises(DocumentNotFoundError):
            host.close_document(doc_a)

    def test_subscribe_to_unknown_document_raises(self, host):
        with pytest.raises(DocumentNotFoundError):
            host.subscribe(99, HostEvent.CHANGED, lambda doc: None)


class TestWrite:
    """Test saving documents"""

    def test_acwrite_document_fires_write(self, host):
        doc = host.create_document("virtual", acwrite=True)
        calls = []
        host.subscribe(doc, HostEvent.WRITE, calls.append)

        host.write(doc)

        assert calls == [doc]

    def test_file_document_writes_to_disk(self, host, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("one\ntwo\n", encoding="utf-8")

        doc = host.open_file(path)
        assert host.get_lines(doc, 0, -1) == ["one", "two"]

        host.set_lines(doc, 1, 2, ["TWO"])
        host.write(doc)

        assert path.read_text(encoding="utf-8") == "one\nTWO\n"
        assert not host.is_modified(doc)

    def test_open_file_reuses_document(self, host, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("one\n", encoding="utf-8")
        assert host.open_file(path) == host.open_file(str(path))

    def test_open_missing_file_raises(self, host, tmp_path):
        with pytest.raises(HostError):
            host.open_file(tmp_path / "missing.txt")

    def test_crlf_endings_are_kept(self, host, tmp_path):
        """Test that an edited CRLF file is saved with CRLF endings"""
        path = tmp_path / "dos.txt"
        path.write_bytes(b"one\r\ntwo\r\n")

        doc = host.open_file(path)
        assert host.get_lines(doc, 0, -1) == ["one", "two"]

        host.set_lines(doc, 2, 2, ["three"])
        host.write(doc)

        assert path.read_bytes() == b"one\r\ntwo\r\nthree\r\n"

    def test_missing_final_newline_is_kept(self, host, tmp_path):
        path = tmp_path / "tail.txt"
        path.write_bytes(b"one\ntwo")

        doc = host.open_file(path)
        host.set_lines(doc, 0, 1, ["ONE"])
        host.write(doc)

        assert path.read_bytes() == b"ONE\ntwo"

    def test_only_newlines_split_lines(self, host, tmp_path):
        """Test that form feeds and stray carriage returns stay inside their line"""
        path = tmp_path / "mixed.txt"
        original = b"a\x0cb\nc\r\nd\x0be\n"
        path.write_bytes(original)

        doc = host.open_file(path)
        assert host.get_lines(doc, 0, -1) == ["a\x0cb", "c\r", "d\x0be"]

        host.write(doc)
        assert path.read_bytes() == original


class TestRender:
    """Test the window-style layout"""

    def test_virtual_lines_and_margins(self):
        host = LoroHost()
        doc = host.create_document("view", lines=["x", "y"])
        ns = host.create_namespace("test")
        host.set_decoration(doc, ns, 0, virt_lines=["", "title", ""], virt_lines_above=True)
        host.set_decoration(doc, ns, 0, margin_text="  1 ")
        host.set_decoration(doc, ns, 1, margin_text=" 2 ")
        host.set_decoration(doc, ns, 1, virt_lines=["after"])

        assert host.render(doc) == ["", "title", "", "  1 x", " 2  y", "after"]

    def test_highest_priority_margin_wins(self):
        host = LoroHost()
        doc = host.create_document("view", lines=["x"])
        ns = host.create_namespace("test")
        host.set_decoration(doc, ns, 0, margin_text="low ", priority=1)
        host.set_decoration(doc, ns, 0, margin_text="high", priority=5)

        assert host.render(doc) == ["highx"]
