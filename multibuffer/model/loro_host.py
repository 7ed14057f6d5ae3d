# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
LoroHost: in-process editing host backed by Loro documents

Each document keeps its text in the ``content`` text container of its own
LoroDoc, with lines joined by ``\\n``. Every edit is applied as a single
prefix/suffix splice followed by a commit, so the CRDT history records the
smallest change rather than a delete-everything-then-insert rewrite.

Decorations behave like editor extmarks: they live per document and per
namespace, and ``set_lines`` moves them with the text:

- rows after the replaced span shift by the line delta
- an insertion exactly at a mark's row pushes it down
- an insertion exactly at a range's end does not extend the range
- a range covering the replaced span exactly maps onto the replacement
- ranges whose lines are all deleted collapse to zero length

Decoration ids are allocated per namespace across *all* documents. The engine
reuses a source sticky-range id for the rendered region in the virtual
document, and a shared counter keeps that id unique inside the virtual
document's namespace as well.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from loro import LoroDoc

from ..constants import CONTENT_CONTAINER, UNKNOWN_DOCUMENT_NAME
from ..errors import DocumentNotFoundError, HostError, InvalidRangeError
from .host import Host, HostCallback
from .types import Decoration, HostEvent

logger = logging.getLogger(__name__)


@dataclass
class _Mark:
    row: int
    end_row: Optional[int] = None
    margin_text: Optional[str] = None
    virt_lines: Tuple[str, ...] = ()
    virt_lines_above: bool = False
    priority: int = 0

    def to_decoration(self, id: int) -> Decoration:
        return Decoration(
            id=id,
            row=self.row,
            end_row=self.end_row,
            margin_text=self.margin_text,
            virt_lines=self.virt_lines,
            virt_lines_above=self.virt_lines_above,
            priority=self.priority,
        )

    def shift(self, start: int, end: int, count: int, line_count: int) -> None:
        """Move the mark after ``[start, end)`` was replaced by ``count`` lines"""
        delta = count - (end - start)
        last_row = max(line_count - 1, 0)

        if self.end_row is None:
            if self.row >= end:
                self.row += delta
            elif self.row >= start:
                self.row = start + min(self.row - start, max(count - 1, 0))
            self.row = min(max(self.row, 0), last_row)
            return

        row, end_row = self.row, self.end_row
        if start == end:
            new_row = row + count if row >= start else row
            new_end = end_row + count if end_row > start else end_row
        else:
            if row >= end:
                new_row = row + delta
            elif row > start:
                new_row = min(row, start + count)
            else:
                new_row = row

            if end_row >= end:
                new_end = end_row + delta
            elif end_row > start:
                new_end = min(end_row, start + count)
            else:
                new_end = end_row

        new_end = min(max(new_end, new_row), line_count)
        self.row = min(new_row, new_end)
        self.end_row = new_end


@dataclass
class _Namespace:
    name: str
    next_id: int = 1

    def allocate(self, requested: Optional[int]) -> int:
        if requested is None:
            requested = self.next_id
        self.next_id = max(self.next_id, requested + 1)
        return requested


class _Document:
    """One host document: Loro text plus host-side flags and marks"""

    def __init__(self, handle: int, name: str, acwrite: bool, path: Optional[Path] = None):
        self.handle = handle
        self.name = name
        self.acwrite = acwrite
        self.path = path
        # Line ending and final newline of the file the document was loaded from
        self.newline = "\n"
        self.final_newline = True
        self.modified = False
        self.doc = LoroDoc()
        self.text = self.doc.get_text(CONTENT_CONTAINER)
        self.marks: Dict[int, Dict[int, _Mark]] = {}

    def lines(self) -> List[str]:
        return self.text.to_string().split("\n")

    def replace_text(self, new_text: str) -> None:
        old_text = self.text.to_string()
        if old_text == new_text:
            return

        limit = min(len(old_text), len(new_text))
        prefix = 0
        while prefix < limit and old_text[prefix] == new_text[prefix]:
            prefix += 1
        suffix = 0
        while suffix < limit - prefix and old_text[-1 - suffix] == new_text[-1 - suffix]:
            suffix += 1

        removed = len(old_text) - prefix - suffix
        if removed > 0:
            self.text.delete(prefix, removed)
        inserted = new_text[prefix:len(new_text) - suffix]
        if inserted:
            self.text.insert(prefix, inserted)
        self.doc.commit()


class LoroHost(Host):
    """Editing host keeping every document in memory as a LoroDoc"""

    def __init__(self):
        self._documents: Dict[int, _Document] = {}
        self._next_handle = 1
        self._namespaces: Dict[int, _Namespace] = {}
        self._namespace_ids: Dict[str, int] = {}
        self._subscriptions: Dict[int, Tuple[int, HostEvent, HostCallback]] = {}
        self._next_subscription = 1

    # Documents

    def create_document(
        self,
        name: Optional[str] = None,
        acwrite: bool = False,
        lines: Optional[Sequence[str]] = None,
        path: Optional[Path] = None,
    ) -> int:
        handle = self._next_handle
        self._next_handle += 1
        document = _Document(handle, name or "", acwrite, path)
        if lines:
            document.replace_text("\n".join(self._check_lines(lines)))
        self._documents[handle] = document
        logger.debug(f"Created document {handle} ({document.name or UNKNOWN_DOCUMENT_NAME})")
        return handle

    def open_file(self, path: Union[str, Path]) -> int:
        """Load a file as a document, reusing the document already open for it"""
        resolved = Path(path).resolve()
        for document in self._documents.values():
            if document.path == resolved:
                return document.handle

        try:
            # Bytes, so line endings reach us untranslated
            text = resolved.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise HostError(f"cannot open {path}: {e}")

        # CRLF only when every line break is one; otherwise a stray \r stays in its line
        newline = "\r\n" if "\n" in text and text.count("\r\n") == text.count("\n") else "\n"
        final_newline = text.endswith(newline)
        if final_newline:
            text = text[:-len(newline)]

        handle = self.create_document(str(path), lines=text.split(newline), path=resolved)
        document = self._documents[handle]
        document.newline = newline
        document.final_newline = final_newline
        logger.info(f"Opened {path} as document {handle}")
        return handle

    def is_valid(self, doc: int) -> bool:
        return doc in self._documents

    def get_name(self, doc: int) -> str:
        return self._document(doc).name

    def set_name(self, doc: int, name: str) -> None:
        self._document(doc).name = name

    def close_document(self, doc: int) -> None:
        self._document(doc)
        self._fire(doc, HostEvent.CLOSED)
        del self._documents[doc]
        for subscription_id in [
            sid for sid, (target, _, _) in self._subscriptions.items() if target == doc
        ]:
            del self._subscriptions[subscription_id]
        logger.debug(f"Closed document {doc}")

    def write(self, doc: int) -> None:
        document = self._document(doc)
        if document.acwrite:
            self._fire(doc, HostEvent.WRITE)
            return

        if document.path is not None:
            text = document.newline.join(document.lines())
            if document.final_newline:
                text += document.newline
            try:
                document.path.write_bytes(text.encode("utf-8"))
            except OSError as e:
                raise HostError(f"cannot write {document.path}: {e}")
            logger.info(f"Wrote document {doc} to {document.path}")
        document.modified = False

    # Content

    def line_count(self, doc: int) -> int:
        return len(self._document(doc).lines())

    def get_lines(self, doc: int, start: int, end: int) -> List[str]:
        current = self._document(doc).lines()
        start, end = self._normalize(current, start, end)
        return current[start:end]

    def set_lines(self, doc: int, start: int, end: int, lines: Sequence[str]) -> None:
        document = self._document(doc)
        current = document.lines()
        start, end = self._normalize(current, start, end)
        new_lines = self._check_lines(lines)

        updated = current[:start] + new_lines + current[end:]
        document.replace_text("\n".join(updated))

        line_count = max(len(updated), 1)
        for marks in document.marks.values():
            for mark in marks.values():
                mark.shift(start, end, len(new_lines), line_count)

        document.modified = True
        self._fire(doc, HostEvent.CHANGED)

    def is_modified(self, doc: int) -> bool:
        return self._document(doc).modified

    def set_modified(self, doc: int, modified: bool) -> None:
        self._document(doc).modified = modified

    # Decorations

    def create_namespace(self, name: str) -> int:
        if name not in self._namespace_ids:
            namespace_id = len(self._namespace_ids) + 1
            self._namespace_ids[name] = namespace_id
            self._namespaces[namespace_id] = _Namespace(name)
        return self._namespace_ids[name]

    def set_decoration(
        self,
        doc: int,
        namespace: int,
        row: int,
        *,
        end_row: Optional[int] = None,
        id: Optional[int] = None,
        margin_text: Optional[str] = None,
        virt_lines: Optional[Sequence[str]] = None,
        virt_lines_above: bool = False,
        priority: int = 0,
    ) -> int:
        document = self._document(doc)
        ns = self._namespace(namespace)
        line_count = len(document.lines())
        if not 0 <= row < line_count:
            raise InvalidRangeError(f"row {row} outside document {doc} ({line_count} lines)")
        if end_row is not None and not row <= end_row <= line_count:
            raise InvalidRangeError(f"end_row {end_row} outside document {doc} ({line_count} lines)")

        decoration_id = ns.allocate(id)
        document.marks.setdefault(namespace, {})[decoration_id] = _Mark(
            row=row,
            end_row=end_row,
            margin_text=margin_text,
            virt_lines=tuple(virt_lines or ()),
            virt_lines_above=virt_lines_above,
            priority=priority,
        )
        return decoration_id

    def get_decoration(self, doc: int, namespace: int, id: int) -> Optional[Decoration]:
        mark = self._document(doc).marks.get(namespace, {}).get(id)
        if mark is None:
            return None
        return mark.to_decoration(id)

    def delete_decoration(self, doc: int, namespace: int, id: int) -> None:
        self._document(doc).marks.get(namespace, {}).pop(id, None)

    def list_decorations(self, doc: int, namespace: int) -> List[Decoration]:
        marks = self._document(doc).marks.get(namespace, {})
        decorations = [mark.to_decoration(mark_id) for mark_id, mark in marks.items()]
        return sorted(decorations, key=lambda d: (d.row, d.id))

    def clear_namespace(self, doc: int, namespace: int, start: int = 0, end: int = -1) -> None:
        document = self._document(doc)
        marks = document.marks.get(namespace)
        if not marks:
            return
        if end < 0:
            end = len(document.lines()) + 1 + end
        for mark_id in [mid for mid, mark in marks.items() if start <= mark.row < end]:
            del marks[mark_id]

    # Notifications

    def subscribe(self, doc: int, event: HostEvent, callback: HostCallback) -> int:
        self._document(doc)
        subscription_id = self._next_subscription
        self._next_subscription += 1
        self._subscriptions[subscription_id] = (doc, event, callback)
        return subscription_id

    def unsubscribe(self, subscription_id: int) -> None:
        self._subscriptions.pop(subscription_id, None)

    # Rendering

    def render(self, doc: int) -> List[str]:
        """Lay out a document the way an editor window would show it.

        Virtual lines are placed above (or below) their row, and the highest
        priority margin text of each row fills a left column.
        """
        document = self._document(doc)
        above: Dict[int, List[Tuple[int, int, Tuple[str, ...]]]] = {}
        below: Dict[int, List[Tuple[int, int, Tuple[str, ...]]]] = {}
        margins: Dict[int, Tuple[int, str]] = {}

        for marks in document.marks.values():
            for mark_id, mark in marks.items():
                if mark.virt_lines:
                    target = above if mark.virt_lines_above else below
                    target.setdefault(mark.row, []).append((-mark.priority, mark_id, mark.virt_lines))
                if mark.margin_text is not None:
                    current = margins.get(mark.row)
                    if current is None or mark.priority > current[0]:
                        margins[mark.row] = (mark.priority, mark.margin_text)

        width = max((len(text) for _, text in margins.values()), default=0)
        output: List[str] = []
        for row, line in enumerate(document.lines()):
            for _, _, virt_lines in sorted(above.get(row, [])):
                output.extend(virt_lines)
            margin = margins.get(row, (0, ""))[1]
            output.append(f"{margin:<{width}}{line}")
            for _, _, virt_lines in sorted(below.get(row, [])):
                output.extend(virt_lines)
        return output

    # Internals

    def _document(self, doc: int) -> _Document:
        document = self._documents.get(doc)
        if document is None:
            raise DocumentNotFoundError(doc)
        return document

    def _namespace(self, namespace: int) -> _Namespace:
        ns = self._namespaces.get(namespace)
        if ns is None:
            raise HostError(f"namespace not found: {namespace}")
        return ns

    def _fire(self, doc: int, event: HostEvent) -> None:
        for subscription_id, (target, target_event, callback) in list(self._subscriptions.items()):
            if target != doc or target_event is not event:
                continue
            if subscription_id not in self._subscriptions:
                continue
            try:
                callback(doc)
            except Exception as e:
                logger.error(f"Error in {event.value} callback for document {doc}: {e}")

    @staticmethod
    def _normalize(current: List[str], start: int, end: int) -> Tuple[int, int]:
        line_count = len(current)
        if start < 0:
            start = line_count + 1 + start
        if end < 0:
            end = line_count + 1 + end
        if not 0 <= start <= end <= line_count:
            raise InvalidRangeError(f"invalid line range [{start}, {end}) for {line_count} lines")
        return start, end

    @staticmethod
    def _check_lines(lines: Sequence[str]) -> List[str]:
        checked = [str(line) for line in lines]
        for line in checked:
            if "\n" in line:
                raise InvalidRangeError("lines cannot contain newlines")
        return checked
