# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
MultibufferEngine: region synchronization between virtual and source documents

ARCHITECTURE OVERVIEW:
=====================

A virtual document shows an ordered list of regions. Each region is a line
range of some source document, held as a sticky range (a decoration with an
end row) that the host keeps correct while the source is edited. The engine
never stores region bounds; it asks the host every time.

    add_regions ──► sticky range in source ──► reload ──► virtual document
                                                  ▲              │
                source CHANGED ───────────────────┘              │ save
                                                                 ▼
    source ◄──────────────── write-back ◄──────────── virtual WRITE

RENDERED REGIONS:
================

Reload re-anchors each rendered region in the virtual document under the
same decoration id as its source sticky range, so one id names the region
in both coordinate spaces. Write-back and context resolution walk the
virtual document's span decorations and map them back through that id.

REENTRANCY:
==========

Host notifications fire synchronously. Writing a region back into its
source fires the source's CHANGED hook, which asks for a reload while the
write-back is still running. Every reload and write-back therefore runs
under the engine's RecursionGuard; a nested pass finds it held and returns
immediately. Once a write-back has released the guard, each virtual
document watching a written source is reloaded exactly once.

FAILURES:
========

- Structural: unknown virtual or source documents, host failures while
  replacing content or clearing the modified flag. These propagate.
- Per region: a vanished source, a collapsed or missing sticky range, a
  failed line read or write. The region is skipped for this pass and every
  other region still renders or saves.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ..constants import (
    HEADER_PRIORITY,
    LINE_NUMBER_PERIOD,
    LINE_NUMBER_PRIORITY,
    NAMESPACE_PREFIX,
    REGION_PRIORITY,
    VIRTUAL_DOCUMENT_SCHEME,
)
from ..errors import DocumentNotFoundError, HostError, MultibufferError
from ..model.host import Host
from ..model.types import (
    Context,
    HostEvent,
    Region,
    RegionSpec,
    SyncEventType,
    VirtualDocument,
)
from .decorations import TitleRenderer, default_render_title, format_line_number
from .guard import RecursionGuard

logger = logging.getLogger(__name__)

RangeLike = Union[RegionSpec, Mapping[str, Any], Tuple[int, int]]


@dataclass
class _RenderedRegion:
    region: Region
    output_start: int
    output_end: int
    source_start: int
    opens_group: bool


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


class MultibufferEngine:
    """
    Owns every virtual document of one host, the source watch relation and
    the recursion guard shared by all synchronization passes.
    """

    def __init__(
        self,
        host: Host,
        render_title: Optional[TitleRenderer] = None,
        line_number_period: int = LINE_NUMBER_PERIOD,
        event_callback: Optional[Callable[[str, Dict[str, Any]], None]] = None,
        guard: Optional[RecursionGuard] = None,
    ):
        """
        Args:
            host: Editing host providing documents, decorations and notifications
            render_title: Optional ``(host, source) -> lines`` override for group headers
            line_number_period: Margin line numbers are shown modulo this value
            event_callback: Receives ``(event_type, data)`` for engine events
            guard: Recursion guard to share with other engines
        """
        self.host = host
        self.render_title = render_title
        self.line_number_period = line_number_period
        self.guard = guard if guard is not None else RecursionGuard()
        self._event_callback = event_callback

        self._documents: Dict[int, VirtualDocument] = {}
        # source handle -> watching virtual handles
        self._watchers: Dict[int, List[int]] = {}
        # source handle -> host subscription ids
        self._source_subscriptions: Dict[int, List[int]] = {}

    ###########################################################################
    # Region registry

    def create(self) -> int:
        """Create an empty virtual document and return its handle"""
        handle = self.host.create_document(acwrite=True)
        self.host.set_name(handle, f"{VIRTUAL_DOCUMENT_SCHEME}{handle}")
        namespace = self.host.create_namespace(f"{NAMESPACE_PREFIX}{handle}")

        document = VirtualDocument(handle=handle, namespace=namespace)
        document.subscriptions.append(self.host.subscribe(handle, HostEvent.WRITE, self.write))
        document.subscriptions.append(self.host.subscribe(handle, HostEvent.CLOSED, self.forget))
        self._documents[handle] = document
        self.host.set_modified(handle, False)

        logger.info(f"Created virtual document {handle} (namespace {namespace})")
        self._emit_event(SyncEventType.DOCUMENT_CREATED, {"doc_id": handle})
        return handle

    def is_valid(self, virtual_doc: int) -> bool:
        return virtual_doc in self._documents

    def add_region(self, virtual_doc: int, source_doc: int, start_row: int, end_row: int) -> None:
        self.add_regions(virtual_doc, source_doc, [RegionSpec(start_row, end_row)])

    def add_regions(self, virtual_doc: int, source_doc: int, ranges: Iterable[RangeLike]) -> None:
        """
        Append one region per range and render the virtual document.

        Args:
            virtual_doc: Handle returned by ``create``
            source_doc: Document the regions are taken from
            ranges: Inclusive 0-based ``start_row``/``end_row`` pairs; ranges
                with ``start_row > end_row`` are skipped

        Raises:
            DocumentNotFoundError: If either document does not exist
        """
        document = self._get(virtual_doc)
        if not self.host.is_valid(source_doc):
            raise DocumentNotFoundError(source_doc, "source document")

        specs = [RegionSpec.coerce(value) for value in ranges]
        line_count = self.host.line_count(source_doc)
        added = 0

        for spec in specs:
            if not spec.is_valid:
                logger.debug(f"Skipping inverted range {spec.start_row}..{spec.end_row} for document {source_doc}")
                continue

            start_row = _clamp(spec.start_row, 0, line_count - 1)
            end_row = _clamp(spec.end_row + 1, 0, line_count)
            range_id = self.host.set_decoration(
                source_doc,
                document.namespace,
                start_row,
                end_row=end_row,
                priority=REGION_PRIORITY,
            )
            document.regions.append(Region(source_document=source_doc, source_range_id=range_id))
            added += 1

        self._watch(source_doc, virtual_doc)
        logger.info(f"Added {added} region(s) from document {source_doc} to virtual document {virtual_doc}")
        self._emit_event(SyncEventType.REGIONS_ADDED, {
            "doc_id": virtual_doc,
            "source_doc": source_doc,
            "added": added,
        })

        self.reload(virtual_doc)

    def clear_regions(self, virtual_doc: int) -> None:
        """Drop every region of a virtual document and render it empty"""
        document = self._get(virtual_doc)
        sources = document.sources
        self._release_regions(document)
        document.regions.clear()
        for source in sources:
            self._unwatch(source, virtual_doc)

        logger.info(f"Cleared regions of virtual document {virtual_doc}")
        self.reload(virtual_doc)

    def forget(self, handle: int) -> None:
        """
        Drop engine state tied to a closing document.

        A virtual document loses its regions, hooks and watch entries. A
        watched source loses its hooks; regions still pointing at it are kept
        and simply stop rendering.
        """
        document = self._documents.pop(handle, None)
        if document is not None:
            for subscription_id in document.subscriptions:
                self.host.unsubscribe(subscription_id)
            self._release_regions(document)
            for source in document.sources:
                self._unwatch(source, handle)
            logger.info(f"Removed virtual document {handle}")
            self._emit_event(SyncEventType.DOCUMENT_REMOVED, {"doc_id": handle})

        if handle in self._source_subscriptions:
            for subscription_id in self._source_subscriptions.pop(handle):
                self.host.unsubscribe(subscription_id)
            self._watchers.pop(handle, None)
            logger.debug(f"Stopped watching source document {handle}")

    def regions(self, virtual_doc: int) -> List[Region]:
        return list(self._get(virtual_doc).regions)

    def watchers(self, source_doc: int) -> List[int]:
        return list(self._watchers.get(source_doc, []))

    def virtual_documents(self) -> List[int]:
        return list(self._documents)

    ###########################################################################
    # Reload

    def reload(self, virtual_doc: int) -> None:
        """Re-render a virtual document from the current state of its sources"""
        with self.guard.hold() as acquired:
            if not acquired:
                logger.debug(f"Skipping reload of {virtual_doc}: synchronization in progress")
                return
            document = self._get(virtual_doc)
            rendered = self._render(document)

        self._emit_event(SyncEventType.RELOADED, {
            "doc_id": virtual_doc,
            "rendered": rendered,
            "regions": len(document.regions),
        })

    def _render(self, document: VirtualDocument) -> int:
        host = self.host
        handle, namespace = document.handle, document.namespace
        host.clear_namespace(handle, namespace)

        lines: List[str] = []
        rendered: List[_RenderedRegion] = []
        previous_source: Optional[int] = None

        for region in document.regions:
            bounds = self._resolve(region, namespace)
            if bounds is None:
                continue
            source_start, source_end = bounds
            try:
                region_lines = host.get_lines(region.source_document, source_start, source_end)
            except HostError as e:
                logger.debug(f"Skipping region {region.source_range_id}: {e}")
                continue

            output_start = len(lines)
            lines.extend(region_lines)
            rendered.append(_RenderedRegion(
                region=region,
                output_start=output_start,
                output_end=len(lines),
                source_start=source_start,
                opens_group=region.source_document != previous_source,
            ))
            previous_source = region.source_document

        host.set_lines(handle, 0, -1, lines)

        for item in rendered:
            host.set_decoration(
                handle,
                namespace,
                item.output_start,
                end_row=item.output_end,
                id=item.region.source_range_id,
                priority=REGION_PRIORITY,
            )
            if item.opens_group:
                host.set_decoration(
                    handle,
                    namespace,
                    item.output_start,
                    virt_lines=self._title(item.region.source_document),
                    virt_lines_above=True,
                    priority=HEADER_PRIORITY,
                )
            for offset in range(item.output_end - item.output_start):
                host.set_decoration(
                    handle,
                    namespace,
                    item.output_start + offset,
                    margin_text=format_line_number(item.source_start + offset + 1, self.line_number_period),
                    priority=LINE_NUMBER_PRIORITY,
                )

        host.set_modified(handle, False)
        logger.debug(f"Reloaded virtual document {handle}: {len(rendered)}/{len(document.regions)} regions, {len(lines)} lines")
        return len(rendered)

    def _title(self, source: int) -> List[str]:
        if self.render_title is not None:
            try:
                return list(self.render_title(self.host, source))
            except Exception as e:
                logger.error(f"Error rendering title for document {source}: {e}")
        return default_render_title(self.host, source)

    ###########################################################################
    # Write-back

    def write(self, virtual_doc: int) -> None:
        """Copy the virtual document's regions back into their sources"""
        with self.guard.hold() as acquired:
            if not acquired:
                logger.debug(f"Skipping write of {virtual_doc}: synchronization in progress")
                return
            document = self._get(virtual_doc)
            written = self._write_back(document)

        logger.info(f"Wrote virtual document {virtual_doc} to {len(written)} source document(s)")
        self._emit_event(SyncEventType.WRITTEN, {"doc_id": virtual_doc, "sources": written})
        self._settle(written)

    def _write_back(self, document: VirtualDocument) -> List[int]:
        host = self.host
        spans = {
            decoration.id: decoration
            for decoration in host.list_decorations(document.handle, document.namespace)
            if decoration.is_span
        }
        written: List[int] = []

        for region in document.regions:
            decoration = spans.get(region.source_range_id)
            if decoration is None:
                logger.debug(f"Region {region.source_range_id} is not rendered, not writing it")
                continue
            bounds = self._resolve(region, document.namespace)
            if bounds is None:
                continue
            try:
                lines = host.get_lines(document.handle, decoration.row, decoration.end_row)
                host.set_lines(region.source_document, bounds[0], bounds[1], lines)
            except HostError as e:
                logger.debug(f"Failed to write region {region.source_range_id}: {e}")
                continue
            if region.source_document not in written:
                written.append(region.source_document)

        host.set_modified(document.handle, False)
        return written

    def _settle(self, sources: List[int]) -> None:
        pending: List[int] = []
        for source in sources:
            for watcher in self._watchers.get(source, []):
                if watcher not in pending:
                    pending.append(watcher)
        for watcher in pending:
            try:
                self.reload(watcher)
            except MultibufferError as e:
                logger.warning(f"Reload of virtual document {watcher} after write failed: {e}")

    ###########################################################################
    # Context

    def get_context(self, virtual_doc: int, line: int) -> Optional[Context]:
        """Source document and line behind a 0-based virtual document line"""
        document = self._get(virtual_doc)
        regions = {region.source_range_id: region for region in document.regions}

        for decoration in self.host.list_decorations(document.handle, document.namespace):
            if not decoration.contains(line):
                continue
            region = regions.get(decoration.id)
            if region is None:
                continue
            bounds = self._resolve(region, document.namespace)
            if bounds is None:
                continue
            return Context(
                source_document=region.source_document,
                source_line=bounds[0] + (line - decoration.row),
            )
        return None

    ###########################################################################
    # Private helpers

    def _get(self, virtual_doc: int) -> VirtualDocument:
        document = self._documents.get(virtual_doc)
        if document is None:
            raise DocumentNotFoundError(virtual_doc, "virtual document")
        return document

    def _resolve(self, region: Region, namespace: int) -> Optional[Tuple[int, int]]:
        """Current ``[start, end)`` of a region in its source, or None"""
        try:
            decoration = self.host.get_decoration(region.source_document, namespace, region.source_range_id)
        except HostError as e:
            logger.debug(f"Cannot resolve region {region.source_range_id}: {e}")
            return None
        if decoration is None or decoration.end_row is None or decoration.end_row <= decoration.row:
            return None
        return decoration.row, decoration.end_row

    def _watch(self, source_doc: int, virtual_doc: int) -> None:
        watchers = self._watchers.setdefault(source_doc, [])
        if virtual_doc in watchers:
            return
        watchers.append(virtual_doc)
        if source_doc not in self._source_subscriptions:
            self._source_subscriptions[source_doc] = [
                self.host.subscribe(source_doc, HostEvent.CHANGED, self._on_source_changed),
                self.host.subscribe(source_doc, HostEvent.CLOSED, self.forget),
            ]
            logger.debug(f"Watching source document {source_doc}")

    def _unwatch(self, source_doc: int, virtual_doc: int) -> None:
        watchers = self._watchers.get(source_doc)
        if not watchers or virtual_doc not in watchers:
            return
        watchers.remove(virtual_doc)
        if not watchers:
            del self._watchers[source_doc]
            for subscription_id in self._source_subscriptions.pop(source_doc, []):
                self.host.unsubscribe(subscription_id)

    def _release_regions(self, document: VirtualDocument) -> None:
        for region in document.regions:
            if not self.host.is_valid(region.source_document):
                continue
            self.host.delete_decoration(region.source_document, document.namespace, region.source_range_id)

    def _on_source_changed(self, source_doc: int) -> None:
        # reload() itself drops the pass while a write-back holds the guard
        for virtual_doc in list(self._watchers.get(source_doc, [])):
            try:
                self.reload(virtual_doc)
            except MultibufferError as e:
                logger.warning(f"Reload of virtual document {virtual_doc} failed: {e}")

    def _emit_event(self, event_type: SyncEventType, event_data: Dict[str, Any]) -> None:
        if self._event_callback:
            try:
                self._event_callback(event_type.value, event_data)
            except Exception as e:
                logger.error(f"Error in event callback: {e}")

    def __repr__(self) -> str:
        return f"MultibufferEngine(documents={len(self._documents)}, sources={len(self._watchers)})"
