# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Typed records exchanged between the host and the synchronization engine.

Host payloads (decorations, region requests) are decoded into these records
once, at the boundary, and never travel through the engine as plain dicts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union


class HostEvent(Enum):
    """Notifications a host fires for a single document"""
    CHANGED = "changed"
    WRITE = "write"
    CLOSED = "closed"


class SyncEventType(Enum):
    """Events emitted by the engine to its optional event callback"""
    DOCUMENT_CREATED = "document_created"
    REGIONS_ADDED = "regions_added"
    RELOADED = "reloaded"
    WRITTEN = "written"
    DOCUMENT_REMOVED = "document_removed"


@dataclass(frozen=True)
class RegionSpec:
    """A caller's request for an inclusive, 0-based line range"""
    start_row: int
    end_row: int

    @property
    def is_valid(self) -> bool:
        return self.start_row <= self.end_row

    @classmethod
    def coerce(cls, value: Union["RegionSpec", Mapping[str, Any], Tuple[int, int]]) -> "RegionSpec":
        """Accept a RegionSpec, a ``{"start_row", "end_row"}`` mapping or a pair"""
        if isinstance(value, RegionSpec):
            return value
        if isinstance(value, Mapping):
            try:
                return cls(int(value["start_row"]), int(value["end_row"]))
            except KeyError as e:
                raise ValueError(f"region is missing {e.args[0]!r}: {dict(value)}")
        start_row, end_row = value
        return cls(int(start_row), int(end_row))


@dataclass(frozen=True)
class Region:
    """
    Binding between a virtual document and a line range of a source document.

    Bounds are never stored: ``source_range_id`` names a sticky range kept
    current by the host, and the same id anchors the region's span in the
    virtual document once it has been rendered.
    """
    source_document: int
    source_range_id: int


@dataclass(frozen=True)
class Decoration:
    """A decoration as reported by the host"""
    id: int
    row: int
    end_row: Optional[int] = None
    margin_text: Optional[str] = None
    virt_lines: Tuple[str, ...] = ()
    virt_lines_above: bool = False
    priority: int = 0

    @property
    def is_span(self) -> bool:
        return self.end_row is not None

    def contains(self, line: int) -> bool:
        return self.end_row is not None and self.row <= line < self.end_row


@dataclass(frozen=True)
class Context:
    """Where a virtual document line comes from"""
    source_document: int
    source_line: int


@dataclass
class VirtualDocument:
    """Engine-side state of one virtual document"""
    handle: int
    namespace: int
    regions: List[Region] = field(default_factory=list)
    subscriptions: List[int] = field(default_factory=list)

    @property
    def sources(self) -> List[int]:
        """Distinct source handles, in first-reference order"""
        seen: List[int] = []
        for region in self.regions:
            if region.source_document not in seen:
                seen.append(region.source_document)
        return seen
