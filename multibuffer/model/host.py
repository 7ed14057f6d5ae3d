# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Host interface consumed by the synchronization engine.

The host is the editing surface: it stores line content, keeps decorations
(and therefore sticky ranges) correct while text is edited around them, and
fires per-document notifications. The engine only orchestrates these
primitives; it never stores text or tracks positions itself.

Conventions shared by every method:

- Lines are 0-based. Ranges are ``[start, end)``; a negative index counts from
  one past the last line, so ``(0, -1)`` covers the whole document.
- Unknown or closed documents raise ``DocumentNotFoundError``.
- Out-of-bounds ranges raise ``InvalidRangeError``.
- A sticky range is a decoration with an ``end_row``; its id is its stable
  identifier.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from .types import Decoration, HostEvent

HostCallback = Callable[[int], None]


class Host(ABC):
    """Abstract editing host"""

    # Documents

    @abstractmethod
    def create_document(self, name: Optional[str] = None, acwrite: bool = False) -> int:
        """Create a document and return its handle.

        ``acwrite`` documents delegate saving to their WRITE subscribers
        instead of writing anywhere themselves.
        """

    @abstractmethod
    def is_valid(self, doc: int) -> bool:
        ...

    @abstractmethod
    def get_name(self, doc: int) -> str:
        ...

    @abstractmethod
    def set_name(self, doc: int, name: str) -> None:
        ...

    @abstractmethod
    def close_document(self, doc: int) -> None:
        """Fire CLOSED for the document, then discard it"""

    @abstractmethod
    def write(self, doc: int) -> None:
        """Save the document (or hand it to its WRITE subscribers)"""

    # Content

    @abstractmethod
    def line_count(self, doc: int) -> int:
        ...

    @abstractmethod
    def get_lines(self, doc: int, start: int, end: int) -> List[str]:
        ...

    @abstractmethod
    def set_lines(self, doc: int, start: int, end: int, lines: Sequence[str]) -> None:
        """Replace ``[start, end)`` with ``lines`` and fire CHANGED"""

    @abstractmethod
    def is_modified(self, doc: int) -> bool:
        ...

    @abstractmethod
    def set_modified(self, doc: int, modified: bool) -> None:
        ...

    # Decorations

    @abstractmethod
    def create_namespace(self, name: str) -> int:
        """Return the namespace id for ``name``, creating it on first use"""

    @abstractmethod
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
        """Create a decoration, or replace the one with ``id``; return its id"""

    @abstractmethod
    def get_decoration(self, doc: int, namespace: int, id: int) -> Optional[Decoration]:
        """Current state of a decoration, or None if it does not exist"""

    @abstractmethod
    def delete_decoration(self, doc: int, namespace: int, id: int) -> None:
        """Remove a decoration; unknown ids are ignored"""

    @abstractmethod
    def list_decorations(self, doc: int, namespace: int) -> List[Decoration]:
        """All decorations of a namespace in a document, ordered by row then id"""

    @abstractmethod
    def clear_namespace(self, doc: int, namespace: int, start: int = 0, end: int = -1) -> None:
        """Drop every decoration of the namespace anchored in ``[start, end)``"""

    # Notifications

    @abstractmethod
    def subscribe(self, doc: int, event: HostEvent, callback: HostCallback) -> int:
        """Call ``callback(doc)`` whenever ``event`` fires for ``doc``"""

    @abstractmethod
    def unsubscribe(self, subscription_id: int) -> None:
        ...
