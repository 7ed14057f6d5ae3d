# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Exception hierarchy shared by the host layer and the synchronization engine."""


class MultibufferError(Exception):
    """Base class for every error raised by this package"""


class HostError(MultibufferError):
    """A call into the editing host failed"""


class DocumentNotFoundError(HostError, LookupError):
    """The referenced document does not exist or was closed"""

    def __init__(self, handle: int, kind: str = "document"):
        super().__init__(f"{kind} not found: {handle}")
        self.handle = handle
        self.kind = kind


class InvalidRangeError(HostError, ValueError):
    """A line range or row falls outside the document"""


class SearchError(MultibufferError):
    """Running or parsing an external search failed"""
