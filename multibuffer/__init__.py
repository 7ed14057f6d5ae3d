# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Multibuffer - edit line ranges of many documents as one virtual document
"""

from .errors import DocumentNotFoundError, HostError, InvalidRangeError, MultibufferError, SearchError
from .model import Context, Host, LoroHost, Region, RegionSpec
from .sync import MultibufferEngine, RecursionGuard

__all__ = [
    "MultibufferEngine",
    "RecursionGuard",
    "Host",
    "LoroHost",
    "Context",
    "Region",
    "RegionSpec",
    "MultibufferError",
    "HostError",
    "DocumentNotFoundError",
    "InvalidRangeError",
    "SearchError",
]
