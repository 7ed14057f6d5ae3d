# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

from .host import Host
from .loro_host import LoroHost
from .types import Context, Decoration, HostEvent, Region, RegionSpec, SyncEventType, VirtualDocument

__all__ = [
    'Host',
    'LoroHost',
    'Context',
    'Decoration',
    'HostEvent',
    'Region',
    'RegionSpec',
    'SyncEventType',
    'VirtualDocument',
]
