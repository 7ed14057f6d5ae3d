# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Shared fixtures: an in-memory host, an engine recording its events, sources."""

import pytest

from multibuffer.constants import NAMESPACE_PREFIX
from multibuffer.model.loro_host import LoroHost
from multibuffer.sync.engine import MultibufferEngine


@pytest.fixture
def host():
    return LoroHost()


@pytest.fixture
def events():
    return []


@pytest.fixture
def engine(host, events):
    return MultibufferEngine(host, event_callback=lambda event_type, data: events.append((event_type, data)))


@pytest.fixture
def doc_a(host):
    return host.create_document("a.txt", lines=[f"A{i}" for i in range(10)])


@pytest.fixture
def doc_b(host):
    return host.create_document("b.txt", lines=[f"B{i}" for i in range(10)])


@pytest.fixture
def namespace_of(host):
    """Namespace id of a virtual document (same name, same id)"""
    def lookup(virtual_doc):
        return host.create_namespace(f"{NAMESPACE_PREFIX}{virtual_doc}")
    return lookup
