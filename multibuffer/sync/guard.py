# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Single-slot recursion guard for synchronization passes."""

from contextlib import contextmanager
from typing import Iterator


class RecursionGuard:
    """
    Token held by at most one reload or write-back at a time.

    Host notifications fire synchronously, so a write-back that edits a
    source fires that source's change hook, which would start a reload,
    which rewrites the virtual document, and so on. Every synchronization
    pass runs inside ``hold()``; a nested pass finds the token taken and
    returns without doing anything.
    """

    def __init__(self):
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @contextmanager
    def hold(self) -> Iterator[bool]:
        """Yield True if the token was acquired, False if it was already held"""
        if self._held:
            yield False
            return

        self._held = True
        try:
            yield True
        finally:
            self._held = False

    def __repr__(self) -> str:
        return f"RecursionGuard(held={self._held})"
