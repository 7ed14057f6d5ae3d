# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Region synchronization engine

Keeps virtual documents and their source documents in step: reload renders
regions into a virtual document, write-back pushes edits to the sources.
"""

from .decorations import default_render_title, format_line_number
from .engine import MultibufferEngine
from .guard import RecursionGuard

__all__ = ["MultibufferEngine", "RecursionGuard", "default_render_title", "format_line_number"]
