# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""Text of the header and margin decorations drawn in a virtual document."""

from typing import Callable, List

from ..constants import LINE_NUMBER_PERIOD, TITLE_FORMAT, UNKNOWN_DOCUMENT_NAME
from ..model.host import Host

TitleRenderer = Callable[[Host, int], List[str]]


def default_render_title(host: Host, source: int) -> List[str]:
    """Blank line, source name, blank line"""
    name = host.get_name(source) or UNKNOWN_DOCUMENT_NAME
    return ["", TITLE_FORMAT.format(name=name), ""]


def format_line_number(line_number: int, period: int = LINE_NUMBER_PERIOD) -> str:
    # Wraps for display width only
    return f"{line_number % period:>3} "
