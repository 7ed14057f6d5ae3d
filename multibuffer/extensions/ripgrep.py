# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Build virtual documents from ripgrep matches.

``rg --vimgrep`` prints one ``file:line:column:text`` record per match. Every
matched line becomes one single-line region, grouped per file, files sorted by
path so the virtual document reads top to bottom like the search output.
"""

import logging
import re
import subprocess
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Set

from ..constants import RIPGREP_ARGS, RIPGREP_BINARY
from ..errors import SearchError
from ..model.types import RegionSpec
from ..sync.engine import MultibufferEngine

logger = logging.getLogger(__name__)

# The path ends at the first ":line:column:", so paths (drive letters included)
# and match text may both contain colons
VIMGREP_LINE = re.compile(r"^(.+?):(\d+):(\d+):")


@dataclass
class SearchResult:
    """Matches found in one file"""
    path: str
    regions: List[RegionSpec] = field(default_factory=list)


def parse_vimgrep(output: str) -> List[SearchResult]:
    """Parse ``--vimgrep`` records into one single-line region per matched line.

    ripgrep prints a record per match column, so a line matching twice is
    reported twice; it still becomes one region.
    """
    results: Dict[str, SearchResult] = {}
    seen: Dict[str, Set[int]] = {}

    for raw_line in output.split("\n"):
        line = raw_line.rstrip("\r")
        if not line:
            continue
        match = VIMGREP_LINE.match(line)
        if match is None:
            logger.debug(f"Ignoring unparsable ripgrep line: {line!r}")
            continue
        path, line_number = match.group(1), int(match.group(2))
        row = line_number - 1
        rows = seen.setdefault(path, set())
        if row in rows:
            continue
        rows.add(row)
        results.setdefault(path, SearchResult(path)).regions.append(RegionSpec(row, row))

    for result in results.values():
        result.regions.sort(key=lambda region: region.start_row)
    return [results[path] for path in sorted(results)]


def expand_regions(regions: Sequence[RegionSpec], context: int) -> List[RegionSpec]:
    """Grow each region by ``context`` lines above and below.

    Consecutive regions that overlap after growing are merged so no line is
    shown twice, with or without context.
    """
    context = max(context, 0)
    expanded: List[RegionSpec] = []
    for region in regions:
        grown = RegionSpec(max(region.start_row - context, 0), region.end_row + context)
        if expanded and expanded[-1].start_row <= grown.start_row <= expanded[-1].end_row:
            previous = expanded[-1]
            expanded[-1] = RegionSpec(previous.start_row, max(previous.end_row, grown.end_row))
        else:
            expanded.append(grown)
    return expanded


def run_ripgrep(pattern: str, paths: Sequence[str] = (), rg_binary: str = RIPGREP_BINARY) -> List[SearchResult]:
    """
    Run ripgrep and parse its matches.

    Raises:
        SearchError: If ripgrep is missing or exits with an error
    """
    if not pattern:
        return []

    command = [rg_binary, *RIPGREP_ARGS, pattern, *paths]
    logger.info(f"Running {' '.join(command)}")
    try:
        result = subprocess.run(command, capture_output=True, text=True, check=False)
    except FileNotFoundError:
        raise SearchError(f"ripgrep not found: {rg_binary}")

    # 1 means no matches
    if result.returncode == 1:
        return []
    if result.returncode != 0:
        raise SearchError(f"ripgrep failed ({result.returncode}): {(result.stderr or '').strip()}")

    results = parse_vimgrep(result.stdout or "")
    logger.info(f"ripgrep matched {sum(len(r.regions) for r in results)} line(s) in {len(results)} file(s)")
    return results


def add_search_results(
    engine: MultibufferEngine,
    virtual_doc: int,
    results: Sequence[SearchResult],
    open_document: Callable[[str], int],
    context: int = 0,
) -> None:
    """Open every matched file and add its regions to a virtual document"""
    for result in results:
        source = open_document(result.path)
        engine.add_regions(virtual_doc, source, expand_regions(result.regions, context))
