# Copyright (c) 2023-2025 Datalayer, Inc.
# Distributed under the terms of the MIT License.

"""
Command line interface: print virtual documents built from files.

    multibuffer show src/app.py:10-20 src/util.py:3
    multibuffer grep "def main" src --context 2
"""

import logging
import re
from typing import List, Tuple

import click

from .constants import RIPGREP_BINARY
from .errors import MultibufferError
from .extensions.ripgrep import add_search_results, run_ripgrep
from .model.loro_host import LoroHost
from .model.types import RegionSpec
from .sync.engine import MultibufferEngine

logger = logging.getLogger(__name__)

RANGE_ARGUMENT = re.compile(r"^(?P<path>.+):(?P<start>\d+)(?:-(?P<end>\d+))?$")


def parse_range_argument(value: str) -> Tuple[str, RegionSpec]:
    """Parse ``PATH:START[-END]`` (1-based, inclusive) into a path and region"""
    match = RANGE_ARGUMENT.match(value)
    if match is None:
        raise click.BadParameter(f"expected PATH:START[-END], got {value!r}")
    start = int(match.group("start"))
    end = int(match.group("end") or start)
    if start < 1:
        raise click.BadParameter(f"line numbers start at 1: {value!r}")
    return match.group("path"), RegionSpec(start - 1, end - 1)


def _print_document(host: LoroHost, doc: int) -> None:
    for line in host.render(doc):
        click.echo(line)


@click.group()
@click.option("--log-level", default="WARNING", help="Logging level")
def main(log_level: str):
    """Show line ranges of many files as one document"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@main.command()
@click.argument("ranges", nargs=-1, required=True)
def show(ranges: Tuple[str, ...]):
    """Print the virtual document made of PATH:START[-END] ranges"""
    requests: List[Tuple[str, RegionSpec]] = [parse_range_argument(value) for value in ranges]

    host = LoroHost()
    engine = MultibufferEngine(host)
    try:
        virtual_doc = engine.create()
        for path, region in requests:
            engine.add_regions(virtual_doc, host.open_file(path), [region])
    except MultibufferError as e:
        raise click.ClickException(str(e))

    _print_document(host, virtual_doc)


@main.command()
@click.argument("pattern")
@click.argument("paths", nargs=-1)
@click.option("--context", "-C", default=0, show_default=True, help="Lines of context around each match")
@click.option("--rg", "rg_binary", default=RIPGREP_BINARY, show_default=True, help="ripgrep executable")
def grep(pattern: str, paths: Tuple[str, ...], context: int, rg_binary: str):
    """Print the virtual document made of every ripgrep match of PATTERN"""
    host = LoroHost()
    engine = MultibufferEngine(host)
    try:
        results = run_ripgrep(pattern, paths, rg_binary=rg_binary)
        if not results:
            click.echo(f"No matches for {pattern}")
            return
        virtual_doc = engine.create()
        add_search_results(engine, virtual_doc, results, host.open_file, context=context)
    except MultibufferError as e:
        raise click.ClickException(str(e))

    _print_document(host, virtual_doc)


if __name__ == "__main__":
    main()
