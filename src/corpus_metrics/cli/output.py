"""Console output helpers for the corpus-metrics CLI.

Messages go to stderr through a rich console; reports are written to stdout
(or a file) as JSON so they can be piped into other tools.
"""

from pathlib import Path
from typing import Any

import orjson
import typer
from rich.console import Console

console = Console(stderr=True)


def print_error(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")


def print_success(message: str) -> None:
    console.print(f"[green]✓ {message}[/green]")


def print_info(message: str) -> None:
    console.print(f"[cyan]{message}[/cyan]")


def dump_json(data: Any) -> bytes:
    """Pretty-printed JSON with a trailing newline."""
    return orjson.dumps(data, option=orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE)


def print_json(data: Any) -> None:
    """Write ``data`` as JSON to stdout."""
    typer.echo(dump_json(data).decode("utf-8"), nl=False)


def write_json(data: Any, output: Path | None) -> None:
    """Write ``data`` as JSON to ``output``, or to stdout when it is None."""
    if output is None:
        print_json(data)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(dump_json(data))
    print_success(f"Wrote {output}")
