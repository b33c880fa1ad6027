"""CLI entry point for vbare.

Invoked as::

    vbare [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m vbare.cli.main

Commands
--------
- version  — Show version information
- frame    — Embedded-version frame command group

Frame sub-commands
------------------
- frame inspect — Show the version and payload size of a framed file
- frame wrap    — Prefix a raw payload file with a version
- frame unwrap  — Strip the version prefix and write the raw payload
"""
from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from vbare import __version__
from vbare.errors import VbareError

console = Console()

_PREVIEW_BYTES = 16


def _read_input(input_file: str) -> bytes:
    try:
        return Path(input_file).read_bytes()
    except OSError as exc:
        console.print(f"[red]Failed to read input:[/red] {exc}")
        sys.exit(1)


def _write_output(output_file: str, data: bytes) -> None:
    output_path = Path(output_file)
    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
    except OSError as exc:
        console.print(f"[red]Failed to write output:[/red] {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="vbare")
def cli() -> None:
    """Versioned data migration for binary-encoded application state"""


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    console.print(f"[bold]vbare[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# frame command group
# ---------------------------------------------------------------------------


@cli.group(name="frame")
def frame_group() -> None:
    """Embedded-version frame commands.

    A frame is a 2-byte little-endian version followed by the payload.
    """


@frame_group.command(name="inspect")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json-output", is_flag=True, help="Output raw JSON instead of a table.")
def frame_inspect(input_file: str, json_output: bool) -> None:
    """Show the embedded version and payload size of INPUT_FILE."""
    from vbare.framing import VersionedFrame

    data = _read_input(input_file)
    try:
        frame = VersionedFrame.from_bytes(data)
    except VbareError as exc:
        console.print(f"[red]Invalid frame:[/red] {exc}")
        sys.exit(1)

    if json_output:
        console.print_json(
            data={
                "version": frame.version,
                "payload_length": len(frame.payload),
                "total_length": len(frame),
            }
        )
        return

    table = Table(title=Path(input_file).name, show_lines=False)
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("version", str(frame.version))
    table.add_row("payload_length", str(len(frame.payload)))
    table.add_row("total_length", str(len(frame)))
    table.add_row("payload_head", frame.payload[:_PREVIEW_BYTES].hex(" ") or "-")
    console.print(table)


@frame_group.command(name="wrap")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--version",
    "version",
    required=True,
    type=int,
    help="Schema version to embed (0..65535).",
)
@click.option(
    "--output",
    "output_file",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to write the framed file.",
)
def frame_wrap(input_file: str, version: int, output_file: str) -> None:
    """Prefix the raw payload in INPUT_FILE with VERSION.

    Examples::

        vbare frame wrap app.v2.bin --version 2 --output app.vbare
    """
    from vbare.framing import embed_version

    payload = _read_input(input_file)
    try:
        framed = embed_version(payload, version)
    except VbareError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    _write_output(output_file, framed)
    console.print(f"[green]Wrapped (v{version}):[/green] {output_file}")


@frame_group.command(name="unwrap")
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "output_file",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to write the raw payload.",
)
def frame_unwrap(input_file: str, output_file: str) -> None:
    """Strip the version prefix from INPUT_FILE and write the raw payload."""
    from vbare.framing import extract_version

    data = _read_input(input_file)
    try:
        version, payload = extract_version(data)
    except VbareError as exc:
        console.print(f"[red]Invalid frame:[/red] {exc}")
        sys.exit(1)

    _write_output(output_file, payload)
    console.print(f"[green]Unwrapped (v{version}):[/green] {output_file}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
