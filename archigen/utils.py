"""Shared utility functions for archigen.

Provides identifier case conversion and naive pluralisation, whole-file
read/replace helpers, synchronous command execution for the external build
tool, and Rich-based console output.  Nothing in the generation core prints;
the console helpers are used by the CLI to present reports.
"""

from __future__ import annotations

import os
import subprocess
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Callable

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

from .exceptions import InvalidInput

console = Console()

# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------

_SEPARATORS = (" ", "-", "_", ".")


def _capitalize_segment(segment: str) -> str:
    if len(segment) == 1:
        return segment.upper()
    return segment[0].upper() + segment[1:].lower()


def to_pascal_case(value: str | None) -> str:
    """Convert an identifier-ish string to PascalCase.

    Input without separators that already mixes upper and lower case is
    returned unchanged so intentional casing survives.

    Examples::

        to_pascal_case("order-item") -> "OrderItem"
        to_pascal_case("OrderItem")  -> "OrderItem"
        to_pascal_case("PRODUCT")    -> "Product"

    Raises:
        InvalidInput: If *value* is ``None``, empty or whitespace.
    """
    if value is None or not value.strip():
        raise InvalidInput("Value cannot be null, empty or whitespace.")

    if not any(sep in value for sep in _SEPARATORS):
        has_upper = any(c.isupper() for c in value)
        has_lower = any(c.islower() for c in value)
        if has_upper and has_lower:
            return value
        return _capitalize_segment(value)

    segments = [value]
    for sep in _SEPARATORS:
        segments = [part for seg in segments for part in seg.split(sep)]
    return "".join(_capitalize_segment(seg) for seg in segments if seg)


def to_camel_case(value: str | None) -> str:
    """PascalCase *value*, then lowercase only its first character."""
    pascal = to_pascal_case(value)
    if not pascal:
        return pascal
    return pascal[0].lower() + pascal[1:]


def to_plural(value: str) -> str:
    """Naive English pluralisation.

    ``Category`` -> ``Categories``, ``Bus`` -> ``Buses``, ``User`` ->
    ``Users``.  Irregular nouns are not special-cased (``Person`` ->
    ``Persons``).
    """
    if not value or not value.strip():
        return value
    if len(value) > 1 and value[-1] in "yY":
        return value[:-1] + "ies"
    if value[-1] in "sS":
        return value + "es"
    return value + "s"


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def read_lines(path: str | Path) -> list[str]:
    """Read a text file and return its lines without line terminators."""
    return Path(path).read_text(encoding="utf-8").splitlines()


def write_text_atomic(path: str | Path, content: str) -> None:
    """Replace *path* with *content* in one step.

    The content goes to a temporary file in the same directory which is then
    moved over the target, so readers never observe a half-written file.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_lines(path: str | Path, lines: list[str]) -> None:
    """Write *lines* back as a whole file, one ``\\n``-terminated line each."""
    write_text_atomic(path, "".join(f"{line}\n" for line in lines))


# ---------------------------------------------------------------------------
# External command execution
# ---------------------------------------------------------------------------


@dataclass
class CommandResult:
    """Outcome of an external tool invocation."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = -1


def _pump(stream: IO[str], sink: list[str], echo: Callable[[str], None] | None) -> None:
    for line in iter(stream.readline, ""):
        text = line.rstrip("\n")
        sink.append(text)
        if echo is not None:
            echo(text)
    stream.close()


def run_command(
    cwd: str | Path,
    command: str | list[str],
    stream: bool = True,
) -> CommandResult:
    """Run an external command synchronously and capture its output.

    Stdout and stderr are read concurrently and, when *stream* is set,
    echoed to the console line by line as they arrive (stderr in red).

    Args:
        cwd: Working directory for the child process.
        command: Command line string (split on whitespace) or argument list.
        stream: Whether to echo output while the process runs.

    Returns:
        A ``CommandResult``.  A command that cannot be started yields
        ``success=False`` with the OS error in ``stderr``.
    """
    args = command.split() if isinstance(command, str) else list(command)
    try:
        process = subprocess.Popen(
            args,
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        return CommandResult(success=False, stderr=str(exc))

    out_lines: list[str] = []
    err_lines: list[str] = []
    echo_out = (lambda line: console.print(line, markup=False, highlight=False)) if stream else None
    echo_err = (lambda line: console.print(f"[red]{escape(line)}[/red]", highlight=False)) if stream else None

    assert process.stdout is not None and process.stderr is not None
    readers = [
        threading.Thread(target=_pump, args=(process.stdout, out_lines, echo_out), daemon=True),
        threading.Thread(target=_pump, args=(process.stderr, err_lines, echo_err), daemon=True),
    ]
    for reader in readers:
        reader.start()
    returncode = process.wait()
    for reader in readers:
        reader.join()

    return CommandResult(
        success=returncode == 0,
        stdout="\n".join(out_lines),
        stderr="\n".join(err_lines),
        returncode=returncode,
    )


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str) -> None:
    """Print a full-width rule with *title*."""
    console.print()
    console.print(Rule(f"[bold cyan] {escape(title)} [/bold cyan]", style="cyan"))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(escape(key), escape(str(value)))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_info(message: str) -> None:
    """Print a dim informational message."""
    console.print(f"[cyan]{escape(message)}[/cyan]")
