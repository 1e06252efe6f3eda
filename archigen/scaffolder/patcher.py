"""Line-level text surgery on existing source files.

These are deliberately simple operations: they match markers by substring
and lines by equality, with no knowledge of C# syntax.  Each one reads the
whole file, decides whether the change is already present, and if not
replaces the file in one write.  All of them return ``True`` when the file
was changed and ``False`` when it already contained the content.
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from ..exceptions import MarkerNotFound
from ..utils import read_lines, write_lines

USING_PREFIX = "using "


def contains_sequence(lines: Sequence[str], sequence: Sequence[str]) -> bool:
    """Whether *sequence* occurs contiguously in *lines*, ignoring edge whitespace."""
    if not sequence:
        return True
    wanted = [item.strip() for item in sequence]
    span = len(wanted)
    for start in range(len(lines) - span + 1):
        if all(lines[start + offset].strip() == wanted[offset] for offset in range(span)):
            return True
    return False


def find_marker(lines: Sequence[str], marker: str, *, last: bool = False) -> int:
    """Index of the first (or last) line containing *marker*, or ``-1``."""
    indices = range(len(lines) - 1, -1, -1) if last else range(len(lines))
    for index in indices:
        if marker in lines[index]:
            return index
    return -1


def add_import_if_missing(path: str | Path, import_line: str) -> bool:
    """Add *import_line* after the leading block of ``using`` lines.

    Nothing happens when a line equal to *import_line* (after stripping)
    already exists anywhere in the file.
    """
    lines = read_lines(path)
    wanted = import_line.strip()
    if any(line.strip() == wanted for line in lines):
        return False

    index = 0
    while index < len(lines) and lines[index].startswith(USING_PREFIX):
        index += 1

    lines.insert(index, import_line)
    write_lines(path, lines)
    return True


def insert_after_marker(path: str | Path, marker: str, content_lines: Sequence[str]) -> bool:
    """Splice *content_lines* right after the first line containing *marker*.

    Raises:
        MarkerNotFound: If no line contains *marker*.
    """
    lines = read_lines(path)
    index = find_marker(lines, marker)
    if index == -1:
        raise MarkerNotFound(marker, path)

    if contains_sequence(lines, content_lines):
        return False

    lines[index + 1:index + 1] = list(content_lines)
    write_lines(path, lines)
    return True


def insert_before_marker(path: str | Path, marker: str, line: str) -> bool:
    """Splice *line* right before the first line containing *marker*.

    Nothing happens when an identical line already exists in the file.

    Raises:
        MarkerNotFound: If no line contains *marker*.
    """
    lines = read_lines(path)
    index = find_marker(lines, marker)
    if index == -1:
        raise MarkerNotFound(marker, path)

    if line in lines:
        return False

    lines.insert(index, line)
    write_lines(path, lines)
    return True


def insert_block_before_marker(
    path: str | Path,
    marker: str,
    block: Sequence[str],
    *,
    last: bool = True,
) -> bool:
    """Splice a multi-line *block* before the last (or first) *marker* line.

    Raises:
        MarkerNotFound: If no line contains *marker*.
    """
    lines = read_lines(path)
    index = find_marker(lines, marker, last=last)
    if index == -1:
        raise MarkerNotFound(marker, path)

    if contains_sequence(lines, [item for item in block if item.strip()]):
        return False

    lines[index:index] = list(block)
    write_lines(path, lines)
    return True
