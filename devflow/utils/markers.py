"""Marker-based content management for user-owned text files.

This module provides utilities for managing a tool-owned region inside a
file the user also edits (such as ~/.zshrc). The region is delimited by an
exact opening marker line and an exact closing marker line, which allows
safe insertion, detection and removal without touching anything else.

Marker Format:
    # >>> DevFlow safe-delete >>>
    ... managed content ...
    # <<< DevFlow safe-delete <<<
"""

from __future__ import annotations

from dataclasses import dataclass

SAFE_DELETE_START_MARKER = "# >>> DevFlow safe-delete >>>"
SAFE_DELETE_END_MARKER = "# <<< DevFlow safe-delete <<<"


def wrap_lines(
    lines: list[str],
    start_marker: str = SAFE_DELETE_START_MARKER,
    end_marker: str = SAFE_DELETE_END_MARKER,
) -> str:
    """Wrap body lines in start and end markers.

    Args:
        lines: Body lines (without trailing newlines)
        start_marker: Opening marker line
        end_marker: Closing marker line

    Returns:
        The marked block, without a trailing newline
    """
    return "\n".join([start_marker, *lines, end_marker])


def split_lines(content: str) -> list[str]:
    """Split content at line feeds only, keeping each line's ending.

    Unlike str.splitlines, CRLF endings and characters such as form feed
    pass through untouched, so joining the result gives back the content.
    """
    lines = content.split("\n")
    return [line + "\n" for line in lines[:-1]] + ([lines[-1]] if lines[-1] else [])


@dataclass
class MarkedRegion:
    """Line span of a marked region (both indices inclusive)."""

    start_line: int
    end_line: int


def find_marked_region(
    content: str,
    start_marker: str = SAFE_DELETE_START_MARKER,
    end_marker: str = SAFE_DELETE_END_MARKER,
) -> MarkedRegion | None:
    """Find the first marked region in file content.

    Markers only count when they make up a whole line, and the end marker
    must come after the start marker.

    Args:
        content: The full file content
        start_marker: Opening marker line
        end_marker: Closing marker line

    Returns:
        MarkedRegion if found, None otherwise
    """
    start_line: int | None = None
    for index, line in enumerate(split_lines(content)):
        stripped = line.rstrip()
        if start_line is None:
            if stripped == start_marker:
                start_line = index
        elif stripped == end_marker:
            return MarkedRegion(start_line=start_line, end_line=index)
    return None


def append_marked_block(content: str, block: str) -> str:
    """Append a marked block to file content.

    The block is separated from existing content by one blank line.

    Args:
        content: Existing file content (may be empty)
        block: Marked block as returned by wrap_lines

    Returns:
        Updated file content ending in a newline
    """
    if not content:
        return block + "\n"
    separator = "\n" if content.endswith("\n") else "\n\n"
    return content + separator + block + "\n"


def strip_marked_region(
    content: str,
    start_marker: str = SAFE_DELETE_START_MARKER,
    end_marker: str = SAFE_DELETE_END_MARKER,
) -> str | None:
    """Remove a marked region (markers included) from file content.

    Blank lines around the region are collapsed to at most one, so repeated
    install and remove cycles never accumulate blank lines.

    Args:
        content: The full file content
        start_marker: Opening marker line
        end_marker: Closing marker line

    Returns:
        Updated content, "" when nothing but whitespace remains, or None if
        no region was found
    """
    region = find_marked_region(content, start_marker, end_marker)
    if region is None:
        return None

    lines = split_lines(content)
    before = lines[: region.start_line]
    after = lines[region.end_line + 1 :]

    gap: list[str] = []
    while before and not before[-1].strip():
        gap = [before.pop()]
    while after and not after[0].strip():
        blank = after.pop(0)
        gap = gap or [blank]

    remaining = before + (gap if before and after else []) + after
    if not any(line.strip() for line in remaining):
        return ""
    return "".join(remaining)
