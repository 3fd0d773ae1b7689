"""Parse unified diff text into per-file added line ranges."""

from __future__ import annotations

import re
from enum import Enum
from typing import List

from delta_coverage.errors import ParseError
from delta_coverage.logger import get_logger
from delta_coverage.models.delta import FileDiffRecord

logger = get_logger()

FILE_HEADER_PREFIX = "diff --git a/"
NEW_FILE_PREFIX = "+++ b/"
HUNK_HEADER_PREFIX = "@@"
_HUNK_HEADER_RE = re.compile(r"^@@ -\d+(?:,\d+)? \+(?P<start>\d+)(?:,(?P<count>\d+))? @@")


class ParserState(Enum):
    AWAITING_FILE_HEADER = "awaiting-file-header"
    ACCUMULATING_HUNKS = "accumulating-hunks"


def _filename_from_header(line: str) -> str:
    """Extract the ``a/`` side path of a ``diff --git a/<path> b/<path>`` header."""

    rest = line[len(FILE_HEADER_PREFIX):].rstrip()
    # Unrenamed files repeat the same path on both sides, which also handles spaces in names.
    half = (len(rest) - len(" b/")) // 2
    if half > 0 and rest[half:half + 3] == " b/" and rest[:half] == rest[half + 3:]:
        return rest[:half]
    head, separator, _ = rest.rpartition(" b/")
    if separator:
        return head
    return rest


def _range_from_hunk_header(line: str, line_number: int, filename: str) -> range | None:
    match = _HUNK_HEADER_RE.match(line)
    if match is None:
        raise ParseError(f"Unparseable hunk header: {line!r}", filename=filename, line=line_number)

    start = int(match.group("start"))
    count_raw = match.group("count")
    if count_raw is None:
        return range(start, start + 1)
    count = int(count_raw)
    if count == 0:
        return None
    return range(start, start + count)


class DiffHunkParser:
    """Two-state machine turning ``git diff`` output into ``FileDiffRecord`` values."""

    def __init__(self) -> None:
        self._state = ParserState.AWAITING_FILE_HEADER
        self._records: List[FileDiffRecord] = []
        self._seen_hunk = False

    @property
    def state(self) -> ParserState:
        return self._state

    def parse(self, diff_text: str) -> List[FileDiffRecord]:
        self._state = ParserState.AWAITING_FILE_HEADER
        self._records = []
        self._seen_hunk = False

        for line_number, line in enumerate(diff_text.splitlines(), start=1):
            if line.startswith(FILE_HEADER_PREFIX):
                self._start_file(line)
            elif line.startswith(HUNK_HEADER_PREFIX):
                self._add_hunk(line, line_number)
            elif line.startswith(NEW_FILE_PREFIX) and self._expects_new_path():
                self._set_new_path(line)

        logger.debug(
            f"Parsed diff: files={len(self._records)}, "
            f"added_lines={sum(record.added_line_count for record in self._records)}"
        )
        return self._records

    def _start_file(self, line: str) -> None:
        self._records.append(FileDiffRecord(filename=_filename_from_header(line)))
        self._state = ParserState.ACCUMULATING_HUNKS
        self._seen_hunk = False

    def _expects_new_path(self) -> bool:
        return self._state is ParserState.ACCUMULATING_HUNKS and not self._seen_hunk

    def _set_new_path(self, line: str) -> None:
        current = self._records[-1]
        new_filename = line[len(NEW_FILE_PREFIX):].rstrip()
        if new_filename and new_filename != current.filename:
            logger.debug(f"{current.filename} renamed to {new_filename}")
            current.new_filename = new_filename

    def _add_hunk(self, line: str, line_number: int) -> None:
        if self._state is ParserState.AWAITING_FILE_HEADER:
            raise ParseError(
                f"Hunk header found before any file header: {line!r}",
                line=line_number,
            )

        self._seen_hunk = True
        current = self._records[-1]
        added = _range_from_hunk_header(line, line_number, current.filename)
        if added is None:
            return
        if current.added_line_ranges and added.start < current.added_line_ranges[-1].stop:
            raise ParseError(
                f"Hunk header overlaps or precedes the previous hunk: {line!r}",
                filename=current.filename,
                line=line_number,
            )
        current.added_line_ranges.append(added)


def parse_diff(diff_text: str) -> List[FileDiffRecord]:
    """Parse unified diff text with a fresh ``DiffHunkParser``."""

    return DiffHunkParser().parse(diff_text)
