"""Shared data structures for delta coverage computation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List


@dataclass(slots=True)
class FileDiffRecord:
    filename: str
    added_line_ranges: List[range] = field(default_factory=list)
    new_filename: str | None = None

    @property
    def target_filename(self) -> str:
        """Path on the post-image side; differs from ``filename`` for renames."""
        return self.new_filename or self.filename

    @property
    def added_line_count(self) -> int:
        return sum(len(line_range) for line_range in self.added_line_ranges)


@dataclass(slots=True)
class CoverageEntry:
    filename: str
    line_hits: List[int | None] = field(default_factory=list)

    def hits_for(self, line_number: int) -> int | None:
        """Return the hit count for a 1-based line, None when it is not executable."""

        index = line_number - 1
        if index < 0 or index >= len(self.line_hits):
            return None
        return self.line_hits[index]

    def coverage_percent(self) -> float | None:
        executable = [hits for hits in self.line_hits if hits is not None]
        if not executable:
            return None
        covered = sum(1 for hits in executable if hits > 0)
        return covered / len(executable) * 100


@dataclass(slots=True)
class FileResult:
    filename: str
    coverage_percent: float
    missing_line_batches: List[List[int]] = field(default_factory=list)
    relevant_lines: int = 0
    covered_lines: int = 0

    @property
    def missing_line_count(self) -> int:
        return sum(len(batch) for batch in self.missing_line_batches)


class ExclusionReason(str, Enum):
    NO_COVERAGE_ENTRY = "no_coverage_entry"
    NO_RELEVANT_LINES = "no_relevant_lines"


@dataclass(slots=True, frozen=True)
class Exclusion:
    filename: str
    reason: ExclusionReason

    @property
    def description(self) -> str:
        if self.reason is ExclusionReason.NO_COVERAGE_ENTRY:
            return "no matching coverage entry"
        return "no executable added lines"


@dataclass(slots=True)
class DeltaResult:
    per_file: List[FileResult]
    delta: float
    total_coverage: float
    minimum: float
    passes: bool
    excluded: List[Exclusion] = field(default_factory=list)

    @property
    def conclusion(self) -> str:
        return "success" if self.passes else "failure"
