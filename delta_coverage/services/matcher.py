"""Reconcile diff records with coverage entries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Sequence

from delta_coverage.errors import NoMatchError
from delta_coverage.logger import get_logger
from delta_coverage.models.delta import (
    CoverageEntry,
    Exclusion,
    ExclusionReason,
    FileDiffRecord,
    FileResult,
)

logger = get_logger()


def _path_segments(path: str) -> List[str]:
    return [segment for segment in path.replace("\\", "/").split("/") if segment and segment != "."]


def path_suffix_matches(coverage_filename: str, diff_filename: str) -> bool:
    """Return True when ``diff_filename`` names the trailing path segments of ``coverage_filename``."""

    diff_segments = _path_segments(diff_filename)
    if not diff_segments:
        return False
    coverage_segments = _path_segments(coverage_filename)
    if len(diff_segments) > len(coverage_segments):
        return False
    return coverage_segments[-len(diff_segments):] == diff_segments


@dataclass(slots=True)
class MatchOutcome:
    results: List[FileResult] = field(default_factory=list)
    excluded: List[Exclusion] = field(default_factory=list)

    def raise_for_exclusions(self) -> None:
        """Raise ``NoMatchError`` if any diff file was left out of ``results``."""

        if self.excluded:
            names = ", ".join(exclusion.filename for exclusion in self.excluded)
            raise NoMatchError(f"{len(self.excluded)} file(s) excluded from delta coverage: {names}")


class FileCoverageMatcher:
    """Compute per-file coverage of added lines."""

    def match(
        self,
        diffs: Iterable[FileDiffRecord],
        coverage: Mapping[str, Sequence[int | None]],
    ) -> MatchOutcome:
        entries = [CoverageEntry(filename=name, line_hits=list(hits)) for name, hits in coverage.items()]
        outcome = MatchOutcome()

        for record in diffs:
            entry = self._find_entry(record.target_filename, entries)
            if entry is None and record.new_filename:
                entry = self._find_entry(record.filename, entries)
            if entry is None:
                self._exclude(outcome, record.target_filename, ExclusionReason.NO_COVERAGE_ENTRY)
                continue

            result = self._reconcile(record, entry)
            if result is None:
                self._exclude(outcome, record.target_filename, ExclusionReason.NO_RELEVANT_LINES)
                continue
            outcome.results.append(result)

        logger.debug(f"Matched {len(outcome.results)} file(s), excluded {len(outcome.excluded)}")
        return outcome

    @staticmethod
    def _find_entry(diff_filename: str, entries: Sequence[CoverageEntry]) -> CoverageEntry | None:
        for entry in entries:
            if path_suffix_matches(entry.filename, diff_filename):
                return entry
        return None

    @staticmethod
    def _reconcile(record: FileDiffRecord, entry: CoverageEntry) -> FileResult | None:
        relevant_lines = record.added_line_count
        covered_lines = 0
        missing_line_batches: List[List[int]] = []

        for line_range in record.added_line_ranges:
            missing: List[int] = []
            for line_number in line_range:
                hits = entry.hits_for(line_number)
                if hits is None:
                    relevant_lines -= 1
                elif hits > 0:
                    covered_lines += 1
                else:
                    missing.append(line_number)
            if missing:
                missing_line_batches.append(missing)

        if relevant_lines == 0:
            return None

        return FileResult(
            filename=record.target_filename,
            coverage_percent=covered_lines / relevant_lines * 100,
            missing_line_batches=missing_line_batches,
            relevant_lines=relevant_lines,
            covered_lines=covered_lines,
        )

    @staticmethod
    def _exclude(outcome: MatchOutcome, filename: str, reason: ExclusionReason) -> None:
        exclusion = Exclusion(filename=filename, reason=reason)
        logger.warning(f"Excluding {filename} from delta coverage: {exclusion.description}")
        outcome.excluded.append(exclusion)
