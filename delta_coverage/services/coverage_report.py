"""Load SimpleCov-style coverage result sets."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

from delta_coverage.errors import CoverageFormatError, InputNotFoundError
from delta_coverage.logger import get_logger
from delta_coverage.models.delta import CoverageEntry

logger = get_logger()


def _coerce_line_hits(filename: str, raw_lines: Any) -> List[int | None]:
    if not isinstance(raw_lines, list):
        raise CoverageFormatError("Coverage 'lines' must be a list.", filename=filename)

    hits: List[int | None] = []
    for index, value in enumerate(raw_lines, start=1):
        if value is None:
            hits.append(None)
            continue
        # bool is an int subclass but never a hit count
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise CoverageFormatError(
                f"Invalid hit count {value!r}; expected null or a non-negative integer.",
                filename=filename,
                line=index,
            )
        hits.append(value)
    return hits


class CoverageReport:
    """Per-file line hit counts from one coverage result set."""

    def __init__(self, entries: List[CoverageEntry], suite_name: str | None = None) -> None:
        self.entries = entries
        self.suite_name = suite_name

    @classmethod
    def load(cls, raw: Mapping[str, Any]) -> "CoverageReport":
        """Build a report from a decoded ``.resultset.json`` document.

        The document maps a suite name to ``{"coverage": {path: {"lines": [...]}}}``.
        Only the first suite is read. Older SimpleCov releases store the line
        array directly under the path; that shape is accepted too.
        """

        if not isinstance(raw, Mapping) or not raw:
            raise CoverageFormatError("Coverage document must be a non-empty JSON object.")

        suite_name, suite = next(iter(raw.items()))
        if not isinstance(suite, Mapping) or not isinstance(suite.get("coverage"), Mapping):
            raise CoverageFormatError(f"Coverage suite '{suite_name}' has no 'coverage' object.")

        entries: List[CoverageEntry] = []
        for filename, file_coverage in suite["coverage"].items():
            if isinstance(file_coverage, Mapping):
                if "lines" not in file_coverage:
                    raise CoverageFormatError("Coverage entry has no 'lines' key.", filename=filename)
                raw_lines = file_coverage["lines"]
            else:
                raw_lines = file_coverage
            entries.append(CoverageEntry(filename=filename, line_hits=_coerce_line_hits(filename, raw_lines)))

        if len(raw) > 1:
            logger.debug(f"Coverage document has {len(raw)} suites; using '{suite_name}'")
        logger.debug(f"Loaded coverage for {len(entries)} file(s) from suite '{suite_name}'")
        return cls(entries, suite_name=suite_name)

    @classmethod
    def from_path(cls, path: str | Path) -> "CoverageReport":
        coverage_path = Path(path)
        try:
            content = coverage_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InputNotFoundError(f"Coverage file not readable: {exc}", filename=str(coverage_path)) from exc

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as exc:
            raise CoverageFormatError(
                f"Coverage file is not valid JSON: {exc.msg}",
                filename=str(coverage_path),
                line=exc.lineno,
            ) from exc
        return cls.load(raw)

    @property
    def line_hits(self) -> Dict[str, List[int | None]]:
        return {entry.filename: entry.line_hits for entry in self.entries}

    def total_coverage(self) -> float:
        """Mean whole-file line coverage; files without executable lines are left out."""

        percentages = []
        for entry in self.entries:
            percent = entry.coverage_percent()
            if percent is None:
                logger.debug(f"Skipping {entry.filename} in total coverage: no executable lines")
                continue
            percentages.append(percent)

        if not percentages:
            logger.warning("Coverage report has no executable lines; total coverage is 0%")
            return 0.0
        return sum(percentages) / len(percentages)
