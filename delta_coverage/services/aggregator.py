"""Fold per-file results into the overall delta verdict."""

from __future__ import annotations

from typing import Iterable, Sequence

from delta_coverage.errors import EmptyResultError
from delta_coverage.logger import get_logger
from delta_coverage.models.delta import DeltaResult, Exclusion, FileResult

logger = get_logger()


class DeltaAggregator:
    def aggregate(
        self,
        results: Sequence[FileResult],
        total_coverage: float,
        minimum: float,
        excluded: Iterable[Exclusion] = (),
    ) -> DeltaResult:
        """Average file percentages, unweighted by line count, and compare with ``minimum``."""

        if not results:
            raise EmptyResultError("No changed file has executable added lines with coverage data.")

        delta = sum(result.coverage_percent for result in results) / len(results)
        passes = delta >= minimum
        logger.debug(f"Delta coverage {delta:.2f}% over {len(results)} file(s), minimum {minimum}%")
        return DeltaResult(
            per_file=list(results),
            delta=delta,
            total_coverage=total_coverage,
            minimum=minimum,
            passes=passes,
            excluded=list(excluded),
        )
