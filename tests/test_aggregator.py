"""Tests for services/aggregator.py."""

from __future__ import annotations

import pytest

from delta_coverage.errors import EmptyResultError
from delta_coverage.models.delta import Exclusion, ExclusionReason, FileResult
from delta_coverage.services.aggregator import DeltaAggregator


class TestAggregate:
    def test_unweighted_mean(self) -> None:
        results = [
            FileResult(filename="small.rb", coverage_percent=0.0, missing_line_batches=[[1]], relevant_lines=1),
            FileResult(filename="big.rb", coverage_percent=100.0, relevant_lines=100, covered_lines=100),
        ]

        delta = DeltaAggregator().aggregate(results, total_coverage=90.0, minimum=80)

        assert delta.delta == 50.0
        assert delta.total_coverage == 90.0
        assert delta.passes is False
        assert delta.conclusion == "failure"

    def test_threshold_is_inclusive(self) -> None:
        results = [FileResult(filename="a.rb", coverage_percent=80.0)]
        delta = DeltaAggregator().aggregate(results, total_coverage=0.0, minimum=80)
        assert delta.passes is True
        assert delta.conclusion == "success"

    def test_keeps_exclusions(self) -> None:
        excluded = [Exclusion(filename="README.md", reason=ExclusionReason.NO_COVERAGE_ENTRY)]
        delta = DeltaAggregator().aggregate(
            [FileResult(filename="a.rb", coverage_percent=100.0)],
            total_coverage=100.0,
            minimum=80,
            excluded=excluded,
        )
        assert delta.excluded == excluded

    def test_empty_results_are_fatal(self) -> None:
        with pytest.raises(EmptyResultError):
            DeltaAggregator().aggregate([], total_coverage=75.0, minimum=80)
