"""Tests for services/delta_processor.py."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from delta_coverage.config import RunConfig, Settings
from delta_coverage.errors import EmptyResultError, ParseError
from delta_coverage.github_client import GitHubAPIError
from delta_coverage.services.delta_processor import (
    DeltaProcessor,
    DeltaProcessorError,
    compute_delta,
    publish_check_run,
)
from delta_coverage.services.report_renderer import CheckRunReport


class TestComputeDelta:
    def test_end_to_end_scenario(self, sample_diff: str, make_resultset) -> None:
        coverage = make_resultset({"/home/ci/project/lib/a.rb": [5, 0, 3, 0, 1]})

        result = compute_delta(sample_diff, coverage, minimum=80)

        [file_result] = result.per_file
        assert file_result.filename == "lib/a.rb"
        assert file_result.coverage_percent == pytest.approx(66.67, abs=0.01)
        assert file_result.missing_line_batches == [[4]]
        assert result.delta == pytest.approx(66.67, abs=0.01)
        assert result.total_coverage == pytest.approx(60.0)
        assert result.passes is False

    def test_is_idempotent(self, sample_diff: str, make_resultset) -> None:
        coverage = make_resultset({"lib/a.rb": [5, 0, 3, 0, 1], "lib/b.rb": [None, 1]})
        assert compute_delta(sample_diff, coverage, 50) == compute_delta(sample_diff, coverage, 50)

    def test_unweighted_across_files(self, make_resultset) -> None:
        diff = (
            "diff --git a/one.rb b/one.rb\n@@ -0,0 +1 @@\n"
            "diff --git a/many.rb b/many.rb\n@@ -0,0 +1,100 @@\n"
        )
        coverage = make_resultset({"one.rb": [0], "many.rb": [1] * 100})
        assert compute_delta(diff, coverage, 80).delta == 50.0

    def test_non_executable_file_does_not_affect_delta(self, make_resultset) -> None:
        diff = (
            "diff --git a/a.rb b/a.rb\n@@ -0,0 +1,2 @@\n"
            "diff --git a/comments.rb b/comments.rb\n@@ -0,0 +1,2 @@\n"
        )
        coverage = make_resultset({"a.rb": [1, 1], "comments.rb": [None, None]})

        result = compute_delta(diff, coverage, 80)

        assert [f.filename for f in result.per_file] == ["a.rb"]
        assert result.delta == 100.0
        assert [e.filename for e in result.excluded] == ["comments.rb"]

    def test_nothing_to_measure(self, make_resultset) -> None:
        with pytest.raises(EmptyResultError):
            compute_delta("diff --git a/README.md b/README.md\n@@ -1 +1 @@\n", make_resultset({"a.rb": [1]}), 80)

    def test_malformed_diff(self, make_resultset) -> None:
        with pytest.raises(ParseError):
            compute_delta("@@ -1 +1 @@\n", make_resultset({"a.rb": [1]}), 80)


@pytest.fixture
def run_config(tmp_path: Path, sample_diff: str, make_resultset) -> RunConfig:
    diff_path = tmp_path / "diff.txt"
    diff_path.write_text(sample_diff)
    coverage_path = tmp_path / ".resultset.json"
    coverage_path.write_text(json.dumps(make_resultset({"/ci/lib/a.rb": [5, 0, 3, 0, 1]})))
    return RunConfig(
        repository="octo/widgets",
        sha="0123456789abcdef",
        coverage_path=coverage_path,
        diff_path=diff_path,
        minimum_delta=60,
        source_root=tmp_path,
    )


class TestDeltaProcessor:
    def test_compute_from_files(self, run_config: RunConfig) -> None:
        result = DeltaProcessor(run_config, Settings()).compute()
        assert result.passes is True
        assert result.minimum == 60

    def test_missing_input_is_wrapped(self, run_config: RunConfig, tmp_path: Path) -> None:
        config = RunConfig(
            repository=run_config.repository,
            sha=run_config.sha,
            coverage_path=tmp_path / "nope.json",
            diff_path=run_config.diff_path,
        )
        with pytest.raises(DeltaProcessorError) as excinfo:
            DeltaProcessor(config, Settings()).compute()
        assert excinfo.value.step == "compute_delta"

    @pytest.mark.asyncio
    async def test_dry_run_does_not_publish(self, run_config: RunConfig) -> None:
        result, report, check_run = await DeltaProcessor(run_config, Settings()).run(dry_run=True)
        assert check_run is None
        assert report.head_sha == run_config.sha
        assert report.conclusion == result.conclusion == "success"

    @pytest.mark.asyncio
    async def test_publish_without_credentials(self, run_config: RunConfig) -> None:
        processor = DeltaProcessor(run_config, Settings())
        report = processor.render(processor.compute())
        with pytest.raises(DeltaProcessorError) as excinfo:
            await processor.publish(report)
        assert excinfo.value.step == "load_configuration"

    @pytest.mark.asyncio
    async def test_publish_wraps_github_errors(self, run_config: RunConfig) -> None:
        processor = DeltaProcessor(run_config, Settings())
        report = processor.render(processor.compute())
        client = AsyncMock()
        client.create_check_run.side_effect = GitHubAPIError("boom", 403, {"message": "Forbidden"})

        with pytest.raises(DeltaProcessorError) as excinfo:
            await processor.publish(report, client=client)
        assert excinfo.value.step == "publish_check_run"
        client.aclose.assert_not_awaited()


class TestPublishCheckRun:
    @pytest.mark.asyncio
    async def test_sends_overflow_annotations_as_updates(self) -> None:
        report = CheckRunReport(
            head_sha="abc",
            conclusion="failure",
            completed_at="2024-05-01T12:30:00Z",
            title="t",
            summary="s",
            text="x",
            annotations=[{"path": "a.rb", "start_line": n, "end_line": n} for n in range(1, 121)],
        )
        client = AsyncMock()
        client.create_check_run.return_value = {"id": 42}

        check_run = await publish_check_run(client, "octo/widgets", report)

        assert check_run == {"id": 42}
        client.create_check_run.assert_awaited_once()
        assert client.update_check_run.await_count == 2
        first_update = client.update_check_run.await_args_list[0].kwargs
        assert first_update["check_run_id"] == 42
        assert first_update["full_name"] == "octo/widgets"
        assert first_update["payload"]["output"]["annotations"][0]["start_line"] == 51
