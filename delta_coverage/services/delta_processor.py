"""Run the delta coverage pipeline and publish its check run."""

from __future__ import annotations

from typing import Any, Dict, Mapping

from delta_coverage.config import RunConfig, Settings, SettingsError
from delta_coverage.errors import DeltaCoverageError
from delta_coverage.git_diff import compute_diff, read_diff_file
from delta_coverage.github_client import GitHubAPIError, GitHubChecksClient
from delta_coverage.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from delta_coverage.models.delta import DeltaResult
from delta_coverage.services.aggregator import DeltaAggregator
from delta_coverage.services.coverage_report import CoverageReport
from delta_coverage.services.diff_parser import parse_diff
from delta_coverage.services.matcher import FileCoverageMatcher
from delta_coverage.services.report_renderer import CheckRunReport, ReportRenderer

logger = get_logger()


class DeltaProcessorError(RuntimeError):
    """Raised when a pipeline step fails."""

    def __init__(self, message: str, step: str, original_error: Exception | None = None):
        super().__init__(message)
        self.step = step
        self.original_error = original_error


def compute_delta(
    diff_text: str,
    coverage: CoverageReport | Mapping[str, Any],
    minimum: float,
) -> DeltaResult:
    """Compute the delta coverage of ``diff_text`` against a coverage report.

    ``coverage`` is either a loaded ``CoverageReport`` or the decoded
    ``.resultset.json`` document. Raises ``ParseError``, ``CoverageFormatError``
    or ``EmptyResultError``.
    """

    report = coverage if isinstance(coverage, CoverageReport) else CoverageReport.load(coverage)
    records = parse_diff(diff_text)
    outcome = FileCoverageMatcher().match(records, report.line_hits)
    return DeltaAggregator().aggregate(
        outcome.results,
        report.total_coverage(),
        minimum,
        excluded=outcome.excluded,
    )


class DeltaProcessor:
    def __init__(self, config: RunConfig, settings: Settings) -> None:
        self._config = config
        self._settings = settings
        self._logger = log_with_context(logger, repository=config.repository, sha=config.sha[:8])

    def load_diff(self) -> str:
        if self._config.base_ref:
            return compute_diff(self._config.base_ref, cwd=self._config.source_root)
        return read_diff_file(self._config.diff_path)

    def compute(self) -> DeltaResult:
        try:
            with log_timing(self._logger, "load_inputs"):
                diff_text = self.load_diff()
                report = CoverageReport.from_path(self._config.coverage_path)
            with log_timing(self._logger, "compute_delta"):
                result = compute_delta(diff_text, report, self._config.minimum_delta)
        except DeltaCoverageError as exc:
            log_failure(logger, "Delta coverage computation failed", exc, repository=self._config.repository)
            raise DeltaProcessorError(str(exc), "compute_delta", exc) from exc

        self._logger.info(
            f"Delta coverage {result.delta:.2f}% (minimum {self._config.minimum_delta:g}%) "
            f"over {len(result.per_file)} file(s): {result.conclusion}"
        )
        return result

    def render(self, result: DeltaResult) -> CheckRunReport:
        renderer = ReportRenderer(self._config.source_root)
        return renderer.render(result, head_sha=self._config.sha, details_url=self._config.details_url)

    async def publish(self, report: CheckRunReport, client: GitHubChecksClient | None = None) -> Dict[str, Any]:
        owns_client = client is None
        if client is None:
            try:
                credentials = self._settings.require_github_credentials()
            except SettingsError as exc:
                log_failure(logger, "GitHub credentials missing", exc, repository=self._config.repository)
                raise DeltaProcessorError("Configuration incomplete", "load_configuration", exc) from exc
            client = GitHubChecksClient(
                base_url=self._settings.normalized_github_api_base_url,
                credentials=credentials,
            )

        try:
            with log_timing(self._logger, "publish_check_run"):
                check_run = await publish_check_run(client, self._config.repository, report)
        except GitHubAPIError as exc:
            log_failure(
                logger,
                f"Failed to post check run: {exc} (status={exc.status_code})",
                exc,
                repository=self._config.repository,
            )
            raise DeltaProcessorError("Failed to post check run", "publish_check_run", exc) from exc
        finally:
            if owns_client:
                await client.aclose()

        log_success(
            logger,
            f"Check run {check_run.get('id')} posted with conclusion {report.conclusion}",
            repository=self._config.repository,
        )
        return check_run

    async def run(self, *, dry_run: bool = False) -> tuple[DeltaResult, CheckRunReport, Dict[str, Any] | None]:
        result = self.compute()
        report = self.render(result)
        if dry_run:
            self._logger.info("Dry run: check run not posted")
            return result, report, None
        check_run = await self.publish(report)
        return result, report, check_run


async def publish_check_run(
    client: GitHubChecksClient,
    full_name: str,
    report: CheckRunReport,
) -> Dict[str, Any]:
    """Create the check run, then send annotations beyond the per-request limit as updates."""

    check_run = await client.create_check_run(full_name=full_name, payload=report.create_payload())
    updates = report.update_payloads()
    if updates:
        check_run_id = check_run.get("id")
        if check_run_id is None:
            raise GitHubAPIError("GitHub did not return a check run id.", 0, check_run)
        for payload in updates:
            await client.update_check_run(full_name=full_name, check_run_id=check_run_id, payload=payload)
        logger.debug(f"Sent {len(report.annotations)} annotations in {len(updates) + 1} request(s)")
    return check_run
