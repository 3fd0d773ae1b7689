"""HTTP ingestion of coverage results."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from delta_coverage.config import Settings
from delta_coverage.dependencies import checks_client_dependency, settings_dependency
from delta_coverage.errors import DeltaCoverageError
from delta_coverage.github_client import GitHubAPIError, GitHubChecksClient
from delta_coverage.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from delta_coverage.models.requests import ChecksRequest, ChecksResponse
from delta_coverage.services.delta_processor import compute_delta, publish_check_run
from delta_coverage.services.report_renderer import ReportRenderer
from delta_coverage.utils.security import verify_signature

router = APIRouter()

logger = get_logger()


@router.post("/checks", summary="Compute delta coverage and post a check run", response_model=ChecksResponse)
async def create_check(
    request: Request,
    settings: Settings = Depends(settings_dependency),
    client: GitHubChecksClient = Depends(checks_client_dependency),
) -> ChecksResponse:
    """Verify the request signature, compute delta coverage, and publish it to GitHub."""

    start_time = time.time()
    raw_body = await request.body()

    if settings.checks_shared_secret:
        signature = request.headers.get("X-Hub-Signature-256")
        if not verify_signature(settings.checks_shared_secret, raw_body, signature):
            log_failure(logger, "Request signature verification failed")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        body = ChecksRequest.model_validate_json(raw_body)
    except ValidationError as exc:
        log_failure(logger, "Invalid checks request payload", exc)
        raise HTTPException(
            status_code=422,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc

    ctx_logger = log_with_context(logger, repository=body.repository, sha=body.head_sha[:8])
    minimum = body.minimum_delta if body.minimum_delta is not None else settings.minimum_delta

    try:
        with log_timing(ctx_logger, "compute_delta"):
            result = compute_delta(body.diff, body.coverage, minimum)
    except DeltaCoverageError as exc:
        log_failure(logger, "Delta coverage computation failed", exc, repository=body.repository)
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    report = ReportRenderer(source_root=None).render(result, head_sha=body.head_sha, details_url=body.details_url)

    try:
        with log_timing(ctx_logger, "publish_check_run"):
            check_run = await publish_check_run(client, body.repository, report)
    except GitHubAPIError as exc:
        log_failure(logger, f"Failed to post check run (status={exc.status_code})", exc, repository=body.repository)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    processing_time = time.time() - start_time
    log_success(
        logger,
        f"Check run posted for {body.repository} with conclusion {result.conclusion} (processed in {processing_time:.3f}s)",
        repository=body.repository,
    )
    return ChecksResponse(
        conclusion=result.conclusion,
        delta=round(result.delta, 2),
        total_coverage=round(result.total_coverage, 2),
        check_run_id=check_run.get("id"),
    )
