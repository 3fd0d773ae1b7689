"""FastAPI dependency factories."""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends, HTTPException

from delta_coverage.config import Settings, SettingsError, get_settings
from delta_coverage.github_client import GitHubChecksClient
from delta_coverage.logger import get_logger

logger = get_logger()


def settings_dependency() -> Settings:
    """Resolve application settings, surfacing configuration errors via HTTPException."""

    try:
        return get_settings()
    except SettingsError as exc:
        logger.error(f"Failed to load settings: {exc}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


async def checks_client_dependency(
    settings: Settings = Depends(settings_dependency),
) -> AsyncIterator[GitHubChecksClient]:
    """Provide a GitHub checks client for the duration of one request."""

    try:
        credentials = settings.require_github_credentials()
    except SettingsError as exc:
        logger.error(f"GitHub credentials missing: {exc}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    client = GitHubChecksClient(
        base_url=settings.normalized_github_api_base_url,
        credentials=credentials,
    )
    try:
        yield client
    finally:
        await client.aclose()
