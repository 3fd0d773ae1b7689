"""Application configuration helpers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Final

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_MINIMUM_DELTA: Final[float] = 80.0
DEFAULT_COVERAGE_PATH: Final[str] = "coverage/.resultset.json"
DEFAULT_DIFF_PATH: Final[str] = "coverage/diff.txt"
_REPOSITORY_RE = re.compile(r"^[\w.-]+/[\w.-]+$")


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


@dataclass(frozen=True)
class GitHubCredentials:
    app_id: int | None = None
    private_key_pem: str | None = None
    installation_id: int | None = None
    token: str | None = None

    @property
    def uses_app(self) -> bool:
        return self.token is None


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    github_api_base_url: AnyHttpUrl = "https://api.github.com"
    github_app_id: int | None = None
    github_private_key_pem: str | None = None
    github_installation_id: int | None = None
    github_token: str | None = None
    checks_shared_secret: str | None = None
    minimum_delta: float = Field(default=DEFAULT_MINIMUM_DELTA, ge=0, le=100)

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.github_api_base_url).rstrip("/")

    def require_github_credentials(self) -> GitHubCredentials:
        """Return App credentials, or a plain token when no App is configured."""

        app_values = (self.github_app_id, self.github_private_key_pem, self.github_installation_id)
        if self.github_token and not any(app_values):
            return GitHubCredentials(token=self.github_token)

        missing = []
        if self.github_app_id is None:
            missing.append("GITHUB_APP_ID")
        if not self.github_private_key_pem:
            missing.append("GITHUB_PRIVATE_KEY")
        if self.github_installation_id is None:
            missing.append("GITHUB_APP_INSTALLATION_ID")

        if missing:
            missing_vars = ", ".join(missing)
            raise SettingsError(
                "GitHub access is not configured. Set GITHUB_TOKEN or the missing environment variables: "
                f"{missing_vars}."
            )

        return GitHubCredentials(
            app_id=int(self.github_app_id),
            # Normalize private key: handle escaped newlines from environment variables
            private_key_pem=self.github_private_key_pem.replace("\\n", "\n"),
            installation_id=int(self.github_installation_id),
        )


@dataclass(frozen=True)
class RunConfig:
    """Immutable options for one delta coverage run."""

    repository: str
    sha: str
    coverage_path: Path = Path(DEFAULT_COVERAGE_PATH)
    diff_path: Path = Path(DEFAULT_DIFF_PATH)
    base_ref: str | None = None
    minimum_delta: float = DEFAULT_MINIMUM_DELTA
    source_root: Path = Path(".")
    details_url: str | None = None

    def __post_init__(self) -> None:
        if not _REPOSITORY_RE.match(self.repository or ""):
            raise SettingsError(f"Repository '{self.repository}' must look like 'owner/name'.")
        if not self.sha:
            raise SettingsError("A commit SHA is required.")
        if not 0 <= self.minimum_delta <= 100:
            raise SettingsError(f"Minimum delta {self.minimum_delta} must be between 0 and 100.")


def _parse_optional_int(name: str, raw_value: str | None) -> int | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"Invalid value for {name}. It must be an integer.") from exc


def _build_settings() -> Settings:
    github_api_base_url = os.getenv("GITHUB_API_BASE_URL")
    github_app_id = _parse_optional_int("GITHUB_APP_ID", os.getenv("GITHUB_APP_ID"))
    installation_id = _parse_optional_int(
        "GITHUB_APP_INSTALLATION_ID", os.getenv("GITHUB_APP_INSTALLATION_ID")
    )
    minimum_delta = os.getenv("DELTA_MINIMUM")

    try:
        return Settings(
            github_api_base_url=github_api_base_url or "https://api.github.com",
            github_app_id=github_app_id,
            github_private_key_pem=os.getenv("GITHUB_PRIVATE_KEY") or None,
            github_installation_id=installation_id,
            github_token=os.getenv("GITHUB_TOKEN") or None,
            checks_shared_secret=os.getenv("CHECKS_SHARED_SECRET") or None,
            minimum_delta=minimum_delta if minimum_delta else DEFAULT_MINIMUM_DELTA,
        )
    except ValidationError as exc:
        raise SettingsError("Invalid application configuration.") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return _build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()
