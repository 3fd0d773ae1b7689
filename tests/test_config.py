"""Tests for config.py."""

from __future__ import annotations

from pathlib import Path

import pytest

from delta_coverage.config import (
    DEFAULT_MINIMUM_DELTA,
    RunConfig,
    Settings,
    SettingsError,
    get_settings,
)


class TestGetSettings:
    def test_defaults(self) -> None:
        settings = get_settings()
        assert settings.normalized_github_api_base_url == "https://api.github.com"
        assert settings.minimum_delta == DEFAULT_MINIMUM_DELTA
        assert settings.checks_shared_secret is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_API_BASE_URL", "https://ghe.example/api/v3/")
        monkeypatch.setenv("GITHUB_APP_ID", "12")
        monkeypatch.setenv("GITHUB_APP_INSTALLATION_ID", "34")
        monkeypatch.setenv("DELTA_MINIMUM", "65.5")

        settings = get_settings()

        assert settings.normalized_github_api_base_url == "https://ghe.example/api/v3"
        assert settings.github_app_id == 12
        assert settings.github_installation_id == 34
        assert settings.minimum_delta == 65.5

    def test_settings_are_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_invalid_app_id(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GITHUB_APP_ID", "abc")
        with pytest.raises(SettingsError, match="GITHUB_APP_ID"):
            get_settings()

    def test_invalid_minimum(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DELTA_MINIMUM", "lots")
        with pytest.raises(SettingsError):
            get_settings()

    @pytest.mark.parametrize("raw", ["150", "-5"])
    def test_minimum_out_of_range(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv("DELTA_MINIMUM", raw)
        with pytest.raises(SettingsError):
            get_settings()


class TestRequireGitHubCredentials:
    def test_token_only(self) -> None:
        credentials = Settings(github_token="ghp_x").require_github_credentials()
        assert credentials.token == "ghp_x"
        assert credentials.uses_app is False

    def test_app_credentials(self) -> None:
        settings = Settings(
            github_app_id=1,
            github_private_key_pem="-----BEGIN KEY-----\\nabc\\n-----END KEY-----",
            github_installation_id=2,
        )
        credentials = settings.require_github_credentials()
        assert credentials.uses_app is True
        assert credentials.private_key_pem == "-----BEGIN KEY-----\nabc\n-----END KEY-----"
        assert credentials.installation_id == 2

    def test_names_missing_variables(self) -> None:
        with pytest.raises(SettingsError) as excinfo:
            Settings(github_app_id=1).require_github_credentials()
        assert "GITHUB_PRIVATE_KEY" in str(excinfo.value)
        assert "GITHUB_APP_INSTALLATION_ID" in str(excinfo.value)
        assert "GITHUB_APP_ID," not in str(excinfo.value)


class TestRunConfig:
    def test_defaults(self) -> None:
        config = RunConfig(repository="octo/widgets", sha="abc")
        assert config.coverage_path == Path("coverage/.resultset.json")
        assert config.diff_path == Path("coverage/diff.txt")
        assert config.minimum_delta == 80.0

    def test_is_immutable(self) -> None:
        config = RunConfig(repository="octo/widgets", sha="abc")
        with pytest.raises(AttributeError):
            config.minimum_delta = 10  # type: ignore[misc]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"repository": "widgets", "sha": "abc"},
            {"repository": "octo/widgets", "sha": ""},
            {"repository": "octo/widgets", "sha": "abc", "minimum_delta": 101},
            {"repository": "octo/widgets", "sha": "abc", "minimum_delta": -1},
        ],
    )
    def test_rejects_invalid_values(self, kwargs) -> None:
        with pytest.raises(SettingsError):
            RunConfig(**kwargs)
