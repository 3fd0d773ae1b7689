"""Root conftest.py for test configuration.

Ensures the local delta_coverage package takes priority over any installed one
and that settings never leak between tests.
"""

import sys
from pathlib import Path

import pytest

_root_dir = Path(__file__).parent.parent
if str(_root_dir) not in sys.path:
    sys.path.insert(0, str(_root_dir))

from delta_coverage.config import reset_settings_cache  # noqa: E402

_SETTINGS_ENV = (
    "GITHUB_API_BASE_URL",
    "GITHUB_APP_ID",
    "GITHUB_PRIVATE_KEY",
    "GITHUB_APP_INSTALLATION_ID",
    "GITHUB_TOKEN",
    "CHECKS_SHARED_SECRET",
    "DELTA_MINIMUM",
    "GITHUB_REPOSITORY",
    "GITHUB_SHA",
    "ghprbActualCommit",
    "BUILD_URL",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch):
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


def _make_resultset(files: dict, suite: str = "RSpec") -> dict:
    return {suite: {"coverage": {path: {"lines": lines} for path, lines in files.items()}, "timestamp": 1700000000}}


@pytest.fixture
def make_resultset():
    """Build a SimpleCov result set document from ``{path: lines}``."""

    return _make_resultset


@pytest.fixture
def sample_diff() -> str:
    return (
        "diff --git a/lib/a.rb b/lib/a.rb\n"
        "index 3b18e51..a9c7a1f 100644\n"
        "--- a/lib/a.rb\n"
        "+++ b/lib/a.rb\n"
        "@@ -2,0 +3,3 @@ class A\n"
        "+  def added\n"
        "+    call\n"
        "+  end\n"
    )
