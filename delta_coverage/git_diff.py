"""Obtain the diff text to measure."""

from __future__ import annotations

import subprocess
from pathlib import Path

from delta_coverage.errors import InputNotFoundError
from delta_coverage.logger import get_logger

logger = get_logger()


def run_command(cmd: list[str], *, cwd: str | Path | None = None) -> str:
    """Execute a command and return its output."""
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=True, cwd=cwd)
        return result.stdout
    except subprocess.CalledProcessError as e:
        logger.error(f"Command failed: {' '.join(cmd)}")
        logger.error(f"stderr: {e.stderr}")
        raise


def compute_diff(base_ref: str, *, cwd: str | Path | None = None) -> str:
    """Diff the working tree head against ``base_ref`` with zero context lines."""

    logger.info(f"Computing diff against {base_ref}")
    try:
        diff = run_command(["git", "diff", f"{base_ref}..", "--no-color", "-U0"], cwd=cwd)
    except (subprocess.CalledProcessError, OSError) as exc:
        raise InputNotFoundError(f"Could not compute git diff against {base_ref}: {exc}") from exc

    if not diff.strip():
        logger.info("No changes detected in diff")
    else:
        logger.info(f"Diff computed: {len(diff)} bytes")
    return diff


def read_diff_file(diff_path: str | Path) -> str:
    """Read and return diff file content."""
    path = Path(diff_path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputNotFoundError(f"Diff file not readable: {exc}", filename=str(path)) from exc
