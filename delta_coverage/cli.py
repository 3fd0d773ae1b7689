"""Command line entry point: compute delta coverage and post it as a check run."""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Sequence

from delta_coverage.config import (
    DEFAULT_COVERAGE_PATH,
    DEFAULT_DIFF_PATH,
    RunConfig,
    SettingsError,
    get_settings,
)
from delta_coverage.logger import get_logger, log_failure
from delta_coverage.services.delta_processor import DeltaProcessor, DeltaProcessorError

logger = get_logger()

EXIT_OK = 0
EXIT_THRESHOLD_FAILED = 1
EXIT_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="delta-coverage",
        description="Report test coverage of added lines as a GitHub check run",
    )
    parser.add_argument("--repository", default=None, help="Repository as owner/name (default: $GITHUB_REPOSITORY)")
    parser.add_argument(
        "--sha",
        default=None,
        help="Commit to attach the check run to (default: $ghprbActualCommit or $GITHUB_SHA)",
    )
    parser.add_argument("--coverage-path", "--coverage_path", default=DEFAULT_COVERAGE_PATH, help="Coverage result set JSON")
    parser.add_argument("--diff-path", default=DEFAULT_DIFF_PATH, help="Unified diff file to measure")
    parser.add_argument("--base-ref", default=None, help="Run 'git diff <base-ref>..' instead of reading --diff-path")
    parser.add_argument(
        "--minimum-delta",
        "--minimum_delta",
        type=float,
        default=None,
        help="Minimum delta coverage percentage for success (default: $DELTA_MINIMUM or 80)",
    )
    parser.add_argument("--source-root", default=".", help="Directory the diff paths are relative to")
    parser.add_argument("--details-url", default=None, help="Link shown in the check run summary")
    parser.add_argument("--dry-run", action="store_true", help="Print the check run payload instead of posting it")
    parser.add_argument(
        "--fail-on-threshold",
        action="store_true",
        help="Exit with status 1 when delta coverage is below the minimum",
    )
    return parser


def build_run_config(args: argparse.Namespace) -> RunConfig:
    settings = get_settings()
    repository = args.repository or os.getenv("GITHUB_REPOSITORY") or ""
    sha = args.sha or os.getenv("ghprbActualCommit") or os.getenv("GITHUB_SHA") or ""
    minimum = args.minimum_delta if args.minimum_delta is not None else settings.minimum_delta
    return RunConfig(
        repository=repository,
        sha=sha,
        coverage_path=Path(args.coverage_path),
        diff_path=Path(args.diff_path),
        base_ref=args.base_ref,
        minimum_delta=minimum,
        source_root=Path(args.source_root),
        details_url=args.details_url or os.getenv("BUILD_URL") or None,
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_run_config(args)
        processor = DeltaProcessor(config, get_settings())
        result, report, _ = asyncio.run(processor.run(dry_run=args.dry_run))
    except SettingsError as exc:
        log_failure(logger, "Invalid configuration", exc)
        return EXIT_ERROR
    except DeltaProcessorError as exc:
        log_failure(logger, f"Delta coverage failed during {exc.step}", exc)
        return EXIT_ERROR

    if args.dry_run:
        json.dump(report.to_dict(), sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")

    if args.fail_on_threshold and not result.passes:
        return EXIT_THRESHOLD_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
