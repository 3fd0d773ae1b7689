"""Render delta coverage results as a GitHub check run."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from delta_coverage.logger import get_logger
from delta_coverage.models.delta import DeltaResult, FileResult

logger = get_logger()

CHECK_NAME = "Delta Coverage"
MAX_ANNOTATIONS_PER_REQUEST = 50
_FENCE_LANGUAGES = {
    ".rb": "ruby",
    ".rake": "ruby",
    ".py": "python",
    ".js": "javascript",
    ".ts": "typescript",
    ".go": "go",
}


def format_percent(value: float) -> str:
    return f"{round(value, 2)}%"


def _format_minimum(value: float) -> str:
    return f"{value:g}%"


@dataclass(slots=True)
class CheckRunReport:
    head_sha: str
    conclusion: str
    completed_at: str
    title: str
    summary: str
    text: str
    annotations: List[Dict[str, Any]] = field(default_factory=list)
    details_url: str | None = None
    name: str = CHECK_NAME

    def output(self, annotations: List[Dict[str, Any]] | None = None) -> Dict[str, Any]:
        output: Dict[str, Any] = {"title": self.title, "summary": self.summary, "text": self.text}
        if annotations:
            output["annotations"] = annotations
        return output

    def annotation_chunks(self) -> List[List[Dict[str, Any]]]:
        return [
            self.annotations[index:index + MAX_ANNOTATIONS_PER_REQUEST]
            for index in range(0, len(self.annotations), MAX_ANNOTATIONS_PER_REQUEST)
        ]

    def create_payload(self) -> Dict[str, Any]:
        """Body for the create call, carrying at most the first chunk of annotations."""

        chunks = self.annotation_chunks()
        payload: Dict[str, Any] = {
            "name": self.name,
            "head_sha": self.head_sha,
            "status": "completed",
            "completed_at": self.completed_at,
            "conclusion": self.conclusion,
            "output": self.output(chunks[0] if chunks else None),
        }
        if self.details_url:
            payload["details_url"] = self.details_url
        return payload

    def update_payloads(self) -> List[Dict[str, Any]]:
        """Bodies for follow-up update calls carrying the remaining annotations."""

        return [{"output": self.output(chunk)} for chunk in self.annotation_chunks()[1:]]

    def to_dict(self) -> Dict[str, Any]:
        payload = self.create_payload()
        payload["output"] = self.output(self.annotations)
        return payload


class ReportRenderer:
    def __init__(self, source_root: str | Path | None = ".") -> None:
        """Snippets are read below ``source_root``; ``None`` disables them."""

        self._source_root = Path(source_root).resolve() if source_root is not None else None
        self._file_lines: Dict[str, List[str] | None] = {}

    def render(
        self,
        result: DeltaResult,
        *,
        head_sha: str,
        details_url: str | None = None,
        completed_at: datetime | None = None,
    ) -> CheckRunReport:
        completed = (completed_at or datetime.now(timezone.utc)).astimezone(timezone.utc)
        return CheckRunReport(
            head_sha=head_sha,
            conclusion=result.conclusion,
            completed_at=completed.strftime("%Y-%m-%dT%H:%M:%SZ"),
            title=f"Branch coverage: {format_percent(result.delta)}",
            summary=self.build_summary(result, details_url),
            text=self.build_text(result),
            annotations=self.build_annotations(result),
            details_url=details_url,
        )

    @staticmethod
    def build_summary(result: DeltaResult, details_url: str | None = None) -> str:
        lines = []
        if details_url:
            lines.append(f"[Build details]({details_url})")
        lines.append(f"Total coverage: {format_percent(result.total_coverage)}")
        lines.append(f"Branch coverage must be ≥ {_format_minimum(result.minimum)}")
        return "\n".join(lines)

    def build_text(self, result: DeltaResult) -> str:
        parts = []
        for file_result in result.per_file:
            parts.append(f"### {format_percent(file_result.coverage_percent)} - {file_result.filename}\n")
            parts.append(
                "\n".join(self.missing_lines_to_md(file_result, batch) for batch in file_result.missing_line_batches)
            )

        if result.excluded:
            parts.append("\n#### Not measured\n|File|Reason|\n|---|---|\n")
            parts.extend(f"|{exclusion.filename}|{exclusion.description}|\n" for exclusion in result.excluded)
        return "".join(parts)

    def missing_lines_to_md(self, file_result: FileResult, batch: List[int]) -> str:
        language = _FENCE_LANGUAGES.get(Path(file_result.filename).suffix, "")
        md = f"Missing lines\n```{language}\n"
        content = self._read_lines(file_result.filename)
        first, last = batch[0], batch[-1]
        if content is None:
            md += "".join(f"{line_number}\n" for line_number in batch)
        else:
            for line_number in range(first, last + 1):
                source = content[line_number - 1] if line_number <= len(content) else ""
                md += f"{line_number} {source}\n"
        md += "```\n"
        return md

    @staticmethod
    def build_annotations(result: DeltaResult) -> List[Dict[str, Any]]:
        return [
            {
                "path": file_result.filename,
                "start_line": batch[0],
                "end_line": batch[-1],
                "annotation_level": "warning",
                "message": f"Change not tested. Lines: {', '.join(str(line) for line in batch)}",
                "title": CHECK_NAME,
            }
            for file_result in result.per_file
            for batch in file_result.missing_line_batches
            if batch
        ]

    def _read_lines(self, filename: str) -> List[str] | None:
        if self._source_root is None:
            return None
        if filename not in self._file_lines:
            path = (self._source_root / filename).resolve()
            if not path.is_relative_to(self._source_root):
                logger.warning(f"Refusing snippet for {filename}: outside {self._source_root}")
                self._file_lines[filename] = None
                return None
            try:
                self._file_lines[filename] = path.read_text(encoding="utf-8").splitlines()
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug(f"Source for {filename} not available for snippets: {exc}")
                self._file_lines[filename] = None
        return self._file_lines[filename]
