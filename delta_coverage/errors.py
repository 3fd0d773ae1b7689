"""Error types raised while computing delta coverage."""

from __future__ import annotations


class DeltaCoverageError(RuntimeError):
    """Base class for failures of the delta coverage computation."""

    def __init__(self, message: str, *, filename: str | None = None, line: int | None = None):
        super().__init__(message)
        self.filename = filename
        self.line = line

    def __str__(self) -> str:
        message = super().__str__()
        location = []
        if self.filename:
            location.append(self.filename)
        if self.line is not None:
            location.append(f"line {self.line}")
        if location:
            return f"{message} ({', '.join(location)})"
        return message


class ParseError(DeltaCoverageError):
    """Raised when diff text is malformed."""


class CoverageFormatError(ParseError):
    """Raised when a coverage document does not have the expected shape."""


class InputNotFoundError(DeltaCoverageError):
    """Raised when the diff or coverage input is missing or unreadable."""


class NoMatchError(DeltaCoverageError):
    """Raised on request when diff files had to be excluded from the result."""


class EmptyResultError(DeltaCoverageError):
    """Raised when no file is left to compute a delta from."""
