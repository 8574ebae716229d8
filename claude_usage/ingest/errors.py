"""
Errors raised while ingesting usage logs.

None of these abort a run: each is recovered where it is caught, at the
scope it names (root, file or line).
"""

from typing import Sequence


class IngestionError(Exception):
    """Base class for recoverable ingestion failures."""


class RootScanError(IngestionError):
    """A configured root directory cannot be listed."""
    def __init__(self, root: str, reason: str):
        super().__init__(f"Cannot scan {root}: {reason}")
        self.root = root


class FileIngestError(IngestionError):
    """A single log file could not be consumed."""
    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause


class FileOpenError(FileIngestError):
    """A log file cannot be opened."""


class FileReadError(FileIngestError):
    """A log file failed part-way through reading."""


class LineParseError(IngestionError):
    """A line is not a JSON object."""
    def __init__(self, line_number: int, reason: str):
        super().__init__(f"line {line_number}: {reason}")
        self.line_number = line_number


class SchemaValidationError(IngestionError):
    """A parsed record failed required-field or type checks."""
    def __init__(self, violations: Sequence):
        self.violations = tuple(violations)
        super().__init__("; ".join(str(v) for v in self.violations))
