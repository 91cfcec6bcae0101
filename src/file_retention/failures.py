"""Failure records and run statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FailureContext(str, Enum):
    """Where in the run a failure happened."""

    EMPTY_PATH = "empty_path"
    INVALID_PATH = "invalid_path"
    UNREADABLE_DIRECTORY = "unreadable_directory"
    DELETE_FAILED = "delete_failed"

    @property
    def label(self) -> str:
        """Human-readable label used in log lines and the report."""
        return _LABELS[self]


_LABELS: dict[FailureContext, str] = {
    FailureContext.EMPTY_PATH: "Empty cleanup path",
    FailureContext.INVALID_PATH: "Invalid cleanup path",
    FailureContext.UNREADABLE_DIRECTORY: "Unreadable directory",
    FailureContext.DELETE_FAILED: "Delete failed",
}


@dataclass(frozen=True)
class FailureRecord:
    """Immutable record of one failure that belongs in the run report."""

    context: FailureContext
    subject_path: str
    detail: str

    def __str__(self) -> str:
        return f"{self.context.label}: {self.subject_path} ({self.detail})"


@dataclass
class RunStats:
    """Counters for a single retention run. Values only ever grow."""

    deleted_count: int = 0
    failures: list[FailureRecord] = field(default_factory=list)
    rules_processed: int = 0
    rules_skipped: int = 0
    files_excluded: int = 0

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def needs_notification(self) -> bool:
        """A report is mailed only when at least one failure was recorded."""
        return self.failure_count > 0

    def record_failure(self, failure: FailureRecord) -> None:
        self.failures.append(failure)
