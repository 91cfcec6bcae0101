"""Tests for single-file deletion."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from file_retention.cleaner import DeletionExecutor
from file_retention.failures import FailureContext
from file_retention.scanner import CandidateFile


@pytest.fixture
def logger() -> logging.Logger:
    """Create a test logger."""
    return logging.getLogger("test-cleaner")


@pytest.fixture
def executor(logger: logging.Logger) -> DeletionExecutor:
    """Create a deletion executor."""
    return DeletionExecutor(logger)


def _candidate(path: Path) -> CandidateFile:
    """Create a ``CandidateFile`` object for testing."""
    return CandidateFile(path=path, modified=datetime(2020, 1, 1, tzinfo=UTC))


class TestDelete:
    """Tests for DeletionExecutor.delete."""

    def test_delete_success(self, executor: DeletionExecutor, tmp_path: Path) -> None:
        """Test that a file is removed and no failure is returned."""
        path = tmp_path / "old.log"
        path.write_text("content")

        assert executor.delete(_candidate(path)) is None
        assert not path.exists()

    def test_delete_logs_success(
        self, executor: DeletionExecutor, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that a deletion is logged at info level."""
        path = tmp_path / "old.log"
        path.write_text("content")

        with caplog.at_level(logging.INFO, logger="test-cleaner"):
            executor.delete(_candidate(path))

        assert "Deleted" in caplog.text
        assert str(path) in caplog.text

    def test_delete_vanished_file(self, executor: DeletionExecutor, tmp_path: Path) -> None:
        """Test that a missing file becomes a DELETE_FAILED record."""
        path = tmp_path / "gone.log"

        failure = executor.delete(_candidate(path))

        assert failure is not None
        assert failure.context is FailureContext.DELETE_FAILED
        assert failure.subject_path == str(path)
        assert "no longer exists" in failure.detail.lower()

    def test_delete_permission_denied(self, executor: DeletionExecutor, tmp_path: Path) -> None:
        """Test that a permission error carries the system message."""
        path = tmp_path / "locked.log"
        path.write_text("content")

        with patch.object(Path, "unlink", side_effect=PermissionError(13, "Permission denied", str(path))):
            failure = executor.delete(_candidate(path))

        assert failure is not None
        assert failure.context is FailureContext.DELETE_FAILED
        assert failure.detail == "Permission denied: Permission denied"
        assert path.exists()

    def test_delete_generic_os_error(self, executor: DeletionExecutor, tmp_path: Path) -> None:
        """Test that other OS errors are captured too."""
        path = tmp_path / "busy.log"
        path.write_text("content")

        with patch.object(Path, "unlink", side_effect=OSError(16, "Device or resource busy")):
            failure = executor.delete(_candidate(path))

        assert failure is not None
        assert failure.detail == "Device or resource busy"

    def test_directory_cannot_be_deleted(self, executor: DeletionExecutor, tmp_path: Path) -> None:
        """Test that unlink on a directory fails without raising."""
        directory = tmp_path / "dir"
        directory.mkdir()

        failure = executor.delete(_candidate(directory))

        assert failure is not None
        assert directory.exists()

    def test_failure_is_logged_as_error(
        self, executor: DeletionExecutor, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that failures are logged immediately."""
        with caplog.at_level(logging.ERROR, logger="test-cleaner"):
            executor.delete(_candidate(tmp_path / "gone.log"))

        assert any(r.levelno == logging.ERROR for r in caplog.records)
