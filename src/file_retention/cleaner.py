"""Delete stale files one at a time."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .failures import FailureContext, FailureRecord

if TYPE_CHECKING:
    from .scanner import CandidateFile


class DeletionExecutor:
    """Removes candidate files, turning OS errors into failure records."""

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize the executor.

        Args:
            logger: Logger instance.

        """
        self.logger = logger

    def delete(self, candidate: CandidateFile) -> FailureRecord | None:
        """Delete a single file.

        A failure never propagates: the caller keeps going with the next file.

        Args:
            candidate: File selected by the scanner.

        Returns:
            None on success, a DELETE_FAILED record otherwise.

        """
        path = candidate.path

        try:
            path.unlink()
        except PermissionError as e:
            self.logger.error("Permission denied deleting %s: %s", path, e)
            return self._failure(candidate, f"Permission denied: {e.strerror or e}")
        except FileNotFoundError as e:
            self.logger.error("File vanished before deletion %s: %s", path, e)
            return self._failure(candidate, f"File no longer exists: {e.strerror or e}")
        except OSError as e:
            self.logger.error("Error deleting %s: %s", path, e)
            return self._failure(candidate, e.strerror or str(e))

        self.logger.info("Deleted %s (modified %s)", path, candidate.modified.strftime("%Y-%m-%d"))
        return None

    @staticmethod
    def _failure(candidate: CandidateFile, detail: str) -> FailureRecord:
        return FailureRecord(
            context=FailureContext.DELETE_FAILED,
            subject_path=str(candidate.path),
            detail=detail,
        )
