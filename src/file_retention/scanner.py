"""Select stale files for a retention rule."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from .failures import FailureContext, FailureRecord

if TYPE_CHECKING:
    from .rules import EffectiveRule


@dataclass(frozen=True)
class CandidateFile:
    """A file old enough to be deleted under its rule."""

    path: Path
    modified: datetime

    @property
    def parent(self) -> Path:
        return self.path.parent

    def __str__(self) -> str:
        return f"CandidateFile({self.path}, modified {self.modified:%Y-%m-%d %H:%M:%S})"


class ScanPass:
    """One lazy traversal of a rule's directory.

    Iterating yields CandidateFile objects in enumeration order. If a
    directory cannot be listed the traversal stops and ``failure`` holds a
    single UNREADABLE_DIRECTORY record for the whole rule.
    """

    def __init__(self, rule: EffectiveRule, cutoff: datetime, logger: logging.Logger) -> None:
        self.rule = rule
        self.cutoff = cutoff
        self.logger = logger
        self.failure: FailureRecord | None = None

    def __iter__(self) -> Iterator[CandidateFile]:
        self.failure = None
        try:
            yield from self._walk(self.rule.path)
        except OSError as e:
            directory = e.filename or self.rule.path
            self.logger.error("Cannot read directory %s: %s", directory, e.strerror or e)
            self.failure = FailureRecord(
                context=FailureContext.UNREADABLE_DIRECTORY,
                subject_path=str(directory),
                detail=e.strerror or str(e),
            )

    def _walk(self, directory: Path) -> Iterator[CandidateFile]:
        # Listed up front: candidates get deleted while the pass is still live
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)

        subdirectories: list[Path] = []

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                subdirectories.append(Path(entry.path))
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            if not self.rule.matches(entry.name):
                continue

            try:
                mtime = entry.stat(follow_symlinks=False).st_mtime
            except FileNotFoundError:
                self.logger.debug("File vanished before stat: %s", entry.path)
                continue

            modified = datetime.fromtimestamp(mtime, UTC)
            if modified < self.cutoff:
                yield CandidateFile(path=Path(entry.path), modified=modified)

        if self.rule.recursive:
            for subdirectory in subdirectories:
                yield from self._walk(subdirectory)


class RetentionScanner:
    """Walks rule directories and yields files older than the rule allows."""

    def __init__(self, logger: logging.Logger, now: datetime | None = None) -> None:
        """Initialize the scanner.

        Args:
            logger: Logger instance.
            now: Reference time for age checks. Defaults to the current time.

        """
        self.logger = logger
        self.now = now or datetime.now(UTC)

    def cutoff_for(self, rule: EffectiveRule) -> datetime:
        """Files modified strictly before this instant are stale.

        A tolerance reaching past the earliest representable date keeps
        every file.
        """
        try:
            return self.now - timedelta(days=rule.age_tolerance_days)
        except OverflowError:
            return datetime.min.replace(tzinfo=UTC)

    def scan(self, rule: EffectiveRule) -> ScanPass:
        """Start a traversal of ``rule.path``.

        Args:
            rule: Effective rule to apply.

        Returns:
            Iterable pass over the stale files.

        """
        return ScanPass(rule, self.cutoff_for(rule), self.logger)
