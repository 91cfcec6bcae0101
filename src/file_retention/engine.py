"""Retention run: apply every rule, collect failures, report once."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

from .cleaner import DeletionExecutor
from .exclusions import ExclusionResolver, has_marker
from .failures import FailureRecord, RunStats
from .notifier import Notifier
from .rules import EffectiveRule, InvalidConfig, RawRule, RuleNormalizer, load_rules
from .scanner import CandidateFile, RetentionScanner

if TYPE_CHECKING:
    from .config import RetentionConfig

LOGGER_NAME = "file-retention"


def setup_logging(config: RetentionConfig) -> logging.Logger:
    """Set up the run logger with a Rich console handler and a log file.

    Args:
        config: Retention configuration.

    Returns:
        Configured logger instance.

    Raises:
        ValueError: If ``config.log_level`` is not a logging level name.

    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Invalid log_level: {config.log_level!r}")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    # Clear existing handlers to avoid duplicates if called twice
    if logger.handlers:
        logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    config.log_file.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    )
    logger.addHandler(file_handler)

    return logger


class RunState(str, Enum):
    """Lifecycle of a retention run."""

    IDLE = "idle"
    PROCESSING_RULE = "processing_rule"
    REPORTING = "reporting"
    DONE = "done"


class RetentionEngine:
    """Drives normalization, exclusion, scanning and deletion across all rules."""

    def __init__(
        self,
        config: RetentionConfig,
        logger: logging.Logger | None = None,
        notifier: Notifier | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Retention configuration.
            logger: Log sink. A console and file logger is set up if None.
            notifier: Failure report sender. Built from config if None.
            now: Reference time for age checks, fixed for the whole run.

        """
        self.config = config
        self.logger = logger or setup_logging(config)

        self.normalizer = RuleNormalizer(config.default_age_tolerance)
        self.resolver = ExclusionResolver(config.exclusion_marker)
        self.scanner = RetentionScanner(self.logger, now or datetime.now(UTC))
        self.executor = DeletionExecutor(self.logger)
        self.notifier = notifier or Notifier(config, self.logger)

        self.stats = RunStats()
        self.state = RunState.IDLE
        self.current_rule: int | None = None

    def load_rules(self) -> list[RawRule]:
        """Read the configured rule file.

        Raises:
            RuleSourceError: If the rule file cannot be loaded.

        """
        rules = load_rules(self.config.rules_file)
        self.logger.info("Loaded %d rule(s) from %s", len(rules), self.config.rules_file)
        return rules

    def _fail(self, failure: FailureRecord) -> None:
        self.logger.error("%s", failure)
        self.stats.record_failure(failure)

    def _plan_rule(self, raw: RawRule) -> tuple[EffectiveRule, frozenset[Path]] | None:
        """Normalize a rule and work out which directories it must leave alone.

        Returns:
            The effective rule and its exclusion set, or None to skip the rule.

        """
        outcome = self.normalizer.normalize(raw)

        if isinstance(outcome, FailureRecord):
            self._fail(outcome)
            return None

        if isinstance(outcome, InvalidConfig):
            self.logger.warning("Skipping %s: %s", raw, outcome)
            self.stats.rules_skipped += 1
            return None

        rule = outcome
        marker = self.config.exclusion_marker

        if not rule.recursive:
            if has_marker(rule.path, marker):
                self.logger.info("Skipping %s: exclusion marker '%s' present", rule.path, marker)
                self.stats.rules_skipped += 1
                return None
            return rule, frozenset()

        excluded = self.resolver.resolve(rule.path, marker)
        for directory in sorted(excluded):
            self.logger.info("Exclusion marker found, keeping files in %s", directory)
        return rule, excluded

    def _process_rule(self, raw: RawRule, *, dry_run: bool) -> list[CandidateFile]:
        """Apply one rule. Returns the candidates that were (or would be) deleted."""
        planned = self._plan_rule(raw)
        if planned is None:
            return []

        rule, excluded = planned
        self.logger.info("Processing %s", rule)
        self.stats.rules_processed += 1

        selected: list[CandidateFile] = []
        scan = self.scanner.scan(rule)

        for candidate in scan:
            if candidate.parent in excluded:
                self.logger.debug("Excluded by marker: %s", candidate.path)
                self.stats.files_excluded += 1
                continue

            selected.append(candidate)
            if dry_run:
                continue

            if failure := self.executor.delete(candidate):
                self.stats.record_failure(failure)
            else:
                self.stats.deleted_count += 1

        if scan.failure is not None:
            self.stats.record_failure(scan.failure)

        return selected

    def _process_rules(self, rules: list[RawRule], *, dry_run: bool) -> list[CandidateFile]:
        selected: list[CandidateFile] = []

        for index, raw in enumerate(rules):
            self.state = RunState.PROCESSING_RULE
            self.current_rule = index
            selected.extend(self._process_rule(raw, dry_run=dry_run))

        self.current_rule = None
        return selected

    def run(self, rules: list[RawRule] | None = None) -> RunStats:
        """Run a full retention pass and report failures.

        Args:
            rules: Rules to apply. Loaded from the rule file if None.

        Returns:
            Final statistics of the run.

        Raises:
            RuleSourceError: If rules were not given and the rule file cannot be loaded.

        """
        if rules is None:
            rules = self.load_rules()

        self.logger.info("Starting retention run with %d rule(s)", len(rules))
        self._process_rules(rules, dry_run=False)

        self.state = RunState.REPORTING
        self._report()
        self.state = RunState.DONE

        return self.stats

    def preview(self, rules: list[RawRule] | None = None) -> list[CandidateFile]:
        """List the files a run would delete without touching anything.

        Args:
            rules: Rules to apply. Loaded from the rule file if None.

        Returns:
            Candidates in processing order, exclusions already applied.

        """
        if rules is None:
            rules = self.load_rules()

        selected = self._process_rules(rules, dry_run=True)
        self.state = RunState.DONE
        return selected

    def _report(self) -> None:
        stats = self.stats
        summary = (
            f"deleted={stats.deleted_count}, failures={stats.failure_count}, "
            f"rules={stats.rules_processed}, skipped={stats.rules_skipped}, "
            f"excluded={stats.files_excluded}"
        )

        if not stats.needs_notification:
            self.logger.info("Retention run completed successfully: %s", summary)
            return

        self.logger.warning("Retention run completed with failures: %s", summary)
        self.notifier.send(stats)
