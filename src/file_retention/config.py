"""Configuration management for the file retention engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

PRIORITIES: tuple[str, ...] = ("high", "normal", "low")

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})


def parse_bool(value: Any, default: bool) -> bool:
    """Parse a boolean-ish config value.

    Args:
        value: Raw value from YAML (bool, int, str or None).
        default: Value returned when ``value`` is None.

    Returns:
        Parsed boolean. Unrecognised strings are False.

    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def _expand(path: str) -> Path:
    return Path(os.path.expanduser(path))


@dataclass
class NotificationConfig:
    """SMTP relay and message settings for the failure report."""

    enabled: bool = True
    smtp_host: str = "localhost"
    smtp_port: int = 25
    sender: str = "file-retention@localhost"
    recipients: list[str] = field(default_factory=list)
    subject: str = "File retention run reported failures"
    priority: str = "high"


@dataclass
class RetentionConfig:
    """Configuration for the file retention engine."""

    # CSV file with CleanupPath, FileExtension, AgeTolerance, IncludeSubFolders
    rules_file: Path = field(
        default_factory=lambda: Path.home() / ".config/file-retention/rules.csv"
    )

    # Name of the file whose presence protects a directory's own files
    exclusion_marker: str = "ignore"

    # Days applied when a rule leaves AgeTolerance empty
    default_age_tolerance: int = 90

    # Logging
    log_file: Path = field(
        default_factory=lambda: Path.home() / ".local/state/file-retention/file-retention.log"
    )
    log_level: str = "INFO"

    notification: NotificationConfig = field(default_factory=NotificationConfig)

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the default configuration file path."""
        return Path.home() / ".config/file-retention/config.yaml"

    @classmethod
    def load(cls, config_path: Path | None = None) -> RetentionConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to config file. Uses default if None.

        Returns:
            Loaded configuration.

        """
        if config_path is None:
            config_path = cls.get_config_path()

        if not config_path.exists():
            return cls()

        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{config_path}: expected a mapping at the top level, got {type(data).__name__}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> RetentionConfig:
        """Create config from dictionary."""
        config = cls()

        if "rules_file" in data:
            config.rules_file = _expand(data["rules_file"])
        if "exclusion_marker" in data:
            config.exclusion_marker = str(data["exclusion_marker"])
        if "default_age_tolerance" in data:
            config.default_age_tolerance = int(data["default_age_tolerance"])
            if config.default_age_tolerance < 0:
                raise ValueError(
                    f"default_age_tolerance must be >= 0, got {config.default_age_tolerance}"
                )

        # Logging
        if "logging" in data:
            logging_cfg = data["logging"] or {}
            if not isinstance(logging_cfg, dict):
                raise ValueError("logging: expected a mapping")
            if "file" in logging_cfg:
                config.log_file = _expand(logging_cfg["file"])
            if "level" in logging_cfg:
                config.log_level = str(logging_cfg["level"]).upper()

        # Notification
        if "notification" in data:
            notify = data["notification"] or {}
            if not isinstance(notify, dict):
                raise ValueError("notification: expected a mapping")
            target = config.notification
            target.enabled = parse_bool(notify.get("enabled"), target.enabled)
            if "smtp_host" in notify:
                target.smtp_host = str(notify["smtp_host"])
            if "smtp_port" in notify:
                target.smtp_port = int(notify["smtp_port"])
            if "sender" in notify:
                target.sender = str(notify["sender"])
            if "recipients" in notify:
                recipients = notify["recipients"] or []
                if isinstance(recipients, str):
                    recipients = recipients.replace(";", ",").split(",")
                target.recipients = [str(r).strip() for r in recipients if str(r).strip()]
            if "subject" in notify:
                target.subject = str(notify["subject"])
            if "priority" in notify:
                priority = str(notify["priority"]).lower()
                if priority not in PRIORITIES:
                    raise ValueError(
                        f"Invalid notification priority: {notify['priority']!r} "
                        f"(expected one of {', '.join(PRIORITIES)})"
                    )
                target.priority = priority

        return config

    def save(self, config_path: Path | None = None) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path to save config. Uses default if None.

        """
        if config_path is None:
            config_path = self.get_config_path()

        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "rules_file": str(self.rules_file),
            "exclusion_marker": self.exclusion_marker,
            "default_age_tolerance": self.default_age_tolerance,
            "logging": {
                "file": str(self.log_file),
                "level": self.log_level,
            },
            "notification": {
                "enabled": self.notification.enabled,
                "smtp_host": self.notification.smtp_host,
                "smtp_port": self.notification.smtp_port,
                "sender": self.notification.sender,
                "recipients": list(self.notification.recipients),
                "subject": self.notification.subject,
                "priority": self.notification.priority,
            },
        }

        with config_path.open("w", encoding="utf-8") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
