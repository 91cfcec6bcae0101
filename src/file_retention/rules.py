"""Load retention rules from CSV and resolve them into effective policies."""

from __future__ import annotations

import csv
import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path

from .failures import FailureContext, FailureRecord

MATCH_ALL = "*.*"
DEFAULT_AGE_TOLERANCE = 90

COLUMNS: dict[str, str] = {
    "cleanuppath": "cleanup_path",
    "fileextension": "file_extension",
    "agetolerance": "age_tolerance",
    "includesubfolders": "include_subfolders",
}


class RuleSourceError(Exception):
    """Raised when the rule file cannot be read at all."""


@dataclass(frozen=True)
class RawRule:
    """One row of the rule file, exactly as written."""

    cleanup_path: str = ""
    file_extension: str = ""
    age_tolerance: str = ""
    include_subfolders: str = ""
    line: int = 0

    def __str__(self) -> str:
        return f"rule #{self.line} ({self.cleanup_path or '<empty path>'})"


@dataclass(frozen=True)
class EffectiveRule:
    """Fully resolved retention policy for one directory."""

    path: Path
    extension_filter: str = MATCH_ALL
    age_tolerance_days: int = DEFAULT_AGE_TOLERANCE
    recursive: bool = False

    def matches(self, filename: str) -> bool:
        """Check a file name against the extension filter (case-insensitive)."""
        if self.extension_filter == MATCH_ALL:
            return True
        return fnmatchcase(filename.lower(), self.extension_filter.lower())

    def __str__(self) -> str:
        mode = "recursive" if self.recursive else "flat"
        return f"{self.path} [{self.extension_filter}, {self.age_tolerance_days}d, {mode}]"


@dataclass(frozen=True)
class InvalidConfig:
    """A rule field holds a value the engine refuses to guess about.

    Such rules are skipped and logged but never reported by mail.
    """

    field: str
    value: str

    def __str__(self) -> str:
        return f"unknown {self.field} value {self.value!r}"


def load_rules(rules_file: Path) -> list[RawRule]:
    """Read all rules from a CSV file.

    Header names are matched ignoring case, surrounding whitespace and a
    UTF-8 byte order mark. Missing columns and short rows become empty strings.

    Args:
        rules_file: Path to the CSV file.

    Returns:
        Rules in file order.

    Raises:
        RuleSourceError: If the file cannot be read or has no CleanupPath column.

    """
    try:
        with rules_file.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f, skipinitialspace=True)
            fieldnames = reader.fieldnames or []
            mapping = {
                name: COLUMNS[key]
                for name in fieldnames
                if (key := name.strip().lower()) in COLUMNS
            }
            if "cleanup_path" not in mapping.values():
                raise RuleSourceError(f"{rules_file}: missing CleanupPath column")

            rules: list[RawRule] = []
            for row in reader:
                values = {
                    attr: (row.get(name) or "").strip()
                    for name, attr in mapping.items()
                }
                rules.append(RawRule(line=reader.line_num, **values))
    except (OSError, UnicodeDecodeError, csv.Error) as e:
        raise RuleSourceError(f"Cannot read rule file {rules_file}: {e}") from e

    return rules


def parse_recursion(value: str) -> bool | None:
    """Parse the IncludeSubFolders flag.

    Returns:
        True for "1", False for "0" or empty, None for anything else.

    """
    value = value.strip()
    if value in ("", "0"):
        return False
    if value == "1":
        return True
    return None


def parse_age_tolerance(value: str, default: int = DEFAULT_AGE_TOLERANCE) -> int | None:
    """Parse AgeTolerance in days; None unless it is plain ASCII decimal digits."""
    value = value.strip()
    if not value:
        return default
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def extension_to_glob(extension: str) -> str:
    """Turn ``log``, ``.log`` or ``*.log`` into the glob ``*.log``."""
    extension = extension.strip().lstrip("*").lstrip(".")
    if not extension or extension == "*":
        return MATCH_ALL
    return f"*.{extension}"


class RuleNormalizer:
    """Validates raw rules and fills in defaults."""

    def __init__(self, default_age_tolerance: int = DEFAULT_AGE_TOLERANCE) -> None:
        self.default_age_tolerance = default_age_tolerance

    def normalize(self, raw: RawRule) -> EffectiveRule | FailureRecord | InvalidConfig:
        """Resolve a raw rule.

        Args:
            raw: Rule as read from the rule file.

        Returns:
            EffectiveRule when the rule is usable, FailureRecord for a missing
            or invalid path, InvalidConfig for an unknown age or recursion value.

        """
        cleanup_path = raw.cleanup_path.strip()
        if not cleanup_path:
            return FailureRecord(
                context=FailureContext.EMPTY_PATH,
                subject_path=f"rule #{raw.line}",
                detail="CleanupPath is empty",
            )

        path = Path(os.path.expanduser(cleanup_path))
        if not path.is_dir() or not os.access(path, os.R_OK | os.X_OK):
            return FailureRecord(
                context=FailureContext.INVALID_PATH,
                subject_path=cleanup_path,
                detail="Path does not exist or is not an accessible directory",
            )

        age = parse_age_tolerance(raw.age_tolerance, self.default_age_tolerance)
        if age is None:
            return InvalidConfig(field="AgeTolerance", value=raw.age_tolerance)

        recursive = parse_recursion(raw.include_subfolders)
        if recursive is None:
            return InvalidConfig(field="IncludeSubFolders", value=raw.include_subfolders)

        return EffectiveRule(
            path=path.resolve(),
            extension_filter=extension_to_glob(raw.file_extension),
            age_tolerance_days=age,
            recursive=recursive,
        )
