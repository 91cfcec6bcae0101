"""Main entry point for the file retention engine."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import RetentionConfig
from .engine import RetentionEngine
from .failures import FailureRecord
from .rules import InvalidConfig, RuleNormalizer, RuleSourceError, load_rules
from .scanner import CandidateFile


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.

    """
    parser = argparse.ArgumentParser(
        prog="file-retention",
        description="Delete files older than per-directory retention rules",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--rules",
        "-r",
        type=Path,
        default=None,
        help="Path to rules CSV (overrides rules_file from the config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Apply all rules and delete stale files")
    subparsers.add_parser("scan", help="List files that would be deleted, without deleting")
    subparsers.add_parser("rules", help="Show how every rule is interpreted")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "--init",
        action="store_true",
        help="Create default configuration file",
    )
    config_parser.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )

    return parser.parse_args(argv)


def _build_engine(config: RetentionConfig, console: Console) -> RetentionEngine | None:
    try:
        return RetentionEngine(config)
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot set up logging: {e}[/red]")
        return None


def cmd_run(config: RetentionConfig, console: Console) -> int:
    """Execute run command."""
    engine = _build_engine(config, console)
    if engine is None:
        return 1

    try:
        stats = engine.run()
    except RuleSourceError as e:
        engine.logger.error("Aborting run: %s", e)
        console.print(f"[red]{e}[/red]")
        return 1

    console.print(
        f"Deleted {stats.deleted_count} file(s), {stats.failure_count} failure(s)"
    )
    return 0


def cmd_scan(config: RetentionConfig, console: Console) -> int:
    """Execute scan command."""
    engine = _build_engine(config, console)
    if engine is None:
        return 1

    try:
        candidates = engine.preview()
    except RuleSourceError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    if not candidates:
        console.print("[green]No stale files found[/green]")
    else:
        _print_candidates(console, candidates)

    for failure in engine.stats.failures:
        console.print(f"[red]{escape(str(failure))}[/red]")

    return 0


def _print_candidates(console: Console, candidates: list[CandidateFile]) -> None:
    table = Table(title=f"Found {len(candidates)} stale file(s)")
    table.add_column("File", style="red")
    table.add_column("Modified", style="dim")
    table.add_column("Location", style="dim")

    for candidate in candidates:
        table.add_row(
            candidate.path.name,
            candidate.modified.strftime("%Y-%m-%d %H:%M"),
            str(candidate.parent),
        )

    console.print(table)


def cmd_rules(config: RetentionConfig, console: Console) -> int:
    """Execute rules command."""
    try:
        rules = load_rules(config.rules_file)
    except RuleSourceError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    normalizer = RuleNormalizer(config.default_age_tolerance)

    table = Table(title=f"Rules from {config.rules_file}")
    table.add_column("#", style="dim")
    table.add_column("Path", style="cyan")
    table.add_column("Filter")
    table.add_column("Age (days)")
    table.add_column("Recursive")
    table.add_column("Status")

    for raw in rules:
        outcome = normalizer.normalize(raw)
        if isinstance(outcome, FailureRecord):
            table.add_row(str(raw.line), raw.cleanup_path, "", "", "", f"[red]{outcome.context.label}[/red]")
        elif isinstance(outcome, InvalidConfig):
            table.add_row(str(raw.line), raw.cleanup_path, "", "", "", f"[yellow]Skipped: {outcome}[/yellow]")
        else:
            table.add_row(
                str(raw.line),
                str(outcome.path),
                outcome.extension_filter,
                str(outcome.age_tolerance_days),
                "yes" if outcome.recursive else "no",
                "[green]OK[/green]",
            )

    console.print(table)
    return 0


def cmd_config(config: RetentionConfig, args: argparse.Namespace, console: Console) -> int:
    """Execute config command."""
    if args.init:
        config_path = args.config or RetentionConfig.get_config_path()
        if config_path.exists():
            console.print(f"[yellow]Config already exists: {config_path}[/yellow]")
            return 1
        config.save(config_path)
        console.print(f"[green]Created config: {config_path}[/green]")
        return 0

    if args.show:
        notify = config.notification
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Rules file", str(config.rules_file))
        table.add_row("Exclusion marker", config.exclusion_marker)
        table.add_row("Default age tolerance", f"{config.default_age_tolerance} days")
        table.add_row("Log file", str(config.log_file))
        table.add_row("Log level", config.log_level)
        table.add_row("Notification enabled", str(notify.enabled))
        table.add_row("SMTP relay", f"{notify.smtp_host}:{notify.smtp_port}")
        table.add_row("Sender", notify.sender)
        table.add_row("Recipients", "\n".join(notify.recipients))
        table.add_row("Priority", notify.priority)

        console.print(table)
        return 0

    console.print("[yellow]Use --init or --show[/yellow]")
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code.

    """
    args = parse_args(argv)
    console = Console()

    try:
        config = RetentionConfig.load(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot load configuration: {e}[/red]")
        return 1

    if args.rules is not None:
        config.rules_file = args.rules

    # Default to run command
    command = args.command or "run"

    if command == "run":
        return cmd_run(config, console)
    elif command == "scan":
        return cmd_scan(config, console)
    elif command == "rules":
        return cmd_rules(config, console)
    elif command == "config":
        return cmd_config(config, args, console)
    else:
        print(f"Unknown command: {command}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
