"""Tests for the command line interface."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from file_retention.main import main, parse_args


def _make_file(path: Path, days_old: float) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("data")
    timestamp = (datetime.now(UTC) - timedelta(days=days_old)).timestamp()
    os.utime(path, (timestamp, timestamp))
    return path


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich tables from wrapping long temp paths."""
    monkeypatch.setenv("COLUMNS", "300")


@pytest.fixture
def data(tmp_path: Path) -> Path:
    """Create a directory with one stale and one fresh file."""
    directory = tmp_path / "data"
    _make_file(directory / "old.log", 400)
    _make_file(directory / "new.log", 1)
    return directory


@pytest.fixture
def config_path(tmp_path: Path, data: Path) -> Path:
    """Write a config and a rule file pointing at ``data``."""
    rules_file = tmp_path / "rules.csv"
    rules_file.write_text(
        "CleanupPath,FileExtension,AgeTolerance,IncludeSubFolders\n"
        f"{data},log,,0\n"
        ",,,\n"
        f"{data},,,7\n"
    )
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.dump(
            {
                "rules_file": str(rules_file),
                "logging": {"file": str(tmp_path / "logs" / "retention.log")},
                "notification": {"recipients": ["ops@example.com"]},
            }
        )
    )
    return path


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        """Test that no arguments means the run command with defaults."""
        args = parse_args([])

        assert args.command is None
        assert args.config is None
        assert args.rules is None

    def test_config_and_rules(self) -> None:
        """Test global options."""
        args = parse_args(["-c", "/etc/retention.yaml", "--rules", "/etc/rules.csv", "scan"])

        assert args.config == Path("/etc/retention.yaml")
        assert args.rules == Path("/etc/rules.csv")
        assert args.command == "scan"


class TestRunCommand:
    """Tests for the run command."""

    def test_run_deletes_and_exits_zero(self, config_path: Path, data: Path) -> None:
        """Test that a run with reported failures still exits 0."""
        with patch("file_retention.notifier.smtplib.SMTP") as smtp_cls:
            exit_code = main(["-c", str(config_path), "run"])

        assert exit_code == 0
        assert not (data / "old.log").exists()
        assert (data / "new.log").exists()
        # The empty-path rule triggers exactly one report
        smtp_cls.assert_called_once()

    def test_default_command_is_run(self, config_path: Path, data: Path) -> None:
        """Test that omitting the command runs the engine."""
        with patch("file_retention.notifier.smtplib.SMTP"):
            assert main(["-c", str(config_path)]) == 0

        assert not (data / "old.log").exists()

    def test_missing_rule_file_exits_nonzero(self, config_path: Path, tmp_path: Path) -> None:
        """Test that an unloadable rule source is the only fatal error."""
        exit_code = main(["-c", str(config_path), "-r", str(tmp_path / "missing.csv"), "run"])

        assert exit_code == 1

    def test_invalid_config_exits_nonzero(self, tmp_path: Path) -> None:
        """Test that a broken config file is reported."""
        path = tmp_path / "config.yaml"
        path.write_text("notification:\n  priority: urgent\n")

        assert main(["-c", str(path)]) == 1

    def test_scalar_config_exits_nonzero(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that a config file holding a bare scalar is reported, not raised."""
        path = tmp_path / "config.yaml"
        path.write_text("42\n")

        assert main(["-c", str(path)]) == 1
        assert "Cannot load configuration" in capsys.readouterr().out


class TestScanCommand:
    """Tests for the scan command."""

    def test_scan_lists_without_deleting(
        self, config_path: Path, data: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that scan reports stale files and leaves them in place."""
        with patch("file_retention.notifier.smtplib.SMTP") as smtp_cls:
            exit_code = main(["-c", str(config_path), "scan"])

        assert exit_code == 0
        assert (data / "old.log").exists()
        assert "old.log" in capsys.readouterr().out
        smtp_cls.assert_not_called()

    def test_scan_lists_broken_rules(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that rules with an empty or invalid path are shown by a dry run."""
        exit_code = main(["-c", str(config_path), "scan"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "Empty cleanup path: rule #3" in out

    def test_scan_lists_broken_rules_without_candidates(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that broken rules are shown even when nothing is stale."""
        rules_file = tmp_path / "rules.csv"
        rules_file.write_text(f"CleanupPath\n{tmp_path / 'missing'}\n")
        path = tmp_path / "config.yaml"
        path.write_text(yaml.dump({"logging": {"file": str(tmp_path / "retention.log")}}))

        exit_code = main(["-r", str(rules_file), "-c", str(path), "scan"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "No stale files found" in out
        assert "Invalid cleanup path" in out


class TestRulesCommand:
    """Tests for the rules command."""

    def test_rules_table(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that every rule's interpretation is shown."""
        exit_code = main(["-c", str(config_path), "rules"])
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "*.log" in out
        assert "Empty cleanup path" in out
        assert "IncludeSubFolders" in out


class TestConfigCommand:
    """Tests for the config command."""

    def test_init_creates_file(self, tmp_path: Path) -> None:
        """Test that --init writes a default config."""
        path = tmp_path / "new" / "config.yaml"

        assert main(["-c", str(path), "config", "--init"]) == 0
        assert path.exists()
        assert yaml.safe_load(path.read_text())["exclusion_marker"] == "ignore"

    def test_init_refuses_to_overwrite(self, config_path: Path) -> None:
        """Test that an existing config is left alone."""
        before = config_path.read_text()

        assert main(["-c", str(config_path), "config", "--init"]) == 1
        assert config_path.read_text() == before

    def test_show(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test that --show prints the settings."""
        assert main(["-c", str(config_path), "config", "--show"]) == 0
        assert "ops@example.com" in capsys.readouterr().out

    def test_no_flags(self, config_path: Path) -> None:
        """Test that config without flags is a usage error."""
        assert main(["-c", str(config_path), "config"]) == 1
