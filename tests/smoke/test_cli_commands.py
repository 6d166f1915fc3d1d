"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def cli(tmp_path):
    """
    Run a CLI command against a throwaway data directory.

    Returns:
        Callable taking the arguments (after 'python -m src.delivery') and
        returning (exit_code, stdout, stderr)
    """
    env = {**os.environ, "FLUENCY_DATA_DIR": str(tmp_path), "COLUMNS": "120"}

    def _run(*args: str, timeout: int = 60) -> tuple[int, str, str]:
        result = subprocess.run(
            [sys.executable, "-m", "src.delivery", *args],
            cwd=PROJECT_ROOT,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        return result.returncode, result.stdout, result.stderr

    return _run


@pytest.fixture
def db(tmp_path):
    return str(tmp_path / "state.db")


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli):
        """Main help should list every command."""
        code, stdout, stderr = cli("--help")

        assert code == 0, f"Help failed: {stderr}"
        for command in ("thresholds", "stats", "baseline", "reset", "simulate"):
            assert command in stdout

    def test_command_help(self, cli):
        code, stdout, stderr = cli("simulate", "--help")
        assert code == 0, f"Help failed: {stderr}"
        assert "--rounds" in stdout


class TestThresholds:
    def test_default_baseline(self, cli):
        code, stdout, stderr = cli("thresholds")

        assert code == 0, f"thresholds failed: {stderr}"
        assert "Automatic" in stdout
        assert "1.5s" in stdout

    def test_custom_baseline(self, cli):
        code, stdout, _ = cli("thresholds", "500")
        assert code == 0
        assert "0.8s" in stdout


class TestStoreCommands:
    def test_stats_on_empty_db(self, cli, db):
        code, stdout, stderr = cli("stats", "--db", db)

        assert code == 0, f"stats failed: {stderr}"
        assert "No stored items" in stdout

    def test_baseline_round_trip(self, cli, db):
        code, stdout, _ = cli("baseline", "--db", db)
        assert code == 0
        assert "(default)" in stdout

        code, stdout, _ = cli("baseline", "--set", "1200", "--db", db)
        assert code == 0
        assert "Stored 1200ms" in stdout

        code, stdout, _ = cli("baseline", "--db", db)
        assert code == 0
        assert "1.2s" in stdout

    def test_baseline_rejects_zero(self, cli, db):
        code, _, _ = cli("baseline", "--set", "0", "--db", db)
        assert code == 1

    def test_reset_without_prompt(self, cli, db):
        code, stdout, stderr = cli("reset", "--yes", "--db", db)

        assert code == 0, f"reset failed: {stderr}"
        assert "Reset 0 records" in stdout


@pytest.mark.slow
class TestSimulate:
    def test_single_round(self, cli):
        code, stdout, stderr = cli("simulate", "--rounds", "1")

        assert code == 0, f"simulate failed: {stderr}"
        assert "Round 1" in stdout
        assert "correct" in stdout

    def test_several_rounds_are_deterministic(self, cli):
        first = cli("simulate", "--rounds", "3", "--seed", "3")
        second = cli("simulate", "--rounds", "3", "--seed", "3")
        assert first[0] == 0
        assert first[1] == second[1]
