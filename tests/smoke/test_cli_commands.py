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
DECK = PROJECT_ROOT / "data" / "sample_deck.json"


def run_cli_command(command: str, timeout: int = 60) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m src.cli.main')
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f"{sys.executable} -m src.cli.main {command}"
    env = {**os.environ, "PYTHONIOENCODING": "utf-8", "LINGO_LOG_LEVEL": "WARNING", "COLUMNS": "200"}

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        encoding="utf-8",
        timeout=timeout,
        env=env,
    )

    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        assert "Commands" in stdout
        assert "simulate" in stdout

    def test_plan_help(self):
        """Plan command help should work."""
        code, stdout, stderr = run_cli_command("plan --help")

        assert code == 0, f"Plan help failed: {stderr}"


class TestCLICalculators:
    """Test the pure calculator commands."""

    def test_reward(self):
        """A retry halves the base value."""
        code, stdout, stderr = run_cli_command("reward 4 --retry")

        assert code == 0, f"Reward failed: {stderr}"
        assert "2" in stdout
        assert "Sun Drops" in stdout

    def test_reward_invalid_base(self):
        """Base values outside 1-4 should fail gracefully."""
        code, stdout, stderr = run_cli_command("reward 5")

        assert code == 1
        assert "Base value" in stdout

    def test_tree(self):
        """A week without practice leaves a thirsty tree."""
        code, stdout, stderr = run_cli_command("tree --days 7")

        assert code == 0, f"Tree failed: {stderr}"
        assert "60%" in stdout
        assert "Next health drop in 4" in stdout

    def test_level(self):
        """Level command should show the sub-level."""
        code, stdout, stderr = run_cli_command("level 120")

        assert code == 0, f"Level failed: {stderr}"
        assert "Proficiency" in stdout


class TestCLIEngine:
    """Test commands that drive the engine."""

    def test_plan_runs(self):
        """Plan should list units for a new learner."""
        code, stdout, stderr = run_cli_command(f'plan --deck "{DECK}" --minutes 10')

        assert code == 0, f"Plan failed: {stderr}"
        assert "Session plan" in stdout
        assert "food-003" in stdout

    def test_plan_missing_deck(self, tmp_path):
        """A missing deck should fail gracefully."""
        code, stdout, stderr = run_cli_command(f'plan --deck "{tmp_path / "nope.json"}"')

        assert code == 1
        assert "not found" in stdout

    def test_simulate_runs(self):
        """Simulate should finish with a summary."""
        code, stdout, stderr = run_cli_command(f'simulate --deck "{DECK}" --seed 7 -n 5')

        assert code == 0, f"Simulate failed: {stderr}"
        assert "Session Summary" in stdout
