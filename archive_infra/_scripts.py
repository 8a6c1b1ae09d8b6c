"""Runnable scripts for common dev tasks. Use: uv run <script-name>."""

import subprocess
import sys


def _run(args: list[str]) -> None:
    """Run a command; exit with its code."""
    sys.exit(subprocess.run(args).returncode)


def lint() -> None:
    """Run ruff check on archive_infra and tests."""
    _run([sys.executable, "-m", "ruff", "check", "archive_infra", "tests"])


def lint_fix() -> None:
    """Run ruff check --fix on archive_infra and tests."""
    _run([sys.executable, "-m", "ruff", "check", "--fix", "archive_infra", "tests"])


def format() -> None:
    """Run ruff format on archive_infra and tests."""
    _run([sys.executable, "-m", "ruff", "format", "archive_infra", "tests"])


def type_check() -> None:
    """Run pyright on archive_infra."""
    _run([sys.executable, "-m", "pyright", "archive_infra"])


def test() -> None:
    """Run pytest."""
    _run([sys.executable, "-m", "pytest", "tests/", "-v"])


def test_cov() -> None:
    """Run pytest with coverage report."""
    _run(
        [
            sys.executable,
            "-m",
            "pytest",
            "tests/",
            "--cov=archive_infra",
            "--cov-report=term-missing",
            "-v",
        ]
    )
