"""Detects and runs a working copy's test suite."""

from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

from .logging import get_logger

DEFAULT_TIMEOUT = 600.0

# First marker file found decides the command.
_DETECTION_RULES: tuple[tuple[str, str], ...] = (
    ("package.json", "npm test"),
    ("go.mod", "go test ./..."),
    ("requirements.txt", "python -m pytest"),
    ("setup.py", "python -m pytest"),
    ("Cargo.toml", "cargo test"),
    ("pom.xml", "mvn test"),
    ("build.gradle", "gradle test"),
    ("composer.json", "php vendor/bin/phpunit"),
)


@dataclass(frozen=True)
class SuiteOutcome:
    """Result of running (or skipping) the test suite."""

    passed: bool
    output: str
    command: Optional[str] = None

    @property
    def ran(self) -> bool:
        return self.command is not None


Executor = Callable[..., "subprocess.CompletedProcess[str]"]


class SuiteRunner:
    """Runs the detected test command inside a working copy."""

    def __init__(
        self,
        repo_path: str | Path,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        executor: Executor | None = None,
    ) -> None:
        self.repo_path = Path(repo_path)
        self.timeout = timeout
        self._executor = executor or subprocess.run
        self.logger = get_logger("suite")

    def detect_command(self) -> Tuple[str, bool]:
        for marker, command in _DETECTION_RULES:
            if (self.repo_path / marker).exists():
                return command, True
        return "", False

    def run(self, command: str) -> SuiteOutcome:
        """Execute ``command``; a non-zero exit, missing binary or timeout is a failure."""
        self.logger.info("Running tests: %s", command)
        try:
            completed = self._executor(
                shlex.split(command),
                cwd=str(self.repo_path),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            return SuiteOutcome(passed=False, output=f"Unable to run '{command}': {exc}", command=command)
        except subprocess.TimeoutExpired:
            return SuiteOutcome(
                passed=False,
                output=f"'{command}' did not finish within {self.timeout:.0f}s",
                command=command,
            )
        output = (completed.stdout or "") + (completed.stderr or "")
        return SuiteOutcome(passed=completed.returncode == 0, output=output, command=command)

    def execute(self) -> SuiteOutcome:
        command, found = self.detect_command()
        if not found:
            return SuiteOutcome(passed=True, output="No tests detected")
        return self.run(command)


__all__ = ["DEFAULT_TIMEOUT", "SuiteOutcome", "SuiteRunner"]
