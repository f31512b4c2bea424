"""Test command detection and execution."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from codefixer.suite import SuiteRunner


class RecordingExecutor:
    def __init__(self, returncode: int = 0, stdout: str = "", stderr: str = "", error: Exception | None = None) -> None:
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls: list[dict] = []

    def __call__(self, args, **kwargs):
        self.calls.append({"args": list(args), **kwargs})
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(args, self.returncode, self.stdout, self.stderr)


@pytest.mark.parametrize(
    "marker, command",
    [
        ("package.json", "npm test"),
        ("go.mod", "go test ./..."),
        ("requirements.txt", "python -m pytest"),
        ("setup.py", "python -m pytest"),
        ("Cargo.toml", "cargo test"),
        ("pom.xml", "mvn test"),
        ("build.gradle", "gradle test"),
        ("composer.json", "php vendor/bin/phpunit"),
    ],
)
def test_detect_command(tmp_path: Path, marker: str, command: str) -> None:
    (tmp_path / marker).write_text("", encoding="utf-8")

    assert SuiteRunner(tmp_path).detect_command() == (command, True)


def test_first_marker_wins(tmp_path: Path) -> None:
    (tmp_path / "go.mod").write_text("", encoding="utf-8")
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")

    assert SuiteRunner(tmp_path).detect_command() == ("npm test", True)


def test_no_marker_means_no_tests(tmp_path: Path) -> None:
    executor = RecordingExecutor()

    outcome = SuiteRunner(tmp_path, executor=executor).execute()

    assert outcome.passed is True
    assert outcome.ran is False
    assert executor.calls == []


def test_execute_runs_detected_command(tmp_path: Path) -> None:
    (tmp_path / "go.mod").write_text("", encoding="utf-8")
    executor = RecordingExecutor(stdout="ok\n", stderr="warn\n")

    outcome = SuiteRunner(tmp_path, timeout=42, executor=executor).execute()

    assert outcome.passed is True
    assert outcome.command == "go test ./..."
    assert outcome.output == "ok\nwarn\n"
    call = executor.calls[0]
    assert call["args"] == ["go", "test", "./..."]
    assert call["cwd"] == str(tmp_path)
    assert call["timeout"] == 42


def test_non_zero_exit_fails(tmp_path: Path) -> None:
    outcome = SuiteRunner(tmp_path, executor=RecordingExecutor(returncode=1, stdout="FAIL")).run("npm test")

    assert outcome.passed is False
    assert outcome.ran is True
    assert outcome.output == "FAIL"


def test_missing_binary_fails(tmp_path: Path) -> None:
    executor = RecordingExecutor(error=FileNotFoundError("cargo"))

    outcome = SuiteRunner(tmp_path, executor=executor).run("cargo test")

    assert outcome.passed is False
    assert "Unable to run 'cargo test'" in outcome.output


def test_timeout_fails(tmp_path: Path) -> None:
    executor = RecordingExecutor(error=subprocess.TimeoutExpired("mvn test", 5))

    outcome = SuiteRunner(tmp_path, timeout=5, executor=executor).run("mvn test")

    assert outcome.passed is False
    assert "did not finish within 5s" in outcome.output
