"""Error taxonomy shared by the issue resolution pipeline."""

from __future__ import annotations


class FixerError(RuntimeError):
    """Base class for failures raised by codefixer."""


class ConfigurationError(FixerError):
    """Raised when settings are missing or malformed; fatal before any issue runs."""


class TransportError(FixerError):
    """Raised when a tracker or model HTTP call fails."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ParseError(FixerError):
    """Raised when the model response cannot be turned into a fix proposal."""

    def __init__(self, message: str, *, response: str = "") -> None:
        super().__init__(message)
        self.response = response


class TestFailure(FixerError):
    """Raised when the project's tests fail after a proposed fix was applied."""

    __test__ = False

    def __init__(self, command: str, output: str) -> None:
        super().__init__(f"Tests failed after applying changes ({command})")
        self.command = command
        self.output = output


class FilesystemError(FixerError):
    """Raised when cloning, reading or writing the working copy fails."""


__all__ = [
    "ConfigurationError",
    "FilesystemError",
    "FixerError",
    "ParseError",
    "TestFailure",
    "TransportError",
]
