from __future__ import annotations

from pathlib import Path

import pytest

from codefixer.accounting import SessionTally
from tests._fixtures.fakes import FakeTracker, FakeWorkspace
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def tally() -> SessionTally:
    return SessionTally(clock=lambda: 0.0)


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def workspace(tmp_path: Path) -> FakeWorkspace:
    return FakeWorkspace(tmp_path / "checkout")


