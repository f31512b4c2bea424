"""Tests for the GitHub issue tracker client."""

from __future__ import annotations

import pytest

from codefixer import transport
from codefixer.errors import TransportError
from codefixer.tracker.github import GitHubTracker
from tests._fixtures.http_stub import FakeResponse, RecordingOpener, http_error

BASE = "https://api.github.com/repos/acme/widgets"


@pytest.fixture
def github() -> GitHubTracker:
    return GitHubTracker("ghp_secret", "acme", "widgets")


def test_list_open_issues_skips_pull_requests(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    opener = RecordingOpener(
        [
            {"number": 7, "title": "Null pointer", "body": None, "state": "open", "html_url": "https://x/7"},
            {"number": 8, "title": "Bump deps", "pull_request": {"url": "https://x/pulls/8"}},
            {"number": 9, "title": "Slow query", "body": "takes 5s"},
        ]
    )
    monkeypatch.setattr(transport, "urlopen", opener)

    issues = github.list_open_issues(limit=50)

    assert [issue.number for issue in issues] == [7, 9]
    assert issues[0].body == ""
    assert issues[0].url == "https://x/7"
    request = opener.requests[0]
    assert request["url"] == f"{BASE}/issues?state=open&per_page=50"
    assert request["headers"]["authorization"] == "Bearer ghp_secret"
    assert request["headers"]["accept"] == "application/vnd.github.v3+json"
    assert request["timeout"] == 30.0


def test_get_comments_preserves_order_and_author(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    opener = RecordingOpener(
        [
            {"id": 1, "body": "first", "user": {"login": "alice"}, "created_at": "2024-01-01T00:00:00Z"},
            {"id": 2, "body": "second", "user": None},
        ]
    )
    monkeypatch.setattr(transport, "urlopen", opener)

    comments = github.get_comments(7)

    assert [comment.body for comment in comments] == ["first", "second"]
    assert comments[0].author == "alice"
    assert comments[1].author is None
    assert opener.requests[0]["url"] == f"{BASE}/issues/7/comments"


def test_add_comment_posts_body(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    opener = RecordingOpener(FakeResponse({"id": 10}, status=201))
    monkeypatch.setattr(transport, "urlopen", opener)

    github.add_comment(7, "Thanks!")

    assert opener.requests[0]["method"] == "POST"
    assert opener.requests[0]["payload"] == {"body": "Thanks!"}


def test_close_issue_patches_state(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    opener = RecordingOpener({"state": "closed"})
    monkeypatch.setattr(transport, "urlopen", opener)

    github.close_issue(7)

    assert opener.requests[0]["method"] == "PATCH"
    assert opener.requests[0]["url"] == f"{BASE}/issues/7"
    assert opener.requests[0]["payload"] == {"state": "closed"}


def test_create_change_request_returns_url(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    opener = RecordingOpener(
        FakeResponse({"html_url": "https://github.com/acme/widgets/pull/3"}, status=201)
    )
    monkeypatch.setattr(transport, "urlopen", opener)

    url = github.create_change_request("Fix #7: Null pointer", "Fixes #7", "fix/7-null", "main")

    assert url == "https://github.com/acme/widgets/pull/3"
    assert opener.requests[0]["url"] == f"{BASE}/pulls"
    assert opener.requests[0]["payload"] == {
        "title": "Fix #7: Null pointer",
        "body": "Fixes #7",
        "head": "fix/7-null",
        "base": "main",
    }


def test_rejected_change_request_surfaces_status(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    error = http_error(f"{BASE}/pulls", 422, '{"message": "A pull request already exists"}')
    monkeypatch.setattr(transport, "urlopen", RecordingOpener(error))

    with pytest.raises(TransportError) as excinfo:
        github.create_change_request("t", "b", "fix/7", "main")

    assert excinfo.value.status == 422


def test_get_issue(monkeypatch: pytest.MonkeyPatch, github: GitHubTracker) -> None:
    monkeypatch.setattr(
        transport, "urlopen", RecordingOpener({"number": 4, "title": "Broken link in docs/app.js"})
    )

    issue = github.get_issue(4)

    assert issue.number == 4
    assert issue.state == "open"
