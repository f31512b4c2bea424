"""Reprocessing rule tests."""

from __future__ import annotations

from codefixer.models import Comment
from codefixer.tracker.eligibility import BOT_MARKER, needs_processing


def _comments(*bodies: str):
    return [Comment(id=index, body=body) for index, body in enumerate(bodies)]


def test_issue_without_comments_needs_processing() -> None:
    assert needs_processing([]) is True


def test_issue_without_marker_needs_processing() -> None:
    assert needs_processing(_comments("any update?", "same here")) is True


def test_marker_as_newest_comment_is_skipped() -> None:
    assert needs_processing(_comments("details please", f"*Asked by {BOT_MARKER}*")) is False


def test_human_reply_after_marker_reopens_issue() -> None:
    comments = _comments(f"<sub>{BOT_MARKER}</sub>", "Here is the stack trace")
    assert needs_processing(comments) is True


def test_only_the_latest_marker_counts() -> None:
    comments = _comments(BOT_MARKER, "reply", f"follow-up from {BOT_MARKER}")
    assert needs_processing(comments) is False


def test_custom_marker() -> None:
    assert needs_processing(_comments("ping", "-- fixbot"), marker="fixbot") is False
