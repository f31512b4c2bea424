"""Vagueness filter tests."""

from __future__ import annotations

import pytest

from codefixer.triage import is_too_vague


def test_bare_title_is_too_vague() -> None:
    assert is_too_vague("Fix", "") is True


def test_path_mention_is_not_vague() -> None:
    assert (
        is_too_vague(
            "Login button fails in src/auth/login.ts line 42",
            "Clicking the button throws a TypeError in the console.",
        )
        is False
    )


@pytest.mark.parametrize(
    "title, body",
    [
        ("It's broken", "Please look"),
        ("Not working", ""),
        ("Help", "fix it"),
    ],
)
def test_short_generic_complaints_are_vague(title: str, body: str) -> None:
    assert is_too_vague(title, body) is True


def test_short_report_with_file_hint_passes() -> None:
    assert is_too_vague("Crash", "in app.py") is False


def test_long_description_without_phrases_passes() -> None:
    body = "When saving a draft the editor drops the last paragraph of the document."
    assert is_too_vague("Draft loses paragraph", body) is False


def test_generic_phrase_with_long_body_passes() -> None:
    body = "The export button is not working when the table has more than a thousand rows."
    assert is_too_vague("Export problem", body) is False
