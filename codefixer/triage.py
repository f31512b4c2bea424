"""Cheap pre-filter that flags issue reports too vague to attempt."""

from __future__ import annotations

_VAGUE_PHRASES = (
    "something is wrong",
    "something broken",
    "doesn't work",
    "not working",
    "broken",
    "fix this",
    "fix it",
    "help",
    "issue",
    "problem",
)

_PATH_HINTS = ("/", ".js", ".py", ".go", ".php", ".java")

_SHORT_TITLE = 20
_SHORT_BODY = 50
_SHORT_REPORT = 30


def is_too_vague(title: str, body: str) -> bool:
    """Return True when a report is too thin to spend a model call on.

    Two independent rules apply. A short title with a generic complaint and
    almost no body is vague, and so is any very short report that does not
    mention a file. The filter errs on the side of letting reports through.
    """
    combined = f"{title} {body}".lower()

    if len(title) < _SHORT_TITLE and len(body) < _SHORT_BODY:
        if any(phrase in combined for phrase in _VAGUE_PHRASES):
            return True

    has_file_mention = any(hint in combined for hint in _PATH_HINTS)
    if not has_file_mention and len(combined) < _SHORT_REPORT:
        return True

    return False


__all__ = ["is_too_vague"]
