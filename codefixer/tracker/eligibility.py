"""Decides whether an issue the bot already answered should be picked up again."""

from __future__ import annotations

from typing import Sequence

from ..models import Comment

BOT_MARKER = "Mr. Code Fixer"


def needs_processing(comments: Sequence[Comment], marker: str = BOT_MARKER) -> bool:
    """Return False only when the newest comment is the bot's own marker comment."""
    last_marker_index = -1
    for index, comment in enumerate(comments):
        if marker in comment.body:
            last_marker_index = index
    if last_marker_index == -1:
        return True
    return last_marker_index != len(comments) - 1


__all__ = ["BOT_MARKER", "needs_processing"]
