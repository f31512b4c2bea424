"""Relevance scoring of repository paths against an issue report."""

from __future__ import annotations

import re
from typing import Iterable, List, Sequence

from ..models import CandidateFile, ScoredFile

MENTION_BONUS = 100
KEYWORD_BONUS = 10
ENTRY_POINT_BONUS = 5
BASELINE_SCORE = 1

_MENTION_SUFFIXES = (".go", ".js", ".ts", ".py", ".java", ".rb", ".php", ".tsx", ".jsx")
_MENTION_STRIP = "`,\"'()[]"
_ENTRY_POINT_HINTS = ("main", "index", "app", "server")
_WORD_SPLIT = re.compile(r"[^a-z0-9]+")
_MIN_KEYWORD_LENGTH = 4

_STOPWORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "and",
        "or",
        "but",
        "in",
        "on",
        "at",
        "to",
        "for",
        "of",
        "with",
        "is",
        "are",
        "was",
        "were",
        "been",
        "be",
        "have",
        "has",
        "had",
        "do",
        "does",
        "did",
        "will",
        "would",
        "should",
        "could",
        "this",
        "that",
        "these",
        "those",
        "i",
        "you",
        "he",
        "she",
        "it",
        "we",
        "they",
        "please",
        "help",
        "need",
        "want",
        "issue",
        "problem",
    }
)


def extract_mentioned_files(text: str) -> List[str]:
    """Return path-like tokens that end in a known source extension."""
    mentions: List[str] = []
    for word in text.lower().split():
        token = word.strip(_MENTION_STRIP)
        if "/" not in token and "\\" not in token:
            continue
        if token.endswith(_MENTION_SUFFIXES):
            mentions.append(token)
    return mentions


def extract_keywords(text: str) -> List[str]:
    """Return lowercase words longer than three characters that are not stop words."""
    return [
        word
        for word in _WORD_SPLIT.split(text.lower())
        if len(word) >= _MIN_KEYWORD_LENGTH and word not in _STOPWORDS
    ]


def score(path: str, mentioned_files: Sequence[str], keywords: Sequence[str]) -> int:
    """Score a repository-relative path; every path gets at least the baseline."""
    lower_path = path.lower()
    total = 0

    for mentioned in mentioned_files:
        if mentioned.lower() in lower_path:
            total += MENTION_BONUS

    for keyword in keywords:
        if keyword in lower_path:
            total += KEYWORD_BONUS

    if total == 0:
        if any(hint in lower_path for hint in _ENTRY_POINT_HINTS):
            total += ENTRY_POINT_BONUS
        total += BASELINE_SCORE

    return total


def score_issue(path: str, title: str, body: str) -> int:
    """Score ``path`` using the mentions and keywords of an issue's text."""
    text = f"{title} {body}"
    return score(path, extract_mentioned_files(text), extract_keywords(text))


def rank(
    candidates: Iterable[CandidateFile],
    mentioned_files: Sequence[str],
    keywords: Sequence[str],
) -> List[ScoredFile]:
    """Score candidates and order them by descending score, then discovery order."""
    scored = [
        ScoredFile(file=candidate, score=score(candidate.path, mentioned_files, keywords), order=index)
        for index, candidate in enumerate(candidates)
    ]
    return sorted(scored, key=lambda item: (-item.score, item.order))


__all__ = [
    "BASELINE_SCORE",
    "ENTRY_POINT_BONUS",
    "KEYWORD_BONUS",
    "MENTION_BONUS",
    "extract_keywords",
    "extract_mentioned_files",
    "rank",
    "score",
    "score_issue",
]
