"""Repository context selection for model prompts."""

from .builder import ContextBuilder
from .relevance import extract_keywords, extract_mentioned_files, rank, score, score_issue

__all__ = [
    "ContextBuilder",
    "extract_keywords",
    "extract_mentioned_files",
    "rank",
    "score",
    "score_issue",
]
