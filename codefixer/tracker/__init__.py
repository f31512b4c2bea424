"""Issue tracker adapters and reprocessing rules."""

from .eligibility import BOT_MARKER, needs_processing
from .github import GitHubTracker

__all__ = ["BOT_MARKER", "GitHubTracker", "needs_processing"]
