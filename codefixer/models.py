"""Core data models shared across codefixer components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class IssueReport:
    """An open issue fetched from the tracker."""

    number: int
    title: str
    body: str = ""
    state: str = "open"
    url: Optional[str] = None


@dataclass(frozen=True)
class Comment:
    """A single tracker comment, in the order the tracker returned it."""

    id: int
    body: str
    author: Optional[str] = None
    created_at: Optional[str] = None


@dataclass(frozen=True)
class CandidateFile:
    """A file discovered in the working copy during a context build."""

    path: str
    size: int
    is_source: bool


@dataclass(frozen=True)
class ScoredFile:
    """Candidate file plus its relevance score and discovery index."""

    file: CandidateFile
    score: int
    order: int

    @property
    def path(self) -> str:
        return self.file.path


@dataclass
class RepositoryContext:
    """Repository view handed to the model: layout summary plus selected files."""

    structure: str
    files: Dict[str, str] = field(default_factory=dict)
    file_count: int = 0


class Confidence(str, Enum):
    """How certain the model is that its fix is correct."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def parse(cls, value: object) -> "Confidence":
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.LOW


@dataclass(frozen=True)
class FileChange:
    """Whole-file replacement proposed by the model."""

    path: str
    content: str


@dataclass
class FixProposal:
    """Structured answer from the model for one issue."""

    confidence: Confidence = Confidence.LOW
    needs_more_info: bool = False
    questions: List[str] = field(default_factory=list)
    explanation: str = ""
    file_changes: List[FileChange] = field(default_factory=list)


__all__ = [
    "CandidateFile",
    "Comment",
    "Confidence",
    "FileChange",
    "FixProposal",
    "IssueReport",
    "RepositoryContext",
    "ScoredFile",
]
