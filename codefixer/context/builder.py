"""Builds the bounded repository context handed to the model."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Iterator, List, Sequence

from ..errors import FilesystemError
from ..logging import get_logger
from ..models import CandidateFile, RepositoryContext, ScoredFile
from .relevance import extract_keywords, extract_mentioned_files, rank

DEFAULT_MAX_FILES = 30
DEFAULT_MAX_FILE_SIZE = 100 * 1024

# Dependency caches, build output and test trees never compete for a slot.
_EXCLUDED_DIRS = {
    "node_modules",
    "vendor",
    "target",
    "dist",
    "build",
    "test",
    "tests",
    "__pycache__",
}

_SOURCE_SUFFIXES = {
    ".go",
    ".py",
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".java",
    ".c",
    ".cpp",
    ".h",
    ".hpp",
    ".rs",
    ".rb",
    ".php",
    ".cs",
    ".swift",
    ".kt",
    ".scala",
    ".sh",
    ".bash",
    ".html",
    ".css",
    ".scss",
    ".vue",
}

MANIFEST_FILES: tuple[str, ...] = (
    "README.md",
    "package.json",
    "go.mod",
    "requirements.txt",
    "Cargo.toml",
    "pom.xml",
    "build.gradle",
)


def is_source_path(path: str) -> bool:
    """Return True when the path carries one of the recognised source extensions."""
    return Path(path).suffix in _SOURCE_SUFFIXES


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _iter_candidate_paths(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            name for name in dirnames if not _is_hidden(name) and name not in _EXCLUDED_DIRS
        )
        current_dir = Path(dirpath)
        for filename in sorted(filenames):
            yield current_dir / filename


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


class ContextBuilder:
    """Selects the most relevant source files of a working copy for an issue."""

    def __init__(
        self,
        *,
        max_files: int = DEFAULT_MAX_FILES,
        max_file_size: int = DEFAULT_MAX_FILE_SIZE,
        manifest_files: Sequence[str] = MANIFEST_FILES,
    ) -> None:
        if max_files < 0:
            raise ValueError("max_files must not be negative")
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.manifest_files = tuple(manifest_files)
        self.logger = get_logger("context")

    def build(self, root: str | Path, title: str, body: str) -> RepositoryContext:
        """Return the directory summary and selected file contents for an issue."""
        root_path = self._resolve_root(root)
        text = f"{title} {body}"
        mentioned = extract_mentioned_files(text)
        keywords = extract_keywords(text)
        self.logger.debug(
            "Issue mentions %d file(s) and %d keyword(s)", len(mentioned), len(keywords)
        )

        files: Dict[str, str] = {}
        for scored in self.select(root_path, mentioned, keywords):
            content = _read_text(root_path / scored.path)
            if content is None:
                self.logger.debug("Dropping unreadable file %s", scored.path)
                continue
            files[scored.path] = content

        for name in self.manifest_files:
            path = root_path / name
            if name in files or path.is_symlink() or not path.is_file():
                continue
            content = _read_text(path)
            if content is not None:
                files[name] = content

        structure = self.directory_structure(root_path)
        self.logger.info("Selected %d file(s) for the model context", len(files))
        return RepositoryContext(structure=structure, files=files, file_count=len(files))

    def discover(self, root: str | Path) -> List[CandidateFile]:
        """Return eligible source files in deterministic discovery order."""
        root_path = self._resolve_root(root)
        candidates: List[CandidateFile] = []
        for path in _iter_candidate_paths(root_path):
            rel_path = path.relative_to(root_path).as_posix()
            if not is_source_path(rel_path) or path.is_symlink():
                continue
            try:
                size = path.stat().st_size
            except OSError:
                continue
            # Oversized files are skipped entirely; a truncated file would mislead the model.
            if size > self.max_file_size:
                continue
            candidates.append(CandidateFile(path=rel_path, size=size, is_source=True))
        return candidates

    def select(
        self,
        root: str | Path,
        mentioned_files: Sequence[str],
        keywords: Sequence[str],
    ) -> List[ScoredFile]:
        """Rank eligible files and keep the top ``max_files``."""
        ranked = rank(self.discover(root), mentioned_files, keywords)
        for item in ranked[: self.max_files]:
            self.logger.debug("score=%d %s", item.score, item.path)
        return ranked[: self.max_files]

    def directory_structure(self, root: str | Path) -> str:
        """Render a two-space indented listing of every non-hidden entry."""
        root_path = self._resolve_root(root)
        lines: List[str] = []
        self._render_tree(root_path, 0, lines)
        return "".join(lines)

    def _render_tree(self, directory: Path, depth: int, lines: List[str]) -> None:
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError:
            return
        indent = "  " * depth
        for entry in entries:
            if _is_hidden(entry.name):
                continue
            # Links are listed but never followed out of the working copy.
            if entry.is_dir() and not entry.is_symlink():
                lines.append(f"{indent}{entry.name}/\n")
                self._render_tree(entry, depth + 1, lines)
            else:
                lines.append(f"{indent}{entry.name}\n")

    @staticmethod
    def _resolve_root(root: str | Path) -> Path:
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise FilesystemError(f"Working copy not found: {root}")
        if not root_path.is_dir():
            raise FilesystemError(f"Working copy is not a directory: {root}")
        if not os.access(root_path, os.R_OK | os.X_OK):
            raise FilesystemError(f"Working copy is not readable: {root}")
        return root_path


__all__ = ["ContextBuilder", "DEFAULT_MAX_FILES", "DEFAULT_MAX_FILE_SIZE", "MANIFEST_FILES", "is_source_path"]
