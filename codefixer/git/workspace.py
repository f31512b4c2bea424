"""Git working copy used for one issue-processing attempt."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable

from ..errors import FilesystemError
from ..logging import get_logger

COMMIT_AUTHOR_NAME = "Mr. Code Fixer"
COMMIT_AUTHOR_EMAIL = "code-fixer@automated.bot"
DEFAULT_BRANCH_FALLBACK = "main"
_ORIGIN_REF_PREFIX = "refs/remotes/origin/"

Runner = Callable[..., str]


class GitWorkspace:
    """Clones ``owner/name`` under the work directory and publishes branches from it."""

    def __init__(
        self,
        work_dir: str | Path,
        owner: str,
        name: str,
        token: str,
        *,
        host: str = "github.com",
        runner: Runner | None = None,
    ) -> None:
        self.work_dir = Path(work_dir).expanduser()
        self.owner = owner
        self.name = name
        self.repo_path = self.work_dir / owner / name
        self.default_branch = DEFAULT_BRANCH_FALLBACK
        self.branch: str | None = None
        self._token = token
        self._host = host
        self._runner = runner or self._default_runner
        self.logger = get_logger("git")

    def clone(self) -> str:
        """Fresh-clone the repository and return its default branch name."""
        try:
            self.repo_path.parent.mkdir(parents=True, exist_ok=True)
            if self.repo_path.exists():
                shutil.rmtree(self.repo_path)
        except OSError as exc:
            raise FilesystemError(f"Failed to prepare working copy {self.repo_path}: {exc}") from exc

        clone_url = f"https://{self._token}@{self._host}/{self.owner}/{self.name}.git"
        self.logger.info("Cloning %s/%s into %s", self.owner, self.name, self.repo_path)
        self._git(["clone", clone_url, str(self.repo_path)], cwd=self.work_dir, redact=clone_url)

        self._git(["config", "user.name", COMMIT_AUTHOR_NAME])
        self._git(["config", "user.email", COMMIT_AUTHOR_EMAIL])

        self.default_branch = self._detect_default_branch()
        self.branch = None
        self.logger.debug("Default branch is %s", self.default_branch)
        return self.default_branch

    def create_branch(self, name: str) -> None:
        self._git(["checkout", "-b", name])
        self.branch = name

    def write_file(self, path: str, content: str) -> Path:
        """Replace ``path`` inside the working copy with ``content``."""
        if self.branch is None:
            raise FilesystemError("A branch must be created before files are written")
        target = self._resolve_inside(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except (OSError, ValueError) as exc:
            raise FilesystemError(f"Failed to write {path}: {exc}") from exc
        return target

    def commit(self, message: str) -> None:
        self._git(["add", "."])
        self._git(["commit", "-m", message], env=self._commit_env())

    def push(self, branch: str) -> None:
        self._git(["push", "-u", "origin", branch])

    def cleanup(self) -> None:
        """Discard the working copy; branch changes are abandoned with it."""
        shutil.rmtree(self.repo_path, ignore_errors=True)

    # ------------------------------------------------------------------
    # Helpers

    def _detect_default_branch(self) -> str:
        try:
            output = self._git(
                ["symbolic-ref", "refs/remotes/origin/HEAD"], capture_output=True
            )
        except FilesystemError:
            return DEFAULT_BRANCH_FALLBACK
        ref = output.strip()
        branch = ref.removeprefix(_ORIGIN_REF_PREFIX)
        return branch or DEFAULT_BRANCH_FALLBACK

    def _resolve_inside(self, path: str) -> Path:
        root = self.repo_path.resolve()
        try:
            target = (root / path).resolve()
        except (OSError, ValueError) as exc:
            raise FilesystemError(f"Invalid path proposed for the working copy: {path!r}") from exc
        if target == root or root not in target.parents:
            raise FilesystemError(f"Refusing to write outside the working copy: {path}")
        return target

    @staticmethod
    def _commit_env() -> dict[str, str]:
        env = os.environ.copy()
        env.setdefault("GIT_AUTHOR_NAME", COMMIT_AUTHOR_NAME)
        env.setdefault("GIT_AUTHOR_EMAIL", COMMIT_AUTHOR_EMAIL)
        env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
        env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])
        return env

    def _git(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
        redact: str | None = None,
    ) -> str:
        command = ["git", *args]
        try:
            return self._runner(
                command, cwd=cwd or self.repo_path, env=env, capture_output=capture_output
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            message = f"'{' '.join(command)}' failed: {_describe(exc)}"
            if redact:
                message = message.replace(redact, "<remote>")
            if self._token:
                message = message.replace(self._token, "***")
            raise FilesystemError(message) from exc

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            env=env,
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


def _describe(exc: BaseException) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        stderr = exc.stderr.strip() if isinstance(exc.stderr, str) else ""
        return stderr or f"exit code {exc.returncode}"
    return str(exc)


__all__ = ["COMMIT_AUTHOR_EMAIL", "COMMIT_AUTHOR_NAME", "GitWorkspace"]
