"""Confidence-gated decision state machine for a single issue.

Each issue enters ``Received`` once per run and leaves through exactly one
terminal resolution:

* ``CLARIFY`` when the report is too vague or the model asks questions,
* ``NO_CODE_NEEDED`` when the model answers without proposing changes,
* ``PUBLISHED`` when the proposed changes pass the tests and a change request
  was opened,
* ``ROLLED_BACK`` when the tests fail; this surfaces as ``TestFailure`` so the
  caller can tell it apart from transport or parse errors.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence

from .accounting import SessionTally
from .context.builder import ContextBuilder
from .errors import TestFailure, TransportError
from .logging import IssueLogAdapter, get_logger, issue_logger
from .models import Confidence, FileChange, FixProposal, IssueReport, RepositoryContext
from .rendering import render_template
from .suite import SuiteOutcome, SuiteRunner
from .tracker.eligibility import BOT_MARKER
from .triage import is_too_vague

BRANCH_PREFIX = "fix/"
MAX_SLUG_LENGTH = 40
_SLUG_DISALLOWED = re.compile(r"[^a-z0-9_-]")

CONFIDENCE_NOTES = {
    Confidence.HIGH: "**High confidence** - This fix should resolve the issue.",
    Confidence.MEDIUM: "**Medium confidence** - Please review carefully.",
    Confidence.LOW: "**Low confidence** - This is a best attempt, please review thoroughly.",
}

_CLOSING_FILE_PREVIEW = 3


class Resolution(str, Enum):
    """Terminal state reached by one issue attempt."""

    CLARIFY = "clarify"
    NO_CODE_NEEDED = "no_code_needed"
    PUBLISHED = "published"
    ROLLED_BACK = "rolled_back"


@dataclass
class IssueOutcome:
    """What happened to an issue during this run."""

    issue_number: int
    resolution: Resolution
    branch: Optional[str] = None
    change_request_url: Optional[str] = None
    closed: bool = False
    detail: str = ""


class IssueTracker(Protocol):
    def add_comment(self, number: int, text: str) -> None: ...

    def close_issue(self, number: int) -> None: ...

    def create_change_request(self, title: str, body: str, head: str, base: str) -> str: ...


class SourceControl(Protocol):
    repo_path: Path

    def clone(self) -> str: ...

    def create_branch(self, name: str) -> None: ...

    def write_file(self, path: str, content: str) -> object: ...

    def commit(self, message: str) -> None: ...

    def push(self, branch: str) -> None: ...

    def cleanup(self) -> None: ...


class Proposer(Protocol):
    def propose_fix(
        self,
        issue: IssueReport,
        context: RepositoryContext,
        *,
        tally: SessionTally | None = None,
    ) -> FixProposal: ...


class Suite(Protocol):
    def execute(self) -> SuiteOutcome: ...


def branch_name_for(issue: IssueReport) -> str:
    """Return ``fix/<number>-<slug>`` with a sanitised slug of at most 40 characters."""
    slug = issue.title.lower().replace(" ", "-")
    slug = _SLUG_DISALLOWED.sub("", slug)[:MAX_SLUG_LENGTH].strip("-")
    if not slug:
        return f"{BRANCH_PREFIX}{issue.number}"
    return f"{BRANCH_PREFIX}{issue.number}-{slug}"


def summarize_files(changes: Sequence[FileChange], limit: int = _CLOSING_FILE_PREVIEW) -> str:
    shown = ", ".join(f"`{change.path}`" for change in changes[:limit])
    remaining = len(changes) - limit
    if remaining > 0:
        shown += f" and {remaining} more"
    return shown


class IssuePipeline:
    """Drives one issue from ``Received`` to a terminal resolution."""

    def __init__(
        self,
        tracker: IssueTracker,
        proposer: Proposer,
        workspace_factory: Callable[[], SourceControl],
        *,
        context_builder: ContextBuilder | None = None,
        suite_factory: Callable[[Path], Suite] | None = None,
        marker: str = BOT_MARKER,
    ) -> None:
        self.tracker = tracker
        self.proposer = proposer
        self.workspace_factory = workspace_factory
        self.context_builder = context_builder or ContextBuilder()
        self.suite_factory: Callable[[Path], Suite] = suite_factory or SuiteRunner
        self.marker = marker
        self.logger = get_logger("pipeline")
        self.log: IssueLogAdapter = issue_logger(self.logger, 0)

    def process(self, issue: IssueReport, tally: SessionTally) -> IssueOutcome:
        """Resolve ``issue``; raises TestFailure, TransportError, ParseError or FilesystemError."""
        self.log = issue_logger(self.logger, issue.number)
        if is_too_vague(issue.title, issue.body):
            self.log.info("Too vague; asking for details")
            self.tracker.add_comment(
                issue.number, render_template("clarify_vague.md.j2", marker=self.marker)
            )
            tally.record_question_asked()
            return IssueOutcome(issue.number, Resolution.CLARIFY, detail="too vague")

        workspace = self.workspace_factory()
        try:
            default_branch = workspace.clone()
            context = self.context_builder.build(workspace.repo_path, issue.title, issue.body)
            self.log.info("Analyzed %d relevant file(s)", context.file_count)

            proposal = self.proposer.propose_fix(issue, context, tally=tally)

            if proposal.needs_more_info and proposal.questions:
                return self._clarify(issue, proposal, tally)
            if not proposal.file_changes:
                return self._respond_without_code(issue, proposal, tally)
            return self._publish(issue, proposal, workspace, default_branch, tally)
        finally:
            workspace.cleanup()

    def _clarify(self, issue: IssueReport, proposal: FixProposal, tally: SessionTally) -> IssueOutcome:
        self.tracker.add_comment(
            issue.number,
            render_template(
                "clarify_questions.md.j2", questions=proposal.questions, marker=self.marker
            ),
        )
        tally.record_question_asked()
        self.log.info("Posted %d question(s)", len(proposal.questions))
        return IssueOutcome(issue.number, Resolution.CLARIFY, detail="model asked questions")

    def _respond_without_code(
        self, issue: IssueReport, proposal: FixProposal, tally: SessionTally
    ) -> IssueOutcome:
        self.tracker.add_comment(
            issue.number,
            render_template("no_code.md.j2", explanation=proposal.explanation, marker=self.marker),
        )
        closed = self._close_quietly(issue.number)
        tally.record_issue_handled()
        return IssueOutcome(issue.number, Resolution.NO_CODE_NEEDED, closed=closed)

    def _publish(
        self,
        issue: IssueReport,
        proposal: FixProposal,
        workspace: SourceControl,
        default_branch: str,
        tally: SessionTally,
    ) -> IssueOutcome:
        branch = branch_name_for(issue)
        workspace.create_branch(branch)

        self.log.info("Applying %d file change(s)", len(proposal.file_changes))
        for change in proposal.file_changes:
            workspace.write_file(change.path, change.content)
            self.log.debug("Replaced %s", change.path)

        suite = self.suite_factory(workspace.repo_path).execute()
        if suite.ran and not suite.passed:
            self.log.warning("Tests failed; abandoning %s", branch)
            raise TestFailure(suite.command or "", suite.output)
        if not suite.ran:
            self.log.info("No tests detected; publishing without test validation")

        title = f"Fix #{issue.number}: {issue.title}"
        workspace.commit(f"{title}\n\n{proposal.explanation}")
        workspace.push(branch)

        body = render_template(
            "change_request.md.j2",
            issue=issue,
            confidence_note=CONFIDENCE_NOTES[proposal.confidence],
            explanation=proposal.explanation,
            paths=[change.path for change in proposal.file_changes],
            tests_command=suite.command if suite.ran else None,
            marker=self.marker,
        )
        url = self.tracker.create_change_request(title, body, branch, default_branch)
        tally.record_change_published()
        tally.record_issue_handled()
        self.log.info("Opened change request %s", url)

        closed = False
        if proposal.confidence is Confidence.HIGH:
            closed = self._close_resolved(issue, proposal, url)

        return IssueOutcome(
            issue.number,
            Resolution.PUBLISHED,
            branch=branch,
            change_request_url=url,
            closed=closed,
        )

    def _close_resolved(self, issue: IssueReport, proposal: FixProposal, url: str) -> bool:
        comment = render_template(
            "resolved.md.j2",
            explanation=proposal.explanation,
            file_list=summarize_files(proposal.file_changes),
            change_request_url=url,
            marker=self.marker,
        )
        try:
            self.tracker.add_comment(issue.number, comment)
        except TransportError as exc:
            self.log.warning("Could not add closing comment: %s", exc)
        return self._close_quietly(issue.number)

    def _close_quietly(self, number: int) -> bool:
        try:
            self.tracker.close_issue(number)
        except TransportError as exc:
            self.log.warning("Could not close issue: %s", exc)
            return False
        return True


__all__ = [
    "CONFIDENCE_NOTES",
    "IssueOutcome",
    "IssuePipeline",
    "Resolution",
    "branch_name_for",
    "summarize_files",
]
