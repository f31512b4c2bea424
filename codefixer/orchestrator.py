"""Run-level orchestration: pick eligible issues and process them one by one."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from .accounting import SessionTally, estimate_cost
from .errors import FilesystemError, ParseError, TestFailure, TransportError
from .logging import get_logger
from .models import Comment, IssueReport
from .pipeline import IssueOutcome, IssuePipeline, Resolution
from .tracker.eligibility import BOT_MARKER, needs_processing

DEFAULT_ISSUE_LIMIT = 100
_BODY_PREVIEW = 80
_COST_WARNING_THRESHOLD = 1.0

Ask = Callable[[str, str], str]
Echo = Callable[[str], None]


class IssueSource(Protocol):
    def list_open_issues(self, limit: int = DEFAULT_ISSUE_LIMIT) -> List[IssueReport]: ...

    def get_comments(self, number: int) -> List[Comment]: ...


@dataclass
class AttemptFailure:
    """An issue attempt that ended in an error rather than a resolution."""

    issue_number: int
    kind: str
    message: str
    output: str = ""


@dataclass
class RunReport:
    """Everything that happened during one run."""

    tally: SessionTally
    outcomes: List[IssueOutcome] = field(default_factory=list)
    failures: List[AttemptFailure] = field(default_factory=list)
    stopped_early: bool = False


def _is_yes(answer: str) -> bool:
    return answer.strip().lower() in {"y", "yes"}


class Orchestrator:
    """Coordinates issue selection and sequential processing for a repository."""

    def __init__(
        self,
        tracker: IssueSource,
        pipeline: IssuePipeline,
        *,
        service: str,
        ask: Ask | None = None,
        echo: Echo = print,
        marker: str = BOT_MARKER,
    ) -> None:
        self.tracker = tracker
        self.pipeline = pipeline
        self.service = service
        self._ask = ask
        self._echo = echo
        self.marker = marker
        self.logger = get_logger("orchestrator")

    def eligible_issues(self, limit: int = DEFAULT_ISSUE_LIMIT) -> List[IssueReport]:
        """Return open issues whose newest comment is not the bot's marker comment."""
        issues = self.tracker.list_open_issues(limit)
        eligible: List[IssueReport] = []
        for issue in issues:
            try:
                comments = self.tracker.get_comments(issue.number)
            except TransportError as exc:
                # Unknown comment history: keep the issue rather than silently skip it.
                self.logger.debug("Could not load comments for #%d: %s", issue.number, exc)
                eligible.append(issue)
                continue
            if needs_processing(comments, self.marker):
                eligible.append(issue)
        skipped = len(issues) - len(eligible)
        if skipped:
            self.logger.info("Found %d new issue(s) (skipped %d already handled)", len(eligible), skipped)
        return eligible

    def choose(self, issues: Sequence[IssueReport]) -> Optional[List[IssueReport]]:
        """Let the operator pick one issue or all of them; None means quit."""
        if not issues:
            return None
        for index, issue in enumerate(issues, start=1):
            self._echo(f"  {index}. #{issue.number} - {issue.title}")
            if issue.body:
                preview = issue.body[:_BODY_PREVIEW]
                suffix = "..." if len(issue.body) > _BODY_PREVIEW else ""
                self._echo(f"     {preview}{suffix}")

        while True:
            choice = self._prompt(
                f"Select issue (1-{len(issues)}, 0=fix all, Q=quit)", "1"
            ).strip().lower()
            if choice == "q":
                return None
            try:
                number = int(choice)
            except ValueError:
                number = -1
            if number < 0 or number > len(issues):
                self._echo("Invalid selection. Please try again.")
                continue
            if number == 0:
                return self.confirm_all(issues)
            return [issues[number - 1]]

    def confirm_all(self, issues: Sequence[IssueReport]) -> Optional[List[IssueReport]]:
        cost = estimate_cost(len(issues), self.service)
        if cost > 0:
            self._echo(f"Estimated cost for {len(issues)} issue(s): {cost:.4f} kr")
            if cost > _COST_WARNING_THRESHOLD:
                self._echo("This will cost more than 1 kr - proceed with caution")
        # Without a prompt callable the operator has already opted in.
        if self._ask is not None and not _is_yes(
            self._ask(f"Fix all {len(issues)} issues? (yes/no)", "no")
        ):
            self._echo("Cancelled.")
            return None
        return list(issues)

    def run(
        self,
        tally: SessionTally | None = None,
        *,
        fix_all: bool = False,
        interactive: bool = True,
        limit: int = DEFAULT_ISSUE_LIMIT,
    ) -> Optional[RunReport]:
        """Fetch eligible issues, let the operator pick, and process the selection.

        Returns None when nothing was selected.
        """
        issues = self.eligible_issues(limit)
        if not issues:
            self._echo("No open issues need attention.")
            return None
        selected = self.confirm_all(issues) if fix_all else self.choose(issues)
        if not selected:
            return None
        return self.process(selected, tally, interactive=interactive)

    def process(
        self,
        issues: Sequence[IssueReport],
        tally: SessionTally | None = None,
        *,
        interactive: bool = True,
    ) -> RunReport:
        """Process ``issues`` sequentially; one failing issue never stops the loop unasked."""
        report = RunReport(tally=tally or SessionTally())
        for position, issue in enumerate(issues):
            self.logger.info("Processing issue #%d: %s", issue.number, issue.title)
            failure = self._attempt(issue, report)
            if failure is None:
                continue
            report.failures.append(failure)
            self.logger.error("Failed to process issue #%d: %s", issue.number, failure.message)

            remaining = len(issues) - position - 1
            if interactive and remaining > 0:
                if not _is_yes(self._prompt("Continue with next issue? (yes/no)", "yes")):
                    report.stopped_early = True
                    break
        return report

    def _attempt(self, issue: IssueReport, report: RunReport) -> Optional[AttemptFailure]:
        try:
            outcome = self.pipeline.process(issue, report.tally)
        except TestFailure as exc:
            report.outcomes.append(
                IssueOutcome(issue.number, Resolution.ROLLED_BACK, detail=exc.output)
            )
            return AttemptFailure(issue.number, "tests", str(exc), output=exc.output)
        except ParseError as exc:
            return AttemptFailure(issue.number, "parse", str(exc), output=exc.response)
        except TransportError as exc:
            return AttemptFailure(issue.number, "transport", str(exc))
        except FilesystemError as exc:
            return AttemptFailure(issue.number, "filesystem", str(exc))
        report.outcomes.append(outcome)
        self.logger.info("Issue #%d resolved as %s", issue.number, outcome.resolution.value)
        return None

    def _prompt(self, label: str, default: str) -> str:
        if self._ask is None:
            return default
        return self._ask(label, default)


__all__ = ["AttemptFailure", "DEFAULT_ISSUE_LIMIT", "Orchestrator", "RunReport"]
