"""Tests for codefixer.orchestrator."""

from __future__ import annotations

from typing import List, Tuple

import pytest

from codefixer.accounting import SessionTally
from codefixer.errors import FilesystemError, ParseError, TestFailure, TransportError
from codefixer.models import Comment, IssueReport
from codefixer.orchestrator import Orchestrator
from codefixer.pipeline import IssueOutcome, Resolution
from codefixer.tracker.eligibility import BOT_MARKER
from tests._fixtures.fakes import FakeTracker

ISSUES = [
    IssueReport(number=1, title="Crash in src/app.py on startup", body="Traceback attached."),
    IssueReport(number=2, title="Typo in docs/index.js banner", body=""),
    IssueReport(number=3, title="Timeout in server/main.go", body="x" * 120),
]


class ScriptedPipeline:
    """Pipeline double that replays one result or exception per issue number."""

    def __init__(self, results=None) -> None:
        self.results = dict(results or {})
        self.processed: List[int] = []

    def process(self, issue: IssueReport, tally: SessionTally) -> IssueOutcome:
        self.processed.append(issue.number)
        result = self.results.get(issue.number)
        if isinstance(result, Exception):
            raise result
        tally.record_issue_handled()
        return result or IssueOutcome(issue.number, Resolution.PUBLISHED)


class ScriptedPrompt:
    def __init__(self, *answers: str) -> None:
        self.answers = list(answers)
        self.labels: List[Tuple[str, str]] = []

    def __call__(self, label: str, default: str) -> str:
        self.labels.append((label, default))
        return self.answers.pop(0)


def _orchestrator(tracker, pipeline, ask=None, service="ollama", echoed=None) -> Orchestrator:
    sink = echoed if echoed is not None else []
    return Orchestrator(tracker, pipeline, service=service, ask=ask, echo=sink.append)


def test_eligible_issues_skips_those_answered_last_by_bot() -> None:
    tracker = FakeTracker(
        ISSUES,
        comments={
            1: [Comment(1, "Is this still happening?"), Comment(2, f"*Asked by {BOT_MARKER}*")],
            2: [Comment(3, f"<sub>{BOT_MARKER}</sub>"), Comment(4, "Here are the details")],
        },
    )

    eligible = _orchestrator(tracker, ScriptedPipeline()).eligible_issues()

    assert [issue.number for issue in eligible] == [2, 3]


def test_eligible_issues_keeps_issue_when_comments_fail() -> None:
    tracker = FakeTracker(ISSUES[:1], fail_comments_for=(1,))

    eligible = _orchestrator(tracker, ScriptedPipeline()).eligible_issues()

    assert [issue.number for issue in eligible] == [1]


def test_choose_single_issue() -> None:
    prompt = ScriptedPrompt("2")
    echoed: List[str] = []

    chosen = _orchestrator(FakeTracker(), ScriptedPipeline(), ask=prompt, echoed=echoed).choose(ISSUES)

    assert chosen == [ISSUES[1]]
    assert "  1. #1 - Crash in src/app.py on startup" in echoed


def test_choose_retries_invalid_input_then_quits() -> None:
    prompt = ScriptedPrompt("9", "abc", "q")
    echoed: List[str] = []

    chosen = _orchestrator(FakeTracker(), ScriptedPipeline(), ask=prompt, echoed=echoed).choose(ISSUES)

    assert chosen is None
    assert echoed.count("Invalid selection. Please try again.") == 2


def test_choose_all_shows_estimate_and_requires_confirmation() -> None:
    prompt = ScriptedPrompt("0", "yes")
    echoed: List[str] = []

    chosen = _orchestrator(
        FakeTracker(), ScriptedPipeline(), ask=prompt, service="chatgpt", echoed=echoed
    ).choose(ISSUES)

    assert chosen == ISSUES
    assert "Estimated cost for 3 issue(s): 0.0900 kr" in echoed


def test_confirm_all_can_be_cancelled() -> None:
    prompt = ScriptedPrompt("no")

    chosen = _orchestrator(FakeTracker(), ScriptedPipeline(), ask=prompt).confirm_all(ISSUES)

    assert chosen is None


def test_process_runs_every_issue_and_collects_outcomes() -> None:
    pipeline = ScriptedPipeline(
        {2: IssueOutcome(2, Resolution.CLARIFY, detail="model asked questions")}
    )

    report = _orchestrator(FakeTracker(), pipeline).process(ISSUES)

    assert pipeline.processed == [1, 2, 3]
    assert [outcome.resolution for outcome in report.outcomes] == [
        Resolution.PUBLISHED,
        Resolution.CLARIFY,
        Resolution.PUBLISHED,
    ]
    assert report.failures == []
    assert report.tally.issues_handled == 3


@pytest.mark.parametrize(
    "error, kind",
    [
        (ParseError("bad json", response="{"), "parse"),
        (TransportError("502 from GitHub", status=502), "transport"),
        (FilesystemError("clone failed"), "filesystem"),
    ],
)
def test_failures_are_recorded_and_loop_continues_non_interactively(error: Exception, kind: str) -> None:
    pipeline = ScriptedPipeline({1: error})

    report = _orchestrator(FakeTracker(), pipeline).process(ISSUES, interactive=False)

    assert pipeline.processed == [1, 2, 3]
    assert [(failure.issue_number, failure.kind) for failure in report.failures] == [(1, kind)]
    assert [outcome.issue_number for outcome in report.outcomes] == [2, 3]


def test_test_failure_is_reported_as_rolled_back() -> None:
    pipeline = ScriptedPipeline({2: TestFailure("npm test", "1 failing")})

    report = _orchestrator(FakeTracker(), pipeline).process(ISSUES, interactive=False)

    rolled_back = [o for o in report.outcomes if o.resolution is Resolution.ROLLED_BACK]
    assert [o.issue_number for o in rolled_back] == [2]
    assert report.failures[0].kind == "tests"
    assert report.failures[0].output == "1 failing"


def test_operator_can_stop_after_failure() -> None:
    pipeline = ScriptedPipeline({1: TransportError("rate limited", status=403)})
    prompt = ScriptedPrompt("no")

    report = _orchestrator(FakeTracker(), pipeline, ask=prompt).process(ISSUES)

    assert pipeline.processed == [1]
    assert report.stopped_early is True
    assert prompt.labels == [("Continue with next issue? (yes/no)", "yes")]


def test_no_continue_prompt_after_last_issue() -> None:
    pipeline = ScriptedPipeline({3: ParseError("bad json")})
    prompt = ScriptedPrompt()

    report = _orchestrator(FakeTracker(), pipeline, ask=prompt).process(ISSUES)

    assert pipeline.processed == [1, 2, 3]
    assert report.stopped_early is False
    assert prompt.labels == []


def test_uses_supplied_tally() -> None:
    tally = SessionTally()

    report = _orchestrator(FakeTracker(), ScriptedPipeline()).process(ISSUES[:1], tally)

    assert report.tally is tally
    assert tally.issues_handled == 1


def test_run_processes_chosen_issue() -> None:
    tracker = FakeTracker(ISSUES)
    pipeline = ScriptedPipeline()

    report = _orchestrator(tracker, pipeline, ask=ScriptedPrompt("3")).run()

    assert report is not None
    assert pipeline.processed == [3]


def test_run_all_without_prompt_processes_everything() -> None:
    pipeline = ScriptedPipeline()
    echoed: List[str] = []

    report = _orchestrator(
        FakeTracker(ISSUES), pipeline, service="grok", echoed=echoed
    ).run(fix_all=True, interactive=False)

    assert report is not None
    assert pipeline.processed == [1, 2, 3]
    assert "Estimated cost for 3 issue(s): 0.0450 kr" in echoed


def test_run_with_nothing_eligible_returns_none() -> None:
    echoed: List[str] = []

    report = _orchestrator(FakeTracker([]), ScriptedPipeline(), echoed=echoed).run()

    assert report is None
    assert echoed == ["No open issues need attention."]
