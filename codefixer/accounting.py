"""Run-scoped counters for model usage and pipeline outcomes."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List

# Approximate cost per model call, in SEK.
COST_PER_CALL: Dict[str, float] = {
    "chatgpt": 0.02,
    "openai": 0.02,
    "grok": 0.01,
    "xai": 0.01,
    "ollama": 0.0,
}
_UNKNOWN_SERVICE_COST = 0.001
# An issue typically needs one or two model calls.
_CALLS_PER_ISSUE = 1.5


@dataclass(frozen=True)
class TallySnapshot:
    """Immutable copy of the tally counters."""

    model_calls: int
    estimated_cost: float
    issues_handled: int
    changes_published: int
    questions_asked: int
    duration: float


class SessionTally:
    """Accumulates counts and costs across one run; safe under concurrent increments."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._started = clock()
        self._model_calls = 0
        self._estimated_cost = 0.0
        self._issues_handled = 0
        self._changes_published = 0
        self._questions_asked = 0

    def record_model_call(self, service: str) -> None:
        with self._lock:
            self._model_calls += 1
            self._estimated_cost += COST_PER_CALL.get(service, 0.0)

    def record_issue_handled(self) -> None:
        with self._lock:
            self._issues_handled += 1

    def record_change_published(self) -> None:
        with self._lock:
            self._changes_published += 1

    def record_question_asked(self) -> None:
        with self._lock:
            self._questions_asked += 1

    @property
    def model_calls(self) -> int:
        return self.snapshot().model_calls

    @property
    def estimated_cost(self) -> float:
        return self.snapshot().estimated_cost

    @property
    def issues_handled(self) -> int:
        return self.snapshot().issues_handled

    @property
    def changes_published(self) -> int:
        return self.snapshot().changes_published

    @property
    def questions_asked(self) -> int:
        return self.snapshot().questions_asked

    def snapshot(self) -> TallySnapshot:
        with self._lock:
            return TallySnapshot(
                model_calls=self._model_calls,
                estimated_cost=self._estimated_cost,
                issues_handled=self._issues_handled,
                changes_published=self._changes_published,
                questions_asked=self._questions_asked,
                duration=self._clock() - self._started,
            )

    def render_summary(self) -> List[str]:
        """Return the end-of-run report as display lines."""
        snap = self.snapshot()
        lines = [
            "Session Summary",
            f"Duration: {round(snap.duration)}s",
            f"Model calls: {snap.model_calls}",
            f"Issues handled: {snap.issues_handled}",
            f"Change requests opened: {snap.changes_published}",
            f"Questions asked: {snap.questions_asked}",
        ]
        if snap.estimated_cost > 0:
            lines.append(f"Estimated cost: {snap.estimated_cost:.4f} kr")
        else:
            lines.append("Cost: Free (local model)")
        return lines


def estimate_cost(issue_count: int, service: str) -> float:
    """Estimate the cost of processing ``issue_count`` issues with ``service``."""
    cost = COST_PER_CALL.get(service, _UNKNOWN_SERVICE_COST)
    return issue_count * cost * _CALLS_PER_ISSUE


__all__ = ["COST_PER_CALL", "SessionTally", "TallySnapshot", "estimate_cost"]
