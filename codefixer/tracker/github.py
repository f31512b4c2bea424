"""GitHub REST client covering the issue operations the pipeline needs."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..errors import TransportError
from ..logging import get_logger
from ..models import Comment, IssueReport
from ..transport import request_json

API = "https://api.github.com"
TRACKER_TIMEOUT = 30.0


class GitHubTracker:
    """Issue tracker for a single ``owner/name`` repository."""

    def __init__(
        self,
        token: str,
        owner: str,
        name: str,
        *,
        base_url: str = API,
        request_timeout: float = TRACKER_TIMEOUT,
    ) -> None:
        self.owner = owner
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout
        self._token = token
        self.logger = get_logger("tracker")

    def list_open_issues(self, limit: int = 100) -> List[IssueReport]:
        """Return open issues, excluding pull requests the endpoint also lists."""
        payload = self._call("GET", f"/issues?state=open&per_page={limit}")
        if not isinstance(payload, list):
            raise TransportError("GitHub returned an unexpected issue listing")
        issues: List[IssueReport] = []
        for item in payload:
            if not isinstance(item, dict) or item.get("pull_request") is not None:
                continue
            issues.append(_issue_from_payload(item))
        return issues

    def get_issue(self, number: int) -> IssueReport:
        payload = self._call("GET", f"/issues/{number}")
        if not isinstance(payload, dict):
            raise TransportError(f"GitHub returned an unexpected payload for issue #{number}")
        return _issue_from_payload(payload)

    def get_comments(self, number: int) -> List[Comment]:
        payload = self._call("GET", f"/issues/{number}/comments")
        if not isinstance(payload, list):
            raise TransportError(f"GitHub returned unexpected comments for issue #{number}")
        return [_comment_from_payload(item) for item in payload if isinstance(item, dict)]

    def add_comment(self, number: int, text: str) -> None:
        self._call("POST", f"/issues/{number}/comments", {"body": text}, expected=(201,))
        self.logger.info("Commented on issue #%d", number)

    def close_issue(self, number: int) -> None:
        self._call("PATCH", f"/issues/{number}", {"state": "closed"})
        self.logger.info("Closed issue #%d", number)

    def create_change_request(self, title: str, body: str, head: str, base: str) -> str:
        """Open a pull request and return its URL."""
        payload = self._call(
            "POST",
            "/pulls",
            {"title": title, "body": body, "head": head, "base": base},
            expected=(201,),
        )
        url = payload.get("html_url") if isinstance(payload, dict) else None
        if not isinstance(url, str):
            raise TransportError("GitHub did not return a pull request URL")
        return url

    def _call(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        *,
        expected: tuple[int, ...] = (200,),
    ) -> Any:
        return request_json(
            method,
            f"{self.base_url}/repos/{self.owner}/{self.name}{path}",
            headers={
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/vnd.github.v3+json",
            },
            payload=body,
            timeout=self.request_timeout,
            expected=expected,
            label="GitHub API",
        )


def _issue_from_payload(item: Dict[str, Any]) -> IssueReport:
    return IssueReport(
        number=int(item.get("number", 0)),
        title=str(item.get("title") or ""),
        body=str(item.get("body") or ""),
        state=str(item.get("state") or "open"),
        url=item.get("html_url") if isinstance(item.get("html_url"), str) else None,
    )


def _comment_from_payload(item: Dict[str, Any]) -> Comment:
    user = item.get("user")
    author = user.get("login") if isinstance(user, dict) else None
    return Comment(
        id=int(item.get("id", 0)),
        body=str(item.get("body") or ""),
        author=author if isinstance(author, str) else None,
        created_at=item.get("created_at") if isinstance(item.get("created_at"), str) else None,
    )


__all__ = ["API", "GitHubTracker", "TRACKER_TIMEOUT"]
