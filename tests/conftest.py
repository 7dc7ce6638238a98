"""Pytest configuration for review-mirror tests.

Ensures the in-repo `src` directory is on `sys.path` so the package can be
imported without an editable install, and provides an in-memory issue
tracker that records every mutation.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from reviewmirror.config import MirrorConfig  # noqa: E402
from reviewmirror.errors import TrackerError  # noqa: E402
from reviewmirror.models import (  # noqa: E402
    IssueComment,
    PullRequest,
    ReviewComment,
    TrackerIssue,
)

BOT = "greptile-apps[bot]"
UPSTREAM = "acme/app"
DOWNSTREAM = "acme/app-dev"


class FakeTracker:
    """In-memory stand-in for the hosting platform."""

    def __init__(self, *, search_body_limit: int | None = None) -> None:
        self.pull_requests: list[PullRequest] = []
        self.review_comments: dict[int, list[ReviewComment]] = {}
        self.issue_comments: dict[int, list[IssueComment]] = {}
        self.issues: dict[int, TrackerIssue] = {}
        self.posted: dict[int, list[str]] = {}
        self.search_body_limit = search_body_limit
        self.search_bodies: dict[int, str] = {}
        self.comment_failures = 0
        self.fail_review_comments_for: set[int] = set()
        self.calls: list[tuple[str, object]] = []
        self._next_number = 100

    # --- helpers used by tests -------------------------------------------
    def add_issue(self, title: str, body: str = "", state: str = "open") -> TrackerIssue:
        self._next_number += 1
        issue = TrackerIssue(number=self._next_number, title=title, state=state, body=body)
        self.issues[issue.number] = issue
        return issue

    def titles(self) -> list[str]:
        return [issue.title for issue in self.issues.values()]

    # --- IssueTracker --------------------------------------------------------
    def list_open_pull_requests(self, repo: str, *, base: str, author: str) -> list[PullRequest]:
        self.calls.append(("list_prs", (repo, base, author)))
        return [pr for pr in self.pull_requests if pr.author in (None, author)]

    def search_issues(self, repo: str, query: str, *, limit: int) -> list[TrackerIssue]:
        self.calls.append(("search", query))
        out = []
        for issue in self.issues.values():
            if "Code Review" not in issue.title:
                continue
            body = self.search_bodies.get(issue.number, issue.body)
            if self.search_body_limit is not None:
                body = body[: self.search_body_limit]
            out.append(TrackerIssue(issue.number, issue.title, issue.state, body))
        return out[:limit]

    def get_issue(self, repo: str, number: int) -> TrackerIssue:
        self.calls.append(("get_issue", number))
        return self.issues[number]

    def list_review_comments(self, repo: str, pr_number: int) -> list[ReviewComment]:
        if pr_number in self.fail_review_comments_for:
            raise TrackerError(f"GitHub API GET pulls/{pr_number}/comments failed with 404")
        return list(self.review_comments.get(pr_number, []))

    def list_issue_comments(self, repo: str, pr_number: int) -> list[IssueComment]:
        return list(self.issue_comments.get(pr_number, []))

    def create_issue(self, repo: str, *, title: str, body: str) -> int:
        self.calls.append(("create_issue", title))
        return self.add_issue(title, body).number

    def create_issue_comment(self, repo: str, number: int, body: str) -> None:
        self.calls.append(("comment", number))
        if self.comment_failures > 0:
            self.comment_failures -= 1
            raise TrackerError("GitHub API POST comments failed with 502")
        self.posted.setdefault(number, []).append(body)


class Clock:
    def __init__(self, start: str = "2026-01-01T00:10:00Z") -> None:
        self.now = _ts(start)

    def set(self, value: str) -> None:
        self.now = _ts(value)

    def __call__(self) -> datetime:
        return self.now


def _ts(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def cfg() -> MirrorConfig:
    return MirrorConfig(
        upstream_repo=UPSTREAM,
        downstream_repo=DOWNSTREAM,
        base_branch="staging",
        author="dev",
        bot_login=BOT,
        comment_delay=0.0,
    )


@pytest.fixture
def no_sleep() -> list[float]:
    """Collects requested sleeps instead of sleeping."""
    return []


@pytest.fixture(autouse=True)
def _fresh_logger(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each test gets a logger bound to the stdout it runs under."""
    import reviewmirror.logging as rm_logging

    monkeypatch.setattr(rm_logging, "_GLOBAL", None)
