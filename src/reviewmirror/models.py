from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PullRequest:
    """An open upstream pull request selected for mirroring."""

    number: int
    branch: str
    author: str | None = None


@dataclass(frozen=True)
class ReviewComment:
    """Inline review comment anchored to a diff range.

    ``line`` is the end line and always present; ``start_line`` is only
    set for multi-line comments.
    """

    path: str
    line: int
    body: str
    start_line: int | None = None
    author: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class IssueComment:
    """Issue-level (conversation) comment on a pull request."""

    body: str
    author: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class TrackerIssue:
    number: int
    title: str
    state: str = "open"
    body: str = ""


class IssueTracker(Protocol):
    """Operations consumed from the hosting platform.

    Implementations raise :class:`reviewmirror.errors.TrackerError` (or a
    subclass) on failure.
    """

    def list_open_pull_requests(
        self, repo: str, *, base: str, author: str
    ) -> list[PullRequest]: ...  # pragma: no cover - structural only

    def search_issues(
        self, repo: str, query: str, *, limit: int
    ) -> list[TrackerIssue]: ...  # pragma: no cover

    def get_issue(self, repo: str, number: int) -> TrackerIssue: ...  # pragma: no cover

    def list_review_comments(
        self, repo: str, pr_number: int
    ) -> list[ReviewComment]: ...  # pragma: no cover

    def list_issue_comments(
        self, repo: str, pr_number: int
    ) -> list[IssueComment]: ...  # pragma: no cover

    def create_issue(self, repo: str, *, title: str, body: str) -> int: ...  # pragma: no cover

    def create_issue_comment(
        self, repo: str, number: int, body: str
    ) -> None: ...  # pragma: no cover


__all__ = [
    "IssueComment",
    "IssueTracker",
    "PullRequest",
    "ReviewComment",
    "TrackerIssue",
]
