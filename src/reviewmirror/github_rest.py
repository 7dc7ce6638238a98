from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from .errors import GitHubAPIError
from .models import IssueComment, PullRequest, ReviewComment, TrackerIssue
from .retry import run_with_retries

DEFAULT_API_URL = "https://api.github.com"
USER_AGENT = "review-mirror-rest/0.1.0"
HTTP_ERROR_STATUS = 400
PAGE_SIZE = 100
RETRYABLE_METHODS = frozenset({"GET"})


def _login(entry: dict[str, Any]) -> str:
    user = entry.get("user")
    if isinstance(user, dict):
        login = user.get("login")
        if isinstance(login, str):
            return login
    return ""


def _opt_int(value: Any) -> int | None:
    return value if isinstance(value, int) else None


def normalize_pull_request(entry: dict[str, Any]) -> PullRequest:
    head = entry.get("head") if isinstance(entry.get("head"), dict) else {}
    return PullRequest(
        number=int(entry["number"]),
        branch=str(head.get("ref") or entry.get("headRefName") or ""),
        author=_login(entry) or None,
    )


def normalize_issue(entry: dict[str, Any]) -> TrackerIssue:
    return TrackerIssue(
        number=int(entry["number"]),
        title=str(entry.get("title") or ""),
        state=str(entry.get("state") or "open").lower(),
        body=str(entry.get("body") or ""),
    )


def normalize_review_comment(entry: dict[str, Any]) -> ReviewComment:
    # Outdated comments lose ``line``; fall back to where they were anchored.
    line = _opt_int(entry.get("line"))
    if line is None:
        line = _opt_int(entry.get("original_line")) or 0
    start = _opt_int(entry.get("start_line"))
    if start is None and entry.get("line") is None:
        start = _opt_int(entry.get("original_start_line"))
    return ReviewComment(
        path=str(entry.get("path") or ""),
        line=line,
        body=str(entry.get("body") or ""),
        start_line=start,
        author=_login(entry),
        created_at=str(entry.get("created_at") or ""),
    )


def normalize_issue_comment(entry: dict[str, Any]) -> IssueComment:
    return IssueComment(
        body=str(entry.get("body") or ""),
        author=_login(entry),
        created_at=str(entry.get("created_at") or ""),
    )


@dataclass
class GitHubRestClient:
    """Lightweight REST client implementing :class:`~reviewmirror.models.IssueTracker`."""

    token: str
    base_url: str = DEFAULT_API_URL
    session: requests.Session | None = None
    timeout: float = 30.0
    _session: requests.Session = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()
        self._session.headers.setdefault("Authorization", f"Bearer {self.token}")
        self._session.headers.setdefault("Accept", "application/vnd.github+json")
        self._session.headers.setdefault("User-Agent", USER_AGENT)

    # ---- REST helpers -------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any | None = None,
    ) -> Any:
        url = (
            path
            if path.startswith("http")
            else f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        )

        def _run() -> Any:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._session.headers,
                timeout=self.timeout,
            )
            if response.status_code >= HTTP_ERROR_STATUS:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} failed with {response.status_code}",
                    status=response.status_code,
                    response_text=response.text,
                )
            return response

        # Writes are sent once; the poster owns comment retries.
        response = run_with_retries(_run) if method in RETRYABLE_METHODS else _run()
        if response.text:
            try:
                return response.json()
            except ValueError as exc:
                raise GitHubAPIError(
                    f"GitHub API {method} {url} returned non-JSON payload",
                    status=response.status_code,
                    response_text=response.text,
                ) from exc
        return None

    def _paginate(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        limit: int | None = None,
        items_key: str | None = None,
    ) -> list[dict[str, Any]]:
        params = dict(params or {})
        per_page = params.setdefault("per_page", PAGE_SIZE)
        params.setdefault("page", 1)
        results: list[dict[str, Any]] = []
        while True:
            data = self._request("GET", path, params=params)
            if items_key and isinstance(data, dict):
                data = data.get(items_key)
            if not isinstance(data, list):
                break
            results.extend(entry for entry in data if isinstance(entry, dict))
            if limit is not None and len(results) >= limit:
                return results[:limit]
            if len(data) < per_page:
                break
            params["page"] = params.get("page", 1) + 1
        return results

    # ---- Pull request reads -------------------------------------------
    def list_open_pull_requests(self, repo: str, *, base: str, author: str) -> list[PullRequest]:
        data = self._paginate(
            f"/repos/{repo}/pulls", params={"state": "open", "base": base}
        )
        return [
            normalize_pull_request(entry)
            for entry in data
            if _login(entry) == author
        ]

    def list_review_comments(self, repo: str, pr_number: int) -> list[ReviewComment]:
        data = self._paginate(f"/repos/{repo}/pulls/{pr_number}/comments")
        return [normalize_review_comment(entry) for entry in data]

    def list_issue_comments(self, repo: str, pr_number: int) -> list[IssueComment]:
        data = self._paginate(f"/repos/{repo}/issues/{pr_number}/comments")
        return [normalize_issue_comment(entry) for entry in data]

    # ---- Issue operations --------------------------------------------
    def search_issues(self, repo: str, query: str, *, limit: int) -> list[TrackerIssue]:
        params = {"q": f"repo:{repo} is:issue {query}", "per_page": min(limit, PAGE_SIZE)}
        data = self._paginate("/search/issues", params=params, limit=limit, items_key="items")
        return [normalize_issue(entry) for entry in data]

    def get_issue(self, repo: str, number: int) -> TrackerIssue:
        data = self._request("GET", f"/repos/{repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubAPIError(f"Unexpected payload for issue #{number}")
        return normalize_issue(data)

    def create_issue(self, repo: str, *, title: str, body: str) -> int:
        data = self._request(
            "POST", f"/repos/{repo}/issues", json_body={"title": title, "body": body}
        )
        if isinstance(data, dict):
            number = data.get("number")
            if isinstance(number, int):
                return number
        raise GitHubAPIError(f"Issue creation returned no number for {title!r}")

    def create_issue_comment(self, repo: str, number: int, body: str) -> None:
        self._request(
            "POST", f"/repos/{repo}/issues/{number}/comments", json_body={"body": body}
        )


__all__ = [
    "DEFAULT_API_URL",
    "GitHubRestClient",
    "RETRYABLE_METHODS",
    "normalize_issue",
    "normalize_issue_comment",
    "normalize_pull_request",
    "normalize_review_comment",
]
