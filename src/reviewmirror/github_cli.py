"""GitHub CLI (``gh api``) backend.

Used when no API token is present in the environment but ``gh`` is
already authenticated (typical for local runs). Every call goes through
``gh api`` so responses are plain JSON and share the normalizers of the
REST backend.
"""

from __future__ import annotations

import json
import shutil
import subprocess  # nosec B404 - subprocess is required for GitHub CLI invocation
from typing import Any

from .errors import GitHubCLIError
from .github_rest import (
    PAGE_SIZE,
    RETRYABLE_METHODS,
    _login,
    normalize_issue,
    normalize_issue_comment,
    normalize_pull_request,
    normalize_review_comment,
)
from .models import IssueComment, PullRequest, ReviewComment, TrackerIssue
from .retry import run_with_retries


class GhCliClient:
    """Implements :class:`~reviewmirror.models.IssueTracker` via ``gh api``."""

    def __init__(self, gh_path: str | None = None) -> None:
        self._gh_path = gh_path or shutil.which("gh") or "gh"

    # --- internal helpers -------------------------------------------------
    def _cmd(self, method: str, path: str, fields: dict[str, Any] | None = None) -> list[str]:
        cmd = [self._gh_path, "api", "-X", method, path.lstrip("/")]
        for key, value in (fields or {}).items():
            cmd.extend(["-f", f"{key}={value}"])
        return cmd

    def _run(self, cmd: list[str], *, retry: bool = True) -> str:
        def _call() -> str:
            try:
                return subprocess.check_output(  # nosec B603 - command uses controlled arguments
                    cmd, text=True, stderr=subprocess.STDOUT
                )
            except subprocess.CalledProcessError as exc:
                raise GitHubCLIError(
                    f"Command failed: {' '.join(cmd[:5])}", output=exc.output
                ) from exc

        return run_with_retries(_call) if retry else _call()

    def _api(self, method: str, path: str, fields: dict[str, Any] | None = None) -> Any:
        out = self._run(self._cmd(method, path, fields), retry=method in RETRYABLE_METHODS)
        if not out.strip():
            return None
        try:
            return json.loads(out)
        except json.JSONDecodeError as exc:
            raise GitHubCLIError(f"gh api {path} returned non-JSON output", output=out) from exc

    def _paginate(
        self,
        path: str,
        fields: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
        items_key: str | None = None,
    ) -> list[dict[str, Any]]:
        params = dict(fields or {})
        per_page = int(params.setdefault("per_page", PAGE_SIZE))
        page = 1
        results: list[dict[str, Any]] = []
        while True:
            params["page"] = page
            data = self._api("GET", path, params)
            if items_key and isinstance(data, dict):
                data = data.get(items_key)
            if not isinstance(data, list):
                break
            results.extend(entry for entry in data if isinstance(entry, dict))
            if limit is not None and len(results) >= limit:
                return results[:limit]
            if len(data) < per_page:
                break
            page += 1
        return results

    # --- IssueTracker ------------------------------------------------------
    def list_open_pull_requests(self, repo: str, *, base: str, author: str) -> list[PullRequest]:
        data = self._paginate(f"repos/{repo}/pulls", {"state": "open", "base": base})
        return [normalize_pull_request(e) for e in data if _login(e) == author]

    def list_review_comments(self, repo: str, pr_number: int) -> list[ReviewComment]:
        data = self._paginate(f"repos/{repo}/pulls/{pr_number}/comments")
        return [normalize_review_comment(e) for e in data]

    def list_issue_comments(self, repo: str, pr_number: int) -> list[IssueComment]:
        data = self._paginate(f"repos/{repo}/issues/{pr_number}/comments")
        return [normalize_issue_comment(e) for e in data]

    def search_issues(self, repo: str, query: str, *, limit: int) -> list[TrackerIssue]:
        fields = {"q": f"repo:{repo} is:issue {query}", "per_page": min(limit, PAGE_SIZE)}
        data = self._paginate("search/issues", fields, limit=limit, items_key="items")
        return [normalize_issue(e) for e in data]

    def get_issue(self, repo: str, number: int) -> TrackerIssue:
        data = self._api("GET", f"repos/{repo}/issues/{number}")
        if not isinstance(data, dict):
            raise GitHubCLIError(f"Unexpected payload for issue #{number}")
        return normalize_issue(data)

    def create_issue(self, repo: str, *, title: str, body: str) -> int:
        data = self._api("POST", f"repos/{repo}/issues", {"title": title, "body": body})
        if isinstance(data, dict) and isinstance(data.get("number"), int):
            return int(data["number"])
        raise GitHubCLIError(f"Issue creation returned no number for {title!r}")

    def create_issue_comment(self, repo: str, number: int, body: str) -> None:
        self._api("POST", f"repos/{repo}/issues/{number}/comments", {"body": body})


__all__ = ["GhCliClient"]
