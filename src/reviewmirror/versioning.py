"""Tracking issue titles and per-branch sync state resolution.

Titles follow ``Code Review {version} - {branch}``. The version is the
only state that lives in the title; hash and timestamp live in the hidden
metadata block of the body (see :mod:`reviewmirror.metadata`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .logging import get_logger
from .metadata import KEY_CONTENT_HASH, KEY_SYNCED_AT, extract_metadata
from .models import IssueTracker, TrackerIssue

TITLE_PREFIX = "Code Review"
DEFAULT_SEARCH_LIMIT = 100


def format_title(version: int, branch: str) -> str:
    if version < 1:
        raise ValueError(f"version must be positive, got {version}")
    return f"{TITLE_PREFIX} {version} - {branch}"


def title_pattern(branch: str) -> re.Pattern[str]:
    return re.compile(rf"^{re.escape(TITLE_PREFIX)} ([0-9]+) - {re.escape(branch)}$")


def parse_title_version(title: str | None, branch: str) -> int | None:
    """Return the version encoded in ``title`` for ``branch``.

    ``None`` for titles of other branches (including prefix matches such
    as ``feature-a-2`` when looking for ``feature-a``) and malformed ones.
    """
    if not title:
        return None
    match = title_pattern(branch).match(title)
    if not match:
        return None
    version = int(match.group(1))
    return version if version > 0 else None


def search_query(branch: str) -> str:
    return f'"{TITLE_PREFIX}" in:title "{branch}"'


@dataclass(frozen=True)
class SyncState:
    version: int = 0
    issue_number: int | None = None
    issue_state: str | None = None
    last_hash: str = ""
    last_synced_at: str = ""

    @property
    def next_version(self) -> int:
        return self.version + 1

    @property
    def has_prior(self) -> bool:
        return self.version > 0


def highest_version(issues: list[TrackerIssue], branch: str) -> tuple[int, TrackerIssue | None]:
    best_version = 0
    best: TrackerIssue | None = None
    for issue in issues:
        version = parse_title_version(issue.title, branch)
        if version is not None and version > best_version:
            best_version = version
            best = issue
    return best_version, best


def resolve_state(
    tracker: IssueTracker,
    repo: str,
    branch: str,
    *,
    search_limit: int = DEFAULT_SEARCH_LIMIT,
) -> SyncState:
    """Reconstruct the latest :class:`SyncState` for ``branch`` from the tracker.

    Search results may carry truncated bodies, so once the highest version
    is known the issue is fetched again by number and the metadata is read
    from that full body only.
    """
    log = get_logger()
    candidates = tracker.search_issues(repo, search_query(branch), limit=search_limit)
    version, latest = highest_version(candidates, branch)
    if latest is None:
        log.info(f"No existing versions found for branch {branch}", branch=branch)
        return SyncState()

    full = tracker.get_issue(repo, latest.number)
    state = SyncState(
        version=version,
        issue_number=latest.number,
        issue_state=latest.state,
        last_hash=extract_metadata(full.body, KEY_CONTENT_HASH),
        last_synced_at=extract_metadata(full.body, KEY_SYNCED_AT),
    )
    log.info(
        f"Found existing version {version} (issue #{latest.number}, {latest.state})",
        branch=branch,
        version=version,
        issue_number=latest.number,
        last_synced_at=state.last_synced_at,
    )
    return state


__all__ = [
    "DEFAULT_SEARCH_LIMIT",
    "SyncState",
    "TITLE_PREFIX",
    "format_title",
    "highest_version",
    "parse_title_version",
    "resolve_state",
    "search_query",
    "title_pattern",
]
