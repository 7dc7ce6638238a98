"""Sync orchestration: one tracking issue version per genuinely new review.

For every qualifying upstream pull request the orchestrator walks

    RESOLVED -> HASHED -> SKIPPED_UNCHANGED
                       -> SKIPPED_EMPTY
                       -> ISSUE_CREATED -> COMMENTS_POSTED

Each pull request is its own failure domain: an exception while handling
one is classified, logged and recorded, and the loop moves on.
"""

from __future__ import annotations

import json
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import MirrorConfig
from .errors import classify_error
from .fingerprint import compute_content_hash
from .logging import StructuredLogger, get_logger
from .metadata import MetadataBlock, format_synced_at, render_metadata
from .models import IssueComment, IssueTracker, PullRequest, ReviewComment
from .poster import CommentPoster
from .rendering import format_additional_comment, format_inline_comment
from .selector import CommentSelection, select_comments
from .ux import print_annotation
from .versioning import SyncState, format_title, resolve_state

STATUS_CREATED = "created"
STATUS_PLANNED = "planned"
STATUS_SKIPPED_UNCHANGED = "skipped_unchanged"
STATUS_SKIPPED_EMPTY = "skipped_empty"
STATUS_FAILED = "failed"
STATUSES = (
    STATUS_CREATED,
    STATUS_PLANNED,
    STATUS_SKIPPED_UNCHANGED,
    STATUS_SKIPPED_EMPTY,
    STATUS_FAILED,
)


@dataclass
class PullRequestResult:
    pr_number: int
    branch: str
    status: str
    version: int | None = None
    issue_number: int | None = None
    content_hash: str | None = None
    posted: int = 0
    total: int = 0
    error: dict[str, Any] | None = None

    @property
    def shortfall(self) -> int:
        return max(0, self.total - self.posted)


@dataclass
class SyncSummary:
    dry_run: bool = False
    results: list[PullRequestResult] = field(default_factory=list)
    generated_at: str = ""

    @property
    def totals(self) -> dict[str, int]:
        counts = {status: 0 for status in STATUSES}
        for result in self.results:
            counts[result.status] += 1
        counts["pull_requests"] = len(self.results)
        counts["comments_posted"] = sum(r.posted for r in self.results)
        counts["comments_total"] = sum(r.total for r in self.results)
        return counts

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "dry_run": self.dry_run,
            "totals": self.totals,
            "results": [asdict(r) for r in self.results],
        }


def write_summary(summary: SyncSummary, path: str | Path) -> Path:
    sp = Path(path)
    sp.parent.mkdir(parents=True, exist_ok=True)
    sp.write_text(json.dumps(summary.to_dict(), indent=2) + "\n", encoding="utf-8")
    return sp


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReviewMirror:
    def __init__(
        self,
        cfg: MirrorConfig,
        tracker: IssueTracker,
        *,
        poster: CommentPoster | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
        logger: StructuredLogger | None = None,
    ) -> None:
        cfg.validate()
        self.cfg = cfg
        self.tracker = tracker
        self._clock = clock
        self._sleep = sleep
        self._logger = logger or get_logger()
        self.poster = poster or CommentPoster(
            tracker,
            cfg.downstream_repo or "",
            attempts=cfg.post_attempts,
            backoff_step=cfg.backoff_step,
            sleep=sleep,
        )

    @property
    def upstream(self) -> str:
        return self.cfg.upstream_repo or ""

    @property
    def downstream(self) -> str:
        return self.cfg.downstream_repo or ""

    # --- discovery -----------------------------------------------------------
    def list_pull_requests(self) -> list[PullRequest]:
        return self.tracker.list_open_pull_requests(
            self.upstream, base=self.cfg.base_branch or "", author=self.cfg.author or ""
        )

    def resolve(self, branch: str) -> SyncState:
        return resolve_state(
            self.tracker, self.downstream, branch, search_limit=self.cfg.search_limit
        )

    def fetch_bot_comments(self, pr: PullRequest) -> tuple[list[ReviewComment], list[IssueComment]]:
        bot = self.cfg.bot_login
        inline = [
            c for c in self.tracker.list_review_comments(self.upstream, pr.number) if c.author == bot
        ]
        conversation = [
            c for c in self.tracker.list_issue_comments(self.upstream, pr.number) if c.author == bot
        ]
        return inline, conversation

    def _select(
        self, inline: list[ReviewComment], conversation: list[IssueComment], since: str
    ) -> CommentSelection:
        return select_comments(
            inline,
            conversation,
            since,
            marker=self.cfg.additional_marker,
            footer_marker=self.cfg.footer_marker,
        )

    # --- main loop -----------------------------------------------------------
    def run(self, *, dry_run: bool = False) -> SyncSummary:
        summary = SyncSummary(dry_run=dry_run)
        with self._logger.timed_operation("sync", dry_run=dry_run):
            prs = self.list_pull_requests()
            if not prs:
                self._logger.info(
                    f"No open PRs targeting {self.cfg.base_branch} by {self.cfg.author}. Nothing to do."
                )
            for pr in prs:
                summary.results.append(self._sync_isolated(pr, dry_run=dry_run))
        summary.generated_at = format_synced_at(self._clock())
        self._logger.log_operation("sync_complete", totals=summary.totals)
        return summary

    def _sync_isolated(self, pr: PullRequest, *, dry_run: bool) -> PullRequestResult:
        try:
            return self.sync_pull_request(pr, dry_run=dry_run)
        except Exception as exc:
            info = classify_error(exc)
            self._logger.log_error(
                f"PR #{pr.number} sync failed",
                error=info.message,
                category=info.category,
                transient=info.transient,
                original_type=info.original_type,
                pr_number=pr.number,
            )
            print_annotation("warning", f"Sync failed for PR #{pr.number}: {info.message}")
            return PullRequestResult(
                pr_number=pr.number,
                branch=pr.branch,
                status=STATUS_FAILED,
                error=info.as_dict(),
            )

    def sync_pull_request(self, pr: PullRequest, *, dry_run: bool = False) -> PullRequestResult:
        log = self._logger
        log.info(f"Processing PR #{pr.number} (branch: {pr.branch})", pr_number=pr.number)

        state = self.resolve(pr.branch)
        inline, conversation = self.fetch_bot_comments(pr)
        everything = self._select(inline, conversation, "")
        if state.last_synced_at:
            log.debug(f"Filtering comments created after {state.last_synced_at}")
            fresh = self._select(inline, conversation, state.last_synced_at)
        else:
            fresh = everything

        current_hash = compute_content_hash(everything.inline, everything.additional_body)
        log.debug(f"Current content hash: {current_hash}", previous=state.last_hash)
        result = PullRequestResult(
            pr_number=pr.number,
            branch=pr.branch,
            status=STATUS_SKIPPED_UNCHANGED,
            version=state.version or None,
            issue_number=state.issue_number,
            content_hash=current_hash,
        )

        if state.last_hash and current_hash == state.last_hash:
            log.log_pr_action(
                "skipped_unchanged",
                pr.number,
                branch=pr.branch,
                reason=f"Content unchanged from version {state.version}",
            )
            return result

        if fresh.total == 0:
            result.status = STATUS_SKIPPED_EMPTY
            log.log_pr_action(
                "skipped_empty",
                pr.number,
                branch=pr.branch,
                reason="No new review comments since last sync",
            )
            return result

        log.info(
            f"Found {fresh.inline_count} new inline + {fresh.additional_count} new additional"
            f" = {fresh.total} total new comment(s).",
            pr_number=pr.number,
        )
        return self._publish(pr, state, fresh, current_hash, result, dry_run=dry_run)

    def _publish(
        self,
        pr: PullRequest,
        state: SyncState,
        fresh: CommentSelection,
        current_hash: str,
        result: PullRequestResult,
        *,
        dry_run: bool,
    ) -> PullRequestResult:
        log = self._logger
        next_version = state.next_version
        title = format_title(next_version, pr.branch)
        block = MetadataBlock(
            pr_number=pr.number,
            content_hash=current_hash,
            inline_comments=fresh.inline_count,
            additional_comments=fresh.additional_count,
            synced_at=format_synced_at(self._clock()),
            version=next_version,
        )
        result.version = next_version
        result.total = fresh.total

        if dry_run:
            result.status = STATUS_PLANNED
            result.issue_number = None
            log.log_pr_action(
                "planned", pr.number, branch=pr.branch, dry_run=True, title=title, total=fresh.total
            )
            return result

        if state.has_prior:
            log.info(
                f"Creating new version {next_version} (previous: #{state.issue_number}, {state.issue_state})"
            )
        else:
            log.info(f"Creating first version for branch {pr.branch}")
        issue_number = self.tracker.create_issue(
            self.downstream, title=title, body=render_metadata(block)
        )
        result.status = STATUS_CREATED
        result.issue_number = issue_number
        log.log_pr_action(
            "issue_created", pr.number, branch=pr.branch, issue_number=issue_number, title=title
        )

        self.poster.reset()
        for comment in fresh.inline:
            self.poster.post(
                issue_number,
                format_inline_comment(comment),
                label=f"comment on {comment.path}",
            )
            self._sleep(self.cfg.comment_delay)
        if fresh.has_additional:
            self.poster.post(
                issue_number,
                format_additional_comment(fresh.additional_body),
                label="additional comment",
            )
        result.posted = self.poster.posted

        log.log_pr_action(
            "comments_posted",
            pr.number,
            issue_number=issue_number,
            posted=result.posted,
            total=result.total,
        )
        log.info(f"Posted {result.posted}/{result.total} comments to issue #{issue_number}.")
        if result.posted != result.total:
            message = f"Only posted {result.posted} of {result.total} comments for PR #{pr.number}."
            log.warning(message, pr_number=pr.number)
            print_annotation("warning", message)
        return result

    # --- read-only inspection --------------------------------------------------
    def status(self) -> list[tuple[PullRequest, SyncState | None, str | None]]:
        """Resolve the current :class:`SyncState` of every qualifying pull request."""
        rows: list[tuple[PullRequest, SyncState | None, str | None]] = []
        for pr in self.list_pull_requests():
            try:
                rows.append((pr, self.resolve(pr.branch), None))
            except Exception as exc:
                info = classify_error(exc)
                self._logger.log_error(
                    f"PR #{pr.number} state resolution failed",
                    error=info.message,
                    category=info.category,
                )
                rows.append((pr, None, info.message))
        return rows


__all__ = [
    "PullRequestResult",
    "ReviewMirror",
    "STATUSES",
    "STATUS_CREATED",
    "STATUS_FAILED",
    "STATUS_PLANNED",
    "STATUS_SKIPPED_EMPTY",
    "STATUS_SKIPPED_UNCHANGED",
    "SyncSummary",
    "write_summary",
]
