"""Per-comment posting with a bounded retry budget.

Each comment gets its own fresh budget of ``attempts`` tries. After a
failed attempt ``n`` (other than the last) the poster waits
``n * backoff_step`` seconds, so the default 3 attempts wait 2s then 4s.
Exhausting the budget is recorded as a shortfall, never raised: one lost
comment must not block the comments after it.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import requests

from .errors import TrackerError, redact
from .logging import get_logger
from .models import IssueTracker

DEFAULT_ATTEMPTS = 3
DEFAULT_BACKOFF_STEP = 2.0


class CommentPoster:
    def __init__(
        self,
        tracker: IssueTracker,
        repo: str,
        *,
        attempts: int = DEFAULT_ATTEMPTS,
        backoff_step: float = DEFAULT_BACKOFF_STEP,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.tracker = tracker
        self.repo = repo
        self.attempts = attempts
        self.backoff_step = backoff_step
        self._sleep = sleep
        self.posted = 0
        self.failed = 0

    def reset(self) -> None:
        self.posted = 0
        self.failed = 0

    def post(self, issue_number: int, body: str, *, label: str = "comment") -> bool:
        log = get_logger()
        for attempt in range(1, self.attempts + 1):
            try:
                self.tracker.create_issue_comment(self.repo, issue_number, body)
            except (TrackerError, requests.RequestException) as exc:
                log.warning(
                    f"Retry {attempt}/{self.attempts} for {label}...",
                    issue_number=issue_number,
                    attempt=attempt,
                    error=redact(str(exc)),
                )
                if attempt < self.attempts:
                    self._sleep(attempt * self.backoff_step)
                continue
            self.posted += 1
            return True
        self.failed += 1
        log.log_error(
            f"Giving up on {label} after {self.attempts} attempts",
            issue_number=issue_number,
        )
        return False


__all__ = ["CommentPoster", "DEFAULT_ATTEMPTS", "DEFAULT_BACKOFF_STEP"]
