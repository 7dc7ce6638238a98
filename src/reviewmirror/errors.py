"""Error taxonomy & redaction helpers.

Every backend failure derives from :class:`TrackerError` so the poster and
orchestrator can tell "the tracker said no" apart from programming errors.
``classify_error`` maps any exception onto a small category set used in
per-pull-request failure records and structured log lines.

Public API:
- TrackerError / GitHubAPIError / GitHubCLIError
- classify_error(exc) -> ErrorInfo
- redact(text) -> str
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

_SENSITIVE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"ghp_[A-Za-z0-9]{20,40}"),  # GitHub classic tokens
    re.compile(r"github_pat_\w{20,}"),  # GitHub fine-grained tokens
    re.compile(r"gh[osu]_[A-Za-z0-9]{20,40}"),  # OAuth / app installation tokens
    re.compile(r"(?i)(authorization:\s*bearer\s+)\S+"),
]

_REDACTION_PLACEHOLDER = "<redacted>"

_TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


class TrackerError(RuntimeError):
    """Raised when the issue tracker rejects or fails an operation."""


class GitHubAPIError(TrackerError):
    """Raised when the GitHub REST API returns an error."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        response_text: str | None = None,
    ):
        super().__init__(message)
        self.status = status
        self.response_text = response_text


class GitHubCLIError(TrackerError):
    """Raised when a ``gh`` invocation exits non-zero."""

    def __init__(self, message: str, *, output: str | None = None):
        super().__init__(message)
        self.output = output


@dataclass
class ErrorInfo:
    category: str
    message: str
    original_type: str
    transient: bool = False

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def redact(text: str) -> str:
    """Replace token-looking substrings with a placeholder."""
    if not text:
        return text
    redacted = text
    for pat in _SENSITIVE_PATTERNS:
        if pat.groups:
            redacted = pat.sub(lambda m: m.group(1) + _REDACTION_PLACEHOLDER, redacted)
        else:
            redacted = pat.sub(_REDACTION_PLACEHOLDER, redacted)
    return redacted


def classify_error(exc: BaseException) -> ErrorInfo:
    """Best-effort classification of an exception.

    - rate limit wording -> 'github.rate_limit' (transient)
    - abuse detection wording -> 'github.abuse' (transient)
    - timeouts / resets / 5xx -> 'network' (transient)
    - other GitHubAPIError -> 'github.api'
    - JSON / parse failures -> 'parse'
    - fallback -> 'generic'
    """
    msg = str(exc) if exc else ""
    extra = getattr(exc, "response_text", None) or getattr(exc, "output", None) or ""
    low = f"{msg} {extra}".lower()
    name = exc.__class__.__name__

    if "rate limit" in low or "secondary rate" in low:
        return ErrorInfo("github.rate_limit", redact(msg), name, transient=True)
    if "abuse" in low:
        return ErrorInfo("github.abuse", redact(msg), name, transient=True)
    status = getattr(exc, "status", None)
    if status in _TRANSIENT_STATUSES or any(
        k in low for k in ("timeout", "timed out", "connection reset", "temporarily unavailable")
    ):
        return ErrorInfo("network", redact(msg), name, transient=True)
    if isinstance(exc, GitHubAPIError):
        return ErrorInfo("github.api", redact(msg), name)
    if isinstance(exc, ValueError) and ("json" in low or "expecting" in low):
        return ErrorInfo("parse", redact(msg), name)
    return ErrorInfo("generic", redact(msg), name)


__all__ = [
    "ErrorInfo",
    "GitHubAPIError",
    "GitHubCLIError",
    "TrackerError",
    "classify_error",
    "redact",
]
