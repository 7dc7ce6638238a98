"""Split bot comments into the ALL set (hashing) and the NEW set (posting).

Both passes share :func:`select_comments`; the only difference is the
``since`` watermark, which is empty for the ALL pass and for a first sync.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TypeVar

from .logging import get_logger
from .models import IssueComment, ReviewComment

DEFAULT_ADDITIONAL_MARKER = "Additional Comments"
DEFAULT_FOOTER_MARKER = "Edit Code Review Agent Settings"

_Timestamped = TypeVar("_Timestamped", ReviewComment, IssueComment)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into aware UTC."""
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _safe_timestamp(value: str | None) -> datetime | None:
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def filter_since(items: Iterable[_Timestamped], since: str | None) -> list[_Timestamped]:
    """Keep items created strictly after ``since``; everything when it is empty.

    A watermark that does not parse (hand-edited or cut-off metadata) is
    compared as a plain string against ``created_at``, like GitHub's own
    lexically ordered ISO timestamps.
    """
    if not since:
        return list(items)
    watermark = _safe_timestamp(since)
    if watermark is None:
        get_logger().warning(
            f"Unparseable SYNCED_AT {since!r}; comparing timestamps as strings",
            synced_at=since,
        )
    out: list[_Timestamped] = []
    for item in items:
        created = _safe_timestamp(item.created_at)
        if watermark is not None and created is not None:
            newer = created > watermark
        else:
            newer = item.created_at > since
        if newer:
            out.append(item)
    return out


def strip_footer(body: str, footer_marker: str) -> str:
    kept = [line for line in body.split("\n") if footer_marker not in line]
    return "\n".join(kept).rstrip("\n")


def reduce_additional(
    comments: Iterable[IssueComment],
    marker: str = DEFAULT_ADDITIONAL_MARKER,
    footer_marker: str = DEFAULT_FOOTER_MARKER,
) -> str:
    """Return the last marker-bearing comment that survives footer stripping.

    Earlier candidates in the same window are dropped: only one additional
    comment is ever mirrored per sync.
    """
    chosen = ""
    for comment in comments:
        if marker not in comment.body:
            continue
        cleaned = strip_footer(comment.body, footer_marker)
        if cleaned.strip():
            chosen = cleaned
    return chosen


@dataclass(frozen=True)
class CommentSelection:
    inline: list[ReviewComment] = field(default_factory=list)
    additional_body: str = ""

    @property
    def inline_count(self) -> int:
        return len(self.inline)

    @property
    def has_additional(self) -> bool:
        return bool(self.additional_body)

    @property
    def additional_count(self) -> int:
        return 1 if self.has_additional else 0

    @property
    def total(self) -> int:
        return self.inline_count + self.additional_count


def select_comments(
    inline: Sequence[ReviewComment],
    issue_comments: Sequence[IssueComment],
    since: str | None = "",
    *,
    marker: str = DEFAULT_ADDITIONAL_MARKER,
    footer_marker: str = DEFAULT_FOOTER_MARKER,
) -> CommentSelection:
    return CommentSelection(
        inline=filter_since(inline, since),
        additional_body=reduce_additional(
            filter_since(issue_comments, since), marker, footer_marker
        ),
    )


__all__ = [
    "CommentSelection",
    "DEFAULT_ADDITIONAL_MARKER",
    "DEFAULT_FOOTER_MARKER",
    "filter_since",
    "parse_timestamp",
    "reduce_additional",
    "select_comments",
    "strip_footer",
]
