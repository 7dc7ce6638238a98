from __future__ import annotations

from .models import ReviewComment


def format_location(comment: ReviewComment) -> str:
    start = comment.start_line
    if start is not None and start != comment.line:
        return f"`{comment.path}` (lines {start}-{comment.line})"
    return f"`{comment.path}` (line {comment.line})"


def format_inline_comment(comment: ReviewComment) -> str:
    """Header line, blank line, then the bot's body verbatim."""
    return f"{format_location(comment)}\n\n{comment.body}\n"


def format_additional_comment(body: str) -> str:
    return f"{body}\n"


__all__ = ["format_additional_comment", "format_inline_comment", "format_location"]
