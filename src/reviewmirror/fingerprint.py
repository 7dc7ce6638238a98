"""Content fingerprint over a pull request's bot review state.

The digest covers ALL current bot comments, not only the ones new since
the last sync, so an unchanged review always reproduces the hash stored in
the latest tracking issue regardless of the order the API listed them in.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

from .models import ReviewComment


def normalize_inline(comments: Iterable[ReviewComment]) -> list[dict[str, Any]]:
    return [
        {
            "path": c.path,
            "start_line": c.start_line,
            "line": c.line,
            "body": c.body,
        }
        for c in comments
    ]


def _sort_key(entry: dict[str, Any]) -> tuple[str, int, int, str]:
    start = entry["start_line"]
    return (
        entry["path"],
        entry["line"],
        -1 if start is None else start,
        entry["body"],
    )


def canonical_payload(comments: Iterable[ReviewComment], additional_body: str = "") -> str:
    """Serialize comments + additional text into the exact string that gets hashed."""
    ordered = sorted(normalize_inline(comments), key=_sort_key)
    rendered = json.dumps(ordered, indent=2, sort_keys=True, ensure_ascii=False)
    return rendered + (additional_body or "")


def compute_content_hash(comments: Iterable[ReviewComment], additional_body: str = "") -> str:
    payload = canonical_payload(comments, additional_body)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


__all__ = ["canonical_payload", "compute_content_hash", "normalize_inline"]
