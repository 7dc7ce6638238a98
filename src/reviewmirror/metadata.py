"""Hidden metadata block embedded in tracking issue bodies.

The block is an HTML comment so it stays invisible in rendered issues::

    <!-- GREPTILE_METADATA
    PR_NUMBER: 42
    CONTENT_HASH: 3f1c...
    INLINE_COMMENTS: 2
    ADDITIONAL_COMMENTS: 1
    TOTAL_COMMENTS: 3
    SYNCED_AT: 2026-01-01T00:00:00Z
    VERSION: 1
    -->

It is written once when the issue is created and never edited. Readers
must tolerate CRLF line endings and missing keys (a missing key reads as
an empty string, i.e. "no prior value").
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

METADATA_START = "<!-- GREPTILE_METADATA"
METADATA_END = "-->"

KEY_PR_NUMBER = "PR_NUMBER"
KEY_CONTENT_HASH = "CONTENT_HASH"
KEY_INLINE_COMMENTS = "INLINE_COMMENTS"
KEY_ADDITIONAL_COMMENTS = "ADDITIONAL_COMMENTS"
KEY_TOTAL_COMMENTS = "TOTAL_COMMENTS"
KEY_SYNCED_AT = "SYNCED_AT"
KEY_VERSION = "VERSION"

METADATA_KEYS = (
    KEY_PR_NUMBER,
    KEY_CONTENT_HASH,
    KEY_INLINE_COMMENTS,
    KEY_ADDITIONAL_COMMENTS,
    KEY_TOTAL_COMMENTS,
    KEY_SYNCED_AT,
    KEY_VERSION,
)

SYNCED_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_synced_at(moment: datetime) -> str:
    """Render a timestamp in the second-resolution UTC form used in the block."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(SYNCED_AT_FORMAT)


@dataclass(frozen=True)
class MetadataBlock:
    pr_number: int
    content_hash: str
    inline_comments: int
    additional_comments: int
    synced_at: str
    version: int

    @property
    def total_comments(self) -> int:
        return self.inline_comments + self.additional_comments

    def as_pairs(self) -> list[tuple[str, str]]:
        return [
            (KEY_PR_NUMBER, str(self.pr_number)),
            (KEY_CONTENT_HASH, self.content_hash),
            (KEY_INLINE_COMMENTS, str(self.inline_comments)),
            (KEY_ADDITIONAL_COMMENTS, str(self.additional_comments)),
            (KEY_TOTAL_COMMENTS, str(self.total_comments)),
            (KEY_SYNCED_AT, self.synced_at),
            (KEY_VERSION, str(self.version)),
        ]


def render_metadata(block: MetadataBlock) -> str:
    lines = [METADATA_START]
    lines.extend(f"{key}: {value}" for key, value in block.as_pairs())
    lines.append(METADATA_END)
    return "\n".join(lines) + "\n"


def extract_metadata(body: str | None, key: str) -> str:
    """Return the value of the first ``KEY: value`` line, or ``""``.

    Matching is by exact prefix at the start of a line so ``VERSION`` never
    picks up a hypothetical ``OLD_VERSION`` line.
    """
    if not body:
        return ""
    prefix = f"{key}: "
    for line in body.replace("\r", "").split("\n"):
        if line.startswith(prefix):
            return line[len(prefix) :]
    return ""


def _int_or_zero(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        return 0


def parse_metadata(body: str | None) -> MetadataBlock | None:
    """Parse a full block; ``None`` when the body carries no metadata at all."""
    if not body or METADATA_START not in body:
        return None
    values = {key: extract_metadata(body, key) for key in METADATA_KEYS}
    if not any(values.values()):
        return None
    return MetadataBlock(
        pr_number=_int_or_zero(values[KEY_PR_NUMBER]),
        content_hash=values[KEY_CONTENT_HASH],
        inline_comments=_int_or_zero(values[KEY_INLINE_COMMENTS]),
        additional_comments=_int_or_zero(values[KEY_ADDITIONAL_COMMENTS]),
        synced_at=values[KEY_SYNCED_AT],
        version=_int_or_zero(values[KEY_VERSION]),
    )


__all__ = [
    "METADATA_KEYS",
    "MetadataBlock",
    "extract_metadata",
    "format_synced_at",
    "parse_metadata",
    "render_metadata",
]
