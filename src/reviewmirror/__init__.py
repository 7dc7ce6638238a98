"""review-mirror - mirror bot code-review comments into versioned tracking issues.

High-level public API:

from reviewmirror import ReviewMirror, load_config, build_tracker

cfg = load_config('review_mirror.config.yaml')
summary = ReviewMirror(cfg, build_tracker(cfg)).run(dry_run=True)
print(summary.totals)

The CLI (``review-mirror sync``) delegates to this library.
"""

from __future__ import annotations

from .config import ConfigError, MirrorConfig, load_config
from .fingerprint import compute_content_hash
from .metadata import MetadataBlock, extract_metadata, parse_metadata, render_metadata
from .orchestrator import PullRequestResult, ReviewMirror, SyncSummary
from .poster import CommentPoster
from .selector import CommentSelection, select_comments
from .trackers import build_tracker
from .versioning import SyncState, format_title, parse_title_version, resolve_state

__version__ = "0.1.0"

__all__ = [
    "CommentPoster",
    "CommentSelection",
    "ConfigError",
    "MetadataBlock",
    "MirrorConfig",
    "PullRequestResult",
    "ReviewMirror",
    "SyncState",
    "SyncSummary",
    "build_tracker",
    "compute_content_hash",
    "extract_metadata",
    "format_title",
    "load_config",
    "parse_metadata",
    "parse_title_version",
    "render_metadata",
    "resolve_state",
    "select_comments",
    "__version__",
]
